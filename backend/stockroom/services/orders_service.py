"""
Order lifecycle: placement, status transitions and their stock side-effects.

STATES: PENDING, PROCESSING, SHIPPED, DELIVERED, CANCELLED.

STOCK RULES:
- Placement snapshots the lines and moves no stock.
- Entering SHIPPED/DELIVERED from outside those states deducts every line
  (bundle lines through the bundle coordinator, simple lines directly).
- Entering CANCELLED, or deleting the order, puts back exactly what the
  lines currently hold out of stock.
- Anything else (PENDING <-> PROCESSING, SHIPPED -> DELIVERED, same-status
  saves) moves nothing.

Each line tracks stock_deducted_quantity, so a line is never deducted twice
and never reverted beyond what it took. Every operation runs as one
transaction; any failure leaves orders and stock untouched.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..errors import ForbiddenError, InsufficientStockError, NotFoundError
from ..extensions import db
from ..models import (
    FULFILLED_STATUSES,
    ORDER_STATUS_CANCELLED,
    ORDER_STATUS_PENDING,
    ORDER_STATUSES,
    Order,
    OrderLine,
    Product,
    User,
)
from ..principal import Principal
from ..validation import ValidationError, coerce_positive_int
from stockroom.time_utils import utc_day_range
from .bundle_service import deduct_components, refresh_bundles_containing, revert_components
from .concurrency import lock_for_update, run_in_transaction

ORDER_PATCH_FIELDS = {"status", "client_name", "client_address"}


def normalize_status(value) -> str:
    if not isinstance(value, str) or value.strip().upper() not in ORDER_STATUSES:
        raise ValidationError(
            f"Invalid status: {value!r}",
            {"allowed": list(ORDER_STATUSES)},
        )
    return value.strip().upper()


def _normalize_items(items) -> list[tuple[int, int]]:
    if not isinstance(items, list) or not items:
        raise ValidationError("Order must contain at least one product")
    parsed = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")
        product_ref = item.get("product_id", item.get("productId"))
        if product_ref is None:
            raise ValidationError(f"items[{index}].product_id is required")
        parsed.append((
            coerce_positive_int(product_ref, f"items[{index}].product_id"),
            coerce_positive_int(item.get("quantity"), f"items[{index}].quantity"),
        ))
    return parsed


def _get_order_for(principal: Principal, order_id: int, *, lock: bool = False) -> Order:
    query = db.session.query(Order).filter_by(id=order_id)
    if lock:
        query = lock_for_update(query)
    order = query.first()
    if order is None:
        raise NotFoundError("Order not found", {"order_id": order_id})
    if not principal.can_access(order.user_id):
        raise ForbiddenError("Access denied to this order", {"order_id": order_id})
    return order


def _deduct_line(order: Order, line: OrderLine) -> None:
    outstanding = line.quantity - line.stock_deducted_quantity
    if outstanding <= 0:
        return

    product = lock_for_update(db.session.query(Product).filter_by(id=line.product_id)).first()
    if product is None:
        raise NotFoundError(
            f"Product '{line.name}' no longer exists; cannot fulfill order",
            {"order_id": order.id, "product_id": line.product_id},
        )

    if product.is_bundle:
        deduct_components(product.id, outstanding, session=db.session)
    else:
        if product.stock < outstanding:
            raise InsufficientStockError(
                f"Insufficient stock for product '{product.name}'. "
                f"Available: {product.stock}, Requested: {outstanding}. Cannot fulfill order.",
                {
                    "order_id": order.id,
                    "product_id": product.id,
                    "available": product.stock,
                    "required": outstanding,
                },
            )
        product.stock -= outstanding
        db.session.flush()
        refresh_bundles_containing([product.id], session=db.session)

    line.stock_deducted_quantity += outstanding


def _revert_line(order: Order, line: OrderLine) -> None:
    held = line.stock_deducted_quantity
    if held <= 0:
        return

    product = lock_for_update(db.session.query(Product).filter_by(id=line.product_id)).first()
    if product is None:
        current_app.logger.warning(
            "Product id=%s not found when reverting stock for order id=%s; skipping",
            line.product_id,
            order.id,
        )
        line.stock_deducted_quantity = 0
        return

    if product.is_bundle:
        revert_components(product.id, held, session=db.session)
    else:
        product.stock += held
        db.session.flush()
        refresh_bundles_containing([product.id], session=db.session)

    line.stock_deducted_quantity = 0


def _apply_transition(order: Order, new_status: str) -> None:
    if new_status == order.status:
        return

    if new_status in FULFILLED_STATUSES and not order.is_fulfilled:
        for line in order.lines:
            _deduct_line(order, line)
    elif new_status == ORDER_STATUS_CANCELLED:
        for line in order.lines:
            _revert_line(order, line)

    order.status = new_status


def _client_field(value, field: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    if not value.strip():
        raise ValidationError(f"{field} cannot be blank")
    return value.strip()


def place_order(
    principal: Principal,
    items,
    *,
    client_name: str | None = None,
    client_address: str | None = None,
) -> Order:
    """
    Create a PENDING order from [{product_id, quantity}, ...].

    Every product is looked up and snapshotted; if any is missing no order
    is created. Stock is not touched.
    """
    parsed = _normalize_items(items)
    name = _client_field(client_name, "client_name")
    address = _client_field(client_address, "client_address")

    def _op():
        user = db.session.get(User, principal.id)
        if user is None:
            raise NotFoundError("Authenticated user not found", {"user_id": principal.id})

        order = Order(
            user_id=user.id,
            client_name=name or user.name,
            client_address=address or user.address or "N/A",
            status=ORDER_STATUS_PENDING,
        )

        for position, (product_id, quantity) in enumerate(parsed):
            product = db.session.get(Product, product_id)
            if product is None:
                raise NotFoundError(
                    f"Product not found with ID: {product_id}",
                    {"product_id": product_id},
                )
            order.lines.append(
                OrderLine(
                    position=position,
                    product_id=product.id,
                    name=product.name,
                    category_id=product.category.id if product.category else None,
                    category_name=product.category.name if product.category else None,
                    quantity=quantity,
                    price_cents=product.price_cents,
                    is_bundle=product.is_bundle,
                    stock_deducted_quantity=0,
                )
            )

        order.recalculate_total()
        db.session.add(order)
        db.session.flush()
        return order

    return run_in_transaction(_op)


def update_order(principal: Principal, order_id: int, patch: dict) -> Order:
    """
    Apply a client/admin edit to an order.

    Only status, client_name and client_address are editable; line items
    are immutable snapshots. Only admins may change status.
    """
    if not isinstance(patch, dict):
        raise ValidationError("Invalid JSON payload")
    unknown = sorted(set(patch) - ORDER_PATCH_FIELDS)
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(unknown)}")

    new_status = normalize_status(patch["status"]) if patch.get("status") is not None else None
    edits = {}
    for field in ("client_name", "client_address"):
        if field in patch:
            if patch[field] is None:
                raise ValidationError(f"{field} cannot be blank")
            edits[field] = _client_field(patch[field], field)

    def _op():
        order = _get_order_for(principal, order_id, lock=True)

        if new_status is not None and new_status != order.status:
            if not principal.is_admin:
                raise ForbiddenError(
                    "Only administrators can update order status",
                    {"order_id": order.id},
                )
            _apply_transition(order, new_status)

        for field, value in edits.items():
            setattr(order, field, value)

        order.recalculate_total()
        db.session.flush()
        return order

    return run_in_transaction(_op)


def update_order_status(principal: Principal, order_id: int, new_status) -> Order:
    return update_order(principal, order_id, {"status": new_status})


def delete_order(principal: Principal, order_id: int) -> None:
    """Remove an order, first putting back any stock its lines still hold."""
    def _op():
        order = _get_order_for(principal, order_id, lock=True)
        for line in order.lines:
            _revert_line(order, line)
        db.session.delete(order)
        db.session.flush()

    run_in_transaction(_op)


def list_orders(principal: Principal) -> list[Order]:
    query = db.session.query(Order)
    if not principal.is_admin:
        query = query.filter(Order.user_id == principal.id)
    return query.order_by(Order.order_date.desc(), Order.id.desc()).all()


def get_order(principal: Principal, order_id: int) -> Order:
    return _get_order_for(principal, order_id)


def orders_today_count(now=None) -> int:
    start, end = utc_day_range(now)
    return (
        db.session.query(func.count(Order.id))
        .filter(Order.order_date >= start, Order.order_date < end)
        .scalar()
    ) or 0


def revenue_today_cents(now=None) -> int:
    """Sum of today's SHIPPED/DELIVERED order totals."""
    start, end = utc_day_range(now)
    return (
        db.session.query(func.coalesce(func.sum(Order.total_cents), 0))
        .filter(
            Order.order_date >= start,
            Order.order_date < end,
            Order.status.in_(FULFILLED_STATUSES),
        )
        .scalar()
    ) or 0


def pending_orders_count() -> int:
    return (
        db.session.query(func.count(Order.id))
        .filter(Order.status == ORDER_STATUS_PENDING)
        .scalar()
    ) or 0
