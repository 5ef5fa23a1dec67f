# Overview: Dashboard activity feed built from recent orders, products and users.

from __future__ import annotations

from datetime import timedelta

from ..extensions import db
from ..models import Order, Product, User
from stockroom.time_utils import time_ago, to_utc_z, utcnow
from .low_stock_service import STOCK_LOW, STOCK_OUT, classify_stock

ACTIVITY_LIMIT = 15
ORDER_WINDOW = timedelta(hours=24)
PRODUCT_WINDOW = timedelta(days=7)
USER_WINDOW = timedelta(days=7)

# A product whose updated_at is this close to created_at counts as new
NEW_PRODUCT_TOLERANCE = timedelta(seconds=5)


def _naive(dt):
    if dt is not None and dt.tzinfo is not None:
        return dt.replace(tzinfo=None)
    return dt


def _activity(kind: str, entity_id: int, message: str, at, now) -> dict:
    return {
        "id": f"{kind}:{entity_id}",
        "type": kind,
        "message": message,
        "time": time_ago(at, now),
        "timestamp": to_utc_z(at),
        "_sort": _naive(at),
    }


def _product_activity(product: Product, now) -> dict:
    created = _naive(product.created_at)
    updated = _naive(product.updated_at) or created

    if created is not None and updated - created < NEW_PRODUCT_TOLERANCE:
        return _activity("new_product", product.id, f'New product added: "{product.name}"', created, now)

    status = classify_stock(product)
    if status == STOCK_OUT:
        return _activity("stock_out", product.id, f'"{product.name}" is out of stock!', updated, now)
    if status == STOCK_LOW:
        return _activity(
            "stock_low", product.id, f'"{product.name}" stock is low ({product.stock} left)', updated, now
        )
    return _activity(
        "product_update", product.id, f'Stock updated for "{product.name}" to {product.stock}', updated, now
    )


def recent_activities(now=None, limit: int = ACTIVITY_LIMIT) -> list[dict]:
    """Newest-first mix of recent orders, product changes and sign-ups."""
    now = now or utcnow()
    activities = []

    orders = (
        db.session.query(Order)
        .filter(Order.order_date >= now - ORDER_WINDOW)
        .order_by(Order.order_date.desc())
        .limit(10)
        .all()
    )
    for order in orders:
        placed_by = order.user.name if order.user else order.client_name
        activities.append(
            _activity("new_order", order.id, f"New order #{order.id} placed by {placed_by}", order.order_date, now)
        )

    products = (
        db.session.query(Product)
        .filter(Product.updated_at >= now - PRODUCT_WINDOW)
        .order_by(Product.updated_at.desc())
        .limit(10)
        .all()
    )
    activities.extend(_product_activity(product, now) for product in products)

    users = (
        db.session.query(User)
        .filter(User.created_at >= now - USER_WINDOW)
        .order_by(User.created_at.desc())
        .limit(5)
        .all()
    )
    for user in users:
        activities.append(
            _activity("new_user", user.id, f"New user registered: {user.name or user.email}", user.created_at, now)
        )

    activities.sort(key=lambda a: a["_sort"], reverse=True)
    for activity in activities:
        del activity["_sort"]
    return activities[:limit]
