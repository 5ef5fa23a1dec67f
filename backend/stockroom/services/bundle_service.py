# Overview: Bundle stock coordination; moves component stock and re-derives bundle stock.

"""
Bundle stock coordinator.

Every function here runs inside the caller's transaction and never commits:
wrap calls in services.concurrency.run_in_transaction. On failure nothing
has been written to the session except what the caller already staged, and
the caller's rollback discards it.

Deduction is all-or-nothing: every component is checked before any is
decremented. Reversion has no upper bound of its own; callers bound it with
the per-order-line deducted ledger (see orders_service).
"""

from __future__ import annotations

from typing import Iterable

from flask import current_app

from ..config import DEFAULT_BUNDLE_DISCOUNT_PERCENT
from ..errors import InsufficientStockError, NotABundleError, NotFoundError
from ..extensions import db
from ..models import BundleComponent, Product
from ..validation import coerce_positive_int
from .concurrency import lock_for_update
from .stock_ledger import StockSnapshot, compute_bundle_aggregate


def product_snapshot(product: Product | None) -> StockSnapshot | None:
    if product is None:
        return None
    return StockSnapshot(
        product_id=product.id,
        stock=product.stock,
        price_cents=product.price_cents,
        is_bundle=product.is_bundle,
        name=product.name,
    )


def snapshot_lookup(session=None):
    """Ledger lookup backed by the session identity map."""
    session = session or db.session

    def _lookup(product_id: int) -> StockSnapshot | None:
        return product_snapshot(session.get(Product, product_id))

    return _lookup


def bundle_discount_percent() -> int:
    return int(current_app.config.get("BUNDLE_DISCOUNT_PERCENT", DEFAULT_BUNDLE_DISCOUNT_PERCENT))


def refresh_bundle(bundle: Product, session=None) -> Product:
    """Rewrite a bundle's derived stock and price from its current components."""
    session = session or db.session
    aggregate = compute_bundle_aggregate(
        bundle.as_stock_item().components,
        snapshot_lookup(session),
        discount_percent=bundle_discount_percent(),
    )
    bundle.stock = aggregate.stock
    bundle.price_cents = aggregate.price_cents
    return bundle


def refresh_bundles_containing(component_ids: Iterable[int], session=None) -> list[Product]:
    """Re-derive every bundle that lists any of `component_ids`."""
    session = session or db.session
    ids = sorted(set(component_ids))
    if not ids:
        return []

    bundle_ids = [
        row[0]
        for row in session.query(BundleComponent.bundle_id)
        .filter(BundleComponent.component_id.in_(ids))
        .distinct()
        .all()
    ]
    if not bundle_ids:
        return []

    bundles = (
        session.query(Product)
        .filter(Product.id.in_(bundle_ids))
        .order_by(Product.id.asc())
        .all()
    )
    for bundle in bundles:
        refresh_bundle(bundle, session=session)
    session.flush()
    return bundles


def _load_bundle(session, bundle_id: int) -> Product:
    bundle = lock_for_update(session.query(Product).filter_by(id=bundle_id)).first()
    if bundle is None:
        raise NotFoundError("Bundle not found", {"product_id": bundle_id})
    if not bundle.is_bundle:
        raise NotABundleError(
            f"Product '{bundle.name}' is not a bundle",
            {"product_id": bundle_id},
        )
    return bundle


def _load_components(session, bundle: Product) -> list[tuple[BundleComponent, Product]]:
    """Lock and return (link, component product) pairs in bundle order."""
    links = list(bundle.components)
    ids = [link.component_id for link in links]
    products = lock_for_update(
        session.query(Product).filter(Product.id.in_(ids)).order_by(Product.id.asc())
    ).all() if ids else []
    by_id = {p.id: p for p in products}

    pairs = []
    for link in links:
        component = by_id.get(link.component_id)
        if component is None:
            raise NotFoundError(
                f"Component of bundle '{bundle.name}' not found",
                {"bundle_id": bundle.id, "product_id": link.component_id},
            )
        pairs.append((link, component))
    return pairs


def deduct_components(bundle_id: int, quantity_sold, session=None) -> Product:
    """
    Take `quantity_sold` bundles' worth of stock out of every component.

    Raises:
        ValidationError: quantity_sold is not a positive integer
        NotFoundError: bundle or one of its components is missing
        NotABundleError: bundle_id refers to a simple product
        InsufficientStockError: some component is short; nothing is changed
    """
    session = session or db.session
    quantity_sold = coerce_positive_int(quantity_sold, "quantity")

    bundle = _load_bundle(session, bundle_id)
    pairs = _load_components(session, bundle)

    shortages = []
    for link, component in pairs:
        required = link.quantity * quantity_sold
        if component.stock < required:
            shortages.append({
                "product_id": component.id,
                "name": component.name,
                "available": component.stock,
                "required": required,
            })
    if shortages:
        first = shortages[0]
        raise InsufficientStockError(
            f"Insufficient stock for component '{first['name']}' of bundle '{bundle.name}': "
            f"available {first['available']}, required {first['required']}",
            {"bundle_id": bundle.id, "shortages": shortages},
        )

    for link, component in pairs:
        component.stock -= link.quantity * quantity_sold
    session.flush()

    refresh_bundles_containing([component.id for _, component in pairs], session=session)
    current_app.logger.info(
        "Deducted components for bundle id=%s quantity=%s", bundle.id, quantity_sold
    )
    return bundle


def revert_components(bundle_id: int, quantity_reverted, session=None) -> Product:
    """
    Put `quantity_reverted` bundles' worth of stock back into every component.

    Raises:
        ValidationError: quantity_reverted is not a positive integer
        NotFoundError: bundle or one of its components is missing
        NotABundleError: bundle_id refers to a simple product
    """
    session = session or db.session
    quantity_reverted = coerce_positive_int(quantity_reverted, "quantity")

    bundle = _load_bundle(session, bundle_id)
    pairs = _load_components(session, bundle)

    for link, component in pairs:
        component.stock += link.quantity * quantity_reverted
    session.flush()

    refresh_bundles_containing([component.id for _, component in pairs], session=session)
    current_app.logger.info(
        "Reverted components for bundle id=%s quantity=%s", bundle.id, quantity_reverted
    )
    return bundle
