# Overview: Pure bundle arithmetic and bundle-composition validation.

"""
Stock ledger: side-effect-free rules for bundles (kits).

A bundle's stock is how many complete kits its components can build:
min(floor(component_stock / component_qty)). A bundle with no components, or
one whose component cannot be found, has stock 0.

A bundle's price is the summed component price (price x qty) minus the
configured bundle discount, rounded half-up to whole cents.

Nothing here touches the database. Callers pass a `lookup(product_id)` that
returns a StockSnapshot or None.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from ..config import DEFAULT_BUNDLE_DISCOUNT_PERCENT
from ..validation import ValidationError, coerce_int


@dataclass(frozen=True)
class ComponentSpec:
    product_id: int
    quantity: int


@dataclass(frozen=True)
class StockSnapshot:
    """Current stock/price view of one product, as the ledger sees it."""
    product_id: int
    stock: int
    price_cents: int
    is_bundle: bool = False
    name: str = ""


@dataclass(frozen=True)
class BundleAggregate:
    stock: int
    price_cents: int


@dataclass(frozen=True)
class SimpleItem:
    """Domain view of a product whose stock is stored directly."""
    product_id: int
    stock: int
    price_cents: int


@dataclass(frozen=True)
class BundleItem:
    """Domain view of a bundle; stock and price derive from components."""
    product_id: int
    components: tuple[ComponentSpec, ...]


Lookup = Callable[[int], Optional[StockSnapshot]]


def apply_discount(total_cents: int, discount_percent: int) -> int:
    """Half-up rounding of total_cents * (100 - discount_percent) / 100."""
    return (total_cents * (100 - discount_percent) + 50) // 100


def compute_bundle_aggregate(
    components: Iterable[ComponentSpec],
    lookup: Lookup,
    discount_percent: int | None = None,
) -> BundleAggregate:
    if discount_percent is None:
        discount_percent = DEFAULT_BUNDLE_DISCOUNT_PERCENT

    buildable: list[int] = []
    total_cents = 0
    missing = False

    for spec in components:
        snapshot = lookup(spec.product_id)
        if snapshot is None or spec.quantity < 1:
            missing = True
            continue
        buildable.append(max(snapshot.stock, 0) // spec.quantity)
        total_cents += snapshot.price_cents * spec.quantity

    stock = 0 if missing or not buildable else min(buildable)
    return BundleAggregate(stock=stock, price_cents=apply_discount(total_cents, discount_percent))


def normalize_components(raw) -> list[ComponentSpec]:
    """
    Parse client JSON into ComponentSpec rows.

    Accepts [{"product_id": 1, "quantity": 2}, ...]. "product" is accepted as
    an alias for "product_id". Shape errors raise ValidationError; business
    rules are checked by validate_bundle_components.
    """
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError("bundle_components must be a list")

    specs: list[ComponentSpec] = []
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise ValidationError(f"bundle_components[{index}] must be an object")
        product_ref = entry.get("product_id", entry.get("product"))
        if product_ref is None:
            raise ValidationError(f"bundle_components[{index}].product_id is required")
        if "quantity" not in entry:
            raise ValidationError(f"bundle_components[{index}].quantity is required")
        specs.append(
            ComponentSpec(
                product_id=coerce_int(product_ref, f"bundle_components[{index}].product_id"),
                quantity=coerce_int(entry["quantity"], f"bundle_components[{index}].quantity"),
            )
        )
    return specs


def validate_bundle_components(
    components: Iterable[ComponentSpec],
    lookup: Lookup,
    exclude_product_id: int | None = None,
) -> list[ComponentSpec]:
    """
    Enforce bundle composition rules, in order:
    non-empty, quantities >= 1, no self-reference, no duplicates,
    every component exists, no component is itself a bundle.

    Returns the components as a list on success.
    """
    specs = list(components)
    if not specs:
        raise ValidationError("A bundle must contain at least one component")

    for spec in specs:
        if spec.quantity < 1:
            raise ValidationError(
                "Component quantity must be at least 1",
                {"product_id": spec.product_id, "quantity": spec.quantity},
            )

    if exclude_product_id is not None and any(s.product_id == exclude_product_id for s in specs):
        raise ValidationError("A bundle cannot contain itself", {"product_id": exclude_product_id})

    seen: set[int] = set()
    for spec in specs:
        if spec.product_id in seen:
            raise ValidationError("Duplicate component in bundle", {"product_id": spec.product_id})
        seen.add(spec.product_id)

    for spec in specs:
        snapshot = lookup(spec.product_id)
        if snapshot is None:
            raise ValidationError("Component product not found", {"product_id": spec.product_id})
        if snapshot.is_bundle:
            raise ValidationError(
                f"Bundles cannot be nested: '{snapshot.name}' is itself a bundle",
                {"product_id": spec.product_id},
            )

    return specs
