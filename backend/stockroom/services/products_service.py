# backend/stockroom/services/products_service.py
"""
Products service: simple products and bundles.

BUNDLES:
- Created with is_bundle=true and a non-empty bundle_components list.
- stock and price_cents in a bundle payload are ignored; both are derived
  from the components and re-derived whenever a component changes.
- is_bundle is fixed at creation: order lines revert stock through the same
  branch (components or direct) that deducted it.

SIMPLE PRODUCTS:
- stock and price_cents are authored directly.
- Any stock or price change re-derives every bundle that contains it.
- A product still used as a bundle component cannot be deleted.
"""
from __future__ import annotations

from sqlalchemy import func

from ..errors import ForbiddenError, NotFoundError
from ..extensions import db
from ..models import BundleComponent, Category, Product
from ..principal import Principal
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    ValidationError,
    coerce_bool,
    enforce_rules_product,
    validate_payload,
)
from .bundle_service import refresh_bundle, refresh_bundles_containing, snapshot_lookup
from .concurrency import run_in_transaction
from .stock_ledger import normalize_components, validate_bundle_components

PRODUCT_FIELDS = {
    "name", "sku", "description", "image_url", "category_id", "stock",
    "price_cents", "supplier_name", "custom_fields", "bin_location",
    "low_stock_threshold", "is_bundle",
}

SIMPLE_PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=PRODUCT_FIELDS,
    required_on_create={"name", "stock", "price_cents"},
)

# Derived values are dropped, not rejected, so clients may echo a full product back
BUNDLE_PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=PRODUCT_FIELDS,
    required_on_create={"name"},
    ignored_fields={"stock", "price_cents"},
)

BUNDLE_SUPPLIER_PLACEHOLDER = "Derived from Components"


def _require_admin(principal: Principal, action: str) -> None:
    if not principal.is_admin:
        raise ForbiddenError(f"Not authorized to {action} product: Only administrators can perform this action")


def _split_payload(payload) -> tuple[dict, object]:
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    body = dict(payload)
    components_raw = body.pop("bundle_components", None)
    return body, components_raw


def _bundle_flag(body: dict) -> bool | None:
    value = body.get("is_bundle")
    if value is None:
        return None
    return coerce_bool(value, "is_bundle")


def _ensure_name_available(name: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Product).filter(Product.name == name)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first():
        raise ConflictError(f'Product with name "{name}" already exists', {"name": name})


def _ensure_category(category_id: int | None) -> None:
    if category_id is not None and db.session.get(Category, category_id) is None:
        raise NotFoundError("Category not found with the provided ID", {"category_id": category_id})


def _replace_components(product: Product, components_raw) -> None:
    specs = validate_bundle_components(
        normalize_components(components_raw),
        snapshot_lookup(db.session),
        exclude_product_id=product.id,
    )
    if product.components:
        product.components.clear()
        # Old rows must be gone before re-inserting the same (bundle, component) pairs
        db.session.flush()
    for position, spec in enumerate(specs):
        product.components.append(
            BundleComponent(component_id=spec.product_id, quantity=spec.quantity, position=position)
        )
    db.session.flush()


def list_products() -> list[Product]:
    return db.session.query(Product).order_by(Product.name.asc(), Product.id.asc()).all()


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found", {"product_id": product_id})
    return product


def count_products() -> int:
    return db.session.query(func.count(Product.id)).scalar() or 0


def total_stock() -> int:
    return db.session.query(func.coalesce(func.sum(Product.stock), 0)).scalar() or 0


def create_product(principal: Principal, payload: dict) -> Product:
    """
    Create a simple product or a bundle.

    Raises:
        ForbiddenError: caller is not an admin
        ValidationError: bad fields or bundle composition
        NotFoundError: category_id does not exist
        ConflictError: name already taken
    """
    _require_admin(principal, "create")
    body, components_raw = _split_payload(payload)
    is_bundle = _bundle_flag(body) is True

    policy = BUNDLE_PRODUCT_POLICY if is_bundle else SIMPLE_PRODUCT_POLICY
    patch = validate_payload(model=Product, payload=body, policy=policy, partial=False)
    enforce_rules_product(patch)

    if not is_bundle and components_raw:
        raise ValidationError("Bundle components can only be provided for bundle products")
    if is_bundle and not components_raw:
        raise ValidationError("A bundle must contain at least one component")

    def _op():
        _ensure_name_available(patch["name"])
        _ensure_category(patch.get("category_id"))

        product = Product(created_by_user_id=principal.id, **patch)
        if not product.sku:
            product.sku = "N/A"
        if is_bundle:
            product.stock = 0
            product.price_cents = 0
            product.supplier_name = product.supplier_name or BUNDLE_SUPPLIER_PLACEHOLDER

        db.session.add(product)
        db.session.flush()

        if is_bundle:
            _replace_components(product, components_raw)
            refresh_bundle(product)
            db.session.flush()
        return product

    return run_in_transaction(_op)


def update_product(principal: Principal, product_id: int, payload: dict) -> Product:
    """
    Patch a product. Bundles may replace their component list; simple
    products propagate stock/price edits to every bundle containing them.
    """
    _require_admin(principal, "update")
    body, components_raw = _split_payload(payload)

    def _op():
        product = get_product(product_id)

        requested = _bundle_flag(body)
        if requested is not None and requested != product.is_bundle:
            raise ValidationError("is_bundle cannot be changed after creation", {"product_id": product.id})

        policy = BUNDLE_PRODUCT_POLICY if product.is_bundle else SIMPLE_PRODUCT_POLICY
        patch = validate_payload(model=Product, payload=body, policy=policy, partial=True)
        patch.pop("is_bundle", None)
        enforce_rules_product(patch)

        if not product.is_bundle and components_raw:
            raise ValidationError("Bundle components can only be provided for bundle products")

        if "name" in patch and patch["name"] != product.name:
            _ensure_name_available(patch["name"], exclude_id=product.id)
        if "category_id" in patch:
            _ensure_category(patch["category_id"])

        stock_or_price_changed = any(
            key in patch and patch[key] != getattr(product, key)
            for key in ("stock", "price_cents")
        )

        for key, value in patch.items():
            setattr(product, key, value)
        if "sku" in patch and not product.sku:
            product.sku = "N/A"
        db.session.flush()

        if product.is_bundle:
            if components_raw is not None:
                _replace_components(product, components_raw)
            refresh_bundle(product)
            db.session.flush()
        elif stock_or_price_changed:
            refresh_bundles_containing([product.id])

        return product

    return run_in_transaction(_op)


def delete_product(principal: Principal, product_id: int) -> None:
    """
    Delete a product. Refused while any bundle lists it as a component.
    Order lines keep their snapshots.
    """
    _require_admin(principal, "delete")

    def _op():
        product = get_product(product_id)
        used_by = (
            db.session.query(Product)
            .join(BundleComponent, BundleComponent.bundle_id == Product.id)
            .filter(BundleComponent.component_id == product.id)
            .order_by(Product.name.asc())
            .all()
        )
        if used_by:
            raise ConflictError(
                f"Product '{product.name}' is a component of one or more bundles",
                {"bundles": [{"id": b.id, "name": b.name} for b in used_by]},
            )
        db.session.delete(product)
        db.session.flush()

    run_in_transaction(_op)
