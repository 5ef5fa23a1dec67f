from __future__ import annotations

from ..extensions import db
from ..config import global_default_threshold
from stockroom.time_utils import to_utc_z


class Category(db.Model):
    """
    Product grouping with a default low-stock threshold.

    NAME NORMALIZATION: names are stored trimmed and lowercased, and are
    unique after normalization ("Tools " and "tools" collide).

    The column default reads the same configured value the low-stock
    evaluator falls back to, so there is one global default.
    """
    __tablename__ = "categories"
    __table_args__ = (
        db.CheckConstraint("default_low_stock_threshold >= 0", name="threshold_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), nullable=False, unique=True)
    description = db.Column(db.String(200), nullable=True, default="")
    default_low_stock_threshold = db.Column(
        db.Integer,
        nullable=False,
        default=global_default_threshold,
    )

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Category id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "default_low_stock_threshold": self.default_low_stock_threshold,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Product(db.Model):
    """
    Product master data, covering both simple products and bundles (kits).

    BUNDLES:
    - is_bundle=True products own an ordered list of BundleComponent rows.
    - A bundle's stock and price_cents are DERIVED from its components
      (see services/stock_ledger.py) and rewritten whenever a component
      changes. They are never taken from client input.
    - Components are always simple products: one level of nesting only.

    STOCK: stock is a non-negative integer, enforced by a CHECK constraint
    and by every service that mutates it.

    CONCURRENCY: version_id enables optimistic locking; concurrent writers to
    the same product raise StaleDataError, which run_in_transaction retries.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock >= 0", name="stock_non_negative"),
        db.CheckConstraint("price_cents >= 0", name="price_non_negative"),
        db.CheckConstraint(
            "low_stock_threshold IS NULL OR low_stock_threshold >= 0",
            name="threshold_non_negative",
        ),
        db.Index("ix_products_category_bundle", "category_id", "is_bundle"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(100), nullable=False, unique=True)
    sku = db.Column(db.String(64), nullable=False, default="N/A")
    description = db.Column(db.String(1000), nullable=True, default="")
    image_url = db.Column(db.String(500), nullable=True)

    category_id = db.Column(
        db.Integer,
        db.ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    stock = db.Column(db.Integer, nullable=False, default=0)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False, default=0)

    supplier_name = db.Column(db.String(100), nullable=True)
    custom_fields = db.Column(db.JSON, nullable=False, default=dict)
    bin_location = db.Column(db.String(50), nullable=False, default="Main")

    # Per-product override; NULL defers to the category, then the global default
    low_stock_threshold = db.Column(db.Integer, nullable=True)

    is_bundle = db.Column(db.Boolean, nullable=False, default=False, index=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    category = db.relationship("Category", backref=db.backref("products", lazy=True))
    components = db.relationship(
        "BundleComponent",
        foreign_keys="BundleComponent.bundle_id",
        back_populates="bundle",
        order_by="BundleComponent.position",
        cascade="all, delete-orphan",
        lazy=True,
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} bundle={self.is_bundle} stock={self.stock}>"

    def as_stock_item(self):
        """Tagged domain view: SimpleItem or BundleItem."""
        from ..services.stock_ledger import BundleItem, ComponentSpec, SimpleItem

        if self.is_bundle:
            return BundleItem(
                product_id=self.id,
                components=tuple(
                    ComponentSpec(product_id=c.component_id, quantity=c.quantity)
                    for c in self.components
                ),
            )
        return SimpleItem(product_id=self.id, stock=self.stock, price_cents=self.price_cents)

    def to_dict(self, include_components: bool = True) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "sku": self.sku,
            "description": self.description,
            "image_url": self.image_url,
            "category_id": self.category_id,
            "category": (
                {
                    "id": self.category.id,
                    "name": self.category.name,
                    "default_low_stock_threshold": self.category.default_low_stock_threshold,
                }
                if self.category
                else None
            ),
            "stock": self.stock,
            "price_cents": self.price_cents,
            "supplier_name": self.supplier_name,
            "custom_fields": self.custom_fields or {},
            "bin_location": self.bin_location,
            "low_stock_threshold": self.low_stock_threshold,
            "is_bundle": self.is_bundle,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_components:
            data["bundle_components"] = [c.to_dict() for c in self.components]
        return data


class BundleComponent(db.Model):
    """
    One line of a bundle's bill of materials: `quantity` units of
    `component_id` per bundle unit.
    """
    __tablename__ = "bundle_components"
    __table_args__ = (
        db.UniqueConstraint("bundle_id", "component_id", name="uq_bundle_components_bundle_component"),
        db.CheckConstraint("quantity >= 1", name="quantity_positive"),
        db.CheckConstraint("bundle_id <> component_id", name="not_self"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    bundle_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    component_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)

    bundle = db.relationship("Product", foreign_keys=[bundle_id], back_populates="components")
    component = db.relationship("Product", foreign_keys=[component_id])

    def to_dict(self) -> dict:
        component = self.component
        return {
            "product_id": self.component_id,
            "quantity": self.quantity,
            "product": (
                {
                    "id": component.id,
                    "name": component.name,
                    "sku": component.sku,
                    "stock": component.stock,
                    "price_cents": component.price_cents,
                    "image_url": component.image_url,
                }
                if component
                else None
            ),
        }
