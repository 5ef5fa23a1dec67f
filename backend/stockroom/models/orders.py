from __future__ import annotations

from ..extensions import db
from stockroom.time_utils import to_utc_z, utcnow

ORDER_STATUS_PENDING = "PENDING"
ORDER_STATUS_PROCESSING = "PROCESSING"
ORDER_STATUS_SHIPPED = "SHIPPED"
ORDER_STATUS_DELIVERED = "DELIVERED"
ORDER_STATUS_CANCELLED = "CANCELLED"

ORDER_STATUSES = (
    ORDER_STATUS_PENDING,
    ORDER_STATUS_PROCESSING,
    ORDER_STATUS_SHIPPED,
    ORDER_STATUS_DELIVERED,
    ORDER_STATUS_CANCELLED,
)

# Statuses at which line quantities have been taken out of stock
FULFILLED_STATUSES = frozenset({ORDER_STATUS_SHIPPED, ORDER_STATUS_DELIVERED})


class Order(db.Model):
    """
    Client order document.

    LIFECYCLE:
    - Created PENDING; no stock moves at placement.
    - Entering SHIPPED/DELIVERED from any other status deducts stock once.
    - CANCELLED from SHIPPED/DELIVERED, or deleting a fulfilled order,
      reverts what was deducted.

    Line items are snapshots taken at placement and are never edited.
    total_cents is recomputed from the lines whenever the order is saved.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.CheckConstraint(
            "status IN ('PENDING', 'PROCESSING', 'SHIPPED', 'DELIVERED', 'CANCELLED')",
            name="status_valid",
        ),
        db.CheckConstraint("total_cents >= 0", name="total_non_negative"),
        db.Index("ix_orders_status_order_date", "status", "order_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    # Snapshot of the client at placement time
    client_name = db.Column(db.String(100), nullable=False)
    client_address = db.Column(db.String(200), nullable=False, default="")

    total_cents = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default=ORDER_STATUS_PENDING, index=True)
    order_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    user = db.relationship("User", backref=db.backref("orders", lazy=True))
    lines = db.relationship(
        "OrderLine",
        back_populates="order",
        order_by="OrderLine.position",
        cascade="all, delete-orphan",
        lazy=True,
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Order id={self.id} status={self.status} total_cents={self.total_cents}>"

    @property
    def is_fulfilled(self) -> bool:
        return self.status in FULFILLED_STATUSES

    def recalculate_total(self) -> int:
        self.total_cents = sum(line.quantity * line.price_cents for line in self.lines)
        return self.total_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "user": (
                {"id": self.user.id, "name": self.user.name, "email": self.user.email}
                if self.user
                else None
            ),
            "client_name": self.client_name,
            "client_address": self.client_address,
            "items": [line.to_dict() for line in self.lines],
            "total_cents": self.total_cents,
            "status": self.status,
            "order_date": to_utc_z(self.order_date),
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class OrderLine(db.Model):
    """
    Snapshot of one ordered product.

    product_id is intentionally not a foreign key: the snapshot outlives the
    product it was taken from.

    stock_deducted_quantity records how many units this line currently has
    out of stock (0 or quantity). Reversion restores exactly that amount.
    """
    __tablename__ = "order_lines"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="quantity_positive"),
        db.CheckConstraint("price_cents >= 0", name="price_non_negative"),
        db.CheckConstraint("stock_deducted_quantity >= 0", name="deducted_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    product_id = db.Column(db.Integer, nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    category_id = db.Column(db.Integer, nullable=True)
    category_name = db.Column(db.String(50), nullable=True)

    quantity = db.Column(db.Integer, nullable=False)
    price_cents = db.Column(db.Integer, nullable=False)
    is_bundle = db.Column(db.Boolean, nullable=False, default=False)

    stock_deducted_quantity = db.Column(db.Integer, nullable=False, default=0)

    order = db.relationship("Order", back_populates="lines")

    @property
    def line_total_cents(self) -> int:
        return self.quantity * self.price_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "name": self.name,
            "category": (
                {"id": self.category_id, "name": self.category_name}
                if self.category_id is not None or self.category_name
                else None
            ),
            "quantity": self.quantity,
            "price_cents": self.price_cents,
            "line_total_cents": self.line_total_cents,
            "is_bundle": self.is_bundle,
            "stock_deducted_quantity": self.stock_deducted_quantity,
        }

