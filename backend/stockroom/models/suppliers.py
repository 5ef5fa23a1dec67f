from __future__ import annotations

from ..extensions import db
from stockroom.time_utils import to_utc_z


class Supplier(db.Model):
    """
    Supplier contact card, owned by the user who created it.

    OWNERSHIP: clients see and edit only their own suppliers; admins see all.
    Names are unique per owner. Admin writes are additionally checked for
    global uniqueness in the service layer.
    """
    __tablename__ = "suppliers"
    __table_args__ = (
        db.UniqueConstraint("user_id", "name", name="uq_suppliers_user_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(64), nullable=True)
    address = db.Column(db.String(500), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    owner = db.relationship("User", backref=db.backref("suppliers", lazy=True, cascade="all, delete-orphan"))

    def __repr__(self) -> str:
        return f"<Supplier id={self.id} name={self.name!r} user_id={self.user_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
