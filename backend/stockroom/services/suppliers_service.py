# Overview: Owner-scoped supplier CRUD.

from __future__ import annotations

from ..errors import ForbiddenError, NotFoundError
from ..extensions import db
from ..models import Supplier
from ..principal import Principal
from ..validation import ConflictError, ModelValidationPolicy, validate_payload
from .concurrency import run_in_transaction

SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "phone", "address"},
    required_on_create={"name"},
)


def _ensure_name_available(principal: Principal, owner_id: int, name: str, exclude_id: int | None = None) -> None:
    """Names are unique per owner; an admin's write is checked across all owners."""
    query = db.session.query(Supplier).filter(Supplier.name == name)
    if not principal.is_admin:
        query = query.filter(Supplier.user_id == owner_id)
    if exclude_id is not None:
        query = query.filter(Supplier.id != exclude_id)
    if query.first():
        raise ConflictError("Supplier with this name already exists", {"name": name})


def list_suppliers(principal: Principal) -> list[Supplier]:
    query = db.session.query(Supplier)
    if not principal.is_admin:
        query = query.filter(Supplier.user_id == principal.id)
    return query.order_by(Supplier.name.asc(), Supplier.id.asc()).all()


def get_supplier(principal: Principal, supplier_id: int) -> Supplier:
    supplier = db.session.get(Supplier, supplier_id)
    if supplier is None:
        raise NotFoundError("Supplier not found", {"supplier_id": supplier_id})
    if not principal.can_access(supplier.user_id):
        raise ForbiddenError("Access denied to this supplier", {"supplier_id": supplier_id})
    return supplier


def create_supplier(principal: Principal, payload: dict) -> Supplier:
    patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=False)

    def _op():
        _ensure_name_available(principal, principal.id, patch["name"])
        supplier = Supplier(user_id=principal.id, **patch)
        db.session.add(supplier)
        db.session.flush()
        return supplier

    return run_in_transaction(_op)


def update_supplier(principal: Principal, supplier_id: int, payload: dict) -> Supplier:
    patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=True)

    def _op():
        supplier = get_supplier(principal, supplier_id)
        if "name" in patch and patch["name"] != supplier.name:
            _ensure_name_available(principal, supplier.user_id, patch["name"], exclude_id=supplier.id)
        for key, value in patch.items():
            setattr(supplier, key, value)
        db.session.flush()
        return supplier

    return run_in_transaction(_op)


def delete_supplier(principal: Principal, supplier_id: int) -> None:
    def _op():
        supplier = get_supplier(principal, supplier_id)
        db.session.delete(supplier)
        db.session.flush()

    run_in_transaction(_op)
