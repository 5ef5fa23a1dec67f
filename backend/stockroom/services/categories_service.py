# Overview: Category CRUD; names are unique after trim + lowercase.

from __future__ import annotations

from ..errors import ForbiddenError, NotFoundError
from ..extensions import db
from ..models import Category
from ..principal import Principal
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    enforce_rules_category,
    validate_payload,
)
from .concurrency import run_in_transaction

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "default_low_stock_threshold"},
    required_on_create={"name"},
)


def _require_admin(principal: Principal, action: str) -> None:
    if not principal.is_admin:
        raise ForbiddenError(f"Not authorized to {action} category: Only administrators can perform this action")


def _ensure_name_available(name: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Category).filter(Category.name == name)
    if exclude_id is not None:
        query = query.filter(Category.id != exclude_id)
    if query.first():
        raise ConflictError(f'Category with name "{name}" already exists', {"name": name})


def list_categories() -> list[Category]:
    return db.session.query(Category).order_by(Category.name.asc()).all()


def get_category(category_id: int) -> Category:
    category = db.session.get(Category, category_id)
    if category is None:
        raise NotFoundError("Category not found", {"category_id": category_id})
    return category


def create_category(principal: Principal, payload: dict) -> Category:
    _require_admin(principal, "create")
    patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=False)
    enforce_rules_category(patch)

    def _op():
        _ensure_name_available(patch["name"])
        category = Category(created_by_user_id=principal.id, **patch)
        db.session.add(category)
        db.session.flush()
        return category

    return run_in_transaction(_op)


def update_category(principal: Principal, category_id: int, payload: dict) -> Category:
    _require_admin(principal, "update")
    patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=True)
    enforce_rules_category(patch)

    def _op():
        category = get_category(category_id)
        if "name" in patch and patch["name"] != category.name:
            _ensure_name_available(patch["name"], exclude_id=category.id)
        for key, value in patch.items():
            setattr(category, key, value)
        db.session.flush()
        return category

    return run_in_transaction(_op)


def delete_category(principal: Principal, category_id: int) -> None:
    """Delete a category; its products become uncategorised."""
    _require_admin(principal, "delete")

    def _op():
        category = get_category(category_id)
        for product in list(category.products):
            product.category_id = None
        db.session.delete(category)
        db.session.flush()

    run_in_transaction(_op)
