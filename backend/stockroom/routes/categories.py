# Overview: Flask API routes for categories; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_role, handle_errors
from ..principal import ROLE_ADMIN
from ..services import categories_service

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("")
@require_auth
@handle_errors("list categories")
def list_categories_route():
    categories = categories_service.list_categories()
    return jsonify({"categories": [c.to_dict() for c in categories], "count": len(categories)})


@categories_bp.get("/<int:category_id>")
@require_auth
@handle_errors("get category")
def get_category_route(category_id: int):
    category = categories_service.get_category(category_id)
    return jsonify({"category": category.to_dict()})


@categories_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
@handle_errors("create category")
def create_category_route():
    payload = request.get_json(silent=True) or {}
    category = categories_service.create_category(g.principal, payload)
    return jsonify({"category": category.to_dict()}), 201


@categories_bp.put("/<int:category_id>")
@require_auth
@require_role(ROLE_ADMIN)
@handle_errors("update category")
def update_category_route(category_id: int):
    payload = request.get_json(silent=True) or {}
    category = categories_service.update_category(g.principal, category_id, payload)
    return jsonify({"category": category.to_dict()})


@categories_bp.delete("/<int:category_id>")
@require_auth
@require_role(ROLE_ADMIN)
@handle_errors("delete category")
def delete_category_route(category_id: int):
    """Products in the category become uncategorised."""
    categories_service.delete_category(g.principal, category_id)
    return jsonify({"message": "Category deleted"})
