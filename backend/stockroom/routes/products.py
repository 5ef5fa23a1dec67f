# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/stockroom/routes/products.py
"""
Product management routes.

SECURITY: All routes require authentication.
- Read operations are open to every role
- Write operations require the admin role

Bundles are created with is_bundle=true and a bundle_components list of
{product_id, quantity}; their stock and price_cents are derived.
"""
from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_role, handle_errors
from ..principal import ROLE_ADMIN
from ..services import products_service

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
@handle_errors("list products")
def list_products_route():
    products = products_service.list_products()
    return jsonify({"products": [p.to_dict() for p in products], "count": len(products)})


@products_bp.get("/count")
@require_auth
@handle_errors("count products")
def count_products_route():
    return jsonify({"count": products_service.count_products()})


@products_bp.get("/total-stock")
@require_auth
@handle_errors("sum product stock")
def total_stock_route():
    return jsonify({"total_stock": products_service.total_stock()})


@products_bp.get("/<int:product_id>")
@require_auth
@handle_errors("get product")
def get_product_route(product_id: int):
    product = products_service.get_product(product_id)
    return jsonify({"product": product.to_dict()})


@products_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
@handle_errors("create product")
def create_product_route():
    payload = request.get_json(silent=True) or {}
    product = products_service.create_product(g.principal, payload)
    return jsonify({"product": product.to_dict()}), 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_role(ROLE_ADMIN)
@handle_errors("update product")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}
    product = products_service.update_product(g.principal, product_id, payload)
    return jsonify({"product": product.to_dict()})


@products_bp.delete("/<int:product_id>")
@require_auth
@require_role(ROLE_ADMIN)
@handle_errors("delete product")
def delete_product_route(product_id: int):
    """
    Delete a product.

    Returns 409 while the product is a component of any bundle.
    """
    products_service.delete_product(g.principal, product_id)
    return jsonify({"message": "Product deleted"})
