# Overview: Flask API routes for suppliers; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, handle_errors
from ..services import suppliers_service

suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")


@suppliers_bp.get("")
@require_auth
@handle_errors("list suppliers")
def list_suppliers_route():
    """Clients see their own suppliers; admins see every supplier."""
    suppliers = suppliers_service.list_suppliers(g.principal)
    return jsonify({"suppliers": [s.to_dict() for s in suppliers], "count": len(suppliers)})


@suppliers_bp.get("/<int:supplier_id>")
@require_auth
@handle_errors("get supplier")
def get_supplier_route(supplier_id: int):
    supplier = suppliers_service.get_supplier(g.principal, supplier_id)
    return jsonify({"supplier": supplier.to_dict()})


@suppliers_bp.post("")
@require_auth
@handle_errors("create supplier")
def create_supplier_route():
    payload = request.get_json(silent=True) or {}
    supplier = suppliers_service.create_supplier(g.principal, payload)
    return jsonify({"supplier": supplier.to_dict()}), 201


@suppliers_bp.put("/<int:supplier_id>")
@require_auth
@handle_errors("update supplier")
def update_supplier_route(supplier_id: int):
    payload = request.get_json(silent=True) or {}
    supplier = suppliers_service.update_supplier(g.principal, supplier_id, payload)
    return jsonify({"supplier": supplier.to_dict()})


@suppliers_bp.delete("/<int:supplier_id>")
@require_auth
@handle_errors("delete supplier")
def delete_supplier_route(supplier_id: int):
    suppliers_service.delete_supplier(g.principal, supplier_id)
    return jsonify({"message": "Supplier deleted"})
