# Overview: Flask API routes for orders operations; parses input and returns JSON responses.

# backend/stockroom/routes/orders.py
"""
Order routes.

Placing an order reserves nothing; stock moves only when an admin moves the
order into SHIPPED/DELIVERED, and comes back when it is CANCELLED or deleted.
"""
from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_role, handle_errors
from ..principal import ROLE_ADMIN
from ..services import orders_service

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.post("/place")
@require_auth
@handle_errors("place order")
def place_order_route():
    """
    Request body:
    {
        "items": [{"product_id": 1, "quantity": 2}, ...],
        "client_name": "optional, defaults to the caller's name",
        "client_address": "optional, defaults to the caller's address"
    }
    """
    data = request.get_json(silent=True) or {}
    order = orders_service.place_order(
        g.principal,
        data.get("items"),
        client_name=data.get("client_name"),
        client_address=data.get("client_address"),
    )
    return jsonify({"order": order.to_dict(), "message": "Order placed successfully"}), 201


@orders_bp.get("")
@require_auth
@handle_errors("list orders")
def list_orders_route():
    """Clients see their own orders; admins see every order."""
    orders = orders_service.list_orders(g.principal)
    return jsonify({"orders": [o.to_dict() for o in orders], "count": len(orders)})


@orders_bp.get("/today-count")
@require_auth
@handle_errors("count today's orders")
def today_count_route():
    return jsonify({"count": orders_service.orders_today_count()})


@orders_bp.get("/today-revenue")
@require_auth
@handle_errors("sum today's revenue")
def today_revenue_route():
    """Revenue from SHIPPED/DELIVERED orders placed today (UTC)."""
    return jsonify({"revenue_cents": orders_service.revenue_today_cents()})


@orders_bp.get("/pending-count")
@require_auth
@require_role(ROLE_ADMIN)
@handle_errors("count pending orders")
def pending_count_route():
    return jsonify({"count": orders_service.pending_orders_count()})


@orders_bp.get("/<int:order_id>")
@require_auth
@handle_errors("get order")
def get_order_route(order_id: int):
    order = orders_service.get_order(g.principal, order_id)
    return jsonify({"order": order.to_dict()})


@orders_bp.put("/<int:order_id>")
@require_auth
@handle_errors("update order")
def update_order_route(order_id: int):
    """
    Patch status, client_name or client_address. Only admins may change
    status; line items cannot be edited.
    """
    data = request.get_json(silent=True) or {}
    order = orders_service.update_order(g.principal, order_id, data)
    return jsonify({"order": order.to_dict(), "message": "Order updated"})


@orders_bp.delete("/<int:order_id>")
@require_auth
@handle_errors("delete order")
def delete_order_route(order_id: int):
    orders_service.delete_order(g.principal, order_id)
    return jsonify({"message": "Order deleted"})
