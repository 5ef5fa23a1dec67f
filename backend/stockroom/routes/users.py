# Overview: Flask API routes for admin user management; parses input and returns JSON responses.

# backend/stockroom/routes/users.py
"""
Admin routes for user management.

All endpoints require an authenticated administrator.
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_role, handle_errors
from ..principal import ROLE_ADMIN
from ..services import users_service

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_role(ROLE_ADMIN)
@handle_errors("list users")
def list_users_route():
    users = users_service.list_users(g.principal)
    return jsonify({"users": [u.to_dict() for u in users], "count": len(users)})


@users_bp.get("/count")
@require_auth
@require_role(ROLE_ADMIN)
@handle_errors("count users")
def count_users_route():
    return jsonify({"count": users_service.count_users()})


@users_bp.get("/<int:user_id>")
@require_auth
@require_role(ROLE_ADMIN)
@handle_errors("get user")
def get_user_route(user_id: int):
    user = users_service.get_user(g.principal, user_id)
    return jsonify({"user": user.to_dict()})


@users_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
@handle_errors("create user")
def create_user_route():
    """
    Create a user with an explicit role.

    Request body:
    {
        "name": "Jane Doe",
        "email": "jane@example.com",
        "password": "Secur3!pass",
        "role": "admin" | "client",
        "address": "optional",
        "image_url": "optional",
        "notification_preferences": {"receive_low_stock_alerts": true}
    }
    """
    data = request.get_json(silent=True)
    user = users_service.admin_create_user(g.principal, data)
    return jsonify({"user": user.to_dict(), "message": "User created"}), 201


@users_bp.put("/<int:user_id>")
@require_auth
@require_role(ROLE_ADMIN)
@handle_errors("update user")
def update_user_route(user_id: int):
    data = request.get_json(silent=True)
    user = users_service.admin_update_user(g.principal, user_id, data)
    return jsonify({"user": user.to_dict(), "message": "User updated"})


@users_bp.delete("/<int:user_id>")
@require_auth
@require_role(ROLE_ADMIN)
@handle_errors("delete user")
def delete_user_route(user_id: int):
    users_service.admin_delete_user(g.principal, user_id)
    return jsonify({"message": "User deleted"})
