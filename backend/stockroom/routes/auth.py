# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/stockroom/routes/auth.py
"""
Authentication API routes

- Self-registration always creates a client account
- Login returns an opaque bearer token
- Password changes revoke every session of the user
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..decorators import require_auth, handle_errors


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _issue_session(user):
    session, token = session_service.create_session(
        user_id=user.id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )
    return {
        "user": user.to_dict(),
        "token": token,
        "session": session.to_dict(),
    }


@auth_bp.post("/register")
@handle_errors("register user")
def register_route():
    """Create a client account and log it in."""
    data = request.get_json(silent=True)
    user = auth_service.register_user(data)
    current_app.logger.info("Registered user id=%s", user.id)

    body = _issue_session(user)
    body["message"] = "Registration successful"
    return jsonify(body), 201


@auth_bp.post("/login")
@handle_errors("login user")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in Authorization header for protected routes.
    """
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")

    if not all([email, password]):
        return jsonify({"error": "email and password required"}), 400

    user = auth_service.authenticate(email, password)
    if not user:
        return jsonify({"error": "Invalid credentials"}), 401

    body = _issue_session(user)
    body["message"] = "Login successful"
    return jsonify(body), 200


@auth_bp.post("/logout")
@require_auth
@handle_errors("logout user")
def logout_route():
    token = request.headers["Authorization"].split(" ", 1)[1].strip()
    session_service.revoke_session(token)
    return jsonify({"message": "Logout successful"}), 200


@auth_bp.get("/profile")
@require_auth
def get_profile_route():
    return jsonify({"user": g.current_user.to_dict()}), 200


@auth_bp.put("/profile")
@require_auth
@handle_errors("update profile")
def update_profile_route():
    data = request.get_json(silent=True)
    user = auth_service.update_profile(g.current_user, data)
    return jsonify({"user": user.to_dict(), "message": "Profile updated"}), 200


@auth_bp.put("/password")
@require_auth
@handle_errors("change password")
def change_password_route():
    """
    Change the caller's password. Every session, including the current one,
    is revoked; the client must log in again.
    """
    data = request.get_json(silent=True) or {}
    try:
        auth_service.change_password(
            g.current_user,
            data.get("current_password"),
            data.get("new_password"),
            data.get("confirm_new_password"),
        )
    except PermissionError as e:
        return jsonify({"error": str(e)}), 401

    return jsonify({"message": "Password changed. Please log in again."}), 200
