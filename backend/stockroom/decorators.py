# Overview: Request decorators for API routes: authentication, role checks and error translation.

from functools import wraps
from flask import request, jsonify, g, current_app

from .errors import InventoryError
from .extensions import db
from .services import session_service
from .services.mail_service import MailDeliveryError
from .validation import ValidationError, ConflictError


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user') and hasattr(g, 'principal')


def require_auth(f):
    """
    Require a valid bearer token.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.principal: Principal(id, role) passed into service calls
    - g.session_context: The full SessionContext object

    Returns 401 if the header is missing, the token is unknown, expired,
    idle or revoked, or the account is deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1].strip()
        context = session_service.validate_session(token)

        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.principal = context.principal
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """Require one of the given roles. Must be stacked under @require_auth."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            if g.principal.role not in roles:
                return jsonify({
                    "error": "Permission denied",
                    "required_role": list(roles),
                    "message": f"Role '{g.principal.role}' is not authorized to access this route",
                }), 403

            return f(*args, **kwargs)
        return decorated_function
    return decorator


def error_response(e: Exception):
    """Translate a typed service error into a JSON (body, status) pair."""
    if isinstance(e, ConflictError):
        status = 409
    elif isinstance(e, ValidationError):
        status = 400
    elif isinstance(e, InventoryError):
        return e.to_dict(), e.status_code
    elif isinstance(e, MailDeliveryError):
        status = 502
    else:
        raise TypeError(f"Unsupported error type: {type(e).__name__}")

    body = {"error": str(e)}
    if getattr(e, "details", None):
        body["details"] = e.details
    return body, status


def handle_errors(action: str):
    """
    Wrap a route so domain errors become JSON responses and anything
    unexpected is logged as "Failed to <action>" and returned as a 500.
    The session is rolled back on every failure.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except (ValidationError, InventoryError, MailDeliveryError) as e:
                db.session.rollback()
                return error_response(e)
            except Exception:
                db.session.rollback()
                current_app.logger.exception("Failed to %s", action)
                return jsonify({"error": "Internal server error"}), 500
        return decorated_function
    return decorator
