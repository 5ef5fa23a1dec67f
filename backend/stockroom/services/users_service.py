# Overview: Admin user management.

from __future__ import annotations

from sqlalchemy import func

from ..errors import ForbiddenError, NotFoundError
from ..extensions import db
from ..models import User
from ..principal import ROLES, Principal
from ..validation import ValidationError
from .auth_service import (
    clean_image_url,
    clean_text,
    apply_notification_preferences,
    create_user,
    ensure_email_available,
    hash_password,
    normalize_email,
)
from .session_service import revoke_all_user_sessions

USER_UPDATE_FIELDS = {
    "name", "email", "password", "address", "role", "image_url",
    "is_active", "notification_preferences",
}


def _require_admin(principal: Principal) -> None:
    if not principal.is_admin:
        raise ForbiddenError("Administrator role required")


def list_users(principal: Principal) -> list[User]:
    _require_admin(principal)
    return db.session.query(User).order_by(User.created_at.desc(), User.id.desc()).all()


def get_user(principal: Principal, user_id: int) -> User:
    _require_admin(principal)
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found", {"user_id": user_id})
    return user


def count_users() -> int:
    return db.session.query(func.count(User.id)).scalar() or 0


def admin_create_user(principal: Principal, payload: dict) -> User:
    _require_admin(principal)
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    missing = [f for f in ("name", "email", "password", "role") if not payload.get(f)]
    if missing:
        raise ValidationError("Please enter all required fields: name, email, password, role")

    return create_user(
        payload["name"],
        payload["email"],
        payload["password"],
        role=payload["role"],
        address=payload.get("address"),
        image_url=payload.get("image_url"),
        notification_preferences=payload.get("notification_preferences"),
    )


def admin_update_user(principal: Principal, user_id: int, payload: dict) -> User:
    """
    Admin edit of any account. Admins cannot change their own role or
    deactivate themselves. A new password revokes the user's sessions.
    """
    user = get_user(principal, user_id)
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    unknown = sorted(set(payload) - USER_UPDATE_FIELDS)
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(unknown)}")

    if "role" in payload:
        role = payload["role"]
        if role not in ROLES:
            raise ValidationError(f"Invalid role: {role!r}", {"allowed": list(ROLES)})
        if user.id == principal.id and role != user.role:
            raise ForbiddenError("You cannot change your own role")
        user.role = role

    if "is_active" in payload:
        if not isinstance(payload["is_active"], bool):
            raise ValidationError("is_active must be a boolean")
        if user.id == principal.id and not payload["is_active"]:
            raise ForbiddenError("You cannot deactivate your own account")
        user.is_active = payload["is_active"]
        if not user.is_active:
            revoke_all_user_sessions(user.id, reason="Account deactivated", commit=False)

    if "name" in payload:
        user.name = clean_text(payload["name"], "name", 100, required=True)
    if "email" in payload:
        email = normalize_email(payload["email"])
        if email != user.email:
            ensure_email_available(email, exclude_user_id=user.id)
        user.email = email
    if "address" in payload:
        user.address = clean_text(payload["address"], "address", 200) or ""
    if "image_url" in payload:
        user.image_url = clean_image_url(payload["image_url"])
    if payload.get("password"):
        user.password_hash = hash_password(payload["password"])
        revoke_all_user_sessions(user.id, reason="Password reset by administrator", commit=False)
    apply_notification_preferences(user, payload.get("notification_preferences"))

    db.session.commit()
    return user


def admin_delete_user(principal: Principal, user_id: int) -> None:
    user = get_user(principal, user_id)
    if user.id == principal.id:
        raise ForbiddenError("You cannot delete your own account")
    revoke_all_user_sessions(user.id, reason="Account deleted", commit=False)
    db.session.delete(user)
    db.session.commit()
