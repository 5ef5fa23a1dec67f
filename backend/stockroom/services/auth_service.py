# Overview: Accounts, credentials and self-service profile operations.

"""
Authentication service.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost from BCRYPT_LOG_ROUNDS, default 12)
- Minimum 8 characters, at least one digit and one of !@#$%^&*
- Session tokens are managed separately (see session_service.py)
- Self-registration always yields a client account; admins are created by
  other admins or by the `flask users create` command
"""

import re

import bcrypt
from flask import current_app, has_app_context

from ..extensions import db
from ..models import User
from ..principal import ROLE_CLIENT, ROLES
from ..validation import ConflictError, ValidationError
from stockroom.time_utils import utcnow
from .session_service import revoke_all_user_sessions

PASSWORD_POLICY_MESSAGE = (
    "Password must be at least 8 characters long, contain at least one number, "
    "and at least one symbol (!@#$%^&*)."
)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_IMAGE_URL_RE = re.compile(r"^https?://.+")


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


def validate_password_strength(password: str) -> None:
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError(PASSWORD_POLICY_MESSAGE)
    if not re.search(r"\d", password):
        raise PasswordValidationError(PASSWORD_POLICY_MESSAGE)
    if not re.search(r"[!@#$%^&*]", password):
        raise PasswordValidationError(PASSWORD_POLICY_MESSAGE)


def _bcrypt_rounds() -> int:
    if has_app_context():
        return int(current_app.config.get("BCRYPT_LOG_ROUNDS", 12))
    return 12


def hash_password(password: str) -> str:
    """Validate strength, then bcrypt-hash."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=_bcrypt_rounds())
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed stored hash
        return False


def normalize_email(value) -> str:
    if not isinstance(value, str):
        raise ValidationError("email is required")
    email = value.strip().lower()
    if not _EMAIL_RE.match(email) or len(email) > 255:
        raise ValidationError("Please enter a valid email", {"email": value})
    return email


def clean_text(value, field: str, max_length: int, *, required: bool = False) -> str | None:
    if value is None:
        if required:
            raise ValidationError(f"{field} is required")
        return None
    text = str(value).strip()
    if required and not text:
        raise ValidationError(f"{field} cannot be blank")
    if len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text


def clean_image_url(value) -> str | None:
    url = clean_text(value, "image_url", 500)
    if url and not _IMAGE_URL_RE.match(url):
        raise ValidationError("Please provide a valid image URL")
    return url or None


def ensure_email_available(email: str, exclude_user_id: int | None = None) -> None:
    query = db.session.query(User).filter(User.email == email)
    if exclude_user_id is not None:
        query = query.filter(User.id != exclude_user_id)
    if query.first():
        raise ConflictError("User with this email already exists")


def apply_notification_preferences(user: User, prefs) -> None:
    if prefs is None:
        return
    if not isinstance(prefs, dict):
        raise ValidationError("notification_preferences must be an object")

    if "receive_low_stock_alerts" in prefs:
        flag = prefs["receive_low_stock_alerts"]
        if not isinstance(flag, bool):
            raise ValidationError("receive_low_stock_alerts must be a boolean")
        user.receive_low_stock_alerts = flag

    if "low_stock_alert_email" in prefs:
        raw = prefs["low_stock_alert_email"]
        user.low_stock_alert_email = normalize_email(raw) if raw else None

    if user.receive_low_stock_alerts and not _EMAIL_RE.match(user.alert_email or ""):
        raise ValidationError("Please provide a valid email for low stock alerts if enabled")


def create_user(
    name: str,
    email: str,
    password: str,
    *,
    role: str = ROLE_CLIENT,
    address: str | None = None,
    image_url: str | None = None,
    notification_preferences: dict | None = None,
    commit: bool = True,
) -> User:
    """
    Create a user with a bcrypt password hash.

    Raises:
        ValidationError / PasswordValidationError: bad input
        ConflictError: email already registered
    """
    if role not in ROLES:
        raise ValidationError(f"Invalid role: {role!r}", {"allowed": list(ROLES)})

    email = normalize_email(email)
    ensure_email_available(email)

    user = User(
        name=clean_text(name, "name", 100, required=True),
        email=email,
        address=clean_text(address, "address", 200) or "",
        image_url=clean_image_url(image_url),
        password_hash=hash_password(password),
        role=role,
        receive_low_stock_alerts=False,
        is_active=True,
    )
    apply_notification_preferences(user, notification_preferences)

    db.session.add(user)
    if commit:
        db.session.commit()
    else:
        db.session.flush()
    return user


def register_user(payload: dict) -> User:
    """Self-registration. Any requested role is ignored."""
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    missing = [f for f in ("name", "email", "password") if not payload.get(f)]
    if missing:
        raise ValidationError("Please enter all required fields: name, email, and password")

    return create_user(
        payload["name"],
        payload["email"],
        payload["password"],
        role=ROLE_CLIENT,
        address=payload.get("address"),
        image_url=payload.get("image_url"),
    )


def authenticate(email: str, password: str) -> User | None:
    """
    Returns the active User for valid credentials, else None.
    Updates last_login_at on success.
    """
    if not email or not password:
        return None

    user = db.session.query(User).filter(
        User.email == str(email).strip().lower(),
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None


def update_profile(user: User, payload: dict) -> User:
    """Self-service edit of name, email, address, image_url and alert preferences."""
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    allowed = {"name", "email", "address", "image_url", "notification_preferences"}
    unknown = sorted(set(payload) - allowed)
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(unknown)}")

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
    apply_notification_preferences(user, payload.get("notification_preferences"))

    db.session.commit()
    return user


def change_password(user: User, current_password: str, new_password: str, confirm_new_password: str) -> None:
    """
    Replace a user's password and revoke every existing session.

    Raises:
        ValidationError: missing fields or mismatched confirmation
        PasswordValidationError: new password too weak
        PermissionError: current password is wrong
    """
    if not current_password or not new_password or not confirm_new_password:
        raise ValidationError("Please provide current password, new password, and confirm new password")
    if new_password != confirm_new_password:
        raise ValidationError("New passwords do not match")
    validate_password_strength(new_password)

    if not verify_password(current_password, user.password_hash):
        raise PermissionError("Invalid current password")

    user.password_hash = hash_password(new_password)
    revoke_all_user_sessions(user.id, reason="Password changed", commit=False)
    db.session.commit()
