# backend/stockroom/config.py
from __future__ import annotations
import os

from flask import current_app, has_app_context


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


# Global low-stock cutoff. Category rows default to global_default_threshold()
# and the low-stock evaluator falls back to it when neither the product nor its
# category carries a threshold.
DEFAULT_LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_DEFAULT_THRESHOLD", "100"))


def global_default_threshold() -> int:
    """The configured global cutoff, or the module constant outside an app."""
    if has_app_context():
        return int(current_app.config.get("LOW_STOCK_DEFAULT_THRESHOLD", DEFAULT_LOW_STOCK_THRESHOLD))
    return DEFAULT_LOW_STOCK_THRESHOLD


# Bundles sell at the summed component price minus this percentage.
DEFAULT_BUNDLE_DISCOUNT_PERCENT = int(os.environ.get("BUNDLE_DISCOUNT_PERCENT", "10"))


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/stockroom.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///stockroom.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    BCRYPT_LOG_ROUNDS = int(os.environ.get("BCRYPT_LOG_ROUNDS", "12"))

    LOW_STOCK_DEFAULT_THRESHOLD = DEFAULT_LOW_STOCK_THRESHOLD
    BUNDLE_DISCOUNT_PERCENT = DEFAULT_BUNDLE_DISCOUNT_PERCENT

    # Outbound mail for low-stock alerts
    MAIL_SERVER = os.environ.get("MAIL_SERVER", "localhost")
    MAIL_PORT = int(os.environ.get("MAIL_PORT", "25"))
    MAIL_USE_TLS = _env_bool("MAIL_USE_TLS", False)
    MAIL_USE_SSL = _env_bool("MAIL_USE_SSL", False)
    MAIL_USERNAME = os.environ.get("MAIL_USERNAME")
    MAIL_PASSWORD = os.environ.get("MAIL_PASSWORD")
    MAIL_DEFAULT_SENDER = os.environ.get("MAIL_DEFAULT_SENDER", "stockroom@localhost")
    MAIL_TIMEOUT_SECONDS = float(os.environ.get("MAIL_TIMEOUT_SECONDS", "10"))
    # When set, messages are recorded on the mailer outbox instead of sent.
    MAIL_SUPPRESS_SEND = _env_bool("MAIL_SUPPRESS_SEND", False)

    CORS_ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.environ.get("CORS_ALLOWED_ORIGINS", "http://localhost:3000").split(",")
        if origin.strip()
    ]
