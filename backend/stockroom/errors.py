"""
Domain error taxonomy for stock-affecting operations.

Input problems are raised as validation.ValidationError / ConflictError.
Everything raised while touching stock derives from InventoryError so routes
can translate it to a JSON error body with one handler. The enclosing
transaction is always rolled back before these reach a caller.
"""

from __future__ import annotations


class InventoryError(Exception):
    """Base class for typed failures surfaced to API callers."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class NotFoundError(InventoryError):
    """Referenced product, bundle, order, category, supplier or user is missing."""
    status_code = 404


class ForbiddenError(InventoryError):
    """Principal lacks the role or ownership required for the operation."""
    status_code = 403


class InsufficientStockError(InventoryError):
    """A deduction would drive a product or bundle component below zero."""
    status_code = 409


class NotABundleError(InventoryError):
    """Component deduction/reversion was requested for a simple product."""
    status_code = 400


class PersistenceError(InventoryError):
    """The database transaction could not be committed."""
    status_code = 500
