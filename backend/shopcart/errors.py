# Overview: Business error taxonomy shared by services and API routes.

"""
Errors raised by the service layer.

Services raise; routes turn a ShopError into a {success, message, data}
envelope using the error's code and status_code. Anything that is not a
ShopError is a programming defect and surfaces as a 500.
"""

from __future__ import annotations


class ShopError(Exception):
    """Base class for recoverable business-rule violations."""
    code = "BUSINESS_ERROR"
    status_code = 200

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "success": False,
            "message": self.message,
            "code": self.code,
            "data": self.details or None,
        }


class NotFoundError(ShopError):
    """Product, order, cart item or user does not exist (or is not yours)."""
    code = "NOT_FOUND"
    status_code = 404


class InsufficientStockError(ShopError):
    code = "INSUFFICIENT_STOCK"


class EmptyCartError(ShopError):
    code = "CART_EMPTY"


class InvalidStateTransitionError(ShopError):
    code = "INVALID_STATE"


class DuplicateIdentityError(ShopError):
    """Username or email already registered."""
    code = "DUPLICATE_IDENTITY"


class UnauthenticatedError(ShopError):
    code = "UNAUTHENTICATED"
    status_code = 401


class ValidationError(ShopError, ValueError):
    """400-level input problem."""
    code = "VALIDATION_ERROR"
    status_code = 400
