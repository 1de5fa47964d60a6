"""
Storefront - Custom Exceptions
================================
Business-level exceptions that are converted to HTTP responses
by the handlers registered in main.py.
"""

from typing import List, Optional


class StorefrontError(Exception):
    """Base exception for all business logic errors."""
    status_code = 400

    def __init__(self, message: str = "Something went wrong", details: Optional[List[str]] = None):
        self.message = message
        self.details = details
        super().__init__(self.message)


class InvalidInputError(StorefrontError):
    """Malformed id, bad enum value, non-positive quantity, unavailable product."""
    status_code = 400


class AuthenticationError(StorefrontError):
    """Raised when authentication fails."""
    status_code = 401


class AuthorizationError(StorefrontError):
    """Raised when user lacks permission (e.g. not the resource owner)."""
    status_code = 403


class NotFoundError(StorefrontError):
    """Raised when a requested resource doesn't exist."""
    status_code = 404


class DuplicateError(StorefrontError):
    """Raised for unique constraint violations at the business level."""
    status_code = 400


class InsufficientStockError(StorefrontError):
    """Raised when a single add/update would exceed the product's stock."""
    status_code = 400

    def __init__(self, message: str, available: int = 0):
        self.available = available
        super().__init__(message)


class CartItemsUnavailableError(StorefrontError):
    """Raised at checkout with one message per offending cart line."""
    status_code = 400

    def __init__(self, details: List[str]):
        super().__init__("Some items in your cart are no longer available", details=list(details))


class EmptyCartError(StorefrontError):
    status_code = 400

    def __init__(self):
        super().__init__("Cart is empty. Add items to cart before checkout.")


class InvalidTransitionError(StorefrontError):
    """Raised when changing the status of a cancelled order."""
    status_code = 400


class ImmutableFieldError(StorefrontError):
    """Raised when code tries to rewrite a write-once order field."""
    status_code = 500
