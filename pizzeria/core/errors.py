"""
Application Error Taxonomy

Every failure a request handler can report maps to one of these classes.
The exception handlers in ``pizzeria.main`` turn them into the standard
failure envelope ``{"success": false, "message": ...}`` with the class's
HTTP status code.
"""

from typing import Optional


class ApiError(Exception):
    """Base class for errors that are reported to the API caller."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"success": False, "message": self.message}


class ValidationError(ApiError):
    """Missing or malformed required field."""
    status_code = 400
    default_message = "Invalid request"


class ProductUnavailable(ValidationError):
    """Referenced product does not exist or is switched off."""
    default_message = "Product not found or unavailable"


class SizeUnavailable(ValidationError):
    """Requested size is not offered for the product."""
    default_message = "Size not available"


class AuthenticationError(ApiError):
    """Missing, invalid or expired credentials."""
    status_code = 401
    default_message = "Authentication required"


class AuthorizationError(ApiError):
    """Authenticated, but lacking the required capability."""
    status_code = 403
    default_message = "Permission denied"


class NotFoundError(ApiError):
    status_code = 404
    default_message = "Resource not found"


class ConflictError(ApiError):
    """Duplicate value for a unique field."""
    status_code = 400
    default_message = "Resource already exists"


class InvalidOrderState(ApiError):
    """Change attempted on an order whose status does not allow it."""
    status_code = 400
    default_message = "Order cannot be changed in its current status"


class InternalError(ApiError):
    status_code = 500
    default_message = "Internal server error"
