"""
Ordering Error Taxonomy

Every failure the order core reports to a caller is one of these classes.
Each carries a stable machine-readable ``code`` and the HTTP status the API
layer answers with, so the UI can render the right message.

Version: 1.0.0
"""

from typing import Optional


class OrderingError(Exception):
    """Base class for errors surfaced to callers of the order core."""

    code: str = "INTERNAL"
    status_code: int = 500
    default_message: str = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert to the API error body."""
        return {
            "success": False,
            "error": self.code,
            "detail": self.message,
        }


class Unauthorized(OrderingError):
    """No session, or the session does not resolve to a user."""
    code = "UNAUTHORIZED"
    status_code = 401
    default_message = "You must be logged in"


class Forbidden(OrderingError):
    """Authenticated, but not entitled (wrong role or wrong restaurant)."""
    code = "FORBIDDEN"
    status_code = 403
    default_message = "You are not authorized to perform this action"


class NotFound(OrderingError):
    """A referenced restaurant, order, menu item or user does not exist."""
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Resource not found"


class ValidationError(OrderingError):
    """Malformed input, e.g. a cancellation without a reason."""
    code = "VALIDATION_ERROR"
    status_code = 422
    default_message = "Invalid input"


class InvalidStateTransition(OrderingError):
    """Attempted mutation of a terminal order or a disallowed transition."""
    code = "INVALID_STATE_TRANSITION"
    status_code = 409
    default_message = "This order cannot be moved to the requested status"


class ResourceExhausted(OrderingError):
    """No free order number was found within the retry budget."""
    code = "RESOURCE_EXHAUSTED"
    status_code = 503
    default_message = "Failed to generate a unique order number, please try again"


class Internal(OrderingError):
    """Unexpected persistence failure."""
    code = "INTERNAL"
    status_code = 500
