"""
Error taxonomy for the marketplace services.

Every error carries the HTTP status the API layer answers with and renders
to the `{"error": "..."}` body both services return on failure.
"""
from typing import Any, Dict, Optional


class MarketplaceError(Exception):
    """Base exception for all marketplace errors."""

    http_status: int = 500

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for API responses."""
        return {"error": self.message}


class ValidationError(MarketplaceError):
    """Raised when a request body or argument has the wrong shape."""

    http_status = 400


class PersistenceError(MarketplaceError):
    """Raised when a document store operation fails."""

    http_status = 500

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None,
        **context: Any,
    ):
        super().__init__(message, operation=operation, **context)
        self.operation = operation
        self.original_error = original_error


class StoreUnavailableError(PersistenceError):
    """Raised when the store cannot be reached at startup."""

    pass


class NotFoundError(MarketplaceError):
    """Raised when a referenced record does not exist."""

    http_status = 404


class InvalidIdentifierError(NotFoundError):
    """Raised when an identifier is not a valid store identity."""

    http_status = 400


class TransitionError(MarketplaceError):
    """Raised when a status transition is not allowed from the current state."""

    http_status = 409


class RenderError(MarketplaceError):
    """Raised when a receipt cannot be rendered or written."""

    pass
