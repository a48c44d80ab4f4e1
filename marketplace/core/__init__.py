"""Core marketplace logic."""
from .exceptions import (
    InvalidIdentifierError,
    MarketplaceError,
    NotFoundError,
    PersistenceError,
    RenderError,
    StoreUnavailableError,
    TransitionError,
    ValidationError,
)

__all__ = [
    "InvalidIdentifierError",
    "MarketplaceError",
    "NotFoundError",
    "PersistenceError",
    "RenderError",
    "StoreUnavailableError",
    "TransitionError",
    "ValidationError",
]
