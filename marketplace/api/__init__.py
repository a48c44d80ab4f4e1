"""FastAPI applications and routes."""
from .main import create_app, create_catalog_app, create_transactions_app
from .schemas import (
    CreateTransactionRequest,
    ErrorResponse,
    PaymentFormRequest,
    PaymentResponse,
    ProductRequest,
)

__all__ = [
    "create_app",
    "create_catalog_app",
    "create_transactions_app",
    "CreateTransactionRequest",
    "ErrorResponse",
    "PaymentFormRequest",
    "PaymentResponse",
    "ProductRequest",
]
