"""Database package for marketplace services."""
from .connection import MongoStore, connect_with_retry
from .models import Customer, Product, Transaction, TransactionStatus
from .product_store import ProductStore
from .transaction_store import TransactionStore

__all__ = [
    "Customer",
    "MongoStore",
    "Product",
    "ProductStore",
    "Transaction",
    "TransactionStatus",
    "TransactionStore",
    "connect_with_retry",
]
