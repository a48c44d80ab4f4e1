"""Catalog store adapter over the `products` collection."""
import time
from typing import List

import structlog
from pymongo.errors import PyMongoError

from marketplace.core.exceptions import PersistenceError
from marketplace.database.connection import MongoStore
from marketplace.database.models import Product
from marketplace.monitoring.metrics import metrics

logger = structlog.get_logger(__name__)


class ProductStore:
    """List and insert catalog products."""

    def __init__(self, store: MongoStore):
        self.collection = store.products

    async def list_all(self) -> List[Product]:
        """
        Return every product in the catalog.

        Raises:
            PersistenceError: If the query fails
        """
        started_at = time.time()
        try:
            cursor = self.collection.find({})
            documents = await cursor.to_list(length=None)
        except PyMongoError as e:
            metrics.record_store_error("products.find")
            logger.error("product_list_failed", error=str(e))
            raise PersistenceError(
                f"Failed to list products: {e}", operation="products.find", original_error=e
            ) from e
        finally:
            metrics.record_store_operation("products.find", started_at)

        return [Product.from_document(document) for document in documents]

    async def insert(self, product: Product) -> Product:
        """
        Insert a product and return it with its new id.

        Raises:
            PersistenceError: If the insert fails
        """
        started_at = time.time()
        try:
            result = await self.collection.insert_one(product.to_document())
        except PyMongoError as e:
            metrics.record_store_error("products.insert_one")
            logger.error("product_insert_failed", name=product.name, error=str(e))
            raise PersistenceError(
                f"Failed to insert product: {e}",
                operation="products.insert_one",
                original_error=e,
            ) from e
        finally:
            metrics.record_store_operation("products.insert_one", started_at)

        return product.model_copy(update={"id": str(result.inserted_id)})
