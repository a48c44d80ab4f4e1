"""Catalog service: pass-through list and create over the product store."""
from typing import List

import structlog

from marketplace.database.models import Product
from marketplace.database.product_store import ProductStore
from marketplace.monitoring.metrics import metrics

logger = structlog.get_logger(__name__)


class CatalogService:
    """
    Product catalog operations.

    No deduplication and no price validation: a negative price is stored
    as given.
    """

    def __init__(self, store: ProductStore):
        self.store = store

    async def list(self) -> List[Product]:
        """Return the whole catalog."""
        return await self.store.list_all()

    async def create(self, product: Product) -> Product:
        """Insert a product and return it with its id."""
        created = await self.store.insert(product.model_copy(update={"id": None}))
        metrics.record_product_created()
        logger.info(
            "product_created", product_id=created.id, name=created.name, price=created.price
        )
        return created
