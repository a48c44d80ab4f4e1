"""Transaction store adapter over the `transactions` collection."""
import time
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import structlog
from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from marketplace.core.exceptions import PersistenceError
from marketplace.database.connection import MongoStore
from marketplace.database.models import Transaction, TransactionStatus
from marketplace.monitoring.metrics import metrics

logger = structlog.get_logger(__name__)

# BSON datetimes have millisecond precision
MIN_UPDATE_STEP = timedelta(milliseconds=1)


class TransactionStore:
    """
    Persistence for transactions.

    `mark_paid` is the only mutation after insert. Its write is a single
    guarded `find_one_and_update`, so concurrent pay calls on one id cannot
    both succeed.
    """

    def __init__(self, store: MongoStore):
        self.collection = store.transactions

    def _fail(self, operation: str, error: PyMongoError, **context: Any) -> PersistenceError:
        metrics.record_store_error(operation)
        logger.error("transaction_store_error", operation=operation, error=str(error), **context)
        return PersistenceError(
            f"Transaction store operation {operation} failed: {error}",
            operation=operation,
            original_error=error,
        )

    async def insert(self, transaction: Transaction) -> Transaction:
        """
        Insert a transaction.

        Args:
            transaction: Transaction without an id

        Returns:
            Transaction: The same transaction with its store-assigned id

        Raises:
            PersistenceError: If the insert fails
        """
        started_at = time.time()
        try:
            result = await self.collection.insert_one(transaction.to_document())
        except PyMongoError as e:
            raise self._fail("transactions.insert_one", e) from e
        finally:
            metrics.record_store_operation("transactions.insert_one", started_at)

        return transaction.model_copy(update={"id": str(result.inserted_id)})

    async def find_by_customer(self, customer_id: str) -> List[Transaction]:
        """
        Return the transactions whose embedded customer id equals `customer_id`.

        Order is whatever the store yields.
        """
        started_at = time.time()
        try:
            cursor = self.collection.find({"customer.id": customer_id})
            documents = await cursor.to_list(length=None)
        except PyMongoError as e:
            raise self._fail("transactions.find", e, customer_id=customer_id) from e
        finally:
            metrics.record_store_operation("transactions.find", started_at)

        return [Transaction.from_document(document) for document in documents]

    async def get(self, transaction_id: ObjectId) -> Optional[Transaction]:
        """Fetch one transaction by id, or None."""
        started_at = time.time()
        try:
            document = await self.collection.find_one({"_id": transaction_id})
        except PyMongoError as e:
            raise self._fail("transactions.find_one", e, transaction_id=str(transaction_id)) from e
        finally:
            metrics.record_store_operation("transactions.find_one", started_at)

        if document is None:
            return None
        return Transaction.from_document(document)

    async def mark_paid(
        self, transaction_id: ObjectId, now: datetime
    ) -> Optional[Transaction]:
        """
        Atomically move an awaiting-payment transaction to paid.

        The new `updatedAt` is `max(now, previous + 1ms)`. The update filter
        pins the previous value, so the write only lands on the exact
        document that was read and a concurrent pay cannot win twice.

        Args:
            transaction_id: Target transaction id
            now: Current time from the workflow clock

        Returns:
            Optional[Transaction]: Post-update transaction, or None when no
            awaiting-payment transaction has this id
        """
        query: Dict[str, Any] = {
            "_id": transaction_id,
            "status": TransactionStatus.AWAITING_PAYMENT.value,
        }

        started_at = time.time()
        try:
            current = await self.collection.find_one(query)
            if current is None:
                return None

            previous = Transaction.from_document(current).updated_at
            query["updatedAt"] = current["updatedAt"]
            update = {
                "$set": {
                    "status": TransactionStatus.PAID.value,
                    "updatedAt": max(now, previous + MIN_UPDATE_STEP),
                }
            }
            document = await self.collection.find_one_and_update(
                query, update, return_document=ReturnDocument.AFTER
            )
        except PyMongoError as e:
            raise self._fail(
                "transactions.find_one_and_update", e, transaction_id=str(transaction_id)
            ) from e
        finally:
            metrics.record_store_operation("transactions.find_one_and_update", started_at)

        if document is None:
            return None
        return Transaction.from_document(document)
