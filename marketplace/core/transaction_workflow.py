"""
Transaction lifecycle orchestration.

Flow for create:
1. Compute the total from the cart snapshot
2. Initialize status and timestamps
3. Persist the transaction
4. Schedule the receipt render (fire-and-forget)
5. Return the stored transaction

Pay is a separate, single atomic status transition:

    awaiting payment -> paid

Re-paying a paid transaction is rejected.
"""
import asyncio
import time
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, List, Optional, Sequence, Set

import structlog

from marketplace.core.exceptions import (
    InvalidIdentifierError,
    NotFoundError,
    PersistenceError,
    RenderError,
    TransitionError,
)
from marketplace.core.receipt_renderer import ReceiptRenderer
from marketplace.database.models import (
    Customer,
    Product,
    Transaction,
    TransactionStatus,
    parse_object_id,
)
from marketplace.database.transaction_store import TransactionStore
from marketplace.monitoring.metrics import metrics

logger = structlog.get_logger(__name__)

CENT = Decimal("0.01")


def utcnow() -> datetime:
    """Current UTC time truncated to BSON's millisecond precision."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def calculate_total_price(items: Sequence[Product]) -> float:
    """
    Sum cart prices.

    Prices are added as decimals built from their shortest repr and the sum
    is rounded half-up to cents, so `[9.99, 5.00]` totals exactly `14.99`.
    """
    total = sum((Decimal(str(item.price)) for item in items), Decimal("0"))
    return float(total.quantize(CENT, rounding=ROUND_HALF_UP))


class TransactionWorkflow:
    """
    Create, list and pay transactions.

    Receipt emission is best-effort: it runs after a successful insert in a
    background task and its failure is logged and counted, never raised to
    the caller of `create`.
    """

    def __init__(
        self,
        store: TransactionStore,
        renderer: ReceiptRenderer,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the workflow.

        Args:
            store: Transaction store adapter
            renderer: Receipt renderer
            clock: Optional time source, defaults to `utcnow`
        """
        self.store = store
        self.renderer = renderer
        self.clock = clock or utcnow
        self._pending_receipts: Set["asyncio.Task[None]"] = set()

    async def create(self, cart_items: Sequence[Product], customer: Customer) -> Transaction:
        """
        Create and persist a transaction.

        Args:
            cart_items: Ordered cart snapshot (may be empty)
            customer: Customer snapshot to embed

        Returns:
            Transaction: The persisted transaction including its id

        Raises:
            PersistenceError: If the insert fails; no receipt is emitted
        """
        items = [Product(name=item.name, price=item.price) for item in cart_items]
        now = self.clock()
        transaction = Transaction(
            cart_items=items,
            customer=customer.model_copy(),
            status=TransactionStatus.AWAITING_PAYMENT,
            created_at=now,
            updated_at=now,
            total_price=calculate_total_price(items),
        )

        transaction = await self.store.insert(transaction)

        metrics.record_transaction_created(transaction.total_price)
        logger.info(
            "transaction_created",
            transaction_id=transaction.id,
            customer_id=customer.id,
            item_count=len(items),
            total_price=transaction.total_price,
        )

        self._schedule_receipt(transaction)
        return transaction

    async def list_by_customer(self, customer_id: str) -> List[Transaction]:
        """Return every transaction recorded for `customer_id`."""
        transactions = await self.store.find_by_customer(customer_id)
        logger.debug(
            "transactions_listed", customer_id=customer_id, count=len(transactions)
        )
        return transactions

    async def pay(self, transaction_id: str) -> Transaction:
        """
        Mark a transaction as paid.

        Args:
            transaction_id: Hex id of the transaction

        Returns:
            Transaction: The post-update transaction

        Raises:
            InvalidIdentifierError: If the id is malformed
            NotFoundError: If no transaction has this id
            TransitionError: If the transaction is already paid
            PersistenceError: If the store fails
        """
        object_id = parse_object_id(transaction_id)
        if object_id is None:
            metrics.record_transition_rejected("invalid_id")
            raise InvalidIdentifierError(
                f"Invalid transaction id: {transaction_id!r}", transaction_id=transaction_id
            )

        updated = await self.store.mark_paid(object_id, self.clock())
        if updated is not None:
            metrics.record_transaction_paid()
            logger.info("transaction_paid", transaction_id=transaction_id)
            return updated

        # Nothing matched the guarded update: tell missing from already paid.
        existing = await self.store.get(object_id)
        if existing is None:
            metrics.record_transition_rejected("not_found")
            logger.warning("transaction_pay_not_found", transaction_id=transaction_id)
            raise NotFoundError(
                f"Transaction {transaction_id} not found", transaction_id=transaction_id
            )

        metrics.record_transition_rejected("already_paid")
        logger.warning(
            "transaction_pay_rejected",
            transaction_id=transaction_id,
            status=existing.status.value,
        )
        raise TransitionError(
            f"Transaction {transaction_id} is already {existing.status.value}",
            transaction_id=transaction_id,
        )

    def _schedule_receipt(self, transaction: Transaction) -> None:
        if transaction.id is None:
            raise PersistenceError("Stored transaction has no id")
        task = asyncio.create_task(self._emit_receipt(transaction.id, transaction))
        self._pending_receipts.add(task)
        task.add_done_callback(self._pending_receipts.discard)

    async def _emit_receipt(self, transaction_id: str, transaction: Transaction) -> None:
        started_at = time.time()
        try:
            path = await asyncio.to_thread(
                self.renderer.render,
                transaction.cart_items,
                transaction.total_price,
                len(transaction.cart_items),
                transaction_id,
            )
        except RenderError as e:
            metrics.record_receipt("failed", time.time() - started_at)
            logger.error(
                "receipt_render_failed",
                transaction_id=transaction_id,
                error=str(e),
            )
            return
        except Exception as e:
            metrics.record_receipt("failed", time.time() - started_at)
            logger.error(
                "receipt_render_failed",
                transaction_id=transaction_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return

        metrics.record_receipt("success", time.time() - started_at)
        logger.debug("receipt_emitted", transaction_id=transaction_id, path=str(path))

    @property
    def pending_receipts(self) -> int:
        """Number of receipt renders still running."""
        return len(self._pending_receipts)

    async def drain(self) -> None:
        """Wait for every scheduled receipt render to finish."""
        if self._pending_receipts:
            await asyncio.gather(*list(self._pending_receipts), return_exceptions=True)
