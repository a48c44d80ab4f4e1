"""
Unit tests for the transaction workflow.
"""
import asyncio
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId

from marketplace.core.exceptions import (
    InvalidIdentifierError,
    NotFoundError,
    PersistenceError,
    RenderError,
    TransitionError,
)
from marketplace.core.receipt_renderer import ReceiptRenderer
from marketplace.core.transaction_workflow import (
    TransactionWorkflow,
    calculate_total_price,
    utcnow,
)
from marketplace.database.models import Customer, Product, TransactionStatus
from marketplace.database.transaction_store import TransactionStore


class TestCalculateTotalPrice:
    """Test suite for cart totals."""

    @pytest.mark.unit
    def test_sums_widget_and_gadget_exactly(self, sample_cart: list[Product]) -> None:
        assert calculate_total_price(sample_cart) == 14.99

    @pytest.mark.unit
    def test_empty_cart_totals_zero(self) -> None:
        assert calculate_total_price([]) == 0.0

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "prices",
        [
            [0.1, 0.2],
            [19.99, 0.01, 100.0],
            [1.1] * 30,
            [3.33, 3.33, 3.34],
        ],
    )
    def test_matches_float_sum_within_a_cent(self, prices: list[float]) -> None:
        items = [Product(name=f"item-{i}", price=p) for i, p in enumerate(prices)]
        assert calculate_total_price(items) == pytest.approx(sum(prices), abs=0.005)

    @pytest.mark.unit
    def test_rounds_half_up_to_cents(self) -> None:
        items = [Product(name="a", price=0.125), Product(name="b", price=1.0)]
        assert calculate_total_price(items) == 1.13

    @pytest.mark.unit
    def test_negative_prices_are_summed(self) -> None:
        items = [Product(name="refund", price=-5.0), Product(name="item", price=7.5)]
        assert calculate_total_price(items) == 2.5


class TestTransactionWorkflowCreate:
    """Test suite for TransactionWorkflow.create."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_create_sets_derived_fields(
        self,
        workflow: TransactionWorkflow,
        sample_cart: list[Product],
        sample_customer: Customer,
    ) -> None:
        transaction = await workflow.create(sample_cart, sample_customer)

        assert ObjectId.is_valid(transaction.id)
        assert transaction.total_price == 14.99
        assert transaction.status == TransactionStatus.AWAITING_PAYMENT
        assert transaction.created_at == transaction.updated_at
        assert [item.name for item in transaction.cart_items] == ["Widget", "Gadget"]
        assert transaction.customer == sample_customer

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_create_accepts_empty_cart(
        self, workflow: TransactionWorkflow, sample_customer: Customer
    ) -> None:
        transaction = await workflow.create([], sample_customer)

        assert transaction.total_price == 0.0
        assert transaction.cart_items == []
        assert transaction.status == TransactionStatus.AWAITING_PAYMENT

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_create_snapshots_customer(
        self,
        workflow: TransactionWorkflow,
        sample_cart: list[Product],
        sample_customer: Customer,
    ) -> None:
        transaction = await workflow.create(sample_cart, sample_customer)
        sample_customer.email = "changed@x.com"

        [stored] = await workflow.list_by_customer("c1")
        assert stored.customer.email == "a@x.com"
        assert transaction.customer.email == "a@x.com"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_create_emits_receipt_named_by_id(
        self,
        workflow: TransactionWorkflow,
        renderer: ReceiptRenderer,
        sample_cart: list[Product],
        sample_customer: Customer,
    ) -> None:
        transaction = await workflow.create(sample_cart, sample_customer)
        await workflow.drain()

        path = renderer.receipt_path(transaction.id)
        assert path.exists()
        assert path.read_bytes().startswith(b"%PDF")
        assert workflow.pending_receipts == 0

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_store_failure_raises_and_skips_receipt(
        self,
        clock: Any,
        sample_cart: list[Product],
        sample_customer: Customer,
    ) -> None:
        store = AsyncMock(spec=TransactionStore)
        store.insert.side_effect = PersistenceError("insert failed", operation="insert_one")
        renderer = MagicMock(spec=ReceiptRenderer)

        workflow = TransactionWorkflow(store, renderer, clock=clock)

        with pytest.raises(PersistenceError, match="insert failed"):
            await workflow.create(sample_cart, sample_customer)

        await workflow.drain()
        renderer.render.assert_not_called()
        assert workflow.pending_receipts == 0

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_render_failure_does_not_fail_create(
        self,
        transaction_store: TransactionStore,
        clock: Any,
        sample_cart: list[Product],
        sample_customer: Customer,
        mocker: Any,
    ) -> None:
        mock_logger = mocker.patch("marketplace.core.transaction_workflow.logger")
        renderer = MagicMock(spec=ReceiptRenderer)
        renderer.render.side_effect = RenderError("disk full")

        workflow = TransactionWorkflow(transaction_store, renderer, clock=clock)
        transaction = await workflow.create(sample_cart, sample_customer)
        await workflow.drain()

        assert transaction.id is not None
        renderer.render.assert_called_once_with(
            transaction.cart_items, 14.99, 2, transaction.id
        )
        [stored] = await workflow.list_by_customer("c1")
        assert stored.id == transaction.id
        mock_logger.error.assert_called_once_with(
            "receipt_render_failed", transaction_id=transaction.id, error="disk full"
        )

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unexpected_render_failure_is_logged(
        self,
        transaction_store: TransactionStore,
        clock: Any,
        sample_cart: list[Product],
        sample_customer: Customer,
        mocker: Any,
    ) -> None:
        mock_logger = mocker.patch("marketplace.core.transaction_workflow.logger")
        renderer = MagicMock(spec=ReceiptRenderer)
        renderer.render.side_effect = ValueError("bad glyph table")

        workflow = TransactionWorkflow(transaction_store, renderer, clock=clock)
        transaction = await workflow.create(sample_cart, sample_customer)
        await workflow.drain()

        assert workflow.pending_receipts == 0
        mock_logger.error.assert_called_once_with(
            "receipt_render_failed",
            transaction_id=transaction.id,
            error="bad glyph table",
            error_type="ValueError",
        )


class TestTransactionWorkflowList:
    """Test suite for TransactionWorkflow.list_by_customer."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_list_returns_created_transaction(
        self,
        workflow: TransactionWorkflow,
        sample_cart: list[Product],
        sample_customer: Customer,
    ) -> None:
        transaction = await workflow.create(sample_cart, sample_customer)

        transactions = await workflow.list_by_customer("c1")

        assert [t.id for t in transactions] == [transaction.id]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_list_filters_by_customer(
        self, workflow: TransactionWorkflow, sample_cart: list[Product]
    ) -> None:
        ann = Customer(id="c1", name="Ann", email="a@x.com")
        bob = Customer(id="c2", name="Bob", email="b@x.com")
        first = await workflow.create(sample_cart, ann)
        await workflow.create(sample_cart, bob)
        second = await workflow.create(sample_cart[:1], ann)

        transactions = await workflow.list_by_customer("c1")

        assert {t.id for t in transactions} == {first.id, second.id}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_list_unknown_customer_is_empty(self, workflow: TransactionWorkflow) -> None:
        assert await workflow.list_by_customer("nobody") == []


class TestTransactionWorkflowPay:
    """Test suite for TransactionWorkflow.pay."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_pay_transitions_status(
        self,
        workflow: TransactionWorkflow,
        sample_cart: list[Product],
        sample_customer: Customer,
    ) -> None:
        created = await workflow.create(sample_cart, sample_customer)

        paid = await workflow.pay(created.id)

        assert paid.id == created.id
        assert paid.status == TransactionStatus.PAID
        assert paid.updated_at > created.updated_at
        assert paid.created_at == created.created_at
        assert paid.total_price == created.total_price

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_pay_with_real_clock_strictly_increases_updated_at(
        self,
        transaction_store: TransactionStore,
        renderer: ReceiptRenderer,
        sample_cart: list[Product],
        sample_customer: Customer,
    ) -> None:
        workflow = TransactionWorkflow(transaction_store, renderer)

        for _ in range(50):
            created = await workflow.create(sample_cart, sample_customer)
            paid = await workflow.pay(created.id)
            assert paid.updated_at > created.updated_at
            assert paid.created_at == created.created_at

        await workflow.drain()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_pay_is_visible_in_listing(
        self,
        workflow: TransactionWorkflow,
        sample_cart: list[Product],
        sample_customer: Customer,
    ) -> None:
        created = await workflow.create(sample_cart, sample_customer)
        await workflow.pay(created.id)

        [listed] = await workflow.list_by_customer("c1")
        assert listed.status == TransactionStatus.PAID

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_pay_unknown_id_raises_not_found(self, workflow: TransactionWorkflow) -> None:
        with pytest.raises(NotFoundError, match="not found"):
            await workflow.pay(str(ObjectId()))

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize("bad_id", ["", "not-an-id", "123", "zzzzzzzzzzzzzzzzzzzzzzzz"])
    async def test_pay_malformed_id_raises_invalid_identifier(
        self, workflow: TransactionWorkflow, bad_id: str
    ) -> None:
        with pytest.raises(InvalidIdentifierError):
            await workflow.pay(bad_id)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_repay_is_rejected(
        self,
        workflow: TransactionWorkflow,
        sample_cart: list[Product],
        sample_customer: Customer,
    ) -> None:
        created = await workflow.create(sample_cart, sample_customer)
        first = await workflow.pay(created.id)

        with pytest.raises(TransitionError, match="already paid"):
            await workflow.pay(created.id)

        [listed] = await workflow.list_by_customer("c1")
        assert listed.updated_at == first.updated_at

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_concurrent_pay_succeeds_once(
        self,
        workflow: TransactionWorkflow,
        sample_cart: list[Product],
        sample_customer: Customer,
    ) -> None:
        created = await workflow.create(sample_cart, sample_customer)

        results = await asyncio.gather(
            *(workflow.pay(created.id) for _ in range(5)), return_exceptions=True
        )

        successes = [r for r in results if not isinstance(r, Exception)]
        rejections = [r for r in results if isinstance(r, TransitionError)]
        assert len(successes) == 1
        assert len(rejections) == 4


class TestUtcNow:
    """Test suite for the default clock."""

    @pytest.mark.unit
    def test_utcnow_is_aware_and_millisecond_precise(self) -> None:
        now = utcnow()
        assert now.tzinfo is not None
        assert now.microsecond % 1000 == 0
