"""
Prometheus metrics for marketplace monitoring.

Tracks:
- Transactions created and paid
- Receipt rendering outcomes and duration
- Catalog writes
- Payment form submissions
- Document store latency and errors
"""
import time

from prometheus_client import Counter, Histogram

# Transaction metrics
transactions_created_total = Counter(
    "transactions_created_total",
    "Total number of transactions created",
)

transactions_paid_total = Counter(
    "transactions_paid_total",
    "Total number of transactions moved to paid",
)

transaction_total_price = Histogram(
    "transaction_total_price",
    "Transaction totals at creation",
    buckets=(1, 5, 10, 25, 50, 100, 250, 500, 1000, 5000),
)

transaction_transition_rejections_total = Counter(
    "transaction_transition_rejections_total",
    "Pay requests rejected by the status guard",
    ["reason"],  # not_found, invalid_id, already_paid
)

# Receipt metrics
receipts_rendered_total = Counter(
    "receipts_rendered_total",
    "Total receipt renders",
    ["status"],  # success, failed
)

receipt_render_duration_seconds = Histogram(
    "receipt_render_duration_seconds",
    "Receipt render duration in seconds",
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

# Catalog metrics
products_created_total = Counter(
    "products_created_total",
    "Total products inserted into the catalog",
)

# Payment intake metrics
payment_forms_submitted_total = Counter(
    "payment_forms_submitted_total",
    "Total card payment forms accepted",
)

# Store metrics
store_operation_duration_seconds = Histogram(
    "store_operation_duration_seconds",
    "Document store operation duration in seconds",
    ["operation"],
    buckets=(0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

store_errors_total = Counter(
    "store_errors_total",
    "Total document store errors",
    ["operation"],
)


class MetricsCollector:
    """Helper class for collecting metrics."""

    @staticmethod
    def record_transaction_created(total_price: float) -> None:
        """Record a created transaction."""
        transactions_created_total.inc()
        transaction_total_price.observe(total_price)

    @staticmethod
    def record_transaction_paid() -> None:
        """Record a pay transition."""
        transactions_paid_total.inc()

    @staticmethod
    def record_transition_rejected(reason: str) -> None:
        """Record a rejected pay request."""
        transaction_transition_rejections_total.labels(reason=reason).inc()

    @staticmethod
    def record_receipt(status: str, duration_seconds: float) -> None:
        """Record a receipt render."""
        receipts_rendered_total.labels(status=status).inc()
        receipt_render_duration_seconds.observe(duration_seconds)

    @staticmethod
    def record_product_created() -> None:
        """Record a catalog insert."""
        products_created_total.inc()

    @staticmethod
    def record_payment_form() -> None:
        """Record an accepted payment form."""
        payment_forms_submitted_total.inc()

    @staticmethod
    def record_store_operation(operation: str, started_at: float) -> None:
        """Record a store operation that began at `started_at` (time.time())."""
        store_operation_duration_seconds.labels(operation=operation).observe(
            time.time() - started_at
        )

    @staticmethod
    def record_store_error(operation: str) -> None:
        """Record a store error."""
        store_errors_total.labels(operation=operation).inc()


# Export singleton instance
metrics = MetricsCollector()
