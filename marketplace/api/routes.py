"""
API routes for the catalog and transactions services.

Domain errors propagate to the exception handlers registered in
`marketplace.api.main`, which answer with `{"error": "..."}`.
"""
from typing import Any, Dict, List

import structlog
from fastapi import APIRouter, Depends, HTTPException, Response, status
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from marketplace.core.catalog import CatalogService
from marketplace.core.payment_intake import PaymentIntake
from marketplace.core.transaction_workflow import TransactionWorkflow
from marketplace.monitoring.health import HealthCheck

from .dependencies import get_catalog, get_health_check, get_payment_intake, get_workflow
from .schemas import (
    CreateTransactionRequest,
    ErrorResponse,
    HealthCheckResponse,
    PaymentFormRequest,
    PaymentResponse,
    ProductRequest,
)

logger = structlog.get_logger(__name__)

ERROR_RESPONSES: Dict[int | str, Dict[str, Any]] = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}

catalog_router = APIRouter(tags=["catalog"], responses=ERROR_RESPONSES)
transaction_router = APIRouter(tags=["transactions"], responses=ERROR_RESPONSES)
monitoring_router = APIRouter(tags=["monitoring"])


@catalog_router.get(
    "/products",
    summary="List products",
    description="Return every product in the catalog",
)
async def list_products(
    catalog: CatalogService = Depends(get_catalog),
) -> List[Dict[str, Any]]:
    """List the catalog."""
    products = await catalog.list()
    return [product.to_json() for product in products]


@catalog_router.post(
    "/products",
    summary="Create a product",
    description="Insert a product into the catalog",
)
async def create_product(
    request: ProductRequest,
    catalog: CatalogService = Depends(get_catalog),
) -> Dict[str, Any]:
    """Create a catalog product."""
    product = await catalog.create(request.to_product())
    return product.to_json()


@transaction_router.post(
    "/create-transaction",
    summary="Create a transaction",
    description="Persist a cart as a transaction awaiting payment and emit its receipt",
)
async def create_transaction(
    request: CreateTransactionRequest,
    workflow: TransactionWorkflow = Depends(get_workflow),
) -> Dict[str, Any]:
    """
    Create a transaction.

    The receipt is rendered in the background; its outcome does not affect
    the response.
    """
    cart_items, customer = request.to_domain()

    logger.info(
        "api_create_transaction_request",
        customer_id=customer.id,
        item_count=len(cart_items),
    )

    transaction = await workflow.create(cart_items, customer)
    return {"transaction": transaction.to_json()}


@transaction_router.get(
    "/transactions/{customer_id}",
    summary="List a customer's transactions",
    description="Return every transaction whose embedded customer id matches",
)
async def list_transactions(
    customer_id: str,
    workflow: TransactionWorkflow = Depends(get_workflow),
) -> List[Dict[str, Any]]:
    """List transactions by customer."""
    transactions = await workflow.list_by_customer(customer_id)
    return [transaction.to_json() for transaction in transactions]


@transaction_router.post(
    "/process-payment",
    response_model=PaymentResponse,
    summary="Submit a card payment form",
    description="Accept a card payment form; no processor is contacted",
)
async def process_payment(
    request: PaymentFormRequest,
    payment_intake: PaymentIntake = Depends(get_payment_intake),
) -> Dict[str, Any]:
    """Accept a payment form."""
    return await payment_intake.submit(request)


@transaction_router.get(
    "/pay/{transaction_id}",
    summary="Mark a transaction paid",
    description="Atomically move a transaction from awaiting payment to paid",
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def pay(
    transaction_id: str,
    workflow: TransactionWorkflow = Depends(get_workflow),
) -> Dict[str, Any]:
    """Pay a transaction."""
    transaction = await workflow.pay(transaction_id)
    return transaction.to_json()


@monitoring_router.get(
    "/health",
    response_model=HealthCheckResponse,
    summary="Health check",
    description="Check overall service health",
)
async def health(health_check: HealthCheck = Depends(get_health_check)) -> Dict[str, Any]:
    """Health check endpoint for monitoring."""
    return await health_check.check_all()


@monitoring_router.get(
    "/health/live",
    response_model=HealthCheckResponse,
    summary="Liveness probe",
    description="Kubernetes liveness probe endpoint",
)
async def liveness(health_check: HealthCheck = Depends(get_health_check)) -> Dict[str, Any]:
    """Liveness probe endpoint."""
    return await health_check.liveness()


@monitoring_router.get(
    "/health/ready",
    response_model=HealthCheckResponse,
    summary="Readiness probe",
    description="Kubernetes readiness probe endpoint",
)
async def readiness(health_check: HealthCheck = Depends(get_health_check)) -> Dict[str, Any]:
    """Readiness probe endpoint."""
    result = await health_check.readiness()
    if result["status"] != "healthy":
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=result)
    return result


@monitoring_router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Expose Prometheus metrics",
    include_in_schema=False,
)
async def prometheus_metrics() -> Response:
    """Expose Prometheus metrics."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
