"""
FastAPI applications for the catalog and transactions services.

Both services share:
- CORS configuration
- Error handling with `{"error": ...}` bodies
- Request ID tracking
- Structured logging
- Health probes and Prometheus metrics
"""
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncGenerator, Optional

import structlog
from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from marketplace import __version__
from marketplace.config import Settings, get_settings
from marketplace.core.catalog import CatalogService
from marketplace.core.exceptions import MarketplaceError, ValidationError
from marketplace.core.payment_intake import PaymentIntake
from marketplace.core.receipt_renderer import ReceiptRenderer
from marketplace.core.transaction_workflow import TransactionWorkflow
from marketplace.database.connection import MongoStore, connect_with_retry
from marketplace.database.product_store import ProductStore
from marketplace.database.transaction_store import TransactionStore
from marketplace.monitoring.health import HealthCheck
from marketplace.monitoring.logging import setup_logging

from .routes import catalog_router, monitoring_router, transaction_router

logger = structlog.get_logger(__name__)

CATALOG = "catalog"
TRANSACTIONS = "transactions"

SERVICE_ROUTERS = {
    CATALOG: [catalog_router],
    TRANSACTIONS: [transaction_router],
}

SERVICE_DESCRIPTIONS = {
    CATALOG: "Product catalog: list and create products.",
    TRANSACTIONS: (
        "Purchase transactions: create from a cart, list by customer, mark paid, "
        "accept card payment forms. A PDF receipt is emitted for every transaction."
    ),
}


def wire_services(app: FastAPI, service: str, store: MongoStore, settings: Settings) -> None:
    """
    Build the service objects for `service` on top of `store`.

    Everything a request needs lives on `app.state`; nothing is global.
    """
    app.state.settings = settings
    app.state.store = store

    if service == CATALOG:
        app.state.catalog = CatalogService(ProductStore(store))
        app.state.health_check = HealthCheck(store)
    else:
        app.state.workflow = TransactionWorkflow(
            TransactionStore(store), ReceiptRenderer(settings)
        )
        app.state.payment_intake = PaymentIntake()
        app.state.health_check = HealthCheck(store, Path(settings.receipts_dir))

    app.state.ready = True


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = error.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or "Invalid request"


def register_exception_handlers(app: FastAPI) -> None:
    """Map every failure to a JSON body with an `error` field."""

    @app.exception_handler(MarketplaceError)
    async def marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
        log = logger.error if exc.http_status >= 500 else logger.warning
        log(
            "request_error",
            error=exc.message,
            error_type=type(exc).__name__,
            path=request.url.path,
            status_code=exc.http_status,
        )
        return JSONResponse(status_code=exc.http_status, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        error = ValidationError(_validation_message(exc))
        logger.warning("request_validation_failed", error=error.message, path=request.url.path)
        return JSONResponse(status_code=error.http_status, content=error.to_dict())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        if isinstance(exc.detail, dict):
            content = {"error": "Service unavailable", **exc.detail}
        else:
            content = {"error": str(exc.detail)}
        return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """
        Global exception handler for unhandled exceptions.
        """
        logger.error(
            "unhandled_exception",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )


def create_app(
    service: str,
    settings: Optional[Settings] = None,
    store: Optional[MongoStore] = None,
) -> FastAPI:
    """
    Create the FastAPI application for one service.

    Args:
        service: "catalog" or "transactions"
        settings: Optional settings, defaults to the cached settings
        store: Optional pre-built store; when given the services are wired
            immediately and startup does not connect

    Returns:
        FastAPI: Configured application
    """
    if service not in SERVICE_ROUTERS:
        raise ValueError(f"Unknown service {service!r}, expected one of {sorted(SERVICE_ROUTERS)}")

    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, Any]:
        """
        Application lifespan manager.

        Connects to the store with bounded retry; a store that never answers
        aborts startup.
        """
        setup_logging(settings)
        logger.info(
            "application_startup",
            service=service,
            app_name=settings.app_name,
            env=settings.app_env,
        )

        if not getattr(app.state, "ready", False):
            owned_store = MongoStore.from_settings(settings)
            try:
                await connect_with_retry(owned_store)
            except MarketplaceError:
                await owned_store.close()
                raise
            wire_services(app, service, owned_store, settings)

        yield

        logger.info("application_shutdown", service=service)
        workflow: Optional[TransactionWorkflow] = getattr(app.state, "workflow", None)
        if workflow is not None:
            await workflow.drain()
        try:
            await app.state.store.close()
        except Exception as e:
            logger.error("store_shutdown_error", error=str(e))

    app = FastAPI(
        title=f"Marketplace {service.title()} Service",
        description=SERVICE_DESCRIPTIONS[service],
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.service = service
    app.state.ready = False

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_allowed_origins_list(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Origin", "Content-Type"],
        expose_headers=["Content-Length"],
        max_age=12 * 60 * 60,
    )

    @app.middleware("http")
    async def add_request_id_middleware(request: Request, call_next: Any) -> Response:
        """
        Add request ID to all requests for tracing.

        Also adds timing information and structured logging context.
        """
        request_id = str(uuid.uuid4())
        start_time = time.time()

        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            service=service,
            method=request.method,
            path=request.url.path,
        )

        logger.info(
            "request_started",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            client_host=request.client.host if request.client else None,
        )

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id

            duration = time.time() - start_time
            logger.info(
                "request_completed",
                request_id=request_id,
                status_code=response.status_code,
                duration_seconds=duration,
            )
            return response

        except Exception as e:
            duration = time.time() - start_time
            logger.error(
                "request_failed",
                request_id=request_id,
                error=str(e),
                duration_seconds=duration,
            )
            raise

        finally:
            structlog.contextvars.clear_contextvars()

    register_exception_handlers(app)

    for router in SERVICE_ROUTERS[service]:
        app.include_router(router)
    app.include_router(monitoring_router)

    @app.get("/", tags=["root"])
    async def root() -> dict[str, Any]:
        """Root endpoint with service information."""
        return {
            "service": f"{settings.app_name}-{service}",
            "version": __version__,
            "status": "operational",
            "environment": settings.app_env,
            "docs": "/docs",
            "health": "/health",
            "metrics": "/metrics",
        }

    if store is not None:
        wire_services(app, service, store, settings)

    return app


def create_catalog_app() -> FastAPI:
    """Application factory for the catalog service."""
    return create_app(CATALOG)


def create_transactions_app() -> FastAPI:
    """Application factory for the transactions service."""
    return create_app(TRANSACTIONS)


def _run(factory: str, port: int) -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        factory,
        factory=True,
        host=settings.api_host,
        port=port,
        reload=settings.debug,
        workers=settings.api_workers if not settings.debug else 1,
        log_level=settings.log_level.lower(),
    )


def run_catalog() -> None:
    """Console entry point for the catalog service."""
    _run("marketplace.api.main:create_catalog_app", get_settings().catalog_port)


def run_transactions() -> None:
    """Console entry point for the transactions service."""
    _run("marketplace.api.main:create_transactions_app", get_settings().transactions_port)
