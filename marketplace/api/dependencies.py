"""Request-scoped access to the services wired at startup."""
from fastapi import Request

from marketplace.core.catalog import CatalogService
from marketplace.core.payment_intake import PaymentIntake
from marketplace.core.transaction_workflow import TransactionWorkflow
from marketplace.monitoring.health import HealthCheck


def get_catalog(request: Request) -> CatalogService:
    return request.app.state.catalog


def get_workflow(request: Request) -> TransactionWorkflow:
    return request.app.state.workflow


def get_payment_intake(request: Request) -> PaymentIntake:
    return request.app.state.payment_intake


def get_health_check(request: Request) -> HealthCheck:
    return request.app.state.health_check
