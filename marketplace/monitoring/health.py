"""
Health checks for liveness/readiness probes.

Checks:
- Document store connectivity
- Receipt directory writability (transactions service only)
"""
import os
from pathlib import Path
from typing import Any, Dict, Optional

import structlog

from marketplace.database.connection import MongoStore

logger = structlog.get_logger(__name__)


class HealthCheckError(Exception):
    """Raised when health check fails."""

    pass


class HealthCheck:
    """
    Health check service for the dependencies of one service.

    Provides:
    - Document store ping
    - Receipt directory check
    - Overall status
    """

    def __init__(self, store: MongoStore, receipts_dir: Optional[Path] = None):
        """
        Initialize health check service.

        Args:
            store: Store handle to ping
            receipts_dir: Receipt output directory, checked when given
        """
        self.store = store
        self.receipts_dir = receipts_dir

    async def check_store(self) -> Dict[str, Any]:
        """
        Check document store connectivity.

        Raises:
            HealthCheckError: If the ping fails
        """
        try:
            await self.store.ping()
        except Exception as e:
            logger.error("store_health_check_failed", error=str(e))
            raise HealthCheckError(f"Store health check failed: {e}") from e

        return {
            "status": "healthy",
            "service": "store",
            "message": "Document store connection successful",
        }

    def check_receipts_dir(self) -> Dict[str, Any]:
        """
        Check that receipts can be written.

        Raises:
            HealthCheckError: If the directory cannot be created or written
        """
        receipts_dir = self.receipts_dir
        if receipts_dir is None:
            raise HealthCheckError("Receipts directory not configured")

        try:
            receipts_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error("receipts_health_check_failed", error=str(e))
            raise HealthCheckError(f"Receipts directory unavailable: {e}") from e

        if not os.access(receipts_dir, os.W_OK):
            raise HealthCheckError(f"Receipts directory not writable: {receipts_dir}")

        return {
            "status": "healthy",
            "service": "receipts",
            "message": f"Receipts directory writable: {receipts_dir}",
        }

    async def check_all(self) -> Dict[str, Any]:
        """
        Run all health checks.

        Returns:
            Dict[str, Any]: Overall health status
        """
        checks = {}
        all_healthy = True

        try:
            checks["store"] = await self.check_store()
        except HealthCheckError as e:
            checks["store"] = {"status": "unhealthy", "service": "store", "error": str(e)}
            all_healthy = False

        if self.receipts_dir is not None:
            try:
                checks["receipts"] = self.check_receipts_dir()
            except HealthCheckError as e:
                checks["receipts"] = {
                    "status": "unhealthy",
                    "service": "receipts",
                    "error": str(e),
                }
                all_healthy = False

        return {
            "status": "healthy" if all_healthy else "unhealthy",
            "checks": checks,
        }

    async def liveness(self) -> Dict[str, Any]:
        """Liveness probe: the process is up. No dependency checks."""
        return {
            "status": "alive",
            "message": "Application is running",
        }

    async def readiness(self) -> Dict[str, Any]:
        """Readiness probe: every dependency is available."""
        return await self.check_all()
