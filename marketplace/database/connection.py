"""Document store connection and collection handles."""
from typing import Any, Optional

import structlog
from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorCollection,
    AsyncIOMotorDatabase,
)
from pymongo.errors import PyMongoError
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from marketplace.config import Settings, get_settings
from marketplace.core.exceptions import StoreUnavailableError

logger = structlog.get_logger(__name__)


class MongoStore:
    """
    Explicit handle on the document store.

    Owns the client, the database namespace and the two collections. One
    instance is built per process at startup and passed to every adapter,
    so tests can hand in an in-memory client instead.
    """

    def __init__(self, client: Any, settings: Optional[Settings] = None):
        """
        Initialize the store handle.

        Args:
            client: Motor client (or a compatible in-memory double)
            settings: Optional settings, defaults to the cached settings
        """
        self.settings = settings or get_settings()
        self.client = client
        self.database: AsyncIOMotorDatabase = client[self.settings.database_name]

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "MongoStore":
        """
        Create a store backed by a real MongoDB client.

        The client is lazy; no network I/O happens until the first
        operation or `ping()`.
        """
        settings = settings or get_settings()
        client = AsyncIOMotorClient(
            settings.mongo_uri,
            tz_aware=True,
            timeoutMS=settings.store_timeout_ms,
            serverSelectionTimeoutMS=settings.store_server_selection_timeout_ms,
            appname=settings.app_name,
        )
        return cls(client, settings)

    @property
    def products(self) -> AsyncIOMotorCollection:
        return self.database[self.settings.products_collection]

    @property
    def transactions(self) -> AsyncIOMotorCollection:
        return self.database[self.settings.transactions_collection]

    async def ping(self) -> None:
        """Round-trip to the primary; raises on failure."""
        await self.client.admin.command("ping")

    async def close(self) -> None:
        """Close the underlying client."""
        self.client.close()
        logger.info("store_closed", database=self.settings.database_name)


async def connect_with_retry(store: MongoStore) -> MongoStore:
    """
    Verify connectivity with bounded exponential backoff.

    Args:
        store: Store handle to check

    Returns:
        MongoStore: The same handle once a ping succeeds

    Raises:
        StoreUnavailableError: If every attempt failed
    """
    settings = store.settings
    attempt_number = 0

    def _log_retry(retry_state: Any) -> None:
        outcome = retry_state.outcome
        logger.warning(
            "store_connect_retry",
            attempt=retry_state.attempt_number,
            max_attempts=settings.store_connect_max_attempts,
            error=str(outcome.exception()) if outcome else None,
        )

    try:
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type((PyMongoError, OSError)),
            stop=stop_after_attempt(settings.store_connect_max_attempts),
            wait=wait_exponential(
                multiplier=settings.store_connect_base_delay,
                max=settings.store_connect_max_delay,
            ),
            before_sleep=_log_retry,
        ):
            with attempt:
                attempt_number = attempt.retry_state.attempt_number
                await store.ping()
    except RetryError as e:
        last_error = e.last_attempt.exception()
        logger.error(
            "store_unavailable",
            attempts=attempt_number,
            error=str(last_error),
        )
        raise StoreUnavailableError(
            f"Document store unreachable after {attempt_number} attempts: {last_error}",
            operation="ping",
            original_error=last_error,
        ) from last_error

    logger.info(
        "store_connected",
        database=settings.database_name,
        attempts=attempt_number,
    )
    return store
