"""Application settings using Pydantic for environment-based configuration."""
from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Document store
    mongo_uri: str = Field(..., description="MongoDB connection string")
    database_name: str = Field(default="marketplace", description="Database namespace")
    products_collection: str = Field(default="products", description="Catalog collection")
    transactions_collection: str = Field(
        default="transactions", description="Transactions collection"
    )
    store_timeout_ms: int = Field(
        default=5000, description="Per-operation deadline for store calls (milliseconds)"
    )
    store_server_selection_timeout_ms: int = Field(
        default=5000, description="Server selection timeout (milliseconds)"
    )

    # Startup retry
    store_connect_max_attempts: int = Field(
        default=5, ge=1, description="Connectivity checks before giving up at startup"
    )
    store_connect_base_delay: float = Field(
        default=0.5, ge=0, description="Base delay for connect backoff (seconds)"
    )
    store_connect_max_delay: float = Field(
        default=8.0, ge=0, description="Upper bound for connect backoff (seconds)"
    )

    # Receipts
    receipts_dir: str = Field(default="receipts", description="Directory for PDF receipts")
    merchant_name: str = Field(default="Maximus & Kuka Ltd", description="Receipt header")
    merchant_tin: str = Field(default="098908978", description="Merchant tax id")

    # Application Configuration
    app_name: str = Field(default="marketplace", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/production)")
    log_level: str = Field(default="INFO", description="Logging level")
    debug: bool = Field(default=False, description="Debug mode")

    # API Configuration
    api_host: str = Field(default="0.0.0.0", description="API host")
    catalog_port: int = Field(default=8080, description="Catalog service port")
    transactions_port: int = Field(default=8081, description="Transactions service port")
    api_workers: int = Field(default=1, description="Number of API workers")
    allowed_origins: str = Field(
        default="http://localhost:3000",
        description="CORS allowed origins (comma-separated)",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("mongo_uri")
    @classmethod
    def validate_mongo_uri(cls, v: str) -> str:
        """Reject URIs the driver would not accept."""
        if not v.startswith(("mongodb://", "mongodb+srv://")):
            raise ValueError(
                "Invalid MongoDB URI. Must start with 'mongodb://' or 'mongodb+srv://'"
            )
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v.upper()

    def get_allowed_origins_list(self) -> List[str]:
        """Parse allowed origins from comma-separated string."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
