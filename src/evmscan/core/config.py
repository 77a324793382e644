"""Application configuration management using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_prefix="EVMSCAN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="evmscan", description="Application name")
    environment: Literal["development", "testing", "production"] = Field(
        default="development", description="Runtime environment"
    )
    debug: bool = Field(default=False, description="Debug mode flag")

    # API
    api_v1_prefix: str = Field(default="/api/v1", description="API v1 prefix")
    allowed_origins: list[str] = Field(
        default=["http://localhost:5173", "http://localhost:3000"],
        description="CORS allowed origins",
    )

    # Chain node
    rpc_url: str = Field(
        default="http://localhost:8545", description="JSON-RPC endpoint of the dev node"
    )
    rpc_backup_urls: list[str] = Field(
        default=[], description="Backup JSON-RPC endpoints, tried in order"
    )
    rpc_poa: bool = Field(
        default=False, description="Inject POA extraData middleware (clique/bor nodes)"
    )
    chain_id: int = Field(default=31337, description="Expected chain ID")
    chain_name: str = Field(default="Localhost", description="Chain display name")

    # Scanning
    blocks_to_scan: int = Field(
        default=100, ge=1, description="Recent blocks scanned for transactions"
    )
    scan_concurrency: int = Field(
        default=1, ge=1, description="Concurrent block fetches during a scan"
    )
    default_page_size: int = Field(default=25, ge=1, description="Default page size")
    max_page_size: int = Field(default=100, ge=1, description="Maximum page size")

    # Contract metadata storage
    storage_mode: Literal["embedded", "sql", "api"] = Field(
        default="embedded", description="Contract metadata backend"
    )
    embedded_store_path: str | None = Field(
        default=None,
        description="JSON file backing the embedded store (None = memory only)",
    )
    database_url: str = Field(
        default="sqlite+aiosqlite:///./evmscan.db",
        description="SQLAlchemy async URL of the relational store",
    )
    storage_reset_on_start: bool = Field(
        default=False, description="Drop stored contract metadata on server start"
    )
    storage_api_url: str = Field(
        default="http://localhost:8080/api/storage",
        description="Base URL of a running explorer's storage API",
    )
    storage_api_timeout: float = Field(
        default=10.0, description="Storage API request timeout in seconds"
    )
    serve_storage_api: bool = Field(
        default=True, description="Mount /api/storage backed by the relational store"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Literal["json", "console"] = Field(
        default="console", description="Log output format"
    )

    @computed_field
    @property
    def rpc_urls(self) -> list[str]:
        """Primary RPC URL followed by backups."""
        return [self.rpc_url, *self.rpc_backup_urls]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
