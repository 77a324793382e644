"""Metadata store selection from configuration."""

import logging

from evmscan.core.config import Settings
from evmscan.infrastructure.storage.api import ApiMetadataStore
from evmscan.infrastructure.storage.base import MetadataStore
from evmscan.infrastructure.storage.embedded import EmbeddedMetadataStore
from evmscan.infrastructure.storage.sql import SQLMetadataStore

logger = logging.getLogger(__name__)


async def create_metadata_store(settings: Settings) -> MetadataStore:
    """Build the configured metadata store.

    Args:
        settings: Application settings (storage_mode selects the backend)

    Returns:
        Ready-to-use store; SQL stores have their tables created
    """
    mode = settings.storage_mode
    if mode == "sql":
        store: MetadataStore = SQLMetadataStore(
            database_url=settings.database_url,
            reset=settings.storage_reset_on_start,
        )
        await store.initialize()
    elif mode == "api":
        store = ApiMetadataStore(
            base_url=settings.storage_api_url,
            timeout=settings.storage_api_timeout,
        )
    elif mode == "embedded":
        store = EmbeddedMetadataStore(path=settings.embedded_store_path)
        if settings.storage_reset_on_start:
            await store.clear()
    else:
        raise ValueError(f"Unknown storage mode: {mode}")

    logger.info(f"Using {mode} metadata store")
    return store
