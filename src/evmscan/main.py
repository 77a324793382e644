"""FastAPI application factory and main entry point."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from evmscan import __version__
from evmscan.api import storage
from evmscan.api.v1 import api_router
from evmscan.core.config import Settings, get_settings
from evmscan.core.logging import configure_logging
from evmscan.infrastructure.blockchain import ChainClient, Web3ChainClient
from evmscan.infrastructure.storage import (
    MetadataStore,
    SQLMetadataStore,
    create_metadata_store,
)
from evmscan.services.explorer import AbiCache, ExplorerService
from evmscan.services.scanner import BlockWindowScanner

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build long-lived services on startup and release them on shutdown."""
    # Startup
    settings: Settings = app.state.settings
    overrides: dict[str, Any] = app.state.overrides
    configure_logging(settings)

    client: ChainClient = overrides.get("chain_client") or Web3ChainClient(
        rpc_urls=settings.rpc_urls, poa=settings.rpc_poa
    )

    store = overrides.get("metadata_store")
    if store is None:
        store = await create_metadata_store(settings)
    stores: list[MetadataStore] = [store]

    abi_cache = AbiCache(store)
    scanner = BlockWindowScanner(
        client,
        blocks_to_scan=settings.blocks_to_scan,
        concurrency=settings.scan_concurrency,
    )

    app.state.chain_client = client
    app.state.abi_cache = abi_cache
    app.state.explorer = ExplorerService(client, scanner, abi_cache)

    if settings.serve_storage_api:
        storage_store = overrides.get("storage_store")
        if storage_store is None and isinstance(store, SQLMetadataStore):
            storage_store = store
        if storage_store is None:
            storage_store = SQLMetadataStore(
                database_url=settings.database_url,
                reset=settings.storage_reset_on_start,
            )
            await storage_store.initialize()
        if storage_store is not store:
            stores.append(storage_store)
        # Share one cache when both surfaces use the same store
        app.state.storage_cache = (
            abi_cache if storage_store is store else AbiCache(storage_store)
        )

    logger.info(
        f"{settings.app_name} {__version__} started "
        f"(rpc={settings.rpc_url}, storage={settings.storage_mode})"
    )

    yield

    # Shutdown
    for metadata_store in stores:
        await metadata_store.close()


def create_app(
    settings: Settings | None = None,
    chain_client: ChainClient | None = None,
    metadata_store: MetadataStore | None = None,
    storage_store: MetadataStore | None = None,
) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        settings: Settings to use instead of the environment
        chain_client: Chain client to use instead of a web3 one
        metadata_store: Store backing the explorer's contract lookups
        storage_store: Store served at /api/storage

    Stores passed in are closed when the application shuts down.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        description="Local EVM development network explorer API",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.overrides = {
        "chain_client": chain_client,
        "metadata_store": metadata_store,
        "storage_store": storage_store,
    }

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routes
    register_routes(app, settings)

    return app


def register_routes(app: FastAPI, settings: Settings) -> None:
    """Register all application routes."""
    app.include_router(api_router, prefix=settings.api_v1_prefix)

    if settings.serve_storage_api:
        app.include_router(storage.router)

    @app.get("/health", tags=["System"])
    async def health_check():
        """Health check endpoint; reports whether the node answers."""
        block_number = None
        try:
            block_number = await app.state.chain_client.get_block_number()
        except Exception as e:
            logger.warning(f"Health check could not reach the node: {e}")

        return {
            "status": "healthy" if block_number is not None else "degraded",
            "version": __version__,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "chain": {
                "chain_id": settings.chain_id,
                "name": settings.chain_name,
                "connected": block_number is not None,
                "block_number": block_number,
            },
        }


# Create application instance
app = create_app()
