"""Pytest configuration and fixtures."""

import pytest
from fastapi.testclient import TestClient

from fakes import TOKEN, FakeChainClient


@pytest.fixture(scope="function")
def settings():
    """Create settings instance for testing."""
    from evmscan.core.config import Settings

    return Settings(
        _env_file=None,
        environment="testing",
        storage_mode="embedded",
        database_url="sqlite+aiosqlite:///:memory:",
        blocks_to_scan=100,
    )


@pytest.fixture
def chain():
    """Fake chain with blocks 0..5; TOKEN holds code."""
    return FakeChainClient(code={TOKEN: b"\x60\x80\x60\x40"}, balances={TOKEN: 7})


@pytest.fixture
def embedded_store():
    from evmscan.infrastructure.storage import EmbeddedMetadataStore

    return EmbeddedMetadataStore()


@pytest.fixture
def sql_store():
    """SQL store on a private in-memory SQLite database."""
    from evmscan.infrastructure.storage import SQLMetadataStore

    return SQLMetadataStore(database_url="sqlite+aiosqlite:///:memory:")


@pytest.fixture
def app(settings, chain, embedded_store, sql_store):
    """Create FastAPI application for testing."""
    from evmscan.main import create_app

    return create_app(
        settings=settings,
        chain_client=chain,
        metadata_store=embedded_store,
        storage_store=sql_store,
    )


@pytest.fixture
def client(app):
    """Create test client."""
    with TestClient(app) as client:
        yield client
