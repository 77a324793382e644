"""Database infrastructure module."""

from evmscan.infrastructure.database.session import (
    create_async_db_engine,
    create_session_factory,
    init_models,
)

__all__ = [
    "create_async_db_engine",
    "create_session_factory",
    "init_models",
]
