"""Database engine and session management."""

from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from evmscan.models import Base


def create_async_db_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create asynchronous database engine.

    In-memory SQLite gets a single shared connection so every session sees
    the same database.
    """
    url = make_url(database_url)
    kwargs: dict[str, Any] = {"echo": echo}
    if url.get_backend_name() == "sqlite":
        kwargs["connect_args"] = {"check_same_thread": False}
        if url.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs.update(pool_size=10, max_overflow=20, pool_recycle=1800, pool_pre_ping=True)
    return create_async_engine(url, **kwargs)


def create_session_factory(engine: AsyncEngine) -> sessionmaker:
    """Session factory bound to an engine."""
    return sessionmaker(
        class_=AsyncSession,
        autocommit=False,
        autoflush=False,
        bind=engine,
        expire_on_commit=False,
    )


async def init_models(engine: AsyncEngine, reset: bool = False) -> None:
    """Create tables, optionally dropping existing ones first."""
    async with engine.begin() as conn:
        if reset:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
