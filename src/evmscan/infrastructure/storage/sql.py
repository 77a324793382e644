"""Relational contract metadata store.

The server process owns this store; every HTTP connection shares it.
"""

import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from evmscan.core.exceptions import MetadataStoreError
from evmscan.infrastructure.database import (
    create_async_db_engine,
    create_session_factory,
    init_models,
)
from evmscan.infrastructure.storage.base import MetadataStore
from evmscan.infrastructure.storage.schemas import (
    ContractMetadata,
    ContractSource,
    now_millis,
)
from evmscan.models import ContractAbi, ContractSourceCode, StorageMetric
from evmscan.repositories import (
    ContractAbiRepository,
    ContractSourceRepository,
    MetricRepository,
)

logger = logging.getLogger(__name__)


def _to_metadata(row: ContractAbi) -> ContractMetadata:
    return ContractMetadata(
        address=row.address,
        abi=row.abi or [],
        display_name=row.name,
        verified=row.verified,
        stored_at=row.timestamp,
    )


def _to_row(record: ContractMetadata) -> ContractAbi:
    return ContractAbi(
        address=record.address,
        abi=record.abi,
        name=record.display_name,
        verified=record.verified,
        timestamp=record.stored_at,
    )


def _to_source(row: ContractSourceCode) -> ContractSource:
    return ContractSource(
        address=row.address,
        source_code=row.source_code,
        compiler=row.compiler,
        optimization=row.optimization,
        runs=row.runs,
        stored_at=row.timestamp,
    )


class SQLMetadataStore(MetadataStore):
    """SQLAlchemy-backed store.

    Tables: ``contract_abis``, ``contract_sources`` and ``metrics``.
    """

    def __init__(
        self,
        database_url: str | None = None,
        engine: AsyncEngine | None = None,
        reset: bool = False,
    ):
        """Initialize SQL store.

        Args:
            database_url: SQLAlchemy async URL; ignored when engine is given
            engine: Existing engine to reuse
            reset: Drop and recreate the tables on initialize()
        """
        super().__init__()
        if engine is None:
            if not database_url:
                raise ValueError("database_url or engine is required")
            engine = create_async_db_engine(database_url)
            self._owns_engine = True
        else:
            self._owns_engine = False
        self.engine = engine
        self.reset = reset
        self._session_factory = create_session_factory(engine)
        self._initialized = False

    async def initialize(self) -> None:
        """Create the tables (dropping them first when reset is set)."""
        if self._initialized:
            return
        try:
            await init_models(self.engine, reset=self.reset)
        except SQLAlchemyError as e:
            raise MetadataStoreError(f"Failed to initialize metadata tables: {e}") from e
        self._initialized = True
        if self.reset:
            logger.info("Metadata store reset on start")

    async def _read(self, address: str) -> ContractMetadata | None:
        await self.initialize()
        try:
            async with self._session_factory() as session:
                row = await ContractAbiRepository(session).get_by_id(address)
        except SQLAlchemyError as e:
            raise MetadataStoreError(f"Failed to read metadata for {address}: {e}") from e
        return _to_metadata(row) if row else None

    async def _write(self, record: ContractMetadata) -> None:
        await self.initialize()
        try:
            async with self._session_factory() as session:
                await ContractAbiRepository(session).upsert(_to_row(record))
                await session.commit()
        except SQLAlchemyError as e:
            raise MetadataStoreError(
                f"Failed to write metadata for {record.address}: {e}"
            ) from e

    async def _read_all(self) -> list[ContractMetadata]:
        await self.initialize()
        try:
            async with self._session_factory() as session:
                rows = await ContractAbiRepository(session).get_verified()
        except SQLAlchemyError as e:
            raise MetadataStoreError(f"Failed to list metadata: {e}") from e
        return [_to_metadata(row) for row in rows]

    async def _read_source(self, address: str) -> ContractSource | None:
        await self.initialize()
        try:
            async with self._session_factory() as session:
                row = await ContractSourceRepository(session).get_by_id(address)
        except SQLAlchemyError as e:
            raise MetadataStoreError(f"Failed to read contract source for {address}: {e}") from e
        return _to_source(row) if row else None

    async def _write_source(self, record: ContractSource) -> None:
        await self.initialize()
        row = ContractSourceCode(
            address=record.address,
            source_code=record.source_code,
            compiler=record.compiler,
            optimization=record.optimization,
            runs=record.runs,
            timestamp=record.stored_at,
        )
        try:
            async with self._session_factory() as session:
                await ContractSourceRepository(session).upsert(row)
                await session.commit()
        except SQLAlchemyError as e:
            raise MetadataStoreError(
                f"Failed to write contract source for {record.address}: {e}"
            ) from e

    async def _read_metric(self, key: str) -> Any:
        await self.initialize()
        try:
            async with self._session_factory() as session:
                row = await MetricRepository(session).get_by_id(key)
        except SQLAlchemyError as e:
            raise MetadataStoreError(f"Failed to read metric {key}: {e}") from e
        return row.data if row else None

    async def _write_metric(self, key: str, data: Any) -> None:
        await self.initialize()
        try:
            async with self._session_factory() as session:
                await MetricRepository(session).upsert(
                    StorageMetric(id=key, data=data, timestamp=now_millis())
                )
                await session.commit()
        except SQLAlchemyError as e:
            raise MetadataStoreError(f"Failed to write metric {key}: {e}") from e

    async def _delete_all(self) -> None:
        await self.initialize()
        try:
            async with self._session_factory() as session:
                deleted = {
                    "contract_abis": await ContractAbiRepository(session).delete_all(),
                    "contract_sources": await ContractSourceRepository(session).delete_all(),
                    "metrics": await MetricRepository(session).delete_all(),
                }
                await session.commit()
        except SQLAlchemyError as e:
            raise MetadataStoreError(f"Failed to clear metadata: {e}") from e
        logger.debug(f"Deleted rows: {deleted}")

    async def close(self) -> None:
        if self._owns_engine:
            await self.engine.dispose()
