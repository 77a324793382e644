"""Embedded, process-local contract metadata store.

Keeps records in dicts and optionally mirrors them to a JSON file so a
single explorer instance survives restarts. Nothing is shared across
processes.
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from evmscan.core.exceptions import MetadataStoreError
from evmscan.infrastructure.storage.base import MetadataStore
from evmscan.infrastructure.storage.schemas import ContractMetadata, ContractSource

logger = logging.getLogger(__name__)


class StoreSnapshot(BaseModel):
    """Everything the embedded store holds, as written to its file."""

    abis: list[ContractMetadata] = Field(default_factory=list)
    contracts: list[ContractSource] = Field(default_factory=list)
    metrics: dict[str, Any] = Field(default_factory=dict)


class EmbeddedMetadataStore(MetadataStore):
    """In-memory key-value store with optional JSON file persistence.

    Records are copied in and out, so callers never share objects with the
    store. A write only becomes visible after it reached the file.
    """

    def __init__(self, path: str | Path | None = None):
        """Initialize embedded store.

        Args:
            path: JSON file to persist to; None keeps records in memory only
        """
        super().__init__()
        self.path = Path(path) if path else None
        self._records: dict[str, ContractMetadata] = {}
        self._sources: dict[str, ContractSource] = {}
        self._metrics: dict[str, Any] = {}
        self._loaded = self.path is None

    def _ensure_loaded(self) -> None:
        """Load persisted records on first access."""
        if self._loaded:
            return

        if not self.path.exists():
            self._loaded = True
            return

        try:
            snapshot = StoreSnapshot.model_validate_json(self.path.read_bytes())
        except (OSError, ValidationError) as e:
            raise MetadataStoreError(f"Failed to load metadata from {self.path}: {e}") from e

        self._records = {record.address: record for record in snapshot.abis}
        self._sources = {record.address: record for record in snapshot.contracts}
        self._metrics = snapshot.metrics
        self._loaded = True
        logger.info(f"Loaded {len(self._records)} contract records from {self.path}")

    def _persist(self, snapshot: StoreSnapshot) -> None:
        """Write the snapshot atomically (temp file + rename)."""
        if self.path is None:
            return

        payload = snapshot.model_dump(mode="json", by_alias=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise MetadataStoreError(f"Failed to persist metadata to {self.path}: {e}") from e

    def _commit(
        self,
        records: dict[str, ContractMetadata] | None = None,
        sources: dict[str, ContractSource] | None = None,
        metrics: dict[str, Any] | None = None,
    ) -> None:
        """Persist the new state, then swap it in; unchanged parts are kept."""
        records = self._records if records is None else records
        sources = self._sources if sources is None else sources
        metrics = self._metrics if metrics is None else metrics

        self._persist(
            StoreSnapshot(
                abis=list(records.values()),
                contracts=list(sources.values()),
                metrics=metrics,
            )
        )
        self._records, self._sources, self._metrics = records, sources, metrics

    async def _read(self, address: str) -> ContractMetadata | None:
        self._ensure_loaded()
        record = self._records.get(address)
        return record.model_copy(deep=True) if record else None

    async def _write(self, record: ContractMetadata) -> None:
        self._ensure_loaded()
        self._commit(records={**self._records, record.address: record.model_copy(deep=True)})

    async def _read_all(self) -> list[ContractMetadata]:
        self._ensure_loaded()
        return [record.model_copy(deep=True) for record in self._records.values()]

    async def _read_source(self, address: str) -> ContractSource | None:
        self._ensure_loaded()
        record = self._sources.get(address)
        return record.model_copy() if record else None

    async def _write_source(self, record: ContractSource) -> None:
        self._ensure_loaded()
        self._commit(sources={**self._sources, record.address: record.model_copy()})

    async def _read_metric(self, key: str) -> Any:
        self._ensure_loaded()
        return copy.deepcopy(self._metrics.get(key))

    async def _write_metric(self, key: str, data: Any) -> None:
        self._ensure_loaded()
        self._commit(metrics={**self._metrics, key: copy.deepcopy(data)})

    async def _delete_all(self) -> None:
        self._ensure_loaded()
        self._commit(records={}, sources={}, metrics={})
