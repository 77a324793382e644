"""Contract metadata store interface.

Every backend goes through the same normalize / validate / lock sequence
here, so they differ only in where records live.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any

from evmscan.infrastructure.blockchain.abi import validate_abi
from evmscan.infrastructure.storage.schemas import (
    ContractMetadata,
    ContractSource,
    normalize_address,
    now_millis,
    validate_metric_key,
)

logger = logging.getLogger(__name__)


class MetadataStore(ABC):
    """Persistence of verified contract ABIs and related explorer data.

    Holds three kinds of record: ABIs and contract sources keyed by address,
    and opaque JSON metrics keyed by name. Reads run concurrently; writes
    (save/clear) are serialized per store and the last write wins.
    """

    def __init__(self) -> None:
        self._write_lock = asyncio.Lock()

    async def get(self, address: str) -> ContractMetadata | None:
        """Get stored metadata for an address (any casing).

        Returns:
            ContractMetadata or None if the address was never verified
        """
        return await self._read(normalize_address(address))

    async def save(
        self, address: str, abi: Any, display_name: str | None = None
    ) -> ContractMetadata:
        """Store an ABI, replacing any previous record for the address.

        Args:
            address: Contract address (any casing)
            abi: ABI as a JSON list
            display_name: Optional contract name

        Returns:
            The stored record

        Raises:
            InvalidAddressError: If address is malformed
            AbiValidationError: If the ABI is malformed; nothing is written
        """
        record = ContractMetadata(
            address=normalize_address(address),
            abi=validate_abi(abi),
            display_name=display_name,
            verified=True,
            stored_at=now_millis(),
        )
        async with self._write_lock:
            await self._write(record)
        logger.info(f"Stored ABI for {record.address} ({len(record.abi)} entries)")
        return record

    async def list_verified(self) -> list[ContractMetadata]:
        """All stored records (every stored record is verified)."""
        return [record for record in await self._read_all() if record.verified]

    async def get_source(self, address: str) -> ContractSource | None:
        """Get the stored source metadata for an address (any casing)."""
        return await self._read_source(normalize_address(address))

    async def save_source(
        self,
        address: str,
        source_code: str | None = None,
        compiler: str | None = None,
        optimization: bool = False,
        runs: int | None = None,
    ) -> ContractSource:
        """Store source metadata, replacing any previous record for the address.

        Raises:
            InvalidAddressError: If address is malformed
        """
        record = ContractSource(
            address=normalize_address(address),
            source_code=source_code,
            compiler=compiler,
            optimization=optimization,
            runs=runs,
            stored_at=now_millis(),
        )
        async with self._write_lock:
            await self._write_source(record)
        logger.info(f"Stored contract source for {record.address}")
        return record

    async def get_metric(self, key: str) -> Any:
        """Get a stored metric value, None if never saved."""
        return await self._read_metric(validate_metric_key(key))

    async def save_metric(self, key: str, data: Any) -> None:
        """Store a JSON value under a metric key.

        Raises:
            InvalidMetricKeyError: If the key is not URL-safe
        """
        key = validate_metric_key(key)
        async with self._write_lock:
            await self._write_metric(key, data)
        logger.debug(f"Stored metric {key}")

    async def clear(self) -> None:
        """Delete every ABI, contract source and metric."""
        async with self._write_lock:
            await self._delete_all()
        logger.info("Cleared all contract metadata")

    async def close(self) -> None:
        """Release backend resources."""

    @abstractmethod
    async def _read(self, address: str) -> ContractMetadata | None:
        """Read one record by normalized address."""
        ...

    @abstractmethod
    async def _write(self, record: ContractMetadata) -> None:
        """Insert or fully replace a record."""
        ...

    @abstractmethod
    async def _read_all(self) -> list[ContractMetadata]:
        """Read every record."""
        ...

    @abstractmethod
    async def _read_source(self, address: str) -> ContractSource | None:
        ...

    @abstractmethod
    async def _write_source(self, record: ContractSource) -> None:
        ...

    @abstractmethod
    async def _read_metric(self, key: str) -> Any:
        ...

    @abstractmethod
    async def _write_metric(self, key: str, data: Any) -> None:
        ...

    @abstractmethod
    async def _delete_all(self) -> None:
        """Delete every record of every kind."""
        ...
