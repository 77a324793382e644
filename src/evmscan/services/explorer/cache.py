"""Per-process cache of contract metadata lookups."""

import logging
from typing import Any

from evmscan.core.exceptions import MetadataStoreError
from evmscan.infrastructure.storage.base import MetadataStore
from evmscan.infrastructure.storage.schemas import ContractMetadata

logger = logging.getLogger(__name__)


class AbiCache:
    """Memoizes metadata store reads per lowercase address.

    Misses are cached too, so an unverified address costs one store read per
    process until something is verified or the cache is cleared. Writes go
    through the cache so the entry is replaced immediately.
    """

    def __init__(self, store: MetadataStore):
        self.store = store
        self._entries: dict[str, ContractMetadata | None] = {}

    async def get_metadata(self, address: str | None) -> ContractMetadata | None:
        """Get metadata for an address, None if unknown or unreadable.

        Store failures are logged and not cached.
        """
        if not address:
            return None
        key = address.lower()
        if key in self._entries:
            return self._entries[key]

        try:
            metadata = await self.store.get(key)
        except MetadataStoreError as e:
            logger.warning(f"Metadata lookup failed for {key}: {e}")
            return None

        self._entries[key] = metadata
        return metadata

    async def preload(self, addresses: list[str | None]) -> dict[str, ContractMetadata | None]:
        """Look up several addresses, keyed by lowercase address."""
        result: dict[str, ContractMetadata | None] = {}
        for address in addresses:
            if address and address.lower() not in result:
                result[address.lower()] = await self.get_metadata(address)
        return result

    async def verify_contract(
        self, address: str, abi: Any, display_name: str | None = None
    ) -> ContractMetadata:
        """Store an ABI and refresh the cached entry."""
        record = await self.store.save(address, abi, display_name)
        self._entries[record.address] = record
        return record

    async def clear(self) -> None:
        """Clear the store and the cache."""
        await self.store.clear()
        self._entries.clear()
