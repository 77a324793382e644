"""Explorer read service.

Composes the scanner, aggregator and decoders into the views the HTTP API
serves. Every collaborator is passed in; nothing here is process-global.
"""

import asyncio
import logging
import math
from typing import Any

from evmscan.core.exceptions import NotAContractError, TransactionNotFoundError
from evmscan.infrastructure.blockchain.abi import AbiIndexCache
from evmscan.infrastructure.blockchain.client import ChainClient
from evmscan.infrastructure.blockchain.events import EventDecoder
from evmscan.infrastructure.blockchain.methods import MethodResolver
from evmscan.infrastructure.blockchain.types import (
    BlockRecord,
    ReceiptRecord,
    TransactionRecord,
    to_hex,
    to_int,
)
from evmscan.infrastructure.storage.schemas import ContractMetadata, normalize_address
from evmscan.services.explorer.cache import AbiCache
from evmscan.services.explorer.schemas import (
    AddressSummary,
    EnrichedTransaction,
    TransactionDetail,
)
from evmscan.services.scanner.aggregator import TransactionAggregator, paginate
from evmscan.services.scanner.scanner import BlockWindowScanner
from evmscan.services.scanner.schemas import Page

logger = logging.getLogger(__name__)


class ExplorerService:
    """Builds explorer pages and detail views from chain data."""

    def __init__(
        self,
        client: ChainClient,
        scanner: BlockWindowScanner,
        abi_cache: AbiCache,
        aggregator: TransactionAggregator | None = None,
        resolver: MethodResolver | None = None,
        event_decoder: EventDecoder | None = None,
    ):
        """Initialize explorer service.

        Args:
            client: Chain client for single-item lookups
            scanner: Block window scanner for list views
            abi_cache: Contract metadata lookups
            aggregator: Dedup/sort/paginate step
            resolver: Method label resolver
            event_decoder: Log decoder for detail views
        """
        self.client = client
        self.scanner = scanner
        self.abi_cache = abi_cache
        self.aggregator = aggregator or TransactionAggregator()
        index_cache = AbiIndexCache()
        self.resolver = resolver or MethodResolver(index_cache=index_cache)
        self.event_decoder = event_decoder or EventDecoder(index_cache=index_cache)

    async def _enrich(self, records: list[TransactionRecord]) -> list[EnrichedTransaction]:
        metadata_by_address = await self.abi_cache.preload([r.to_address for r in records])
        enriched = []
        for record in records:
            metadata = (
                metadata_by_address.get(record.to_address.lower())
                if record.to_address
                else None
            )
            resolution = self.resolver.resolve(record.to_address, record.input, metadata)
            enriched.append(
                EnrichedTransaction.from_record(
                    record,
                    resolution,
                    contract_name=metadata.display_name if metadata else None,
                )
            )
        return enriched

    async def _enriched_page(
        self, records: list[TransactionRecord], page: int, page_size: int
    ) -> Page[EnrichedTransaction]:
        result = self.aggregator.aggregate(records, page, page_size)
        return Page[EnrichedTransaction](
            items=await self._enrich(result.items),
            **result.model_dump(exclude={"items"}),
        )

    async def list_transactions(
        self,
        page: int = 1,
        page_size: int = 25,
        cancel_event: asyncio.Event | None = None,
    ) -> Page[EnrichedTransaction]:
        """Latest transactions in the scan window, newest first."""
        records = await self.scanner.scan_latest(cancel_event=cancel_event)
        return await self._enriched_page(records, page, page_size)

    async def list_address_transactions(
        self,
        address: str,
        page: int = 1,
        page_size: int = 25,
        cancel_event: asyncio.Event | None = None,
    ) -> Page[EnrichedTransaction]:
        """Transactions sent or received by an address; self-sends counted once."""
        activity = await self.scanner.scan_by_role(address, cancel_event=cancel_event)
        merged = self.aggregator.merge(activity.sent, activity.received)
        return await self._enriched_page(merged, page, page_size)

    async def get_transaction_detail(self, tx_hash: str) -> TransactionDetail:
        """Transaction with receipt, decoded call and decoded logs.

        Raises:
            TransactionNotFoundError: If the node does not know the hash
        """
        tx = await self.client.get_transaction(tx_hash)
        if not tx:
            raise TransactionNotFoundError(f"Transaction not found: {tx_hash}")

        block: dict[str, Any] | None = None
        block_number = to_int(tx.get("blockNumber"))
        if block_number is not None:
            block = await self.client.get_block(block_number)
        record = TransactionRecord.from_rpc(tx, block)

        raw_receipt = await self.client.get_transaction_receipt(tx_hash)
        receipt = ReceiptRecord.from_rpc(raw_receipt) if raw_receipt else None

        metadata = await self.abi_cache.get_metadata(record.to_address)
        resolution = self.resolver.resolve(record.to_address, record.input, metadata)

        decoded_logs = []
        if receipt is not None and receipt.logs:
            metadata_by_address = await self.abi_cache.preload(
                [log.address for log in receipt.logs]
            )
            decoded = self.event_decoder.decode_logs(receipt.logs, metadata_by_address)
            decoded_logs = [decoded[i] for i in sorted(decoded)]

        return TransactionDetail.build(
            record,
            resolution,
            receipt,
            decoded_logs,
            contract_name=metadata.display_name if metadata else None,
        )

    async def get_address_summary(self, address: str) -> AddressSummary:
        """Balance, nonce, code and verification state of an address."""
        address = normalize_address(address)
        balance = await self.client.get_balance(address)
        nonce = await self.client.get_transaction_count(address)
        code = await self.client.get_code(address)
        metadata = await self.abi_cache.get_metadata(address)
        return AddressSummary(
            address=address,
            balance=balance,
            nonce=nonce,
            code=to_hex(code) or "0x",
            is_contract=bool(code),
            verified=metadata is not None,
            contract_name=metadata.display_name if metadata else None,
        )

    async def list_blocks(
        self,
        page: int = 1,
        page_size: int = 25,
        cancel_event: asyncio.Event | None = None,
    ) -> Page[BlockRecord]:
        """Block headers from the head downward, one page at a time."""
        if page < 1 or page_size < 1:
            raise ValueError(f"page and page_size must be >= 1, got {page}, {page_size}")

        head = await self.client.get_block_number()
        total = head + 1
        start = head - (page - 1) * page_size
        items: list[BlockRecord] = []
        if start >= 0:
            items = await self.scanner.scan_blocks(start, page_size, cancel_event=cancel_event)

        return Page[BlockRecord](
            items=items,
            current_page=page,
            page_size=page_size,
            total_items=total,
            total_pages=math.ceil(total / page_size),
            has_next_page=page * page_size < total,
            has_prev_page=page > 1,
        )

    async def verify_contract(
        self, address: str, abi: Any, display_name: str | None = None
    ) -> ContractMetadata:
        """Store an ABI for a deployed contract.

        Raises:
            InvalidAddressError: If address is malformed
            NotAContractError: If no code is deployed at the address
            AbiValidationError: If the ABI is malformed
        """
        address = normalize_address(address)
        code = await self.client.get_code(address)
        if not code:
            raise NotAContractError(f"No contract code at {address}")

        record = await self.abi_cache.verify_contract(address, abi, display_name)
        logger.info(f"Verified contract {record.address} as {record.display_name or 'unnamed'}")
        return record

    async def list_verified_contracts(
        self, page: int = 1, page_size: int = 25
    ) -> Page[ContractMetadata]:
        contracts = await self.abi_cache.store.list_verified()
        return paginate(contracts, page, page_size)
