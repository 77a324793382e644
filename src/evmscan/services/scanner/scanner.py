"""Recent-block window scanner.

Walks blocks from a starting number downward and collects their
transactions, optionally only those touching one address. The window is
bounded, so this is a convenience scanner and not an indexer: anything older
than ``blocks_to_scan`` blocks is invisible.
"""

import asyncio
import logging
from typing import Any

from evmscan.core.exceptions import ScanCancelledError
from evmscan.infrastructure.blockchain.client import ChainClient
from evmscan.infrastructure.blockchain.types import BlockRecord, TransactionRecord
from evmscan.infrastructure.storage.schemas import normalize_address
from evmscan.services.scanner.schemas import AddressActivity

logger = logging.getLogger(__name__)


def block_window(start_block: int, max_blocks: int) -> list[int]:
    """Block numbers to visit, strictly decreasing and never below 0.

    Args:
        start_block: First (highest) block number
        max_blocks: Window size

    Returns:
        ``[start_block, start_block - 1, ...]``, at most max_blocks long
    """
    if start_block < 0:
        raise ValueError(f"start_block must be >= 0, got {start_block}")
    if max_blocks < 1:
        raise ValueError(f"max_blocks must be >= 1, got {max_blocks}")
    stop = max(start_block - max_blocks, -1)
    return list(range(start_block, stop, -1))


class BlockWindowScanner:
    """Scans a bounded window of recent blocks for transactions.

    Block fetches run in descending batches of ``concurrency`` requests.
    With the default of 1 the scan is strictly sequential. Results are always
    assembled in descending block order, whatever order the fetches finish in.
    Any fetch error aborts the whole scan and propagates unchanged.
    """

    def __init__(
        self,
        client: ChainClient,
        blocks_to_scan: int = 100,
        concurrency: int = 1,
    ):
        """Initialize scanner.

        Args:
            client: Chain client used for block fetches
            blocks_to_scan: Default window size
            concurrency: Maximum in-flight block fetches
        """
        if blocks_to_scan < 1:
            raise ValueError("blocks_to_scan must be >= 1")
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self.client = client
        self.blocks_to_scan = blocks_to_scan
        self.concurrency = concurrency

    async def scan(
        self,
        start_block: int,
        max_blocks: int | None = None,
        address_filter: str | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> list[TransactionRecord]:
        """Collect transactions from ``start_block`` downward.

        Args:
            start_block: Highest block to scan, normally the chain head
            max_blocks: Window size (defaults to blocks_to_scan)
            address_filter: Keep only transactions sent or received by this address
            cancel_event: Checked before every block fetch

        Returns:
            Transactions in block-descending, in-block order. A self-send
            appears once.

        Raises:
            ScanCancelledError: If cancel_event is set before the scan completes
            InvalidAddressError: If address_filter is malformed
        """
        target = normalize_address(address_filter) if address_filter else None
        numbers = block_window(
            start_block, self.blocks_to_scan if max_blocks is None else max_blocks
        )
        logger.debug(
            f"Scanning blocks {numbers[0]}..{numbers[-1]}"
            + (f" for {target}" if target else "")
        )

        blocks = await self._fetch_blocks(numbers, True, cancel_event)

        transactions: list[TransactionRecord] = []
        for block in blocks:
            for tx in block.transactions:
                if target is None or tx.involves(target):
                    transactions.append(tx)
        return transactions

    async def scan_latest(
        self,
        address_filter: str | None = None,
        max_blocks: int | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> list[TransactionRecord]:
        """Scan the window ending at the current chain head."""
        head = await self.client.get_block_number()
        return await self.scan(
            head,
            max_blocks=max_blocks,
            address_filter=address_filter,
            cancel_event=cancel_event,
        )

    async def scan_by_role(
        self,
        address: str,
        start_block: int | None = None,
        max_blocks: int | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> AddressActivity:
        """Split an address's transactions into sent and received.

        A self-send is listed in both; merge the two with
        ``TransactionAggregator.merge`` to count it once.
        """
        target = normalize_address(address)
        if start_block is None:
            start_block = await self.client.get_block_number()
        transactions = await self.scan(
            start_block,
            max_blocks=max_blocks,
            address_filter=target,
            cancel_event=cancel_event,
        )
        return AddressActivity(
            address=target,
            sent=[tx for tx in transactions if tx.sent_by(target)],
            received=[tx for tx in transactions if tx.received_by(target)],
        )

    async def scan_blocks(
        self,
        start_block: int,
        count: int,
        cancel_event: asyncio.Event | None = None,
    ) -> list[BlockRecord]:
        """Fetch block headers from ``start_block`` downward.

        Transactions are not loaded; ``transaction_count`` is still set.
        """
        numbers = block_window(start_block, count)
        return await self._fetch_blocks(numbers, False, cancel_event)

    async def _fetch_blocks(
        self,
        numbers: list[int],
        full_transactions: bool,
        cancel_event: asyncio.Event | None,
    ) -> list[BlockRecord]:
        blocks: list[BlockRecord] = []
        for offset in range(0, len(numbers), self.concurrency):
            batch = numbers[offset : offset + self.concurrency]
            if cancel_event is not None and cancel_event.is_set():
                logger.warning(
                    f"Scan cancelled before block {batch[0]} "
                    f"after {len(blocks)} blocks"
                )
                raise ScanCancelledError(next_block=batch[0], blocks_fetched=len(blocks))

            try:
                raw_blocks = await self._fetch_batch(batch, full_transactions)
            except Exception as e:
                logger.warning(f"Scan aborted in blocks {batch[0]}..{batch[-1]}: {e}")
                raise

            blocks.extend(BlockRecord.from_rpc(raw) for raw in raw_blocks)
        return blocks

    async def _fetch_batch(
        self, batch: list[int], full_transactions: bool
    ) -> list[dict[str, Any]]:
        """Fetch a batch concurrently, keeping the batch's order.

        The first failure cancels the rest of the batch and is re-raised.
        """
        if len(batch) == 1:
            return [await self.client.get_block(batch[0], full_transactions=full_transactions)]

        tasks = [
            asyncio.create_task(
                self.client.get_block(number, full_transactions=full_transactions)
            )
            for number in batch
        ]
        try:
            done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            raise
        failed = next((t for t in tasks if t in done and t.exception() is not None), None)
        if failed is not None:
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            raise failed.exception()
        return [task.result() for task in tasks]
