"""Chain client contract and its web3 implementation."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any

from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import BlockNotFound, TransactionNotFound, Web3RPCError
from web3.middleware import ExtraDataToPOAMiddleware
from web3.types import BlockIdentifier

from evmscan.core.config import get_settings

logger = logging.getLogger(__name__)


class ChainClient(ABC):
    """JSON-RPC access consumed by the explorer core.

    Implementations return plain mappings in web3's shape and let node errors
    propagate unmodified.
    """

    @abstractmethod
    async def get_block_number(self) -> int:
        """Get current block number."""
        ...

    @abstractmethod
    async def get_block(
        self, block_identifier: BlockIdentifier, full_transactions: bool = False
    ) -> dict[str, Any]:
        """Get block by number or hash, optionally with full transaction objects."""
        ...

    @abstractmethod
    async def get_transaction(self, tx_hash: str) -> dict[str, Any] | None:
        """Get transaction by hash (None if the node does not know it)."""
        ...

    @abstractmethod
    async def get_transaction_receipt(self, tx_hash: str) -> dict[str, Any] | None:
        """Get transaction receipt (None while pending)."""
        ...

    @abstractmethod
    async def get_code(self, address: str) -> bytes:
        """Get deployed bytecode at address."""
        ...

    @abstractmethod
    async def get_balance(self, address: str) -> int:
        """Get native balance in wei."""
        ...

    @abstractmethod
    async def get_transaction_count(self, address: str) -> int:
        """Get transaction count (nonce) for address."""
        ...


class Web3ChainClient(ChainClient):
    """AsyncWeb3-backed client with ordered endpoint failover."""

    def __init__(
        self,
        rpc_urls: list[str] | None = None,
        max_retries: int = 1,
        retry_delay: float = 0.5,
        poa: bool | None = None,
    ):
        """Initialize chain client.

        Args:
            rpc_urls: RPC endpoints (primary + backups). If None, uses settings.
            max_retries: Attempts per endpoint before moving to the next one
            retry_delay: Base delay between attempts in seconds
            poa: Inject the POA extraData middleware. If None, uses settings.
        """
        settings = get_settings()
        self.rpc_urls = rpc_urls or settings.rpc_urls
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.poa = settings.rpc_poa if poa is None else poa
        self._current_rpc_index = 0
        self._web3_by_index: dict[int, AsyncWeb3] = {}

    def _get_web3(self, rpc_index: int) -> AsyncWeb3:
        """Get or create the Web3 instance for an endpoint."""
        w3 = self._web3_by_index.get(rpc_index)
        if w3 is None:
            w3 = AsyncWeb3(AsyncHTTPProvider(self.rpc_urls[rpc_index]))
            if self.poa:
                w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
            self._web3_by_index[rpc_index] = w3
        return w3

    async def _execute_with_failover(self, method: str, *args: Any, **kwargs: Any) -> Any:
        """Call ``web3.eth.<method>``, moving to the next endpoint on failure.

        Not-found answers are authoritative and are raised immediately. When
        every endpoint fails, the last error is re-raised unchanged.
        """
        last_error: Exception | None = None

        for rpc_offset in range(len(self.rpc_urls)):
            rpc_index = (self._current_rpc_index + rpc_offset) % len(self.rpc_urls)
            web3 = self._get_web3(rpc_index)

            for attempt in range(self.max_retries):
                try:
                    result = await getattr(web3.eth, method)(*args, **kwargs)
                    self._current_rpc_index = rpc_index
                    return result

                except (BlockNotFound, TransactionNotFound):
                    raise

                except Exception as e:
                    last_error = e
                    logger.warning(
                        f"RPC {self.rpc_urls[rpc_index]} {method} failed "
                        f"(attempt {attempt + 1}): {e}"
                    )
                    if attempt < self.max_retries - 1:
                        await asyncio.sleep(self.retry_delay * (attempt + 1))

            if len(self.rpc_urls) > 1:
                logger.warning(f"Switching from RPC {self.rpc_urls[rpc_index]} to next backup")

        if last_error is None:
            raise Web3RPCError(f"No RPC endpoints configured for {method}")
        raise last_error

    async def get_block_number(self) -> int:
        """Get current block number."""
        return await self._execute_with_failover("get_block_number")

    async def get_block(
        self, block_identifier: BlockIdentifier, full_transactions: bool = False
    ) -> dict[str, Any]:
        """Get block by number or hash."""
        block = await self._execute_with_failover(
            "get_block", block_identifier, full_transactions
        )
        if not block:
            return {}
        block = dict(block)
        if full_transactions:
            block["transactions"] = [dict(tx) for tx in block.get("transactions", [])]
        return block

    async def get_transaction(self, tx_hash: str) -> dict[str, Any] | None:
        """Get transaction by hash."""
        try:
            tx = await self._execute_with_failover("get_transaction", tx_hash)
        except TransactionNotFound:
            return None
        return dict(tx) if tx else None

    async def get_transaction_receipt(self, tx_hash: str) -> dict[str, Any] | None:
        """Get transaction receipt."""
        try:
            receipt = await self._execute_with_failover("get_transaction_receipt", tx_hash)
        except TransactionNotFound:
            return None
        if not receipt:
            return None
        receipt = dict(receipt)
        receipt["logs"] = [dict(log) for log in receipt.get("logs", [])]
        return receipt

    async def get_code(self, address: str) -> bytes:
        """Get deployed bytecode at address."""
        return bytes(
            await self._execute_with_failover("get_code", AsyncWeb3.to_checksum_address(address))
        )

    async def get_balance(self, address: str) -> int:
        """Get native balance in wei."""
        return await self._execute_with_failover(
            "get_balance", AsyncWeb3.to_checksum_address(address)
        )

    async def get_transaction_count(self, address: str) -> int:
        """Get transaction count (nonce) for address."""
        return await self._execute_with_failover(
            "get_transaction_count", AsyncWeb3.to_checksum_address(address)
        )
