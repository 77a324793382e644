"""Explorer-ready records built from raw JSON-RPC responses.

web3 hands back ``AttributeDict`` objects holding ``HexBytes`` and ints, while
tests and the storage API deal in plain dicts with 0x strings. The
``from_rpc`` constructors accept either shape.
"""

from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer


def to_hex(value: Any) -> str | None:
    """Render bytes-like or hex string values as 0x-prefixed lowercase hex."""
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    text = str(value)
    if text.startswith(("0x", "0X")):
        return "0x" + text[2:].lower()
    return "0x" + text.lower()


def to_int(value: Any) -> int | None:
    """Coerce RPC quantities (int or hex string) to int."""
    if value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, (bytes, bytearray)):
        return int.from_bytes(value, "big")
    text = str(value)
    return int(text, 16) if text.startswith(("0x", "0X")) else int(text)


def to_address(value: Any) -> str | None:
    """Addresses keep the node's casing; only bytes are converted."""
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        return to_hex(value)
    return str(value)


def hex_to_bytes(value: str | bytes | None) -> bytes:
    """Decode 0x hex (or pass bytes through)."""
    if value is None:
        return b""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    text = value[2:] if value.startswith(("0x", "0X")) else value
    if len(text) % 2:
        text = "0" + text
    return bytes.fromhex(text)


class TransactionRecord(BaseModel):
    """A transaction with its containing block's fields attached."""

    model_config = ConfigDict(frozen=True)

    hash: str = Field(..., description="Transaction hash")
    from_address: str = Field(..., description="Sender address")
    to_address: str | None = Field(None, description="Recipient (None = contract creation)")
    value: int = Field(0, ge=0, description="Value in wei")
    input: str = Field("0x", description="Call data")
    gas: int = Field(0, description="Gas limit")
    gas_price: int | None = Field(None, description="Legacy gas price")
    max_fee_per_gas: int | None = Field(None, description="EIP-1559 max fee")
    max_priority_fee_per_gas: int | None = Field(None, description="EIP-1559 tip")
    nonce: int | None = Field(None, description="Sender nonce")
    transaction_index: int | None = Field(None, description="Index within block")
    type: int | None = Field(None, description="Envelope type")
    block_number: int | None = Field(None, description="Containing block (None = pending)")
    block_hash: str | None = Field(None, description="Containing block hash")
    timestamp: int | None = Field(None, description="Block timestamp (seconds)")
    base_fee_per_gas: int | None = Field(None, description="Block base fee")

    @classmethod
    def from_rpc(
        cls,
        tx: Mapping[str, Any],
        block: Mapping[str, Any] | None = None,
    ) -> "TransactionRecord":
        """Build from an RPC transaction, attaching block fields if given.

        Args:
            tx: Transaction object from eth_getBlockByNumber / eth_getTransactionByHash
            block: Containing block; its number, hash, timestamp and base fee win
        """
        block_number = to_int(tx.get("blockNumber"))
        block_hash = to_hex(tx.get("blockHash"))
        timestamp = None
        base_fee = None
        if block is not None:
            block_number = to_int(block.get("number"))
            block_hash = to_hex(block.get("hash"))
            timestamp = to_int(block.get("timestamp"))
            base_fee = to_int(block.get("baseFeePerGas"))

        return cls(
            hash=to_hex(tx["hash"]),
            from_address=to_address(tx["from"]),
            to_address=to_address(tx.get("to")),
            value=to_int(tx.get("value")) or 0,
            input=to_hex(tx.get("input", tx.get("data"))) or "0x",
            gas=to_int(tx.get("gas")) or 0,
            gas_price=to_int(tx.get("gasPrice")),
            max_fee_per_gas=to_int(tx.get("maxFeePerGas")),
            max_priority_fee_per_gas=to_int(tx.get("maxPriorityFeePerGas")),
            nonce=to_int(tx.get("nonce")),
            transaction_index=to_int(tx.get("transactionIndex")),
            type=to_int(tx.get("type")),
            block_number=block_number,
            block_hash=block_hash,
            timestamp=timestamp,
            base_fee_per_gas=base_fee,
        )

    @property
    def is_pending(self) -> bool:
        return self.block_number is None

    @property
    def is_contract_creation(self) -> bool:
        return self.to_address is None

    def sent_by(self, address: str) -> bool:
        return self.from_address.lower() == address.lower()

    def received_by(self, address: str) -> bool:
        return self.to_address is not None and self.to_address.lower() == address.lower()

    def involves(self, address: str) -> bool:
        """True if the address is sender or recipient (case-insensitive)."""
        return self.sent_by(address) or self.received_by(address)

    @field_serializer(
        "value", "gas_price", "max_fee_per_gas", "max_priority_fee_per_gas",
        "base_fee_per_gas", when_used="json",
    )
    def _serialize_wei(self, value: int | None) -> str | None:
        # JSON consumers lose precision above 2**53
        return None if value is None else str(value)


class BlockRecord(BaseModel):
    """A block header plus its (block-annotated) transactions."""

    model_config = ConfigDict(frozen=True)

    number: int = Field(..., ge=0, description="Block number")
    hash: str = Field(..., description="Block hash")
    parent_hash: str = Field(..., description="Parent block hash")
    timestamp: int = Field(..., description="Block timestamp (seconds)")
    miner: str | None = Field(None, description="Fee recipient")
    gas_used: int = Field(0, description="Gas used")
    gas_limit: int = Field(0, description="Gas limit")
    base_fee_per_gas: int | None = Field(None, description="EIP-1559 base fee")
    transaction_count: int = Field(0, description="Number of transactions")
    transactions: list[TransactionRecord] = Field(default_factory=list)

    @classmethod
    def from_rpc(cls, block: Mapping[str, Any]) -> "BlockRecord":
        """Build from an RPC block; hash-only transaction lists are counted, not kept."""
        raw_txs = list(block.get("transactions") or [])
        transactions = [
            TransactionRecord.from_rpc(tx, block)
            for tx in raw_txs
            if isinstance(tx, Mapping)
        ]
        return cls(
            number=to_int(block["number"]),
            hash=to_hex(block["hash"]),
            parent_hash=to_hex(block.get("parentHash")) or "0x" + "00" * 32,
            timestamp=to_int(block.get("timestamp")) or 0,
            miner=to_address(block.get("miner")),
            gas_used=to_int(block.get("gasUsed")) or 0,
            gas_limit=to_int(block.get("gasLimit")) or 0,
            base_fee_per_gas=to_int(block.get("baseFeePerGas")),
            transaction_count=len(raw_txs),
            transactions=transactions,
        )


class LogRecord(BaseModel):
    """An event log emitted during a transaction."""

    model_config = ConfigDict(frozen=True)

    address: str
    topics: list[str] = Field(default_factory=list)
    data: str = "0x"
    log_index: int | None = None
    transaction_index: int | None = None
    transaction_hash: str | None = None
    block_number: int | None = None
    removed: bool = False

    @classmethod
    def from_rpc(cls, log: Mapping[str, Any]) -> "LogRecord":
        return cls(
            address=to_address(log["address"]),
            topics=[to_hex(t) for t in log.get("topics") or []],
            data=to_hex(log.get("data")) or "0x",
            log_index=to_int(log.get("logIndex")),
            transaction_index=to_int(log.get("transactionIndex")),
            transaction_hash=to_hex(log.get("transactionHash")),
            block_number=to_int(log.get("blockNumber")),
            removed=bool(log.get("removed", False)),
        )


class ReceiptRecord(BaseModel):
    """Execution outcome of a mined transaction."""

    model_config = ConfigDict(frozen=True)

    transaction_hash: str
    status: Literal["success", "reverted"] | None = None
    block_number: int | None = None
    block_hash: str | None = None
    transaction_index: int | None = None
    gas_used: int | None = None
    cumulative_gas_used: int | None = None
    effective_gas_price: int | None = None
    contract_address: str | None = None
    logs: list[LogRecord] = Field(default_factory=list)

    @classmethod
    def from_rpc(cls, receipt: Mapping[str, Any]) -> "ReceiptRecord":
        status = to_int(receipt.get("status"))
        return cls(
            transaction_hash=to_hex(receipt["transactionHash"]),
            status=None if status is None else ("success" if status == 1 else "reverted"),
            block_number=to_int(receipt.get("blockNumber")),
            block_hash=to_hex(receipt.get("blockHash")),
            transaction_index=to_int(receipt.get("transactionIndex")),
            gas_used=to_int(receipt.get("gasUsed")),
            cumulative_gas_used=to_int(receipt.get("cumulativeGasUsed")),
            effective_gas_price=to_int(receipt.get("effectiveGasPrice")),
            contract_address=to_address(receipt.get("contractAddress")),
            logs=[LogRecord.from_rpc(log) for log in receipt.get("logs") or []],
        )


class DecodedCall(BaseModel):
    """Function call input decoded against a stored ABI."""

    function_name: str
    signature: str
    args: list[Any] = Field(default_factory=list)
    named_args: dict[str, Any] = Field(default_factory=dict)


class DecodedEvent(BaseModel):
    """Event log decoded against the emitting contract's ABI."""

    event_name: str
    signature: str
    log_index: int | None = None
    args: list[Any] = Field(default_factory=list)
    named_args: dict[str, Any] = Field(default_factory=dict)
