"""Blockchain infrastructure module."""

from evmscan.infrastructure.blockchain.client import ChainClient, Web3ChainClient
from evmscan.infrastructure.blockchain.events import EventDecoder
from evmscan.infrastructure.blockchain.methods import MethodResolution, MethodResolver
from evmscan.infrastructure.blockchain.selectors import KNOWN_SELECTORS, get_method_signature
from evmscan.infrastructure.blockchain.types import (
    BlockRecord,
    DecodedCall,
    DecodedEvent,
    LogRecord,
    ReceiptRecord,
    TransactionRecord,
)

__all__ = [
    # Client
    "ChainClient",
    "Web3ChainClient",
    # Records
    "BlockRecord",
    "TransactionRecord",
    "LogRecord",
    "ReceiptRecord",
    "DecodedCall",
    "DecodedEvent",
    # Decoding
    "MethodResolver",
    "MethodResolution",
    "EventDecoder",
    "KNOWN_SELECTORS",
    "get_method_signature",
]
