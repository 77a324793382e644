"""Event log decoding against stored contract ABIs."""

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from eth_abi import decode

from evmscan.infrastructure.blockchain.abi import (
    AbiIndexCache,
    canonical_type,
    entry_signature,
    normalize_value,
)
from evmscan.infrastructure.blockchain.types import DecodedEvent, LogRecord, hex_to_bytes
from evmscan.infrastructure.storage.schemas import ContractMetadata

logger = logging.getLogger(__name__)


def _is_hashed_topic(abi_type: str) -> bool:
    """Indexed strings, bytes, arrays and tuples are stored as their keccak hash."""
    return abi_type in ("bytes", "string") or abi_type.startswith("(") or abi_type.endswith("]")


class EventDecoder:
    """Decodes event logs using the emitting contract's ABI."""

    def __init__(self, index_cache: AbiIndexCache | None = None):
        """Initialize event decoder.

        Args:
            index_cache: ABI index cache, shareable with a MethodResolver
        """
        self.index_cache = index_cache or AbiIndexCache()

    def decode_log(
        self,
        log: LogRecord | Mapping[str, Any],
        metadata: ContractMetadata | None,
        log_index: int | None = None,
    ) -> DecodedEvent | None:
        """Decode a single log entry.

        Args:
            log: Log from a transaction receipt
            metadata: Stored metadata of the emitting address
            log_index: Position of the log in its transaction's log list

        Returns:
            DecodedEvent, or None when there is no ABI or nothing matches
        """
        if metadata is None or not metadata.has_abi:
            return None

        try:
            if not isinstance(log, LogRecord):
                log = LogRecord.from_rpc(log)
            topic0 = hex_to_bytes(log.topics[0]) if log.topics else None
        except (KeyError, TypeError, ValueError) as e:
            logger.debug(f"Malformed log for {metadata.address}: {e}")
            return None

        if topic0 is None:
            return None

        entry = self.index_cache.index_for(metadata).events.get(topic0)
        if entry is None:
            logger.debug(f"Unknown event topic {log.topics[0]} on {metadata.address}")
            return None

        try:
            args = self._decode_event_args(entry, log.topics[1:], hex_to_bytes(log.data))
        except Exception as e:
            logger.debug(f"Failed to decode event {entry['name']}: {e}")
            return None

        inputs = entry.get("inputs") or []
        return DecodedEvent(
            event_name=entry["name"],
            signature=entry_signature(entry),
            log_index=log_index if log_index is not None else log.log_index,
            args=args,
            named_args={
                param.get("name") or f"arg{i}": arg
                for i, (param, arg) in enumerate(zip(inputs, args))
            },
        )

    def _decode_event_args(
        self, entry: dict[str, Any], topics: Sequence[str], data: bytes
    ) -> list[Any]:
        """Decode arguments in declaration order from topics and data.

        Raises:
            ValueError: If the indexed parameter count does not match the topics
        """
        inputs = entry.get("inputs") or []
        indexed = [p for p in inputs if p.get("indexed")]
        if len(indexed) != len(topics):
            raise ValueError(
                f"expected {len(indexed)} indexed topics, got {len(topics)}"
            )

        non_indexed_types = [canonical_type(p) for p in inputs if not p.get("indexed")]
        data_values = list(decode(non_indexed_types, data)) if non_indexed_types else []
        if not non_indexed_types and data:
            raise ValueError("unexpected log data for event without data params")

        topic_iter = iter(topics)
        data_iter = iter(data_values)
        args: list[Any] = []
        for param in inputs:
            if param.get("indexed"):
                topic = next(topic_iter)
                abi_type = canonical_type(param)
                if _is_hashed_topic(abi_type):
                    args.append(topic)
                else:
                    args.append(normalize_value(decode([abi_type], hex_to_bytes(topic))[0]))
            else:
                args.append(normalize_value(next(data_iter)))
        return args

    def decode_logs(
        self,
        logs: Sequence[LogRecord],
        metadata_by_address: Mapping[str, ContractMetadata | None],
    ) -> dict[int, DecodedEvent]:
        """Decode a receipt's logs.

        Args:
            logs: Logs in receipt order
            metadata_by_address: Metadata keyed by lowercase emitting address

        Returns:
            Decoded events keyed by position in ``logs``; undecodable logs are absent
        """
        decoded: dict[int, DecodedEvent] = {}
        for position, log in enumerate(logs):
            metadata = metadata_by_address.get(log.address.lower())
            event = self.decode_log(log, metadata, log_index=position)
            if event is not None:
                decoded[position] = event
        return decoded
