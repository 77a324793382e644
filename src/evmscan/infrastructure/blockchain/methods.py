"""Human-readable method names for transactions."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from eth_abi import decode

from evmscan.infrastructure.blockchain.abi import (
    AbiIndexCache,
    canonical_type,
    entry_signature,
    normalize_value,
)
from evmscan.infrastructure.blockchain.selectors import (
    CONTRACT_CREATION_LABEL,
    KNOWN_SELECTORS,
    TRANSFER_LABEL,
    get_method_signature,
    is_empty_input,
)
from evmscan.infrastructure.blockchain.types import DecodedCall, hex_to_bytes
from evmscan.infrastructure.storage.schemas import ContractMetadata

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MethodResolution:
    """Resolved method label.

    ``abi_decoded`` is True only when the name came from the contract's own
    ABI; heuristic names from the selector table carry lower confidence.
    """

    name: str
    abi_decoded: bool = False
    call: DecodedCall | None = None


class MethodResolver:
    """Resolves method names: ABI decode, then selector table, then generic label."""

    def __init__(
        self,
        selectors: Mapping[str, str] | None = None,
        index_cache: AbiIndexCache | None = None,
    ):
        """Initialize method resolver.

        Args:
            selectors: Fallback selector table (defaults to KNOWN_SELECTORS)
            index_cache: ABI index cache, shareable with an EventDecoder
        """
        self.selectors = dict(KNOWN_SELECTORS if selectors is None else selectors)
        self.index_cache = index_cache or AbiIndexCache()

    def decode_call(
        self, data: str | bytes | None, metadata: ContractMetadata | None
    ) -> DecodedCall | None:
        """Strictly decode call data against the contract's functions.

        Returns:
            DecodedCall, or None when there is no ABI, no matching selector,
            or the arguments do not decode
        """
        if metadata is None or not metadata.has_abi or is_empty_input(data):
            return None

        try:
            raw = hex_to_bytes(data)
        except ValueError as e:
            logger.debug(f"Call data for {metadata.address} is not hex: {e}")
            return None
        if len(raw) < 4:
            return None

        entry = self.index_cache.index_for(metadata).functions.get(raw[:4])
        if entry is None:
            return None

        inputs = entry.get("inputs") or []
        try:
            values = decode([canonical_type(i) for i in inputs], raw[4:])
        except Exception as e:
            logger.debug(
                f"Selector {raw[:4].hex()} matched {entry['name']} on "
                f"{metadata.address} but arguments did not decode: {e}"
            )
            return None

        args = [normalize_value(v) for v in values]
        return DecodedCall(
            function_name=entry["name"],
            signature=entry_signature(entry),
            args=args,
            named_args={
                param.get("name") or f"arg{i}": arg
                for i, (param, arg) in enumerate(zip(inputs, args))
            },
        )

    def resolve(
        self,
        to: str | None,
        data: str | bytes | None,
        metadata: ContractMetadata | None = None,
    ) -> MethodResolution:
        """Resolve a transaction's method label; first match wins.

        1. empty input -> "Transfer"
        2. no recipient -> "Contract Creation"
        3. ABI decode against metadata
        4. static selector table
        5. "Contract Call"
        """
        if is_empty_input(data):
            return MethodResolution(TRANSFER_LABEL)

        if to is None:
            return MethodResolution(CONTRACT_CREATION_LABEL)

        call = self.decode_call(data, metadata)
        if call is not None:
            return MethodResolution(call.function_name, abi_decoded=True, call=call)

        return MethodResolution(get_method_signature(data, self.selectors))

    def resolve_method_name(
        self,
        to: str | None,
        data: str | bytes | None,
        metadata: ContractMetadata | None = None,
    ) -> str:
        """Resolve just the label."""
        return self.resolve(to, data, metadata).name

    def get_method_signature(self, data: str | bytes | None) -> str:
        """Selector-table label, used before any metadata lookup."""
        return get_method_signature(data, self.selectors)
