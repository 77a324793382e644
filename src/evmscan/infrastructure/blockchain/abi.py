"""ABI validation and selector indexing.

Stored ABIs are plain JSON lists as produced by solc/hardhat/foundry. The
index maps 4-byte function selectors and event topic hashes back to their ABI
entries so call data and logs can be matched without a web3 contract object.
"""

import copy
import logging
from collections import OrderedDict
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from eth_abi import is_encodable_type
from eth_utils import keccak

from evmscan.core.exceptions import AbiValidationError

if TYPE_CHECKING:
    from evmscan.infrastructure.storage.schemas import ContractMetadata

logger = logging.getLogger(__name__)

ABI_ENTRY_TYPES = {"function", "event", "error", "constructor", "fallback", "receive"}
NAMED_ENTRY_TYPES = {"function", "event", "error"}


def canonical_type(param: dict[str, Any]) -> str:
    """Collapse a parameter to its canonical type string.

    Tuples are expanded from ``components``, keeping any array suffix:
    ``tuple[]`` with components (address,uint256) becomes ``(address,uint256)[]``.
    """
    abi_type = param["type"]
    if not abi_type.startswith("tuple"):
        return abi_type
    components = param.get("components") or []
    inner = ",".join(canonical_type(c) for c in components)
    return f"({inner}){abi_type[len('tuple'):]}"


def entry_signature(entry: dict[str, Any]) -> str:
    """Canonical signature, e.g. ``transfer(address,uint256)``."""
    inputs = entry.get("inputs") or []
    return f"{entry['name']}({','.join(canonical_type(i) for i in inputs)})"


def function_selector(entry: dict[str, Any]) -> bytes:
    """First 4 bytes of keccak256 of the function signature."""
    return keccak(text=entry_signature(entry))[:4]


def event_topic(entry: dict[str, Any]) -> bytes:
    """keccak256 of the event signature (topic0)."""
    return keccak(text=entry_signature(entry))


def _validate_params(params: Any, where: str, *, allow_indexed: bool = False) -> None:
    if params is None:
        return
    if not isinstance(params, list):
        raise AbiValidationError(f"{where}: parameters must be a list")

    for position, param in enumerate(params):
        label = f"{where} parameter {position}"
        if not isinstance(param, dict):
            raise AbiValidationError(f"{label}: must be an object")
        abi_type = param.get("type")
        if not isinstance(abi_type, str) or not abi_type:
            raise AbiValidationError(f"{label}: missing type")
        if abi_type.startswith("tuple"):
            components = param.get("components")
            if not isinstance(components, list) or not components:
                raise AbiValidationError(f"{label}: tuple without components")
            _validate_params(components, label)
        if "indexed" in param and not allow_indexed:
            raise AbiValidationError(f"{label}: 'indexed' only valid on event inputs")
        if not is_encodable_type(canonical_type(param)):
            raise AbiValidationError(f"{label}: unsupported type '{abi_type}'")


def validate_abi(abi: Any) -> list[dict[str, Any]]:
    """Check an ABI is a well-formed list of entries before it is stored.

    Args:
        abi: Decoded JSON supplied by the user

    Returns:
        A deep copy of the ABI as a list of dicts (entries without ``type``
        default to function)

    Raises:
        AbiValidationError: On any structural or type error
    """
    if not isinstance(abi, list):
        raise AbiValidationError("ABI must be an array")

    validated: list[dict[str, Any]] = []
    for index, entry in enumerate(abi):
        where = f"ABI entry {index}"
        if not isinstance(entry, dict):
            raise AbiValidationError(f"{where}: must be an object")

        entry_type = entry.get("type", "function")
        if entry_type not in ABI_ENTRY_TYPES:
            raise AbiValidationError(f"{where}: unknown type '{entry_type}'")

        if entry_type in NAMED_ENTRY_TYPES:
            name = entry.get("name")
            if not isinstance(name, str) or not name:
                raise AbiValidationError(f"{where}: {entry_type} without a name")

        _validate_params(
            entry.get("inputs"), where, allow_indexed=entry_type == "event"
        )
        if entry_type == "function":
            _validate_params(entry.get("outputs"), f"{where} outputs")

        validated.append({**copy.deepcopy(entry), "type": entry_type})

    return validated


@dataclass
class AbiIndex:
    """Lookup tables for one contract's ABI."""

    functions: dict[bytes, dict[str, Any]] = field(default_factory=dict)
    events: dict[bytes, dict[str, Any]] = field(default_factory=dict)

    @classmethod
    def build(cls, abi: Iterable[dict[str, Any]]) -> "AbiIndex":
        index = cls()
        for entry in abi:
            entry_type = entry.get("type", "function")
            try:
                if entry_type == "function":
                    index.functions.setdefault(function_selector(entry), entry)
                elif entry_type == "event" and not entry.get("anonymous"):
                    index.events.setdefault(event_topic(entry), entry)
            except (KeyError, TypeError) as e:
                logger.debug(f"Skipping malformed ABI entry {entry!r}: {e}")
        return index


class AbiIndexCache:
    """LRU of built indexes, one per contract address.

    An entry is rebuilt when the stored record's timestamp changes, so a
    re-verified contract replaces its old index instead of adding one.
    """

    def __init__(self, max_size: int = 256):
        """Initialize index cache.

        Args:
            max_size: Max contracts kept before the least recently used is dropped
        """
        self.max_size = max(1, max_size)
        self._entries: OrderedDict[str, tuple[int, AbiIndex]] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def index_for(self, metadata: "ContractMetadata") -> AbiIndex:
        cached = self._entries.get(metadata.address)
        if cached is not None and cached[0] == metadata.stored_at:
            self._entries.move_to_end(metadata.address)
            return cached[1]

        index = AbiIndex.build(metadata.abi)
        self._entries[metadata.address] = (metadata.stored_at, index)
        self._entries.move_to_end(metadata.address)
        while len(self._entries) > self.max_size:
            self._entries.popitem(last=False)
        return index


def normalize_value(value: Any) -> Any:
    """Make eth_abi output JSON-friendly (bytes -> hex, tuples -> lists)."""
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, (list, tuple)):
        return [normalize_value(v) for v in value]
    return value
