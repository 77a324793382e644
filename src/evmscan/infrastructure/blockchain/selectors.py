"""Well-known 4-byte function selectors.

Heuristic names for calls to contracts without a stored ABI. The table is
shown verbatim in the UI, so entries must not change casually.
"""

from collections.abc import Mapping

from evmscan.infrastructure.blockchain.types import to_hex

# selector -> method name
KNOWN_SELECTORS: Mapping[str, str] = {
    "0xa9059cbb": "transfer",
    "0x23b872dd": "transferFrom",
    "0x095ea7b3": "approve",
    "0x70a08231": "balanceOf",
    "0x18160ddd": "totalSupply",
    "0x40c10f19": "mint",
    "0x42966c68": "burn",
    "0xa0712d68": "mint",
    "0x2e1a7d4d": "withdraw",
    "0xd0e30db0": "deposit",
    "0x3ccfd60b": "withdraw",
    "0x06fdde03": "name",
    "0x95d89b41": "symbol",
    "0x313ce567": "decimals",
}

TRANSFER_LABEL = "Transfer"
CONTRACT_CALL_LABEL = "Contract Call"
CONTRACT_CREATION_LABEL = "Contract Creation"

# "0x" + 8 hex chars
_SELECTOR_HEX_LENGTH = 10


def is_empty_input(data: str | bytes | None) -> bool:
    """True for missing call data, ``""``, ``"0x"`` or ``b""``."""
    if data is None:
        return True
    if isinstance(data, (bytes, bytearray)):
        return len(data) == 0
    return data in ("", "0x", "0X")


def get_method_signature(
    data: str | bytes | None,
    selectors: Mapping[str, str] = KNOWN_SELECTORS,
) -> str:
    """Heuristic method label from the call data's selector alone.

    Args:
        data: Transaction input (0x hex or bytes)
        selectors: Selector table to consult

    Returns:
        "Transfer" when there is no full selector, the table name when the
        selector is known, otherwise "Contract Call"
    """
    hex_data = to_hex(data) if not is_empty_input(data) else None
    if hex_data is None or len(hex_data) < _SELECTOR_HEX_LENGTH:
        return TRANSFER_LABEL

    method_id = hex_data[:_SELECTOR_HEX_LENGTH].lower()
    return selectors.get(method_id, CONTRACT_CALL_LABEL)
