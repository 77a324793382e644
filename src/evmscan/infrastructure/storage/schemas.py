"""Contract metadata schemas."""

import re
import time
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from evmscan.core.exceptions import InvalidAddressError, InvalidMetricKeyError

ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")
METRIC_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.:-]{1,128}$")


def normalize_address(address: str) -> str:
    """Canonical metadata key: lowercase 0x-prefixed hex.

    Raises:
        InvalidAddressError: If the value is not a 20-byte hex address
    """
    if not isinstance(address, str) or not ADDRESS_PATTERN.match(address.strip()):
        raise InvalidAddressError(f"Invalid address: {address!r}")
    return address.strip().lower()


def validate_metric_key(key: str) -> str:
    """Metric keys are used verbatim as URL path segments.

    Raises:
        InvalidMetricKeyError: If the key is empty, too long or not URL-safe
    """
    if not isinstance(key, str) or not METRIC_KEY_PATTERN.match(key):
        raise InvalidMetricKeyError(f"Invalid metric key: {key!r}")
    return key


def now_millis() -> int:
    return int(time.time() * 1000)


class ContractMetadata(BaseModel):
    """A verified contract: user-supplied ABI plus display name.

    Serialized with the storage API field names (``name``, ``timestamp``).
    """

    model_config = ConfigDict(populate_by_name=True)

    address: str = Field(..., description="Lowercase contract address")
    abi: list[dict[str, Any]] = Field(default_factory=list, description="Contract ABI")
    display_name: str | None = Field(None, alias="name", description="Display name")
    verified: bool = Field(True, description="ABI known locally")
    stored_at: int = Field(
        default_factory=now_millis, alias="timestamp", description="Stored at (epoch ms)"
    )

    @property
    def has_abi(self) -> bool:
        return bool(self.abi)


class ContractSource(BaseModel):
    """What a contract was compiled from.

    Serialized as ``{address, sourceCode, compiler, optimization, runs,
    timestamp}``.
    """

    model_config = ConfigDict(populate_by_name=True)

    address: str = Field(..., description="Lowercase contract address")
    source_code: str | None = Field(None, alias="sourceCode", description="Solidity source")
    compiler: str | None = Field(None, description="Compiler version, e.g. v0.8.24")
    optimization: bool = Field(False, description="Optimizer enabled")
    runs: int | None = Field(None, ge=0, description="Optimizer runs")
    stored_at: int = Field(
        default_factory=now_millis, alias="timestamp", description="Stored at (epoch ms)"
    )


class SaveAbiRequest(BaseModel):
    """Body of ``POST /api/storage/abis/{address}``."""

    abi: Any = Field(..., description="Contract ABI (JSON array)")
    name: str | None = Field(None, description="Display name")


class SaveContractSourceRequest(BaseModel):
    """Body of ``POST /api/storage/contracts/{address}``."""

    model_config = ConfigDict(populate_by_name=True)

    source_code: str | None = Field(None, alias="sourceCode")
    compiler: str | None = None
    optimization: bool = False
    runs: int | None = Field(None, ge=0)


class SaveMetricRequest(BaseModel):
    """Body of ``POST /api/storage/metrics/{key}``."""

    data: Any = Field(None, description="Any JSON value")
