"""Contract metadata storage."""

from evmscan.infrastructure.storage.api import ApiMetadataStore
from evmscan.infrastructure.storage.base import MetadataStore
from evmscan.infrastructure.storage.embedded import EmbeddedMetadataStore
from evmscan.infrastructure.storage.factory import create_metadata_store
from evmscan.infrastructure.storage.schemas import (
    ContractMetadata,
    ContractSource,
    SaveAbiRequest,
    SaveContractSourceRequest,
    SaveMetricRequest,
    normalize_address,
    validate_metric_key,
)
from evmscan.infrastructure.storage.sql import SQLMetadataStore

__all__ = [
    "ApiMetadataStore",
    "ContractMetadata",
    "ContractSource",
    "EmbeddedMetadataStore",
    "MetadataStore",
    "SQLMetadataStore",
    "SaveAbiRequest",
    "SaveContractSourceRequest",
    "SaveMetricRequest",
    "create_metadata_store",
    "normalize_address",
    "validate_metric_key",
]
