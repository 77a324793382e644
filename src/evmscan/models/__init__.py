"""Database models for the explorer."""

from evmscan.models.base import Base
from evmscan.models.contract_abi import ContractAbi
from evmscan.models.contract_source import ContractSourceCode
from evmscan.models.metric import StorageMetric

__all__ = [
    "Base",
    "ContractAbi",
    "ContractSourceCode",
    "StorageMetric",
]
