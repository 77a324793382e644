"""Repository layer for database operations.

Async repository implementations using SQLAlchemy 2.x.
"""

from evmscan.repositories.base import BaseRepository
from evmscan.repositories.contract_abi import ContractAbiRepository
from evmscan.repositories.contract_source import ContractSourceRepository
from evmscan.repositories.metric import MetricRepository

__all__ = [
    "BaseRepository",
    "ContractAbiRepository",
    "ContractSourceRepository",
    "MetricRepository",
]
