"""Repository for contract source metadata."""

from evmscan.models.contract_source import ContractSourceCode
from evmscan.repositories.base import BaseRepository


class ContractSourceRepository(BaseRepository[ContractSourceCode]):
    """Repository for ContractSourceCode rows, keyed by lowercase address."""

    model = ContractSourceCode
