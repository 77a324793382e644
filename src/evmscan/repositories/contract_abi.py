"""Repository for verified contract ABIs."""

from typing import Sequence

from evmscan.models.contract_abi import ContractAbi
from evmscan.repositories.base import BaseRepository


class ContractAbiRepository(BaseRepository[ContractAbi]):
    """Repository for ContractAbi database operations.

    Rows are keyed by lowercase address; callers normalize before querying.
    """

    model = ContractAbi

    async def get_verified(self) -> Sequence[ContractAbi]:
        """Get all verified contracts, oldest first.

        @returns List of ContractAbi rows
        """
        return await self.get_by_filter(
            verified=True, order_by=ContractAbi.timestamp
        )
