"""Explorer read service and contract metadata cache."""

from evmscan.services.explorer.cache import AbiCache
from evmscan.services.explorer.schemas import (
    AddressSummary,
    EnrichedTransaction,
    TransactionDetail,
    VerifyContractRequest,
)
from evmscan.services.explorer.service import ExplorerService

__all__ = [
    "AbiCache",
    "AddressSummary",
    "EnrichedTransaction",
    "ExplorerService",
    "TransactionDetail",
    "VerifyContractRequest",
]
