"""Transaction API endpoints."""

import logging

from fastapi import APIRouter, HTTPException, Path, status

from evmscan.api.deps import ExplorerDep, PaginationDep
from evmscan.core.exceptions import TransactionNotFoundError
from evmscan.services.explorer import EnrichedTransaction, TransactionDetail
from evmscan.services.scanner import Page

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/transactions", tags=["Transactions"])


@router.get("", response_model=Page[EnrichedTransaction])
async def list_transactions(
    explorer: ExplorerDep,
    pagination: PaginationDep,
) -> Page[EnrichedTransaction]:
    """List transactions from the recent block window, newest first."""
    return await explorer.list_transactions(pagination.page, pagination.page_size)


@router.get("/{tx_hash}", response_model=TransactionDetail)
async def get_transaction(
    explorer: ExplorerDep,
    tx_hash: str = Path(..., pattern=r"^0x[a-fA-F0-9]{64}$", description="Transaction hash"),
) -> TransactionDetail:
    """Get a transaction with its receipt, decoded call and decoded logs."""
    try:
        return await explorer.get_transaction_detail(tx_hash)
    except TransactionNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
