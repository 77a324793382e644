"""Address API endpoints."""

import logging

from fastapi import APIRouter, HTTPException, status

from evmscan.api.deps import ExplorerDep, PaginationDep
from evmscan.core.exceptions import InvalidAddressError
from evmscan.services.explorer import AddressSummary, EnrichedTransaction
from evmscan.services.scanner import Page

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/addresses", tags=["Addresses"])


@router.get("/{address}", response_model=AddressSummary)
async def get_address(
    address: str,
    explorer: ExplorerDep,
) -> AddressSummary:
    """Get balance, nonce, code and verification state of an address."""
    try:
        return await explorer.get_address_summary(address)
    except InvalidAddressError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )


@router.get("/{address}/transactions", response_model=Page[EnrichedTransaction])
async def list_address_transactions(
    address: str,
    explorer: ExplorerDep,
    pagination: PaginationDep,
) -> Page[EnrichedTransaction]:
    """List transactions sent or received by an address in the recent window."""
    try:
        return await explorer.list_address_transactions(
            address, pagination.page, pagination.page_size
        )
    except InvalidAddressError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
