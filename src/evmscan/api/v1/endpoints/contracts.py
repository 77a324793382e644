"""Contract verification API endpoints."""

import logging

from fastapi import APIRouter, HTTPException, status

from evmscan.api.deps import ExplorerDep, PaginationDep
from evmscan.core.exceptions import (
    AbiValidationError,
    InvalidAddressError,
    NotAContractError,
)
from evmscan.infrastructure.storage import ContractMetadata
from evmscan.services.explorer import VerifyContractRequest
from evmscan.services.scanner import Page

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/contracts", tags=["Contracts"])


@router.post("/{address}/verify", response_model=ContractMetadata)
async def verify_contract(
    address: str,
    request: VerifyContractRequest,
    explorer: ExplorerDep,
) -> ContractMetadata:
    """Attach a user-supplied ABI to a deployed contract.

    The ABI is trusted as given; only its shape is checked.
    """
    try:
        return await explorer.verify_contract(address, request.abi, request.name)
    except (InvalidAddressError, NotAContractError, AbiValidationError) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )


@router.get("/verified", response_model=Page[ContractMetadata])
async def list_verified_contracts(
    explorer: ExplorerDep,
    pagination: PaginationDep,
) -> Page[ContractMetadata]:
    """List verified contracts."""
    return await explorer.list_verified_contracts(pagination.page, pagination.page_size)
