"""Block API endpoints."""

from fastapi import APIRouter

from evmscan.api.deps import ExplorerDep, PaginationDep
from evmscan.infrastructure.blockchain import BlockRecord
from evmscan.services.scanner import Page

router = APIRouter(prefix="/blocks", tags=["Blocks"])


@router.get("", response_model=Page[BlockRecord])
async def list_blocks(
    explorer: ExplorerDep,
    pagination: PaginationDep,
) -> Page[BlockRecord]:
    """List block headers from the chain head downward."""
    return await explorer.list_blocks(pagination.page, pagination.page_size)
