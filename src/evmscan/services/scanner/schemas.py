"""Scanner and pagination schemas."""

from typing import Generic, TypeVar

from pydantic import BaseModel, Field

from evmscan.infrastructure.blockchain.types import TransactionRecord

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """One page of a list, with totals for the whole list."""

    items: list[T] = Field(default_factory=list, description="Items on this page")
    current_page: int = Field(..., ge=1, description="1-based page number")
    page_size: int = Field(..., ge=1, description="Maximum items per page")
    total_items: int = Field(..., ge=0, description="Items across all pages")
    total_pages: int = Field(..., ge=0, description="ceil(total_items / page_size)")
    has_next_page: bool = Field(..., description="A later page has items")
    has_prev_page: bool = Field(..., description="current_page > 1")


class AddressActivity(BaseModel):
    """Transactions of one address split by role.

    A self-send appears in both lists.
    """

    address: str = Field(..., description="Address scanned for")
    sent: list[TransactionRecord] = Field(default_factory=list)
    received: list[TransactionRecord] = Field(default_factory=list)
