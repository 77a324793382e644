"""Merge, deduplicate, sort and paginate scanned transactions."""

import math
from collections.abc import Iterable, Sequence
from typing import TypeVar

from evmscan.infrastructure.blockchain.types import TransactionRecord
from evmscan.services.scanner.schemas import Page

T = TypeVar("T")


def paginate(items: Sequence[T], page: int, page_size: int) -> Page[T]:
    """Slice one page out of a list.

    Args:
        items: Full, already ordered list
        page: 1-based page number
        page_size: Items per page

    Returns:
        Page with totals for the whole list; empty items past the last page

    Raises:
        ValueError: If page or page_size is not positive
    """
    if page < 1:
        raise ValueError(f"page must be >= 1, got {page}")
    if page_size < 1:
        raise ValueError(f"page_size must be >= 1, got {page_size}")

    total = len(items)
    start = (page - 1) * page_size
    return Page(
        items=list(items[start : start + page_size]),
        current_page=page,
        page_size=page_size,
        total_items=total,
        total_pages=math.ceil(total / page_size),
        has_next_page=start + page_size < total,
        has_prev_page=page > 1,
    )


class TransactionAggregator:
    """Turns raw scan output into a deterministic, paginated list.

    Order: pending transactions first, then block number descending, then
    transaction index ascending (missing index last). Remaining ties keep
    first-appearance order.
    """

    @staticmethod
    def sort_key(tx: TransactionRecord) -> tuple[int, int, int, int]:
        pending = 0 if tx.block_number is None else 1
        block = -(tx.block_number or 0)
        has_index = 0 if tx.transaction_index is not None else 1
        return (pending, block, has_index, tx.transaction_index or 0)

    @staticmethod
    def dedupe(records: Iterable[TransactionRecord]) -> list[TransactionRecord]:
        """Drop repeated hashes (case-insensitive); first occurrence wins."""
        seen: set[str] = set()
        unique = []
        for record in records:
            key = record.hash.lower()
            if key in seen:
                continue
            seen.add(key)
            unique.append(record)
        return unique

    def merge(self, *groups: Iterable[TransactionRecord]) -> list[TransactionRecord]:
        """Concatenate groups (e.g. sent and received) and deduplicate."""
        return self.dedupe(record for group in groups for record in group)

    def order(self, records: Iterable[TransactionRecord]) -> list[TransactionRecord]:
        """Deduplicate and sort."""
        return sorted(self.dedupe(records), key=self.sort_key)

    def aggregate(
        self,
        records: Iterable[TransactionRecord],
        page: int,
        page_size: int,
    ) -> Page[TransactionRecord]:
        """Deduplicate, sort and return one page.

        Raises:
            ValueError: If page or page_size is not positive
        """
        if page < 1 or page_size < 1:
            raise ValueError(f"page and page_size must be >= 1, got {page}, {page_size}")
        return paginate(self.order(records), page, page_size)

    @staticmethod
    def paginate(items: Sequence[T], page: int, page_size: int) -> Page[T]:
        return paginate(items, page, page_size)
