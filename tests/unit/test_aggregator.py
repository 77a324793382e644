"""Tests for transaction aggregation and pagination."""

import math

import pytest

from evmscan.infrastructure.blockchain.types import TransactionRecord
from evmscan.services.scanner import TransactionAggregator, paginate

from fakes import ALICE, BOB, tx_hash


def record(n: int, block: int | None, index: int | None = 0, sender=ALICE, to=BOB):
    return TransactionRecord(
        hash=tx_hash(n),
        from_address=sender,
        to_address=to,
        block_number=block,
        transaction_index=index,
    )


def numbers(page) -> list[int]:
    return [int(r.hash, 16) for r in page.items]


class TestSorting:
    """Tests for aggregate ordering."""

    def test_block_descending_then_index_ascending(self):
        """Test newest block first and in-block order kept."""
        records = [record(1, 1, 0), record(2, 3, 1), record(3, 3, 0), record(4, 2, 0)]

        page = TransactionAggregator().aggregate(records, 1, 10)

        assert numbers(page) == [3, 2, 4, 1]

    def test_pending_first(self):
        """Test transactions without a block sort ahead of mined ones."""
        records = [record(1, 9, 0), record(2, None, None), record(3, 0, 0)]

        page = TransactionAggregator().aggregate(records, 1, 10)

        assert numbers(page) == [2, 1, 3]

    def test_missing_index_sorts_last_within_block(self):
        """Test records without an index follow indexed ones in a block."""
        records = [record(1, 5, None), record(2, 5, 3), record(3, 5, 0)]

        page = TransactionAggregator().aggregate(records, 1, 10)

        assert numbers(page) == [3, 2, 1]

    def test_order_is_deterministic(self):
        """Test input order does not change the result for distinct keys."""
        records = [record(n, n // 2, n % 2) for n in range(1, 12)]
        aggregator = TransactionAggregator()

        forward = aggregator.aggregate(records, 1, 50)
        backward = aggregator.aggregate(list(reversed(records)), 1, 50)

        assert numbers(forward) == numbers(backward)


class TestDeduplication:
    """Tests for hash deduplication."""

    def test_first_occurrence_wins(self):
        """Test duplicate hashes keep the first record."""
        first = record(1, 4, 0, to=BOB)
        duplicate = record(1, 4, 0, to=ALICE)

        page = TransactionAggregator().aggregate([first, duplicate], 1, 10)

        assert page.total_items == 1
        assert page.items[0].to_address == BOB

    def test_hash_comparison_ignores_case(self):
        """Test hashes differing only in case are the same transaction."""
        lower = TransactionRecord(hash="0x" + "ab" * 32, from_address=ALICE, block_number=1)
        upper = TransactionRecord(hash="0x" + "AB" * 32, from_address=ALICE, block_number=1)

        assert len(TransactionAggregator.dedupe([lower, upper])) == 1

    def test_self_transfer_appears_once_after_merge(self):
        """Test a self-send in both sent and received lists is counted once."""
        self_send = record(1, 3, 0, sender=ALICE, to=ALICE)
        sent = [self_send, record(2, 2, 0)]
        received = [self_send, record(3, 1, 0, sender=BOB, to=ALICE)]
        aggregator = TransactionAggregator()

        page = aggregator.aggregate(aggregator.merge(sent, received), 1, 10)

        assert numbers(page) == [1, 2, 3]
        assert page.total_items == 3


class TestPagination:
    """Tests for page slicing."""

    @pytest.mark.parametrize("total", [0, 1, 7, 25, 26])
    @pytest.mark.parametrize("page_size", [1, 5, 25])
    @pytest.mark.parametrize("page", [1, 2, 3, 10])
    def test_page_length(self, total, page_size, page):
        """Test items length matches the slice formula for every page."""
        records = [record(n, n) for n in range(1, total + 1)]

        result = TransactionAggregator().aggregate(records, page, page_size)

        expected = min(page_size, max(0, total - (page - 1) * page_size))
        assert len(result.items) == expected
        assert result.total_items == total
        assert result.total_pages == math.ceil(total / page_size)
        assert result.current_page == page
        assert result.has_prev_page is (page > 1)
        assert result.has_next_page is (page * page_size < total)

    def test_second_page_continues_first(self):
        """Test consecutive pages partition the ordered list."""
        records = [record(n, n) for n in range(1, 8)]
        aggregator = TransactionAggregator()

        first = aggregator.aggregate(records, 1, 3)
        second = aggregator.aggregate(records, 2, 3)
        third = aggregator.aggregate(records, 3, 3)

        assert numbers(first) == [7, 6, 5]
        assert numbers(second) == [4, 3, 2]
        assert numbers(third) == [1]
        assert third.has_next_page is False

    def test_out_of_range_page_is_empty(self):
        """Test a page past the end is empty, not an error."""
        result = TransactionAggregator().aggregate([record(1, 1)], 5, 10)

        assert result.items == []
        assert result.total_items == 1
        assert result.total_pages == 1

    @pytest.mark.parametrize("page,page_size", [(0, 10), (-1, 10), (1, 0), (1, -5)])
    def test_non_positive_parameters_rejected(self, page, page_size):
        """Test pagination parameters must be positive."""
        with pytest.raises(ValueError):
            TransactionAggregator().aggregate([record(1, 1)], page, page_size)

    def test_generic_paginate(self):
        """Test paginate works for arbitrary lists."""
        result = paginate(["a", "b", "c"], 2, 2)

        assert result.items == ["c"]
        assert result.total_pages == 2
        assert TransactionAggregator.paginate(["a"], 1, 1).items == ["a"]
