"""Block window scanning and transaction aggregation."""

from evmscan.services.scanner.aggregator import TransactionAggregator, paginate
from evmscan.services.scanner.scanner import BlockWindowScanner, block_window
from evmscan.services.scanner.schemas import AddressActivity, Page

__all__ = [
    "AddressActivity",
    "BlockWindowScanner",
    "Page",
    "TransactionAggregator",
    "block_window",
    "paginate",
]
