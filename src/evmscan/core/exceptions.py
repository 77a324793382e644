"""Explorer exception hierarchy."""


class ExplorerError(Exception):
    """Base class for errors raised by the explorer core."""


class ScanCancelledError(ExplorerError):
    """A block window scan was cancelled before completion."""

    def __init__(self, next_block: int, blocks_fetched: int):
        self.next_block = next_block
        self.blocks_fetched = blocks_fetched
        super().__init__(
            f"Scan cancelled before block {next_block} "
            f"({blocks_fetched} blocks fetched)"
        )


class InvalidAddressError(ExplorerError, ValueError):
    """Address is not 0x-prefixed 20-byte hex."""


class AbiValidationError(ExplorerError, ValueError):
    """ABI rejected before persistence."""


class NotAContractError(ExplorerError):
    """Address holds no code, so there is nothing to verify."""


class TransactionNotFoundError(ExplorerError):
    """Node does not know the requested transaction."""


class MetadataStoreError(ExplorerError):
    """Contract metadata backend failed to read or write."""


class InvalidMetricKeyError(ExplorerError, ValueError):
    """Metric key is empty or has characters outside ``[A-Za-z0-9_.:-]``."""
