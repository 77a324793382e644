"""evmscan-core: block explorer core for local EVM development networks."""

__version__ = "0.1.0"
