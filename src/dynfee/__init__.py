"""Dynamic fee engine fronting a concentrated-liquidity AMM pool."""

__version__ = "0.1.0"
