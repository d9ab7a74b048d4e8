"""Exceptions raised by the dynamic fee engine.

None of these are recovered locally: each aborts the enclosing
swap or mint, which is rolled back before the error reaches the caller.
"""


class DynFeeError(Exception):
    """Base exception for all fee engine errors."""


class InsufficientHistoryError(DynFeeError):
    """Raised when a pool cannot answer a price-accumulator lookback."""


class ArithmeticOverflowError(DynFeeError):
    """Raised when fee arithmetic leaves its fixed-width integer range."""


class UnauthorizedCallbackError(DynFeeError):
    """Raised when a settlement callback has no matching in-flight operation."""


class TransferFailedError(DynFeeError):
    """Raised when a token leg cannot be transferred."""


class SettlementIncompleteError(DynFeeError):
    """Raised when a pool returns without settling the operation it was given."""


class PoolError(DynFeeError):
    """Raised by a pool for invalid requests or malformed answers."""


class LedgerError(DynFeeError):
    """Raised when a trade record would break ledger ordering or sign rules."""


class ReentrantCallError(DynFeeError):
    """Raised when a pool re-enters the engine while its own operation is open."""
