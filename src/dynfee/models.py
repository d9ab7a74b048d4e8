"""Shared data models for the dynamic fee engine.

Token amounts, liquidity and fees are integers in the pool's smallest
units. Timestamps are integer Unix seconds.
"""

from dataclasses import dataclass, field
from enum import Enum


class OperationKind(str, Enum):
    """Which pool entry point an in-flight operation invoked."""

    SWAP = "swap"
    MINT = "mint"


class OperationStatus(str, Enum):
    """Lifecycle of an in-flight operation."""

    PENDING = "pending"
    SETTLED = "settled"
    ROLLED_BACK = "rolled_back"


@dataclass(frozen=True)
class TradeRecord:
    """A single recorded swap: the owed magnitude and when it settled."""

    timestamp: int
    amount: int


@dataclass(frozen=True)
class SettlementData:
    """Opaque payload a pool hands back verbatim in its settlement callback."""

    operation_id: str
    fee: int
    aux_data: bytes = b""


@dataclass(frozen=True)
class TransferReceipt:
    """Proof of a completed token transfer, used to reverse it on rollback."""

    token: str
    sender: str
    recipient: str
    amount: int


@dataclass
class PendingOperation:
    """The single in-flight initiate/settle sequence of a coordinator.

    Holds what a settlement callback must match (pool address, kind and
    operation id) plus the undo journal for rollback.
    """

    operation_id: str
    kind: OperationKind
    pool_address: str
    token0: str
    token1: str
    fee: int
    status: OperationStatus = OperationStatus.PENDING
    settling: bool = False
    record: TradeRecord | None = None
    receipts: list[TransferReceipt] = field(default_factory=list)


@dataclass(frozen=True)
class FeeQuote:
    """Inputs and result of one fee derivation."""

    volume: int
    liquidity: int
    volatility: int
    volume_factor: int
    liquidity_factor: int
    volatility_factor: int
    raw_fee: int
    fee: int
    computed_at: int


@dataclass(frozen=True)
class OperationResult:
    """Outcome of a settled swap or mint.

    For swaps, positive amounts were paid to the pool and negative amounts
    were paid out by it. For mints, both amounts are what the pool was owed.
    """

    operation_id: str
    kind: OperationKind
    fee: int
    amount0: int
    amount1: int
    trade: TradeRecord | None = None
