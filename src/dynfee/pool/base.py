"""Abstract interfaces between the fee engine and an external AMM pool.

The engine depends only on these contracts. A pool calls back into the
SettlementCallbacks it was handed while its swap or mint is still running,
so settlement completes before the pool call returns.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from decimal import Decimal

from dynfee.models import SettlementData


class SettlementCallbacks(ABC):
    """Receiver of a pool's payment demands."""

    @abstractmethod
    async def settle_swap(
        self,
        sender: str,
        amount0_delta: int,
        amount1_delta: int,
        data: SettlementData,
    ) -> None:
        """Pay what a swap owes. Positive deltas are owed to the pool."""
        ...

    @abstractmethod
    async def settle_mint(
        self,
        sender: str,
        amount0_owed: int,
        amount1_owed: int,
        data: SettlementData,
    ) -> None:
        """Pay what a liquidity addition owes."""
        ...


class LiquidityPool(ABC):
    """Abstract base class for a two-token concentrated-liquidity pool."""

    @property
    @abstractmethod
    def address(self) -> str:
        """Identifier the pool presents as sender in its callbacks."""
        ...

    @abstractmethod
    async def liquidity(self) -> int:
        """Currently active liquidity."""
        ...

    @abstractmethod
    async def observe(self, seconds_agos: Sequence[int]) -> list[int]:
        """Return the cumulative tick at each offset before now.

        Raises:
            InsufficientHistoryError: If an offset predates the pool's history.
        """
        ...

    @abstractmethod
    async def token0(self) -> str:
        ...

    @abstractmethod
    async def token1(self) -> str:
        ...

    @abstractmethod
    async def swap(
        self,
        payer: SettlementCallbacks,
        recipient: str,
        zero_for_one: bool,
        amount_specified: int,
        sqrt_price_limit: Decimal | None,
        data: SettlementData,
    ) -> tuple[int, int]:
        """Swap and demand payment through payer.settle_swap.

        Returns:
            (amount0_delta, amount1_delta) from the pool's point of view.
        """
        ...

    @abstractmethod
    async def mint(
        self,
        payer: SettlementCallbacks,
        recipient: str,
        tick_lower: int,
        tick_upper: int,
        amount: int,
        data: SettlementData,
    ) -> tuple[int, int]:
        """Add liquidity and demand payment through payer.settle_mint.

        Returns:
            (amount0, amount1) owed for the added liquidity.
        """
        ...
