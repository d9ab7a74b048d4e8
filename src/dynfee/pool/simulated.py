"""Paper-mode concentrated-liquidity pool.

A deliberately small stand-in for the external AMM so the engine can run
end to end without a chain:

  • Price is held as a Decimal sqrt price S (token1 per token0 = S²); the
    tick is floor(log_{1.0001}(S²)).
  • Active liquidity L only changes via mint, and only when the minted
    range contains the current tick. Swaps move S within that L and never
    cross initialized ticks.
  • Every state change writes an observation (timestamp, tick cumulative,
    tick in effect). observe() interpolates between them and refuses
    lookbacks older than the first observation.
  • Swaps and mints compute what they are owed, call back into the payer,
    check they were paid through the TokenBank, and only then commit. A
    failing callback leaves the pool exactly as it was.

Only exact-input swaps are supported. The fee charged is the one carried
in the callback data, in hundredths of a basis point.
"""

from bisect import bisect_right
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import ROUND_CEILING, ROUND_FLOOR, Decimal, localcontext

from dynfee.clock import Clock, unix_now
from dynfee.exceptions import InsufficientHistoryError, PoolError
from dynfee.logging import get_logger
from dynfee.models import SettlementData
from dynfee.pool.base import LiquidityPool, SettlementCallbacks
from dynfee.tokens.bank import TokenBank
from dynfee.uint import UINT128_MAX

logger = get_logger(__name__)

FEE_DENOMINATOR = 1_000_000
_TICK_BASE = Decimal("1.0001")
_PRECISION = 60


@dataclass(frozen=True)
class Observation:
    """Accumulator checkpoint; tick is the tick in effect from timestamp on."""

    timestamp: int
    tick_cumulative: int
    tick: int


def tick_at_sqrt_price(sqrt_price: Decimal) -> int:
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        ratio = (sqrt_price * sqrt_price).ln() / _TICK_BASE.ln()
        return int(ratio.to_integral_value(rounding=ROUND_FLOOR))


def sqrt_price_at_tick(tick: int) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return _TICK_BASE ** (Decimal(tick) / 2)


def _ceil(value: Decimal) -> int:
    return int(value.to_integral_value(rounding=ROUND_CEILING))


def _floor(value: Decimal) -> int:
    return int(value.to_integral_value(rounding=ROUND_FLOOR))


class SimulatedPool(LiquidityPool):
    """In-memory pool settling through a TokenBank.

    Args:
        address: Pool identity (sender of callbacks, holder of reserves).
        token0: First token id.
        token1: Second token id.
        bank: Token custody for payments and payouts.
        sqrt_price: Initial sqrt price.
        liquidity: Initially active liquidity.
        clock: Source of "now" for observations.
        history_seconds: Seed the observation history as if the pool had sat
            at its initial tick for this long.
    """

    def __init__(
        self,
        address: str,
        token0: str,
        token1: str,
        bank: TokenBank,
        sqrt_price: Decimal = Decimal("1"),
        liquidity: int = 0,
        clock: Clock = unix_now,
        history_seconds: int = 0,
    ) -> None:
        if sqrt_price <= 0:
            raise PoolError("sqrt price must be positive")
        self._address = address
        self._token0 = token0
        self._token1 = token1
        self._bank = bank
        self._clock = clock
        self._sqrt_price = sqrt_price
        self._tick = tick_at_sqrt_price(sqrt_price)
        self._liquidity = liquidity
        self._positions: dict[tuple[str, int, int], int] = {}

        start = clock() - history_seconds
        self._observations = [Observation(start, 0, self._tick)]
        self._timestamps = [start]

    # ----- views -----

    @property
    def address(self) -> str:
        return self._address

    @property
    def sqrt_price(self) -> Decimal:
        return self._sqrt_price

    @property
    def tick(self) -> int:
        return self._tick

    def position(self, owner: str, tick_lower: int, tick_upper: int) -> int:
        return self._positions.get((owner, tick_lower, tick_upper), 0)

    async def liquidity(self) -> int:
        return self._liquidity

    async def token0(self) -> str:
        return self._token0

    async def token1(self) -> str:
        return self._token1

    async def observe(self, seconds_agos: Sequence[int]) -> list[int]:
        now = self._clock()
        return [self._cumulative_at(now - ago) for ago in seconds_agos]

    # ----- accumulator -----

    def _cumulative_at(self, target: int) -> int:
        if target < self._timestamps[0]:
            raise InsufficientHistoryError(
                f"pool {self._address} has no observation at or before {target}"
            )
        obs = self._observations[bisect_right(self._timestamps, target) - 1]
        return obs.tick_cumulative + obs.tick * (target - obs.timestamp)

    def _write_observation(self, now: int, tick: int) -> None:
        last = self._observations[-1]
        if now < last.timestamp:
            raise PoolError(f"clock went backwards: {now} < {last.timestamp}")
        cumulative = last.tick_cumulative + last.tick * (now - last.timestamp)
        observation = Observation(now, cumulative, tick)
        if now == last.timestamp:
            self._observations[-1] = observation
        else:
            self._observations.append(observation)
            self._timestamps.append(now)

    # ----- swaps -----

    def _quote_swap(
        self,
        zero_for_one: bool,
        amount_in: int,
        fee: int,
        sqrt_price_limit: Decimal | None,
    ) -> tuple[int, int, Decimal]:
        """Return (amount_in_used, amount_out, next sqrt price)."""
        with localcontext() as ctx:
            ctx.prec = _PRECISION
            L = Decimal(self._liquidity)
            S = self._sqrt_price
            retained = Decimal(FEE_DENOMINATOR - fee) / FEE_DENOMINATOR
            net_in = Decimal(amount_in) * retained

            if zero_for_one:
                target = L * S / (L + net_in * S)
                if sqrt_price_limit is not None and target < sqrt_price_limit:
                    target = sqrt_price_limit
                    needed = _ceil(L * (S - target) / (S * target) / retained)
                    amount_in = min(needed, amount_in)
                amount_out = _floor(L * (S - target))
            else:
                target = S + net_in / L
                if sqrt_price_limit is not None and target > sqrt_price_limit:
                    target = sqrt_price_limit
                    amount_in = min(_ceil(L * (target - S) / retained), amount_in)
                amount_out = _floor(L * (target - S) / (S * target))

            return amount_in, amount_out, target

    async def swap(
        self,
        payer: SettlementCallbacks,
        recipient: str,
        zero_for_one: bool,
        amount_specified: int,
        sqrt_price_limit: Decimal | None,
        data: SettlementData,
    ) -> tuple[int, int]:
        if amount_specified <= 0:
            raise PoolError("only exact-input swaps are supported")
        if self._liquidity == 0:
            raise PoolError(f"pool {self._address} has no active liquidity")
        if not 0 <= data.fee < FEE_DENOMINATOR:
            raise PoolError(f"fee {data.fee} outside [0, {FEE_DENOMINATOR})")
        if sqrt_price_limit is not None and (
            (zero_for_one and sqrt_price_limit >= self._sqrt_price)
            or (not zero_for_one and sqrt_price_limit <= self._sqrt_price)
        ):
            raise PoolError("sqrt price limit is on the wrong side of the price")

        amount_in, amount_out, next_sqrt_price = self._quote_swap(
            zero_for_one, amount_specified, data.fee, sqrt_price_limit
        )
        if zero_for_one:
            token_in, token_out = self._token0, self._token1
            amount0, amount1 = amount_in, -amount_out
        else:
            token_in, token_out = self._token1, self._token0
            amount0, amount1 = -amount_out, amount_in

        balance_before = await self._bank.balance_of(token_in, self._address)
        await payer.settle_swap(self._address, amount0, amount1, data)
        received = await self._bank.balance_of(token_in, self._address) - balance_before
        if received < amount_in:
            raise PoolError(f"swap underpaid: owed {amount_in}, received {received}")

        if amount_out > 0:
            await self._bank.transfer(token_out, self._address, recipient, amount_out)

        self._write_observation(self._clock(), tick_at_sqrt_price(next_sqrt_price))
        self._sqrt_price = next_sqrt_price
        self._tick = self._observations[-1].tick

        logger.info(
            "pool_swap",
            pool=self._address,
            zero_for_one=zero_for_one,
            amount0=amount0,
            amount1=amount1,
            fee=data.fee,
            tick=self._tick,
        )
        return amount0, amount1

    # ----- liquidity -----

    def _amounts_for_liquidity(
        self, tick_lower: int, tick_upper: int, amount: int
    ) -> tuple[int, int]:
        with localcontext() as ctx:
            ctx.prec = _PRECISION
            L = Decimal(amount)
            S = self._sqrt_price
            sa = sqrt_price_at_tick(tick_lower)
            sb = sqrt_price_at_tick(tick_upper)

            if self._tick < tick_lower:
                return _ceil(L * (sb - sa) / (sa * sb)), 0
            if self._tick >= tick_upper:
                return 0, _ceil(L * (sb - sa))
            return _ceil(L * (sb - S) / (S * sb)), _ceil(L * (S - sa))

    async def mint(
        self,
        payer: SettlementCallbacks,
        recipient: str,
        tick_lower: int,
        tick_upper: int,
        amount: int,
        data: SettlementData,
    ) -> tuple[int, int]:
        if tick_lower >= tick_upper:
            raise PoolError(f"invalid range [{tick_lower}, {tick_upper})")
        if amount <= 0:
            raise PoolError("minted liquidity must be positive")

        in_range = tick_lower <= self._tick < tick_upper
        if in_range and self._liquidity + amount > UINT128_MAX:
            raise PoolError("active liquidity would exceed uint128")

        amount0, amount1 = self._amounts_for_liquidity(tick_lower, tick_upper, amount)

        before0 = await self._bank.balance_of(self._token0, self._address)
        before1 = await self._bank.balance_of(self._token1, self._address)
        await payer.settle_mint(self._address, amount0, amount1, data)
        received0 = await self._bank.balance_of(self._token0, self._address) - before0
        received1 = await self._bank.balance_of(self._token1, self._address) - before1
        if received0 < amount0 or received1 < amount1:
            raise PoolError(
                f"mint underpaid: owed ({amount0}, {amount1}), "
                f"received ({received0}, {received1})"
            )

        key = (recipient, tick_lower, tick_upper)
        self._positions[key] = self._positions.get(key, 0) + amount
        if in_range:
            self._liquidity += amount

        logger.info(
            "pool_mint",
            pool=self._address,
            recipient=recipient,
            tick_lower=tick_lower,
            tick_upper=tick_upper,
            liquidity=amount,
            amount0=amount0,
            amount1=amount1,
        )
        return amount0, amount1
