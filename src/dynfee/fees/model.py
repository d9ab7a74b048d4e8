"""Dynamic fee model: normalized volume, liquidity and volatility, blended and clamped.

Formula:
    factor_x = raw_x // scale_x                      (coarse integer units)
    raw_fee  = (w_vol * volume_factor
              + w_liq * liquidity_factor
              + w_vlt * volatility_factor) // 100
    fee      = clamp(raw_fee, min_fee, max_fee)

Intermediate products and sums are checked against uint256 and the blended
fee against uint24 before clamping, raising ArithmeticOverflowError instead
of wrapping.
The model mutates nothing: given the same ledger, pool snapshot and clock,
it returns the same fee.
"""

from dynfee.clock import Clock, unix_now
from dynfee.config import FeeSettings
from dynfee.fees.volatility import VolatilityProbe
from dynfee.history.ledger import TradeHistoryLedger
from dynfee.logging import get_logger
from dynfee.models import FeeQuote
from dynfee.pool.base import LiquidityPool
from dynfee.uint import checked_uint256, narrow_uint24

logger = get_logger(__name__)


def normalize(raw: int, scale: int) -> int:
    """Divide a raw magnitude down to a coarse integer factor (floor)."""
    return checked_uint256(raw, "raw magnitude") // scale


def blend_factors(
    volume_factor: int,
    liquidity_factor: int,
    volatility_factor: int,
    fees: FeeSettings,
) -> int:
    """Weighted percentage blend of the three factors, before clamping."""
    weighted = 0
    for weight, factor, name in (
        (fees.volume_weight, volume_factor, "volume"),
        (fees.liquidity_weight, liquidity_factor, "liquidity"),
        (fees.volatility_weight, volatility_factor, "volatility"),
    ):
        term = checked_uint256(weight * factor, f"weighted {name} factor")
        weighted = checked_uint256(weighted + term, "fee blend")
    return weighted // 100


def clamp_fee(raw_fee: int, fees: FeeSettings) -> int:
    """Narrow a blended fee to uint24, then clamp it into [min_fee, max_fee].

    A blend too wide for the fee type is an error even when the clamp
    would have brought it back into range.
    """
    raw_fee = narrow_uint24(raw_fee)
    if raw_fee < fees.min_fee:
        return fees.min_fee
    if raw_fee > fees.max_fee:
        return fees.max_fee
    return raw_fee


def blend_fee(volume: int, liquidity: int, volatility: int, fees: FeeSettings) -> int:
    """Derive the clamped fee from raw magnitudes.

    Args:
        volume: Windowed trade volume.
        liquidity: Pool's active liquidity.
        volatility: Absolute tick-accumulator drift over the window.
        fees: Weights, bounds and normalization scales.

    Returns:
        Fee in pool-native units, within [fees.min_fee, fees.max_fee].

    Raises:
        ArithmeticOverflowError: If the blend overflows uint256, or the
            blended fee does not fit uint24.
    """
    raw = blend_factors(
        normalize(volume, fees.volume_scale),
        normalize(liquidity, fees.liquidity_scale),
        normalize(volatility, fees.volatility_scale),
        fees,
    )
    return clamp_fee(raw, fees)


class DynamicFeeModel:
    """Derives a fee from the ledger and a fresh pool snapshot.

    Args:
        fees: Fee parameters.
        ledger: Trade history supplying windowed volume.
        probe: Volatility probe reading the pool's accumulator.
        clock: Source of "now" for the volume window.
    """

    def __init__(
        self,
        fees: FeeSettings,
        ledger: TradeHistoryLedger,
        probe: VolatilityProbe | None = None,
        clock: Clock = unix_now,
    ) -> None:
        self._fees = fees
        self._ledger = ledger
        self._probe = probe or VolatilityProbe()
        self._clock = clock

    @property
    def fees(self) -> FeeSettings:
        return self._fees

    def volume(self, now: int | None = None) -> int:
        """Windowed trade volume as of now (defaults to the clock)."""
        if now is None:
            now = self._clock()
        return self._ledger.windowed_sum(now)

    async def volatility(self, pool: LiquidityPool) -> int:
        return await self._probe.measure(pool, self._fees.window_seconds)

    async def quote(self, pool: LiquidityPool) -> FeeQuote:
        """Compute the fee along with every input and factor behind it.

        Raises:
            InsufficientHistoryError: If the pool cannot look back a full window.
            ArithmeticOverflowError: If the blend overflows.
        """
        now = self._clock()
        liquidity = await pool.liquidity()
        volume = self.volume(now)
        volatility = await self.volatility(pool)

        volume_factor = normalize(volume, self._fees.volume_scale)
        liquidity_factor = normalize(liquidity, self._fees.liquidity_scale)
        volatility_factor = normalize(volatility, self._fees.volatility_scale)
        raw_fee = blend_factors(
            volume_factor, liquidity_factor, volatility_factor, self._fees
        )
        fee = clamp_fee(raw_fee, self._fees)

        logger.debug(
            "fee_quoted",
            pool=pool.address,
            volume=volume,
            liquidity=liquidity,
            volatility=volatility,
            raw_fee=raw_fee,
            fee=fee,
        )

        return FeeQuote(
            volume=volume,
            liquidity=liquidity,
            volatility=volatility,
            volume_factor=volume_factor,
            liquidity_factor=liquidity_factor,
            volatility_factor=volatility_factor,
            raw_fee=raw_fee,
            fee=fee,
            computed_at=now,
        )

    async def compute_fee(self, pool: LiquidityPool) -> int:
        """Return only the fee for the pool's current state."""
        quote = await self.quote(pool)
        return quote.fee
