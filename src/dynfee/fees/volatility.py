"""Short-term volatility proxy from the pool's cumulative tick accumulator.

The absolute drift of the accumulator over the window is the
time-weighted sum of ticks, so a larger drift means the price sat further
from tick zero for longer. It is a cheap proxy for realized movement, not
a statistical volatility estimate.
"""

from dynfee.exceptions import PoolError
from dynfee.pool.base import LiquidityPool


class VolatilityProbe:
    """Reduces two accumulator readings to a scalar magnitude."""

    async def measure(self, pool: LiquidityPool, window_seconds: int) -> int:
        """Return abs(cumulative(now) - cumulative(now - window_seconds)).

        Raises:
            InsufficientHistoryError: Propagated from the pool when it cannot
                look back window_seconds.
            PoolError: If the pool answers with the wrong number of readings.
        """
        readings = await pool.observe([window_seconds, 0])
        if len(readings) != 2:
            raise PoolError(f"expected 2 tick readings, got {len(readings)}")
        past, now = readings
        return abs(now - past)
