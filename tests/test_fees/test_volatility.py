"""Tests for VolatilityProbe."""

from unittest.mock import AsyncMock

import pytest

from dynfee.exceptions import InsufficientHistoryError, PoolError
from dynfee.fees.volatility import VolatilityProbe
from dynfee.pool.base import LiquidityPool


@pytest.fixture
def pool() -> AsyncMock:
    pool = AsyncMock(spec=LiquidityPool)
    pool.address = "pool:mock"
    return pool


@pytest.mark.asyncio
async def test_queries_window_then_now(pool: AsyncMock) -> None:
    pool.observe.return_value = [1000, 4000]

    result = await VolatilityProbe().measure(pool, 86400)

    pool.observe.assert_awaited_once_with([86400, 0])
    assert result == 3000


@pytest.mark.asyncio
async def test_negative_drift_uses_absolute_value(pool: AsyncMock) -> None:
    pool.observe.return_value = [100, -50]

    assert await VolatilityProbe().measure(pool, 3600) == 150


@pytest.mark.asyncio
async def test_flat_accumulator_is_zero(pool: AsyncMock) -> None:
    pool.observe.return_value = [-7, -7]

    assert await VolatilityProbe().measure(pool, 60) == 0


@pytest.mark.asyncio
async def test_insufficient_history_propagates(pool: AsyncMock) -> None:
    pool.observe.side_effect = InsufficientHistoryError("OLD")

    with pytest.raises(InsufficientHistoryError, match="OLD"):
        await VolatilityProbe().measure(pool, 86400)


@pytest.mark.asyncio
async def test_malformed_answer_raises(pool: AsyncMock) -> None:
    pool.observe.return_value = [1]

    with pytest.raises(PoolError):
        await VolatilityProbe().measure(pool, 86400)
