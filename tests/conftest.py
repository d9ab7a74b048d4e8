"""Shared test fixtures for the dynamic fee engine."""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from decimal import Decimal

import pytest

from dynfee.config import FeeSettings
from dynfee.fees.model import DynamicFeeModel
from dynfee.history.ledger import TradeHistoryLedger
from dynfee.models import SettlementData
from dynfee.pool.base import LiquidityPool, SettlementCallbacks
from dynfee.settlement.coordinator import SettlementCoordinator
from dynfee.tokens.bank import InMemoryTokenBank

START_TIME = 1_700_000_000
ENGINE = "engine:test"
POOL = "pool:test"


class FakeClock:
    """Settable integer clock."""

    def __init__(self, now: int = START_TIME) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


class ScriptedPool(LiquidityPool):
    """Pool double that answers with preset values and scripted callbacks.

    swap/mint call back with swap_deltas / mint_owed. The callback sender,
    kind and count can be altered to exercise authorization, and reenter
    is awaited before calling back to model a pool that re-enters the engine.
    """

    def __init__(self, address: str = POOL) -> None:
        self._address = address
        self.liquidity_value = 0
        self.cumulatives = (0, 0)
        self.swap_deltas = (0, 0)
        self.mint_owed = (0, 0)
        self.callback_sender: str | None = None
        self.callback_kind: str | None = None
        self.callback_times = 1
        self.gate: asyncio.Event | None = None
        self.reenter: Callable[[], Awaitable] | None = None
        self.received: list[SettlementData] = []

    @property
    def address(self) -> str:
        return self._address

    async def liquidity(self) -> int:
        return self.liquidity_value

    async def observe(self, seconds_agos: Sequence[int]) -> list[int]:
        return list(self.cumulatives)

    async def token0(self) -> str:
        return "TKN0"

    async def token1(self) -> str:
        return "TKN1"

    async def _call_back(
        self, payer: SettlementCallbacks, kind: str, amounts: tuple[int, int], data
    ) -> None:
        self.received.append(data)
        if self.reenter is not None:
            await self.reenter()
        if self.gate is not None:
            await self.gate.wait()
        sender = self.callback_sender or self._address
        if (self.callback_kind or kind) == "swap":
            callback = payer.settle_swap
        else:
            callback = payer.settle_mint
        for _ in range(self.callback_times):
            await callback(sender, amounts[0], amounts[1], data)

    async def swap(
        self,
        payer: SettlementCallbacks,
        recipient: str,
        zero_for_one: bool,
        amount_specified: int,
        sqrt_price_limit: Decimal | None,
        data: SettlementData,
    ) -> tuple[int, int]:
        await self._call_back(payer, "swap", self.swap_deltas, data)
        return self.swap_deltas

    async def mint(
        self,
        payer: SettlementCallbacks,
        recipient: str,
        tick_lower: int,
        tick_upper: int,
        amount: int,
        data: SettlementData,
    ) -> tuple[int, int]:
        await self._call_back(payer, "mint", self.mint_owed, data)
        return self.mint_owed


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fee_settings() -> FeeSettings:
    """Default fee parameters (500..10000, weights 40/30/30, 24h window)."""
    return FeeSettings()


@pytest.fixture
def ledger(fee_settings: FeeSettings) -> TradeHistoryLedger:
    return TradeHistoryLedger(fee_settings.window_seconds)


@pytest.fixture
def bank() -> InMemoryTokenBank:
    """Bank with the engine funded in both tokens."""
    bank = InMemoryTokenBank()
    bank.mint_to("TKN0", ENGINE, 10**24)
    bank.mint_to("TKN1", ENGINE, 10**24)
    return bank


@pytest.fixture
def scripted_pool() -> ScriptedPool:
    return ScriptedPool()


@pytest.fixture
def fee_model(
    fee_settings: FeeSettings, ledger: TradeHistoryLedger, clock: FakeClock
) -> DynamicFeeModel:
    return DynamicFeeModel(fee_settings, ledger, clock=clock)


@pytest.fixture
def coordinator(
    fee_model: DynamicFeeModel,
    ledger: TradeHistoryLedger,
    bank: InMemoryTokenBank,
    clock: FakeClock,
) -> SettlementCoordinator:
    return SettlementCoordinator(ENGINE, fee_model, ledger, bank, clock)
