"""Entry point for the dynamic fee engine in paper mode.

Wires the engine against a simulated pool and an in-memory token bank,
then serves the HTTP API with uvicorn.

Component wiring order (in build_components):
1. TradeHistoryLedger (windowed trade volume)
2. DynamicFeeModel (volume, liquidity and volatility blend)
3. InMemoryTokenBank (seeded engine and pool balances)
4. SimulatedPool (paper AMM with pre-seeded accumulator history)
5. SettlementCoordinator (two-phase swap/mint settlement)
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from dynfee.clock import Clock, unix_now
from dynfee.config import AppSettings
from dynfee.fees.model import DynamicFeeModel
from dynfee.fees.volatility import VolatilityProbe
from dynfee.history.ledger import TradeHistoryLedger
from dynfee.logging import get_logger, setup_logging
from dynfee.pool.simulated import SimulatedPool
from dynfee.settlement.coordinator import SettlementCoordinator
from dynfee.tokens.bank import InMemoryTokenBank


def build_components(settings: AppSettings, clock: Clock = unix_now) -> dict[str, Any]:
    """Build the engine and its paper-mode collaborators from settings.

    Args:
        settings: Application-wide settings.
        clock: Shared time source.

    Returns:
        Dict mapping component names to instances.
    """
    pool_settings = settings.pool

    ledger = TradeHistoryLedger(settings.fees.window_seconds)
    fee_model = DynamicFeeModel(settings.fees, ledger, VolatilityProbe(), clock)

    bank = InMemoryTokenBank()
    for token in (pool_settings.token0, pool_settings.token1):
        bank.mint_to(token, pool_settings.engine_address, pool_settings.seed_balance)
        bank.mint_to(token, pool_settings.address, pool_settings.seed_balance)

    pool = SimulatedPool(
        address=pool_settings.address,
        token0=pool_settings.token0,
        token1=pool_settings.token1,
        bank=bank,
        sqrt_price=pool_settings.sqrt_price,
        liquidity=pool_settings.initial_liquidity,
        clock=clock,
        history_seconds=pool_settings.history_seconds,
    )

    coordinator = SettlementCoordinator(
        address=pool_settings.engine_address,
        fee_model=fee_model,
        ledger=ledger,
        bank=bank,
        clock=clock,
    )

    return {
        "ledger": ledger,
        "fee_model": fee_model,
        "bank": bank,
        "pool": pool,
        "coordinator": coordinator,
    }


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Expose components on app.state for the route handlers."""
    logger = get_logger("dynfee.main")
    settings = app.state.settings
    components = app.state.components

    app.state.coordinator = components["coordinator"]
    app.state.pool = components["pool"]
    app.state.fee_settings = settings.fees

    logger.info(
        "engine_started",
        pool=components["pool"].address,
        min_fee=settings.fees.min_fee,
        max_fee=settings.fees.max_fee,
        window_seconds=settings.fees.window_seconds,
    )

    yield

    logger.info("engine_stopped")


async def run() -> None:
    """Run the engine API until the server is stopped."""
    settings = AppSettings()
    setup_logging(
        settings.log_level,
        settings.log_format,
        engine=settings.pool.engine_address,
        pool=settings.pool.address,
    )
    logger = get_logger("dynfee.main")

    components = build_components(settings)

    if not settings.api.enabled:
        logger.warning("api_disabled", note="nothing to serve; exiting")
        return

    from dynfee.api.app import create_app

    app = create_app(lifespan=lifespan)
    app.state.settings = settings
    app.state.components = components

    logger.info("starting_api", host=settings.api.host, port=settings.api.port)

    config = uvicorn.Config(
        app,
        host=settings.api.host,
        port=settings.api.port,
        log_level="warning",
        log_config=None,
    )
    server = uvicorn.Server(config)
    await server.serve()


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
