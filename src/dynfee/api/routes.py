"""JSON endpoints for fee queries, trade history and paper actions.

Amounts are serialized as strings: token amounts routinely exceed the
range JSON consumers can hold exactly as numbers.
"""

from __future__ import annotations

from dataclasses import asdict
from decimal import Decimal

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from dynfee.models import OperationResult

log = structlog.get_logger(__name__)

router = APIRouter()


class SwapRequest(BaseModel):
    recipient: str
    zero_for_one: bool
    amount_specified: int
    sqrt_price_limit: Decimal | None = None


class MintRequest(BaseModel):
    recipient: str
    tick_lower: int
    tick_upper: int
    amount: int


def _ints_to_str(obj: dict) -> dict:
    """Convert int values (not bools) to strings for JSON serialization."""
    return {
        k: str(v) if isinstance(v, int) and not isinstance(v, bool) else v
        for k, v in obj.items()
    }


def _result_payload(result: OperationResult) -> dict:
    return {
        "operation_id": result.operation_id,
        "kind": result.kind.value,
        "fee": result.fee,
        "amount0": str(result.amount0),
        "amount1": str(result.amount1),
        "trade": _ints_to_str(asdict(result.trade)) if result.trade else None,
    }


@router.get("/fee")
async def get_fee(request: Request) -> JSONResponse:
    """Current dynamic fee with the inputs and factors behind it."""
    coordinator = request.app.state.coordinator
    quote = await coordinator.quote_fee(request.app.state.pool)
    payload = _ints_to_str(asdict(quote))
    payload["fee"] = quote.fee
    return JSONResponse(content=payload)


@router.get("/volume")
async def get_volume(request: Request) -> JSONResponse:
    """Trade volume inside the trailing window."""
    volume = await request.app.state.coordinator.calculate_24h_volume()
    return JSONResponse(content={"volume": str(volume)})


@router.get("/volatility")
async def get_volatility(request: Request) -> JSONResponse:
    """Absolute tick-accumulator drift over the trailing window."""
    coordinator = request.app.state.coordinator
    volatility = await coordinator.calculate_volatility(request.app.state.pool)
    return JSONResponse(content={"volatility": str(volatility)})


@router.get("/trades/{position}")
async def get_trade(request: Request, position: int) -> JSONResponse:
    """Trade record at an absolute ledger position."""
    coordinator = request.app.state.coordinator
    try:
        record = await coordinator.trade_history(position)
    except IndexError as e:
        return JSONResponse(status_code=404, content={"detail": str(e)})
    payload = _ints_to_str(asdict(record))
    payload["position"] = position
    return JSONResponse(content=payload)


@router.get("/params")
async def get_params(request: Request) -> JSONResponse:
    """Fixed fee parameters of this engine instance."""
    fees = request.app.state.fee_settings
    return JSONResponse(content=_ints_to_str(fees.model_dump()))


@router.post("/swap")
async def post_swap(request: Request, body: SwapRequest) -> JSONResponse:
    """Paper action: swap through the pool at the dynamic fee."""
    result = await request.app.state.coordinator.swap_with_dynamic_fee(
        request.app.state.pool,
        body.recipient,
        body.zero_for_one,
        body.amount_specified,
        body.sqrt_price_limit,
    )
    log.info("swap_via_api", operation_id=result.operation_id, fee=result.fee)
    return JSONResponse(content=_result_payload(result))


@router.post("/mint")
async def post_mint(request: Request, body: MintRequest) -> JSONResponse:
    """Paper action: add liquidity through the pool at the dynamic fee."""
    result = await request.app.state.coordinator.add_liquidity_with_dynamic_fee(
        request.app.state.pool,
        body.recipient,
        body.tick_lower,
        body.tick_upper,
        body.amount,
    )
    log.info("mint_via_api", operation_id=result.operation_id, fee=result.fee)
    return JSONResponse(content=_result_payload(result))
