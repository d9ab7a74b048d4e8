"""FastAPI application factory for the fee engine API."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from dynfee.api import routes
from dynfee.exceptions import DynFeeError


async def _dynfee_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Map engine failures to 409 with the error kind in the body."""
    return JSONResponse(
        status_code=409,
        content={"error": type(exc).__name__, "detail": str(exc)},
    )


def create_app(lifespan: Any = None) -> FastAPI:
    """Create and configure the API application.

    Route handlers read the coordinator, pool and fee settings from
    app.state; the caller (main.py or a test) must set them.

    Args:
        lifespan: Optional async context manager for startup/shutdown.

    Returns:
        Configured FastAPI application.
    """
    app = FastAPI(title="Dynamic Fee Engine", lifespan=lifespan)
    app.add_exception_handler(DynFeeError, _dynfee_error_handler)
    app.include_router(routes.router, prefix="/api")
    return app
