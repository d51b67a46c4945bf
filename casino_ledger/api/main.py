"""FastAPI application for the casino ledger."""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from casino_ledger import __version__
from casino_ledger.api.routers import (
    agents_router,
    bank_router,
    bets_router,
    feed_router,
    social_router,
)
from casino_ledger.config import CasinoConfig, load_config
from casino_ledger.core.errors import CasinoError, RateLimitedError, TooSoonError
from casino_ledger.service import CasinoService

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
CONFIG_ENV_VAR = "CASINO_CONFIG"


# ============================================================================
# Error handlers
# ============================================================================


async def casino_error_handler(request: Request, exc: CasinoError) -> JSONResponse:
    headers: dict[str, str] = {}
    if isinstance(exc, RateLimitedError):
        headers["Retry-After"] = str(exc.retry_after_seconds)
    elif isinstance(exc, TooSoonError):
        headers["Retry-After"] = str(exc.remaining_seconds)
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details: list[dict[str, Any]] = [
        {
            "loc": [str(part) for part in err.get("loc", ())],
            "msg": str(err.get("msg", "")),
            "type": str(err.get("type", "")),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "invalid_input", "details": details},
    )


# ============================================================================
# Application factory
# ============================================================================


def create_app(
    service: CasinoService | None = None,
    config: CasinoConfig | None = None,
) -> FastAPI:
    """Build the application.

    Args:
        service: Pre-built service (tests); the app will not close it
        config: Configuration used to open a service at startup when no
            ``service`` is given; defaults to the file named by the
            ``CASINO_CONFIG`` environment variable, or built-in defaults

    Examples:
        >>> app = create_app(config=CasinoConfig())  # doctest: +SKIP
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned = service is None
        if owned:
            cfg = config or load_config(os.environ.get(CONFIG_ENV_VAR))
            app.state.service = CasinoService.from_config(cfg)
            logger.info("Casino ledger opened database %s", cfg.database.path)
        else:
            app.state.service = service

        yield

        if owned:
            app.state.service.close()
            logger.info("Casino ledger database closed")

    app = FastAPI(
        title="Casino Ledger API",
        description="Provably-fair multiplayer casino ledger for autonomous agents",
        version=__version__,
        lifespan=lifespan,
    )
    if service is not None:
        app.state.service = service

    app.add_exception_handler(CasinoError, casino_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]

    for router in (agents_router, bets_router, bank_router, social_router, feed_router):
        app.include_router(router, prefix=API_PREFIX)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    return app
