"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fundrouter import __version__
from fundrouter.config import get_settings
from fundrouter.core.router import FundRouter, create_dry_run_router
from fundrouter.errors import (
    ConservationViolation,
    ConversionFailed,
    DuplicateCharity,
    GasDeliveryFailed,
    InvalidAllocation,
    InvalidRequest,
    ReentrantCall,
    RouterError,
    RouterPaused,
    TransferFailed,
    Unauthorized,
    UnknownCharity,
)
from fundrouter.ledger.database import close_db, init_db
from fundrouter.utils.locks import LockTimeoutError

logger = logging.getLogger(__name__)

# Checked in order; first match wins
ERROR_STATUS = (
    (ConservationViolation, 500),
    (LockTimeoutError, 503),
    (ReentrantCall, 409),
    (RouterPaused, 409),
    (DuplicateCharity, 409),
    (Unauthorized, 403),
    (UnknownCharity, 404),
    (InvalidAllocation, 400),
    (InvalidRequest, 400),
    (TransferFailed, 422),
    (ConversionFailed, 422),
    (GasDeliveryFailed, 422),
)


def status_for(error: RouterError) -> int:
    """HTTP status code for a router error."""
    for error_type, status_code in ERROR_STATUS:
        if isinstance(error, error_type):
            return status_code
    return 400


async def router_error_handler(request: Request, exc: RouterError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.kind}: {exc}")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    await init_db()
    await app.state.router.initialize()
    yield
    # Shutdown
    await close_db()


def create_app(router: Optional[FundRouter] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Fundrouter API",
        description="Deposit conversion and charity disbursement API",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.router = router or create_dry_run_router(settings)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RouterError, router_error_handler)

    # Register routes
    from fundrouter.api.routes import admin, funds, health

    app.include_router(health.router, tags=["Health"])
    app.include_router(funds.router, prefix="/api/v1", tags=["Funds"])
    app.include_router(admin.router, tags=["Admin"])

    return app
