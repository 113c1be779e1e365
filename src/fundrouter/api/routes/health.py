"""Health check endpoints."""

from fastapi import APIRouter, Depends

from fundrouter import __version__
from fundrouter.api.dependencies import get_router
from fundrouter.config import get_settings
from fundrouter.core.router import FundRouter

router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "service": "fundrouter"}


@router.get("/health/detailed")
async def detailed_health(fund_router: FundRouter = Depends(get_router)):
    """Detailed health check with configuration info."""
    settings = get_settings()
    return {
        "status": "healthy",
        "service": "fundrouter",
        "version": __version__,
        "paused": await fund_router.is_paused(),
        "operation_in_flight": fund_router.guard.in_flight,
        "config": settings.get_safe_dict(),
    }
