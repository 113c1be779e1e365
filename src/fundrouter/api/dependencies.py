"""Shared FastAPI dependencies."""

from fastapi import Header, HTTPException, Request

from fundrouter.config import get_settings
from fundrouter.core.router import FundRouter


def get_router(request: Request) -> FundRouter:
    """Return the FundRouter attached to the application."""
    return request.app.state.router


async def require_caller(x_caller: str = Header(None)) -> str:
    """Identity of the caller, authenticated upstream and passed in X-Caller."""
    if not x_caller or not x_caller.strip():
        raise HTTPException(status_code=401, detail="X-Caller header is required")
    return x_caller.strip()


async def require_admin_token(x_admin_token: str = Header(None)) -> bool:
    """Verify admin token from header.

    If ADMIN_TOKEN is not set, allows access (dev mode).
    """
    settings = get_settings()

    if not settings.admin_token:
        return True

    if x_admin_token != settings.admin_token:
        raise HTTPException(status_code=401, detail="Invalid admin token")

    return True
