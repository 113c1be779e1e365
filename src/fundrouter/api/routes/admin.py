"""Admin API endpoints (token-protected)."""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, field_validator

from fundrouter.api.dependencies import get_router, require_admin_token, require_caller
from fundrouter.api.routes.funds import parse_amount
from fundrouter.core.router import FundRouter

router = APIRouter(prefix="/admin", tags=["admin"])


class RegisterCharityRequest(BaseModel):
    """Request to register a charity payout address."""

    name: str = Field(..., min_length=1, max_length=100)
    address: str = Field(..., min_length=1, max_length=255)


class GasSubsidyRequest(BaseModel):
    """Request to change the gas subsidy (base units of the gas asset)."""

    amount: int

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v: Any) -> int:
        return parse_amount(v)


class SystemStats(BaseModel):
    """System statistics."""

    beneficiaries: int
    total_owed: str
    deposits: int
    donations: int
    charities: int
    paused: bool
    gas_subsidy: str


@router.post("/charities")
async def register_charity(
    request: RegisterCharityRequest,
    caller: str = Depends(require_caller),
    fund_router: FundRouter = Depends(get_router),
    _: bool = Depends(require_admin_token),
) -> dict:
    """Register a charity name and payout address."""
    charity = await fund_router.register_charity(caller, request.name, request.address)
    return {"success": True, "id": charity.id, "name": charity.name, "address": charity.address}


@router.put("/gas-subsidy")
async def set_gas_subsidy(
    request: GasSubsidyRequest,
    caller: str = Depends(require_caller),
    fund_router: FundRouter = Depends(get_router),
    _: bool = Depends(require_admin_token),
) -> dict:
    amount = await fund_router.set_gas_subsidy(caller, request.amount)
    return {"success": True, "amount": str(amount)}


@router.post("/pause")
async def pause(
    caller: str = Depends(require_caller),
    fund_router: FundRouter = Depends(get_router),
    _: bool = Depends(require_admin_token),
) -> dict:
    await fund_router.pause(caller)
    return {"success": True, "paused": True}


@router.post("/unpause")
async def unpause(
    caller: str = Depends(require_caller),
    fund_router: FundRouter = Depends(get_router),
    _: bool = Depends(require_admin_token),
) -> dict:
    await fund_router.unpause(caller)
    return {"success": True, "paused": False}


@router.get("/stats", response_model=SystemStats)
async def get_stats(
    fund_router: FundRouter = Depends(get_router),
    _: bool = Depends(require_admin_token),
) -> SystemStats:
    """Get system statistics."""
    stats = await fund_router.get_stats()
    return SystemStats(
        beneficiaries=stats["beneficiaries"],
        total_owed=str(stats["total_owed"]),
        deposits=stats["deposits"],
        donations=stats["donations"],
        charities=stats["charities"],
        paused=stats["paused"],
        gas_subsidy=str(stats["gas_subsidy"]),
    )


@router.get("/reconcile")
async def reconcile(
    fund_router: FundRouter = Depends(get_router),
    _: bool = Depends(require_admin_token),
) -> dict:
    """Compare custody settlement holdings against the ledger total."""
    report = await fund_router.reconcile()
    return {
        "asset": report["asset"],
        "custody_holdings": str(report["custody_holdings"]),
        "ledger_total": str(report["ledger_total"]),
        "discrepancy": str(report["discrepancy"]),
        "balanced": report["balanced"],
    }
