"""Deposit, finalize and balance endpoints."""

import re
import time
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field, field_validator

from fundrouter.api.dependencies import get_router, require_caller
from fundrouter.config import get_settings
from fundrouter.core.router import FundRouter
from fundrouter.ledger.models import Deposit, Donation

router = APIRouter()

_INTEGER = re.compile(r"^-?\d+$")


def parse_amount(v: Any) -> int:
    """Accept base-unit amounts as integer strings (or JSON integers)."""
    if isinstance(v, bool):
        raise ValueError(f"Invalid amount: {v}")
    if isinstance(v, int):
        return v
    if isinstance(v, str) and _INTEGER.match(v.strip()):
        return int(v.strip())
    raise ValueError(f"Amount must be an integer in base units, got {v!r}")


class DepositPayload(BaseModel):
    """Deposit request body. Amounts are integer strings in base units."""

    destination: str = Field(..., min_length=1, max_length=255)
    input_asset: str = Field(..., min_length=1, max_length=50)
    total_amount_in: int
    max_gas_conversion_input: int
    min_settlement_out: int
    gas_fee_tier: int = Field(default=3000, ge=0)
    settlement_fee_tier: int = Field(default=500, ge=0)
    deadline: Optional[float] = Field(None, description="Unix timestamp; defaults to now + configured offset")

    @field_validator("input_asset")
    @classmethod
    def normalize_asset(cls, v: str) -> str:
        return v.upper().strip()

    @field_validator(
        "total_amount_in", "max_gas_conversion_input", "min_settlement_out", mode="before"
    )
    @classmethod
    def validate_amount(cls, v: Any) -> int:
        return parse_amount(v)


class FinalizePayload(BaseModel):
    """Finalize request body: parallel lists of charity names and amounts."""

    beneficiary: str = Field(..., min_length=1, max_length=255)
    charities: list[str]
    amounts: list[int]

    @field_validator("amounts", mode="before")
    @classmethod
    def validate_amounts(cls, v: Any) -> list[int]:
        if not isinstance(v, list):
            raise ValueError("amounts must be a list")
        return [parse_amount(item) for item in v]


def deposit_to_dict(deposit: Deposit) -> dict:
    return {
        "id": deposit.id,
        "donor": deposit.donor,
        "destination": deposit.destination,
        "input_asset": deposit.input_asset,
        "total_amount_in": str(deposit.total_amount_in),
        "gas_amount_in": str(deposit.gas_amount_in),
        "gas_amount_out": str(deposit.gas_amount_out),
        "settlement_amount_out": str(deposit.settlement_amount_out),
        "created_at": deposit.created_at.isoformat() if deposit.created_at else None,
    }


def donation_to_dict(donation: Donation) -> dict:
    return {
        "id": donation.id,
        "batch_id": donation.batch_id,
        "beneficiary": donation.beneficiary,
        "charity_name": donation.charity_name,
        "charity_address": donation.charity_address,
        "amount": str(donation.settlement_amount),
        "finalized_by": donation.finalized_by,
        "created_at": donation.created_at.isoformat() if donation.created_at else None,
    }


@router.post("/deposits")
async def create_deposit(
    payload: DepositPayload,
    caller: str = Depends(require_caller),
    fund_router: FundRouter = Depends(get_router),
) -> dict:
    """Convert a deposit into gas for the destination plus a settlement credit."""
    deadline = payload.deadline
    if deadline is None:
        deadline = time.time() + get_settings().default_deadline_seconds

    receipt = await fund_router.deposit(
        caller=caller,
        destination=payload.destination,
        input_asset=payload.input_asset,
        total_amount_in=payload.total_amount_in,
        deadline=deadline,
        max_gas_conversion_input=payload.max_gas_conversion_input,
        gas_fee_tier=payload.gas_fee_tier,
        settlement_fee_tier=payload.settlement_fee_tier,
        min_settlement_out=payload.min_settlement_out,
    )
    return receipt.to_dict()


@router.get("/deposits")
async def list_deposits(
    destination: str = Query(..., min_length=1),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    fund_router: FundRouter = Depends(get_router),
) -> dict:
    """Deposit history credited to a destination."""
    deposits = await fund_router.get_deposits(destination, limit=limit, offset=offset)
    return {
        "destination": destination,
        "deposits": [deposit_to_dict(d) for d in deposits],
        "limit": limit,
        "offset": offset,
    }


@router.post("/finalize")
async def finalize(
    payload: FinalizePayload,
    caller: str = Depends(require_caller),
    fund_router: FundRouter = Depends(get_router),
) -> dict:
    """Disburse the beneficiary's whole balance across the named charities."""
    receipt = await fund_router.finalize(
        caller=caller,
        beneficiary=payload.beneficiary,
        charity_names=payload.charities,
        amounts=payload.amounts,
    )
    return receipt.to_dict()


@router.get("/donations")
async def list_donations(
    beneficiary: str = Query(..., min_length=1),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    fund_router: FundRouter = Depends(get_router),
) -> dict:
    """Donation history for a beneficiary."""
    donations = await fund_router.get_donations(beneficiary, limit=limit, offset=offset)
    return {
        "beneficiary": beneficiary,
        "donations": [donation_to_dict(d) for d in donations],
        "limit": limit,
        "offset": offset,
    }


@router.get("/balances/{identity}")
async def get_balance(identity: str, fund_router: FundRouter = Depends(get_router)) -> dict:
    balance = await fund_router.get_balance(identity)
    return {
        "identity": identity,
        "asset": fund_router.settlement_asset,
        "balance": str(balance),
    }


@router.get("/gas-subsidy")
async def get_gas_subsidy(fund_router: FundRouter = Depends(get_router)) -> dict:
    return {
        "asset": fund_router.gas_asset,
        "amount": str(await fund_router.get_gas_subsidy()),
    }


@router.get("/charities")
async def list_charities(fund_router: FundRouter = Depends(get_router)) -> dict:
    return {"charities": await fund_router.list_charity_names()}


@router.get("/charities/{name}")
async def get_charity(name: str, fund_router: FundRouter = Depends(get_router)) -> dict:
    """Resolve a charity name to its payout address (404 if unknown)."""
    return {"name": name, "address": await fund_router.resolve_charity(name)}
