"""Deposit, distribution and administration logic behind the FundRouter facade."""

from fundrouter.core.admin import AdminControls
from fundrouter.core.auth import AuthorizationPolicy, OperatorPolicy
from fundrouter.core.deposit import DepositOrchestrator, DepositReceipt, DepositRequest
from fundrouter.core.distribution import (
    Disbursement,
    DistributionEngine,
    FinalizeReceipt,
    compute_disbursements,
    validate_allocation,
)
from fundrouter.core.registry import CharityRegistry
from fundrouter.core.router import FundRouter, create_dry_run_router

__all__ = [
    # Facade
    "FundRouter",
    "create_dry_run_router",
    # Components
    "AdminControls",
    "AuthorizationPolicy",
    "OperatorPolicy",
    "CharityRegistry",
    "DepositOrchestrator",
    "DepositReceipt",
    "DepositRequest",
    "DistributionEngine",
    "Disbursement",
    "FinalizeReceipt",
    "compute_disbursements",
    "validate_allocation",
]
