"""Ledger module for beneficiary balances and audit records."""

from fundrouter.ledger.database import get_db, init_db
from fundrouter.ledger.models import (
    BeneficiaryBalance,
    Charity,
    Deposit,
    Donation,
    SystemConfig,
)
from fundrouter.ledger.repository import LedgerRepository

__all__ = [
    # Models
    "BeneficiaryBalance",
    "Charity",
    "Deposit",
    "Donation",
    "SystemConfig",
    # Database
    "get_db",
    "init_db",
    "LedgerRepository",
]
