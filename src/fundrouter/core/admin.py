"""Gas subsidy parameter and pause flag."""

import logging
from typing import Optional

from fundrouter.core.auth import AuthorizationPolicy
from fundrouter.errors import InvalidAmount, RouterPaused
from fundrouter.ledger.repository import LedgerRepository

logger = logging.getLogger(__name__)

GAS_SUBSIDY_KEY = "gas_subsidy"
PAUSED_KEY = "paused"


class AdminControls:
    """Operator-only parameters, persisted in system_config."""

    def __init__(self, policy: AuthorizationPolicy, default_gas_subsidy: int):
        if default_gas_subsidy <= 0:
            raise ValueError("Default gas subsidy must be positive")
        self.policy = policy
        self.default_gas_subsidy = default_gas_subsidy

    async def initialize(self, repo: LedgerRepository) -> int:
        """Persist the configured gas subsidy unless one is already stored."""
        stored = await repo.get_config(GAS_SUBSIDY_KEY)
        if stored is None:
            await repo.set_config(GAS_SUBSIDY_KEY, str(self.default_gas_subsidy), "config")
            logger.info(f"Gas subsidy initialized to {self.default_gas_subsidy}")
            return self.default_gas_subsidy
        return int(stored)

    async def get_gas_subsidy(self, repo: LedgerRepository) -> int:
        stored = await repo.get_config(GAS_SUBSIDY_KEY)
        return int(stored) if stored is not None else self.default_gas_subsidy

    async def set_gas_subsidy(self, repo: LedgerRepository, caller: str, amount: int) -> int:
        self.policy.require_operator(caller, "set gas subsidy")
        if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
            raise InvalidAmount(f"Gas subsidy must be a positive integer, got {amount!r}", amount)

        previous = await self.get_gas_subsidy(repo)
        await repo.set_config(GAS_SUBSIDY_KEY, str(amount), caller)
        logger.info(f"Gas subsidy changed {previous} -> {amount} by {caller}")
        return amount

    async def is_paused(self, repo: LedgerRepository) -> bool:
        return await repo.get_config(PAUSED_KEY) == "1"

    async def set_paused(self, repo: LedgerRepository, caller: str, paused: bool) -> bool:
        self.policy.require_operator(caller, "pause" if paused else "unpause")
        await repo.set_config(PAUSED_KEY, "1" if paused else "0", caller)
        logger.warning(f"Router {'paused' if paused else 'unpaused'} by {caller}")
        return paused

    async def ensure_not_paused(self, repo: LedgerRepository, operation: Optional[str] = None) -> None:
        """Raise RouterPaused if mutations are disabled."""
        if await self.is_paused(repo):
            logger.warning(f"Rejected {operation or 'operation'}: router is paused")
            raise RouterPaused(f"Router is paused; {operation or 'operation'} rejected", operation)
