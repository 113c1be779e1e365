"""Charity registry: name <-> payout address."""

import logging

from fundrouter.core.auth import AuthorizationPolicy
from fundrouter.errors import InvalidCharity, UnknownCharity
from fundrouter.ledger.models import Charity
from fundrouter.ledger.repository import LedgerRepository

logger = logging.getLogger(__name__)


class CharityRegistry:
    """Operator-maintained directory consumed read-only by finalize."""

    def __init__(self, policy: AuthorizationPolicy):
        self.policy = policy

    async def register(
        self, repo: LedgerRepository, caller: str, name: str, address: str
    ) -> Charity:
        self.policy.require_operator(caller, "register charity")
        name = name.strip()
        address = address.strip()
        if not name or not address:
            raise InvalidCharity("Charity name and address are required", name or address)

        charity = await repo.register_charity(name, address, registered_by=caller)
        logger.info(f"Registered charity {name} -> {address} (by {caller})")
        return charity

    async def resolve(self, repo: LedgerRepository, name: str) -> str:
        """Get the payout address for a name. Raises UnknownCharity."""
        charity = await repo.get_charity_by_name(name)
        if charity is None:
            raise UnknownCharity(f"Charity not registered: {name}", name)
        return charity.address

    async def list_names(self, repo: LedgerRepository) -> list[str]:
        return [c.name for c in await repo.list_charities()]

    async def list_addresses(self, repo: LedgerRepository) -> set[str]:
        return {c.address for c in await repo.list_charities()}
