"""In-memory token bank for dry-run mode and tests."""

import logging
from typing import Awaitable, Callable, Optional

from fundrouter.custody.base import GasDelivery, Journaled, TokenTransfers

logger = logging.getLogger(__name__)

# Called after an account receives funds: hook(asset, sender, amount)
ReceiveHook = Callable[[str, str, int], Awaitable[None]]


class InMemoryTokenBank(TokenTransfers, Journaled):
    """
    Simulated multi-asset token ledger.

    Provides:
    - Balances and allowances per asset
    - Receive hooks, so a recipient can run code (and call back into the
      router) while a transfer is in flight
    - Rejecting accounts, for exercising failed transfers
    - Snapshot rollback
    """

    def __init__(self):
        self._balances: dict[tuple[str, str], int] = {}
        self._allowances: dict[tuple[str, str, str], int] = {}
        self._rejecting: set[str] = set()
        self._hooks: dict[str, ReceiveHook] = {}

    @property
    def name(self) -> str:
        return "in_memory"

    # Accounting
    def balance_of(self, asset: str, account: str) -> int:
        return self._balances.get((asset.upper(), account), 0)

    def allowance(self, asset: str, owner: str, spender: str) -> int:
        """Get remaining allowance of spender over owner's funds."""
        return self._allowances.get((asset.upper(), owner, spender), 0)

    def approve(self, asset: str, owner: str, spender: str, amount: int) -> None:
        """Authorize spender to pull up to amount of owner's funds."""
        if amount < 0:
            raise ValueError("Allowance cannot be negative")
        self._allowances[(asset.upper(), owner, spender)] = amount

    def mint(self, asset: str, account: str, amount: int) -> None:
        """Create funds out of thin air (faucet / gateway output)."""
        if amount < 0:
            raise ValueError("Mint amount cannot be negative")
        key = (asset.upper(), account)
        self._balances[key] = self._balances.get(key, 0) + amount

    def burn(self, asset: str, account: str, amount: int) -> bool:
        """Destroy funds. Returns False if the account holds too little."""
        key = (asset.upper(), account)
        held = self._balances.get(key, 0)
        if amount < 0 or held < amount:
            return False
        self._balances[key] = held - amount
        return True

    # Test controls
    def reject_account(self, account: str) -> None:
        """Make every transfer to account fail."""
        self._rejecting.add(account)

    def accept_account(self, account: str) -> None:
        """Undo reject_account."""
        self._rejecting.discard(account)

    def is_rejecting(self, account: str) -> bool:
        return account in self._rejecting

    def on_receive(self, account: str, hook: Optional[ReceiveHook]) -> None:
        """Install (or remove with None) a receive hook for account."""
        if hook is None:
            self._hooks.pop(account, None)
        else:
            self._hooks[account] = hook

    async def notify_receipt(self, asset: str, sender: str, recipient: str, amount: int) -> None:
        """Run the recipient's receive hook, if any."""
        hook = self._hooks.get(recipient)
        if hook is not None:
            logger.debug(f"Running receive hook for {recipient}: {amount} {asset}")
            await hook(asset.upper(), sender, amount)

    # Transfers
    def _move(self, asset: str, sender: str, recipient: str, amount: int) -> bool:
        if amount < 0 or recipient in self._rejecting:
            return False
        if not self.burn(asset, sender, amount):
            return False
        self.mint(asset, recipient, amount)
        return True

    async def pull(
        self, asset: str, owner: str, spender: str, recipient: str, amount: int
    ) -> bool:
        key = (asset.upper(), owner, spender)
        allowed = self._allowances.get(key, 0)
        if allowed < amount:
            logger.debug(f"Pull rejected: allowance {allowed} < {amount} {asset} ({owner})")
            return False
        if not self._move(asset, owner, recipient, amount):
            logger.debug(f"Pull rejected: {owner} cannot send {amount} {asset}")
            return False
        self._allowances[key] = allowed - amount
        await self.notify_receipt(asset, owner, recipient, amount)
        return True

    async def push(self, asset: str, sender: str, recipient: str, amount: int) -> bool:
        if not self._move(asset, sender, recipient, amount):
            logger.debug(f"Push rejected: {sender} -> {recipient} {amount} {asset}")
            return False
        await self.notify_receipt(asset, sender, recipient, amount)
        return True

    # Journaled
    def checkpoint(self) -> tuple[dict, dict]:
        return dict(self._balances), dict(self._allowances)

    def rollback(self, token: tuple[dict, dict]) -> None:
        balances, allowances = token
        self._balances = dict(balances)
        self._allowances = dict(allowances)


class NativeGasCourier(GasDelivery):
    """Unwraps gas currency inside an InMemoryTokenBank and credits native currency."""

    def __init__(self, bank: InMemoryTokenBank, native_asset: str = "ETH"):
        self.bank = bank
        self.native_asset = native_asset.upper()

    async def deliver(
        self, wrapped_asset: str, source: str, destination: str, amount: int
    ) -> bool:
        if amount <= 0 or self.bank.is_rejecting(destination):
            return False
        if not self.bank.burn(wrapped_asset, source, amount):
            return False
        self.bank.mint(self.native_asset, destination, amount)
        await self.bank.notify_receipt(self.native_asset, source, destination, amount)
        return True
