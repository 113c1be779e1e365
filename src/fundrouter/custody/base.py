"""Abstract interfaces for token movements and native gas delivery."""

from abc import ABC, abstractmethod
from typing import Any


class Journaled(ABC):
    """Collaborator whose state can be restored when an operation aborts.

    The router takes a checkpoint before each deposit or finalize call and
    rolls every journaled collaborator back if the call fails, so no custody
    transfer or delivery outlives a rejected operation.
    """

    @abstractmethod
    def checkpoint(self) -> Any:
        """Capture state and return an opaque token."""
        pass

    @abstractmethod
    def rollback(self, token: Any) -> None:
        """Restore the state captured by ``checkpoint``."""
        pass


class TokenTransfers(ABC):
    """Fungible token transfer mechanism."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name identifier."""
        pass

    @abstractmethod
    async def pull(
        self, asset: str, owner: str, spender: str, recipient: str, amount: int
    ) -> bool:
        """
        Move ``amount`` from ``owner`` to ``recipient`` using ``spender``'s allowance.

        Returns:
            True if the full amount moved, False otherwise
        """
        pass

    @abstractmethod
    async def push(self, asset: str, sender: str, recipient: str, amount: int) -> bool:
        """
        Move ``amount`` from ``sender`` to ``recipient``.

        Returns:
            True if the full amount moved, False otherwise
        """
        pass

    @abstractmethod
    def balance_of(self, asset: str, account: str) -> int:
        """Get an account's holding of an asset."""
        pass


class GasDelivery(ABC):
    """Unwraps gas currency and delivers it as native currency."""

    @abstractmethod
    async def deliver(
        self, wrapped_asset: str, source: str, destination: str, amount: int
    ) -> bool:
        """
        Unwrap ``amount`` of ``wrapped_asset`` held by ``source`` and send it
        to ``destination`` in native form.

        Returns:
            True if delivered, False if the destination rejected it
        """
        pass
