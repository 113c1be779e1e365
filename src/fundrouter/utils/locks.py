"""Call-scoped guard for the router's mutating entry points.

A deposit or finalize call holds the guard for its full duration. Anything
running inside that call (a token receive hook, a gateway callback) that tries
to enter the guard again fails immediately with ReentrantCall. Independent
callers in other asyncio tasks queue on the lock instead.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import AsyncIterator, Optional

from fundrouter.errors import ReentrantCall, RouterError

logger = logging.getLogger(__name__)


class LockTimeoutError(RouterError):
    """Raised when the guard cannot be acquired within the timeout period."""

    kind = "busy"


class OperationGuard:
    """Reentrancy guard plus serialization lock.

    Example:
        guard = OperationGuard(timeout=30.0)
        async with guard.hold("deposit"):
            # Ledger reads and writes here see no interleaved operation
            ...
    """

    def __init__(self, timeout: Optional[float] = 30.0):
        """Initialize the guard.

        Args:
            timeout: Maximum time to wait for another task's operation (None = wait forever)
        """
        self.timeout = timeout
        self._lock = asyncio.Lock()
        self._active: ContextVar[Optional[str]] = ContextVar(
            f"operation_guard_{id(self)}", default=None
        )

    @property
    def in_flight(self) -> bool:
        """Whether some operation currently holds the guard."""
        return self._lock.locked()

    @property
    def current_operation(self) -> Optional[str]:
        """Operation held by the calling context, if any."""
        return self._active.get()

    @asynccontextmanager
    async def hold(self, operation: str) -> AsyncIterator[None]:
        """Hold the guard for the duration of an operation.

        Raises:
            ReentrantCall: If the calling context already holds the guard
            LockTimeoutError: If another task holds it past the timeout
        """
        active = self._active.get()
        if active is not None:
            logger.warning(f"Reentrant {operation} blocked while {active} is in flight")
            raise ReentrantCall(
                f"{operation} called while {active} is in flight", operation
            )

        try:
            if self.timeout:
                await asyncio.wait_for(self._lock.acquire(), timeout=self.timeout)
            else:
                await self._lock.acquire()
        except asyncio.TimeoutError:
            logger.warning(f"Guard timeout after {self.timeout}s: {operation}")
            raise LockTimeoutError(
                f"Could not start {operation} within {self.timeout}s", operation
            )

        token = self._active.set(operation)
        logger.debug(f"Guard acquired: {operation}")
        try:
            yield
        finally:
            self._active.reset(token)
            self._lock.release()
            logger.debug(f"Guard released: {operation}")
