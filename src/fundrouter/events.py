"""Events emitted for off-system observers and auditors.

Events are collected while an operation runs and published only after it
commits, so a rejected operation never produces an observable event.
"""

import inspect
import logging
from dataclasses import asdict, dataclass
from typing import Any, Awaitable, Callable, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DepositEvent:
    """A deposit was converted and credited."""

    donor: str
    destination: str
    input_asset: str
    total_amount_in: int
    gas_amount_out: int
    settlement_amount_out: int

    def to_dict(self) -> dict:
        data = asdict(self)
        data["type"] = "deposit"
        return data


@dataclass(frozen=True)
class DonationEvent:
    """Settlement currency was disbursed to one charity."""

    beneficiary: str
    charity_name: str
    charity_address: str
    settlement_amount: int

    def to_dict(self) -> dict:
        data = asdict(self)
        data["type"] = "donation"
        return data


RouterEvent = Union[DepositEvent, DonationEvent]
EventHandler = Callable[[RouterEvent], Union[None, Awaitable[None]]]


class EventBus:
    """Fan-out of committed router events to subscribers."""

    def __init__(self):
        self._handlers: list[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> None:
        """Register a handler (plain function or coroutine function)."""
        self._handlers.append(handler)

    def unsubscribe(self, handler: EventHandler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    async def publish(self, events: list[RouterEvent]) -> None:
        """Deliver committed events in order.

        A failing subscriber is logged and skipped: the operation that
        produced the event has already committed.
        """
        for event in events:
            logger.info(f"Event: {event.to_dict()}")
            for handler in list(self._handlers):
                try:
                    result: Any = handler(event)
                    if inspect.isawaitable(result):
                        await result
                except Exception as e:
                    logger.error(
                        f"Event handler {getattr(handler, '__name__', handler)} failed: "
                        f"{type(e).__name__}: {e}"
                    )
