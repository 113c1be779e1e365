"""Webhook notification service.

POSTs every committed deposit and donation event as JSON to a configured URL,
for off-system observers and auditors. Delivery failures are logged and
never affect the operation that produced the event.
"""

import logging
from typing import Optional

import httpx

from fundrouter.events import RouterEvent

logger = logging.getLogger(__name__)


def event_payload(event: RouterEvent) -> dict:
    """Event as JSON-safe dict; amounts become strings to keep full precision."""
    return {
        key: str(value) if isinstance(value, int) and not isinstance(value, bool) else value
        for key, value in event.to_dict().items()
    }


class WebhookNotifier:
    """EventBus subscriber that forwards events over HTTP."""

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize with target URL.

        If no client provided, a short-lived one is opened per event.
        """
        self.url = url
        self.timeout = timeout
        self._client = client

    async def send(self, event: RouterEvent) -> bool:
        """Deliver one event.

        Returns:
            True if the endpoint answered with a 2xx status
        """
        payload = event_payload(event)
        try:
            if self._client is not None:
                response = await self._client.post(self.url, json=payload)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.url, json=payload)
            response.raise_for_status()
            return True
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Webhook rejected {payload['type']} event: HTTP {e.response.status_code}"
            )
            return False
        except httpx.HTTPError as e:
            logger.error(f"Failed to deliver {payload['type']} event to {self.url}: {e}")
            return False

    async def __call__(self, event: RouterEvent) -> None:
        await self.send(event)
