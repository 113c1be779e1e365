"""Outbound notifications for committed router events."""

from fundrouter.notifications.webhook import WebhookNotifier

__all__ = ["WebhookNotifier"]
