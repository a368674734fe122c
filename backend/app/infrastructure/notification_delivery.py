"""Notification Delivery — best-effort outbound channels for persisted notifications.

Invariants:
    - Delivery is fire-and-report: callers catch every failure and turn it into
      a warning; nothing here can roll back a ledger mutation
    - WebhookDispatcher maps transport and HTTP errors to DeliveryError

Design Decisions:
    - LoggingDispatcher is the default: email relays are an external collaborator
    - httpx.AsyncClient per dispatcher, bounded by notification_timeout_seconds
"""

import logging
from uuid import UUID

import httpx

logger = logging.getLogger(__name__)


class DeliveryError(Exception):
    """Outbound delivery failed. Always handled as a soft warning."""


class LoggingDispatcher:
    """Records delivery requests in the log only."""

    async def dispatch(
        self, user_id: UUID, notification_type: str, title: str,
        message: str, payload: dict,
    ) -> None:
        logger.info(
            f"Notification '{notification_type}' queued: {title}",
            extra={"user_id": user_id},
        )


class WebhookDispatcher:
    """POSTs each notification as JSON to a relay (email/SMS/push service)."""

    def __init__(self, url: str, timeout_seconds: float = 5.0):
        self.url = url
        self.timeout_seconds = timeout_seconds

    async def dispatch(
        self, user_id: UUID, notification_type: str, title: str,
        message: str, payload: dict,
    ) -> None:
        body = {
            "user_id": str(user_id),
            "type": notification_type,
            "title": title,
            "message": message,
            "payload": payload,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.post(self.url, json=body)
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise DeliveryError(f"Webhook delivery failed: {e}") from e


def build_dispatcher(webhook_url: str | None, timeout_seconds: float = 5.0):
    if webhook_url:
        return WebhookDispatcher(webhook_url, timeout_seconds)
    return LoggingDispatcher()
