"""Notification Delivery — webhook transport mapped to DeliveryError."""

from uuid import uuid4

import httpx
import pytest

from app.infrastructure.notification_delivery import (
    DeliveryError, LoggingDispatcher, WebhookDispatcher, build_dispatcher,
)


def test_build_dispatcher_defaults_to_logging():
    """No webhook URL means log-only delivery."""
    assert isinstance(build_dispatcher(None), LoggingDispatcher)
    webhook = build_dispatcher("http://relay.test/hook", 2.0)
    assert isinstance(webhook, WebhookDispatcher)
    assert webhook.timeout_seconds == 2.0


async def test_logging_dispatcher_never_raises():
    """The log-only dispatcher has no failure path."""
    await LoggingDispatcher().dispatch(uuid4(), "expense_added", "t", "m", {})


async def test_webhook_posts_json(monkeypatch):
    """The webhook receives the recipient and type as JSON."""
    captured = {}

    async def fake_post(self, url, json):
        captured["url"] = url
        captured["json"] = json
        return httpx.Response(202, request=httpx.Request("POST", url))

    monkeypatch.setattr(httpx.AsyncClient, "post", fake_post)
    user_id = uuid4()
    await WebhookDispatcher("http://relay.test/hook").dispatch(
        user_id, "group_invitation", "Group invitation", "join us", {"group_id": "g"},
    )
    assert captured["url"] == "http://relay.test/hook"
    assert captured["json"]["user_id"] == str(user_id)
    assert captured["json"]["type"] == "group_invitation"


async def test_webhook_http_error_becomes_delivery_error(monkeypatch):
    """A 5xx from the relay surfaces as DeliveryError."""
    async def fake_post(self, url, json):
        return httpx.Response(500, request=httpx.Request("POST", url))

    monkeypatch.setattr(httpx.AsyncClient, "post", fake_post)
    with pytest.raises(DeliveryError):
        await WebhookDispatcher("http://relay.test/hook").dispatch(
            uuid4(), "expense_added", "t", "m", {},
        )
