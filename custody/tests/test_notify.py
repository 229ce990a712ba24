"""
Tests for operator notifications.
"""

from __future__ import annotations

import json

import httpx
import pytest
from loguru import logger

from custody.config import NotifierConfig
from custody.notify import LogNotifier, SlackNotifier, create_notifier

WEBHOOK_URL = "https://hooks.slack.test/services/T000/B000/XXXX"


class TestCreateNotifier:
    def test_log_notifier_without_webhook(self) -> None:
        assert isinstance(create_notifier(NotifierConfig()), LogNotifier)

    @pytest.mark.asyncio
    async def test_slack_notifier_with_webhook(self) -> None:
        notifier = create_notifier(
            NotifierConfig(slack_webhook_url=WEBHOOK_URL, channel="#ops", username="ledger")
        )

        assert isinstance(notifier, SlackNotifier)
        assert notifier.channel == "#ops"
        assert notifier.username == "ledger"
        await notifier.close()


class TestSlackNotifier:
    @pytest.mark.asyncio
    async def test_posts_payload(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, text="ok")

        notifier = SlackNotifier(WEBHOOK_URL, channel="#ops")
        await notifier.client.aclose()
        notifier.client = httpx.AsyncClient(transport=httpx.MockTransport(handler))

        await notifier.notify("maintenance error: 502 Bad Gateway")
        await notifier.close()

        assert str(requests[0].url) == WEBHOOK_URL
        assert json.loads(requests[0].content) == {
            "text": "maintenance error: 502 Bad Gateway",
            "username": "custody",
            "channel": "#ops",
        }

    @pytest.mark.asyncio
    async def test_omits_channel_when_unset(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, text="ok")

        notifier = SlackNotifier(WEBHOOK_URL)
        await notifier.client.aclose()
        notifier.client = httpx.AsyncClient(transport=httpx.MockTransport(handler))

        await notifier.notify("hello")
        await notifier.close()

        assert "channel" not in json.loads(requests[0].content)

    @pytest.mark.asyncio
    async def test_delivery_failure_does_not_raise(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="internal error")

        notifier = SlackNotifier(WEBHOOK_URL)
        await notifier.client.aclose()
        notifier.client = httpx.AsyncClient(transport=httpx.MockTransport(handler))

        await notifier.notify("unsignedTx createTransaction error")
        await notifier.close()

    @pytest.mark.asyncio
    async def test_transport_failure_does_not_raise(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        notifier = SlackNotifier(WEBHOOK_URL)
        await notifier.client.aclose()
        notifier.client = httpx.AsyncClient(transport=httpx.MockTransport(handler))

        await notifier.notify("maintenance error")
        await notifier.close()

    @pytest.mark.asyncio
    async def test_notify_after_close_is_skipped(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, text="ok")

        notifier = SlackNotifier(WEBHOOK_URL)
        await notifier.client.aclose()
        notifier.client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        await notifier.close()

        await notifier.notify("maintenance error")

        assert requests == []


class TestLogNotifier:
    @pytest.mark.asyncio
    async def test_notify_logs(self) -> None:
        messages: list[str] = []
        handler_id = logger.add(messages.append, format="{message}")
        try:
            await LogNotifier().notify("maintenance error: boom")
        finally:
            logger.remove(handler_id)

        assert any("notify: maintenance error: boom" in m for m in messages)
