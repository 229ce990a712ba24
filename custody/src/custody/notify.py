"""
Operator notification channel.

Free-text alerts for rate refresh failures and transaction build failures.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import httpx
from loguru import logger

from custody.config import NotifierConfig


class Notifier(ABC):
    @abstractmethod
    async def notify(self, text: str) -> None:
        """Deliver an alert. Must not raise."""

    async def close(self) -> None:
        pass


class LogNotifier(Notifier):
    """Alerts go to the log only"""

    async def notify(self, text: str) -> None:
        logger.warning(f"notify: {text}")


class SlackNotifier(Notifier):
    """Posts alerts to a Slack incoming webhook."""

    def __init__(
        self,
        webhook_url: str,
        channel: str | None = None,
        username: str = "custody",
        timeout: float = 10.0,
    ):
        self.webhook_url = webhook_url
        self.channel = channel
        self.username = username
        self.client = httpx.AsyncClient(timeout=timeout)

    async def notify(self, text: str) -> None:
        if self.client.is_closed:
            logger.warning(f"notify (webhook closed): {text}")
            return

        payload: dict[str, str] = {"text": text, "username": self.username}
        if self.channel:
            payload["channel"] = self.channel

        # Alert delivery failures are logged; they must never mask the
        # failure being reported.
        try:
            response = await self.client.post(self.webhook_url, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to deliver operator alert: {e}")
            logger.warning(f"notify: {text}")

    async def close(self) -> None:
        await self.client.aclose()


def create_notifier(config: NotifierConfig) -> Notifier:
    if config.slack_webhook_url:
        return SlackNotifier(
            config.slack_webhook_url,
            channel=config.channel,
            username=config.username,
            timeout=config.timeout,
        )
    return LogNotifier()
