"""
BTC exchange-rate cache.

A single background task fetches the global BTC ticker from the pricing index
once at startup and then on a fixed interval, validates it, and publishes the
result as one immutable snapshot. Readers always see either the previous or the
new snapshot in full.

Failures are logged and reported to the operator channel; the previous snapshot
stays in place, since stale rates are a safe default.
"""

from __future__ import annotations

import asyncio
import contextlib
import hashlib
import hmac
import json
import re
import time
from collections.abc import Mapping
from datetime import datetime
from types import MappingProxyType
from typing import Any

import httpx
from loguru import logger
from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from custody.config import PricingConfig
from custody.constants import KEY_CURRENCIES
from custody.errors import RateRefreshFailure, UnknownCurrency
from custody.notify import Notifier

TICKER_KEY = re.compile(r"^(timestamp|[A-Z]{3,})$")
HTML_TAG = re.compile(r"<(?:.|\n)*?>")
BTC_PREFIX = "BTC"

_timestamp_adapter: TypeAdapter[datetime] = TypeAdapter(datetime)


class Ticker(BaseModel):
    """One ticker entry; only ``last`` is used."""

    last: float | None = Field(default=None, gt=0)

    model_config = {"extra": "allow"}


def sign_request(public_key: str, secret_key: str, timestamp: int) -> str:
    """
    Build the ``X-Signature`` header for the pricing index.

    The HMAC-SHA256 covers ``"<timestamp>.<public_key>"`` and is keyed by the
    shared secret. The header value is ``"<timestamp>.<public_key>.<hex digest>"``.
    """
    prefix = f"{timestamp}.{public_key}"
    digest = hmac.new(secret_key.encode(), prefix.encode(), hashlib.sha256).hexdigest()
    return f"{prefix}.{digest}"


def parse_rates(body: str) -> dict[str, float]:
    """
    Validate a ticker response and extract BTC rates by quote currency.

    Args:
        body: Raw response body

    Returns:
        Mapping of 3-letter currency code to BTC price, e.g. {"USD": 43000.5}

    Raises:
        RateRefreshFailure: On HTML, non-JSON or schema-violating bodies
    """
    if "<html>" in body:
        raise RateRefreshFailure(HTML_TAG.sub("", body).strip())

    try:
        payload: Any = json.loads(body)
    except json.JSONDecodeError as e:
        raise RateRefreshFailure(f"Invalid JSON from pricing index: {e}") from e

    if not isinstance(payload, dict):
        raise RateRefreshFailure(f"Expected JSON object, got {type(payload).__name__}")

    rates: dict[str, float] = {}
    for key, value in payload.items():
        if not TICKER_KEY.match(key):
            raise RateRefreshFailure(f"Unexpected ticker key: {key!r}")

        try:
            if key == "timestamp":
                _timestamp_adapter.validate_python(value)
                continue
            ticker = Ticker.model_validate(value)
        except ValidationError as e:
            raise RateRefreshFailure(f"Invalid ticker entry {key}: {e}") from e

        if not key.startswith(BTC_PREFIX) or not ticker.last:
            continue
        rates[key[-3:]] = ticker.last

    if not rates:
        raise RateRefreshFailure("No BTC rates in pricing index response")

    return rates


class RateCache:
    """
    Periodically refreshed BTC rate snapshot.

    One cache, and so one refresh schedule, serves the whole process (see
    ``process_rate_cache``). Every holder calls ``start()`` once and ``stop()``
    once; the schedule is armed by the first start and cancelled by the last
    stop.
    """

    def __init__(self, config: PricingConfig, notifier: Notifier):
        self.config = config
        self.notifier = notifier
        self.client = httpx.AsyncClient(timeout=config.timeout)

        self._rates: Mapping[str, float] = MappingProxyType({})
        self._refresh_task: asyncio.Task[None] | None = None
        self._holders = 0
        self.last_refresh: float | None = None

    @property
    def rates(self) -> Mapping[str, float]:
        """Current snapshot (read-only)"""
        return self._rates

    @property
    def running(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    @property
    def closed(self) -> bool:
        return self.client.is_closed

    def lookup(self, currency: str) -> float | None:
        return self._rates.get(currency)

    def require(self, currency: str) -> float:
        rate = self.lookup(currency)
        if rate is None:
            raise UnknownCurrency(currency)
        return rate

    async def _fetch(self, signature: str) -> dict[str, float]:
        response = await self.client.get(self.config.url, headers={"X-Signature": signature})
        rates = parse_rates(response.text)
        response.raise_for_status()
        return rates

    async def refresh(self) -> bool:
        """
        Fetch and publish one snapshot.

        Returns:
            True if a new snapshot was published, False if the previous one
            was retained
        """
        timestamp = int(time.time())
        signature = sign_request(self.config.public_key, self.config.secret_key, timestamp)

        try:
            rates = await self._fetch(signature)
        except (httpx.HTTPError, RateRefreshFailure) as e:
            logger.error(f"Rate refresh failed: {e}")
            logger.info(
                f'Rate refresh details: curl -X GET --header "X-Signature: {signature}" '
                f"{self.config.url}"
            )
            await self.notifier.notify(f"maintenance error: {e}")
            return False

        self._rates = MappingProxyType(rates)
        self.last_refresh = time.time()

        key_rates = {c: rates[c] for c in KEY_CURRENCIES if c in rates}
        logger.info(f"BTC key rates: {key_rates} ({len(rates)} currencies)")
        return True

    async def _refresh_loop(self) -> None:
        while True:
            try:
                await self.refresh()
            except Exception as e:
                logger.error(f"Error in rate refresh loop: {e}")
            await asyncio.sleep(self.config.refresh_interval)

    def start(self) -> None:
        """Arm the refresh schedule. Only registers another holder if already armed."""
        self._holders += 1
        if self.running:
            logger.debug(f"Rate refresh already scheduled ({self._holders} holders)")
            return

        logger.info(f"Scheduling rate refresh every {self.config.refresh_interval:.0f}s")
        self._refresh_task = asyncio.create_task(self._refresh_loop())
        self._refresh_task.set_name("rate-refresh")

    async def stop(self) -> None:
        """Release one holder; the last release cancels the schedule and closes the client."""
        if self._holders > 1:
            self._holders -= 1
            logger.debug(f"Rate refresh kept for {self._holders} remaining holders")
            return

        self._holders = 0
        if self._refresh_task:
            self._refresh_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._refresh_task
            self._refresh_task = None

        await self.client.aclose()


_process_cache: RateCache | None = None


def process_rate_cache(config: PricingConfig, notifier: Notifier) -> RateCache:
    """
    Get the process-wide rate cache, creating it on first use.

    Every Wallet built from settings shares this cache, so at most one refresh
    schedule is armed per process. A closed cache is replaced on the next call.
    """
    global _process_cache

    if _process_cache is None or _process_cache.closed:
        _process_cache = RateCache(config, notifier)
    elif _process_cache.config != config:
        logger.warning("Pricing configuration differs from the process rate cache, keeping it")
    return _process_cache
