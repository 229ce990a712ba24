"""
Process-level wallet lifecycle.

The Wallet is created and started once at initialization and stopped at
shutdown. Wallets share the process rate cache, so only one rate refresh
schedule is ever armed.
"""

from __future__ import annotations

import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from loguru import logger

from custody.config import Settings, get_settings
from custody.notify import Notifier
from custody.wallet import Wallet


def setup_logging(level: str) -> None:
    logger.remove()

    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level=level,
        colorize=True,
    )


@asynccontextmanager
async def wallet_service(
    settings: Settings | None = None,
    notifier: Notifier | None = None,
) -> AsyncIterator[Wallet]:
    """
    Run a started Wallet for the duration of the context.

    Example:
        async with wallet_service() as wallet:
            tx = await wallet.unsigned_tx(info, 5, "usd", balance)
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    wallet = Wallet(settings, notifier=notifier)
    logger.info("Starting custody wallet")
    if settings.bitgo is not None:
        logger.info(f"BitGo Express: {settings.bitgo.express_url} ({settings.bitgo.environment})")
    if settings.pricing is not None:
        logger.info(f"Rate refresh interval: {settings.pricing.refresh_interval:.0f}s")

    await wallet.start()
    try:
        yield wallet
    finally:
        await wallet.stop()
