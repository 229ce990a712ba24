"""
Provider-agnostic custodial wallet.

Entry point for callers holding a WalletDescriptor. Holds the process-wide rate
cache, owns the provider registry and dispatches every operation to the
provider named by the descriptor.
"""

from __future__ import annotations

from collections.abc import Mapping

from loguru import logger

from custody.config import Settings
from custody.errors import ConfigurationError, TransactionMismatch
from custody.models import (
    PaymentLink,
    ProviderType,
    SubmissionResult,
    UnsignedTransaction,
    WalletBalances,
    WalletDescriptor,
)
from custody.notify import Notifier, create_notifier
from custody.providers.base import Capability
from custody.providers.bitgo import BitGoProvider
from custody.providers.coinbase import CoinbaseProvider
from custody.rates import RateCache, process_rate_cache
from custody.registry import ProviderRegistry
from custody.tx import compare_tx


class Wallet:
    def __init__(
        self,
        settings: Settings,
        notifier: Notifier | None = None,
        rate_cache: RateCache | None = None,
        registry: ProviderRegistry | None = None,
    ):
        self.settings = settings
        self.notifier = notifier or create_notifier(settings.notifier)

        if rate_cache is None:
            if settings.pricing is None:
                raise ConfigurationError("pricing configuration undefined")
            rate_cache = process_rate_cache(settings.pricing, self.notifier)
        self.rate_cache = rate_cache
        self._started = False

        if registry is None:
            if settings.bitgo is None:
                raise ConfigurationError("bitgo configuration undefined")
            registry = ProviderRegistry(default_payment_provider=ProviderType.COINBASE)
            registry.register(
                ProviderType.BITGO,
                BitGoProvider(settings.bitgo, self.rate_cache, self.notifier),
            )
            registry.register(ProviderType.COINBASE, CoinbaseProvider(settings.coinbase))
        self.registry = registry

    @property
    def rates(self) -> Mapping[str, float]:
        return self.rate_cache.rates

    async def start(self) -> None:
        """Hold the shared rate refresh schedule, arming it if no other wallet has"""
        if self._started:
            return
        self.rate_cache.start()
        self._started = True

    async def stop(self) -> None:
        if self._started:
            await self.rate_cache.stop()
            self._started = False
        for provider in self.registry.providers():
            await provider.close()
        await self.notifier.close()
        logger.info("Wallet stopped")

    async def balances(self, info: WalletDescriptor) -> WalletBalances:
        provider = self.registry.resolve(info.provider, Capability.BALANCES)
        return await provider.balances(info)

    def purchase_btc(
        self, info: WalletDescriptor, amount: float, currency: str
    ) -> PaymentLink | None:
        provider = self.registry.resolve_payment(info.provider, Capability.PURCHASE_BTC)
        if provider is None:
            return None
        return provider.purchase_btc(info, amount, currency)

    def recurring_btc(
        self, info: WalletDescriptor, amount: float, currency: str
    ) -> PaymentLink | None:
        provider = self.registry.resolve_payment(info.provider, Capability.RECURRING_BTC)
        if provider is None:
            return None
        return provider.recurring_btc(info, amount, currency)

    async def recover(self, source: WalletDescriptor, destination: str, passphrase: str) -> int:
        """Sweep the full balance of a possibly compromised wallet"""
        provider = self.registry.resolve(source.provider, Capability.RECOVER)
        return await provider.recover(source, destination, passphrase)

    @staticmethod
    def compare_tx(unsigned_hex: str, signed_hex: str) -> bool:
        return compare_tx(unsigned_hex, signed_hex)

    async def submit_tx(
        self, info: WalletDescriptor, signed_tx: str
    ) -> SubmissionResult | None:
        provider = self.registry.resolve(info.provider, Capability.SUBMIT_TX)
        return await provider.submit_tx(info, signed_tx)

    async def submit_verified_tx(
        self, info: WalletDescriptor, unsigned: UnsignedTransaction, signed_tx: str
    ) -> SubmissionResult | None:
        """
        Submit a signed transaction only if it matches its unsigned origin.

        Raises:
            TransactionMismatch: If signing altered anything besides
                unlocking data
        """
        if not compare_tx(unsigned.tx_hex, signed_tx):
            logger.error(f"Refusing to submit signed transaction for {info.address}: mismatch")
            raise TransactionMismatch(
                f"signed transaction for {info.address} does not match its unsigned origin"
            )
        return await self.submit_tx(info, signed_tx)

    async def unsigned_tx(
        self, info: WalletDescriptor, amount: float, currency: str, balance: int
    ) -> UnsignedTransaction | None:
        provider = self.registry.resolve(info.provider, Capability.UNSIGNED_TX)
        return await provider.unsigned_tx(info, amount, currency, balance)
