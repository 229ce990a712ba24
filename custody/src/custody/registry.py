"""
Provider registry: which provider implements which operation.

Capabilities are resolved once, when a provider is registered. Dispatch is a
set lookup; custody operations a provider lacks fail with UnsupportedOperation,
while payment links fall back to the default payment-link provider.
"""

from __future__ import annotations

from loguru import logger

from custody.errors import ConfigurationError, UnsupportedOperation
from custody.models import ProviderType
from custody.providers.base import PAYMENT_CAPABILITIES, Capability, WalletProvider


class ProviderRegistry:
    def __init__(self, default_payment_provider: ProviderType = ProviderType.COINBASE):
        self.default_payment_provider = default_payment_provider
        self._providers: dict[ProviderType, WalletProvider] = {}
        self._capabilities: dict[ProviderType, frozenset[Capability]] = {}

    def register(self, kind: ProviderType, provider: WalletProvider) -> None:
        """
        Register a provider under an identifier.

        Raises:
            ConfigurationError: If the provider declares a capability it does
                not implement
        """
        declared = type(provider).capabilities
        missing = [c.value for c in declared if not type(provider).implements(c)]
        if missing:
            raise ConfigurationError(
                f"provider {kind.value} declares unimplemented capabilities: {', '.join(missing)}"
            )

        self._providers[kind] = provider
        self._capabilities[kind] = declared
        logger.debug(f"Registered provider {kind.value}: {sorted(c.value for c in declared)}")

    def capabilities(self, kind: ProviderType) -> frozenset[Capability]:
        return self._capabilities.get(kind, frozenset())

    def supports(self, kind: ProviderType, capability: Capability) -> bool:
        return capability in self.capabilities(kind)

    def resolve(self, kind: ProviderType, capability: Capability) -> WalletProvider:
        """
        Get the provider implementing a custody capability.

        Raises:
            UnsupportedOperation: If the provider is unknown or lacks the
                capability
        """
        if not self.supports(kind, capability):
            name = kind.value if isinstance(kind, ProviderType) else str(kind)
            raise UnsupportedOperation(name, capability.value)
        return self._providers[kind]

    def resolve_payment(self, kind: ProviderType, capability: Capability) -> WalletProvider | None:
        """
        Get the provider for a payment-link capability.

        Falls back to the default payment-link provider; None when neither
        implements it.
        """
        if capability not in PAYMENT_CAPABILITIES:
            raise ValueError(f"{capability.value} is not a payment-link capability")

        if self.supports(kind, capability):
            return self._providers[kind]
        if self.supports(self.default_payment_provider, capability):
            return self._providers[self.default_payment_provider]
        return None

    def providers(self) -> list[WalletProvider]:
        return list(self._providers.values())
