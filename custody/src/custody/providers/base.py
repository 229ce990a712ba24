"""
Base provider interfaces.

Two layers:
- CustodyAPI: the raw custodial wallet API surface (balances, fee oracle,
  candidate construction, broadcast, detail lookup, sweep). Any custodial
  adapter must implement all of it.
- WalletProvider: the operations a provider offers to callers. Each provider
  declares the subset it implements as ``capabilities``; the registry checks
  the declaration once, at registration.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import ClassVar

from custody.models import (
    Candidate,
    FeeEstimate,
    PaymentLink,
    SendAttempt,
    SubmissionResult,
    TransactionDetail,
    UnsignedTransaction,
    WalletBalances,
    WalletDescriptor,
)


class Capability(str, Enum):
    BALANCES = "balances"
    PURCHASE_BTC = "purchase_btc"
    RECURRING_BTC = "recurring_btc"
    RECOVER = "recover"
    SUBMIT_TX = "submit_tx"
    UNSIGNED_TX = "unsigned_tx"


# Payment links are generic fiat entry points and may fall back to a default
# provider; every other capability is custody-specific.
PAYMENT_CAPABILITIES = frozenset({Capability.PURCHASE_BTC, Capability.RECURRING_BTC})


class CustodyAPI(ABC):
    """Custodial wallet provider API"""

    @abstractmethod
    async def get_balances(self, wallet_id: str) -> WalletBalances:
        """Get wallet balances in satoshis"""

    @abstractmethod
    async def estimate_fee(self, num_blocks: int) -> FeeEstimate:
        """Estimate fee-per-kb for a confirmation target"""

    @abstractmethod
    async def create_transaction(
        self, wallet_id: str, recipients: dict[str, int], fee_rate: int
    ) -> Candidate:
        """Build an unsigned candidate; the provider reports its own fee"""

    @abstractmethod
    async def send_transaction(self, wallet_id: str, tx_hex: str) -> str:
        """Broadcast a signed transaction, returns its hash"""

    @abstractmethod
    async def get_transaction(self, tx_hash: str) -> TransactionDetail:
        """Look up blockchain detail for a transaction. May lag broadcast."""

    @abstractmethod
    async def send_coins(
        self,
        wallet_id: str,
        address: str,
        amount: int,
        passphrase: str,
        fee: int | None = None,
    ) -> SendAttempt:
        """
        Send from the wallet, signing with the passphrase.

        A send of the full balance without an explicit fee is rejected by
        contract; the rejection reports the fee the provider requires.
        """

    async def close(self) -> None:
        """Close API connection"""
        pass


class WalletProvider:
    """
    Operations a provider exposes to callers.

    Subclasses override the methods for the capabilities they list in
    ``capabilities`` and leave the rest alone.
    """

    capabilities: ClassVar[frozenset[Capability]] = frozenset()

    async def balances(self, wallet: WalletDescriptor) -> WalletBalances:
        raise NotImplementedError

    def purchase_btc(self, wallet: WalletDescriptor, amount: float, currency: str) -> PaymentLink:
        raise NotImplementedError

    def recurring_btc(
        self, wallet: WalletDescriptor, amount: float, currency: str
    ) -> PaymentLink:
        raise NotImplementedError

    async def recover(self, source: WalletDescriptor, destination: str, passphrase: str) -> int:
        raise NotImplementedError

    async def submit_tx(
        self, wallet: WalletDescriptor, signed_tx: str
    ) -> SubmissionResult | None:
        raise NotImplementedError

    async def unsigned_tx(
        self, wallet: WalletDescriptor, amount: float, currency: str, balance: int
    ) -> UnsignedTransaction | None:
        raise NotImplementedError

    @classmethod
    def implements(cls, capability: Capability) -> bool:
        """Whether the class overrides the method backing a capability"""
        return getattr(cls, capability.value) is not getattr(WalletProvider, capability.value)

    async def close(self) -> None:
        pass
