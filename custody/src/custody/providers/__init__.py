"""
Wallet provider implementations.

Available providers:
- custody.providers.bitgo.BitGoProvider: Custodial multisig wallets via BitGo Express
- custody.providers.coinbase.CoinbaseProvider: Fiat purchase links (default
  payment-link provider)

Only the base interfaces are re-exported here; the concrete providers depend
on the transaction builder, which itself depends on the base interfaces.
"""

from custody.providers.base import (
    PAYMENT_CAPABILITIES,
    Capability,
    CustodyAPI,
    WalletProvider,
)

__all__ = [
    "Capability",
    "CustodyAPI",
    "PAYMENT_CAPABILITIES",
    "WalletProvider",
]
