"""
Coinbase payment links, the default fiat entry point for every wallet.
"""

from __future__ import annotations

from urllib.parse import urlencode

from custody.config import CoinbaseConfig
from custody.errors import UnsupportedPaymentCurrency
from custody.models import PaymentLink, WalletDescriptor
from custody.providers.base import Capability, WalletProvider

BUY_URL = "https://buy.coinbase.com"
RECURRING_URL = "https://www.coinbase.com/recurring_payments/new"

# Only USD links are supported for now
SUPPORTED_CURRENCIES = frozenset({"USD"})


def format_amount(amount: float) -> str:
    return str(int(amount)) if float(amount).is_integer() else str(amount)


class CoinbaseProvider(WalletProvider):
    capabilities = frozenset({Capability.PURCHASE_BTC, Capability.RECURRING_BTC})

    def __init__(self, config: CoinbaseConfig):
        self.config = config

    def purchase_btc(self, wallet: WalletDescriptor, amount: float, currency: str) -> PaymentLink:
        if currency not in SUPPORTED_CURRENCIES:
            raise UnsupportedPaymentCurrency(currency)

        query = urlencode(
            {
                "crypto_currency": "BTC",
                "code": self.config.widget_code,
                "amount": format_amount(amount),
                "address": wallet.address,
            }
        )
        return PaymentLink(buy_url=f"{BUY_URL}?{query}")

    def recurring_btc(
        self, wallet: WalletDescriptor, amount: float, currency: str
    ) -> PaymentLink:
        if currency not in SUPPORTED_CURRENCIES:
            raise UnsupportedPaymentCurrency(currency)

        query = urlencode(
            {
                "type": "send",
                "repeat": "monthly",
                "amount": format_amount(amount),
                "currency": currency,
                "to": wallet.address,
            }
        )
        return PaymentLink(recurring_url=f"{RECURRING_URL}?{query}")
