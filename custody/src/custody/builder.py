"""
Unsigned transaction builder.

Converts a fiat amount into a satoshi target using the cached BTC rate, then
asks the provider to build a candidate paying the settlement address. The
provider computes the real fee only once it has selected inputs, so the amount
sent is ``desired - fee_estimate`` and the estimate is corrected from the
candidate at most once.
"""

from __future__ import annotations

from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal
from typing import Protocol

from loguru import logger

from custody.constants import (
    FEE_ESTIMATE_BLOCKS,
    MAX_FEE_ITERATIONS,
    MINIMUM_SPEND_RATIO,
    SATOSHIS_PER_BTC,
)
from custody.errors import UnknownCurrency
from custody.models import Candidate, UnsignedTransaction, WalletDescriptor
from custody.notify import Notifier
from custody.providers.base import CustodyAPI


class RateSource(Protocol):
    def lookup(self, currency: str) -> float | None: ...


def satoshi_targets(amount: float, rate: float) -> tuple[int, int]:
    """
    Compute the satoshi target for a fiat amount.

    Args:
        amount: Fiat amount
        rate: BTC price in the same currency

    Returns:
        (desired, minimum) where desired is rounded half-up and minimum is
        90% of the exact target, floored
    """
    exact = Decimal(str(amount)) / Decimal(str(rate)) * SATOSHIS_PER_BTC
    desired = int(exact.quantize(Decimal(1), rounding=ROUND_HALF_UP))
    minimum = int((exact * MINIMUM_SPEND_RATIO).to_integral_value(rounding=ROUND_FLOOR))
    return desired, minimum


class TransactionBuilder:
    def __init__(
        self,
        api: CustodyAPI,
        rates: RateSource,
        notifier: Notifier,
        settlement_address: str,
    ):
        self.api = api
        self.rates = rates
        self.notifier = notifier
        self.settlement_address = settlement_address

    async def build(
        self,
        wallet: WalletDescriptor,
        amount: float,
        currency: str,
        balance: int,
    ) -> UnsignedTransaction | None:
        """
        Build an unsigned settlement transaction.

        Args:
            wallet: Source wallet
            amount: Fiat amount to settle
            currency: 3-letter currency code of ``amount``
            balance: Current spendable balance in satoshis

        Returns:
            The unsigned transaction, or None when funds are insufficient or
            the provider failed (retry later)

        Raises:
            UnknownCurrency: If no rate is cached for the currency
        """
        currency = currency.upper()
        rate = self.rates.lookup(currency)
        if rate is None:
            raise UnknownCurrency(currency)

        desired, minimum = satoshi_targets(amount, rate)
        logger.debug(f"unsignedTx: balance={balance}, desired={desired}, minimum={minimum}")
        if minimum > balance:
            logger.info(
                f"Insufficient funds in {wallet.address}: minimum {minimum} > balance {balance}"
            )
            return None

        desired = min(desired, balance)

        try:
            estimate = await self.api.estimate_fee(FEE_ESTIMATE_BLOCKS)
        except Exception as e:
            await self._soft_failure(wallet, "estimateFee", e, {"numBlocks": FEE_ESTIMATE_BLOCKS})
            return None

        fee_rate = estimate.fee_per_kb
        fee = estimate.fee_per_kb
        candidate: Candidate | None = None

        for _ in range(MAX_FEE_ITERATIONS):
            recipients = {self.settlement_address: desired - fee}

            try:
                candidate = await self.api.create_transaction(wallet.address, recipients, fee_rate)
            except Exception as e:
                await self._soft_failure(
                    wallet,
                    "createTransaction",
                    e,
                    {"recipients": recipients, "feeRate": fee_rate},
                )
                return None

            logger.debug(f"unsignedTx: satoshis={desired}, estimate={fee}, actual={candidate.fee}")
            if candidate.fee <= fee:
                break

            fee = candidate.fee

        if candidate is None:
            return None

        return UnsignedTransaction(
            tx_hex=candidate.tx_hex,
            unspents=candidate.unspents,
            fee=candidate.fee,
            xpub=candidate.xpub,
        )

    async def _soft_failure(
        self,
        wallet: WalletDescriptor,
        operation: str,
        error: Exception,
        context: dict,
    ) -> None:
        logger.error(f"{operation} failed for {wallet.address}: {error} ({context})")
        await self.notifier.notify(f"unsignedTx {operation} error for {wallet.address}: {error}")
