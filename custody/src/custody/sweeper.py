"""
Recovery sweep of a wallet whose keys may be compromised.

The provider refuses a send of 100% of the balance unless a fee is given, and
reports the fee it wants on the refusal. The sweep therefore sends twice, in
order: once without a fee to learn it, then once with it.
"""

from __future__ import annotations

from loguru import logger

from custody.constants import BITCOIN_DUST_THRESHOLD
from custody.errors import SweepError
from custody.models import Accepted, Failed, RejectedWithFee, WalletDescriptor
from custody.providers.base import CustodyAPI


class RecoverySweeper:
    def __init__(self, api: CustodyAPI, dust_threshold: int = BITCOIN_DUST_THRESHOLD):
        self.api = api
        self.dust_threshold = dust_threshold

    async def sweep(self, source: WalletDescriptor, destination: str, passphrase: str) -> int:
        """
        Move the full balance of ``source`` to ``destination``.

        Returns:
            Satoshis swept; 0 when the remainder after fees would be dust

        Raises:
            The provider's original error when the first send fails without
            reporting a fee; SweepError when the fee-bearing retry is refused
        """
        balances = await self.api.get_balances(source.address)
        amount = balances.balance
        logger.info(f"Recovering {amount} sats from {source.address} to {destination}")

        attempt = await self.api.send_coins(source.address, destination, amount, passphrase)

        if isinstance(attempt, Failed):
            raise attempt.error
        if isinstance(attempt, Accepted):
            logger.warning(f"Full-balance send from {source.address} accepted without a fee")
            return amount

        fee = attempt.fee
        amount -= fee
        if amount <= self.dust_threshold:
            logger.warning(
                f"Remainder {amount} sats after fee {fee} is dust, not sweeping {source.address}"
            )
            return 0

        retry = await self.api.send_coins(source.address, destination, amount, passphrase, fee=fee)

        if isinstance(retry, Failed):
            raise retry.error
        if isinstance(retry, RejectedWithFee):
            raise SweepError(
                f"Sweep of {amount} sats with fee {fee} rejected, provider now wants "
                f"{retry.fee}: {retry.error}"
            )

        logger.info(f"Recovered {amount} sats from {source.address} (tx {retry.tx_hash})")
        return amount
