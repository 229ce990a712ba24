"""
Signed transaction submission and settlement reconciliation.
"""

from __future__ import annotations

import asyncio

from loguru import logger

from custody.constants import CONFIRMATION_POLL_ATTEMPTS, CONFIRMATION_POLL_INTERVAL
from custody.errors import ConfirmationTimeout, ProviderError
from custody.models import SubmissionResult, TransactionDetail, WalletDescriptor
from custody.notify import Notifier
from custody.providers.base import CustodyAPI


class TransactionSubmitter:
    """
    Broadcasts a signed transaction and waits for its detail.

    The provider returns the hash as soon as the broadcast is accepted, but the
    actual fee and per-output destinations may lag. Detail is polled a bounded
    number of times; a broadcast cannot be un-sent, so failing to reconcile it
    raises instead of returning an absent result.
    """

    def __init__(
        self,
        api: CustodyAPI,
        notifier: Notifier,
        settlement_address: str,
        poll_attempts: int = CONFIRMATION_POLL_ATTEMPTS,
        poll_interval: float = CONFIRMATION_POLL_INTERVAL,
    ):
        if poll_attempts < 1:
            raise ValueError(f"poll_attempts must be at least 1, got {poll_attempts}")

        self.api = api
        self.notifier = notifier
        self.settlement_address = settlement_address
        self.poll_attempts = poll_attempts
        self.poll_interval = poll_interval

    async def submit(self, wallet: WalletDescriptor, signed_tx: str) -> SubmissionResult | None:
        """
        Broadcast and reconcile.

        Returns:
            The submission result, or None if the broadcast itself failed

        Raises:
            ConfirmationTimeout: If the transaction was broadcast but its
                detail could not be fetched
        """
        try:
            tx_hash = await self.api.send_transaction(wallet.address, signed_tx)
        except ProviderError as e:
            logger.error(f"sendTransaction failed for {wallet.address}: {e}")
            await self.notifier.notify(f"submitTx error for {wallet.address}: {e}")
            return None

        logger.info(f"Broadcast {tx_hash} from {wallet.address}")
        result = SubmissionResult(tx_hash=tx_hash)

        details = await self._wait_for_details(tx_hash)
        result.fee = details.fee

        for output in reversed(details.outputs):
            if output.account != self.settlement_address:
                continue

            result.address = output.account
            result.satoshis = output.value
            break
        else:
            logger.warning(f"Transaction {tx_hash} has no output to the settlement address")

        return result

    async def _wait_for_details(self, tx_hash: str) -> TransactionDetail:
        attempt = 1
        while True:
            try:
                return await self.api.get_transaction(tx_hash)
            except ProviderError as e:
                logger.debug(
                    f"getTransaction {tx_hash}: {e} (attempt {attempt}/{self.poll_attempts})"
                )
                if attempt >= self.poll_attempts:
                    logger.error(f"Transaction {tx_hash} broadcast but never reconciled: {e}")
                    raise ConfirmationTimeout(tx_hash, self.poll_attempts, e) from e

            await asyncio.sleep(self.poll_interval)
            attempt += 1
