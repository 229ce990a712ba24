"""
BitGo custodial wallet provider.

Talks to a BitGo Express instance over its v1 REST API. Express keeps the user
keychains and performs passphrase signing for sends, so this adapter never
handles key material beyond the public xpub it passes to external signers.
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from custody.builder import RateSource, TransactionBuilder
from custody.config import BitGoConfig
from custody.errors import ProviderError
from custody.models import (
    Accepted,
    Candidate,
    Failed,
    FeeEstimate,
    RejectedWithFee,
    SendAttempt,
    SubmissionResult,
    TransactionDetail,
    TransactionOutput,
    UnsignedTransaction,
    WalletBalances,
    WalletDescriptor,
)
from custody.notify import Notifier
from custody.providers.base import Capability, CustodyAPI, WalletProvider
from custody.submitter import TransactionSubmitter
from custody.sweeper import RecoverySweeper


class BitGoAPI(CustodyAPI):
    """BitGo Express v1 client"""

    def __init__(
        self,
        express_url: str = "http://127.0.0.1:3080",
        access_token: str = "",
        timeout: float = 30.0,
    ):
        self.express_url = express_url.rstrip("/")
        self.client = httpx.AsyncClient(
            timeout=timeout,
            headers={"Authorization": f"Bearer {access_token}"},
        )

    async def _api_call(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
    ) -> Any:
        """
        Make an API call to BitGo Express.

        Raises:
            ProviderError: On transport errors and non-2xx responses; carries
                the status code and decoded JSON body when available
        """
        url = f"{self.express_url}/api/v1/{endpoint}"

        try:
            if method == "GET":
                response = await self.client.get(url, params=params)
            elif method == "POST":
                response = await self.client.post(url, json=data)
            else:
                raise ValueError(f"Unsupported HTTP method: {method}")
        except httpx.HTTPError as e:
            logger.error(f"BitGo API call failed: {endpoint} - {e}")
            raise ProviderError(f"{endpoint}: {e}") from e

        if response.is_success:
            try:
                return response.json()
            except ValueError as e:
                raise ProviderError(f"{endpoint}: invalid JSON response") from e

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        message = body.get("error") or body.get("message") or response.reason_phrase
        raise ProviderError(
            f"{endpoint}: {response.status_code} {message}",
            status_code=response.status_code,
            result=body.get("result") if isinstance(body.get("result"), dict) else None,
        )

    async def get_balances(self, wallet_id: str) -> WalletBalances:
        wallet = await self._api_call("GET", f"wallet/{wallet_id}")
        return WalletBalances(
            balance=int(wallet.get("balance", 0)),
            spendable=int(wallet.get("spendableBalance", 0)),
            confirmed=int(wallet.get("confirmedBalance", 0)),
            unconfirmed=int(wallet.get("unconfirmedReceives", 0)),
        )

    async def estimate_fee(self, num_blocks: int) -> FeeEstimate:
        result = await self._api_call("GET", "tx/fee", params={"numBlocks": num_blocks})
        return FeeEstimate(fee_per_kb=int(result["feePerKb"]))

    async def create_transaction(
        self, wallet_id: str, recipients: dict[str, int], fee_rate: int
    ) -> Candidate:
        result = await self._api_call(
            "POST",
            f"wallet/{wallet_id}/createtransaction",
            data={"recipients": recipients, "feeRate": fee_rate},
        )
        try:
            return Candidate(
                tx_hex=result["transactionHex"],
                unspents=result.get("unspents", []),
                fee=int(result["fee"]),
                xpub=result["walletKeychains"][0]["xpub"],
            )
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise ProviderError(f"createtransaction: malformed response ({e})") from e

    async def send_transaction(self, wallet_id: str, tx_hex: str) -> str:
        result = await self._api_call("POST", "tx/send", data={"tx": tx_hex})
        try:
            return result["hash"]
        except (KeyError, TypeError) as e:
            raise ProviderError(f"tx/send: malformed response ({e})") from e

    async def get_transaction(self, tx_hash: str) -> TransactionDetail:
        result = await self._api_call("GET", f"tx/{tx_hash}")
        try:
            return TransactionDetail(
                tx_hash=result.get("id", tx_hash),
                fee=int(result["fee"]),
                outputs=[
                    TransactionOutput(account=out.get("account", ""), value=int(out["value"]))
                    for out in result.get("outputs", [])
                ],
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderError(f"tx/{tx_hash}: malformed response ({e})") from e

    async def send_coins(
        self,
        wallet_id: str,
        address: str,
        amount: int,
        passphrase: str,
        fee: int | None = None,
    ) -> SendAttempt:
        data: dict[str, Any] = {
            "address": address,
            "amount": amount,
            "walletPassphrase": passphrase,
        }
        if fee is not None:
            data["fee"] = fee

        try:
            result = await self._api_call("POST", f"wallet/{wallet_id}/sendcoins", data=data)
        except ProviderError as e:
            required_fee = e.result.get("fee")
            if required_fee:
                logger.debug(
                    f"sendcoins from {wallet_id} rejected, provider requires fee {required_fee}"
                )
                return RejectedWithFee(fee=int(required_fee), error=e)
            return Failed(error=e)

        return Accepted(tx_hash=result.get("hash"))

    async def close(self) -> None:
        await self.client.aclose()


class BitGoProvider(WalletProvider):
    capabilities = frozenset(
        {
            Capability.BALANCES,
            Capability.RECOVER,
            Capability.SUBMIT_TX,
            Capability.UNSIGNED_TX,
        }
    )

    def __init__(
        self,
        config: BitGoConfig,
        rates: RateSource,
        notifier: Notifier,
        api: CustodyAPI | None = None,
    ):
        self.config = config
        self.api = api or BitGoAPI(
            express_url=config.express_url,
            access_token=config.access_token,
            timeout=config.timeout,
        )
        self.builder = TransactionBuilder(self.api, rates, notifier, config.settlement_address)
        self.submitter = TransactionSubmitter(self.api, notifier, config.settlement_address)
        self.sweeper = RecoverySweeper(self.api)
        logger.debug(f"BitGo environment: {config.environment}")

    async def balances(self, wallet: WalletDescriptor) -> WalletBalances:
        return await self.api.get_balances(wallet.address)

    async def recover(self, source: WalletDescriptor, destination: str, passphrase: str) -> int:
        return await self.sweeper.sweep(source, destination, passphrase)

    async def submit_tx(
        self, wallet: WalletDescriptor, signed_tx: str
    ) -> SubmissionResult | None:
        return await self.submitter.submit(wallet, signed_tx)

    async def unsigned_tx(
        self, wallet: WalletDescriptor, amount: float, currency: str, balance: int
    ) -> UnsignedTransaction | None:
        return await self.builder.build(wallet, amount, currency, balance)

    async def close(self) -> None:
        await self.api.close()
