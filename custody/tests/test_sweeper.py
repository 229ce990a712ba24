"""
Tests for the recovery sweep and its fee-rejection retry.
"""

from __future__ import annotations

import pytest

from custody.errors import ProviderError, SweepError
from custody.models import Accepted, Failed, RejectedWithFee, WalletBalances
from custody.sweeper import RecoverySweeper

DESTINATION = "2NFsRPF1WPp9tt7TmhhT5Cq1K8yBm1GQXBx"
PASSPHRASE = "correct horse battery staple"


def _balances(balance: int) -> WalletBalances:
    return WalletBalances(balance=balance, spendable=balance, confirmed=balance, unconfirmed=0)


def _fee_rejection(fee: int) -> RejectedWithFee:
    error = ProviderError(
        "Insufficient funds to pay fee", status_code=400, result={"fee": fee}
    )
    return RejectedWithFee(fee=fee, error=error)


@pytest.fixture
def sweeper(mock_api) -> RecoverySweeper:
    return RecoverySweeper(mock_api)


class TestSweep:
    @pytest.mark.asyncio
    async def test_retry_with_reported_fee(self, sweeper, mock_api, bitgo_wallet) -> None:
        mock_api.get_balances.return_value = _balances(100_000)
        mock_api.send_coins.side_effect = [_fee_rejection(5_000), Accepted(tx_hash="ab" * 32)]

        swept = await sweeper.sweep(bitgo_wallet, DESTINATION, PASSPHRASE)

        assert swept == 95_000
        first, second = mock_api.send_coins.await_args_list
        assert first.args == (bitgo_wallet.address, DESTINATION, 100_000, PASSPHRASE)
        assert first.kwargs == {}
        assert second.args == (bitgo_wallet.address, DESTINATION, 95_000, PASSPHRASE)
        assert second.kwargs == {"fee": 5_000}

    @pytest.mark.asyncio
    async def test_dust_remainder_not_swept(self, sweeper, mock_api, bitgo_wallet) -> None:
        mock_api.get_balances.return_value = _balances(5_000)
        mock_api.send_coins.return_value = _fee_rejection(3_000)

        swept = await sweeper.sweep(bitgo_wallet, DESTINATION, PASSPHRASE)

        assert swept == 0
        assert mock_api.send_coins.await_count == 1

    @pytest.mark.asyncio
    async def test_dust_threshold_is_inclusive(self, sweeper, mock_api, bitgo_wallet) -> None:
        mock_api.get_balances.return_value = _balances(12_730)
        mock_api.send_coins.return_value = _fee_rejection(10_000)

        assert await sweeper.sweep(bitgo_wallet, DESTINATION, PASSPHRASE) == 0
        assert mock_api.send_coins.await_count == 1

    @pytest.mark.asyncio
    async def test_just_above_dust_is_swept(self, sweeper, mock_api, bitgo_wallet) -> None:
        mock_api.get_balances.return_value = _balances(12_731)
        mock_api.send_coins.side_effect = [_fee_rejection(10_000), Accepted()]

        assert await sweeper.sweep(bitgo_wallet, DESTINATION, PASSPHRASE) == 2_731
        assert mock_api.send_coins.await_count == 2

    @pytest.mark.asyncio
    async def test_failure_without_fee_reraises(self, sweeper, mock_api, bitgo_wallet) -> None:
        error = ProviderError("wallet passphrase incorrect", status_code=401)
        mock_api.get_balances.return_value = _balances(100_000)
        mock_api.send_coins.return_value = Failed(error=error)

        with pytest.raises(ProviderError) as exc_info:
            await sweeper.sweep(bitgo_wallet, DESTINATION, PASSPHRASE)

        assert exc_info.value is error
        assert mock_api.send_coins.await_count == 1

    @pytest.mark.asyncio
    async def test_accepted_without_fee(self, sweeper, mock_api, bitgo_wallet) -> None:
        mock_api.get_balances.return_value = _balances(100_000)
        mock_api.send_coins.return_value = Accepted(tx_hash="cd" * 32)

        assert await sweeper.sweep(bitgo_wallet, DESTINATION, PASSPHRASE) == 100_000
        assert mock_api.send_coins.await_count == 1

    @pytest.mark.asyncio
    async def test_retry_failure_reraises(self, sweeper, mock_api, bitgo_wallet) -> None:
        error = ProviderError("service unavailable", status_code=503)
        mock_api.get_balances.return_value = _balances(100_000)
        mock_api.send_coins.side_effect = [_fee_rejection(5_000), Failed(error=error)]

        with pytest.raises(ProviderError) as exc_info:
            await sweeper.sweep(bitgo_wallet, DESTINATION, PASSPHRASE)

        assert exc_info.value is error

    @pytest.mark.asyncio
    async def test_retry_rejected_again(self, sweeper, mock_api, bitgo_wallet) -> None:
        mock_api.get_balances.return_value = _balances(100_000)
        mock_api.send_coins.side_effect = [_fee_rejection(5_000), _fee_rejection(6_000)]

        with pytest.raises(SweepError, match="6000"):
            await sweeper.sweep(bitgo_wallet, DESTINATION, PASSPHRASE)

        assert mock_api.send_coins.await_count == 2

    @pytest.mark.asyncio
    async def test_custom_dust_threshold(self, mock_api, bitgo_wallet) -> None:
        sweeper = RecoverySweeper(mock_api, dust_threshold=546)
        mock_api.get_balances.return_value = _balances(5_000)
        mock_api.send_coins.side_effect = [_fee_rejection(3_000), Accepted()]

        assert await sweeper.sweep(bitgo_wallet, DESTINATION, PASSPHRASE) == 2_000
