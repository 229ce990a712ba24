"""
Pytest configuration and fixtures for custody tests.
"""

from __future__ import annotations

import struct
from collections.abc import Callable, Sequence
from unittest.mock import AsyncMock, MagicMock

import pytest

from custody import rates
from custody.config import BitGoConfig, PricingConfig
from custody.models import ProviderType, WalletDescriptor
from custody.notify import Notifier

SETTLEMENT_ADDRESS = "3Hx6Ub6Z9FfZq6WjZcPv9zFmmEHqbnyxzT"

TxInputFields = tuple[str, int, str, int]  # (txid, vout, scriptsig hex, sequence)
TxOutputFields = tuple[int, str]  # (value, scriptpubkey hex)


def _varint(n: int) -> bytes:
    if n < 0xFD:
        return bytes([n])
    elif n <= 0xFFFF:
        return bytes([0xFD]) + struct.pack("<H", n)
    return bytes([0xFE]) + struct.pack("<I", n)


def serialize_tx(
    inputs: Sequence[TxInputFields],
    outputs: Sequence[TxOutputFields],
    version: int = 1,
    locktime: int = 0,
    witnesses: Sequence[Sequence[str]] | None = None,
) -> str:
    """Serialize a transaction to hex (SegWit encoding when witnesses are given)."""
    result = struct.pack("<i", version)
    if witnesses is not None:
        result += bytes([0x00, 0x01])

    result += _varint(len(inputs))
    for txid, vout, script_sig, sequence in inputs:
        script = bytes.fromhex(script_sig)
        result += bytes.fromhex(txid)[::-1] + struct.pack("<I", vout)
        result += _varint(len(script)) + script
        result += struct.pack("<I", sequence)

    result += _varint(len(outputs))
    for value, script_pubkey in outputs:
        script = bytes.fromhex(script_pubkey)
        result += struct.pack("<q", value) + _varint(len(script)) + script

    if witnesses is not None:
        for items in witnesses:
            result += _varint(len(items))
            for item in items:
                data = bytes.fromhex(item)
                result += _varint(len(data)) + data

    result += struct.pack("<I", locktime)
    return result.hex()


@pytest.fixture
def tx_factory() -> Callable[..., str]:
    return serialize_tx


@pytest.fixture
def settlement_address() -> str:
    return SETTLEMENT_ADDRESS


@pytest.fixture
def bitgo_wallet() -> WalletDescriptor:
    return WalletDescriptor(
        provider=ProviderType.BITGO, address="2N8hwP1WmJrFF5QWABn38y63uYLhnJYJYTF"
    )


@pytest.fixture
def bitgo_config() -> BitGoConfig:
    return BitGoConfig(
        access_token="v2x0123456789abcdef",
        environment="test",
        express_url="http://express.test:3080",
        settlement_address=SETTLEMENT_ADDRESS,
    )


@pytest.fixture
def pricing_config() -> PricingConfig:
    return PricingConfig(
        public_key="pubkey123",
        secret_key="secret456",
        url="https://pricing.test/indices/global/ticker/all?crypto=BTC",
    )


@pytest.fixture
def notifier() -> MagicMock:
    """Notifier whose alerts are recorded instead of delivered."""
    mock = MagicMock(spec=Notifier)
    mock.notify = AsyncMock()
    mock.close = AsyncMock()
    return mock


@pytest.fixture
def mock_api() -> MagicMock:
    """Custodial provider API with every call mocked."""
    api = MagicMock()
    api.get_balances = AsyncMock()
    api.estimate_fee = AsyncMock()
    api.create_transaction = AsyncMock()
    api.send_transaction = AsyncMock()
    api.get_transaction = AsyncMock()
    api.send_coins = AsyncMock()
    api.close = AsyncMock()
    return api


@pytest.fixture(autouse=True)
def fresh_process_rate_cache(monkeypatch: pytest.MonkeyPatch) -> None:
    """Each test starts without a process-wide rate cache."""
    monkeypatch.setattr(rates, "_process_cache", None)
