"""
Custody data models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ProviderType(str, Enum):
    BITGO = "bitgo"
    COINBASE = "coinbase"


@dataclass(frozen=True)
class WalletDescriptor:
    """Opaque wallet handle produced by provisioning"""

    provider: ProviderType
    address: str


@dataclass
class FeeEstimate:
    """Fee-per-kb oracle answer, mutated only by the fee convergence loop"""

    fee_per_kb: int


@dataclass
class Candidate:
    """A provider-built transaction and the fee the provider computed for it"""

    tx_hex: str
    unspents: list[dict[str, Any]]
    fee: int
    xpub: str


@dataclass
class UnsignedTransaction:
    tx_hex: str
    unspents: list[dict[str, Any]]
    fee: int
    xpub: str


@dataclass
class TransactionOutput:
    account: str
    value: int


@dataclass
class TransactionDetail:
    """Blockchain detail for a broadcast transaction"""

    tx_hash: str
    fee: int
    outputs: list[TransactionOutput] = field(default_factory=list)


@dataclass
class SubmissionResult:
    tx_hash: str
    fee: int | None = None
    address: str | None = None
    satoshis: int | None = None


@dataclass
class WalletBalances:
    balance: int
    spendable: int
    confirmed: int
    unconfirmed: int


@dataclass
class PaymentLink:
    buy_url: str | None = None
    recurring_url: str | None = None


# Outcome of a send: the provider accepts it, rejects it while reporting the
# fee it requires, or fails outright.


@dataclass
class Accepted:
    tx_hash: str | None = None


@dataclass
class RejectedWithFee:
    fee: int
    error: Exception


@dataclass
class Failed:
    error: Exception


SendAttempt = Accepted | RejectedWithFee | Failed
