"""
custody - Provider-agnostic custodial bitcoin wallet core

Fiat-to-satoshi conversion over a cached rate snapshot, unsigned transaction
building with fee convergence, submission with settlement reconciliation, and
recovery sweeps.
"""

__version__ = "0.1.0"

from custody.constants import (
    BITCOIN_DUST_THRESHOLD,
    CONFIRMATION_POLL_ATTEMPTS,
    FEE_ESTIMATE_BLOCKS,
    MAX_FEE_ITERATIONS,
    RATE_REFRESH_INTERVAL,
    STANDARD_DUST_LIMIT,
)
from custody.errors import (
    ConfigurationError,
    ConfirmationTimeout,
    ProviderError,
    RateRefreshFailure,
    SweepError,
    TransactionDecodeError,
    TransactionMismatch,
    UnknownCurrency,
    UnsupportedOperation,
    UnsupportedPaymentCurrency,
    WalletError,
)
from custody.models import (
    PaymentLink,
    ProviderType,
    SubmissionResult,
    UnsignedTransaction,
    WalletBalances,
    WalletDescriptor,
)
from custody.tx import compare_tx, decode_transaction
from custody.wallet import Wallet

__all__ = [
    "BITCOIN_DUST_THRESHOLD",
    "CONFIRMATION_POLL_ATTEMPTS",
    "ConfigurationError",
    "ConfirmationTimeout",
    "FEE_ESTIMATE_BLOCKS",
    "MAX_FEE_ITERATIONS",
    "PaymentLink",
    "ProviderError",
    "ProviderType",
    "RATE_REFRESH_INTERVAL",
    "RateRefreshFailure",
    "STANDARD_DUST_LIMIT",
    "SubmissionResult",
    "SweepError",
    "TransactionDecodeError",
    "TransactionMismatch",
    "UnknownCurrency",
    "UnsignedTransaction",
    "UnsupportedOperation",
    "UnsupportedPaymentCurrency",
    "Wallet",
    "WalletBalances",
    "WalletDescriptor",
    "WalletError",
    "compare_tx",
    "decode_transaction",
]
