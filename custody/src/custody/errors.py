"""
Exception hierarchy for custody operations.

Absent results (``None``) mean "retry later". Exceptions mean the request is
invalid, or that a broadcast could not be reconciled, and must not be retried
unchanged.
"""

from __future__ import annotations

from typing import Any


class WalletError(Exception):
    """Base class for all custody errors."""


class ConfigurationError(WalletError):
    """Required setup is missing at construction time."""


class UnsupportedOperation(WalletError):
    """The provider does not implement a custody-specific operation."""

    def __init__(self, provider: str, operation: str) -> None:
        super().__init__(f"provider {provider} {operation} not supported")
        self.provider = provider
        self.operation = operation


class UnknownCurrency(WalletError):
    """No cached rate exists for the requested currency."""

    def __init__(self, currency: str) -> None:
        super().__init__(f"no such currency: {currency}")
        self.currency = currency


class UnsupportedPaymentCurrency(WalletError):
    """A payment-link provider cannot accept the requested currency."""

    def __init__(self, currency: str) -> None:
        super().__init__(f"currency {currency} payment not supported")
        self.currency = currency


class ProviderError(WalletError):
    """
    A custodial provider call failed.

    ``result`` holds the decoded JSON body of the failed response, if any.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        result: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.result = result or {}


class ConfirmationTimeout(WalletError):
    """Transaction detail never became available after a successful broadcast."""

    def __init__(self, tx_hash: str, attempts: int, last_error: Exception) -> None:
        super().__init__(
            f"transaction {tx_hash} broadcast but detail unavailable after "
            f"{attempts} attempts: {last_error}"
        )
        self.tx_hash = tx_hash
        self.attempts = attempts
        self.last_error = last_error


class RateRefreshFailure(WalletError):
    """The pricing source was unreachable or returned a malformed body."""


class SweepError(WalletError):
    """The fee-bearing retry of a recovery sweep was not accepted."""


class TransactionDecodeError(WalletError):
    """A transaction hex could not be decoded."""


class TransactionMismatch(WalletError):
    """A signed transaction does not match its unsigned origin."""
