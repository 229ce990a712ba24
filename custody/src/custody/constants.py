"""
Bitcoin and custody policy constants.

Dust thresholds:
- STANDARD_DUST_LIMIT: Bitcoin Core's P2PKH dust limit (546 sats)
- BITCOIN_DUST_THRESHOLD: 5x the standard limit, the floor for sweep remainders
"""

from __future__ import annotations

from decimal import Decimal

# Standard P2PKH dust limit in Bitcoin Core
STANDARD_DUST_LIMIT = 546  # satoshis

# A recovery sweep never submits a remainder at or below this value
BITCOIN_DUST_THRESHOLD = 5 * STANDARD_DUST_LIMIT  # 2730 satoshis

SATOSHIS_PER_BTC = Decimal(100_000_000)

# A payment may land up to 10% short of the fiat target
MINIMUM_SPEND_RATIO = Decimal("0.90")

# Confirmation window for the fee-per-kb oracle
FEE_ESTIMATE_BLOCKS = 6

# Upper bound on candidate transactions built per unsignedTx call
MAX_FEE_ITERATIONS = 2

# Post-broadcast detail lookup
CONFIRMATION_POLL_ATTEMPTS = 5
CONFIRMATION_POLL_INTERVAL = 1.0  # seconds

# Rate snapshot refresh schedule
RATE_REFRESH_INTERVAL = 15 * 60  # seconds

# Currencies logged after each successful refresh
KEY_CURRENCIES = ("USD", "EUR", "GBP")
