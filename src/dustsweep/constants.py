"""
Bitcoin and consolidation constants.
"""

from __future__ import annotations

import math

SATS_PER_BTC = 100_000_000

# BIP86 purpose for single-key taproot outputs
TAPROOT_PURPOSE = 86

# Coin type segment of the derivation path (SLIP-44)
COIN_TYPE_MAINNET = 0
COIN_TYPE_TESTNET = 1

# BIP125 replaceable, no relative locktime
RBF_SEQUENCE = 0xFFFFFFFD

TX_VERSION = 2
TX_LOCKTIME = 0

# Empirical tuning for the second build pass. Changing either value changes
# how many inputs a given wallet sweeps, so they are kept as-is.
SIZE_DIVISOR = 100_000
SIZE_MARGIN = 0.95

# Default address range for scantxoutset
DEFAULT_ADDRESSES_TO_SCAN = 10_000


def round_half_up(value: float) -> int:
    """Round to nearest integer with halves rounded up (not to even)."""
    return math.floor(value + 0.5)
