# src/rankmint/issuance/constants.py
from __future__ import annotations

"""Issuance and fee-split constants.

- One identifier per address, at most 10,000 identifiers ever.
- Fee split: 50% team, 30% donation, up to 20% shared by allowlist entries.
- Team and donation balances are disbursed every 50th issuance.
"""

# Hard ceiling on identifiers (ids run 1..MAX_IDENTIFIERS).
MAX_IDENTIFIERS: int = 10_000

# Disbursement cadence (identifier multiples).
PAYOUT_INTERVAL: int = 50

# Fee split, in whole percent of the fee charged.
TEAM_SHARE_PERCENT: int = 50
DONATION_SHARE_PERCENT: int = 30
ROYALTY_POOL_CEILING: int = 20

# Trait buckets run 1..MAX_BUCKET (11 only at the 100th percentile).
MIN_BUCKET: int = 1
MAX_BUCKET: int = 11

# Default fee policy for a fresh deployment.
DEFAULT_FEE_DIVISOR: int = 100
DEFAULT_MIN_FEE: int = 0
