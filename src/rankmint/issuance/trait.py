# src/rankmint/issuance/trait.py
from __future__ import annotations

"""Rarity bucket resolution.

A bucket is derived from where a wealth value sits among all distinct wealth
values seen so far. It is resolved once, inside the issuance step that
inserted the value, so later growth of the index never changes it.
"""

from rankmint.index.rank_tree import RankIndex
from rankmint.issuance.constants import MAX_BUCKET, MIN_BUCKET


def percentile_for(rank: int, population: int) -> int:
    if population <= 0:
        return 100
    return (100 * (int(rank) - 1)) // int(population)


def bucket_for(rank: int, population: int) -> int:
    p = percentile_for(rank, population)
    # Clamp guards against a rank above the population (never produced by
    # RankIndex, but callers can feed arbitrary pairs).
    p = max(0, min(100, p))
    return min(MAX_BUCKET, max(MIN_BUCKET, (p - p % 10) // 10 + 1))


def percentile_of(index: RankIndex, key: int) -> int:
    # One entry is excluded from the population for scale normalization.
    return percentile_for(index.rank(key), index.count() - 1)


def resolve_bucket(index: RankIndex, key: int) -> int:
    return bucket_for(index.rank(key), index.count() - 1)


def projected_bucket(index: RankIndex, key: int) -> int:
    """Bucket `key` resolves to once it is in the index, without inserting it.

    An already-present key reuses its node, so rank and population are unchanged.
    """
    if index.exists(key):
        return resolve_bucket(index, key)
    return bucket_for(index.rank(key) + 1, index.count())


def trait_name(bucket: int, identifier: int) -> str:
    """Deterministic name handed to the metadata namer."""
    return f"tier-{int(bucket):02d}/{int(identifier)}"


__all__ = ["percentile_for", "bucket_for", "percentile_of", "resolve_bucket", "projected_bucket", "trait_name"]
