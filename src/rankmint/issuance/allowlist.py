# src/rankmint/issuance/allowlist.py
from __future__ import annotations

"""Allowlist registry.

Entries are registered once by the administrator and never updated or
removed. Registration order is priority order: an issuance caller matches the
first entry whose oracle reports at least `min_eligible_balance` and whose
supply cap is not yet reached.

Only two fields change after registration, both owned by the controller:
`minted_so_far` (incremented per matched issuance) and `accrued_royalty`
(credited per issuance, drained by `claim`).
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from rankmint.issuance.collaborators import BalanceOracle, ValueTransfer
from rankmint.issuance.errors import InvariantViolation, PreconditionFailure
from rankmint.issuance.ledger import send_or_restore
from rankmint.issuance.settings import Settings
from rankmint.logging_utils import log_event

log = logging.getLogger("rankmint.allowlist")

Json = Dict[str, Any]


@dataclass
class AllowlistEntry:
    royalty_percent: int
    supply_cap: int
    min_eligible_balance: int
    oracle: BalanceOracle
    payout_address: str
    oracle_handle: str = ""
    minted_so_far: int = 0
    accrued_royalty: int = 0

    def has_supply(self) -> bool:
        return int(self.minted_so_far) < int(self.supply_cap)

    def admits(self, caller: str) -> bool:
        if not self.has_supply():
            return False
        return int(self.oracle.balance_of(caller)) >= int(self.min_eligible_balance)

    def to_json(self) -> Json:
        return {
            "royalty_percent": int(self.royalty_percent),
            "supply_cap": int(self.supply_cap),
            "min_eligible_balance": int(self.min_eligible_balance),
            "minted_so_far": int(self.minted_so_far),
            "accrued_royalty": int(self.accrued_royalty),
            "oracle": str(self.oracle_handle),
            "payout_address": str(self.payout_address),
        }


def _validate_entry(entry: AllowlistEntry) -> None:
    pct = int(entry.royalty_percent)
    if pct < 0 or pct > 100:
        raise PreconditionFailure("invalid_payload", "royalty_percent_out_of_range", {"royalty_percent": pct})
    if int(entry.supply_cap) < 0:
        raise PreconditionFailure("invalid_payload", "supply_cap_negative", {"supply_cap": entry.supply_cap})
    if int(entry.min_eligible_balance) < 0:
        raise PreconditionFailure(
            "invalid_payload", "min_eligible_balance_negative", {"min_eligible_balance": entry.min_eligible_balance}
        )
    if not str(entry.payout_address or "").strip():
        raise PreconditionFailure("invalid_payload", "missing_payout_address", {})
    if entry.oracle is None:
        raise PreconditionFailure("invalid_payload", "missing_oracle", {})
    if int(entry.minted_so_far) != 0 or int(entry.accrued_royalty) != 0:
        raise PreconditionFailure("invalid_payload", "entry_counters_must_start_at_zero", {})


@dataclass
class AllowlistRegistry:
    entries: List[AllowlistEntry] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)

    def register(self, entry: AllowlistEntry, settings: Settings) -> Settings:
        """Append `entry` and return settings with the royalty pool decremented."""
        _validate_entry(entry)
        pct = int(entry.royalty_percent)
        if pct > int(settings.royalty_pool_remaining):
            raise PreconditionFailure(
                "royalty_pool_exhausted",
                "royalty_percent_exceeds_pool",
                {"requested": pct, "remaining": int(settings.royalty_pool_remaining)},
            )
        nxt = settings.with_registered_entry(pct)
        self.entries.append(entry)
        if len(self.entries) != int(nxt.entry_count):
            raise InvariantViolation(
                "allowlist", "entry_count_mismatch", {"entries": len(self.entries), "entry_count": nxt.entry_count}
            )
        log_event(
            log,
            "allowlist_registered",
            position=len(self.entries) - 1,
            royalty_percent=pct,
            supply_cap=int(entry.supply_cap),
            oracle=entry.oracle_handle,
            pool_remaining=int(nxt.royalty_pool_remaining),
        )
        return nxt

    def match(self, caller: str) -> Optional[Tuple[int, AllowlistEntry]]:
        for i, entry in enumerate(self.entries):
            if entry.admits(caller):
                return i, entry
        return None

    def get(self, position: int) -> AllowlistEntry:
        i = int(position)
        if i < 0 or i >= len(self.entries):
            raise PreconditionFailure("not_found", "allowlist_entry_not_found", {"position": i})
        return self.entries[i]

    def lookup_balance(self, position: int, address: str) -> int:
        return int(self.get(position).oracle.balance_of(address))

    def credit_royalties(self, amounts: List[int]) -> None:
        if len(amounts) != len(self.entries):
            raise InvariantViolation("allowlist", "royalty_split_mismatch", {"amounts": len(amounts)})
        for entry, amt in zip(self.entries, amounts):
            entry.accrued_royalty = int(entry.accrued_royalty) + int(amt)

    def claim(self, caller: str, transfer: ValueTransfer) -> int:
        """Pay out every entry whose payout address is `caller`.

        Keeps scanning after a match: one payout address may control several
        entries. Returns the total delivered.
        """
        total = 0
        for i, entry in enumerate(self.entries):
            if entry.payout_address != caller:
                continue

            def _read(e: AllowlistEntry = entry) -> int:
                return int(e.accrued_royalty)

            def _write(v: int, e: AllowlistEntry = entry) -> None:
                e.accrued_royalty = int(v)

            total += send_or_restore(_read, _write, caller, transfer, label=f"royalty:{i}")
        return total

    def to_json(self) -> List[Json]:
        return [e.to_json() for e in self.entries]


__all__ = ["AllowlistEntry", "AllowlistRegistry"]
