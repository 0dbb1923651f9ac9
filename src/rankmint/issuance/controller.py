# src/rankmint/issuance/controller.py
from __future__ import annotations

"""Issuance controller.

One call to `issue` walks the state machine

    Idle -> Validating -> Charging -> Minting -> Indexing -> Accruing -> (Disbursing) -> Idle

Every check (eligibility, sale state, supply ceiling, one-per-caller,
payment) runs before the first mutation, so a rejected call leaves the context
untouched. The bucket is projected and the namer called before the mint, and
the counter advances as soon as the mint lands, so a collaborator failure
never leaves an identifier minted but unaccounted for. The only step that may fail after commit is Disbursing, and its
failures are contained: balances are restored and retried at the next
multiple of PAYOUT_INTERVAL.

All shared state lives in an explicit `IssuanceContext` owned by the
controller. There is no module-level state and no internal locking; the host
serializes calls (see rankmint.runtime.service).
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from rankmint.index.rank_tree import RankIndex
from rankmint.issuance.allowlist import AllowlistEntry, AllowlistRegistry
from rankmint.issuance.collaborators import (
    AdministratorGate,
    BalanceOracle,
    MetadataNamer,
    OwnershipLedger,
    ValueTransfer,
)
from rankmint.issuance.constants import MAX_IDENTIFIERS, PAYOUT_INTERVAL
from rankmint.issuance.errors import InvariantViolation, PreconditionFailure
from rankmint.issuance.ledger import Disbursement, FeeLedger, FeeSplit
from rankmint.issuance.settings import Settings
from rankmint.issuance.trait import projected_bucket, resolve_bucket
from rankmint.logging_utils import log_event

log = logging.getLogger("rankmint.issuance")

Json = Dict[str, Any]


class IssuanceState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    CHARGING = "charging"
    MINTING = "minting"
    INDEXING = "indexing"
    ACCRUING = "accruing"
    DISBURSING = "disbursing"


@dataclass
class Collaborators:
    ownership: OwnershipLedger
    value: ValueTransfer
    namer: MetadataNamer
    admin: AdministratorGate


@dataclass
class TraitRecord:
    identifier: int
    owner: str
    wealth: int
    bucket: int
    handle: Any

    def to_json(self) -> Json:
        return {
            "identifier": int(self.identifier),
            "owner": str(self.owner),
            "wealth": int(self.wealth),
            "bucket": int(self.bucket),
            "handle": self.handle if isinstance(self.handle, (str, int, float, bool)) else str(self.handle),
        }


@dataclass
class IssuanceContext:
    collaborators: Collaborators
    team_address: str
    donation_address: str
    settings: Settings = field(default_factory=Settings)
    ledger: FeeLedger = field(default_factory=FeeLedger)
    allowlist: AllowlistRegistry = field(default_factory=AllowlistRegistry)
    index: RankIndex = field(default_factory=RankIndex)
    counter: int = 0
    traits: Dict[int, TraitRecord] = field(default_factory=dict)


@dataclass
class IssuanceReceipt:
    identifier: int
    caller: str
    wealth: int
    fee: int
    bucket: int
    handle: Any
    split: FeeSplit
    allowlist_position: Optional[int] = None
    disbursement: Optional[Disbursement] = None

    def to_json(self) -> Json:
        return {
            "identifier": int(self.identifier),
            "caller": str(self.caller),
            "wealth": int(self.wealth),
            "fee": int(self.fee),
            "bucket": int(self.bucket),
            "handle": self.handle if isinstance(self.handle, (str, int, float, bool)) else str(self.handle),
            "split": {
                "team": int(self.split.team),
                "donation": int(self.split.donation),
                "royalties": [int(r) for r in self.split.royalties],
            },
            "allowlist_position": self.allowlist_position,
            "disbursement": self.disbursement.to_json() if self.disbursement is not None else None,
        }


class IssuanceController:
    def __init__(self, ctx: IssuanceContext) -> None:
        if not str(ctx.team_address or "").strip() or not str(ctx.donation_address or "").strip():
            raise ValueError("team_address and donation_address must be non-empty")
        self.ctx = ctx
        self.state = IssuanceState.IDLE

    # ----------------------------
    # Views
    # ----------------------------

    @property
    def next_identifier(self) -> int:
        return int(self.ctx.counter) + 1

    def trait_of(self, identifier: int) -> TraitRecord:
        rec = self.ctx.traits.get(int(identifier))
        if rec is None:
            raise PreconditionFailure("not_found", "identifier_not_issued", {"identifier": int(identifier)})
        return rec

    def quote_fee(self, caller: str, paid: int = 0) -> int:
        wealth = int(self.ctx.collaborators.value.balance_of(caller)) + int(paid)
        return self.ctx.settings.compute_fee(wealth)

    def lookup_balance(self, position: int, address: str) -> int:
        return self.ctx.allowlist.lookup_balance(position, address)

    def snapshot(self) -> Json:
        c = self.ctx
        return {
            "counter": int(c.counter),
            "next_identifier": self.next_identifier,
            "max_identifiers": MAX_IDENTIFIERS,
            "settings": c.settings.to_json(),
            "ledger": c.ledger.to_json(),
            "allowlist": c.allowlist.to_json(),
            "index": {"count": c.index.count(), "distinct": c.index.distinct_count(), "height": c.index.height()},
        }

    # ----------------------------
    # Administrator operations
    # ----------------------------

    def _require_admin(self, caller: str) -> None:
        if not self.ctx.collaborators.admin.is_administrator(caller):
            raise PreconditionFailure("forbidden", "administrator_required", {"caller": caller})

    def set_public_sale(self, caller: str, active: bool) -> Settings:
        self._require_admin(caller)
        self.ctx.settings = self.ctx.settings.with_public_sale(active)
        log_event(log, "public_sale_set", active=bool(active))
        return self.ctx.settings

    def set_fee_policy(
        self,
        caller: str,
        *,
        fee_waived: Optional[bool] = None,
        fee_divisor: Optional[int] = None,
        min_fee: Optional[int] = None,
    ) -> Settings:
        self._require_admin(caller)
        self.ctx.settings = self.ctx.settings.with_fee_policy(
            fee_waived=fee_waived, fee_divisor=fee_divisor, min_fee=min_fee
        )
        log_event(log, "fee_policy_set", **self.ctx.settings.to_json())
        return self.ctx.settings

    def register_allowlist_entry(
        self,
        caller: str,
        *,
        oracle: BalanceOracle,
        royalty_percent: int,
        supply_cap: int,
        min_eligible_balance: int,
        payout_address: str,
        oracle_handle: str = "",
    ) -> int:
        self._require_admin(caller)
        entry = AllowlistEntry(
            royalty_percent=int(royalty_percent),
            supply_cap=int(supply_cap),
            min_eligible_balance=int(min_eligible_balance),
            oracle=oracle,
            payout_address=str(payout_address),
            oracle_handle=str(oracle_handle),
        )
        self.ctx.settings = self.ctx.allowlist.register(entry, self.ctx.settings)
        return len(self.ctx.allowlist) - 1

    # ----------------------------
    # Public operations
    # ----------------------------

    def claim(self, caller: str) -> int:
        return self.ctx.allowlist.claim(caller, self.ctx.collaborators.value)

    def issue(self, caller: str, paid: int) -> IssuanceReceipt:
        try:
            return self._issue(str(caller or "").strip(), int(paid))
        finally:
            self.state = IssuanceState.IDLE

    def _validate(self, caller: str, paid: int) -> Tuple[Optional[Tuple[int, AllowlistEntry]], int, int, int]:
        c = self.ctx
        self.state = IssuanceState.VALIDATING

        if not caller:
            raise PreconditionFailure("invalid_payload", "missing_caller", {})
        if paid < 0:
            raise PreconditionFailure("invalid_payload", "negative_payment", {"paid": paid})

        matched = c.allowlist.match(caller)
        if not c.settings.public_sale_active and matched is None:
            raise PreconditionFailure("sale_locked", "public_sale_inactive_and_not_allowlisted", {"caller": caller})

        identifier = self.next_identifier
        if identifier > MAX_IDENTIFIERS:
            raise PreconditionFailure("supply_exhausted", "identifier_ceiling_reached", {"max": MAX_IDENTIFIERS})

        if c.collaborators.ownership.owns_any(caller):
            raise PreconditionFailure("already_holder", "caller_already_holds_identifier", {"caller": caller})

        self.state = IssuanceState.CHARGING
        wealth = int(c.collaborators.value.balance_of(caller)) + paid
        fee = c.settings.compute_fee(wealth)
        if paid < fee:
            raise PreconditionFailure("insufficient_payment", "paid_below_fee", {"paid": paid, "fee": fee})

        return matched, identifier, wealth, fee

    def _issue(self, caller: str, paid: int) -> IssuanceReceipt:
        c = self.ctx
        matched, identifier, wealth, fee = self._validate(caller, paid)

        # The name is assigned before the mint, so a failing namer aborts the
        # step with nothing committed.
        bucket = projected_bucket(c.index, wealth)
        handle = c.collaborators.namer.assign_name(identifier, bucket)

        # --- commit point: nothing below may raise a PreconditionFailure ---

        self.state = IssuanceState.MINTING
        c.collaborators.ownership.mint(caller, identifier)
        c.counter = identifier
        if c.counter > MAX_IDENTIFIERS:
            raise InvariantViolation("issuance", "counter_exceeds_ceiling", {"counter": c.counter})

        self.state = IssuanceState.INDEXING
        if not c.index.exists(wealth):
            c.index.insert(identifier, wealth)
        if resolve_bucket(c.index, wealth) != bucket:
            raise InvariantViolation("issuance", "bucket_projection_mismatch", {"identifier": identifier})
        c.traits[identifier] = TraitRecord(identifier, caller, wealth, bucket, handle)

        self.state = IssuanceState.ACCRUING
        entries = c.allowlist.entries
        split = c.ledger.accrue(fee, [e.royalty_percent for e in entries])
        c.allowlist.credit_royalties(split.royalties)
        if split.total > fee:
            raise InvariantViolation("issuance", "split_exceeds_fee", {"fee": fee, "split": split.total})

        position: Optional[int] = None
        if matched is not None:
            position, entry = matched
            entry.minted_so_far = int(entry.minted_so_far) + 1
            if entry.minted_so_far > entry.supply_cap:
                raise InvariantViolation("allowlist", "supply_cap_exceeded", {"position": position})

        disbursement: Optional[Disbursement] = None
        if identifier % PAYOUT_INTERVAL == 0:
            self.state = IssuanceState.DISBURSING
            disbursement = c.ledger.disburse(
                c.collaborators.value, team_address=c.team_address, donation_address=c.donation_address
            )

        receipt = IssuanceReceipt(
            identifier=identifier,
            caller=caller,
            wealth=wealth,
            fee=fee,
            bucket=bucket,
            handle=handle,
            split=split,
            allowlist_position=position,
            disbursement=disbursement,
        )
        log_event(
            log,
            "issued",
            identifier=identifier,
            caller=caller,
            wealth=wealth,
            fee=fee,
            bucket=bucket,
            allowlist_position=position,
            disbursed=disbursement.to_json() if disbursement is not None else None,
        )
        return receipt


__all__ = [
    "Collaborators",
    "IssuanceContext",
    "IssuanceController",
    "IssuanceReceipt",
    "IssuanceState",
    "TraitRecord",
]
