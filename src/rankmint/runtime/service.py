# src/rankmint/runtime/service.py
from __future__ import annotations

"""Host wrapper around the issuance controller.

The controller assumes a host that totally orders calls. This service is that
host for the HTTP runtime: every state-changing call runs under one lock, and
the payment attached to an issuance call is escrowed into the treasury before
the controller sees it and refunded when the call is rejected.
"""

import logging
import threading
from typing import Any, Dict, Optional

from rankmint.issuance.collaborators import (
    BalanceOracle,
    DeterministicNamer,
    InMemoryOwnershipLedger,
    InMemoryValueBook,
    SingleAdministrator,
    StaticBalanceOracle,
)
from rankmint.issuance.controller import Collaborators, IssuanceContext, IssuanceController
from rankmint.issuance.errors import PreconditionFailure
from rankmint.issuance.settings import Settings, validate_fee_policy
from rankmint.logging_utils import log_event
from rankmint.runtime import metrics
from rankmint.runtime.config import IssuanceConfig, load_config

log = logging.getLogger("rankmint.service")

Json = Dict[str, Any]


class IssuanceService:
    def __init__(
        self,
        *,
        controller: IssuanceController,
        value: InMemoryValueBook,
        ownership: InMemoryOwnershipLedger,
        oracles: Optional[Dict[str, BalanceOracle]] = None,
        mode: str = "prod",
    ) -> None:
        self.controller = controller
        self.value = value
        self.ownership = ownership
        self.oracles: Dict[str, BalanceOracle] = dict(oracles or {})
        self.mode = str(mode)
        self._lock = threading.Lock()

    # ----------------------------
    # Reads
    # ----------------------------

    def read_state(self) -> Json:
        with self._lock:
            st = self.controller.snapshot()
            st["treasury"] = int(self.value.treasury)
            return st

    def trait_of(self, identifier: int) -> Json:
        with self._lock:
            rec = self.controller.trait_of(identifier).to_json()
            rec["current_owner"] = self.ownership.owner_of(identifier)
            return rec

    def lookup_balance(self, position: int, address: str) -> int:
        with self._lock:
            return self.controller.lookup_balance(position, address)

    def allowlist(self) -> list:
        with self._lock:
            return self.controller.ctx.allowlist.to_json()

    # ----------------------------
    # Writes
    # ----------------------------

    def issue(self, caller: str, paid: int) -> Json:
        with self._lock:
            self.value.escrow(caller, paid)
            before = int(self.controller.ctx.counter)
            try:
                receipt = self.controller.issue(caller, paid)
            except PreconditionFailure as e:
                self.value.refund(caller, paid)
                metrics.inc_counter("issuance_rejected_total")
                log_event(log, "issue_rejected", caller=caller, paid=int(paid), code=e.code, reason=e.reason)
                raise
            except Exception as e:
                # Refund only when the identifier was not committed.
                refunded = int(self.controller.ctx.counter) == before
                if refunded:
                    self.value.refund(caller, paid)
                metrics.inc_counter("issuance_failed_total")
                log_event(log, "issue_failed", caller=caller, paid=int(paid), refunded=refunded, error=repr(e))
                raise
            out = receipt.to_json()
            st = self.controller.snapshot()
        metrics.record_issuance(out, st)
        return out

    def claim(self, caller: str) -> int:
        with self._lock:
            paid_out = self.controller.claim(caller)
        if paid_out:
            metrics.inc_counter("royalty_claimed_total", paid_out)
        return paid_out

    def set_public_sale(self, caller: str, active: bool) -> Json:
        with self._lock:
            return self.controller.set_public_sale(caller, active).to_json()

    def set_fee_policy(
        self,
        caller: str,
        *,
        fee_waived: Optional[bool] = None,
        fee_divisor: Optional[int] = None,
        min_fee: Optional[int] = None,
    ) -> Json:
        with self._lock:
            s = self.controller.set_fee_policy(caller, fee_waived=fee_waived, fee_divisor=fee_divisor, min_fee=min_fee)
            return s.to_json()

    def register_allowlist_entry(
        self,
        caller: str,
        *,
        oracle_handle: str,
        royalty_percent: int,
        supply_cap: int,
        min_eligible_balance: int,
        payout_address: str,
    ) -> int:
        with self._lock:
            oracle = self.oracles.get(oracle_handle)
            if oracle is None:
                raise PreconditionFailure("not_found", "unknown_oracle", {"oracle": oracle_handle})
            return self.controller.register_allowlist_entry(
                caller,
                oracle=oracle,
                oracle_handle=oracle_handle,
                royalty_percent=royalty_percent,
                supply_cap=supply_cap,
                min_eligible_balance=min_eligible_balance,
                payout_address=payout_address,
            )


def build_service(cfg: Optional[IssuanceConfig] = None) -> IssuanceService:
    """Build an IssuanceService over in-memory collaborators.

    Uses the explicit config when given, else `load_config()` (env/file).
    """
    c = cfg or load_config()

    settings = Settings(
        public_sale_active=c.public_sale_active,
        fee_waived=c.fee_waived,
        fee_divisor=c.fee_divisor,
        min_fee=c.min_fee,
    )
    validate_fee_policy(settings)

    ownership = InMemoryOwnershipLedger()
    value = InMemoryValueBook(balances=dict(c.initial_balances))
    ctx = IssuanceContext(
        collaborators=Collaborators(
            ownership=ownership,
            value=value,
            namer=DeterministicNamer(),
            admin=SingleAdministrator(c.administrator),
        ),
        team_address=c.team_address,
        donation_address=c.donation_address,
        settings=settings,
    )
    oracles: Dict[str, BalanceOracle] = {h: StaticBalanceOracle(dict(t)) for h, t in c.oracles.items()}

    log_event(log, "service_built", mode=c.mode, oracles=sorted(oracles.keys()), **settings.to_json())
    return IssuanceService(
        controller=IssuanceController(ctx), value=value, ownership=ownership, oracles=oracles, mode=c.mode
    )


__all__ = ["IssuanceService", "build_service"]
