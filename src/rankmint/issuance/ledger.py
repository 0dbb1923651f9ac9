# src/rankmint/issuance/ledger.py
from __future__ import annotations

"""Fee ledger and the zero-then-attempt-then-restore payout discipline.

Every payout (periodic team/donation disbursement and allowlist royalty
claims) goes through `send_or_restore`: the balance is zeroed before the
transfer is attempted and restored to the exact pre-transfer amount when the
destination refuses. A balance is therefore never decremented without either
a delivered transfer or a restoration.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List

from rankmint.issuance.collaborators import ValueTransfer
from rankmint.issuance.constants import DONATION_SHARE_PERCENT, TEAM_SHARE_PERCENT
from rankmint.issuance.errors import TransferFailure
from rankmint.logging_utils import log_event

log = logging.getLogger("rankmint.ledger")

Json = Dict[str, Any]


def send_or_restore(
    read: Callable[[], int],
    write: Callable[[int], None],
    destination: str,
    transfer: ValueTransfer,
    *,
    label: str = "",
) -> int:
    """Drain one balance into `destination`.

    Returns the amount delivered (0 when the balance was empty or the
    transfer failed and the balance was restored). Any exception from the
    value layer counts as a failed transfer and is never propagated.
    """
    amount = int(read())
    if amount <= 0:
        return 0

    write(0)
    ok = False
    try:
        ok = bool(transfer.transfer(destination, amount))
    except TransferFailure as e:
        log_event(log, "transfer_failed", label=label, to=destination, amount=amount, error=str(e))
    except Exception as e:
        # Value-layer errors are contained like a refused transfer.
        log_event(log, "transfer_errored", label=label, to=destination, amount=amount, error=repr(e))
    if not ok:
        write(int(read()) + amount)
        log_event(log, "transfer_restored", label=label, to=destination, amount=amount)
        return 0

    log_event(log, "transfer_sent", label=label, to=destination, amount=amount)
    return amount


@dataclass
class FeeSplit:
    team: int
    donation: int
    royalties: List[int]

    @property
    def total(self) -> int:
        return int(self.team) + int(self.donation) + sum(int(r) for r in self.royalties)


@dataclass
class Disbursement:
    team_sent: int = 0
    donation_sent: int = 0
    team_failed: bool = False
    donation_failed: bool = False

    def to_json(self) -> Json:
        return {
            "team_sent": int(self.team_sent),
            "donation_sent": int(self.donation_sent),
            "team_failed": bool(self.team_failed),
            "donation_failed": bool(self.donation_failed),
        }


@dataclass
class FeeLedger:
    team_accrued: int = 0
    donation_accrued: int = 0

    def accrue(self, fee: int, royalty_percents: Iterable[int]) -> FeeSplit:
        """Split `fee` and add the team/donation shares.

        The allowlist shares are computed here but credited by the caller, which
        owns the entries.
        """
        f = int(fee)
        split = FeeSplit(
            team=(f * TEAM_SHARE_PERCENT) // 100,
            donation=(f * DONATION_SHARE_PERCENT) // 100,
            royalties=[(f * int(p)) // 100 for p in royalty_percents],
        )
        self.team_accrued += split.team
        self.donation_accrued += split.donation
        return split

    def _set_team(self, v: int) -> None:
        self.team_accrued = int(v)

    def _set_donation(self, v: int) -> None:
        self.donation_accrued = int(v)

    def disburse(self, transfer: ValueTransfer, *, team_address: str, donation_address: str) -> Disbursement:
        out = Disbursement()

        had_team = self.team_accrued > 0
        out.team_sent = send_or_restore(
            lambda: self.team_accrued, self._set_team, team_address, transfer, label="team"
        )
        out.team_failed = had_team and out.team_sent == 0

        # A failed donation transfer is restored into the donation balance.
        had_donation = self.donation_accrued > 0
        out.donation_sent = send_or_restore(
            lambda: self.donation_accrued, self._set_donation, donation_address, transfer, label="donation"
        )
        out.donation_failed = had_donation and out.donation_sent == 0
        return out

    def to_json(self) -> Json:
        return {"team_accrued": int(self.team_accrued), "donation_accrued": int(self.donation_accrued)}


__all__ = ["FeeLedger", "FeeSplit", "Disbursement", "send_or_restore"]
