# src/rankmint/issuance/settings.py
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from rankmint.issuance.constants import DEFAULT_FEE_DIVISOR, DEFAULT_MIN_FEE, ROYALTY_POOL_CEILING
from rankmint.issuance.errors import InvariantViolation, PreconditionFailure

Json = Dict[str, Any]


@dataclass(frozen=True)
class Settings:
    """Administrator-controlled issuance settings.

    Frozen: every change goes through a `with_*` constructor that validates the
    resulting policy, and the controller swaps the whole value in one step.
    """

    public_sale_active: bool = False
    fee_waived: bool = False
    fee_divisor: int = DEFAULT_FEE_DIVISOR
    min_fee: int = DEFAULT_MIN_FEE
    royalty_pool_remaining: int = ROYALTY_POOL_CEILING
    entry_count: int = 0

    def compute_fee(self, wealth: int) -> int:
        if self.fee_waived:
            return 0
        if int(self.fee_divisor) <= 0:
            # validate_fee_policy keeps this unreachable.
            raise InvariantViolation("settings", "fee_divisor_not_positive", {"fee_divisor": self.fee_divisor})
        return max(int(self.min_fee), int(wealth) // int(self.fee_divisor))

    def with_public_sale(self, active: bool) -> "Settings":
        return replace(self, public_sale_active=bool(active))

    def with_fee_policy(
        self,
        *,
        fee_waived: Optional[bool] = None,
        fee_divisor: Optional[int] = None,
        min_fee: Optional[int] = None,
    ) -> "Settings":
        nxt = replace(
            self,
            fee_waived=self.fee_waived if fee_waived is None else bool(fee_waived),
            fee_divisor=self.fee_divisor if fee_divisor is None else int(fee_divisor),
            min_fee=self.min_fee if min_fee is None else int(min_fee),
        )
        validate_fee_policy(nxt)
        return nxt

    def with_registered_entry(self, royalty_percent: int) -> "Settings":
        pct = int(royalty_percent)
        remaining = int(self.royalty_pool_remaining) - pct
        if remaining < 0:
            raise InvariantViolation(
                "settings", "royalty_pool_underflow", {"remaining": self.royalty_pool_remaining, "requested": pct}
            )
        return replace(self, royalty_pool_remaining=remaining, entry_count=int(self.entry_count) + 1)

    def to_json(self) -> Json:
        return {
            "public_sale_active": bool(self.public_sale_active),
            "fee_waived": bool(self.fee_waived),
            "fee_divisor": int(self.fee_divisor),
            "min_fee": int(self.min_fee),
            "royalty_pool_remaining": int(self.royalty_pool_remaining),
            "entry_count": int(self.entry_count),
        }


def validate_fee_policy(s: Settings) -> None:
    """Reject a fee policy that would divide by zero or charge negatively."""
    if not s.fee_waived and int(s.fee_divisor) <= 0:
        raise PreconditionFailure("invalid_settings", "fee_divisor_must_be_positive", {"fee_divisor": s.fee_divisor})
    if int(s.fee_divisor) < 0:
        raise PreconditionFailure("invalid_settings", "fee_divisor_negative", {"fee_divisor": s.fee_divisor})
    if int(s.min_fee) < 0:
        raise PreconditionFailure("invalid_settings", "min_fee_negative", {"min_fee": s.min_fee})


__all__ = ["Settings", "validate_fee_policy"]
