from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class IssuanceError(Exception):
    """Canonical error type for issuance and fee-accounting failures."""

    code: str
    reason: str
    details: Any | None = None

    def __str__(self) -> str:  # pragma: no cover
        if self.details is None:
            return f"{self.code}:{self.reason}"
        return f"{self.code}:{self.reason}:{self.details}"


@dataclass
class PreconditionFailure(IssuanceError):
    """Caller-visible rejection. Raised before any state is touched."""


@dataclass
class TransferFailure(IssuanceError):
    """A payout destination rejected a transfer. Always contained."""


@dataclass
class InvariantViolation(IssuanceError):
    """A guarded invariant broke. Fatal: indicates a bug, not a caller error."""


__all__ = ["IssuanceError", "PreconditionFailure", "TransferFailure", "InvariantViolation"]
