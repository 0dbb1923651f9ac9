# src/rankmint/issuance/collaborators.py
from __future__ import annotations

"""Interfaces the issuance controller consumes, plus in-memory host implementations.

The controller only ever talks to these protocols. The in-memory classes back
the dev/API runtime and the test-suite; a production host swaps in adapters
over its real ownership ledger, oracles and value layer.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Protocol, Set, runtime_checkable

from rankmint.issuance.errors import PreconditionFailure, TransferFailure


@runtime_checkable
class OwnershipLedger(Protocol):
    def mint(self, owner: str, identifier: int) -> None: ...

    def balance_of(self, owner: str) -> int: ...

    def owns_any(self, owner: str) -> bool: ...


@runtime_checkable
class BalanceOracle(Protocol):
    def balance_of(self, address: str) -> int: ...


@runtime_checkable
class MetadataNamer(Protocol):
    def assign_name(self, identifier: int, bucket: int) -> Any: ...


@runtime_checkable
class AdministratorGate(Protocol):
    def is_administrator(self, caller: str) -> bool: ...


@runtime_checkable
class ValueTransfer(Protocol):
    """Host value layer: caller balances and payouts out of the issuance treasury.

    `transfer` returns False (or raises TransferFailure) when the destination
    rejects the payment.
    """

    def balance_of(self, address: str) -> int: ...

    def transfer(self, to: str, amount: int) -> bool: ...


# ---------------------------------------------------------------------------
# In-memory implementations
# ---------------------------------------------------------------------------


@dataclass
class InMemoryOwnershipLedger:
    owners: Dict[int, str] = field(default_factory=dict)
    holdings: Dict[str, List[int]] = field(default_factory=dict)

    def mint(self, owner: str, identifier: int) -> None:
        ident = int(identifier)
        if ident in self.owners:
            raise PreconditionFailure("conflict", "identifier_exists", {"identifier": ident})
        self.owners[ident] = owner
        self.holdings.setdefault(owner, []).append(ident)

    def balance_of(self, owner: str) -> int:
        return len(self.holdings.get(owner, []))

    def owns_any(self, owner: str) -> bool:
        return self.balance_of(owner) > 0

    def owner_of(self, identifier: int) -> Optional[str]:
        return self.owners.get(int(identifier))


@dataclass
class StaticBalanceOracle:
    """Third-party ledger stand-in: a fixed address -> balance table."""

    balances: Dict[str, int] = field(default_factory=dict)

    def balance_of(self, address: str) -> int:
        return int(self.balances.get(address, 0))

    def set_balance(self, address: str, amount: int) -> None:
        self.balances[address] = int(amount)


@dataclass
class DeterministicNamer:
    base_uri: str = "rankmint://identity/"
    assigned: Dict[int, str] = field(default_factory=dict)

    def assign_name(self, identifier: int, bucket: int) -> str:
        from rankmint.issuance.trait import trait_name

        handle = f"{self.base_uri}{trait_name(bucket, identifier)}"
        self.assigned[int(identifier)] = handle
        return handle


@dataclass
class SingleAdministrator:
    administrator: str

    def is_administrator(self, caller: str) -> bool:
        return bool(caller) and caller == self.administrator


@dataclass
class InMemoryValueBook:
    """Balances for every address plus the issuance treasury.

    `escrow` moves an attached payment from the caller into the treasury before
    an issuance call; `refund` reverses it when the call aborts. Destinations in
    `rejecting` refuse every transfer, which is how tests force payout failures.
    """

    balances: Dict[str, int] = field(default_factory=dict)
    treasury: int = 0
    rejecting: Set[str] = field(default_factory=set)
    raise_on_reject: bool = False

    def balance_of(self, address: str) -> int:
        return int(self.balances.get(address, 0))

    def credit(self, address: str, amount: int) -> None:
        self.balances[address] = self.balance_of(address) + int(amount)

    def escrow(self, payer: str, amount: int) -> None:
        amt = int(amount)
        if amt < 0:
            raise PreconditionFailure("invalid_payload", "negative_payment", {"paid": amt})
        have = self.balance_of(payer)
        if have < amt:
            raise PreconditionFailure("insufficient_funds", "payer_balance_too_low", {"balance": have, "paid": amt})
        self.balances[payer] = have - amt
        self.treasury += amt

    def refund(self, payer: str, amount: int) -> None:
        amt = int(amount)
        self.treasury -= amt
        self.credit(payer, amt)

    def transfer(self, to: str, amount: int) -> bool:
        amt = int(amount)
        if to in self.rejecting or amt > self.treasury:
            if self.raise_on_reject:
                raise TransferFailure("transfer_rejected", "destination_refused", {"to": to, "amount": amt})
            return False
        self.treasury -= amt
        self.credit(to, amt)
        return True

    def reject(self, addresses: Iterable[str]) -> None:
        self.rejecting.update(addresses)

    def accept(self, addresses: Iterable[str]) -> None:
        self.rejecting.difference_update(addresses)


__all__ = [
    "OwnershipLedger",
    "BalanceOracle",
    "MetadataNamer",
    "AdministratorGate",
    "ValueTransfer",
    "InMemoryOwnershipLedger",
    "StaticBalanceOracle",
    "DeterministicNamer",
    "SingleAdministrator",
    "InMemoryValueBook",
]
