from __future__ import annotations

from typing import Dict, Optional, Tuple

import pytest

from rankmint.issuance.collaborators import (
    DeterministicNamer,
    InMemoryOwnershipLedger,
    InMemoryValueBook,
    SingleAdministrator,
    StaticBalanceOracle,
)
from rankmint.issuance.constants import MAX_IDENTIFIERS, PAYOUT_INTERVAL
from rankmint.issuance.controller import Collaborators, IssuanceContext, IssuanceController, IssuanceReceipt
from rankmint.issuance.errors import PreconditionFailure
from rankmint.issuance.settings import Settings
from rankmint.issuance.trait import resolve_bucket


def _controller(
    *,
    public_sale: bool = True,
    fee_waived: bool = False,
    fee_divisor: int = 100,
    min_fee: int = 0,
    balances: Optional[Dict[str, int]] = None,
) -> Tuple[IssuanceController, InMemoryValueBook, InMemoryOwnershipLedger]:
    value = InMemoryValueBook(balances=dict(balances or {}))
    ownership = InMemoryOwnershipLedger()
    ctx = IssuanceContext(
        collaborators=Collaborators(
            ownership=ownership,
            value=value,
            namer=DeterministicNamer(),
            admin=SingleAdministrator("admin"),
        ),
        team_address="team",
        donation_address="donation",
        settings=Settings(
            public_sale_active=public_sale,
            fee_waived=fee_waived,
            fee_divisor=fee_divisor,
            min_fee=min_fee,
        ),
    )
    return IssuanceController(ctx), value, ownership


def _issue(ctl: IssuanceController, value: InMemoryValueBook, caller: str, paid: int) -> IssuanceReceipt:
    # Host behaviour: the attached payment lands in the treasury before the call
    # and is refunded when the call is rejected.
    value.credit(caller, paid)
    value.escrow(caller, paid)
    try:
        return ctl.issue(caller, paid)
    except PreconditionFailure:
        value.refund(caller, paid)
        raise


def test_sale_locked_rejects_non_allowlisted_caller_without_mutation() -> None:
    ctl, value, ownership = _controller(public_sale=False)
    before = ctl.snapshot()

    with pytest.raises(PreconditionFailure) as e:
        _issue(ctl, value, "mallory", 1_000)

    assert e.value.code == "sale_locked"
    assert ctl.snapshot() == before
    assert ownership.owns_any("mallory") is False
    assert ctl.ctx.index.count() == 0
    assert value.balance_of("mallory") == 1_000


def test_allowlisted_caller_issues_while_sale_is_locked() -> None:
    ctl, value, _ = _controller(public_sale=False, fee_waived=True)
    ctl.register_allowlist_entry(
        "admin",
        oracle=StaticBalanceOracle({"alice": 10}),
        royalty_percent=10,
        supply_cap=3,
        min_eligible_balance=5,
        payout_address="community",
    )

    r = _issue(ctl, value, "alice", 0)

    assert r.identifier == 1
    assert r.fee == 0
    assert r.allowlist_position == 0
    assert ctl.ctx.allowlist.entries[0].minted_so_far == 1


def test_allowlist_supply_cap_is_respected() -> None:
    ctl, value, _ = _controller(public_sale=False, fee_waived=True)
    ctl.register_allowlist_entry(
        "admin",
        oracle=StaticBalanceOracle({"alice": 10, "bob": 10}),
        royalty_percent=5,
        supply_cap=1,
        min_eligible_balance=5,
        payout_address="community",
    )

    _issue(ctl, value, "alice", 0)
    with pytest.raises(PreconditionFailure) as e:
        _issue(ctl, value, "bob", 0)

    assert e.value.code == "sale_locked"
    entry = ctl.ctx.allowlist.entries[0]
    assert entry.minted_so_far == entry.supply_cap == 1
    assert ctl.ctx.counter == 1


def test_first_matching_entry_takes_the_mint() -> None:
    ctl, value, _ = _controller(public_sale=True)
    oracle = StaticBalanceOracle({"alice": 10})
    for _ in range(2):
        ctl.register_allowlist_entry(
            "admin", oracle=oracle, royalty_percent=5, supply_cap=5, min_eligible_balance=1, payout_address="c"
        )

    r = _issue(ctl, value, "alice", 1_000)

    assert r.allowlist_position == 0
    assert [e.minted_so_far for e in ctl.ctx.allowlist.entries] == [1, 0]


def test_one_identifier_per_caller() -> None:
    ctl, value, ownership = _controller()
    _issue(ctl, value, "alice", 1_000)

    with pytest.raises(PreconditionFailure) as e:
        _issue(ctl, value, "alice", 1_000)

    assert e.value.code == "already_holder"
    assert ownership.balance_of("alice") == 1
    assert ctl.ctx.counter == 1


def test_wealth_includes_existing_balance_and_payment() -> None:
    ctl, value, _ = _controller(balances={"alice": 5_000})

    r = _issue(ctl, value, "alice", 1_000)

    assert r.wealth == 6_000
    assert r.fee == 60
    assert ctl.ctx.index.exists(6_000)


def test_insufficient_payment_is_rejected() -> None:
    ctl, value, _ = _controller(min_fee=50)
    before = ctl.snapshot()

    with pytest.raises(PreconditionFailure) as e:
        _issue(ctl, value, "alice", 10)

    assert e.value.code == "insufficient_payment"
    assert e.value.details == {"paid": 10, "fee": 50}
    assert ctl.snapshot() == before


def test_fee_floor_holds_whenever_fee_is_charged() -> None:
    for divisor in (1, 3, 100, 10_000):
        for min_fee in (0, 1, 250):
            s = Settings(fee_divisor=divisor, min_fee=min_fee)
            for wealth in (0, 1, 99, 12_345, 10**12):
                assert s.compute_fee(wealth) >= min_fee


def test_fee_split_is_conserved_per_issuance() -> None:
    ctl, value, _ = _controller(fee_divisor=1)
    for pct in (7, 13):
        ctl.register_allowlist_entry(
            "admin",
            oracle=StaticBalanceOracle({}),
            royalty_percent=pct,
            supply_cap=10,
            min_eligible_balance=1,
            payout_address="community",
        )

    r = _issue(ctl, value, "alice", 997)

    assert r.fee == 997
    assert r.split.team == 498
    assert r.split.donation == 299
    assert r.split.royalties == [69, 129]
    assert r.split.total <= r.fee
    assert [e.accrued_royalty for e in ctl.ctx.allowlist.entries] == [69, 129]


def test_fiftieth_issuance_drains_team_and_donation() -> None:
    ctl, value, _ = _controller()
    for i in range(PAYOUT_INTERVAL - 1):
        r = _issue(ctl, value, f"u{i}", 1_000)
        assert r.disbursement is None

    assert ctl.ctx.ledger.team_accrued == 5 * 49
    assert ctl.ctx.ledger.donation_accrued == 3 * 49

    r = _issue(ctl, value, "u49", 1_000)

    assert r.identifier == PAYOUT_INTERVAL
    assert r.disbursement is not None
    assert ctl.ctx.ledger.team_accrued == 0
    assert ctl.ctx.ledger.donation_accrued == 0
    assert value.balance_of("team") == 250
    assert value.balance_of("donation") == 150


def test_failed_disbursement_keeps_balances_and_retries_next_boundary() -> None:
    ctl, value, _ = _controller()
    value.reject(["team", "donation"])

    for i in range(PAYOUT_INTERVAL):
        r = _issue(ctl, value, f"u{i}", 1_000)

    # The 50th issuance still committed.
    assert r.identifier == PAYOUT_INTERVAL
    assert r.disbursement is not None
    assert r.disbursement.team_failed and r.disbursement.donation_failed
    assert ctl.ctx.ledger.team_accrued == 250
    assert ctl.ctx.ledger.donation_accrued == 150
    assert value.balance_of("team") == 0

    value.accept(["team", "donation"])
    for i in range(PAYOUT_INTERVAL, 2 * PAYOUT_INTERVAL):
        _issue(ctl, value, f"u{i}", 1_000)

    assert ctl.ctx.ledger.team_accrued == 0
    assert ctl.ctx.ledger.donation_accrued == 0
    assert value.balance_of("team") == 500
    assert value.balance_of("donation") == 300


def test_failed_donation_payout_is_restored_to_donation() -> None:
    ctl, value, _ = _controller()
    value.reject(["donation"])

    for i in range(PAYOUT_INTERVAL):
        _issue(ctl, value, f"u{i}", 1_000)

    assert ctl.ctx.ledger.team_accrued == 0
    assert ctl.ctx.ledger.donation_accrued == 150
    assert value.balance_of("team") == 250


def test_identifier_ceiling() -> None:
    ctl, value, _ = _controller()
    ctl.ctx.counter = MAX_IDENTIFIERS - 1

    r = _issue(ctl, value, "last", 1_000)
    assert r.identifier == MAX_IDENTIFIERS

    with pytest.raises(PreconditionFailure) as e:
        _issue(ctl, value, "late", 1_000)
    assert e.value.code == "supply_exhausted"
    assert ctl.ctx.counter == MAX_IDENTIFIERS


def test_trait_is_frozen_at_issuance_time() -> None:
    ctl, value, _ = _controller(fee_waived=True)

    first = _issue(ctl, value, "early", 100)
    assert first.bucket == 11
    assert first.handle == "rankmint://identity/tier-11/1"

    for i, paid in enumerate((200, 300, 400, 50)):
        _issue(ctl, value, f"u{i}", paid)

    # Resolved against today's index, wealth 100 is rank 2 of population 4.
    assert resolve_bucket(ctl.ctx.index, 100) == 3
    assert ctl.trait_of(1).bucket == 11
    assert ctl.trait_of(4).bucket == 11
    # 50 joined as the lowest of five distinct values.
    assert ctl.trait_of(5).bucket == 1
    assert ctl.trait_of(5).handle == "rankmint://identity/tier-01/5"


def test_equal_wealth_reuses_the_index_node() -> None:
    ctl, value, _ = _controller(fee_waived=True)
    _issue(ctl, value, "a", 500)
    _issue(ctl, value, "b", 500)

    assert ctl.ctx.index.count() == 1
    assert ctl.ctx.index.elements(500) == [1]
    assert ctl.ctx.counter == 2


def test_admin_operations_are_gated() -> None:
    ctl, _, _ = _controller(public_sale=False)

    with pytest.raises(PreconditionFailure) as e:
        ctl.set_public_sale("mallory", True)
    assert e.value.code == "forbidden"
    assert ctl.ctx.settings.public_sale_active is False

    with pytest.raises(PreconditionFailure):
        ctl.register_allowlist_entry(
            "mallory",
            oracle=StaticBalanceOracle({}),
            royalty_percent=1,
            supply_cap=1,
            min_eligible_balance=0,
            payout_address="x",
        )
    assert len(ctl.ctx.allowlist) == 0

    ctl.set_public_sale("admin", True)
    assert ctl.ctx.settings.public_sale_active is True


def test_fee_policy_rejects_zero_divisor_unless_waived() -> None:
    ctl, _, _ = _controller()

    with pytest.raises(PreconditionFailure) as e:
        ctl.set_fee_policy("admin", fee_divisor=0)
    assert e.value.code == "invalid_settings"
    assert ctl.ctx.settings.fee_divisor == 100

    ctl.set_fee_policy("admin", fee_waived=True, fee_divisor=0)
    assert ctl.quote_fee("anyone", 10**9) == 0

    with pytest.raises(PreconditionFailure):
        ctl.set_fee_policy("admin", fee_waived=False)
    assert ctl.ctx.settings.fee_waived is True

    ctl.set_fee_policy("admin", fee_waived=False, fee_divisor=10, min_fee=3)
    assert ctl.quote_fee("anyone", 5) == 3


def test_claim_drains_accrued_royalties() -> None:
    ctl, value, _ = _controller(fee_divisor=1)
    ctl.register_allowlist_entry(
        "admin",
        oracle=StaticBalanceOracle({}),
        royalty_percent=20,
        supply_cap=10,
        min_eligible_balance=1,
        payout_address="community",
    )
    _issue(ctl, value, "alice", 100)

    assert ctl.ctx.allowlist.entries[0].accrued_royalty == 20
    assert ctl.claim("community") == 20
    assert ctl.ctx.allowlist.entries[0].accrued_royalty == 0
    assert value.balance_of("community") == 20
    assert ctl.claim("community") == 0


def test_trait_of_unknown_identifier() -> None:
    ctl, _, _ = _controller()
    with pytest.raises(PreconditionFailure) as e:
        ctl.trait_of(99)
    assert e.value.code == "not_found"


class _FlakyNamer(DeterministicNamer):
    def __init__(self, failures: int) -> None:
        super().__init__()
        self.failures = failures

    def assign_name(self, identifier: int, bucket: int) -> str:
        if self.failures > 0:
            self.failures -= 1
            raise RuntimeError("metadata service unavailable")
        return super().assign_name(identifier, bucket)


def test_namer_failure_commits_nothing() -> None:
    ctl, value, ownership = _controller(fee_waived=True)
    ctl.ctx.collaborators.namer = _FlakyNamer(failures=1)
    before = ctl.snapshot()

    with pytest.raises(RuntimeError):
        ctl.issue("alice", 0)

    assert ctl.snapshot() == before
    assert ownership.owners == {}
    assert ctl.ctx.index.count() == 0
    assert ctl.ctx.traits == {}

    assert _issue(ctl, value, "bob", 0).identifier == 1
    assert _issue(ctl, value, "alice", 0).identifier == 2
    assert ownership.owner_of(1) == "bob"
    assert ctl.trait_of(2).owner == "alice"


class _UnreachableBook(InMemoryValueBook):
    def transfer(self, to: str, amount: int) -> bool:
        raise ConnectionError(f"value layer unreachable for {to}")


def test_value_layer_error_during_disbursement_is_contained() -> None:
    ctl, _, _ = _controller()
    book = _UnreachableBook()
    ctl.ctx.collaborators.value = book

    for i in range(PAYOUT_INTERVAL):
        r = _issue(ctl, book, f"u{i}", 1_000)

    assert r.identifier == PAYOUT_INTERVAL
    assert r.disbursement is not None
    assert r.disbursement.team_failed and r.disbursement.donation_failed
    assert ctl.ctx.counter == PAYOUT_INTERVAL
    assert ctl.ctx.ledger.team_accrued == 250
    assert ctl.ctx.ledger.donation_accrued == 150
