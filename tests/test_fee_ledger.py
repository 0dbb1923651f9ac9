from __future__ import annotations

import pytest

from rankmint.issuance.collaborators import InMemoryValueBook
from rankmint.issuance.constants import DONATION_SHARE_PERCENT, ROYALTY_POOL_CEILING, TEAM_SHARE_PERCENT
from rankmint.issuance.ledger import FeeLedger, send_or_restore


class _Box:
    def __init__(self, v: int) -> None:
        self.v = v

    def read(self) -> int:
        return self.v

    def write(self, v: int) -> None:
        self.v = v


def test_accrue_splits_team_donation_and_royalties() -> None:
    led = FeeLedger()
    split = led.accrue(1_000, [10, 5])

    assert split.team == 500
    assert split.donation == 300
    assert split.royalties == [100, 50]
    assert split.total == 950
    assert led.team_accrued == 500
    assert led.donation_accrued == 300


@pytest.mark.parametrize("fee", [0, 1, 3, 7, 99, 997, 10_001, 123_456_789])
def test_split_never_exceeds_fee(fee: int) -> None:
    led = FeeLedger()
    split = led.accrue(fee, [7, 13])
    assert split.total <= fee
    # Shares add up to 100%, and each of the four floors loses less than one unit.
    assert fee - split.total < 4


def test_send_or_restore_delivers_and_zeroes() -> None:
    book = InMemoryValueBook(treasury=100)
    box = _Box(40)

    sent = send_or_restore(box.read, box.write, "team", book)

    assert sent == 40
    assert box.v == 0
    assert book.balance_of("team") == 40
    assert book.treasury == 60


def test_send_or_restore_restores_on_rejection() -> None:
    book = InMemoryValueBook(treasury=100, rejecting={"team"})
    box = _Box(40)

    assert send_or_restore(box.read, box.write, "team", book) == 0
    assert box.v == 40
    assert book.balance_of("team") == 0
    assert book.treasury == 100


def test_send_or_restore_restores_when_transfer_raises() -> None:
    book = InMemoryValueBook(treasury=100, rejecting={"team"}, raise_on_reject=True)
    box = _Box(40)

    assert send_or_restore(box.read, box.write, "team", book) == 0
    assert box.v == 40


def test_send_or_restore_skips_empty_balance() -> None:
    book = InMemoryValueBook(treasury=0, rejecting={"team"})
    box = _Box(0)
    assert send_or_restore(box.read, box.write, "team", book) == 0
    assert box.v == 0


def test_disburse_restores_each_balance_into_its_own_bucket() -> None:
    book = InMemoryValueBook(treasury=1_000, rejecting={"donation"})
    led = FeeLedger(team_accrued=50, donation_accrued=30)

    out = led.disburse(book, team_address="team", donation_address="donation")

    assert out.team_sent == 50 and out.team_failed is False
    assert out.donation_sent == 0 and out.donation_failed is True
    assert led.team_accrued == 0
    # Restored into the donation balance, not the team balance.
    assert led.donation_accrued == 30
    assert book.balance_of("team") == 50


class _UnreachableBook(InMemoryValueBook):
    def transfer(self, to: str, amount: int) -> bool:
        raise ConnectionError(f"value layer unreachable for {to}")


def test_send_or_restore_restores_on_value_layer_error() -> None:
    book = _UnreachableBook(treasury=100)
    box = _Box(40)

    assert send_or_restore(box.read, box.write, "team", book) == 0
    assert box.v == 40
    assert book.treasury == 100


def test_disburse_contains_value_layer_errors() -> None:
    led = FeeLedger(team_accrued=250, donation_accrued=150)

    out = led.disburse(_UnreachableBook(treasury=1_000), team_address="team", donation_address="donation")

    assert out.team_failed and out.donation_failed
    assert led.team_accrued == 250
    assert led.donation_accrued == 150


def test_fixed_shares_leave_room_for_the_royalty_pool() -> None:
    assert TEAM_SHARE_PERCENT + DONATION_SHARE_PERCENT + ROYALTY_POOL_CEILING <= 100
