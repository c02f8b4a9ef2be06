import pytest
from sqlalchemy.exc import IntegrityError

from core.results import InsufficientBalanceError
from models import TokenBalance
from utils import token_ledger


def test_first_read_creates_zero_balance(test_db, participant, room):
    assert token_ledger.get_balance(test_db, participant, room["id"]) == 0
    test_db.commit()

    rows = test_db.query(TokenBalance).filter(TokenBalance.participant_id == participant).all()
    assert len(rows) == 1
    assert rows[0].token_count == 0


def test_repeated_reads_keep_one_row(test_db, participant, room):
    token_ledger.get_balance(test_db, participant, room["id"])
    token_ledger.get_balance(test_db, participant, room["id"])
    test_db.commit()

    assert test_db.query(TokenBalance).count() == 1


def test_credit_then_debit(test_db, participant, room):
    assert token_ledger.credit(test_db, participant, room["id"], 2) == 2
    assert token_ledger.debit(test_db, participant, room["id"], 1) == 1
    test_db.commit()

    assert token_ledger.get_balance(test_db, participant, room["id"]) == 1


def test_debit_below_zero_is_rejected_and_balance_unchanged(test_db, participant, room):
    token_ledger.credit(test_db, participant, room["id"], 1)
    test_db.commit()

    with pytest.raises(InsufficientBalanceError) as excinfo:
        token_ledger.debit(test_db, participant, room["id"], 2)

    assert excinfo.value.balance == 1
    assert excinfo.value.requested == 2
    assert token_ledger.get_balance(test_db, participant, room["id"]) == 1


def test_debit_on_fresh_balance_is_rejected(test_db, participant, room):
    with pytest.raises(InsufficientBalanceError):
        token_ledger.debit(test_db, participant, room["id"], 1)


@pytest.mark.parametrize("amount", [0, -1])
def test_non_positive_amounts_are_rejected(test_db, participant, room, amount):
    with pytest.raises(ValueError):
        token_ledger.credit(test_db, participant, room["id"], amount)
    with pytest.raises(ValueError):
        token_ledger.debit(test_db, participant, room["id"], amount)


def test_balance_never_negative_over_mixed_operations(test_db, participant, room):
    operations = [("credit", 1), ("debit", 1), ("debit", 1), ("credit", 2), ("debit", 3), ("debit", 2)]
    for op, amount in operations:
        try:
            getattr(token_ledger, op)(test_db, participant, room["id"], amount)
        except InsufficientBalanceError:
            pass
        assert token_ledger.get_balance(test_db, participant, room["id"]) >= 0
    test_db.commit()

    assert token_ledger.get_balance(test_db, participant, room["id"]) == 0


def test_balances_are_per_room(test_db, make_room, make_participant):
    first = make_room(name="One")
    second = make_room(name="Two")
    pid = make_participant(first["id"])

    token_ledger.credit(test_db, pid, first["id"], 1)
    test_db.commit()

    assert token_ledger.get_balance(test_db, pid, second["id"]) == 0
    assert token_ledger.total_tokens_held(test_db, first["id"]) == 1
    assert token_ledger.total_tokens_held(test_db, second["id"]) == 0


def test_failed_balance_row_insert_is_raised(test_db, monkeypatch):
    def rejected(instance):
        raise IntegrityError("INSERT INTO token_balances", {}, Exception("FOREIGN KEY constraint failed"))

    monkeypatch.setattr(test_db, "add", rejected)
    with pytest.raises(IntegrityError):
        token_ledger.get_balance(test_db, 999, 999)
