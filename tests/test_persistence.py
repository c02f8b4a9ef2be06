import logging
from dataclasses import dataclass
from datetime import datetime

import pytest
from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.exc import IntegrityError, OperationalError

from core.db import PersistenceContext, RetryPolicy, is_connection_fault
from core.logging import request_context
from core.results import Err, ErrorKind, Ok, validation_error
from domains.rooms import service as rooms_service
from utils.logging_helpers import format_context, get_request_id, log_debug


class FakeSession:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


def _context(max_attempts=3):
    sessions, sleeps = [], []

    def factory():
        sessions.append(FakeSession())
        return sessions[-1]

    context = PersistenceContext(
        session_factory=factory,
        retry_policy=RetryPolicy(max_attempts=max_attempts, backoff_seconds=0.1),
        sleep=sleeps.append,
    )
    return context, sessions, sleeps


def _connection_fault():
    return OperationalError("SELECT 1", {}, Exception("server closed the connection"))


def test_connection_faults_are_retried_with_backoff():
    context, sessions, sleeps = _context()
    calls = []

    def flaky(db, value):
        calls.append(db)
        if len(calls) < 3:
            raise _connection_fault()
        return value * 2

    assert context.run(flaky, 21) == 42
    assert sleeps == pytest.approx([0.1, 0.2])
    assert len(sessions) == 3
    assert all(s.closed for s in sessions)


def test_retries_give_up_after_max_attempts():
    context, sessions, sleeps = _context(max_attempts=2)

    def always_down(db):
        raise _connection_fault()

    with pytest.raises(OperationalError):
        context.run(always_down)
    assert len(sessions) == 2
    assert len(sleeps) == 1


def test_other_errors_are_not_retried():
    context, sessions, _ = _context()

    def conflict(db):
        raise IntegrityError("INSERT", {}, Exception("duplicate"))

    with pytest.raises(IntegrityError):
        context.run(conflict)
    assert len(sessions) == 1

    def bug(db):
        raise KeyError("oops")

    with pytest.raises(KeyError):
        context.run(bug)


def test_is_connection_fault():
    assert is_connection_fault(_connection_fault())
    assert not is_connection_fault(IntegrityError("INSERT", {}, Exception("duplicate")))


def test_run_against_real_sessions(persistence, test_db, admin):
    admin_id = admin.id
    # Release the fixture session's SQLite read lock before writing elsewhere
    test_db.rollback()

    result = persistence.run(
        rooms_service.create_room,
        admin_id,
        {"name": "Reunion", "reward_tiers": [{"name": "Prize", "weight": 1}]},
    )
    assert result.success

    fetched = persistence.run(rooms_service.get_room, result.data["code"])
    assert fetched.data["id"] == result.data["id"]


@dataclass(frozen=True)
class Prize:
    name: str
    won_at: datetime


def test_result_to_dict_serialises_nested_values():
    when = datetime(2024, 12, 25, 9, 30)
    ok = Ok({"prizes": [Prize("Gold", when)], "kind": ErrorKind.NOT_FOUND})

    assert ok.to_dict() == {
        "success": True,
        "data": {"prizes": [{"name": "Gold", "won_at": "2024-12-25T09:30:00"}], "kind": "not_found"},
    }
    assert Err(ErrorKind.INVALID_CODE, "Bad code").to_dict() == {
        "success": False,
        "error": "Bad code",
        "kind": "invalid_code",
    }


def test_validation_error_from_pydantic():
    class Sample(BaseModel):
        count: int = Field(..., ge=1)

    with pytest.raises(ValidationError) as excinfo:
        Sample(count=0)

    err = validation_error(excinfo.value)
    assert err.kind == ErrorKind.VALIDATION_ERROR
    assert err.message.startswith("count: ")


def test_run_binds_one_request_id_across_retries():
    context, _, _ = _context()
    seen = []

    def flaky(db):
        seen.append(get_request_id())
        if len(seen) < 2:
            raise _connection_fault()
        return format_context("Spin recorded", 7, room_id=3)

    message = context.run(flaky)

    assert seen[0] and seen[0] == seen[1]
    assert message == f"Spin recorded | id={seen[0]} | participant_id=7 | room_id=3"
    assert get_request_id() == ""


def test_outer_request_id_is_kept():
    context, _, _ = _context()
    with request_context("req-1"):
        assert context.run(lambda db: get_request_id()) == "req-1"


def test_log_debug_appends_context(caplog):
    logger = logging.getLogger("tests.spins")
    with caplog.at_level(logging.DEBUG, logger="tests.spins"):
        with request_context("req-9"):
            log_debug(logger, "Reward tier drawn", 4, room_id=2, tier=None)

    assert caplog.records[-1].levelno == logging.DEBUG
    assert caplog.records[-1].getMessage() == "Reward tier drawn | id=req-9 | participant_id=4 | room_id=2"
