import os

os.environ.setdefault("TESTING", "true")

import pytest
from sqlalchemy.orm import sessionmaker

from core.db import Base, PersistenceContext, RetryPolicy, build_engine
from domains.entries import service as entries_service
from domains.rooms import service as rooms_service
from models import AdminUser

DEFAULT_TIERS = [
    {"name": "Gold", "weight": 1, "payout_amount": 200000},
    {"name": "Silver", "weight": 2, "payout_amount": 100000},
]


class FixedRandom:
    """Random source that always draws the same offset (clamped into range)."""

    def __init__(self, value=0):
        self.value = value
        self.calls = []

    def randrange(self, n):
        self.calls.append(n)
        return min(self.value, n - 1)


@pytest.fixture
def test_engine(tmp_path):
    """File-backed SQLite engine with every table created, one per test"""
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture
def test_db(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def persistence(session_factory):
    return PersistenceContext(
        session_factory=session_factory,
        retry_policy=RetryPolicy(max_attempts=3, backoff_seconds=0),
        sleep=lambda _: None,
    )


@pytest.fixture
def fixed_rng():
    return FixedRandom


@pytest.fixture
def admin(test_db):
    # Hash is irrelevant outside the admin tests; skip bcrypt cost here
    user = AdminUser(name="Host", email="host@example.com", password_hash="x")
    test_db.add(user)
    test_db.commit()
    return user


@pytest.fixture
def make_room(test_db, admin):
    def _make(tiers=None, weighting_mode="capacity", name="Family Party"):
        result = rooms_service.create_room(
            test_db,
            admin.id,
            {
                "name": name,
                "weighting_mode": weighting_mode,
                "reward_tiers": tiers if tiers is not None else DEFAULT_TIERS,
            },
        )
        assert result.success, result
        return result.data

    return _make


@pytest.fixture
def room(make_room):
    return make_room()


@pytest.fixture
def make_participant(test_db):
    def _make(room_id, name="Guest"):
        created = entries_service.create_entries(test_db, room_id, name, 1)
        assert created.success, created
        activated = entries_service.activate_entry(test_db, room_id, created.data[0]["code"], name)
        assert activated.success, activated
        return activated.data["participant_id"]

    return _make


@pytest.fixture
def participant(room, make_participant):
    return make_participant(room["id"])
