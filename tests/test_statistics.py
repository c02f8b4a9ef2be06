import pytest

from core.results import ErrorKind
from domains.entries import service as entries_service
from domains.questions import service as questions_service
from domains.spins import service as spins_service
from domains.stats import service as stats_service


@pytest.fixture
def played_room(test_db, room, make_participant, fixed_rng):
    """Two players, three questions, one spin on Gold."""
    ann = make_participant(room["id"], "Ann")
    ben = make_participant(room["id"], "Ben")
    entries_service.create_entries(test_db, room["id"], "Unused", 1)

    ids = []
    for difficulty in ["bronze", "silver", "gold"]:
        q = questions_service.create_question(
            test_db,
            room["id"],
            {"content": difficulty, "options": ["a", "b"], "correct_option_index": 0, "difficulty": difficulty},
        ).data
        ids.append(q["id"])

    questions_service.submit_answer(test_db, ids[0], ann, 0)
    questions_service.submit_answer(test_db, ids[1], ann, 0)
    questions_service.submit_answer(test_db, ids[0], ben, 1)
    spins_service.spin(test_db, ann, room["id"], rng=fixed_rng(0))

    return {"room": room, "ann": ann, "ben": ben, "questions": ids}


def test_room_statistics(test_db, played_room):
    stats = stats_service.get_room_statistics(test_db, played_room["room"]["id"]).data

    assert stats["total_entries"] == 3
    assert stats["active_participants"] == 2
    assert stats["questions"]["total"] == 3
    assert stats["questions"]["solved"] == 2
    assert stats["questions"]["by_difficulty"]["bronze"] == {"total": 1, "solved": 1, "solve_rate": 100.0}
    assert stats["questions"]["by_difficulty"]["gold"]["solve_rate"] == 0.0
    assert stats["tokens"] == {"awarded": 2, "used": 1, "held": 1}
    assert stats["total_payout"] == 200000
    gold = next(t for t in stats["reward_tiers"] if t["name"] == "Gold")
    assert gold == {"name": "Gold", "defined": 1, "awarded": 1, "remaining": 0, "payout_amount": 200000}


def test_question_statistics(test_db, played_room):
    stats = stats_service.get_question_statistics(test_db, played_room["room"]["id"]).data
    bronze = stats[0]

    assert bronze["attempts"] == 2
    assert bronze["correct"] == 1
    assert [(a["participant_name"], a["is_correct"]) for a in bronze["attempted_by"]] == [
        ("Ann", True),
        ("Ben", False),
    ]
    assert stats[2]["attempts"] == 0


def test_participant_statistics(test_db, played_room):
    stats = stats_service.get_participant_statistics(test_db, played_room["room"]["id"]).data
    by_name = {row["display_name"]: row for row in stats}

    assert set(by_name) == {"Ann", "Ben"}
    assert by_name["Ann"]["correct_answers"] == 2
    assert by_name["Ann"]["tokens_earned"] == 2
    assert by_name["Ann"]["tokens_remaining"] == 1
    assert by_name["Ann"]["spins"] == 1
    assert by_name["Ann"]["total_earnings"] == 200000
    assert by_name["Ben"]["correct_answers"] == 0
    assert by_name["Ben"]["total_earnings"] == 0


def test_reward_distribution(test_db, played_room):
    dist = stats_service.get_reward_distribution(test_db, played_room["room"]["id"]).data
    gold, silver = dist["tiers"]

    assert gold["awarded"] == 1
    assert gold["spins"][0]["participant_name"] == "Ann"
    assert gold["total_amount"] == 200000
    assert silver["spins"] == []
    assert dist["totals"] == {"defined": 3, "awarded": 1, "remaining": 2, "amount": 200000}


def test_probability_room_has_no_remaining(test_db, make_room):
    lucky = make_room(tiers=[{"name": "A", "weight": 40}], weighting_mode="probability", name="Lucky")
    dist = stats_service.get_reward_distribution(test_db, lucky["id"]).data

    assert dist["tiers"][0]["remaining"] is None
    assert dist["totals"]["remaining"] is None


@pytest.mark.parametrize(
    "operation",
    [
        stats_service.get_room_statistics,
        stats_service.get_question_statistics,
        stats_service.get_participant_statistics,
        stats_service.get_reward_distribution,
    ],
)
def test_statistics_for_missing_room(test_db, operation):
    assert operation(test_db, 999).kind == ErrorKind.NOT_FOUND


def test_tokens_used_scales_with_spin_cost(test_db, played_room, monkeypatch):
    monkeypatch.setattr(stats_service, "TOKENS_PER_SPIN", 2)
    stats = stats_service.get_room_statistics(test_db, played_room["room"]["id"]).data

    assert stats["tokens"]["used"] == 2
    assert stats["total_spins"] == 1
