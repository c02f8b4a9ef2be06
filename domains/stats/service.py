"""Statistics service layer.

Read-only reporting over entries, questions, balances and spin records. The
figures are built from several independent queries without locking, so under
concurrent play they may be momentarily inconsistent with each other.
"""

import logging
from collections import defaultdict

from sqlalchemy.orm import Session

from config import TOKENS_PER_CORRECT_ANSWER, TOKENS_PER_SPIN
from core.participants import get_participant_names
from core.results import Ok, Result, not_found
from core.rooms import get_reward_tiers, get_room
from models import DIFFICULTY_ORDER
from utils import token_ledger
from utils.reward_selection import TierWeightingMode, remaining_capacity

from . import repository as stats_repository

logger = logging.getLogger(__name__)


def _rate(part: int, whole: int) -> float:
    return round(part / whole * 100, 1) if whole else 0.0


def _tier_rows(mode, tiers, awarded):
    remaining = remaining_capacity(tiers, awarded) if mode == TierWeightingMode.CAPACITY else {}
    return [
        {
            "name": tier.name,
            "defined": tier.weight,
            "awarded": awarded.get(tier.name, 0),
            "remaining": remaining.get(tier.name),
            "payout_amount": tier.payout_amount,
        }
        for tier in tiers
    ]


def get_room_statistics(db: Session, room_id: int) -> Result:
    room = get_room(db, room_id=room_id)
    if not room:
        return not_found("Game room")

    questions = stats_repository.list_questions(db, room.id)
    by_difficulty = {d: {"total": 0, "solved": 0} for d in DIFFICULTY_ORDER}
    for question in questions:
        bucket = by_difficulty.setdefault(question.difficulty, {"total": 0, "solved": 0})
        bucket["total"] += 1
        bucket["solved"] += int(question.is_solved)
    for bucket in by_difficulty.values():
        bucket["solve_rate"] = _rate(bucket["solved"], bucket["total"])

    spins = stats_repository.list_spins(db, room.id)
    awarded = defaultdict(int)
    for record in spins:
        awarded[record.tier_name] += 1

    mode, tiers = get_reward_tiers(room)
    solved_total = sum(1 for q in questions if q.is_solved)

    return Ok(
        {
            "room_id": room.id,
            "room_name": room.name,
            "weighting_mode": mode.value,
            "total_entries": stats_repository.count_entries(db, room.id),
            "active_participants": len(stats_repository.list_activated_entries(db, room.id)),
            "questions": {
                "total": len(questions),
                "solved": solved_total,
                "solve_rate": _rate(solved_total, len(questions)),
                "by_difficulty": by_difficulty,
            },
            "tokens": {
                "awarded": stats_repository.count_correct_attempts(db, room.id) * TOKENS_PER_CORRECT_ANSWER,
                "used": len(spins) * TOKENS_PER_SPIN,
                "held": token_ledger.total_tokens_held(db, room.id),
            },
            "total_spins": len(spins),
            "total_payout": sum(record.amount for record in spins),
            "reward_tiers": _tier_rows(mode, tiers, awarded),
        }
    )


def get_question_statistics(db: Session, room_id: int) -> Result:
    """Per question: who attempted it, when, and whether they got it right."""
    room = get_room(db, room_id=room_id)
    if not room:
        return not_found("Game room")

    names = get_participant_names(db, room_id=room.id)
    attempts_by_question = defaultdict(list)
    for attempt in stats_repository.list_attempts(db, room.id):
        attempts_by_question[attempt.question_id].append(
            {
                "participant_id": attempt.participant_id,
                "participant_name": names.get(attempt.participant_id),
                "is_correct": attempt.is_correct,
                "attempted_at": attempt.attempted_at,
            }
        )

    result = []
    for question in stats_repository.list_questions(db, room.id):
        attempts = attempts_by_question.get(question.id, [])
        result.append(
            {
                "question_id": question.id,
                "content": question.content,
                "difficulty": question.difficulty,
                "is_solved": question.is_solved,
                "attempts": len(attempts),
                "correct": sum(1 for a in attempts if a["is_correct"]),
                "attempted_by": attempts,
            }
        )
    return Ok(result)


def get_participant_statistics(db: Session, room_id: int) -> Result:
    room = get_room(db, room_id=room_id)
    if not room:
        return not_found("Game room")

    names = get_participant_names(db, room_id=room.id)
    correct = stats_repository.correct_attempts_by_participant(db, room.id)
    balances = stats_repository.balances_by_participant(db, room.id)
    spins = defaultdict(list)
    for record in stats_repository.list_spins(db, room.id):
        spins[record.participant_id].append(record.amount)

    result = []
    for entry in stats_repository.list_activated_entries(db, room.id):
        pid = entry.participant_id
        result.append(
            {
                "participant_id": pid,
                "entry_code": entry.code,
                "display_name": names.get(pid, entry.display_name),
                "activated_at": entry.activated_at,
                "correct_answers": correct.get(pid, 0),
                "tokens_earned": correct.get(pid, 0) * TOKENS_PER_CORRECT_ANSWER,
                "tokens_remaining": balances.get(pid, 0),
                "spins": len(spins.get(pid, [])),
                "total_earnings": sum(spins.get(pid, [])),
            }
        )
    return Ok(result)


def get_reward_distribution(db: Session, room_id: int) -> Result:
    """
    Defined versus awarded prizes per tier, with every individual spin.

    `remaining` is only meaningful for capacity rooms and is None otherwise.
    """
    room = get_room(db, room_id=room_id)
    if not room:
        return not_found("Game room")

    names = get_participant_names(db, room_id=room.id)
    spins_by_tier = defaultdict(list)
    for record in stats_repository.list_spins(db, room.id):
        spins_by_tier[record.tier_name].append(
            {
                "participant_id": record.participant_id,
                "participant_name": names.get(record.participant_id),
                "amount": record.amount,
                "created_at": record.created_at,
            }
        )

    mode, tiers = get_reward_tiers(room)
    awarded = {name: len(records) for name, records in spins_by_tier.items()}
    rows = _tier_rows(mode, tiers, awarded)
    for row in rows:
        row["spins"] = spins_by_tier.get(row["name"], [])
        row["total_amount"] = sum(s["amount"] for s in row["spins"])

    capacity = mode == TierWeightingMode.CAPACITY
    return Ok(
        {
            "weighting_mode": mode.value,
            "tiers": rows,
            "totals": {
                "defined": sum(t.weight for t in tiers),
                "awarded": sum(awarded.values()),
                "remaining": sum(row["remaining"] for row in rows) if capacity else None,
                "amount": sum(s["amount"] for records in spins_by_tier.values() for s in records),
            },
        }
    )
