"""Statistics repository layer (read-only aggregate queries)."""

from sqlalchemy import func
from sqlalchemy.orm import Session

from models import EntryCode, Question, QuestionAttempt, SpinRecord, TokenBalance


def count_entries(db: Session, room_id: int) -> int:
    return db.query(func.count(EntryCode.id)).filter(EntryCode.room_id == room_id).scalar() or 0


def list_activated_entries(db: Session, room_id: int):
    return (
        db.query(EntryCode)
        .filter(EntryCode.room_id == room_id, EntryCode.has_entered.is_(True))
        .order_by(EntryCode.activated_at, EntryCode.id)
        .all()
    )


def list_questions(db: Session, room_id: int):
    return (
        db.query(Question)
        .filter(Question.room_id == room_id)
        .order_by(Question.created_at, Question.id)
        .all()
    )


def list_attempts(db: Session, room_id: int):
    return (
        db.query(QuestionAttempt)
        .filter(QuestionAttempt.room_id == room_id)
        .order_by(QuestionAttempt.attempted_at, QuestionAttempt.id)
        .all()
    )


def count_correct_attempts(db: Session, room_id: int) -> int:
    return (
        db.query(func.count(QuestionAttempt.id))
        .filter(QuestionAttempt.room_id == room_id, QuestionAttempt.is_correct.is_(True))
        .scalar()
        or 0
    )


def correct_attempts_by_participant(db: Session, room_id: int) -> dict:
    rows = (
        db.query(QuestionAttempt.participant_id, func.count(QuestionAttempt.id))
        .filter(QuestionAttempt.room_id == room_id, QuestionAttempt.is_correct.is_(True))
        .group_by(QuestionAttempt.participant_id)
        .all()
    )
    return dict(rows)


def list_spins(db: Session, room_id: int):
    return (
        db.query(SpinRecord)
        .filter(SpinRecord.room_id == room_id)
        .order_by(SpinRecord.created_at, SpinRecord.id)
        .all()
    )


def balances_by_participant(db: Session, room_id: int) -> dict:
    rows = (
        db.query(TokenBalance.participant_id, TokenBalance.token_count)
        .filter(TokenBalance.room_id == room_id)
        .all()
    )
    return dict(rows)
