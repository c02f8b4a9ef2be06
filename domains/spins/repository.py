"""Spins repository layer. Spin records are append-only."""

from sqlalchemy import func
from sqlalchemy.orm import Session

from models import SpinRecord


def record_spin(db: Session, *, participant_id: int, room_id: int, tier_name: str, amount: float):
    record = SpinRecord(
        participant_id=participant_id,
        room_id=room_id,
        tier_name=tier_name,
        amount=amount,
    )
    db.add(record)
    db.flush()
    return record


def total_earnings(db: Session, participant_id: int, room_id: int) -> float:
    total = (
        db.query(func.sum(SpinRecord.amount))
        .filter(SpinRecord.participant_id == participant_id, SpinRecord.room_id == room_id)
        .scalar()
    )
    return float(total or 0)


def awarded_counts(db: Session, room_id: int) -> dict:
    rows = (
        db.query(SpinRecord.tier_name, func.count(SpinRecord.id))
        .filter(SpinRecord.room_id == room_id)
        .group_by(SpinRecord.tier_name)
        .all()
    )
    return {tier_name: count for tier_name, count in rows}


def list_spins(db: Session, participant_id: int, room_id: int):
    return (
        db.query(SpinRecord)
        .filter(SpinRecord.participant_id == participant_id, SpinRecord.room_id == room_id)
        .order_by(SpinRecord.created_at.desc(), SpinRecord.id.desc())
        .all()
    )
