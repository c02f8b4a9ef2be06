"""Entries repository layer."""

from datetime import datetime

from sqlalchemy import update
from sqlalchemy.orm import Session

from models import EntryCode, Participant


def get_entry_by_code(db: Session, room_id: int, code: str):
    return (
        db.query(EntryCode)
        .filter(EntryCode.room_id == room_id, EntryCode.code == code)
        .first()
    )


def entry_code_exists(db: Session, room_id: int, code: str) -> bool:
    return (
        db.query(EntryCode.id)
        .filter(EntryCode.room_id == room_id, EntryCode.code == code)
        .first()
        is not None
    )


def create_entry(db: Session, *, room_id: int, code: str, display_name: str):
    entry = EntryCode(room_id=room_id, code=code, display_name=display_name)
    db.add(entry)
    return entry


def list_entries(db: Session, room_id: int):
    return (
        db.query(EntryCode)
        .filter(EntryCode.room_id == room_id)
        .order_by(EntryCode.created_at.desc(), EntryCode.id.desc())
        .all()
    )


def get_participant(db: Session, participant_id: int):
    return db.query(Participant).filter(Participant.id == participant_id).first()


def list_participants(db: Session, room_id: int):
    return db.query(Participant).filter(Participant.room_id == room_id).all()


def create_participant(db: Session, *, room_id: int, display_name: str):
    participant = Participant(room_id=room_id, display_name=display_name)
    db.add(participant)
    db.flush()
    return participant


def bind_entry(db: Session, entry_id: int, participant_id: int) -> bool:
    """Flip an unused, active entry to entered. False if it was already flipped or revoked."""
    result = db.execute(
        update(EntryCode)
        .where(
            EntryCode.id == entry_id,
            EntryCode.has_entered.is_(False),
            EntryCode.is_active.is_(True),
        )
        .values(
            has_entered=True,
            participant_id=participant_id,
            activated_at=datetime.utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def deactivate_entry(db: Session, entry_id: int) -> bool:
    result = db.execute(
        update(EntryCode)
        .where(EntryCode.id == entry_id, EntryCode.has_entered.is_(False))
        .values(is_active=False)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
