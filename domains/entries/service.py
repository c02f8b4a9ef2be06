"""Entries service layer.

An entry code moves UNUSED -> ACTIVATED exactly once. The conditional flip in
`repository.bind_entry` is the gate: a participant row is only kept when this
request's flip wins, otherwise the transaction is rolled back and the binding
made by the winner is returned.
"""

import logging

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.results import Err, ErrorKind, Ok, Result, not_found, validation_error
from core.rooms import get_room
from utils.codes import generate_entry_code, get_unique_code
from utils.logging_helpers import log_info, log_warning

from . import repository as entries_repository
from .schemas import ActivateEntryRequest, BoundEntry, EntryBatchCreate, UnboundEntry

logger = logging.getLogger(__name__)

INVALID_CODE_MESSAGE = "Invalid or inactive entry code"


def entry_to_dict(entry) -> dict:
    return {
        "id": entry.id,
        "room_id": entry.room_id,
        "code": entry.code,
        "display_name": entry.display_name,
        "is_active": entry.is_active,
        "has_entered": entry.has_entered,
        "participant_id": entry.participant_id,
        "activated_at": entry.activated_at,
        "created_at": entry.created_at,
    }


def participant_to_dict(participant) -> dict:
    return {
        "id": participant.id,
        "room_id": participant.room_id,
        "display_name": participant.display_name,
        "created_at": participant.created_at,
    }


def get_participant(db: Session, participant_id: int):
    return entries_repository.get_participant(db, participant_id)


def get_participant_names(db: Session, room_id: int) -> dict:
    return {p.id: p.display_name for p in entries_repository.list_participants(db, room_id)}


def create_entries(db: Session, room_id: int, name: str, count: int) -> Result:
    """Mint `count` codes named "<name> 1".."<name> <count>"."""
    try:
        data = EntryBatchCreate(name=name, count=count)
    except ValidationError as exc:
        return validation_error(exc)

    room = get_room(db, room_id=room_id)
    if not room:
        return not_found("Game room")

    minted = set()

    def is_taken(code: str) -> bool:
        return code in minted or entries_repository.entry_code_exists(db, room.id, code)

    try:
        entries = []
        for i in range(data.count):
            code = get_unique_code(generate_entry_code, is_taken)
            minted.add(code)
            entries.append(
                entries_repository.create_entry(
                    db, room_id=room.id, code=code, display_name=f"{data.name} {i + 1}"
                )
            )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    log_info(logger, "Entry codes created", room_id=room.id, count=len(entries))
    return Ok([entry_to_dict(entry) for entry in entries])


def list_entries(db: Session, room_id: int) -> Result:
    room = get_room(db, room_id=room_id)
    if not room:
        return not_found("Game room")
    return Ok([entry_to_dict(entry) for entry in entries_repository.list_entries(db, room.id)])


def revoke_entry(db: Session, room_id: int, code: str) -> Result:
    """Permanently disable a code that has not been used yet."""
    entry = entries_repository.get_entry_by_code(db, room_id, code.strip().upper())
    if not entry:
        return not_found("Entry")
    if entry.has_entered:
        return validation_error("Entry has already been used and cannot be revoked")

    try:
        revoked = entries_repository.deactivate_entry(db, entry.id)
        if not revoked:
            db.rollback()
            return validation_error("Entry has already been used and cannot be revoked")
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    log_info(logger, "Entry code revoked", room_id=room_id, entry_id=entry.id)
    db.refresh(entry)
    return Ok(entry_to_dict(entry))


def _lookup(db: Session, room_id: int, code: str):
    entry = entries_repository.get_entry_by_code(db, room_id, code)
    if not entry or not entry.is_active:
        return None
    if entry.has_entered and entry.participant_id is not None:
        participant = entries_repository.get_participant(db, entry.participant_id)
        return BoundEntry(entry=entry_to_dict(entry), participant=participant_to_dict(participant))
    return UnboundEntry(entry=entry_to_dict(entry))


def validate_entry(db: Session, room_id: int, code: str) -> Result:
    """
    Look a code up without changing anything.

    Returns:
        Ok(UnboundEntry) for a fresh code, Ok(BoundEntry) for one that has
        already been activated, or Err(INVALID_CODE).
    """
    lookup = _lookup(db, room_id, code.strip().upper())
    if lookup is None:
        log_warning(logger, "Entry code rejected", room_id=room_id)
        return Err(ErrorKind.INVALID_CODE, INVALID_CODE_MESSAGE)
    return Ok(lookup)


def _binding(participant: dict, entry: dict, already_entered: bool) -> dict:
    return {
        "participant_id": participant["id"],
        "display_name": participant["display_name"],
        "room_id": entry["room_id"],
        "entry_id": entry["id"],
        "already_entered": already_entered,
    }


def activate_entry(db: Session, room_id: int, code: str, display_name: str = None) -> Result:
    """
    Enter a room with a code, minting the participant identity on first use.

    Repeated activations of the same code (double submits, network retries)
    return the participant created the first time.
    """
    try:
        request = ActivateEntryRequest(code=code, display_name=display_name)
    except ValidationError as exc:
        return validation_error(exc)

    lookup = _lookup(db, room_id, request.code)
    if lookup is None:
        log_warning(logger, "Entry activation rejected", room_id=room_id)
        return Err(ErrorKind.INVALID_CODE, INVALID_CODE_MESSAGE)
    if isinstance(lookup, BoundEntry):
        return Ok(_binding(lookup.participant, lookup.entry, already_entered=True))

    entry = lookup.entry
    name = (request.display_name or "").strip() or entry["display_name"]

    try:
        participant = entries_repository.create_participant(db, room_id=room_id, display_name=name)
        if not entries_repository.bind_entry(db, entry["id"], participant.id):
            # Another request activated (or an admin revoked) the code first
            db.rollback()
            lookup = _lookup(db, room_id, request.code)
            if isinstance(lookup, BoundEntry):
                log_info(
                    logger,
                    "Entry activated concurrently, returning existing participant",
                    lookup.participant["id"],
                    room_id=room_id,
                )
                return Ok(_binding(lookup.participant, lookup.entry, already_entered=True))
            return Err(ErrorKind.INVALID_CODE, INVALID_CODE_MESSAGE)
        participant_data = participant_to_dict(participant)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    log_info(logger, "Entry activated", participant_data["id"], room_id=room_id, entry_id=entry["id"])
    return Ok(_binding(participant_data, entry, already_entered=False))
