"""Participant lookup facade.

Participants are minted by the Entries domain when a code is activated. Other
domains look them up through these helpers and pass around `participant_id`.
"""

from sqlalchemy.orm import Session


def get_participant(db: Session, *, participant_id: int):
    from domains.entries import service as entries_service

    return entries_service.get_participant(db, participant_id)


def participant_in_room(db: Session, *, participant_id: int, room_id: int) -> bool:
    participant = get_participant(db, participant_id=participant_id)
    return participant is not None and participant.room_id == room_id


def get_participant_names(db: Session, *, room_id: int) -> dict:
    from domains.entries import service as entries_service

    return entries_service.get_participant_names(db, room_id)
