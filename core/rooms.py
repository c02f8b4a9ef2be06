"""Game room lookup facade.

Domains other than rooms should not query the `GameRoom` model directly. Instead,
call these helpers which delegate to the Rooms domain service.
"""

from sqlalchemy.orm import Session


def get_room(db: Session, *, room_id: int):
    from domains.rooms import service as rooms_service

    return rooms_service.get_room_by_id(db, room_id)


def get_room_for_update(db: Session, *, room_id: int):
    from domains.rooms import service as rooms_service

    return rooms_service.lock_room(db, room_id)


def get_reward_tiers(room):
    """(weighting mode, ordered RewardTier values) for a loaded room."""
    from domains.rooms import service as rooms_service

    return rooms_service.reward_tiers_for(room)
