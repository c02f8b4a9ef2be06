"""Rooms/Reward tiers service layer."""

import logging
from typing import List, Optional, Tuple

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.results import Err, ErrorKind, Ok, Result, not_found, validation_error
from utils.codes import generate_room_code, get_unique_code
from utils.logging_helpers import log_info, log_warning
from utils.reward_selection import RewardTier, TierWeightingMode, remaining_capacity

from . import repository as rooms_repository
from .schemas import RoomCreate, RoomUpdate, check_tier_list

logger = logging.getLogger(__name__)


def room_to_dict(room) -> dict:
    return {
        "id": room.id,
        "name": room.name,
        "code": room.code,
        "description": room.description,
        "created_by": room.created_by,
        "weighting_mode": room.weighting_mode,
        "is_active": room.is_active,
        "reward_tiers": [
            {
                "name": tier.name,
                "weight": tier.weight,
                "payout_amount": tier.payout_amount,
            }
            for tier in room.reward_tiers
        ],
        "created_at": room.created_at,
    }


def get_room_by_id(db: Session, room_id: int):
    """Room by primary key, never by code."""
    return rooms_repository.get_room_by_id(db, room_id)


def find_room(db: Session, room_id_or_code) -> Optional[object]:
    """Room by numeric id, falling back to the room code."""
    if isinstance(room_id_or_code, int) or str(room_id_or_code).isdigit():
        room = rooms_repository.get_room_by_id(db, int(room_id_or_code))
        if room:
            return room
    return rooms_repository.get_room_by_code(db, str(room_id_or_code).strip().upper())


def lock_room(db: Session, room_id: int):
    return rooms_repository.get_room_by_id_for_update(db, room_id)


def reward_tiers_for(room) -> Tuple[TierWeightingMode, List[RewardTier]]:
    tiers = [
        RewardTier(name=tier.name, weight=tier.weight, payout_amount=tier.payout_amount)
        for tier in room.reward_tiers
    ]
    return TierWeightingMode(room.weighting_mode), tiers


def create_room(db: Session, admin_id: Optional[int], payload: dict) -> Result:
    try:
        data = RoomCreate(**payload)
    except ValidationError as exc:
        log_warning(logger, "Room creation rejected", admin_id=admin_id)
        return validation_error(exc)

    if admin_id is not None and not rooms_repository.admin_exists(db, admin_id):
        return not_found("Admin")

    code = get_unique_code(
        generate_room_code, lambda c: rooms_repository.room_code_exists(db, c)
    )
    try:
        room = rooms_repository.create_room(
            db,
            name=data.name,
            code=code,
            description=data.description,
            created_by=admin_id,
            weighting_mode=data.weighting_mode.value,
        )
        for position, tier in enumerate(data.reward_tiers):
            rooms_repository.add_reward_tier(
                db,
                room,
                position=position,
                name=tier.name,
                weight=tier.weight,
                payout_amount=tier.payout_amount,
            )
        db.commit()
        db.refresh(room)
    except SQLAlchemyError:
        db.rollback()
        raise

    log_info(
        logger,
        "Game room created",
        room_id=room.id,
        code=room.code,
        mode=room.weighting_mode,
        tiers=len(room.reward_tiers),
    )
    return Ok(room_to_dict(room))


def get_room(db: Session, room_id_or_code) -> Result:
    room = find_room(db, room_id_or_code)
    if not room:
        return not_found("Game room")
    return Ok(room_to_dict(room))


def list_rooms(db: Session, admin_id: int) -> Result:
    rooms = rooms_repository.list_rooms_for_admin(db, admin_id)
    return Ok([room_to_dict(room) for room in rooms])


def _replace_reward_tiers(db: Session, room, tiers) -> None:
    """Add, remove and resize tiers in place so surviving tier names keep their rows."""
    wanted = {tier.name: (position, tier) for position, tier in enumerate(tiers)}
    for existing in list(room.reward_tiers):
        if existing.name not in wanted:
            rooms_repository.delete_reward_tier(db, room, existing)
    db.flush()

    current = {tier.name: tier for tier in room.reward_tiers}
    for name, (position, tier) in wanted.items():
        row = current.get(name)
        if row is None:
            rooms_repository.add_reward_tier(
                db,
                room,
                position=position,
                name=tier.name,
                weight=tier.weight,
                payout_amount=tier.payout_amount,
            )
        else:
            row.position = position
            row.weight = tier.weight
            row.payout_amount = tier.payout_amount
    room.reward_tiers.sort(key=lambda t: t.position)


def update_room(db: Session, room_id: int, payload: dict) -> Result:
    """
    Edit room details and/or its reward tiers.

    In capacity rooms a tier cannot be shrunk below the number of prizes it has
    already handed out.
    """
    try:
        data = RoomUpdate(**payload)
    except ValidationError as exc:
        return validation_error(exc)

    room = rooms_repository.get_room_by_id(db, room_id)
    if not room:
        return not_found("Game room")

    mode = TierWeightingMode(room.weighting_mode)
    if data.reward_tiers is not None:
        try:
            check_tier_list(data.reward_tiers, mode)
        except ValueError as exc:
            return validation_error(f"reward_tiers: {exc}")

        if mode == TierWeightingMode.CAPACITY:
            awarded = rooms_repository.get_awarded_counts_by_tier(db, room.id)
            for tier in data.reward_tiers:
                given = awarded.get(tier.name, 0)
                if tier.weight < given:
                    log_warning(
                        logger,
                        "Tier resize below awarded count rejected",
                        room_id=room.id,
                        tier=tier.name,
                        awarded=given,
                        requested=tier.weight,
                    )
                    return Err(
                        ErrorKind.VALIDATION_ERROR,
                        f"Tier '{tier.name}' has already awarded {given} prizes",
                    )

    try:
        if data.name is not None:
            room.name = data.name
        if data.description is not None:
            room.description = data.description
        if data.is_active is not None:
            room.is_active = data.is_active
        if data.reward_tiers is not None:
            _replace_reward_tiers(db, room, data.reward_tiers)
        db.commit()
        db.refresh(room)
    except SQLAlchemyError:
        db.rollback()
        raise

    log_info(
        logger,
        "Game room updated",
        room_id=room.id,
        tiers_replaced=data.reward_tiers is not None,
    )
    return Ok(room_to_dict(room))


def get_remaining_capacity(db: Session, room_id: int) -> Result:
    room = rooms_repository.get_room_by_id(db, room_id)
    if not room:
        return not_found("Game room")
    _, tiers = reward_tiers_for(room)
    awarded = rooms_repository.get_awarded_counts_by_tier(db, room.id)
    return Ok(remaining_capacity(tiers, awarded))
