"""Rooms/Reward tiers repository layer."""

from sqlalchemy import func
from sqlalchemy.orm import Session

from models import AdminUser, GameRoom, RewardTierConfig, SpinRecord


def get_room_by_id(db: Session, room_id: int):
    return db.query(GameRoom).filter(GameRoom.id == room_id).first()


def get_room_by_id_for_update(db: Session, room_id: int):
    return db.query(GameRoom).filter(GameRoom.id == room_id).with_for_update().first()


def get_room_by_code(db: Session, code: str):
    return db.query(GameRoom).filter(GameRoom.code == code).first()


def room_code_exists(db: Session, code: str) -> bool:
    return db.query(GameRoom.id).filter(GameRoom.code == code).first() is not None


def list_rooms_for_admin(db: Session, admin_id: int):
    return (
        db.query(GameRoom)
        .filter(GameRoom.created_by == admin_id)
        .order_by(GameRoom.created_at.desc(), GameRoom.id.desc())
        .all()
    )


def admin_exists(db: Session, admin_id: int) -> bool:
    return db.query(AdminUser.id).filter(AdminUser.id == admin_id).first() is not None


def create_room(db: Session, *, name, code, description, created_by, weighting_mode):
    room = GameRoom(
        name=name,
        code=code,
        description=description,
        created_by=created_by,
        weighting_mode=weighting_mode,
    )
    db.add(room)
    return room


def add_reward_tier(db: Session, room: GameRoom, *, position, name, weight, payout_amount):
    tier = RewardTierConfig(
        position=position, name=name, weight=weight, payout_amount=payout_amount
    )
    room.reward_tiers.append(tier)
    return tier


def delete_reward_tier(db: Session, room: GameRoom, tier: RewardTierConfig) -> None:
    room.reward_tiers.remove(tier)


def get_awarded_counts_by_tier(db: Session, room_id: int) -> dict:
    rows = (
        db.query(SpinRecord.tier_name, func.count(SpinRecord.id))
        .filter(SpinRecord.room_id == room_id)
        .group_by(SpinRecord.tier_name)
        .all()
    )
    return {name: count for name, count in rows}
