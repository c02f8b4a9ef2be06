"""Spins service layer.

A spin is debit -> select -> record. The debit is committed on its own so a
participant can never spin for free; selection and recording then run under a
row lock on the room so two concurrent spins cannot both take the last prize of
a tier. If no prize can be drawn, or anything fails after the debit, the token
is credited back.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import TOKENS_PER_SPIN
from core.participants import participant_in_room
from core.results import Err, ErrorKind, InsufficientBalanceError, Ok, Result, not_found
from core.rooms import get_reward_tiers, get_room, get_room_for_update
from utils import token_ledger
from utils.logging_helpers import log_debug, log_error, log_info, log_warning
from utils.reward_selection import TierWeightingMode, select_reward_tier

from . import repository as spins_repository

logger = logging.getLogger(__name__)


def spin_to_dict(record) -> dict:
    return {
        "id": record.id,
        "participant_id": record.participant_id,
        "room_id": record.room_id,
        "tier_name": record.tier_name,
        "amount": record.amount,
        "created_at": record.created_at,
    }


def record_spin(db: Session, participant_id: int, room_id: int, tier):
    """Append a grant for `tier` (a RewardTier). Caller commits."""
    return spins_repository.record_spin(
        db,
        participant_id=participant_id,
        room_id=room_id,
        tier_name=tier.name,
        amount=tier.payout_amount,
    )


def total_earnings(db: Session, participant_id: int, room_id: int) -> float:
    return spins_repository.total_earnings(db, participant_id, room_id)


def awarded_counts(db: Session, room_id: int) -> dict:
    return spins_repository.awarded_counts(db, room_id)


def _load_room(db: Session, participant_id: int, room_id: int):
    """(room, None) when the participant belongs to the room, else (None, Err)."""
    room = get_room(db, room_id=room_id)
    if not room:
        return None, not_found("Game room")
    if not participant_in_room(db, participant_id=participant_id, room_id=room.id):
        return None, not_found("Participant")
    return room, None


def get_token_balance(db: Session, participant_id: int, room_id: int) -> Result:
    room, err = _load_room(db, participant_id, room_id)
    if err:
        return err
    balance = token_ledger.get_balance(db, participant_id, room.id)
    db.commit()
    return Ok({"participant_id": participant_id, "room_id": room.id, "tokens": balance})


def get_spin_history(db: Session, participant_id: int, room_id: int) -> Result:
    room, err = _load_room(db, participant_id, room_id)
    if err:
        return err
    records = spins_repository.list_spins(db, participant_id, room.id)
    return Ok(
        {
            "spins": [spin_to_dict(record) for record in records],
            "total_earnings": total_earnings(db, participant_id, room.id),
        }
    )


def _refund(db: Session, participant_id: int, room_id: int) -> int:
    balance = token_ledger.credit(db, participant_id, room_id, TOKENS_PER_SPIN)
    db.commit()
    log_info(logger, "Spin token refunded", participant_id, room_id=room_id, balance=balance)
    return balance


def spin(db: Session, participant_id: int, room_id: int, rng=None) -> Result:
    """
    Spend one token on the room's reward wheel.

    Args:
        db: Database session
        participant_id: Spinning participant
        room_id: Game room ID
        rng: Optional random source with `randrange`, for deterministic tests

    Returns:
        Ok({"tier_name", "amount", "spin_id", "tokens_remaining"}) or
        Err(NOT_FOUND | INSUFFICIENT_BALANCE | NO_REWARDS_AVAILABLE)
    """
    room, err = _load_room(db, participant_id, room_id)
    if err:
        return err
    room_id = room.id

    try:
        token_ledger.debit(db, participant_id, room_id, TOKENS_PER_SPIN)
        db.commit()
    except InsufficientBalanceError as exc:
        db.rollback()
        log_warning(logger, "Spin refused", participant_id, room_id=room_id, balance=exc.balance)
        return Err(ErrorKind.INSUFFICIENT_BALANCE, "You need a token to spin")
    except SQLAlchemyError:
        db.rollback()
        raise

    try:
        room = get_room_for_update(db, room_id=room_id)
        mode, tiers = get_reward_tiers(room)
        counts = awarded_counts(db, room_id) if mode == TierWeightingMode.CAPACITY else {}
        tier = select_reward_tier(tiers, counts, mode, rng=rng) if tiers else None
        log_debug(
            logger,
            "Reward tier drawn",
            participant_id,
            room_id=room_id,
            mode=mode.value,
            tier=getattr(tier, "name", None),
        )

        if tier is not None:
            record = record_spin(db, participant_id, room_id, tier)
            spin_id = record.id
            balance = token_ledger.get_balance(db, participant_id, room_id)
            db.commit()
    except Exception:
        db.rollback()
        log_error(logger, "Spin failed after debit, refunding token", participant_id, exc_info=True, room_id=room_id)
        _refund(db, participant_id, room_id)
        raise

    if tier is None:
        db.rollback()
        log_warning(logger, "No rewards left to award", participant_id, room_id=room_id)
        _refund(db, participant_id, room_id)
        return Err(ErrorKind.NO_REWARDS_AVAILABLE, "All rewards have been claimed")

    log_info(
        logger,
        "Spin recorded",
        participant_id,
        room_id=room_id,
        tier=tier.name,
        amount=tier.payout_amount,
        spin_id=spin_id,
    )
    return Ok(
        {
            "tier_name": tier.name,
            "amount": tier.payout_amount,
            "spin_id": spin_id,
            "tokens_remaining": balance,
        }
    )
