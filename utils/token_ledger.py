"""
Token Ledger Service

Spin-token balances, one row per (participant, room). Every mutation is a single
conditional UPDATE so concurrent requests cannot read the same balance and both
act on it. Callers own the transaction: these helpers flush but never commit.
"""
import logging
from datetime import datetime

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.results import InsufficientBalanceError
from models import TokenBalance

logger = logging.getLogger(__name__)


def _balance_filter(participant_id: int, room_id: int):
    return (
        TokenBalance.participant_id == participant_id,
        TokenBalance.room_id == room_id,
    )


def _read_balance(db: Session, participant_id: int, room_id: int):
    return (
        db.query(TokenBalance.token_count)
        .filter(*_balance_filter(participant_id, room_id))
        .scalar()
    )


def ensure_balance_row(db: Session, participant_id: int, room_id: int) -> None:
    """Create the zero balance row if missing; a concurrent creator winning is fine."""
    if _read_balance(db, participant_id, room_id) is not None:
        return
    try:
        with db.begin_nested():
            db.add(
                TokenBalance(
                    participant_id=participant_id,
                    room_id=room_id,
                    token_count=0,
                    created_at=datetime.utcnow(),
                )
            )
    except IntegrityError:
        if _read_balance(db, participant_id, room_id) is None:
            raise
        logger.info(
            f"Token balance for participant={participant_id} room={room_id} created concurrently"
        )


def get_balance(db: Session, participant_id: int, room_id: int) -> int:
    """
    Get the current token balance, creating a zero row on first read.

    Args:
        db: Database session
        participant_id: Participant ID
        room_id: Game room ID

    Returns:
        Token count (never negative)
    """
    ensure_balance_row(db, participant_id, room_id)
    return _read_balance(db, participant_id, room_id)


def credit(db: Session, participant_id: int, room_id: int, amount: int = 1) -> int:
    """
    Add tokens to a balance.

    Returns:
        New balance

    Raises:
        ValueError: If amount is not positive
    """
    if amount <= 0:
        raise ValueError("credit amount must be positive")

    ensure_balance_row(db, participant_id, room_id)
    db.execute(
        update(TokenBalance)
        .where(*_balance_filter(participant_id, room_id))
        .values(
            token_count=TokenBalance.token_count + amount,
            updated_at=datetime.utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    new_balance = _read_balance(db, participant_id, room_id)

    logger.info(
        f"Tokens credited: participant={participant_id}, room={room_id}, "
        f"delta=+{amount}, balance={new_balance}"
    )
    return new_balance


def debit(db: Session, participant_id: int, room_id: int, amount: int = 1) -> int:
    """
    Remove tokens from a balance if enough are held.

    The balance check and the decrement are one statement
    (`... WHERE token_count >= amount`), so two concurrent debits of the last
    token cannot both succeed.

    Returns:
        New balance

    Raises:
        ValueError: If amount is not positive
        InsufficientBalanceError: If the balance is below amount (balance unchanged)
    """
    if amount <= 0:
        raise ValueError("debit amount must be positive")

    ensure_balance_row(db, participant_id, room_id)
    result = db.execute(
        update(TokenBalance)
        .where(
            *_balance_filter(participant_id, room_id),
            TokenBalance.token_count >= amount,
        )
        .values(
            token_count=TokenBalance.token_count - amount,
            updated_at=datetime.utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        current = _read_balance(db, participant_id, room_id) or 0
        raise InsufficientBalanceError(current, amount)

    new_balance = _read_balance(db, participant_id, room_id)
    logger.info(
        f"Tokens debited: participant={participant_id}, room={room_id}, "
        f"delta=-{amount}, balance={new_balance}"
    )
    return new_balance


def total_tokens_held(db: Session, room_id: int) -> int:
    total = (
        db.query(func.sum(TokenBalance.token_count))
        .filter(TokenBalance.room_id == room_id)
        .scalar()
    )
    return int(total or 0)
