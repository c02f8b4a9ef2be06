from sqlalchemy import (
    Column, Integer, String, Float, Boolean, ForeignKey, DateTime, Text, JSON,
    UniqueConstraint, CheckConstraint, Index
)
from enum import Enum as PyEnum
from sqlalchemy.orm import relationship
from core.db import Base
from datetime import datetime


class Difficulty(PyEnum):
    BRONZE = 'bronze'
    SILVER = 'silver'
    GOLD = 'gold'


# Display order for question lists
DIFFICULTY_ORDER = [Difficulty.BRONZE.value, Difficulty.SILVER.value, Difficulty.GOLD.value]


# =================================
#  Admin Users Table
# =================================
class AdminUser(Base):
    __tablename__ = "admin_users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    rooms = relationship("GameRoom", back_populates="creator")


# =================================
#  Game Rooms Table
# =================================
class GameRoom(Base):
    __tablename__ = "game_rooms"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    code = Column(String, unique=True, index=True, nullable=False)
    description = Column(String(500), nullable=True)
    created_by = Column(Integer, ForeignKey("admin_users.id"), nullable=True)
    weighting_mode = Column(String, nullable=False, default='capacity')  # 'capacity' or 'probability'
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    creator = relationship("AdminUser", back_populates="rooms")
    reward_tiers = relationship(
        "RewardTierConfig",
        back_populates="room",
        order_by="RewardTierConfig.position",
        cascade="all, delete-orphan",
    )


class RewardTierConfig(Base):
    """One prize tier on a room's wheel; `weight` is capacity or percentage depending on the room."""
    __tablename__ = "reward_tiers"

    id = Column(Integer, primary_key=True, index=True)
    room_id = Column(Integer, ForeignKey("game_rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    name = Column(String, nullable=False)
    weight = Column(Integer, nullable=False)
    payout_amount = Column(Float, nullable=False, default=0.0)

    room = relationship("GameRoom", back_populates="reward_tiers")

    __table_args__ = (
        UniqueConstraint('room_id', 'name', name='uq_reward_tier_room_name'),
        CheckConstraint('weight >= 0', name='ck_reward_tier_weight_non_negative'),
        CheckConstraint('payout_amount >= 0', name='ck_reward_tier_payout_non_negative'),
    )


# =================================
#  Participants Table
# =================================
class Participant(Base):
    """Identity minted when an entry code is activated."""
    __tablename__ = "participants"

    id = Column(Integer, primary_key=True, index=True)
    room_id = Column(Integer, ForeignKey("game_rooms.id"), nullable=False, index=True)
    display_name = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


# =================================
#  Questions Table
# =================================
class Question(Base):
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    room_id = Column(Integer, ForeignKey("game_rooms.id"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    options = Column(JSON, nullable=False)  # ordered list of option strings
    correct_option_index = Column(Integer, nullable=False)
    difficulty = Column(String, nullable=False)  # bronze, silver, gold
    is_solved = Column(Boolean, default=False, nullable=False)  # at least one correct answer recorded
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    attempts = relationship("QuestionAttempt", back_populates="question", order_by="QuestionAttempt.attempted_at")

    @property
    def solved_by(self):
        """Every participant who has submitted an answer, right or wrong."""
        return {attempt.participant_id for attempt in self.attempts}


class QuestionAttempt(Base):
    """One row per (question, participant); the unique constraint blocks retries."""
    __tablename__ = "question_attempts"

    id = Column(Integer, primary_key=True, index=True)
    question_id = Column(Integer, ForeignKey("questions.id"), nullable=False, index=True)
    participant_id = Column(Integer, ForeignKey("participants.id"), nullable=False, index=True)
    room_id = Column(Integer, ForeignKey("game_rooms.id"), nullable=False, index=True)
    answer_index = Column(Integer, nullable=False)
    is_correct = Column(Boolean, nullable=False)
    attempted_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    question = relationship("Question", back_populates="attempts")
    participant = relationship("Participant")

    __table_args__ = (
        UniqueConstraint('question_id', 'participant_id', name='uq_question_attempt_participant'),
    )


# =================================
#  Token Balances Table
# =================================
class TokenBalance(Base):
    __tablename__ = "token_balances"

    id = Column(Integer, primary_key=True, index=True)
    participant_id = Column(Integer, ForeignKey("participants.id"), nullable=False)
    room_id = Column(Integer, ForeignKey("game_rooms.id"), nullable=False)
    token_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('participant_id', 'room_id', name='uq_token_balance_participant_room'),
        CheckConstraint('token_count >= 0', name='ck_token_balance_non_negative'),
    )


# =================================
#  Spin Records Table (append-only)
# =================================
class SpinRecord(Base):
    __tablename__ = "spin_records"

    id = Column(Integer, primary_key=True, index=True)
    participant_id = Column(Integer, ForeignKey("participants.id"), nullable=False)
    room_id = Column(Integer, ForeignKey("game_rooms.id"), nullable=False)
    tier_name = Column(String, nullable=False)
    amount = Column(Float, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    participant = relationship("Participant")

    __table_args__ = (
        Index('ix_spin_records_participant_room', 'participant_id', 'room_id'),
        Index('ix_spin_records_room_tier', 'room_id', 'tier_name'),
        CheckConstraint('amount >= 0', name='ck_spin_record_amount_non_negative'),
    )


# =================================
#  Entry Codes Table
# =================================
class EntryCode(Base):
    __tablename__ = "entry_codes"

    id = Column(Integer, primary_key=True, index=True)
    room_id = Column(Integer, ForeignKey("game_rooms.id"), nullable=False, index=True)
    code = Column(String, nullable=False)
    display_name = Column(String, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)  # False = revoked, never usable again
    has_entered = Column(Boolean, default=False, nullable=False)
    participant_id = Column(Integer, ForeignKey("participants.id"), nullable=True)
    activated_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    participant = relationship("Participant")

    __table_args__ = (
        UniqueConstraint('room_id', 'code', name='uq_entry_code_room_code'),
    )
