"""Rooms/Reward tiers schemas."""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from config import PROBABILITY_TOTAL, ROOM_DESCRIPTION_MAX_LENGTH, ROOM_NAME_MAX_LENGTH
from utils.reward_selection import TierWeightingMode


class RewardTierIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Tier label shown on the wheel")
    weight: int = Field(
        ...,
        ge=0,
        description="Prize capacity (capacity rooms) or percentage chance (probability rooms)",
    )
    payout_amount: float = Field(0, ge=0, description="Informational prize amount for this tier")

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Tier name cannot be blank")
        return v


def check_tier_list(tiers: List[RewardTierIn], mode: TierWeightingMode) -> None:
    """Raise ValueError if the tier list breaks a room-level rule."""
    if not tiers:
        raise ValueError("At least one reward tier is required")
    names = [tier.name for tier in tiers]
    if len(set(names)) != len(names):
        raise ValueError("Reward tier names must be unique within a room")
    if mode == TierWeightingMode.PROBABILITY:
        total = sum(tier.weight for tier in tiers)
        if total > PROBABILITY_TOTAL:
            raise ValueError(
                f"Tier probabilities add up to {total}, must not exceed {PROBABILITY_TOTAL}"
            )


class RoomCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=ROOM_NAME_MAX_LENGTH)
    description: Optional[str] = Field(None, max_length=ROOM_DESCRIPTION_MAX_LENGTH)
    weighting_mode: TierWeightingMode = Field(
        TierWeightingMode.CAPACITY, description="Fixed for the lifetime of the room"
    )
    reward_tiers: List[RewardTierIn] = Field(..., min_length=1)

    @model_validator(mode="after")
    def tiers_are_consistent(self):
        check_tier_list(self.reward_tiers, self.weighting_mode)
        return self


class RoomUpdate(BaseModel):
    """Partial room edit; `reward_tiers`, when present, replaces the whole ordered list."""

    name: Optional[str] = Field(None, min_length=1, max_length=ROOM_NAME_MAX_LENGTH)
    description: Optional[str] = Field(None, max_length=ROOM_DESCRIPTION_MAX_LENGTH)
    is_active: Optional[bool] = None
    reward_tiers: Optional[List[RewardTierIn]] = Field(None, min_length=1)
