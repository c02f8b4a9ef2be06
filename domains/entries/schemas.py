"""Entries schemas."""

from dataclasses import dataclass
from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator

from config import MAX_ENTRY_BATCH_SIZE


class EntryBatchCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Base display name for the batch")
    count: int = Field(..., ge=1, le=MAX_ENTRY_BATCH_SIZE)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be blank")
        return v


class ActivateEntryRequest(BaseModel):
    code: str = Field(..., min_length=1)
    display_name: Optional[str] = Field(None, max_length=100)

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v):
        return v.strip().upper()


@dataclass(frozen=True)
class UnboundEntry:
    """A valid code that has not been used to enter the room yet."""
    entry: dict


@dataclass(frozen=True)
class BoundEntry:
    """A code already bound to the participant it minted."""
    entry: dict
    participant: dict


EntryLookupResult = Union[UnboundEntry, BoundEntry]
