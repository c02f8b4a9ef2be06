"""Questions schemas."""

from typing import List

from pydantic import BaseModel, Field, field_validator, model_validator

from models import Difficulty


class QuestionCreate(BaseModel):
    content: str = Field(..., min_length=1, description="Question text")
    options: List[str] = Field(..., min_length=2, description="Answer options in display order")
    correct_option_index: int = Field(..., ge=0, description="Index into options of the right answer")
    difficulty: Difficulty

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Question content cannot be blank")
        return v

    @field_validator("options")
    @classmethod
    def options_not_blank(cls, v):
        cleaned = [option.strip() for option in v]
        if any(not option for option in cleaned):
            raise ValueError("Options cannot be blank")
        return cleaned

    @model_validator(mode="after")
    def correct_index_in_range(self):
        if self.correct_option_index >= len(self.options):
            raise ValueError("Correct answer index must point at one of the options")
        return self


class SubmitAnswerRequest(BaseModel):
    question_id: int
    participant_id: int
    answer_index: int = Field(..., ge=0)
