"""
Activity Result Contract.

The activity/UI layer reports each completed exercise as an ActivityResult.
This is the engine's input boundary, so it is validated with pydantic:
malformed results are rejected before they reach any scheduler state.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ActivityType(str, Enum):
    """Exercise formats offered by the activity layer."""

    MULTIPLE_CHOICE = "multiple_choice"
    FILL_BLANK = "fill_blank"
    MATCHING = "matching"
    TRANSLATE = "translate"
    TRUE_FALSE = "true_false"
    WORD_ARRANGE = "word_arrange"
    LISTENING = "listening"
    SPEAKING = "speaking"


class ActivityResult(BaseModel):
    """Outcome of one completed exercise."""

    model_config = ConfigDict(frozen=True)

    unit_ids: list[str] = Field(..., min_length=1, description="Units practiced")
    correct: bool = Field(..., description="Final answer was correct")
    used_help: bool = Field(False, description="Help/hint button was used")
    attempts: int = Field(1, ge=1, description="Tries until the final answer")
    response_time_ms: int = Field(0, ge=0, description="Time to the final answer")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    activity_type: ActivityType = ActivityType.MULTIPLE_CHOICE
    interaction_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    is_retry: bool = Field(False, description="Activity instance is being replayed")
    context: str | None = Field(None, description="Sentence or prompt the units appeared in")

    @field_validator("timestamp")
    @classmethod
    def _ensure_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @property
    def first_try(self) -> bool:
        """Correct on the first attempt without help."""
        return self.correct and self.attempts == 1 and not self.used_help

    @property
    def wrong_attempts(self) -> int:
        return self.attempts - 1 if self.correct else self.attempts
