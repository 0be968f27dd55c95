"""
Unit Progress Model.

One UnitProgress record exists per (learner, content unit) pair. It holds
the SM-2 state for the unit plus lifetime counters from which confidence
is derived.

Status lifecycle:
    new -> learning -> acquired
                ^          |
                |          v
                +------ fragile   (unreviewed past 2x interval)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from src.core.clock import days_since, ensure_aware

if TYPE_CHECKING:
    from src.content.models import ContentUnit

MIN_EASE = 1.3
MAX_EASE = 2.5
DEFAULT_EASE = 2.5
NEUTRAL_CONFIDENCE = 0.5


class UnitStatus(str, Enum):
    """Acquisition status of a unit for one learner."""

    NEW = "new"  # Never reviewed
    LEARNING = "learning"  # Being practiced, not yet stable
    ACQUIRED = "acquired"  # 3+ consecutive correct reviews
    FRAGILE = "fragile"  # Previously reviewed, now past its forgetting window

    @property
    def needs_review(self) -> bool:
        return self == UnitStatus.FRAGILE

    @property
    def color(self) -> str:
        """Rich color for CLI display."""
        return {
            UnitStatus.NEW: "dim",
            UnitStatus.LEARNING: "yellow",
            UnitStatus.ACQUIRED: "green",
            UnitStatus.FRAGILE: "red",
        }[self]


def calculate_confidence(correct_first_try: int, total_encounters: int, help_used: int) -> float:
    """
    Derive confidence from lifetime counters.

    Returns 0.5 with zero encounters so new units don't read as failures.
    Help use costs 0.05 per press, at most 0.2.
    """
    if total_encounters <= 0:
        return NEUTRAL_CONFIDENCE
    ratio = correct_first_try / total_encounters
    penalty = min(0.2, help_used * 0.05)
    return max(0.0, min(1.0, ratio - penalty))


@dataclass
class UnitProgress:
    """SRS state and counters for one learner on one unit."""

    learner_id: str
    unit_id: str
    status: UnitStatus = UnitStatus.NEW
    ease_factor: float = DEFAULT_EASE
    interval: int = 1  # Days until next review
    next_review: datetime | None = None
    repetitions: int = 0  # Consecutive correct reviews

    # Lifetime counters
    total_encounters: int = 0
    correct_first_try: int = 0
    wrong_attempts: int = 0
    help_used_count: int = 0

    # Encounter context
    first_encountered_at: datetime | None = None
    first_encountered_context: str | None = None
    last_encountered_at: datetime | None = None
    last_encountered_context: str | None = None

    # Last applied interaction, for idempotent retries
    last_interaction_id: str | None = None

    @classmethod
    def new(cls, learner_id: str, unit: ContentUnit, ease_factor: float = DEFAULT_EASE) -> UnitProgress:
        """First-ever record for a unit: a defined default, not an error."""
        return cls(
            learner_id=learner_id,
            unit_id=unit.id,
            ease_factor=ease_factor,
            interval=unit.base_interval,
        )

    @property
    def confidence(self) -> float:
        return calculate_confidence(
            self.correct_first_try, self.total_encounters, self.help_used_count
        )

    @property
    def has_been_seen(self) -> bool:
        return self.total_encounters > 0

    def is_due(self, now: datetime) -> bool:
        """Seen units whose next review has arrived."""
        if not self.has_been_seen or self.next_review is None:
            return False
        return ensure_aware(now) >= ensure_aware(self.next_review)

    def days_overdue(self, now: datetime) -> float:
        if self.next_review is None:
            return 0.0
        return days_since(self.next_review, now)

    def days_since_last_review(self, now: datetime) -> float:
        return days_since(self.last_encountered_at, now)

    def to_dict(self) -> dict:
        return {
            "learner_id": self.learner_id,
            "unit_id": self.unit_id,
            "status": self.status.value,
            "ease_factor": round(self.ease_factor, 3),
            "interval": self.interval,
            "next_review": self.next_review.isoformat() if self.next_review else None,
            "repetitions": self.repetitions,
            "total_encounters": self.total_encounters,
            "correct_first_try": self.correct_first_try,
            "wrong_attempts": self.wrong_attempts,
            "help_used_count": self.help_used_count,
            "confidence": round(self.confidence, 3),
        }
