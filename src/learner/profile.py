"""
Learner Profile Model.

One profile per learner: proficiency, status counts, interests, rolling
engagement metrics and the affective filter risk. Profiles are created on
the first session and only ever updated afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from src.core.activity import ActivityType
from src.core.clock import utcnow
from src.core.levels import SubLevel, level_to_sub_level
from src.srs.models import UnitStatus


@dataclass
class DetectedInterest:
    """Topic interest inferred from conversation or activity choices."""

    topic: str
    strength: float  # 0-1
    detected_at: datetime


@dataclass
class ActivityStats:
    """Per-activity-type attempt counts."""

    attempts: int = 0
    first_try_correct: int = 0

    @property
    def accuracy(self) -> float:
        """Laplace-smoothed first-try accuracy."""
        return (self.first_try_correct + 1) / (self.attempts + 2)


@dataclass
class LearnerProfile:
    """Aggregate learning state for one learner."""

    learner_id: str
    level: float = 0.0  # 0-100 proficiency

    status_counts: dict[UnitStatus, int] = field(
        default_factory=lambda: {status: 0 for status in UnitStatus}
    )

    # Interests
    explicit_interests: list[str] = field(default_factory=list)
    detected_interests: list[DetectedInterest] = field(default_factory=list)

    # Rolling engagement metrics
    recent_outcomes: list[tuple[bool, bool]] = field(default_factory=list)  # (correct, used_help)
    average_confidence: float = 0.5
    help_request_rate: float = 0.0
    wrong_answer_rate: float = 0.0
    average_session_minutes: float = 0.0
    total_sessions: int = 0
    total_minutes: float = 0.0

    # Affective filter
    filter_risk: float = 0.0
    last_struggle_at: datetime | None = None
    risk_decayed_at: datetime | None = None  # idle decay applied up to here

    # Activity preferences
    preferred_activity_types: list[ActivityType] = field(default_factory=list)
    activity_stats: dict[ActivityType, ActivityStats] = field(default_factory=dict)

    # History
    level_history: list[tuple[datetime, float]] = field(default_factory=list)
    confidence_snapshots: list[tuple[datetime, float]] = field(default_factory=list)

    sun_drops_total: int = 0
    sun_drops_today: int = 0
    sun_drops_day: str | None = None  # ISO date the daily counter belongs to

    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    last_session_at: datetime | None = None

    @classmethod
    def new(cls, learner_id: str, now: datetime | None = None) -> LearnerProfile:
        now = now or utcnow()
        return cls(learner_id=learner_id, created_at=now, updated_at=now)

    @property
    def acquired_count(self) -> int:
        return self.status_counts.get(UnitStatus.ACQUIRED, 0)

    @property
    def sub_level(self) -> SubLevel:
        return level_to_sub_level(self.level)

    def to_dict(self) -> dict:
        return {
            "learner_id": self.learner_id,
            "level": self.level,
            "sub_level": self.sub_level.value,
            "status_counts": {s.value: n for s, n in self.status_counts.items()},
            "explicit_interests": list(self.explicit_interests),
            "detected_interests": [
                {"topic": i.topic, "strength": i.strength, "detected_at": i.detected_at.isoformat()}
                for i in self.detected_interests
            ],
            "average_confidence": round(self.average_confidence, 3),
            "help_request_rate": round(self.help_request_rate, 3),
            "wrong_answer_rate": round(self.wrong_answer_rate, 3),
            "average_session_minutes": round(self.average_session_minutes, 1),
            "total_sessions": self.total_sessions,
            "filter_risk": round(self.filter_risk, 3),
            "sun_drops_total": self.sun_drops_total,
        }
