"""
Adaptive Engine Data Models.

Boundary objects produced for the UI/activity layer (plans, recommendations,
adaptation directives, summaries) and the ephemeral per-session context.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from src.content.models import ContentUnit
from src.core.activity import ActivityResult, ActivityType
from src.core.clock import utcnow

# =============================================================================
# Signals
# =============================================================================


class SignalKind(str, Enum):
    """Affective signal types observed from interactions."""

    WRONG = "wrong"
    HELP = "help"
    SLOW = "slow"
    FAST = "fast"
    QUIT = "quit"


@dataclass(frozen=True)
class Signal:
    """One timestamped signal tied to an interaction."""

    kind: SignalKind
    interaction_id: str
    timestamp: datetime
    unit_ids: tuple[str, ...] = ()
    topic: str | None = None
    value: float | None = None  # response time for slow/fast


# =============================================================================
# Adaptation directives
# =============================================================================


class ActionKind(str, Enum):
    """Closed set of adaptation directives."""

    NONE = "none"
    SIMPLIFY = "simplify"
    ENCOURAGE = "encourage"
    CHALLENGE = "challenge"
    SUGGEST_BREAK = "suggest_break"
    CHANGE_TOPIC = "change_topic"


class Severity(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True)
class AdaptationAction:
    """
    A single adaptation directive.

    Attributes:
        kind: Directive tag
        severity: How urgently the UI should surface it
        message: Learner-facing text (empty for NONE)
        new_level: Target difficulty for SIMPLIFY/CHALLENGE
        reason: Why the topic should change, for CHANGE_TOPIC
        topic: Topic to move away from, for CHANGE_TOPIC
    """

    kind: ActionKind = ActionKind.NONE
    severity: Severity = Severity.INFO
    message: str = ""
    new_level: float | None = None
    reason: str | None = None
    topic: str | None = None

    @classmethod
    def none(cls) -> AdaptationAction:
        return cls()

    @property
    def is_none(self) -> bool:
        return self.kind == ActionKind.NONE

    @property
    def changes_difficulty(self) -> bool:
        return self.kind in (ActionKind.SIMPLIFY, ActionKind.CHALLENGE)

    @property
    def requires_immediate_action(self) -> bool:
        return self.severity in (Severity.CRITICAL, Severity.WARNING)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "severity": self.severity.value,
            "message": self.message,
            "new_level": self.new_level,
            "reason": self.reason,
            "topic": self.topic,
        }


# =============================================================================
# Session planning
# =============================================================================


@dataclass
class SessionOptions:
    """Caller preferences for a session."""

    duration_minutes: float = 10
    max_new_units: int = 5
    max_review_units: int = 10
    max_context_units: int = 5
    topics: list[str] = field(default_factory=list)
    activity_types: list[ActivityType] = field(default_factory=list)
    forced_unit_ids: list[str] = field(default_factory=list)


@dataclass
class SessionPlan:
    """Units and activities selected for a session."""

    target_units: list[ContentUnit] = field(default_factory=list)
    review_units: list[ContentUnit] = field(default_factory=list)
    context_units: list[ContentUnit] = field(default_factory=list)
    target_level: float = 1.0
    current_level: float = 1.0
    difficulty_range: tuple[float, float] = (1.0, 5.0)
    activity_mix: list[tuple[ActivityType, float]] = field(default_factory=list)
    activities: list[ActivityType] = field(default_factory=list)
    duration_minutes: float = 10
    estimated_minutes: float = 0.0
    reasoning: str = ""

    @property
    def target_ids(self) -> list[str]:
        return [u.id for u in self.target_units]

    @property
    def review_ids(self) -> list[str]:
        return [u.id for u in self.review_units]

    @property
    def context_ids(self) -> list[str]:
        return [u.id for u in self.context_units]

    @property
    def total_units(self) -> int:
        return len(self.target_units) + len(self.review_units) + len(self.context_units)


@dataclass(frozen=True)
class ActivityRecommendation:
    """The next activity the UI should present."""

    activity_type: ActivityType
    unit_ids: tuple[str, ...]
    target_difficulty: float
    is_review: bool = False
    reason: str = ""


# =============================================================================
# Session state
# =============================================================================


@dataclass
class SessionContext:
    """Ephemeral state for one learning session."""

    learner_id: str
    plan: SessionPlan
    base_target_level: float
    current_target_level: float
    session_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    started_at: datetime = field(default_factory=utcnow)
    results: list[ActivityResult] = field(default_factory=list)
    introduced_unit_ids: list[str] = field(default_factory=list)
    reviewed_unit_ids: list[str] = field(default_factory=list)
    acquired_unit_ids: list[str] = field(default_factory=list)
    signals: list[Signal] = field(default_factory=list)
    actions: list[tuple[datetime, AdaptationAction]] = field(default_factory=list)
    sun_drops_earned: int = 0
    starting_confidence: float = 0.5
    starting_acquired: int = 0
    excluded_topics: list[str] = field(default_factory=list)
    closed: bool = False
    summary: SessionSummary | None = None

    @property
    def activity_count(self) -> int:
        return len(self.results)

    @property
    def applied_interaction_ids(self) -> set[str]:
        return {r.interaction_id for r in self.results}

    @property
    def wrong_streak(self) -> int:
        streak = 0
        for result in reversed(self.results):
            if result.correct:
                break
            streak += 1
        return streak


@dataclass
class SessionSummary:
    """End-of-session report for the UI."""

    session_id: str
    learner_id: str
    duration_minutes: float
    activities_completed: int
    accuracy: float
    new_units: int
    reviewed_units: int
    acquired_units: int
    sun_drops_earned: int
    struggling_unit_ids: list[str] = field(default_factory=list)
    mastered_unit_ids: list[str] = field(default_factory=list)
    confidence_change: float = 0.0
    filter_risk: float = 0.0
    tips: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "learner_id": self.learner_id,
            "duration_minutes": round(self.duration_minutes, 1),
            "activities_completed": self.activities_completed,
            "accuracy": round(self.accuracy, 3),
            "new_units": self.new_units,
            "reviewed_units": self.reviewed_units,
            "acquired_units": self.acquired_units,
            "sun_drops_earned": self.sun_drops_earned,
            "struggling_unit_ids": self.struggling_unit_ids,
            "mastered_unit_ids": self.mastered_unit_ids,
            "confidence_change": round(self.confidence_change, 3),
            "filter_risk": round(self.filter_risk, 3),
            "tips": self.tips,
        }
