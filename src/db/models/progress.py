"""
Progression Engine Models.

SQLAlchemy models for per-learner progression state:
- Unit progress (SM-2 state and counters per learner per unit)
- Learner profiles (rollups, interests, filter risk)
- Garden trees (health decay per learner per topic group)

Records are created and updated only; the engine never deletes them.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, Float, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class UnitProgressRecord(Base):
    """
    SM-2 state for one learner on one content unit.

    Confidence is not stored; it is derived from the counters on read.
    """

    __tablename__ = "unit_progress"
    __table_args__ = (UniqueConstraint("learner_id", "unit_id", name="uq_unit_progress_learner_unit"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    learner_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    unit_id: Mapped[str] = mapped_column(String(128), nullable=False)

    # SRS state
    status: Mapped[str] = mapped_column(String(16), default="new")
    ease_factor: Mapped[float] = mapped_column(Float, default=2.5)
    interval: Mapped[int] = mapped_column(Integer, default=1)
    next_review: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    repetitions: Mapped[int] = mapped_column(Integer, default=0)

    # Lifetime counters
    total_encounters: Mapped[int] = mapped_column(Integer, default=0)
    correct_first_try: Mapped[int] = mapped_column(Integer, default=0)
    wrong_attempts: Mapped[int] = mapped_column(Integer, default=0)
    help_used_count: Mapped[int] = mapped_column(Integer, default=0)

    # Encounter context
    first_encountered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    first_encountered_context: Mapped[str | None] = mapped_column(Text)
    last_encountered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    last_encountered_context: Mapped[str | None] = mapped_column(Text)
    last_interaction_id: Mapped[str | None] = mapped_column(String(64))

    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class LearnerProfileRecord(Base):
    """Aggregate learner state. JSON columns hold lists and per-type stats."""

    __tablename__ = "learner_profiles"

    learner_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    level: Mapped[float] = mapped_column(Float, default=0.0)
    status_counts: Mapped[dict] = mapped_column(JSON, default=dict)

    explicit_interests: Mapped[list] = mapped_column(JSON, default=list)
    detected_interests: Mapped[list] = mapped_column(JSON, default=list)

    recent_outcomes: Mapped[list] = mapped_column(JSON, default=list)
    average_confidence: Mapped[float] = mapped_column(Float, default=0.5)
    help_request_rate: Mapped[float] = mapped_column(Float, default=0.0)
    wrong_answer_rate: Mapped[float] = mapped_column(Float, default=0.0)
    average_session_minutes: Mapped[float] = mapped_column(Float, default=0.0)
    total_sessions: Mapped[int] = mapped_column(Integer, default=0)
    total_minutes: Mapped[float] = mapped_column(Float, default=0.0)

    filter_risk: Mapped[float] = mapped_column(Float, default=0.0)
    last_struggle_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    risk_decayed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    preferred_activity_types: Mapped[list] = mapped_column(JSON, default=list)
    activity_stats: Mapped[dict] = mapped_column(JSON, default=dict)
    level_history: Mapped[list] = mapped_column(JSON, default=list)
    confidence_snapshots: Mapped[list] = mapped_column(JSON, default=list)

    sun_drops_total: Mapped[int] = mapped_column(Integer, default=0)
    sun_drops_today: Mapped[int] = mapped_column(Integer, default=0)
    sun_drops_day: Mapped[str | None] = mapped_column(String(10))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    last_session_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class TreeRecord(Base):
    """Garden tree for one learner and topic group."""

    __tablename__ = "garden_trees"
    __table_args__ = (UniqueConstraint("learner_id", "group_name", name="uq_garden_tree_learner_group"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    learner_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    group_name: Mapped[str] = mapped_column(String(128), nullable=False)
    health: Mapped[int] = mapped_column(Integer, default=100)
    last_refreshed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    buffer_days: Mapped[float] = mapped_column(Float, default=0.0)
    total_refreshes: Mapped[int] = mapped_column(Integer, default=0)
