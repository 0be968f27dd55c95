"""
SQLAlchemy Progress Store.

Persists UnitProgress, LearnerProfile and Tree records. Each call runs in
its own transaction via session_scope; callers serialize writes per record.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from src.core.activity import ActivityType
from src.core.clock import ensure_aware
from src.db.database import get_session_factory, init_db, session_scope
from src.db.models import LearnerProfileRecord, TreeRecord, UnitProgressRecord
from src.garden.tree_health import Tree
from src.learner.profile import ActivityStats, DetectedInterest, LearnerProfile
from src.srs.models import UnitProgress, UnitStatus

_PROGRESS_FIELDS = (
    "ease_factor",
    "interval",
    "repetitions",
    "total_encounters",
    "correct_first_try",
    "wrong_attempts",
    "help_used_count",
    "first_encountered_context",
    "last_encountered_context",
    "last_interaction_id",
)
_PROGRESS_TIMES = ("next_review", "first_encountered_at", "last_encountered_at")

_PROFILE_SCALARS = (
    "level",
    "average_confidence",
    "help_request_rate",
    "wrong_answer_rate",
    "average_session_minutes",
    "total_sessions",
    "total_minutes",
    "filter_risk",
    "sun_drops_total",
    "sun_drops_today",
    "sun_drops_day",
)
_PROFILE_TIMES = ("last_struggle_at", "risk_decayed_at", "created_at", "updated_at", "last_session_at")


def _aware(value: datetime | None) -> datetime | None:
    return ensure_aware(value) if value is not None else None


# =============================================================================
# Record conversion
# =============================================================================


def progress_from_record(record: UnitProgressRecord) -> UnitProgress:
    progress = UnitProgress(
        learner_id=record.learner_id,
        unit_id=record.unit_id,
        status=UnitStatus(record.status),
    )
    for name in _PROGRESS_FIELDS:
        setattr(progress, name, getattr(record, name))
    for name in _PROGRESS_TIMES:
        setattr(progress, name, _aware(getattr(record, name)))
    return progress


def progress_to_record(progress: UnitProgress, record: UnitProgressRecord) -> UnitProgressRecord:
    record.learner_id = progress.learner_id
    record.unit_id = progress.unit_id
    record.status = progress.status.value
    for name in _PROGRESS_FIELDS + _PROGRESS_TIMES:
        setattr(record, name, getattr(progress, name))
    return record


def profile_from_record(record: LearnerProfileRecord) -> LearnerProfile:
    profile = LearnerProfile(learner_id=record.learner_id)
    for name in _PROFILE_SCALARS:
        setattr(profile, name, getattr(record, name))
    for name in _PROFILE_TIMES:
        setattr(profile, name, _aware(getattr(record, name)))

    counts = {status: 0 for status in UnitStatus}
    counts.update({UnitStatus(k): v for k, v in (record.status_counts or {}).items()})
    profile.status_counts = counts
    profile.explicit_interests = list(record.explicit_interests or [])
    profile.detected_interests = [
        DetectedInterest(i["topic"], i["strength"], ensure_aware(datetime.fromisoformat(i["detected_at"])))
        for i in record.detected_interests or []
    ]
    profile.recent_outcomes = [(bool(c), bool(h)) for c, h in record.recent_outcomes or []]
    profile.preferred_activity_types = [ActivityType(t) for t in record.preferred_activity_types or []]
    profile.activity_stats = {
        ActivityType(k): ActivityStats(**v) for k, v in (record.activity_stats or {}).items()
    }
    profile.level_history = [
        (ensure_aware(datetime.fromisoformat(ts)), value) for ts, value in record.level_history or []
    ]
    profile.confidence_snapshots = [
        (ensure_aware(datetime.fromisoformat(ts)), value)
        for ts, value in record.confidence_snapshots or []
    ]
    return profile


def profile_to_record(profile: LearnerProfile, record: LearnerProfileRecord) -> LearnerProfileRecord:
    record.learner_id = profile.learner_id
    for name in _PROFILE_SCALARS + _PROFILE_TIMES:
        setattr(record, name, getattr(profile, name))
    record.status_counts = {s.value: n for s, n in profile.status_counts.items()}
    record.explicit_interests = list(profile.explicit_interests)
    record.detected_interests = [
        {"topic": i.topic, "strength": i.strength, "detected_at": i.detected_at.isoformat()}
        for i in profile.detected_interests
    ]
    record.recent_outcomes = [[c, h] for c, h in profile.recent_outcomes]
    record.preferred_activity_types = [t.value for t in profile.preferred_activity_types]
    record.activity_stats = {
        t.value: {"attempts": s.attempts, "first_try_correct": s.first_try_correct}
        for t, s in profile.activity_stats.items()
    }
    record.level_history = [[ts.isoformat(), v] for ts, v in profile.level_history]
    record.confidence_snapshots = [[ts.isoformat(), v] for ts, v in profile.confidence_snapshots]
    return record


def tree_from_record(record: TreeRecord) -> Tree:
    return Tree(
        learner_id=record.learner_id,
        group=record.group_name,
        health=record.health,
        last_refreshed_at=_aware(record.last_refreshed_at),
        buffer_days=record.buffer_days,
        total_refreshes=record.total_refreshes,
    )


# =============================================================================
# Store
# =============================================================================


class SqlProgressStore:
    """ProgressStore backed by SQLAlchemy."""

    def __init__(self, engine: Engine | None = None, create_tables: bool = True):
        """
        Initialize the store.

        Args:
            engine: Engine to use (defaults to the settings-configured engine)
            create_tables: Create missing tables on startup
        """
        self._factory = get_session_factory(engine)
        if create_tables:
            init_db(engine)

    def _progress_row(self, session: Session, learner_id: str, unit_id: str) -> UnitProgressRecord | None:
        return session.scalars(
            select(UnitProgressRecord).where(
                UnitProgressRecord.learner_id == learner_id,
                UnitProgressRecord.unit_id == unit_id,
            )
        ).one_or_none()

    def _tree_row(self, session: Session, learner_id: str, group: str) -> TreeRecord | None:
        return session.scalars(
            select(TreeRecord).where(
                TreeRecord.learner_id == learner_id,
                TreeRecord.group_name == group,
            )
        ).one_or_none()

    # Unit progress

    def get_progress(self, learner_id: str, unit_id: str) -> UnitProgress | None:
        with session_scope(self._factory) as session:
            row = self._progress_row(session, learner_id, unit_id)
            return progress_from_record(row) if row else None

    def save_progress(self, progress: UnitProgress) -> None:
        with session_scope(self._factory) as session:
            row = self._progress_row(session, progress.learner_id, progress.unit_id)
            if row is None:
                row = UnitProgressRecord()
                session.add(row)
            progress_to_record(progress, row)

    def list_progress(self, learner_id: str) -> list[UnitProgress]:
        with session_scope(self._factory) as session:
            rows = session.scalars(
                select(UnitProgressRecord)
                .where(UnitProgressRecord.learner_id == learner_id)
                .order_by(UnitProgressRecord.unit_id)
            ).all()
            return [progress_from_record(row) for row in rows]

    # Learner profiles

    def get_profile(self, learner_id: str) -> LearnerProfile | None:
        with session_scope(self._factory) as session:
            row = session.get(LearnerProfileRecord, learner_id)
            return profile_from_record(row) if row else None

    def save_profile(self, profile: LearnerProfile) -> None:
        with session_scope(self._factory) as session:
            row = session.get(LearnerProfileRecord, profile.learner_id)
            if row is None:
                row = LearnerProfileRecord()
                session.add(row)
            profile_to_record(profile, row)

    # Garden trees

    def get_tree(self, learner_id: str, group: str) -> Tree | None:
        with session_scope(self._factory) as session:
            row = self._tree_row(session, learner_id, group)
            return tree_from_record(row) if row else None

    def save_tree(self, tree: Tree) -> None:
        with session_scope(self._factory) as session:
            row = self._tree_row(session, tree.learner_id, tree.group)
            if row is None:
                row = TreeRecord(learner_id=tree.learner_id, group_name=tree.group)
                session.add(row)
            row.health = tree.health
            row.last_refreshed_at = tree.last_refreshed_at
            row.buffer_days = tree.buffer_days
            row.total_refreshes = tree.total_refreshes

    def list_trees(self, learner_id: str) -> list[Tree]:
        with session_scope(self._factory) as session:
            rows = session.scalars(
                select(TreeRecord)
                .where(TreeRecord.learner_id == learner_id)
                .order_by(TreeRecord.group_name)
            ).all()
            return [tree_from_record(row) for row in rows]
