"""
Session Planner.

Builds a session plan from the learner profile and a time budget:

- Target: never-encountered units at the i+1 band, sized to the duration
- Review: fragile or due units, most overdue first
- Context: acquired units used as scaffolding, never scored

The three sets are disjoint. A unit already acquired is never a target, and
the max-new ceiling holds even for forced units.

Also recommends the next activity during a session and detects when a
session should end.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime

from loguru import logger

from src.adaptive.difficulty import calibrate, difficulty_range
from src.adaptive.models import (
    ActivityRecommendation,
    SessionContext,
    SessionOptions,
    SessionPlan,
    SignalKind,
)
from src.content.models import ContentUnit
from src.content.pool import ContentPool
from src.core.activity import ActivityType
from src.core.clock import ensure_aware, utcnow
from src.learner.profile import ActivityStats, LearnerProfile
from src.srs.models import UnitProgress, UnitStatus
from src.srs.scheduler import determine_status

ACTIVITY_ORDER: list[ActivityType] = [
    ActivityType.MULTIPLE_CHOICE,
    ActivityType.TRUE_FALSE,
    ActivityType.MATCHING,
    ActivityType.FILL_BLANK,
    ActivityType.TRANSLATE,
]

DEFAULT_ACTIVITY_MIX: list[tuple[ActivityType, float]] = [
    (ActivityType.MULTIPLE_CHOICE, 0.3),
    (ActivityType.TRUE_FALSE, 0.2),
    (ActivityType.MATCHING, 0.2),
    (ActivityType.FILL_BLANK, 0.2),
    (ActivityType.TRANSLATE, 0.1),
]

MAX_PREFERRED_TYPES = 4
UNITS_PER_ACTIVITY = 2
REVIEW_EVERY = 3


@dataclass
class PlannerConfig:
    """Defaults and clamps for session planning."""

    default_minutes: float = 10
    minutes_per_activity: float = 1.5
    difficulty_tolerance: float = 0.5
    end_wrong_rate: float = 0.5
    end_wrong_rate_min_activities: int = 10
    end_wrong_signals: int = 5
    default_mix: list[tuple[ActivityType, float]] = field(
        default_factory=lambda: list(DEFAULT_ACTIVITY_MIX)
    )

    @classmethod
    def from_settings(cls) -> PlannerConfig:
        from config import get_settings

        settings = get_settings()
        return cls(
            default_minutes=settings.session_default_minutes,
            minutes_per_activity=settings.session_minutes_per_activity,
        )

    def default_options(self) -> SessionOptions:
        from config import get_settings

        session = get_settings().get_session_config()
        return SessionOptions(
            duration_minutes=session["default_minutes"],
            max_new_units=session["max_new_units"],
            max_review_units=session["max_review_units"],
            max_context_units=session["context_units"],
        )


def weighted_sequence(mix: list[tuple[ActivityType, float]], length: int) -> list[ActivityType]:
    """
    Spread activity types over slots in proportion to their weights.

    Smooth weighted round-robin: deterministic and evenly interleaved.
    """
    if not mix or length <= 0:
        return []
    total = sum(w for _, w in mix)
    current = {t: 0.0 for t, _ in mix}
    sequence = []
    for _ in range(length):
        for activity_type, weight in mix:
            current[activity_type] += weight
        chosen = max(mix, key=lambda item: current[item[0]])[0]
        current[chosen] -= total
        sequence.append(chosen)
    return sequence


class SessionPlanner:
    """
    Plans sessions against a content pool.

    The learner profile and progress records are passed in explicitly on
    every call; the planner keeps no learner state.
    """

    def __init__(self, pool: ContentPool, config: PlannerConfig | None = None):
        self.pool = pool
        self.config = config or PlannerConfig()

    # =========================================================================
    # Planning
    # =========================================================================

    def plan(
        self,
        profile: LearnerProfile,
        progresses: Mapping[str, UnitProgress],
        options: SessionOptions | None = None,
        now: datetime | None = None,
        interests: list[str] | None = None,
    ) -> SessionPlan:
        """
        Build a session plan.

        Args:
            profile: Learner profile
            progresses: Learner's progress records keyed by unit id
            options: Duration, ceilings and preferences
            now: Planning time
            interests: Topics to prefer on ties (defaults to explicit interests)

        Returns:
            SessionPlan with disjoint target/review/context sets

        Raises:
            ContentNotFoundError: If a forced unit id is not in the pool
        """
        now = ensure_aware(now or utcnow())
        options = self._clamp_options(options or SessionOptions())
        interests = interests if interests is not None else list(profile.explicit_interests)

        calibration = calibrate(profile)
        target_level = calibration.target_level
        band = difficulty_range(target_level, self.config.difficulty_tolerance)
        slots = max(1, math.floor(options.duration_minutes / self.config.minutes_per_activity))
        max_new = min(options.max_new_units, slots)

        statuses = {uid: self._effective_status(p, now) for uid, p in progresses.items()}

        forced_targets, forced_reviews = self._split_forced(options, progresses, statuses, now)
        if len(forced_targets) > max_new:
            logger.warning(
                f"{len(forced_targets)} forced units exceed max_new={max_new}; "
                f"dropping {len(forced_targets) - max_new}"
            )
        targets = forced_targets[:max_new]
        taken = {u.id for u in targets} | {u.id for u in forced_reviews}

        if len(targets) < max_new:
            for unit in self._target_candidates(
                band, options.topics, progresses, statuses, target_level, interests, taken
            ):
                if len(targets) >= max_new:
                    break
                targets.append(unit)
                taken.add(unit.id)

        reviews = list(forced_reviews)[: options.max_review_units]
        taken |= {u.id for u in reviews}
        for unit in self._review_candidates(progresses, statuses, now, taken):
            if len(reviews) >= options.max_review_units:
                break
            reviews.append(unit)
            taken.add(unit.id)

        context = self._context_candidates(progresses, statuses, taken)[: options.max_context_units]

        mix = self.activity_mix(profile, options)
        activities = weighted_sequence(mix, slots)
        scored_units = len(targets) + len(reviews)
        estimated = min(
            options.duration_minutes,
            math.ceil(scored_units / UNITS_PER_ACTIVITY) * self.config.minutes_per_activity,
        )

        plan = SessionPlan(
            target_units=targets,
            review_units=reviews,
            context_units=context,
            target_level=target_level,
            current_level=calibration.current_level,
            difficulty_range=band,
            activity_mix=mix,
            activities=activities,
            duration_minutes=options.duration_minutes,
            estimated_minutes=estimated,
            reasoning=calibration.reasoning,
        )
        logger.info(
            f"Planned session for {profile.learner_id}: {len(targets)} new, "
            f"{len(reviews)} review, {len(context)} context at level {target_level:.1f}"
        )
        return plan

    def _clamp_options(self, options: SessionOptions) -> SessionOptions:
        duration = options.duration_minutes
        if duration is None or duration <= 0:
            logger.warning(
                f"Non-positive session duration {duration}; using {self.config.default_minutes}"
            )
            duration = self.config.default_minutes
        return SessionOptions(
            duration_minutes=duration,
            max_new_units=max(0, options.max_new_units),
            max_review_units=max(0, options.max_review_units),
            max_context_units=max(0, options.max_context_units),
            topics=list(options.topics),
            activity_types=list(options.activity_types),
            forced_unit_ids=list(dict.fromkeys(options.forced_unit_ids)),
        )

    def _effective_status(self, progress: UnitProgress, now: datetime) -> UnitStatus:
        return determine_status(
            progress.repetitions,
            progress.ease_factor,
            progress.days_since_last_review(now),
            progress.interval,
            total_encounters=progress.total_encounters,
        )

    def _split_forced(
        self,
        options: SessionOptions,
        progresses: Mapping[str, UnitProgress],
        statuses: Mapping[str, UnitStatus],
        now: datetime,
    ) -> tuple[list[ContentUnit], list[ContentUnit]]:
        """Forced acquired, fragile or due units go to review; the rest are targets."""
        targets, reviews = [], []
        for unit in self.pool.get_many(options.forced_unit_ids):
            status = statuses.get(unit.id, UnitStatus.NEW)
            progress = progresses.get(unit.id)
            due = progress is not None and progress.is_due(now)
            if status in (UnitStatus.ACQUIRED, UnitStatus.FRAGILE) or due:
                reviews.append(unit)
            else:
                targets.append(unit)
        return targets, reviews

    def _target_candidates(
        self,
        band: tuple[float, float],
        topics: list[str],
        progresses: Mapping[str, UnitProgress],
        statuses: Mapping[str, UnitStatus],
        target_level: float,
        interests: list[str],
        taken: set[str],
    ) -> list[ContentUnit]:
        interest_set = set(interests)
        candidates = [
            unit
            for unit in self.pool.find(topics=topics or None, min_difficulty=band[0], max_difficulty=band[1])
            if unit.id not in taken
            and statuses.get(unit.id, UnitStatus.NEW) == UnitStatus.NEW
            and not (unit.id in progresses and progresses[unit.id].has_been_seen)
        ]
        candidates.sort(
            key=lambda u: (
                round(abs(u.difficulty - target_level), 6),
                0 if interest_set.intersection(u.topics) else 1,
                u.frequency_rank,
                u.id,
            )
        )
        return candidates

    def _review_candidates(
        self,
        progresses: Mapping[str, UnitProgress],
        statuses: Mapping[str, UnitStatus],
        now: datetime,
        taken: set[str],
    ) -> list[ContentUnit]:
        due = []
        for unit_id, progress in progresses.items():
            if unit_id in taken or unit_id not in self.pool:
                continue
            if statuses[unit_id] == UnitStatus.FRAGILE or progress.is_due(now):
                due.append(progress)
        due.sort(key=lambda p: (-p.days_overdue(now), p.unit_id))
        return [self.pool.get(p.unit_id) for p in due]

    def _context_candidates(
        self,
        progresses: Mapping[str, UnitProgress],
        statuses: Mapping[str, UnitStatus],
        taken: set[str],
    ) -> list[ContentUnit]:
        acquired = [
            p
            for uid, p in progresses.items()
            if uid not in taken and uid in self.pool and statuses[uid] == UnitStatus.ACQUIRED
        ]
        acquired.sort(key=lambda p: (-p.confidence, p.unit_id))
        return [self.pool.get(p.unit_id) for p in acquired]

    def activity_mix(
        self,
        profile: LearnerProfile,
        options: SessionOptions | None = None,
    ) -> list[tuple[ActivityType, float]]:
        """
        Weight activity types by the learner's first-try accuracy.

        Uses the caller's activity types, else the profile's preferred list;
        falls back to the fixed default mix when both are empty.
        """
        preferred = (options.activity_types if options else None) or profile.preferred_activity_types
        preferred = list(dict.fromkeys(preferred))[:MAX_PREFERRED_TYPES]
        if not preferred:
            return list(self.config.default_mix)

        raw = [
            (activity_type, profile.activity_stats.get(activity_type, ActivityStats()).accuracy)
            for activity_type in preferred
        ]
        total = sum(w for _, w in raw)
        mix = [(t, w / total) for t, w in raw]
        mix.sort(key=lambda item: -item[1])
        return mix

    # =========================================================================
    # In-session decisions
    # =========================================================================

    def next_activity(self, context: SessionContext) -> ActivityRecommendation | None:
        """
        Recommend the next activity.

        Order: reviews after a wrong streak, a review every third activity,
        remaining new units, remaining reviews, then context practice.
        Returns None when the plan has no units at all.
        """
        plan = context.plan
        reviews_left = self._allowed(
            [uid for uid in plan.review_ids if uid not in context.reviewed_unit_ids], context
        )
        targets_left = self._allowed(
            [uid for uid in plan.target_ids if uid not in context.introduced_unit_ids], context
        )
        count = context.activity_count
        streak = context.wrong_streak

        if streak >= 2 and reviews_left:
            unit_ids, is_review, reason = reviews_left, True, "Review after a wrong streak"
        elif reviews_left and (count + 1) % REVIEW_EVERY == 0:
            unit_ids, is_review, reason = reviews_left, True, "Scheduled review"
        elif targets_left:
            unit_ids, is_review, reason = targets_left, False, "New units"
        elif reviews_left:
            unit_ids, is_review, reason = reviews_left, True, "Remaining reviews"
        else:
            practice = plan.context_ids or plan.target_ids or plan.review_ids
            if not practice:
                return None
            start = (count * UNITS_PER_ACTIVITY) % len(practice)
            unit_ids = (practice[start:] + practice[:start])
            is_review, reason = False, "Practice familiar units"

        if streak >= 2:
            activity_type = ActivityType.TRUE_FALSE
        elif is_review:
            activity_type = ActivityType.MULTIPLE_CHOICE
        elif plan.activities:
            activity_type = plan.activities[count % len(plan.activities)]
        else:
            activity_type = ACTIVITY_ORDER[count % len(ACTIVITY_ORDER)]

        return ActivityRecommendation(
            activity_type=activity_type,
            unit_ids=tuple(unit_ids[:UNITS_PER_ACTIVITY]),
            target_difficulty=context.current_target_level,
            is_review=is_review,
            reason=reason,
        )

    def _allowed(self, unit_ids: list[str], context: SessionContext) -> list[str]:
        """Drop units from topics the session moved away from, unless nothing else is left."""
        if not context.excluded_topics:
            return unit_ids
        excluded = set(context.excluded_topics)
        kept = [uid for uid in unit_ids if self.pool.get(uid).topic_group not in excluded]
        return kept or unit_ids

    def should_end_session(
        self,
        context: SessionContext,
        now: datetime | None = None,
    ) -> tuple[bool, str | None]:
        """
        Decide whether the session should end.

        Returns:
            (should_end, reason)
        """
        count = context.activity_count
        if count >= self.config.end_wrong_rate_min_activities:
            wrong_rate = sum(1 for r in context.results if not r.correct) / count
            if wrong_rate > self.config.end_wrong_rate:
                return True, "High error rate - time for a break"

        wrong_signals = sum(1 for s in context.signals if s.kind == SignalKind.WRONG)
        if wrong_signals >= self.config.end_wrong_signals:
            return True, "Several mistakes in a row - let's rest and come back"

        budget = context.plan.duration_minutes
        estimated = count * self.config.minutes_per_activity
        elapsed = (ensure_aware(now or utcnow()) - ensure_aware(context.started_at)).total_seconds() / 60
        if count > 0 and max(estimated, elapsed) >= budget:
            return True, "Session time complete"

        return False, None
