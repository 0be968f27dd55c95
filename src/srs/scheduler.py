"""
Chunk Scheduler: SM-2 derivative for lexical chunks.

Maintains one UnitProgress per (learner, unit) and updates it from a single
answered interaction.

Quality scale (derived from correctness, help use, attempts and latency):
0 - Wrong, slow (blackout)
1 - Wrong at normal speed
2 - Wrong but quick (almost knew it)
3 - Correct with help, after retries, or very slow
4 - Correct unaided at normal speed
5 - Correct unaided and fast

Status is a pure function of (repetitions, ease, days since review, interval):
- new: never reviewed
- learning: ease below 1.5, or fewer than 3 consecutive correct reviews
- fragile: unreviewed for more than twice the interval (overrides acquired)
- acquired: everything else
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import datetime, timedelta

from loguru import logger

from src.content.models import ContentUnit
from src.content.pool import ContentPool
from src.core.activity import ActivityResult
from src.core.clock import ensure_aware, utcnow
from src.srs.models import DEFAULT_EASE, MAX_EASE, MIN_EASE, UnitProgress, UnitStatus

# =============================================================================
# Configuration
# =============================================================================

LEARNING_EASE_THRESHOLD = 1.5
ACQUIRED_REPETITIONS = 3
WRONG_EASE_PENALTY = 0.2


@dataclass
class SchedulerConfig:
    """Configuration for the chunk scheduler."""

    min_ease: float = MIN_EASE
    max_ease: float = MAX_EASE
    default_ease: float = DEFAULT_EASE
    second_interval: int = 3  # Days after the second consecutive correct review
    expected_response_ms: int = 8000

    @classmethod
    def from_settings(cls) -> SchedulerConfig:
        from config import get_settings

        settings = get_settings()
        return cls(
            min_ease=settings.srs_min_ease,
            max_ease=settings.srs_max_ease,
            default_ease=settings.srs_default_ease,
            second_interval=settings.srs_second_interval,
            expected_response_ms=settings.srs_expected_response_ms,
        )

    def clamp_ease(self, value: float) -> float:
        return max(self.min_ease, min(self.max_ease, value))


# =============================================================================
# Pure functions
# =============================================================================


def determine_status(
    repetitions: int,
    ease_factor: float,
    days_since_last_review: float,
    interval: int,
    total_encounters: int | None = None,
) -> UnitStatus:
    """
    Determine acquisition status.

    Args:
        repetitions: Consecutive correct reviews
        ease_factor: Current ease factor
        days_since_last_review: Days since the unit was last practiced
        interval: Current review interval in days
        total_encounters: Lifetime encounters; when omitted, a unit with zero
            repetitions counts as never reviewed

    Returns:
        UnitStatus for the given state
    """
    never_reviewed = total_encounters == 0 if total_encounters is not None else repetitions == 0
    if never_reviewed:
        return UnitStatus.NEW
    if ease_factor < LEARNING_EASE_THRESHOLD:
        return UnitStatus.LEARNING
    if repetitions > 0 and days_since_last_review > 2 * interval:
        return UnitStatus.FRAGILE
    if repetitions < ACQUIRED_REPETITIONS:
        return UnitStatus.LEARNING
    return UnitStatus.ACQUIRED


def update_ease(ease_factor: float, quality: int) -> float:
    """Unclamped SM-2 ease update: EF' = EF + 0.1 - (5-q) * (0.08 + (5-q) * 0.02)."""
    return ease_factor + 0.1 - (5 - quality) * (0.08 + (5 - quality) * 0.02)


# =============================================================================
# Scheduler
# =============================================================================


class ChunkScheduler:
    """
    Applies answered interactions to UnitProgress records.

    Updates are pure: the input record is never mutated and a new record is
    returned. Re-applying the same interaction id is a no-op, so callers can
    retry a failed persistence write safely.
    """

    def __init__(self, pool: ContentPool, config: SchedulerConfig | None = None):
        """
        Initialize the scheduler.

        Args:
            pool: Content pool used to resolve unit ids
            config: Custom configuration (uses defaults if None)
        """
        self.pool = pool
        self.config = config or SchedulerConfig()

    def new_progress(self, learner_id: str, unit_id: str) -> UnitProgress:
        """Default record for a learner's first encounter with a unit."""
        unit = self.pool.get(unit_id)
        return UnitProgress.new(learner_id, unit, ease_factor=self.config.default_ease)

    def derive_quality(
        self,
        correct: bool,
        used_help: bool,
        attempts: int,
        response_time_ms: int,
    ) -> int:
        """
        Convert an interaction to a 0-5 quality grade.

        A response time of 0 means the latency was not measured and is
        treated as normal speed.
        """
        expected = self.config.expected_response_ms
        measured = response_time_ms > 0

        if not correct:
            if measured and response_time_ms < expected * 0.5:
                return 2
            elif not measured or response_time_ms < expected * 2:
                return 1
            return 0

        if used_help or attempts > 1:
            return 3
        if measured and response_time_ms < expected * 0.5:
            return 5
        if measured and response_time_ms > expected * 2:
            return 3
        return 4

    def update(
        self,
        progress: UnitProgress,
        result: ActivityResult,
        now: datetime | None = None,
    ) -> UnitProgress:
        """
        Apply one interaction to a progress record.

        Args:
            progress: Current record (see new_progress for a first encounter)
            result: The answered interaction
            now: Current time (defaults to the result timestamp)

        Returns:
            Updated UnitProgress

        Raises:
            ContentNotFoundError: If the unit is not in the pool
        """
        unit = self.pool.get(progress.unit_id)

        if result.interaction_id == progress.last_interaction_id:
            logger.debug(
                f"Interaction {result.interaction_id} already applied to {progress.unit_id}"
            )
            return progress

        now = ensure_aware(now or result.timestamp or utcnow())
        cfg = self.config

        if result.correct:
            quality = self.derive_quality(
                result.correct, result.used_help, result.attempts, result.response_time_ms
            )
            repetitions = progress.repetitions + 1
            ease = cfg.clamp_ease(update_ease(progress.ease_factor, quality))
            interval = self._next_interval(unit, progress.interval, repetitions, ease)
        else:
            quality = self.derive_quality(
                False, result.used_help, result.attempts, result.response_time_ms
            )
            repetitions = 0
            ease = cfg.clamp_ease(progress.ease_factor - WRONG_EASE_PENALTY)
            interval = 1

        total = progress.total_encounters + 1
        status = determine_status(repetitions, ease, 0.0, interval, total_encounters=total)

        updated = dataclasses.replace(
            progress,
            status=status,
            ease_factor=ease,
            interval=interval,
            next_review=now + timedelta(days=interval),
            repetitions=repetitions,
            total_encounters=total,
            correct_first_try=progress.correct_first_try + (1 if result.first_try else 0),
            wrong_attempts=progress.wrong_attempts + result.wrong_attempts,
            help_used_count=progress.help_used_count + (1 if result.used_help else 0),
            first_encountered_at=progress.first_encountered_at or now,
            first_encountered_context=progress.first_encountered_context or result.context,
            last_encountered_at=now,
            last_encountered_context=result.context or progress.last_encountered_context,
            last_interaction_id=result.interaction_id,
        )

        if updated.status != progress.status:
            logger.debug(
                f"{progress.learner_id}/{progress.unit_id}: "
                f"{progress.status.value} -> {updated.status.value} "
                f"(q={quality}, reps={repetitions}, ef={ease:.2f}, interval={interval}d)"
            )
        return updated

    def _next_interval(self, unit: ContentUnit, interval: int, repetitions: int, ease: float) -> int:
        if repetitions == 1:
            return unit.base_interval
        elif repetitions == 2:
            return max(unit.base_interval, self.config.second_interval)
        return max(1, round(interval * ease))

    def refresh_status(self, progress: UnitProgress, now: datetime | None = None) -> UnitProgress:
        """
        Re-evaluate status at read time so unreviewed units decay to fragile.

        Returns the input record when the status is unchanged.
        """
        now = ensure_aware(now or utcnow())
        status = determine_status(
            progress.repetitions,
            progress.ease_factor,
            progress.days_since_last_review(now),
            progress.interval,
            total_encounters=progress.total_encounters,
        )
        if status == progress.status:
            return progress
        return dataclasses.replace(progress, status=status)
