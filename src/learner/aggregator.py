"""
Learner Profile Aggregator.

Rolls per-unit records and interaction outcomes up into the learner profile.

Rollups:
- Status counts and proficiency level from UnitProgress records
- Average confidence: exponential moving average (weight 0.1)
- Help/wrong-answer rates: simple ratios over a trailing window
- Average session length: total minutes / sessions
- Filter risk: weighted blend of rates, confidence and recent struggle

Every rollup is bounded so repeated updates can never diverge. The
aggregator mutates the profile it is given; callers serialize writes per
learner.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

from loguru import logger

from src.core.activity import ActivityResult
from src.core.clock import days_since, ensure_aware, utcnow
from src.core.levels import estimate_level
from src.learner.profile import ActivityStats, DetectedInterest, LearnerProfile
from src.srs.models import UnitProgress, UnitStatus

CONFIDENCE_EMA_WEIGHT = 0.1
HELP_ACTIVITY_SCORE = 0.7
RATE_WINDOW = 50
MAX_SNAPSHOTS = 30
MAX_DETECTED_INTERESTS = 20
INTEREST_STRENGTH_THRESHOLD = 0.5
LEVEL_HISTORY_STEP = 5
STRUGGLE_RISK_BUMP = 0.15
STRUGGLE_DECAY_DAYS = 3.0
RISK_EMA_WEIGHT = 0.2
RISK_DECAY_PER_DAY = 0.9
RISK_DECAY_MAX_DAYS = 10


def _clamp_unit(value: float) -> float:
    return max(0.0, min(1.0, value))


@dataclass
class SessionStats:
    """Counts reported at session close."""

    minutes: float
    activities: int
    correct_first_try: int
    help_used: int


class LearnerProfileAggregator:
    """Incremental rollups over a learner's interactions and unit records."""

    def __init__(self, rate_window: int = RATE_WINDOW):
        self.rate_window = rate_window

    # =========================================================================
    # Per-interaction
    # =========================================================================

    def record_interaction(
        self,
        profile: LearnerProfile,
        result: ActivityResult,
        now: datetime | None = None,
    ) -> LearnerProfile:
        """
        Fold one interaction into the profile.

        Updates confidence EMA, trailing-window rates, per-activity-type
        stats, and appends a confidence snapshot.
        """
        now = ensure_aware(now or result.timestamp)

        if result.correct:
            score = HELP_ACTIVITY_SCORE if result.used_help else 1.0
        else:
            score = 0.0
        profile.average_confidence = _clamp_unit(
            profile.average_confidence * (1 - CONFIDENCE_EMA_WEIGHT)
            + score * CONFIDENCE_EMA_WEIGHT
        )

        profile.recent_outcomes.append((result.correct, result.used_help))
        if len(profile.recent_outcomes) > self.rate_window:
            del profile.recent_outcomes[: -self.rate_window]
        total = len(profile.recent_outcomes)
        profile.wrong_answer_rate = sum(1 for ok, _ in profile.recent_outcomes if not ok) / total
        profile.help_request_rate = sum(1 for _, helped in profile.recent_outcomes if helped) / total

        stats = profile.activity_stats.setdefault(result.activity_type, ActivityStats())
        stats.attempts += 1
        if result.first_try:
            stats.first_try_correct += 1

        self.add_snapshot(profile, profile.average_confidence, now)
        profile.updated_at = now
        return profile

    def add_snapshot(self, profile: LearnerProfile, confidence: float, now: datetime) -> None:
        profile.confidence_snapshots.append((now, round(confidence, 4)))
        if len(profile.confidence_snapshots) > MAX_SNAPSHOTS:
            del profile.confidence_snapshots[:-MAX_SNAPSHOTS]

    # =========================================================================
    # Unit rollups
    # =========================================================================

    def recompute_status_counts(
        self,
        profile: LearnerProfile,
        progresses: Iterable[UnitProgress],
        now: datetime | None = None,
    ) -> LearnerProfile:
        """
        Recount units by status and recompute the proficiency level.

        Records are expected to be status-refreshed by the caller. The level
        history only grows when the level moves by at least 5 points.
        """
        now = ensure_aware(now or utcnow())
        counts = {status: 0 for status in UnitStatus}
        for progress in progresses:
            counts[progress.status] += 1
        profile.status_counts = counts

        new_level = float(estimate_level(counts[UnitStatus.ACQUIRED]))
        last_recorded = profile.level_history[-1][1] if profile.level_history else None
        if last_recorded is None or abs(new_level - last_recorded) >= LEVEL_HISTORY_STEP:
            profile.level_history.append((now, new_level))
            logger.info(f"Learner {profile.learner_id} level {profile.level:g} -> {new_level:g}")
        profile.level = new_level
        profile.updated_at = now
        return profile

    # =========================================================================
    # Session close
    # =========================================================================

    def record_session(
        self,
        profile: LearnerProfile,
        stats: SessionStats,
        now: datetime | None = None,
    ) -> LearnerProfile:
        now = ensure_aware(now or utcnow())
        profile.total_sessions += 1
        profile.total_minutes += max(0.0, stats.minutes)
        profile.average_session_minutes = profile.total_minutes / profile.total_sessions
        profile.last_session_at = now
        profile.updated_at = now
        return profile

    # =========================================================================
    # Affective filter risk
    # =========================================================================

    def calculate_filter_risk(
        self,
        profile: LearnerProfile,
        recent: list[ActivityResult] | None = None,
        now: datetime | None = None,
    ) -> float:
        """
        Estimate filter risk from the profile and recent results.

        Components (max contribution):
        - Wrong rate in recent results (0.3)
        - Help request rate (0.2)
        - Low average confidence (0.2)
        - Struggle within the last 3 days, decaying linearly (0.2)
        """
        risk = 0.0
        if recent:
            risk += sum(1 for r in recent if not r.correct) / len(recent) * 0.3
        else:
            risk += profile.wrong_answer_rate * 0.3
        risk += profile.help_request_rate * 0.2
        risk += (1 - profile.average_confidence) * 0.2

        if profile.last_struggle_at is not None:
            elapsed = days_since(profile.last_struggle_at, now)
            if elapsed <= STRUGGLE_DECAY_DAYS:
                risk += 0.2 * (1 - elapsed / STRUGGLE_DECAY_DAYS)

        return min(1.0, risk)

    def record_struggle(self, profile: LearnerProfile, now: datetime | None = None) -> LearnerProfile:
        now = ensure_aware(now or utcnow())
        profile.filter_risk = min(1.0, profile.filter_risk + STRUGGLE_RISK_BUMP)
        profile.last_struggle_at = now
        logger.debug(f"Struggle recorded for {profile.learner_id}, risk={profile.filter_risk:.2f}")
        return profile

    def update_filter_risk(self, profile: LearnerProfile, session_risk: float) -> LearnerProfile:
        """Blend a session's risk into the profile (80% old, 20% new)."""
        profile.filter_risk = _clamp_unit(
            profile.filter_risk * (1 - RISK_EMA_WEIGHT) + _clamp_unit(session_risk) * RISK_EMA_WEIGHT
        )
        return profile

    def decay_filter_risk(self, profile: LearnerProfile, now: datetime | None = None) -> LearnerProfile:
        """
        Let risk fade while the learner is away (10% per idle day, up to 10 days).

        Idle days are counted from the last session or the last decay,
        whichever is later, so repeated calls never decay the same day twice.
        """
        if profile.last_session_at is None:
            return profile
        anchor = ensure_aware(profile.last_session_at)
        if profile.risk_decayed_at is not None:
            anchor = max(anchor, ensure_aware(profile.risk_decayed_at))
        idle_days = int(days_since(anchor, now))
        if idle_days > 0:
            profile.filter_risk *= RISK_DECAY_PER_DAY ** min(idle_days, RISK_DECAY_MAX_DAYS)
            profile.risk_decayed_at = anchor + timedelta(days=idle_days)
        return profile

    # =========================================================================
    # Interests
    # =========================================================================

    def add_explicit_interests(self, profile: LearnerProfile, interests: Iterable[str]) -> LearnerProfile:
        for interest in interests:
            if interest and interest not in profile.explicit_interests:
                profile.explicit_interests.append(interest)
        return profile

    def record_detected_interest(
        self,
        profile: LearnerProfile,
        topic: str,
        strength: float,
        now: datetime | None = None,
    ) -> LearnerProfile:
        """Keep the strongest sighting per topic; retain the top 20."""
        now = ensure_aware(now or utcnow())
        strength = _clamp_unit(strength)
        existing = next((i for i in profile.detected_interests if i.topic == topic), None)
        if existing is None:
            profile.detected_interests.append(DetectedInterest(topic, strength, now))
        elif strength > existing.strength:
            existing.strength = strength
            existing.detected_at = now

        profile.detected_interests.sort(key=lambda i: i.strength, reverse=True)
        del profile.detected_interests[MAX_DETECTED_INTERESTS:]
        return profile

    def combined_interests(self, profile: LearnerProfile) -> list[str]:
        """Explicit interests plus detected ones with strength >= 0.5."""
        combined = list(profile.explicit_interests)
        for detected in profile.detected_interests:
            if detected.strength >= INTEREST_STRENGTH_THRESHOLD and detected.topic not in combined:
                combined.append(detected.topic)
        return combined
