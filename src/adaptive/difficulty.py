"""
Difficulty Calibration (i+1).

Maps a learner profile to a 1-5 difficulty level and picks the session
target one step above it. Elevated filter risk holds the target at the
current level (consolidation mode).

Level = chunk base level
      + (average confidence - 0.5) * 0.3   (range -0.15 .. +0.15)
      - filter risk * 0.2                  (range -0.2 .. 0)
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from src.core.activity import ActivityResult
from src.core.levels import MAX_DIFFICULTY, MIN_DIFFICULTY, clamp_difficulty
from src.learner.profile import LearnerProfile

# (min acquired units, level on the 1-5 scale)
CHUNK_THRESHOLDS: list[tuple[int, float]] = [
    (0, 1.0),
    (50, 1.5),
    (150, 2.0),
    (300, 2.5),
    (500, 3.0),
    (800, 3.5),
    (1200, 4.0),
    (1700, 4.5),
    (2300, 5.0),
]

ADAPTATION_THRESHOLDS = {
    "high_accuracy": 0.9,
    "low_accuracy": 0.6,
    "high_help_rate": 0.3,
    "low_help_rate": 0.1,
    "increase_step": 0.2,
    "decrease_step": 0.3,
}

DROP_BACK_THRESHOLDS = {
    "recent_wrong_count": 3,
    "recent_window": 5,
    "filter_risk": 0.7,
    "low_confidence": 0.4,
}

DEFAULT_TOLERANCE = 0.5


@dataclass
class PerformanceSummary:
    """Aggregate of recent activity results."""

    correct: int = 0
    total: int = 0
    help_used: int = 0
    avg_time_ms: float = 0.0

    @property
    def accuracy(self) -> float:
        return self.correct / max(1, self.total)

    @property
    def help_rate(self) -> float:
        return self.help_used / max(1, self.total)


@dataclass
class DifficultyCalibration:
    """Calibrated levels for a learner with the factors behind them."""

    current_level: float
    target_level: float
    should_drop_back: bool
    reasoning: str
    factors: dict[str, float] = field(default_factory=dict)


def chunk_level(acquired_count: int) -> float:
    """Base 1-5 level from acquired unit count."""
    level = MIN_DIFFICULTY
    for min_units, threshold_level in CHUNK_THRESHOLDS:
        if acquired_count >= min_units:
            level = threshold_level
    return level


def current_level(profile: LearnerProfile) -> float:
    level = (
        chunk_level(profile.acquired_count)
        + (profile.average_confidence - 0.5) * 0.3
        - profile.filter_risk * 0.2
    )
    return clamp_difficulty(level)


def target_level(profile: LearnerProfile) -> float:
    """i+1, or i when filter risk is elevated."""
    level = current_level(profile)
    if profile.filter_risk > DROP_BACK_THRESHOLDS["filter_risk"]:
        return level
    return clamp_difficulty(level + 1)


def should_drop_back(profile: LearnerProfile, recent: Sequence[ActivityResult] = ()) -> bool:
    """
    Check whether the learner should drop to consolidation.

    True when 3+ of the last 5 results were wrong, filter risk is above
    0.7, or average confidence is below 0.4.
    """
    window = list(recent)[-DROP_BACK_THRESHOLDS["recent_window"]:]
    if sum(1 for r in window if not r.correct) >= DROP_BACK_THRESHOLDS["recent_wrong_count"]:
        return True
    if profile.filter_risk > DROP_BACK_THRESHOLDS["filter_risk"]:
        return True
    return profile.average_confidence < DROP_BACK_THRESHOLDS["low_confidence"]


def calibrate(profile: LearnerProfile, recent: Sequence[ActivityResult] = ()) -> DifficultyCalibration:
    """Calibrate difficulty and explain the result."""
    base = chunk_level(profile.acquired_count)
    confidence_adj = (profile.average_confidence - 0.5) * 0.3
    risk_adj = -profile.filter_risk * 0.2
    current = current_level(profile)
    target = target_level(profile)
    drop_back = should_drop_back(profile, recent)

    factors = [f"{profile.acquired_count} units acquired (base level {base:.1f})"]
    if confidence_adj > 0.05:
        factors.append(f"high confidence (+{confidence_adj:.2f})")
    elif confidence_adj < -0.05:
        factors.append(f"low confidence ({confidence_adj:.2f})")
    if risk_adj < -0.05:
        factors.append(f"filter risk reduced level ({risk_adj:.2f})")

    if drop_back:
        reasoning = f"Dropping to consolidation mode (level {current:.1f}). "
    else:
        reasoning = f"Targeting i+1 at level {target:.1f}. "
    reasoning += f"Factors: {', '.join(factors)}."

    return DifficultyCalibration(
        current_level=current,
        target_level=current if drop_back else target,
        should_drop_back=drop_back,
        reasoning=reasoning,
        factors={
            "chunk_base_level": base,
            "confidence_adjustment": confidence_adj,
            "filter_risk_adjustment": risk_adj,
        },
    )


def adapt_difficulty(level: float, performance: PerformanceSummary) -> float:
    """
    Nudge a target level from in-session performance.

    - 90%+ accuracy with <10% help: +0.2
    - Under 60% accuracy or >30% help: -0.3
    - 80%+ accuracy: +0.1
    - Under 70% accuracy: -0.15
    """
    t = ADAPTATION_THRESHOLDS
    accuracy, help_rate = performance.accuracy, performance.help_rate

    if accuracy >= t["high_accuracy"] and help_rate < t["low_help_rate"]:
        return min(MAX_DIFFICULTY, level + t["increase_step"])
    if accuracy < t["low_accuracy"] or help_rate > t["high_help_rate"]:
        return max(MIN_DIFFICULTY, level - t["decrease_step"])
    if accuracy >= 0.8:
        return min(MAX_DIFFICULTY, level + 0.1)
    if accuracy < 0.7:
        return max(MIN_DIFFICULTY, level - 0.15)
    return level


def difficulty_range(target: float, tolerance: float = DEFAULT_TOLERANCE) -> tuple[float, float]:
    return (
        max(MIN_DIFFICULTY, target - tolerance),
        min(MAX_DIFFICULTY, target + tolerance),
    )


def summarize_performance(results: Sequence[ActivityResult]) -> PerformanceSummary:
    if not results:
        return PerformanceSummary()
    return PerformanceSummary(
        correct=sum(1 for r in results if r.correct),
        total=len(results),
        help_used=sum(1 for r in results if r.used_help),
        avg_time_ms=sum(r.response_time_ms for r in results) / len(results),
    )
