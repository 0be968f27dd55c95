"""
Sun Drops: reward calculator.

Converts an activity's base value plus retry/help/mistake counters into
the Sun Drops actually earned. The rule is activity-agnostic:

- Retry or help used: half the base, rounded up
- Each wrong attempt: -1
- Never below 1 for a completed activity

Also provides the daily earning cap, star ratings and tree growth ratio.
"""

from __future__ import annotations

import math

from src.core.exceptions import InvalidRewardError

MIN_BASE_VALUE = 1
MAX_BASE_VALUE = 4
MIN_EARNED = 1
DAILY_CAP = 50


def calculate_earned(
    base_value: int,
    is_retry: bool = False,
    used_help: bool = False,
    wrong_attempts: int = 0,
) -> int:
    """
    Calculate Sun Drops earned from an activity.

    Args:
        base_value: The activity's base value (1-4)
        is_retry: Whether this is a retry attempt
        used_help: Whether the help button was used
        wrong_attempts: Wrong answers before the correct one

    Returns:
        Sun Drops earned, at least 1

    Raises:
        InvalidRewardError: If base_value is outside 1-4 or wrong_attempts is negative

    Example:
        >>> calculate_earned(4, is_retry=True)
        2
        >>> calculate_earned(3, wrong_attempts=2)
        1
    """
    if isinstance(base_value, bool) or not MIN_BASE_VALUE <= base_value <= MAX_BASE_VALUE:
        raise InvalidRewardError(
            f"Base value must be {MIN_BASE_VALUE}-{MAX_BASE_VALUE}, got {base_value}"
        )
    if wrong_attempts < 0:
        raise InvalidRewardError(f"wrong_attempts must be >= 0, got {wrong_attempts}")

    earned = math.ceil(base_value / 2) if (is_retry or used_help) else base_value
    return max(MIN_EARNED, earned - wrong_attempts)


def base_value_for_difficulty(difficulty: float) -> int:
    """Default base value for an activity: its difficulty rounded into 1-4."""
    return max(MIN_BASE_VALUE, min(MAX_BASE_VALUE, round(difficulty)))


def calculate_stars(earned: int, maximum: int) -> int:
    """
    Star rating (1-3) for a lesson.

    90%+ of the maximum earns 3 stars, 60%+ earns 2, anything else 1.
    """
    if maximum <= 0:
        return 1
    ratio = earned / maximum
    if ratio >= 0.9:
        return 3
    elif ratio >= 0.6:
        return 2
    return 1


def calculate_tree_growth(earned: int, maximum: int) -> float:
    """Growth fraction (0-1) a lesson contributes to its tree."""
    if maximum <= 0:
        return 0.0
    return max(0.0, min(1.0, earned / maximum))


# =============================================================================
# Daily cap
# =============================================================================


def is_daily_cap_reached(earned_today: int, cap: int = DAILY_CAP) -> bool:
    return earned_today >= cap


def remaining_daily_allowance(earned_today: int, cap: int = DAILY_CAP) -> int:
    return max(0, cap - earned_today)


def apply_daily_cap(amount: int, earned_today: int, cap: int = DAILY_CAP) -> int:
    """Clip an award so the day's total never exceeds the cap."""
    return min(amount, remaining_daily_allowance(earned_today, cap))
