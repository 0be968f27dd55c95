"""
Unit tests for the Sun Drops reward calculator.
"""

import pytest

from src.core.exceptions import InvalidRewardError, ProgressionValidationError
from src.garden.sun_drops import (
    apply_daily_cap,
    base_value_for_difficulty,
    calculate_earned,
    calculate_stars,
    calculate_tree_growth,
    is_daily_cap_reached,
    remaining_daily_allowance,
)


class TestCalculateEarned:
    """The activity-agnostic earning rule."""

    def test_full_value_on_clean_answer(self):
        assert calculate_earned(4) == 4

    def test_retry_halves_rounding_up(self):
        assert calculate_earned(4, is_retry=True) == 2
        assert calculate_earned(3, is_retry=True) == 2

    def test_help_halves_rounding_up(self):
        assert calculate_earned(3, used_help=True) == 2

    def test_wrong_attempts_subtract(self):
        assert calculate_earned(3, wrong_attempts=2) == 1

    def test_never_below_one(self):
        assert calculate_earned(1, is_retry=True, used_help=True) == 1
        assert calculate_earned(4, wrong_attempts=10) == 1

    def test_retry_and_help_do_not_stack(self):
        assert calculate_earned(4, is_retry=True, used_help=True) == 2

    @pytest.mark.parametrize("base", [0, 5, -1])
    def test_out_of_range_base_is_rejected(self, base):
        with pytest.raises(InvalidRewardError):
            calculate_earned(base)

    def test_negative_wrong_attempts_is_rejected(self):
        with pytest.raises(ProgressionValidationError):
            calculate_earned(2, wrong_attempts=-1)

    def test_bool_base_is_rejected(self):
        with pytest.raises(InvalidRewardError):
            calculate_earned(True)


class TestBaseValue:
    @pytest.mark.parametrize("difficulty,expected", [(1.0, 1), (2.0, 2), (2.6, 3), (5.0, 4)])
    def test_difficulty_maps_into_one_to_four(self, difficulty, expected):
        assert base_value_for_difficulty(difficulty) == expected


class TestStarsAndGrowth:
    def test_star_thresholds(self):
        assert calculate_stars(9, 10) == 3
        assert calculate_stars(6, 10) == 2
        assert calculate_stars(5, 10) == 1

    def test_zero_maximum(self):
        assert calculate_stars(3, 0) == 1
        assert calculate_tree_growth(3, 0) == 0.0

    def test_growth_is_clamped(self):
        assert calculate_tree_growth(15, 10) == 1.0
        assert calculate_tree_growth(5, 10) == pytest.approx(0.5)


class TestDailyCap:
    def test_award_is_clipped_at_cap(self):
        assert apply_daily_cap(4, 48, cap=50) == 2
        assert apply_daily_cap(4, 50, cap=50) == 0

    def test_under_cap_passes_through(self):
        assert apply_daily_cap(3, 10, cap=50) == 3

    def test_cap_reached(self):
        assert is_daily_cap_reached(50)
        assert not is_daily_cap_reached(49)
        assert remaining_daily_allowance(60) == 0
