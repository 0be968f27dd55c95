"""
Unit tests for the level / difficulty mapper.
"""

import pytest

from src.core.levels import (
    SubLevel,
    difficulty_to_cefr,
    estimate_level,
    level_to_cefr,
    level_to_sub_level,
    parse_difficulty_range,
    sub_level_to_level,
    units_to_next_band,
)


class TestEstimateLevel:
    """Acquired units -> 0-100 proficiency."""

    @pytest.mark.parametrize(
        "acquired,expected",
        [(0, 0), (49, 9), (50, 10), (200, 25), (450, 42), (800, 62), (1250, 92), (5000, 100)],
    )
    def test_segment_breakpoints(self, acquired, expected):
        assert estimate_level(acquired) == expected

    def test_negative_count_clamps_to_zero(self):
        assert estimate_level(-10) == 0

    def test_monotone_non_decreasing(self):
        levels = [estimate_level(n) for n in range(0, 3200, 7)]
        assert levels == sorted(levels)
        assert all(0 <= level <= 100 for level in levels)


class TestSubLevels:
    def test_zero_is_a1(self):
        assert level_to_sub_level(0) == SubLevel.A1

    def test_band_breakpoints(self):
        assert level_to_sub_level(10) == SubLevel.A1_PLUS
        assert level_to_sub_level(55) == SubLevel.B1_MINUS
        assert level_to_sub_level(99) == SubLevel.C1_PLUS
        assert level_to_sub_level(100) == SubLevel.C2

    def test_out_of_range_levels_clamp(self):
        assert level_to_sub_level(-5) == SubLevel.A1
        assert level_to_sub_level(150) == SubLevel.C2

    def test_fifteen_bands(self):
        assert len(SubLevel) == 15

    def test_canonical_level_round_trips_to_band(self):
        for band in SubLevel:
            assert level_to_sub_level(sub_level_to_level(band)) == band

    def test_sub_level_accepts_string(self):
        assert sub_level_to_level("B2+") == 90

    def test_tier(self):
        assert SubLevel.B1_MINUS.tier == "B1"


class TestUnitsToNextBand:
    def test_new_learner_needs_fifty(self):
        assert units_to_next_band(0) == (SubLevel.A1_PLUS, 50)

    def test_mid_band(self):
        assert units_to_next_band(120) == (SubLevel.A2, 80)

    def test_top_band(self):
        assert units_to_next_band(3000) == (SubLevel.C2, 0)


class TestCefrLabels:
    def test_level_tiers(self):
        assert level_to_cefr(0) == "A1"
        assert level_to_cefr(35) == "A2"
        assert level_to_cefr(95) == "C2"

    def test_difficulty_labels(self):
        assert difficulty_to_cefr(1.0) == "A1"
        assert difficulty_to_cefr(2.2) == "A2"
        assert difficulty_to_cefr(5.0) == "C1"


class TestParseDifficultyRange:
    def test_valid_range(self):
        assert parse_difficulty_range("2-4") == (2.0, 4.0)

    def test_values_are_clamped(self):
        assert parse_difficulty_range("0-9") == (1.0, 5.0)

    @pytest.mark.parametrize("value", [None, "", "3", "a-b", "4-2", "1-2-3"])
    def test_malformed_falls_back_to_full_range(self, value):
        assert parse_difficulty_range(value) == (1.0, 5.0)
