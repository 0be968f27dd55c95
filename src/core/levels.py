"""
Level / Difficulty Mapper.

Converts an aggregate count of acquired units into a continuous 0-100
proficiency level, and maps levels to display sub-bands.

Two scales live here:
- Proficiency level: 0-100, derived from acquired unit counts. Growth is
  coarser at higher levels since each extra unit adds less.
- Sub-level bands: 15 display bands across six CEFR tiers (A1 .. C2),
  each with an early "-", a solid plain and a "+" variant where defined.

All functions are pure table lookups.
"""

from __future__ import annotations

import math
from enum import Enum


class SubLevel(str, Enum):
    """Display sub-band for a 0-100 proficiency level."""

    A1 = "A1"
    A1_PLUS = "A1+"
    A2_MINUS = "A2-"
    A2 = "A2"
    A2_PLUS = "A2+"
    B1_MINUS = "B1-"
    B1 = "B1"
    B1_PLUS = "B1+"
    B2_MINUS = "B2-"
    B2 = "B2"
    B2_PLUS = "B2+"
    C1_MINUS = "C1-"
    C1 = "C1"
    C1_PLUS = "C1+"
    C2 = "C2"

    @property
    def tier(self) -> str:
        """Broad CEFR tier without the band suffix."""
        return self.value[:2]

    @property
    def canonical_level(self) -> int:
        """Lowest level that maps to this band."""
        return SUB_LEVEL_THRESHOLDS[self]


# Lowest proficiency level for each band, ascending
SUB_LEVEL_THRESHOLDS: dict[SubLevel, int] = {
    SubLevel.A1: 0,
    SubLevel.A1_PLUS: 10,
    SubLevel.A2_MINUS: 20,
    SubLevel.A2: 30,
    SubLevel.A2_PLUS: 40,
    SubLevel.B1_MINUS: 50,
    SubLevel.B1: 60,
    SubLevel.B1_PLUS: 70,
    SubLevel.B2_MINUS: 80,
    SubLevel.B2: 85,
    SubLevel.B2_PLUS: 90,
    SubLevel.C1_MINUS: 93,
    SubLevel.C1: 96,
    SubLevel.C1_PLUS: 98,
    SubLevel.C2: 100,
}

# Acquired units needed to reach each band
UNITS_PER_BAND: list[tuple[SubLevel, int]] = [
    (SubLevel.A1, 0),
    (SubLevel.A1_PLUS, 50),
    (SubLevel.A2_MINUS, 100),
    (SubLevel.A2, 200),
    (SubLevel.A2_PLUS, 300),
    (SubLevel.B1_MINUS, 450),
    (SubLevel.B1, 600),
    (SubLevel.B1_PLUS, 800),
    (SubLevel.B2_MINUS, 1000),
    (SubLevel.B2, 1250),
    (SubLevel.B2_PLUS, 1500),
    (SubLevel.C1_MINUS, 1750),
    (SubLevel.C1, 2000),
    (SubLevel.C1_PLUS, 2500),
    (SubLevel.C2, 3000),
]

# (upper bound of acquired count, level at segment start, count at segment start, units per level)
_LEVEL_SEGMENTS: list[tuple[int, int, int, int]] = [
    (50, 0, 0, 5),
    (200, 10, 50, 10),
    (450, 25, 200, 15),
    (800, 42, 450, 18),
    (1250, 62, 800, 15),
    (2000, 92, 1250, 50),
]

MIN_LEVEL = 0
MAX_LEVEL = 100
MIN_DIFFICULTY = 1.0
MAX_DIFFICULTY = 5.0


def clamp_level(level: float) -> float:
    return max(MIN_LEVEL, min(MAX_LEVEL, level))


def estimate_level(acquired_count: int) -> int:
    """
    Estimate the 0-100 proficiency level from acquired units.

    Args:
        acquired_count: Number of units with status acquired

    Returns:
        Proficiency level, monotone non-decreasing in acquired_count
    """
    acquired = max(0, int(acquired_count))
    for upper, base_level, base_count, per_level in _LEVEL_SEGMENTS:
        if acquired < upper:
            return min(MAX_LEVEL, base_level + (acquired - base_count) // per_level)
    return MAX_LEVEL


def level_to_sub_level(level: float) -> SubLevel:
    """Return the highest band whose threshold is at or below the level."""
    clamped = clamp_level(level)
    result = SubLevel.A1
    for band, threshold in SUB_LEVEL_THRESHOLDS.items():
        if clamped >= threshold:
            result = band
        else:
            break
    return result


def sub_level_to_level(sub_level: SubLevel | str) -> int:
    """Return the canonical breakpoint level for a band."""
    return SUB_LEVEL_THRESHOLDS[SubLevel(sub_level)]


def units_to_next_band(acquired_count: int) -> tuple[SubLevel, int]:
    """
    Report the next band and how many more acquired units reach it.

    At the top band returns (C2, 0).
    """
    acquired = max(0, int(acquired_count))
    for band, needed in UNITS_PER_BAND:
        if acquired < needed:
            return band, needed - acquired
    return SubLevel.C2, 0


def level_to_cefr(level: float) -> str:
    """Coarse CEFR tier for a 0-100 level."""
    if level <= 20:
        return "A1"
    elif level <= 40:
        return "A2"
    elif level <= 60:
        return "B1"
    elif level <= 80:
        return "B2"
    elif level <= 90:
        return "C1"
    return "C2"


# =============================================================================
# Difficulty scale (1-5)
# =============================================================================


def clamp_difficulty(value: float) -> float:
    return max(MIN_DIFFICULTY, min(MAX_DIFFICULTY, value))


def difficulty_to_cefr(difficulty: float) -> str:
    """Label for a 1-5 difficulty value."""
    if difficulty < 1.5:
        return "A1"
    elif difficulty < 2.0:
        return "A1+"
    elif difficulty < 2.5:
        return "A2"
    elif difficulty < 3.0:
        return "A2+"
    elif difficulty < 3.5:
        return "B1"
    elif difficulty < 4.0:
        return "B1+"
    elif difficulty < 4.5:
        return "B2"
    elif difficulty < 5.0:
        return "B2+"
    return "C1"


def parse_difficulty_range(value: str | None) -> tuple[float, float]:
    """
    Parse an authored difficulty range such as "1-3".

    Malformed or missing values fall back to the full 1-5 range.
    """
    if not value:
        return MIN_DIFFICULTY, MAX_DIFFICULTY
    parts = value.split("-")
    if len(parts) != 2:
        return MIN_DIFFICULTY, MAX_DIFFICULTY
    try:
        low, high = float(parts[0]), float(parts[1])
    except ValueError:
        return MIN_DIFFICULTY, MAX_DIFFICULTY
    if math.isnan(low) or math.isnan(high) or low > high:
        return MIN_DIFFICULTY, MAX_DIFFICULTY
    return clamp_difficulty(low), clamp_difficulty(high)
