"""
Core Module - Shared domain types.

Components:
- activity: ActivityResult, ActivityType (interaction boundary object)
- levels: 0-100 proficiency, sub-level bands, 1-5 difficulty mapping
- exceptions: typed error hierarchy
- clock: timezone-aware time helpers

Domain modules (srs, learner, adaptive, garden) import from src/core/
rather than redefining these concepts.
"""

from src.core.activity import ActivityResult, ActivityType
from src.core.exceptions import (
    ContentNotFoundError,
    InvalidContentError,
    InvalidRewardError,
    LearnerNotFoundError,
    NotFoundError,
    ProgressionError,
    ProgressionValidationError,
)
from src.core.levels import (
    SubLevel,
    difficulty_to_cefr,
    estimate_level,
    level_to_cefr,
    level_to_sub_level,
    sub_level_to_level,
    units_to_next_band,
)

__all__ = [
    # Interactions
    "ActivityResult",
    "ActivityType",
    # Levels
    "SubLevel",
    "difficulty_to_cefr",
    "estimate_level",
    "level_to_cefr",
    "level_to_sub_level",
    "sub_level_to_level",
    "units_to_next_band",
    # Errors
    "ProgressionError",
    "NotFoundError",
    "ContentNotFoundError",
    "LearnerNotFoundError",
    "ProgressionValidationError",
    "InvalidRewardError",
    "InvalidContentError",
]
