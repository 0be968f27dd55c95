"""
Learner Module.

Components:
- profile: LearnerProfile, DetectedInterest, ActivityStats
- aggregator: LearnerProfileAggregator (rollups, filter risk, interests)
"""

from src.learner.aggregator import LearnerProfileAggregator, SessionStats
from src.learner.profile import ActivityStats, DetectedInterest, LearnerProfile

__all__ = [
    "ActivityStats",
    "DetectedInterest",
    "LearnerProfile",
    "LearnerProfileAggregator",
    "SessionStats",
]
