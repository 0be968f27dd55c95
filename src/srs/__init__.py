"""
Spaced Repetition Module.

Components:
- models: UnitProgress, UnitStatus, calculate_confidence
- scheduler: ChunkScheduler (SM-2 derivative), determine_status
"""

from src.srs.models import UnitProgress, UnitStatus, calculate_confidence
from src.srs.scheduler import ChunkScheduler, SchedulerConfig, determine_status

__all__ = [
    "ChunkScheduler",
    "SchedulerConfig",
    "UnitProgress",
    "UnitStatus",
    "calculate_confidence",
    "determine_status",
]
