"""
Garden Module - gamified engagement signals.

Components:
- sun_drops: reward calculator, daily cap, star rating
- tree_health: engagement-decay engine for topic-group trees
"""

from src.garden.sun_drops import DAILY_CAP, apply_daily_cap, calculate_earned, calculate_stars
from src.garden.tree_health import (
    GiftType,
    HealthCategory,
    Tree,
    apply_gift,
    calculate_health,
    health_category,
    refresh_tree,
    tree_category,
)

__all__ = [
    "DAILY_CAP",
    "GiftType",
    "HealthCategory",
    "Tree",
    "apply_daily_cap",
    "apply_gift",
    "calculate_earned",
    "calculate_health",
    "calculate_stars",
    "health_category",
    "refresh_tree",
    "tree_category",
]
