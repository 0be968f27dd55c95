"""
Tree Health: engagement-decay engine.

Each (learner, topic group) has a garden tree whose health decays while the
group goes unpracticed. Gifts add buffer days that delay the decay.

Health schedule by effective days (days since refresh minus buffer):
| Effective days | Health |
|----------------|--------|
| 0-2            | 100    |
| 3-5            | 85     |
| 6-10           | 60     |
| 11-14          | 35     |
| 15-21          | 15     |
| 22+            | 5      |

Health never reaches 0, so a tree can always be revived.
"""

from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from loguru import logger

from src.core.clock import ensure_aware, utcnow

# =============================================================================
# Constants
# =============================================================================

# (max effective days, health)
HEALTH_THRESHOLDS: list[tuple[int, int]] = [
    (2, 100),
    (5, 85),
    (10, 60),
    (14, 35),
    (21, 15),
]

MIN_HEALTH = 5
MAX_HEALTH = 100
HEALTHY_THRESHOLD = 80
DYING_THRESHOLD = 40
NEEDS_REFRESH_THRESHOLD = 50


class GiftType(str, Enum):
    """Gifts a friend can send to a tree."""

    WATER_DROP = "water_drop"
    SPARKLE = "sparkle"
    SEED = "seed"
    RIBBON = "ribbon"
    GOLDEN_FLOWER = "golden_flower"

    @property
    def buffer_days(self) -> int:
        return GIFT_BUFFER_DAYS[self]


GIFT_BUFFER_DAYS: dict[GiftType, int] = {
    GiftType.WATER_DROP: 10,
    GiftType.SPARKLE: 5,
    GiftType.SEED: 0,  # starts new trees, no buffer
    GiftType.RIBBON: 0,  # decoration only
    GiftType.GOLDEN_FLOWER: 15,
}


class HealthCategory(str, Enum):
    """Display category for a tree."""

    HEALTHY = "healthy"
    THIRSTY = "thirsty"
    DYING = "dying"
    EMPTY = "empty"  # never-started group; not a health value

    @property
    def color(self) -> str:
        return {
            HealthCategory.HEALTHY: "green",
            HealthCategory.THIRSTY: "yellow",
            HealthCategory.DYING: "red",
            HealthCategory.EMPTY: "dim",
        }[self]

    @property
    def emoji(self) -> str:
        return {
            HealthCategory.HEALTHY: "✓",
            HealthCategory.THIRSTY: "💧",
            HealthCategory.DYING: "🆘",
            HealthCategory.EMPTY: "○",
        }[self]

    @property
    def label(self) -> str:
        return {
            HealthCategory.HEALTHY: "Healthy",
            HealthCategory.THIRSTY: "Thirsty",
            HealthCategory.DYING: "Dying!",
            HealthCategory.EMPTY: "Not planted",
        }[self]


@dataclass
class Tree:
    """Garden tree for one learner and topic group."""

    learner_id: str
    group: str
    health: int = MAX_HEALTH  # cached; recomputed on read
    last_refreshed_at: datetime | None = None
    buffer_days: float = 0.0
    total_refreshes: int = 0

    @property
    def is_started(self) -> bool:
        return self.last_refreshed_at is not None


# =============================================================================
# Health calculation
# =============================================================================


def days_since_refresh(last_refreshed_at: datetime | None, now: datetime | None = None) -> int:
    """Whole days since the last refresh; 0 for new trees and future timestamps."""
    if last_refreshed_at is None:
        return 0
    now = ensure_aware(now or utcnow())
    elapsed = (now - ensure_aware(last_refreshed_at)).total_seconds() / 86400.0
    return max(0, math.floor(elapsed))


def health_for_days(effective_days: float) -> int:
    """Health for a number of effective (post-buffer) days."""
    for max_days, health in HEALTH_THRESHOLDS:
        if effective_days <= max_days:
            return health
    return MIN_HEALTH


def calculate_health(
    last_refreshed_at: datetime | None,
    buffer_days: float = 0.0,
    now: datetime | None = None,
) -> int:
    """
    Calculate tree health.

    Args:
        last_refreshed_at: Last qualifying review for the group
        buffer_days: Unconsumed gift buffer
        now: Current time (defaults to UTC now)

    Returns:
        Health percentage (5-100), non-increasing in elapsed time
    """
    days = days_since_refresh(last_refreshed_at, now)
    effective = max(0.0, days - max(0.0, buffer_days))
    return health_for_days(effective)


def health_category(health: int) -> HealthCategory:
    if health >= HEALTHY_THRESHOLD:
        return HealthCategory.HEALTHY
    elif health >= DYING_THRESHOLD:
        return HealthCategory.THIRSTY
    return HealthCategory.DYING


def tree_health(tree: Tree, now: datetime | None = None) -> int:
    return calculate_health(tree.last_refreshed_at, tree.buffer_days, now)


def tree_category(tree: Tree, now: datetime | None = None) -> HealthCategory:
    """Category for a tree; EMPTY only for a never-started tree."""
    if not tree.is_started:
        return HealthCategory.EMPTY
    return health_category(tree_health(tree, now))


def days_until_next_decay(tree: Tree, now: datetime | None = None) -> int | None:
    """Days until health drops to the next tier (None at minimum health)."""
    days = days_since_refresh(tree.last_refreshed_at, now)
    effective = max(0.0, days - tree.buffer_days)
    for max_days, _health in HEALTH_THRESHOLDS:
        if effective <= max_days:
            return max(0, math.floor(max_days - effective) + 1)
    return None


# =============================================================================
# State transitions
# =============================================================================


def refresh_tree(tree: Tree, now: datetime | None = None) -> Tree:
    """
    Reset a tree to full health after a qualifying review.

    Elapsed time is cleared. Buffer days covering the elapsed gap are
    consumed; the rest persist.
    """
    now = ensure_aware(now or utcnow())
    elapsed = days_since_refresh(tree.last_refreshed_at, now)
    consumed = min(tree.buffer_days, float(elapsed))
    if consumed:
        logger.debug(f"Tree {tree.learner_id}/{tree.group}: consumed {consumed:g} buffer days")
    return dataclasses.replace(
        tree,
        health=MAX_HEALTH,
        last_refreshed_at=now,
        buffer_days=tree.buffer_days - consumed,
        total_refreshes=tree.total_refreshes + 1,
    )


def apply_gift(tree: Tree, gift: GiftType | str) -> Tree:
    """Add a gift's buffer days to a tree. Health is not touched."""
    gift = GiftType(gift)
    if gift.buffer_days == 0:
        logger.debug(f"Gift {gift.value} provides no buffer days")
        return tree
    return dataclasses.replace(tree, buffer_days=tree.buffer_days + gift.buffer_days)


def update_all_tree_health(trees: list[Tree], now: datetime | None = None) -> list[Tree]:
    """Recompute cached health; returns only the trees whose value changed."""
    changed = []
    for tree in trees:
        health = tree_health(tree, now)
        if health != tree.health:
            changed.append(dataclasses.replace(tree, health=health))
    return changed


# =============================================================================
# Display helpers
# =============================================================================


def health_indicator(health: int) -> str:
    """Short display label for a health value, e.g. "💧 Thirsty"."""
    category = health_category(health)
    return f"{category.emoji} {category.label}"


def needs_attention(tree: Tree, now: datetime | None = None) -> bool:
    return tree.is_started and tree_health(tree, now) < MAX_HEALTH


def trees_needing_refresh(trees: list[Tree], now: datetime | None = None) -> list[Tree]:
    return [t for t in trees if t.is_started and tree_health(t, now) < NEEDS_REFRESH_THRESHOLD]


def health_description(tree: Tree, now: datetime | None = None) -> str:
    """Human-readable description of a tree's health."""
    if not tree.is_started:
        return "This tree hasn't been planted yet. Start a lesson to grow it!"

    health = tree_health(tree, now)
    days = days_since_refresh(tree.last_refreshed_at, now)
    buffer = math.floor(tree.buffer_days)

    if health >= MAX_HEALTH:
        if buffer > 0:
            return f"This tree is in perfect health with {buffer} days of gift protection!"
        return "This tree is in perfect health!"
    if health >= HEALTHY_THRESHOLD:
        if buffer > 0:
            return f"This tree is doing well with {buffer} days of gift protection remaining."
        return "This tree is doing well."
    if buffer > 0:
        return f"This tree has {buffer} days of protection from gifts. After that, it needs practice!"
    if days == 1:
        return "This tree was last refreshed yesterday. It's doing fine!"
    if health >= DYING_THRESHOLD:
        return "This tree needs some attention. Practice a lesson to refresh it!"
    return "This tree is in critical condition! Practice now to save it!"
