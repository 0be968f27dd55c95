"""
Content Unit Model.

A content unit ("lexical chunk") is an atomic teachable phrase or pattern.
Units are authored externally and are read-only to the engine.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from src.core.exceptions import InvalidContentError
from src.core.levels import MAX_DIFFICULTY, MIN_DIFFICULTY


class UnitType(str, Enum):
    """Kind of lexical chunk."""

    POLYWORD = "polyword"  # Fixed phrase: "by the way"
    COLLOCATION = "collocation"  # Frequent pairing: "make a decision"
    UTTERANCE = "utterance"  # Full sentence: "How are you?"
    FRAME = "frame"  # Pattern with slots: "I'd like a ___"


@dataclass(frozen=True)
class ContentUnit:
    """
    An immutable content record.

    The first topic is the unit's topic group, which is the garden tree
    the unit waters when practiced.
    """

    id: str
    text: str
    translation: str
    unit_type: UnitType = UnitType.POLYWORD
    difficulty: float = 1.0
    base_interval: int = 1
    frequency_rank: int = 1000
    topics: tuple[str, ...] = ()
    slots: tuple[str, ...] = ()
    notes: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self) -> None:
        if not self.id:
            raise InvalidContentError("Content unit id must not be empty")
        if isinstance(self.difficulty, bool) or not isinstance(self.difficulty, (int, float)):
            raise InvalidContentError(f"Unit {self.id}: difficulty must be a number")
        if math.isnan(self.difficulty) or not MIN_DIFFICULTY <= self.difficulty <= MAX_DIFFICULTY:
            raise InvalidContentError(
                f"Unit {self.id}: difficulty {self.difficulty} outside "
                f"{MIN_DIFFICULTY:g}-{MAX_DIFFICULTY:g}"
            )
        if self.base_interval < 1:
            raise InvalidContentError(f"Unit {self.id}: base_interval must be >= 1")

    @property
    def topic_group(self) -> str:
        """Garden group this unit belongs to."""
        return self.topics[0] if self.topics else "general"

    @property
    def is_frame(self) -> bool:
        return self.unit_type == UnitType.FRAME

    @classmethod
    def from_dict(cls, data: dict) -> ContentUnit:
        """
        Create a ContentUnit from an authored JSON record.

        Args:
            data: Dictionary from a content deck file

        Returns:
            ContentUnit instance

        Raises:
            InvalidContentError: If required fields are missing or malformed
        """
        if not isinstance(data, dict):
            raise InvalidContentError(f"Unit record must be an object, got {type(data).__name__}")

        try:
            unit_type = UnitType(data.get("type", data.get("unit_type", "polyword")))
        except ValueError as e:
            raise InvalidContentError(f"Unit {data.get('id')}: {e}") from e

        try:
            return cls(
                id=str(data["id"]),
                text=data["text"],
                translation=data.get("translation", ""),
                unit_type=unit_type,
                difficulty=data.get("difficulty", 1.0),
                base_interval=int(data.get("base_interval", 1)),
                frequency_rank=int(data.get("frequency_rank", 1000)),
                topics=tuple(data.get("topics", [])),
                slots=tuple(data.get("slots", [])),
                notes=data.get("notes"),
                metadata=data.get("metadata", {}),
            )
        except (KeyError, TypeError, ValueError) as e:
            if isinstance(e, InvalidContentError):
                raise
            raise InvalidContentError(f"Malformed content unit {data.get('id')}: {e}") from e

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "translation": self.translation,
            "type": self.unit_type.value,
            "difficulty": self.difficulty,
            "base_interval": self.base_interval,
            "frequency_rank": self.frequency_rank,
            "topics": list(self.topics),
            "slots": list(self.slots),
            "notes": self.notes,
        }
