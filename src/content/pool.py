"""
Content Pool: read-only collection of authored content units.

Loads units from JSON decks and serves them paged and filtered by topic
and difficulty range. The engine never writes to the pool.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator
from pathlib import Path

from loguru import logger

from src.content.models import ContentUnit
from src.core.exceptions import ContentNotFoundError, InvalidContentError
from src.core.levels import MAX_DIFFICULTY, MIN_DIFFICULTY


class ContentPool:
    """
    In-memory index over content units.

    Features:
    - Lookup by id (fails fast on unknown ids)
    - Filtering by topic and difficulty range
    - Offset/limit paging
    """

    def __init__(self, units: Iterable[ContentUnit] = ()):
        self._units: dict[str, ContentUnit] = {}  # id -> unit
        self._by_topic: dict[str, list[str]] = {}  # topic -> [unit_ids]
        self._rejected: int = 0
        for unit in units:
            self.add(unit)

    def __len__(self) -> int:
        return len(self._units)

    def __contains__(self, unit_id: object) -> bool:
        return unit_id in self._units

    def __iter__(self) -> Iterator[ContentUnit]:
        return iter(self._units.values())

    @property
    def topics(self) -> list[str]:
        return sorted(self._by_topic.keys())

    @property
    def rejected_count(self) -> int:
        """Units skipped as malformed by the last non-strict load."""
        return self._rejected

    def add(self, unit: ContentUnit) -> None:
        if unit.id in self._units:
            logger.warning(f"Duplicate content unit {unit.id}, keeping the latest")
            self._unindex(unit.id)
        self._units[unit.id] = unit
        for topic in unit.topics:
            self._by_topic.setdefault(topic, []).append(unit.id)

    def _unindex(self, unit_id: str) -> None:
        for ids in self._by_topic.values():
            if unit_id in ids:
                ids.remove(unit_id)

    def get(self, unit_id: str) -> ContentUnit:
        """
        Get a unit by id.

        Raises:
            ContentNotFoundError: If the id is not in the pool
        """
        try:
            return self._units[unit_id]
        except KeyError:
            raise ContentNotFoundError(unit_id) from None

    def get_many(self, unit_ids: Iterable[str]) -> list[ContentUnit]:
        return [self.get(unit_id) for unit_id in unit_ids]

    def find(
        self,
        topics: Iterable[str] | None = None,
        min_difficulty: float = MIN_DIFFICULTY,
        max_difficulty: float = MAX_DIFFICULTY,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[ContentUnit]:
        """
        Query units by topic and difficulty range.

        Results are ordered by frequency rank, then id, so paging is stable.

        Args:
            topics: Only units tagged with any of these topics (None for all)
            min_difficulty: Inclusive lower bound
            max_difficulty: Inclusive upper bound
            offset: Number of matching units to skip
            limit: Maximum units to return (None for all)

        Returns:
            Matching units
        """
        topic_set = set(topics) if topics else None
        if topic_set:
            candidate_ids = {uid for t in topic_set for uid in self._by_topic.get(t, [])}
            candidates = [self._units[uid] for uid in candidate_ids]
        else:
            candidates = list(self._units.values())

        matches = [
            u for u in candidates if min_difficulty <= u.difficulty <= max_difficulty
        ]
        matches.sort(key=lambda u: (u.frequency_rank, u.id))

        start = max(0, offset)
        end = None if limit is None else start + max(0, limit)
        return matches[start:end]

    # =========================================================================
    # Loading
    # =========================================================================

    @classmethod
    def load_json(cls, path: Path | str, strict: bool = False) -> ContentPool:
        """
        Load a pool from a JSON deck.

        The file holds either a list of unit records or {"units": [...]}.

        Args:
            path: Path to the deck file
            strict: Raise on the first malformed unit instead of skipping it

        Returns:
            Loaded ContentPool

        Raises:
            InvalidContentError: In strict mode, for a malformed unit
        """
        path = Path(path)
        with open(path, encoding="utf-8") as f:
            data = json.load(f)

        records = data if isinstance(data, list) else data.get("units", [])
        pool = cls()

        for record in records:
            try:
                pool.add(ContentUnit.from_dict(record))
            except InvalidContentError as e:
                if strict:
                    raise
                logger.warning(f"Skipping invalid unit in {path.name}: {e}")
                pool._rejected += 1

        logger.info(
            f"ContentPool loaded: {len(pool)} units from {path.name} "
            f"({pool._rejected} rejected)"
        )
        return pool
