"""
Progress Store.

Key-value-by-id persistence boundary for progression records. The engine
only creates, reads and updates; it never deletes.

Implementations:
- InMemoryProgressStore: dict-backed, for tests and offline runs
- SqlProgressStore (src.db.sql_store): SQLAlchemy-backed
"""

from __future__ import annotations

import copy
from typing import Protocol

from src.garden.tree_health import Tree
from src.learner.profile import LearnerProfile
from src.srs.models import UnitProgress


class ProgressStore(Protocol):
    """Read-modify-write store for per-learner records."""

    def get_progress(self, learner_id: str, unit_id: str) -> UnitProgress | None: ...

    def save_progress(self, progress: UnitProgress) -> None: ...

    def list_progress(self, learner_id: str) -> list[UnitProgress]: ...

    def get_profile(self, learner_id: str) -> LearnerProfile | None: ...

    def save_profile(self, profile: LearnerProfile) -> None: ...

    def get_tree(self, learner_id: str, group: str) -> Tree | None: ...

    def save_tree(self, tree: Tree) -> None: ...

    def list_trees(self, learner_id: str) -> list[Tree]: ...


class InMemoryProgressStore:
    """
    Dict-backed store.

    Records are copied on the way in and out so callers never share state
    with the store, matching the semantics of a real database.
    """

    def __init__(self):
        self._progress: dict[tuple[str, str], UnitProgress] = {}
        self._profiles: dict[str, LearnerProfile] = {}
        self._trees: dict[tuple[str, str], Tree] = {}

    def get_progress(self, learner_id: str, unit_id: str) -> UnitProgress | None:
        record = self._progress.get((learner_id, unit_id))
        return copy.deepcopy(record) if record else None

    def save_progress(self, progress: UnitProgress) -> None:
        self._progress[(progress.learner_id, progress.unit_id)] = copy.deepcopy(progress)

    def list_progress(self, learner_id: str) -> list[UnitProgress]:
        return [
            copy.deepcopy(p)
            for (owner, _unit_id), p in sorted(self._progress.items())
            if owner == learner_id
        ]

    def get_profile(self, learner_id: str) -> LearnerProfile | None:
        profile = self._profiles.get(learner_id)
        return copy.deepcopy(profile) if profile else None

    def save_profile(self, profile: LearnerProfile) -> None:
        self._profiles[profile.learner_id] = copy.deepcopy(profile)

    def get_tree(self, learner_id: str, group: str) -> Tree | None:
        tree = self._trees.get((learner_id, group))
        return copy.deepcopy(tree) if tree else None

    def save_tree(self, tree: Tree) -> None:
        self._trees[(tree.learner_id, tree.group)] = copy.deepcopy(tree)

    def list_trees(self, learner_id: str) -> list[Tree]:
        return [
            copy.deepcopy(t)
            for (owner, _group), t in sorted(self._trees.items())
            if owner == learner_id
        ]
