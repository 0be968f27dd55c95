"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from datetime import UTC, datetime
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.content.models import ContentUnit, UnitType  # noqa: E402
from src.content.pool import ContentPool  # noqa: E402
from src.core.activity import ActivityResult, ActivityType  # noqa: E402
from src.db.store import InMemoryProgressStore  # noqa: E402
from src.learner.profile import LearnerProfile  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (engine + store)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        path = str(item.fspath)
        if "unit" in path:
            item.add_marker(pytest.mark.unit)
        elif "integration" in path:
            item.add_marker(pytest.mark.integration)
        elif "smoke" in path:
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture(scope="session")
def deck_path():
    """Path to the bundled sample deck."""
    return PROJECT_ROOT / "data" / "sample_deck.json"


@pytest.fixture
def now():
    """A fixed, timezone-aware reference time."""
    return datetime(2024, 3, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def make_unit():
    """Factory for content units with sensible defaults."""

    def _make(unit_id: str, difficulty: float = 2.0, topics=("food",), **kwargs) -> ContentUnit:
        return ContentUnit(
            id=unit_id,
            text=kwargs.pop("text", f"text {unit_id}"),
            translation=kwargs.pop("translation", f"translation {unit_id}"),
            unit_type=kwargs.pop("unit_type", UnitType.POLYWORD),
            difficulty=difficulty,
            topics=tuple(topics),
            **kwargs,
        )

    return _make


@pytest.fixture
def sample_units(make_unit):
    """A small pool spread over difficulties and topics."""
    return [
        make_unit("u-easy-1", 1.0, ("greetings",), frequency_rank=1),
        make_unit("u-easy-2", 1.5, ("greetings",), frequency_rank=2),
        make_unit("u-mid-1", 2.0, ("food",), frequency_rank=10),
        make_unit("u-mid-2", 2.0, ("travel",), frequency_rank=20),
        make_unit("u-mid-3", 2.0, ("food",), frequency_rank=30),
        make_unit("u-mid-4", 2.5, ("travel",), frequency_rank=40),
        make_unit("u-mid-5", 2.0, ("work",), frequency_rank=50),
        make_unit("u-mid-6", 2.0, ("work",), frequency_rank=60),
        make_unit("u-hard-1", 4.0, ("work",), frequency_rank=500),
        make_unit("u-hard-2", 5.0, ("travel",), frequency_rank=900),
    ]


@pytest.fixture
def pool(sample_units):
    """Content pool over the sample units."""
    return ContentPool(sample_units)


@pytest.fixture
def profile(now):
    """A brand-new learner profile."""
    return LearnerProfile.new("learner-1", now)


@pytest.fixture
def store():
    """Empty in-memory progress store."""
    return InMemoryProgressStore()


@pytest.fixture
def make_result(now):
    """Factory for activity results."""

    def _make(unit_ids, correct: bool = True, **kwargs) -> ActivityResult:
        if isinstance(unit_ids, str):
            unit_ids = [unit_ids]
        kwargs.setdefault("timestamp", now)
        kwargs.setdefault("activity_type", ActivityType.MULTIPLE_CHOICE)
        return ActivityResult(unit_ids=list(unit_ids), correct=correct, **kwargs)

    return _make
