"""
Unit tests for the chunk scheduler (SM-2 derivative).

Covers status determination, quality derivation, interval growth, ease
bounds, idempotent updates and read-time fragile decay.
"""

from datetime import timedelta

import pytest

from src.core.exceptions import ContentNotFoundError
from src.srs.models import UnitProgress, UnitStatus, calculate_confidence
from src.srs.scheduler import ChunkScheduler, SchedulerConfig, determine_status, update_ease


@pytest.fixture
def scheduler(pool):
    return ChunkScheduler(pool)


class TestDetermineStatus:
    """Status is a pure function of SRS state."""

    def test_unreviewed_is_new(self):
        assert determine_status(0, 2.5, 0, 1) == UnitStatus.NEW

    def test_seen_but_failed_is_learning(self):
        assert determine_status(0, 2.3, 0, 1, total_encounters=1) == UnitStatus.LEARNING

    def test_low_ease_is_learning_even_with_repetitions(self):
        assert determine_status(5, 1.4, 0, 10) == UnitStatus.LEARNING

    def test_overdue_acquired_unit_is_fragile(self):
        assert determine_status(5, 2.2, 40, 10) == UnitStatus.FRAGILE

    def test_exactly_twice_interval_is_not_fragile(self):
        assert determine_status(5, 2.2, 20, 10) == UnitStatus.ACQUIRED

    def test_fewer_than_three_repetitions_is_learning(self):
        assert determine_status(2, 2.5, 0, 3) == UnitStatus.LEARNING

    def test_three_repetitions_is_acquired(self):
        assert determine_status(3, 2.5, 1, 8) == UnitStatus.ACQUIRED


class TestQuality:
    @pytest.mark.parametrize(
        "correct,used_help,attempts,ms,expected",
        [
            (True, False, 1, 2000, 5),
            (True, False, 1, 8000, 4),
            (True, False, 1, 0, 4),
            (True, False, 1, 20000, 3),
            (True, True, 1, 2000, 3),
            (True, False, 2, 2000, 3),
            (False, False, 1, 2000, 2),
            (False, False, 1, 8000, 1),
            (False, False, 1, 0, 1),
            (False, False, 1, 30000, 0),
        ],
    )
    def test_derive_quality(self, scheduler, correct, used_help, attempts, ms, expected):
        assert scheduler.derive_quality(correct, used_help, attempts, ms) == expected

    def test_ease_formula(self):
        assert update_ease(2.5, 4) == pytest.approx(2.5)
        assert update_ease(2.5, 3) == pytest.approx(2.36)
        assert update_ease(2.5, 5) == pytest.approx(2.6)


class TestUpdate:
    def test_first_correct_answer(self, scheduler, make_result, now):
        progress = scheduler.new_progress("learner-1", "u-mid-1")
        updated = scheduler.update(progress, make_result("u-mid-1"), now)

        assert updated.repetitions == 1
        assert updated.interval == 1
        assert updated.status == UnitStatus.LEARNING
        assert updated.next_review == now + timedelta(days=1)
        assert updated.total_encounters == 1
        assert updated.correct_first_try == 1
        assert updated.first_encountered_at == now

    def test_interval_growth(self, scheduler, make_result, now):
        progress = scheduler.new_progress("learner-1", "u-mid-1")
        intervals = []
        for day in range(3):
            progress = scheduler.update(
                progress, make_result("u-mid-1", timestamp=now + timedelta(days=day)), now + timedelta(days=day)
            )
            intervals.append(progress.interval)

        assert intervals == [1, 3, 8]
        assert progress.status == UnitStatus.ACQUIRED

    def test_no_premature_mastery(self, scheduler, make_result, now):
        progress = scheduler.new_progress("learner-1", "u-mid-1")
        for _ in range(2):
            progress = scheduler.update(progress, make_result("u-mid-1"), now)
            assert progress.status != UnitStatus.ACQUIRED

    def test_wrong_answer_resets(self, scheduler, make_result, now):
        progress = scheduler.new_progress("learner-1", "u-mid-1")
        progress = scheduler.update(progress, make_result("u-mid-1"), now)
        progress = scheduler.update(progress, make_result("u-mid-1"), now)
        progress = scheduler.update(progress, make_result("u-mid-1", correct=False, attempts=2), now)

        assert progress.repetitions == 0
        assert progress.interval == 1
        assert progress.ease_factor == pytest.approx(2.3)
        assert progress.status == UnitStatus.LEARNING
        assert progress.wrong_attempts == 2

    def test_ease_stays_in_bounds(self, scheduler, make_result, now):
        progress = scheduler.new_progress("learner-1", "u-mid-1")
        for _ in range(10):
            progress = scheduler.update(progress, make_result("u-mid-1", correct=False), now)
            assert 1.3 <= progress.ease_factor <= 2.5
        assert progress.ease_factor == pytest.approx(1.3)

        for _ in range(10):
            progress = scheduler.update(
                progress, make_result("u-mid-1", response_time_ms=1000), now
            )
            assert 1.3 <= progress.ease_factor <= 2.5

    def test_input_record_is_not_mutated(self, scheduler, make_result, now):
        progress = scheduler.new_progress("learner-1", "u-mid-1")
        scheduler.update(progress, make_result("u-mid-1"), now)
        assert progress.repetitions == 0
        assert progress.total_encounters == 0

    def test_same_interaction_is_applied_once(self, scheduler, make_result, now):
        result = make_result("u-mid-1")
        once = scheduler.update(scheduler.new_progress("learner-1", "u-mid-1"), result, now)
        twice = scheduler.update(once, result, now)
        assert twice is once
        assert twice.repetitions == 1

    def test_help_counts_and_lowers_ease(self, scheduler, make_result, now):
        progress = scheduler.new_progress("learner-1", "u-mid-1")
        updated = scheduler.update(progress, make_result("u-mid-1", used_help=True), now)
        assert updated.help_used_count == 1
        assert updated.correct_first_try == 0
        assert updated.ease_factor == pytest.approx(2.36)

    def test_unknown_unit_raises(self, scheduler, make_result, now):
        with pytest.raises(ContentNotFoundError):
            scheduler.new_progress("learner-1", "missing")

        orphan = UnitProgress(learner_id="learner-1", unit_id="missing")
        with pytest.raises(ContentNotFoundError):
            scheduler.update(orphan, make_result("missing"), now)

    def test_custom_second_interval(self, pool, make_result, now):
        scheduler = ChunkScheduler(pool, SchedulerConfig(second_interval=6))
        progress = scheduler.new_progress("learner-1", "u-mid-1")
        progress = scheduler.update(progress, make_result("u-mid-1"), now)
        progress = scheduler.update(progress, make_result("u-mid-1"), now)
        assert progress.interval == 6


class TestRefreshStatus:
    def test_unreviewed_acquired_unit_turns_fragile(self, scheduler, now):
        progress = UnitProgress(
            learner_id="learner-1",
            unit_id="u-mid-1",
            status=UnitStatus.ACQUIRED,
            repetitions=3,
            interval=8,
            total_encounters=3,
            last_encountered_at=now - timedelta(days=20),
        )
        refreshed = scheduler.refresh_status(progress, now)
        assert refreshed.status == UnitStatus.FRAGILE
        assert progress.status == UnitStatus.ACQUIRED

    def test_unchanged_status_returns_same_record(self, scheduler, now):
        progress = UnitProgress(learner_id="learner-1", unit_id="u-mid-1")
        assert scheduler.refresh_status(progress, now) is progress


class TestConfidence:
    def test_neutral_without_encounters(self):
        assert calculate_confidence(0, 0, 0) == 0.5

    def test_help_penalty(self):
        assert calculate_confidence(3, 4, 1) == pytest.approx(0.7)

    def test_help_penalty_is_capped(self):
        assert calculate_confidence(4, 4, 10) == pytest.approx(0.8)

    def test_due_only_after_being_seen(self, now):
        unseen = UnitProgress(learner_id="l", unit_id="u", next_review=now - timedelta(days=1))
        assert unseen.is_due(now) is False
