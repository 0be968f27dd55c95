"""
Unit tests for the learner profile aggregator.
"""

from datetime import timedelta

import pytest

from src.core.activity import ActivityType
from src.learner.aggregator import LearnerProfileAggregator, SessionStats
from src.srs.models import UnitProgress, UnitStatus


@pytest.fixture
def aggregator():
    return LearnerProfileAggregator()


def _progress(unit_id: str, status: UnitStatus) -> UnitProgress:
    return UnitProgress(learner_id="learner-1", unit_id=unit_id, status=status)


class TestRecordInteraction:
    def test_confidence_moves_toward_outcome(self, aggregator, profile, make_result):
        aggregator.record_interaction(profile, make_result("u1"))
        assert profile.average_confidence == pytest.approx(0.55)

        aggregator.record_interaction(profile, make_result("u1", correct=False))
        assert profile.average_confidence == pytest.approx(0.495)

    def test_help_counts_as_partial_success(self, aggregator, profile, make_result):
        aggregator.record_interaction(profile, make_result("u1", used_help=True))
        assert profile.average_confidence == pytest.approx(0.52)

    def test_rates_over_recent_outcomes(self, aggregator, profile, make_result):
        aggregator.record_interaction(profile, make_result("u1"))
        aggregator.record_interaction(profile, make_result("u1", correct=False, used_help=True))
        assert profile.wrong_answer_rate == pytest.approx(0.5)
        assert profile.help_request_rate == pytest.approx(0.5)

    def test_rate_window_is_trailing(self, profile, make_result):
        aggregator = LearnerProfileAggregator(rate_window=3)
        for _ in range(3):
            aggregator.record_interaction(profile, make_result("u1", correct=False))
        for _ in range(3):
            aggregator.record_interaction(profile, make_result("u1"))
        assert len(profile.recent_outcomes) == 3
        assert profile.wrong_answer_rate == 0.0

    def test_activity_type_stats(self, aggregator, profile, make_result):
        aggregator.record_interaction(profile, make_result("u1", activity_type=ActivityType.MATCHING))
        aggregator.record_interaction(
            profile, make_result("u1", activity_type=ActivityType.MATCHING, attempts=2)
        )
        stats = profile.activity_stats[ActivityType.MATCHING]
        assert stats.attempts == 2
        assert stats.first_try_correct == 1
        assert stats.accuracy == pytest.approx(0.5)

    def test_snapshots_are_bounded(self, aggregator, profile, make_result):
        for _ in range(40):
            aggregator.record_interaction(profile, make_result("u1"))
        assert len(profile.confidence_snapshots) == 30


class TestStatusCounts:
    def test_counts_and_level(self, aggregator, profile, now):
        progresses = [_progress(f"a{i}", UnitStatus.ACQUIRED) for i in range(60)]
        progresses += [_progress("l1", UnitStatus.LEARNING), _progress("f1", UnitStatus.FRAGILE)]

        aggregator.recompute_status_counts(profile, progresses, now)

        assert profile.status_counts[UnitStatus.ACQUIRED] == 60
        assert profile.status_counts[UnitStatus.LEARNING] == 1
        assert profile.status_counts[UnitStatus.FRAGILE] == 1
        assert profile.status_counts[UnitStatus.NEW] == 0
        assert profile.level == 11

    def test_level_history_only_on_large_moves(self, aggregator, profile, now):
        aggregator.recompute_status_counts(profile, [], now)
        assert len(profile.level_history) == 1

        small = [_progress(f"a{i}", UnitStatus.ACQUIRED) for i in range(20)]
        aggregator.recompute_status_counts(profile, small, now)
        assert len(profile.level_history) == 1

        large = [_progress(f"a{i}", UnitStatus.ACQUIRED) for i in range(30)]
        aggregator.recompute_status_counts(profile, large, now)
        assert profile.level_history[-1][1] == 6
        assert len(profile.level_history) == 2


class TestSessions:
    def test_record_session_averages(self, aggregator, profile, now):
        aggregator.record_session(profile, SessionStats(10, 5, 4, 1), now)
        aggregator.record_session(profile, SessionStats(20, 5, 4, 1), now)
        assert profile.total_sessions == 2
        assert profile.average_session_minutes == pytest.approx(15)
        assert profile.last_session_at == now


class TestFilterRisk:
    def test_risk_from_recent_results(self, aggregator, profile, make_result, now):
        recent = [make_result("u1"), make_result("u1", correct=False)] * 2
        assert aggregator.calculate_filter_risk(profile, recent, now) == pytest.approx(0.25)

    def test_recent_struggle_adds_risk(self, aggregator, profile, now):
        aggregator.record_struggle(profile, now)
        assert profile.filter_risk == pytest.approx(0.15)
        assert profile.last_struggle_at == now
        assert aggregator.calculate_filter_risk(profile, [], now) == pytest.approx(0.3)

    def test_struggle_fades_after_three_days(self, aggregator, profile, now):
        aggregator.record_struggle(profile, now - timedelta(days=4))
        assert aggregator.calculate_filter_risk(profile, [], now) == pytest.approx(0.1)

    def test_update_blends_session_risk(self, aggregator, profile):
        profile.filter_risk = 0.5
        aggregator.update_filter_risk(profile, 1.0)
        assert profile.filter_risk == pytest.approx(0.6)

    def test_decay_while_away(self, aggregator, profile, now):
        profile.filter_risk = 0.5
        profile.last_session_at = now - timedelta(days=2)
        aggregator.decay_filter_risk(profile, now)
        assert profile.filter_risk == pytest.approx(0.405)

    def test_decay_is_capped(self, aggregator, profile, now):
        profile.filter_risk = 1.0
        profile.last_session_at = now - timedelta(days=60)
        aggregator.decay_filter_risk(profile, now)
        assert profile.filter_risk == pytest.approx(0.9**10)

    def test_repeated_decay_counts_each_day_once(self, aggregator, profile, now):
        profile.filter_risk = 0.5
        profile.last_session_at = now - timedelta(days=5)
        for _ in range(3):
            aggregator.decay_filter_risk(profile, now)
        assert profile.filter_risk == pytest.approx(0.5 * 0.9**5)
        assert profile.risk_decayed_at == now

        aggregator.decay_filter_risk(profile, now + timedelta(days=1, hours=6))
        assert profile.filter_risk == pytest.approx(0.5 * 0.9**6)
        assert profile.risk_decayed_at == now + timedelta(days=1)

    def test_no_decay_without_previous_session(self, aggregator, profile, now):
        profile.filter_risk = 0.5
        aggregator.decay_filter_risk(profile, now)
        assert profile.filter_risk == 0.5


class TestInterests:
    def test_explicit_interests_are_deduplicated(self, aggregator, profile):
        aggregator.add_explicit_interests(profile, ["food", "travel", "food", ""])
        assert profile.explicit_interests == ["food", "travel"]

    def test_detected_interest_keeps_strongest(self, aggregator, profile, now):
        aggregator.record_detected_interest(profile, "music", 0.4, now)
        aggregator.record_detected_interest(profile, "music", 0.8, now)
        aggregator.record_detected_interest(profile, "music", 0.2, now)
        assert len(profile.detected_interests) == 1
        assert profile.detected_interests[0].strength == pytest.approx(0.8)

    def test_combined_interests(self, aggregator, profile, now):
        aggregator.add_explicit_interests(profile, ["food"])
        aggregator.record_detected_interest(profile, "music", 0.7, now)
        aggregator.record_detected_interest(profile, "sport", 0.3, now)
        assert aggregator.combined_interests(profile) == ["food", "music"]
