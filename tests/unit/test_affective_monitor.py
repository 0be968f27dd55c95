"""
Unit tests for the affective-risk monitor.

Scenarios are built from real results and signals so the risk score can be
traced component by component.
"""

import random
from datetime import timedelta

import pytest

from src.adaptive.affective_monitor import (
    AffectiveRiskMonitor,
    MonitorConfig,
    calculate_risk_score,
    detect_signals,
    has_struggle_pair,
    is_risk_rising,
    requires_immediate_action,
    struggling_topic,
    wrong_streak,
)
from src.adaptive.models import ActionKind, AdaptationAction, Severity, Signal, SignalKind


@pytest.fixture
def monitor():
    return AffectiveRiskMonitor(MonitorConfig(cooldown_seconds=60), rng=random.Random(1))


def _session(make_result, now, outcomes, topic="food"):
    """Build (results, signals) from (correct, used_help) pairs spaced 20s apart."""
    results, signals = [], []
    for i, (correct, used_help) in enumerate(outcomes):
        result = make_result("u-mid-1", correct=correct, used_help=used_help, timestamp=now + timedelta(seconds=20 * i))
        results.append(result)
        signals.extend(detect_signals(result, None, topic))
    return results, signals


def _fast_signals(now, count=3):
    return [
        Signal(SignalKind.FAST, interaction_id=f"i{i}", timestamp=now, value=1000.0)
        for i in range(count)
    ]


@pytest.fixture
def anxious_profile(profile):
    profile.average_confidence = 0.0
    profile.wrong_answer_rate = 1.0
    profile.help_request_rate = 1.0
    return profile


class TestSignals:
    def test_wrong_and_help(self, make_result):
        signals = detect_signals(make_result("u1", correct=False, used_help=True), None, "food")
        assert [s.kind for s in signals] == [SignalKind.WRONG, SignalKind.HELP]
        assert signals[0].topic == "food"

    def test_slow_and_fast_need_an_average(self, make_result):
        slow = make_result("u1", response_time_ms=20000)
        fast = make_result("u1", response_time_ms=1000)
        assert detect_signals(slow, None) == []
        assert [s.kind for s in detect_signals(slow, 5000)] == [SignalKind.SLOW]
        assert [s.kind for s in detect_signals(fast, 5000)] == [SignalKind.FAST]

    def test_wrong_answers_are_never_fast(self, make_result):
        result = make_result("u1", correct=False, response_time_ms=1000)
        assert SignalKind.FAST not in [s.kind for s in detect_signals(result, 5000)]

    def test_wrong_streak_from_results_and_signals(self, make_result, now):
        results, signals = _session(make_result, now, [(True, False), (False, False), (False, False)])
        assert wrong_streak(signals, results) == 2
        assert wrong_streak(signals) == 2

    def test_struggle_pair_respects_window(self, make_result, now):
        results, signals = _session(make_result, now, [(False, True), (False, True)])
        assert has_struggle_pair(signals, results, window_seconds=120)
        assert has_struggle_pair(signals, window_seconds=120)
        assert not has_struggle_pair(signals, results, window_seconds=10)

    def test_struggling_topic(self, make_result, now):
        _, signals = _session(make_result, now, [(False, False)] * 3, topic="travel")
        assert struggling_topic(signals) == "travel"


class TestRiskScore:
    def test_fresh_learner_without_signals_is_zero(self, profile, now):
        assert calculate_risk_score([], profile, now) == 0.0

    def test_score_is_bounded(self, anxious_profile, make_result, now):
        results, signals = _session(make_result, now, [(False, True)] * 8)
        score = calculate_risk_score(signals, anxious_profile, now, results)
        assert 0.0 <= score <= 1.0

    def test_wrong_streak_raises_risk(self, profile, make_result, now):
        results, signals = _session(make_result, now, [(False, False)] * 3)
        assert calculate_risk_score(signals, profile, now, results) == pytest.approx(0.25)
        assert is_risk_rising(signals, results)

    def test_inactivity_adds_risk(self, profile, now):
        profile.last_session_at = now - timedelta(days=5)
        assert calculate_risk_score([], profile, now) == pytest.approx(0.04)


class TestDirectives:
    def test_high_risk_suggests_break(self, monitor, anxious_profile, make_result, now):
        results, signals = _session(make_result, now, [(False, True)] * 3)
        action = monitor.evaluate(signals, anxious_profile, 2.0, now, results)
        assert action.kind == ActionKind.SUGGEST_BREAK
        assert action.severity == Severity.CRITICAL
        assert requires_immediate_action(action)
        assert action.message

    def test_rising_risk_simplifies(self, monitor, anxious_profile, make_result, now):
        results, signals = _session(make_result, now, [(False, False)] * 3)
        action = monitor.evaluate(signals, anxious_profile, 2.0, now, results)
        assert action.kind == ActionKind.SIMPLIFY
        assert action.new_level == pytest.approx(1.5)
        assert action.changes_difficulty

    def test_simplify_never_goes_below_one(self, monitor, anxious_profile, make_result, now):
        results, signals = _session(make_result, now, [(False, False)] * 3)
        action = monitor.evaluate(signals, anxious_profile, 1.2, now, results)
        assert action.new_level == pytest.approx(1.0)

    def test_repeated_misses_on_one_topic_change_topic(self, monitor, anxious_profile, make_result, now):
        results, signals = _session(make_result, now, [(False, False)] * 3, topic="food")
        action = monitor.evaluate(
            signals, anxious_profile, 2.0, now, results, available_topics=["food", "travel"]
        )
        assert action.kind == ActionKind.CHANGE_TOPIC
        assert action.topic == "food"
        assert action.reason

    def test_no_topic_change_without_an_alternative(self, monitor, anxious_profile, make_result, now):
        results, signals = _session(make_result, now, [(False, False)] * 3, topic="food")
        action = monitor.evaluate(signals, anxious_profile, 2.0, now, results, available_topics=["food"])
        assert action.kind == ActionKind.SIMPLIFY

    def test_elevated_risk_encourages(self, monitor, anxious_profile, make_result, now):
        anxious_profile.last_session_at = now - timedelta(days=20)
        results, signals = _session(make_result, now, [(False, True)])
        action = monitor.evaluate(signals, anxious_profile, 2.0, now, results)
        assert action.kind == ActionKind.ENCOURAGE
        assert action.severity == Severity.INFO

    def test_fast_answers_challenge(self, monitor, profile, now):
        action = monitor.evaluate(_fast_signals(now), profile, 2.0, now)
        assert action.kind == ActionKind.CHALLENGE
        assert action.new_level == pytest.approx(2.5)

    def test_challenge_never_exceeds_five(self, monitor, profile, now):
        action = monitor.evaluate(_fast_signals(now), profile, 4.8, now)
        assert action.new_level == pytest.approx(5.0)

    def test_clean_streak_encourages(self, monitor, profile, make_result, now):
        signals = []
        for i in range(3):
            result = make_result("u1", response_time_ms=20000, timestamp=now + timedelta(seconds=i))
            signals.extend(detect_signals(result, 5000))
        action = monitor.evaluate(signals, profile, 2.0, now)
        assert action.kind == ActionKind.ENCOURAGE
        assert action.severity == Severity.SUCCESS

    def test_quiet_session_is_noop(self, monitor, profile, now):
        assert monitor.evaluate([], profile, 2.0, now).is_none


class TestCooldown:
    def test_opposite_directive_inside_window_is_downgraded(self, monitor, profile, now):
        history = [(now - timedelta(seconds=30), AdaptationAction(ActionKind.SIMPLIFY, new_level=1.5))]
        action = monitor.evaluate(_fast_signals(now), profile, 1.5, now, history=history)
        assert action.kind == ActionKind.ENCOURAGE
        assert action.new_level is None

    def test_opposite_directive_after_window_passes(self, monitor, profile, now):
        history = [(now - timedelta(seconds=120), AdaptationAction(ActionKind.SIMPLIFY, new_level=1.5))]
        action = monitor.evaluate(_fast_signals(now), profile, 1.5, now, history=history)
        assert action.kind == ActionKind.CHALLENGE

    def test_same_direction_is_not_throttled(self, monitor, profile, now):
        history = [(now - timedelta(seconds=10), AdaptationAction(ActionKind.CHALLENGE, new_level=2.0))]
        action = monitor.evaluate(_fast_signals(now), profile, 2.0, now, history=history)
        assert action.kind == ActionKind.CHALLENGE


class TestFailureIsolation:
    def test_internal_error_degrades_to_noop(self, monitor, profile, now):
        action = monitor.evaluate([object()], profile, 2.0, now)
        assert action.is_none
