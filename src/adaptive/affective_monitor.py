"""
Affective-Risk Monitor.

Watches the stream of struggle signals from a session and emits at most one
adaptation directive per evaluation. Based on Krashen's affective filter:
anxiety and frustration block acquisition, so the monitor lowers difficulty
or offers encouragement before the learner disengages.

Risk score components (clamped to 0-1):
- Session: wrong streak, help rate, slow and fast responses, struggle pairs
- Profile: low confidence, lifetime wrong/help rates
- Engagement: days inactive beyond a threshold

Directive precedence:
1. SUGGEST_BREAK  risk > 0.8
2. CHANGE_TOPIC   rising risk, repeated misses on one topic, another topic available
3. SIMPLIFY       rising risk > 0.5
4. ENCOURAGE      risk > 0.5
5. CHALLENGE      risk < 0.3 with several fast answers
6. ENCOURAGE      risk < 0.3 on a clean streak
7. NONE

A cooldown stops opposite difficulty directives (simplify then challenge,
or the reverse) from firing back to back. It downgrades rather than blocks,
so long-run recovery still gets through once the window passes.
"""

from __future__ import annotations

import random
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta

from loguru import logger

from src.adaptive.models import ActionKind, AdaptationAction, Severity, Signal, SignalKind
from src.core.activity import ActivityResult
from src.core.clock import days_since, ensure_aware, utcnow
from src.core.levels import MAX_DIFFICULTY, MIN_DIFFICULTY
from src.learner.profile import LearnerProfile

# Thresholds for risk scoring
THRESHOLDS = {
    "wrong_streak": 3,
    "slow_multiplier": 2.0,
    "fast_multiplier": 0.5,
    "inactivity_days": 3,
    "lookback": 10,
    "break_score": 0.8,
    "high_score": 0.5,
    "low_score": 0.3,
    "challenge_fast_count": 3,
    "streak_min_signals": 3,
    "level_step": 0.5,
    "struggle_pair_boost": 0.25,
}

MESSAGES: dict[str, list[str]] = {
    "wrong_answer": [
        "That's okay! Mistakes are how we learn.",
        "Good try! You're getting closer.",
        "No worries, we'll see this one again soon.",
        "Nice effort! Every mistake teaches you something.",
    ],
    "help_used": [
        "Asking for help is smart!",
        "Great question! That's how we learn.",
        "Good thinking to ask!",
    ],
    "struggling": [
        "You're working hard, and it shows!",
        "This one is tricky. Let's break it down together.",
        "Take your time. You've got this!",
        "Finding it hard means you're learning!",
    ],
    "streak": [
        "You're on a roll!",
        "Hot streak! Keep it up!",
        "Wow, look at you go!",
    ],
    "suggest_break": [
        "You've been working hard! Let's take a short break and come back fresh.",
        "Great effort today! A quick break will help you recharge.",
        "Your brain learns better after a rest. Let's pause for a bit!",
    ],
    "simplify": [
        "Let's try something a bit easier to build confidence.",
        "How about some simpler ones first?",
        "Sometimes a step back helps us move forward!",
    ],
    "challenge": [
        "You're on fire! Ready for something harder?",
        "This looks too easy for you now. Let's level up!",
        "Great work! Want to try a tougher one?",
    ],
    "change_topic": [
        "Let's visit a different part of the garden for a while!",
        "How about we try something new and come back to this later?",
    ],
}


@dataclass
class MonitorConfig:
    """Tunable windows for the monitor."""

    cooldown_seconds: int = 60
    struggle_window_seconds: int = 120

    @classmethod
    def from_settings(cls) -> MonitorConfig:
        from config import get_settings

        settings = get_settings()
        return cls(
            cooldown_seconds=settings.monitor_cooldown_seconds,
            struggle_window_seconds=settings.monitor_struggle_window_seconds,
        )


# =============================================================================
# Signal detection
# =============================================================================


def detect_signals(
    result: ActivityResult,
    average_response_ms: float | None = None,
    topic: str | None = None,
) -> list[Signal]:
    """
    Derive affective signals from one activity result.

    Args:
        result: The completed activity
        average_response_ms: Session average latency (None disables slow/fast)
        topic: Topic group of the practiced units

    Returns:
        Signals in a fixed order: wrong, help, slow, fast
    """
    base = {
        "interaction_id": result.interaction_id,
        "timestamp": result.timestamp,
        "unit_ids": tuple(result.unit_ids),
        "topic": topic,
    }
    signals = []
    if not result.correct:
        signals.append(Signal(SignalKind.WRONG, **base))
    if result.used_help:
        signals.append(Signal(SignalKind.HELP, **base))

    if average_response_ms and result.response_time_ms > 0:
        latency = float(result.response_time_ms)
        if latency > average_response_ms * THRESHOLDS["slow_multiplier"]:
            signals.append(Signal(SignalKind.SLOW, value=latency, **base))
        elif result.correct and latency < average_response_ms * THRESHOLDS["fast_multiplier"]:
            signals.append(Signal(SignalKind.FAST, value=latency, **base))
    return signals


def quit_signal(interaction_id: str, now: datetime | None = None) -> Signal:
    return Signal(SignalKind.QUIT, interaction_id=interaction_id, timestamp=ensure_aware(now or utcnow()))


def _count(signals: Sequence[Signal], kind: SignalKind) -> int:
    return sum(1 for s in signals if s.kind == kind)


def wrong_streak(signals: Sequence[Signal], results: Sequence[ActivityResult] = ()) -> int:
    """
    Consecutive wrong interactions at the end of the session.

    Uses results when available; otherwise counts trailing interactions in
    the signal log that carry a wrong signal.
    """
    if results:
        streak = 0
        for result in reversed(results):
            if result.correct:
                break
            streak += 1
        return streak

    streak = 0
    seen: list[str] = []
    by_interaction: dict[str, set[SignalKind]] = {}
    for signal in signals:
        if signal.interaction_id not in by_interaction:
            seen.append(signal.interaction_id)
        by_interaction.setdefault(signal.interaction_id, set()).add(signal.kind)
    for interaction_id in reversed(seen):
        if SignalKind.WRONG not in by_interaction[interaction_id]:
            break
        streak += 1
    return streak


def has_struggle_pair(
    signals: Sequence[Signal],
    results: Sequence[ActivityResult] = (),
    window_seconds: int = 120,
) -> bool:
    """Two consecutive interactions both wrong with help used, close together."""
    if results:
        if len(results) < 2:
            return False
        a, b = results[-2], results[-1]
        both = all(not r.correct and r.used_help for r in (a, b))
        gap = abs((ensure_aware(b.timestamp) - ensure_aware(a.timestamp)).total_seconds())
        return both and gap <= window_seconds

    order: list[str] = []
    kinds: dict[str, set[SignalKind]] = {}
    stamps: dict[str, datetime] = {}
    for signal in signals:
        if signal.interaction_id not in kinds:
            order.append(signal.interaction_id)
            stamps[signal.interaction_id] = ensure_aware(signal.timestamp)
        kinds.setdefault(signal.interaction_id, set()).add(signal.kind)
    if len(order) < 2:
        return False
    first, second = order[-2], order[-1]
    needed = {SignalKind.WRONG, SignalKind.HELP}
    gap = abs((stamps[second] - stamps[first]).total_seconds())
    return needed <= kinds[first] and needed <= kinds[second] and gap <= window_seconds


# =============================================================================
# Risk scoring
# =============================================================================


def calculate_risk_score(
    signals: Sequence[Signal],
    profile: LearnerProfile,
    now: datetime | None = None,
    results: Sequence[ActivityResult] = (),
    struggle_window_seconds: int = 120,
) -> float:
    """
    Compute the rolling affective risk score.

    Args:
        signals: Session signal log
        profile: Learner profile
        now: Current time
        results: Session results, for exact wrong streaks and struggle pairs
        struggle_window_seconds: Max gap between a struggle pair

    Returns:
        Risk score between 0 and 1
    """
    t = THRESHOLDS
    recent = list(signals)[-t["lookback"]:]
    score = 0.0

    streak = wrong_streak(signals, results)
    if streak >= t["wrong_streak"]:
        score += 0.25
    elif streak >= 2:
        score += streak * 0.08

    if signals:
        help_rate = _count(recent, SignalKind.HELP) / len(signals)
        score += min(0.15, help_rate * 0.5)
    score += min(0.10, _count(recent, SignalKind.SLOW) * 0.03)
    score -= min(0.10, _count(recent, SignalKind.FAST) * 0.02)

    if has_struggle_pair(signals, results, struggle_window_seconds):
        score += t["struggle_pair_boost"]

    if profile.average_confidence < 0.5:
        score += (0.5 - profile.average_confidence) * 0.3
    score += profile.wrong_answer_rate * 0.10
    score += profile.help_request_rate * 0.05

    if profile.last_session_at is not None:
        inactive = days_since(profile.last_session_at, now)
        if inactive > t["inactivity_days"]:
            score += min(0.10, (inactive - t["inactivity_days"]) * 0.02)

    return max(0.0, min(1.0, score))


def is_risk_rising(signals: Sequence[Signal], results: Sequence[ActivityResult] = ()) -> bool:
    """
    Detect a rising pattern in the last 10 signals.

    Patterns: wrong streak of 3+, help+wrong, slow+wrong, quit after wrongs.
    """
    recent = list(signals)[-THRESHOLDS["lookback"]:]
    wrong = _count(recent, SignalKind.WRONG)

    if wrong_streak(signals, results) >= THRESHOLDS["wrong_streak"]:
        return True
    if _count(recent, SignalKind.HELP) >= 2 and wrong >= 2:
        return True
    if _count(recent, SignalKind.SLOW) >= 2 and wrong >= 2:
        return True
    return _count(recent, SignalKind.QUIT) > 0 and wrong >= 2


def struggling_topic(signals: Sequence[Signal]) -> str | None:
    """Topic shared by the last 3+ wrong signals, if they all agree."""
    recent_wrong = [
        s for s in list(signals)[-THRESHOLDS["lookback"]:] if s.kind == SignalKind.WRONG
    ]
    if len(recent_wrong) < THRESHOLDS["wrong_streak"]:
        return None
    topics = {s.topic for s in recent_wrong[-THRESHOLDS["wrong_streak"]:]}
    if len(topics) == 1:
        return topics.pop()
    return None


# =============================================================================
# Monitor
# =============================================================================


class AffectiveRiskMonitor:
    """
    Evaluates session signals and selects one adaptation directive.

    The monitor holds no learner state; profile, signals and directive
    history are passed in on every call.
    """

    def __init__(self, config: MonitorConfig | None = None, rng: random.Random | None = None):
        self.config = config or MonitorConfig()
        self.rng = rng or random.Random()

    def _message(self, category: str) -> str:
        return self.rng.choice(MESSAGES[category])

    def evaluate(
        self,
        signals: Sequence[Signal],
        profile: LearnerProfile,
        current_level: float,
        now: datetime | None = None,
        results: Sequence[ActivityResult] = (),
        history: Sequence[tuple[datetime, AdaptationAction]] = (),
        available_topics: Sequence[str] = (),
    ) -> AdaptationAction:
        """
        Select at most one adaptation directive.

        Any internal error degrades to a no-op so the learner's session is
        never blocked.

        Args:
            signals: Session signal log
            profile: Learner profile
            current_level: Current target difficulty (1-5)
            now: Evaluation time
            results: Session results
            history: Directives already applied this session, with timestamps
            available_topics: Topics the session could switch to

        Returns:
            AdaptationAction (NONE when nothing applies)
        """
        try:
            now = ensure_aware(now or utcnow())
            action = self._select(signals, profile, current_level, now, results, available_topics)
            return self._apply_cooldown(action, history, now)
        except Exception:  # Intentionally broad - adaptation must never halt the session
            learner = getattr(profile, "learner_id", "<unknown>")
            logger.exception(f"Affective monitor failed for {learner}; returning no-op")
            return AdaptationAction.none()

    def _select(
        self,
        signals: Sequence[Signal],
        profile: LearnerProfile,
        current_level: float,
        now: datetime,
        results: Sequence[ActivityResult],
        available_topics: Sequence[str],
    ) -> AdaptationAction:
        t = THRESHOLDS
        score = calculate_risk_score(
            signals, profile, now, results, self.config.struggle_window_seconds
        )
        rising = is_risk_rising(signals, results)
        recent = list(signals)[-t["lookback"]:]
        wrong = _count(recent, SignalKind.WRONG)
        helped = _count(recent, SignalKind.HELP)
        fast = _count(recent, SignalKind.FAST)

        logger.debug(
            f"Risk for {profile.learner_id}: score={score:.2f} rising={rising} "
            f"wrong={wrong} help={helped} fast={fast}"
        )

        if score > t["break_score"]:
            return AdaptationAction(
                ActionKind.SUGGEST_BREAK, Severity.CRITICAL, self._message("suggest_break")
            )

        if rising and score > t["high_score"]:
            topic = struggling_topic(signals)
            if topic is not None and any(other != topic for other in available_topics):
                return AdaptationAction(
                    ActionKind.CHANGE_TOPIC,
                    Severity.WARNING,
                    self._message("change_topic"),
                    reason=f"{t['wrong_streak']} misses in a row on '{topic}'",
                    topic=topic,
                )
            category = "struggling" if wrong >= t["wrong_streak"] else "simplify"
            return AdaptationAction(
                ActionKind.SIMPLIFY,
                Severity.WARNING,
                self._message(category),
                new_level=max(MIN_DIFFICULTY, current_level - t["level_step"]),
            )

        if score > t["high_score"]:
            category = "help_used" if helped > wrong else "struggling"
            return AdaptationAction(ActionKind.ENCOURAGE, Severity.INFO, self._message(category))

        if score < t["low_score"] and fast >= t["challenge_fast_count"]:
            return AdaptationAction(
                ActionKind.CHALLENGE,
                Severity.SUCCESS,
                self._message("challenge"),
                new_level=min(MAX_DIFFICULTY, current_level + t["level_step"]),
            )

        if score < t["low_score"] and wrong == 0 and len(recent) >= t["streak_min_signals"]:
            return AdaptationAction(ActionKind.ENCOURAGE, Severity.SUCCESS, self._message("streak"))

        return AdaptationAction.none()

    def _apply_cooldown(
        self,
        action: AdaptationAction,
        history: Sequence[tuple[datetime, AdaptationAction]],
        now: datetime,
    ) -> AdaptationAction:
        """Downgrade a difficulty change that reverses one made inside the window."""
        if not action.changes_difficulty:
            return action

        opposite = ActionKind.CHALLENGE if action.kind == ActionKind.SIMPLIFY else ActionKind.SIMPLIFY
        window_start = now - timedelta(seconds=self.config.cooldown_seconds)
        for applied_at, previous in reversed(history):
            if ensure_aware(applied_at) < window_start:
                break
            if previous.kind == opposite:
                logger.debug(
                    f"Cooldown: {action.kind.value} within {self.config.cooldown_seconds}s "
                    f"of {previous.kind.value}, downgrading to encourage"
                )
                category = "struggling" if action.kind == ActionKind.SIMPLIFY else "streak"
                return AdaptationAction(ActionKind.ENCOURAGE, Severity.INFO, self._message(category))
        return action


def requires_immediate_action(action: AdaptationAction) -> bool:
    return action.requires_immediate_action


def changes_difficulty(action: AdaptationAction) -> bool:
    return action.changes_difficulty
