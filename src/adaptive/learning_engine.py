"""
Learning Engine.

Orchestrates one learner interaction end to end:

    activity result -> ChunkScheduler (per-unit SM-2 update)
                    -> LearnerProfileAggregator (rollups)
                    -> AffectiveRiskMonitor (at most one directive)
                    -> Sun Drops reward and tree refresh

and the session boundaries around it (planning at start, risk blending and
summary at close). All state lives in the ProgressStore; the engine keeps
none between calls beyond the SessionContext the caller holds.
"""

from __future__ import annotations

import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime

from loguru import logger

from src.adaptive.affective_monitor import (
    THRESHOLDS,
    AffectiveRiskMonitor,
    MonitorConfig,
    detect_signals,
    quit_signal,
    wrong_streak,
)
from src.adaptive.difficulty import adapt_difficulty, summarize_performance
from src.adaptive.models import (
    ActionKind,
    ActivityRecommendation,
    AdaptationAction,
    SessionContext,
    SessionOptions,
    SessionSummary,
    Signal,
)
from src.adaptive.session_planner import PlannerConfig, SessionPlanner
from src.content.pool import ContentPool
from src.core.activity import ActivityResult
from src.core.clock import ensure_aware, utcnow
from src.core.exceptions import LearnerNotFoundError, ProgressionValidationError
from src.db.store import ProgressStore
from src.garden.sun_drops import DAILY_CAP, apply_daily_cap, base_value_for_difficulty, calculate_earned
from src.garden.tree_health import GiftType, Tree, apply_gift, refresh_tree, update_all_tree_health
from src.learner.aggregator import LearnerProfileAggregator, SessionStats
from src.learner.profile import LearnerProfile
from src.srs.models import UnitProgress, UnitStatus
from src.srs.scheduler import ChunkScheduler, SchedulerConfig

SHORT_SESSION_MINUTES = 5
LONG_SESSION_MINUTES = 20
STRUGGLING_TIP_COUNT = 2
TUNING_WINDOW = 5  # activities per in-session difficulty adjustment


@dataclass
class ActivityOutcome:
    """What one recorded activity changed."""

    progress_updates: list[UnitProgress] = field(default_factory=list)
    sun_drops: int = 0
    action: AdaptationAction = field(default_factory=AdaptationAction.none)
    trees_refreshed: list[Tree] = field(default_factory=list)
    duplicate: bool = False


def session_tips(accuracy: float, duration_minutes: float, struggling_count: int, activities: int) -> list[str]:
    """Learner-facing tips for the session summary."""
    tips = []
    if activities > 0:
        if accuracy >= 0.9:
            tips.append("Excellent work! You're really getting the hang of this.")
        elif accuracy >= 0.7:
            tips.append("Good progress! Keep practicing to solidify what you learned.")
        elif accuracy >= 0.5:
            tips.append("You're learning! Reviewing these chunks again will help them stick.")
        else:
            tips.append("This topic is challenging. Don't give up - practice makes progress!")

    if duration_minutes < SHORT_SESSION_MINUTES:
        tips.append("A bit longer next time will help reinforce your learning.")
    elif duration_minutes > LONG_SESSION_MINUTES:
        tips.append("Great dedication! Remember, shorter sessions more often can be more effective.")

    if struggling_count > STRUGGLING_TIP_COUNT:
        tips.append(
            f"Focus on the {struggling_count} chunks that were tricky - they'll click with practice."
        )
    return tips


class LearningEngine:
    """
    Per-learner progression orchestrator.

    The caller serializes calls for one learner; the engine does a
    read-modify-write on each record it touches.
    """

    def __init__(
        self,
        pool: ContentPool,
        store: ProgressStore,
        scheduler: ChunkScheduler | None = None,
        planner: SessionPlanner | None = None,
        monitor: AffectiveRiskMonitor | None = None,
        aggregator: LearnerProfileAggregator | None = None,
        daily_cap: int = DAILY_CAP,
    ):
        self.pool = pool
        self.store = store
        self.scheduler = scheduler or ChunkScheduler(pool)
        self.planner = planner or SessionPlanner(pool)
        self.monitor = monitor or AffectiveRiskMonitor()
        self.aggregator = aggregator or LearnerProfileAggregator()
        self.daily_cap = daily_cap

    @classmethod
    def from_settings(cls, pool: ContentPool, store: ProgressStore) -> LearningEngine:
        """Build an engine with every component configured from settings."""
        from config import get_settings

        return cls(
            pool,
            store,
            scheduler=ChunkScheduler(pool, SchedulerConfig.from_settings()),
            planner=SessionPlanner(pool, PlannerConfig.from_settings()),
            monitor=AffectiveRiskMonitor(MonitorConfig.from_settings()),
            daily_cap=get_settings().sun_drops_daily_cap,
        )

    # =========================================================================
    # Profiles
    # =========================================================================

    def get_profile(self, learner_id: str) -> LearnerProfile:
        """
        Load a learner profile.

        Raises:
            LearnerNotFoundError: If the learner has no profile
        """
        profile = self.store.get_profile(learner_id)
        if profile is None:
            raise LearnerNotFoundError(learner_id)
        return profile

    def get_or_create_profile(self, learner_id: str, now: datetime | None = None) -> LearnerProfile:
        profile = self.store.get_profile(learner_id)
        if profile is None:
            profile = LearnerProfile.new(learner_id, ensure_aware(now or utcnow()))
            self.store.save_profile(profile)
            logger.info(f"Created learner profile {learner_id}")
        return profile

    def _refreshed_progress(self, learner_id: str, now: datetime) -> list[UnitProgress]:
        """Load every record, persisting status decay discovered at read time."""
        refreshed = []
        for progress in self.store.list_progress(learner_id):
            current = self.scheduler.refresh_status(progress, now)
            if current is not progress:
                self.store.save_progress(current)
            refreshed.append(current)
        return refreshed

    # =========================================================================
    # Session lifecycle
    # =========================================================================

    def start_session(
        self,
        learner_id: str,
        options: SessionOptions | None = None,
        now: datetime | None = None,
    ) -> SessionContext:
        """
        Open a session and plan its content.

        Creates the profile on a learner's first session. Filter risk decays
        for the days the learner was away.
        """
        now = ensure_aware(now or utcnow())
        profile = self.get_or_create_profile(learner_id, now)
        self.aggregator.decay_filter_risk(profile, now)

        progresses = self._refreshed_progress(learner_id, now)
        self.aggregator.recompute_status_counts(profile, progresses, now)

        plan = self.planner.plan(
            profile,
            {p.unit_id: p for p in progresses},
            options or SessionOptions(),
            now=now,
            interests=self.aggregator.combined_interests(profile),
        )
        self.store.save_profile(profile)

        context = SessionContext(
            learner_id=learner_id,
            plan=plan,
            base_target_level=plan.target_level,
            current_target_level=plan.target_level,
            started_at=now,
            starting_confidence=profile.average_confidence,
            starting_acquired=profile.acquired_count,
        )
        logger.info(f"Session {context.session_id} started for {learner_id}")
        return context

    def record_activity(
        self,
        context: SessionContext,
        result: ActivityResult,
        now: datetime | None = None,
    ) -> ActivityOutcome:
        """
        Apply one completed activity.

        Args:
            context: Open session
            result: The learner's answer
            now: Processing time (defaults to the result timestamp)

        Returns:
            ActivityOutcome; a repeated interaction_id is reported as a
            duplicate and changes nothing

        Raises:
            ProgressionValidationError: If the session is already closed
            ContentNotFoundError: If any unit is missing (nothing is written)
            LearnerNotFoundError: If the learner's profile is gone
        """
        if context.closed:
            raise ProgressionValidationError(f"Session {context.session_id} is closed")
        if result.interaction_id in context.applied_interaction_ids:
            logger.debug(f"Interaction {result.interaction_id} already recorded; skipping")
            return ActivityOutcome(duplicate=True)

        now = ensure_aware(now or result.timestamp)
        units = self.pool.get_many(result.unit_ids)
        profile = self.get_profile(context.learner_id)

        # Every store write happens before the session context changes, so a
        # call that fails part way can be retried with the same result.
        outcome = ActivityOutcome()
        tracked = []
        for unit in units:
            updated, was_seen, newly_acquired = self._apply_to_unit(
                context.learner_id, unit.id, result, now
            )
            outcome.progress_updates.append(updated)
            tracked.append((unit.id, was_seen, newly_acquired))

        self.aggregator.record_interaction(profile, result, now)
        self.aggregator.recompute_status_counts(
            profile, self.store.list_progress(context.learner_id), now
        )

        timed = [r.response_time_ms for r in context.results if r.response_time_ms > 0]
        average_ms = sum(timed) / len(timed) if timed else None
        results = [*context.results, result]
        signals = [*context.signals, *detect_signals(result, average_ms, units[0].topic_group)]

        if wrong_streak(signals, results) == THRESHOLDS["wrong_streak"] and not result.used_help:
            self.aggregator.record_struggle(profile, now)

        outcome.action = self._evaluate(context, profile, signals, results, now)

        if result.correct:
            outcome.sun_drops = self._award(profile, result, max(u.difficulty for u in units), now)
            for group in dict.fromkeys(u.topic_group for u in units):
                outcome.trees_refreshed.append(self._refresh_tree(context.learner_id, group, now))

        self.store.save_profile(profile)

        context.results.append(result)
        context.signals = signals
        context.sun_drops_earned += outcome.sun_drops
        self._track_units(context, tracked)
        self._apply_action(context, outcome.action, now)
        if outcome.action.is_none:
            self._tune_difficulty(context)
        return outcome

    def _apply_to_unit(
        self,
        learner_id: str,
        unit_id: str,
        result: ActivityResult,
        now: datetime,
    ) -> tuple[UnitProgress, bool, bool]:
        """Update and save one unit; returns (progress, was_seen, newly_acquired)."""
        progress = self.store.get_progress(learner_id, unit_id)
        if progress is None:
            progress = self.scheduler.new_progress(learner_id, unit_id)
        if progress.last_interaction_id == result.interaction_id:
            # saved by an earlier attempt at this interaction
            return progress, progress.total_encounters > 1, False

        updated = self.scheduler.update(progress, result, now)
        self.store.save_progress(updated)
        newly_acquired = updated.status == UnitStatus.ACQUIRED and progress.status != UnitStatus.ACQUIRED
        return updated, progress.has_been_seen, newly_acquired

    def _track_units(self, context: SessionContext, tracked: list[tuple[str, bool, bool]]) -> None:
        for unit_id, was_seen, newly_acquired in tracked:
            target = context.reviewed_unit_ids if was_seen else context.introduced_unit_ids
            if unit_id not in target and unit_id not in context.introduced_unit_ids:
                target.append(unit_id)
            if newly_acquired and unit_id not in context.acquired_unit_ids:
                context.acquired_unit_ids.append(unit_id)
                logger.info(f"{context.learner_id} acquired {unit_id}")

    def _evaluate(
        self,
        context: SessionContext,
        profile: LearnerProfile,
        signals: list[Signal],
        results: list[ActivityResult],
        now: datetime,
    ) -> AdaptationAction:
        available = [t for t in self.pool.topics if t not in context.excluded_topics]
        return self.monitor.evaluate(
            signals,
            profile,
            context.current_target_level,
            now,
            results=results,
            history=context.actions,
            available_topics=available,
        )

    def _apply_action(self, context: SessionContext, action: AdaptationAction, now: datetime) -> None:
        if action.is_none:
            return
        context.actions.append((now, action))
        if action.changes_difficulty and action.new_level is not None:
            logger.info(
                f"Session {context.session_id}: {action.kind.value} "
                f"{context.current_target_level:.1f} -> {action.new_level:.1f}"
            )
            context.current_target_level = action.new_level
        elif action.kind == ActionKind.CHANGE_TOPIC and action.topic:
            if action.topic not in context.excluded_topics:
                context.excluded_topics.append(action.topic)

    def _tune_difficulty(self, context: SessionContext) -> None:
        """Nudge the session target from the last full window of results."""
        if context.activity_count % TUNING_WINDOW:
            return
        performance = summarize_performance(context.results[-TUNING_WINDOW:])
        level = adapt_difficulty(context.current_target_level, performance)
        if level != context.current_target_level:
            logger.debug(
                f"Session {context.session_id}: accuracy {performance.accuracy:.0%} "
                f"moves target {context.current_target_level:.1f} -> {level:.1f}"
            )
            context.current_target_level = level

    def _award(self, profile: LearnerProfile, result: ActivityResult, difficulty: float, now: datetime) -> int:
        earned = calculate_earned(
            base_value_for_difficulty(difficulty),
            is_retry=result.is_retry,
            used_help=result.used_help,
            wrong_attempts=result.wrong_attempts,
        )
        today = now.date().isoformat()
        if profile.sun_drops_day != today:
            profile.sun_drops_day = today
            profile.sun_drops_today = 0

        granted = apply_daily_cap(earned, profile.sun_drops_today, self.daily_cap)
        if granted < earned:
            logger.debug(f"Daily cap: {profile.learner_id} earned {earned}, granted {granted}")
        profile.sun_drops_today += granted
        profile.sun_drops_total += granted
        return granted

    def _refresh_tree(self, learner_id: str, group: str, now: datetime) -> Tree:
        tree = self.store.get_tree(learner_id, group) or Tree(learner_id=learner_id, group=group)
        if tree.last_refreshed_at is not None and ensure_aware(tree.last_refreshed_at) == now:
            return tree
        refreshed = refresh_tree(tree, now)
        self.store.save_tree(refreshed)
        return refreshed

    def record_quit(self, context: SessionContext, now: datetime | None = None) -> None:
        """Note that the learner abandoned an activity."""
        context.signals.append(quit_signal(str(uuid.uuid4()), now))

    def next_activity(self, context: SessionContext) -> ActivityRecommendation | None:
        if context.closed:
            return None
        return self.planner.next_activity(context)

    def should_end_session(
        self,
        context: SessionContext,
        now: datetime | None = None,
    ) -> tuple[bool, str | None]:
        if context.closed:
            return True, "Session closed"
        return self.planner.should_end_session(context, now)

    def end_session(self, context: SessionContext, now: datetime | None = None) -> SessionSummary:
        """
        Close a session and report on it.

        Blends the session's filter risk into the profile, records session
        totals and refreshes unit statuses. Calling it again returns the
        same summary without touching the profile.
        """
        if context.summary is not None:
            return context.summary

        now = ensure_aware(now or utcnow())
        profile = self.get_profile(context.learner_id)
        results = context.results

        duration = max(0.0, (now - ensure_aware(context.started_at)).total_seconds() / 60)
        first_try = sum(1 for r in results if r.first_try)
        accuracy = first_try / len(results) if results else 0.0

        per_unit: dict[str, list[bool]] = defaultdict(list)
        for r in results:
            for unit_id in r.unit_ids:
                per_unit[unit_id].append(r.correct)
        struggling = [u for u, marks in per_unit.items() if sum(marks) / len(marks) < 0.5]
        mastered = [u for u, marks in per_unit.items() if all(marks) and len(marks) >= 2]

        session_risk = self.aggregator.calculate_filter_risk(profile, results, now)
        self.aggregator.update_filter_risk(profile, session_risk)
        self.aggregator.record_session(
            profile,
            SessionStats(
                minutes=duration,
                activities=len(results),
                correct_first_try=first_try,
                help_used=sum(1 for r in results if r.used_help),
            ),
            now,
        )
        self.aggregator.recompute_status_counts(
            profile, self._refreshed_progress(context.learner_id, now), now
        )
        self.store.save_profile(profile)

        summary = SessionSummary(
            session_id=context.session_id,
            learner_id=context.learner_id,
            duration_minutes=duration,
            activities_completed=len(results),
            accuracy=accuracy,
            new_units=len(context.introduced_unit_ids),
            reviewed_units=len(context.reviewed_unit_ids),
            acquired_units=len(context.acquired_unit_ids),
            sun_drops_earned=context.sun_drops_earned,
            struggling_unit_ids=struggling,
            mastered_unit_ids=mastered,
            confidence_change=profile.average_confidence - context.starting_confidence,
            filter_risk=profile.filter_risk,
            tips=session_tips(accuracy, duration, len(struggling), len(results)),
        )
        context.summary = summary
        context.closed = True
        logger.info(
            f"Session {context.session_id} ended: {len(results)} activities, "
            f"accuracy {accuracy:.0%}, {context.sun_drops_earned} Sun Drops"
        )
        return summary

    # =========================================================================
    # Garden
    # =========================================================================

    def garden(self, learner_id: str, now: datetime | None = None) -> list[Tree]:
        """All of a learner's trees with health recomputed and persisted."""
        trees = self.store.list_trees(learner_id)
        changed = {t.group: t for t in update_all_tree_health(trees, now)}
        for tree in changed.values():
            self.store.save_tree(tree)
        return [changed.get(t.group, t) for t in trees]

    def apply_gift(self, learner_id: str, group: str, gift: GiftType | str) -> Tree:
        tree = self.store.get_tree(learner_id, group) or Tree(learner_id=learner_id, group=group)
        updated = apply_gift(tree, gift)
        self.store.save_tree(updated)
        return updated
