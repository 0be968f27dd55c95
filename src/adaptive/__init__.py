"""
Adaptive Learning Engine.

i+1 difficulty calibration, session planning and affective-filter
monitoring, orchestrated per interaction by the LearningEngine.

Components:
- difficulty: current/target level, drop-back, in-session adaptation
- session_planner: SessionPlanner (targets, reviews, context, next activity)
- affective_monitor: AffectiveRiskMonitor (signals -> one directive)
- learning_engine: LearningEngine (main orchestration layer)
"""
from src.adaptive.affective_monitor import AffectiveRiskMonitor, MonitorConfig
from src.adaptive.difficulty import DifficultyCalibration, calibrate
from src.adaptive.learning_engine import ActivityOutcome, LearningEngine
from src.adaptive.models import (
    ActionKind,
    ActivityRecommendation,
    AdaptationAction,
    SessionContext,
    SessionOptions,
    SessionPlan,
    SessionSummary,
    Severity,
    Signal,
    SignalKind,
)
from src.adaptive.session_planner import PlannerConfig, SessionPlanner

__all__ = [
    # Main engine
    "LearningEngine",
    "ActivityOutcome",
    # Component classes
    "AffectiveRiskMonitor",
    "MonitorConfig",
    "PlannerConfig",
    "SessionPlanner",
    "DifficultyCalibration",
    "calibrate",
    # Data models
    "ActionKind",
    "ActivityRecommendation",
    "AdaptationAction",
    "SessionContext",
    "SessionOptions",
    "SessionPlan",
    "SessionSummary",
    "Severity",
    "Signal",
    "SignalKind",
]
