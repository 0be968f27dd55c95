"""
Progression Engine Errors.

Typed failures raised by the engine. Two families matter to callers:

- NotFoundError: a referenced content unit or learner record is absent.
  The engine never fabricates records with defaults, except a first-ever
  UnitProgress which is a defined "new" state rather than an error.
- ProgressionValidationError: input is out of range and no sane default
  exists (e.g. a negative reward base). Inputs with a sane default, such
  as durations and counts, are clamped instead.

Storage failures are not wrapped; they propagate from the store.
"""

from __future__ import annotations


class ProgressionError(Exception):
    """Base class for all progression engine errors."""


# =============================================================================
# Not found
# =============================================================================


class NotFoundError(ProgressionError):
    """Raised when a referenced record does not exist."""

    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")


class ContentNotFoundError(NotFoundError):
    """Raised when a content unit id is not in the content pool."""

    def __init__(self, unit_id: str):
        super().__init__("Content unit", unit_id)
        self.unit_id = unit_id


class LearnerNotFoundError(NotFoundError):
    """Raised when a learner profile is requested but was never created."""

    def __init__(self, learner_id: str):
        super().__init__("Learner", learner_id)
        self.learner_id = learner_id


# =============================================================================
# Validation
# =============================================================================


class ProgressionValidationError(ProgressionError, ValueError):
    """Raised when input is out of range and cannot be clamped."""


class InvalidRewardError(ProgressionValidationError):
    """Raised for reward inputs outside the allowed range."""


class InvalidContentError(ProgressionValidationError):
    """Raised when an authored content unit is malformed."""
