"""
Session engine core. Single import surface for the five components and their contracts.
"""

from proctor.core.clock import Clock
from proctor.core.controller import SessionController, SessionOutcome, SessionSnapshot, SessionState
from proctor.core.fallback_store import InMemoryFallbackStore, LocalFallbackStore
from proctor.core.gateway import AttemptGateway
from proctor.core.integrity import IntegrityMonitor, IntegrityViolation
from proctor.core.scoring import score_attempt
from proctor.core.signals import EnvironmentSignal, EnvironmentSignalSource, SignalBus, SignalKind
from proctor.core.submission import SubmissionCoordinator
from proctor.core.types import (
    AttemptDraft,
    AttemptStatus,
    Question,
    QuestionOption,
    QuizDefinition,
    ScoreBreakdown,
    SubmissionResult,
)

__all__ = [
    "Clock",
    "SessionController",
    "SessionOutcome",
    "SessionSnapshot",
    "SessionState",
    "InMemoryFallbackStore",
    "LocalFallbackStore",
    "AttemptGateway",
    "IntegrityMonitor",
    "IntegrityViolation",
    "score_attempt",
    "EnvironmentSignal",
    "EnvironmentSignalSource",
    "SignalBus",
    "SignalKind",
    "SubmissionCoordinator",
    "AttemptDraft",
    "AttemptStatus",
    "Question",
    "QuestionOption",
    "QuizDefinition",
    "ScoreBreakdown",
    "SubmissionResult",
]
