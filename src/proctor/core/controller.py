"""
Session controller: the state machine of one proctored assessment session.

    NOT_STARTED -> IN_PROGRESS -> LOCKED                      (terminal)
                              -> SUBMITTING -> COMPLETED      (terminal)

Clock expiry and manual submit both go through `_begin_submission`, whose
check-and-set runs before any await, so scoring and submission run at most
once per attempt. Violation counting is increment-then-check inside one
synchronous callback. Entering SUBMITTING or LOCKED stops the clock and the
integrity monitor before anything else happens.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from proctor.core.clock import Clock
from proctor.core.integrity import IntegrityMonitor
from proctor.core.scoring import score_attempt
from proctor.core.signals import EnvironmentSignalSource
from proctor.core.submission import SubmissionCoordinator
from proctor.core.types import AttemptDraft, QuizDefinition, ScoreBreakdown, SubmissionResult, utcnow
from proctor.errors import AttemptClosedError, SessionStateError

logger = logging.getLogger(__name__)

LOCKED_MESSAGE = "Test locked due to multiple violations of test rules."


class SessionState(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    LOCKED = "locked"
    SUBMITTING = "submitting"
    COMPLETED = "completed"

    @property
    def terminal(self) -> bool:
        return self in (SessionState.LOCKED, SessionState.COMPLETED)


@dataclass(frozen=True)
class SessionOutcome:
    breakdown: ScoreBreakdown
    submission: SubmissionResult
    trigger: str


@dataclass(frozen=True)
class SessionSnapshot:
    """What a passive renderer needs to draw the session."""

    state: SessionState
    remaining_seconds: Optional[int]
    violation_count: int
    warning_message: Optional[str]
    answered_count: int
    total_questions: int
    attempt_id: Optional[str]
    outcome: Optional[SessionOutcome]


SnapshotListener = Callable[[SessionSnapshot], None]


class SessionController:
    def __init__(
        self,
        quiz: QuizDefinition,
        coordinator: SubmissionCoordinator,
        signal_source: EnvironmentSignalSource,
        *,
        clock: Optional[Clock] = None,
        monitor: Optional[IntegrityMonitor] = None,
        max_violations: int = 3,
    ):
        self.quiz = quiz
        self.coordinator = coordinator
        self.clock = clock or Clock()
        self.monitor = monitor or IntegrityMonitor(signal_source)
        self.max_violations = max_violations

        self.state = SessionState.NOT_STARTED
        self.attempt: Optional[AttemptDraft] = None
        self.violation_count = 0
        self.warning_message: Optional[str] = None
        self.outcome: Optional[SessionOutcome] = None

        self._listeners: List[SnapshotListener] = []
        self._starting = False
        self._submission: Optional[asyncio.Future] = None
        self._abandon_task: Optional[asyncio.Task] = None

        self.clock.on_tick(self._handle_tick)
        self.clock.on_expire(self._handle_expire)

    # ----- Observation -----

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            state=self.state,
            remaining_seconds=self.clock.remaining_seconds,
            violation_count=self.violation_count,
            warning_message=self.warning_message,
            answered_count=len(self.attempt.answers) if self.attempt else 0,
            total_questions=len(self.quiz.questions),
            attempt_id=self.attempt.id if self.attempt else None,
            outcome=self.outcome,
        )

    def _notify(self) -> None:
        snap = self.snapshot()
        for listener in list(self._listeners):
            listener(snap)

    # ----- NOT_STARTED -> IN_PROGRESS -----

    async def start(self) -> AttemptDraft:
        if self.state is not SessionState.NOT_STARTED or self._starting:
            raise SessionStateError(f"session cannot start from state {self.state.value}")
        self._starting = True
        try:
            attempt = await self.coordinator.start(self.quiz.id)
        finally:
            self._starting = False
        if not attempt.is_open:
            raise AttemptClosedError(f"attempt {attempt.id} is already {attempt.status.value}")

        self.attempt = attempt
        self.violation_count = attempt.violation_count
        self.warning_message = None
        self.state = SessionState.IN_PROGRESS
        self.clock.start(self.quiz.duration_seconds)
        self.monitor.start(self._handle_violation)
        logger.info(
            "session started attempt_id=%s quiz_id=%s duration_s=%s",
            attempt.id, self.quiz.id, self.quiz.duration_seconds,
        )
        self._notify()
        return attempt

    # ----- IN_PROGRESS -----

    def record_answer(self, question_index: int, value: str) -> bool:
        """Overwrite the answer for a question. Ignored (False) outside IN_PROGRESS."""
        if self.state is not SessionState.IN_PROGRESS:
            logger.debug("answer ignored in state=%s", self.state.value)
            return False
        if not 0 <= question_index < len(self.quiz.questions):
            raise IndexError(f"question index {question_index} out of range")
        self.attempt.answers[question_index] = value
        self._notify()
        return True

    def _handle_tick(self, remaining: int) -> None:
        if self.state is SessionState.IN_PROGRESS:
            self._notify()

    def _handle_violation(self, message: str) -> None:
        if self.state is not SessionState.IN_PROGRESS:
            return
        self.violation_count += 1
        self.attempt.violation_count = self.violation_count
        self.warning_message = message
        if self.violation_count >= self.max_violations:
            self._lock()
        self._notify()

    # ----- IN_PROGRESS -> LOCKED -----

    def _lock(self) -> None:
        self.state = SessionState.LOCKED
        self.clock.cancel()
        self.monitor.stop()
        self.attempt.answers.clear()
        self.warning_message = LOCKED_MESSAGE
        logger.warning("session locked attempt_id=%s violations=%s", self.attempt.id, self.violation_count)
        self._abandon_task = asyncio.ensure_future(self.coordinator.abandon(self.attempt))

    # ----- IN_PROGRESS -> SUBMITTING -> COMPLETED -----

    async def submit(self) -> SessionOutcome:
        """Manual submit. A concurrent expiry shares the same submission."""
        return await asyncio.shield(self._begin_submission("manual"))

    def _handle_expire(self) -> None:
        if self.state is SessionState.IN_PROGRESS:
            self._begin_submission("timeout")

    def _begin_submission(self, trigger: str) -> asyncio.Future:
        if self._submission is not None:
            return self._submission
        if self.state is not SessionState.IN_PROGRESS:
            raise SessionStateError(f"cannot submit in state {self.state.value}")

        self.state = SessionState.SUBMITTING
        self.clock.cancel()
        self.monitor.stop()
        self.attempt.end_time = utcnow()
        logger.info("submitting attempt_id=%s trigger=%s", self.attempt.id, trigger)
        self._submission = asyncio.ensure_future(self._run_submission(trigger))
        self._submission.add_done_callback(self._log_submission_failure)
        self._notify()
        return self._submission

    async def _run_submission(self, trigger: str) -> SessionOutcome:
        breakdown = score_attempt(self.quiz, self.attempt.answers)
        submission = await self.coordinator.submit(self.attempt, breakdown)
        self.outcome = SessionOutcome(breakdown=breakdown, submission=submission, trigger=trigger)
        self.state = SessionState.COMPLETED
        logger.info(
            "session completed attempt_id=%s score=%s%% passed=%s confirmed=%s",
            self.attempt.id, submission.percentage_score, submission.passed, submission.is_server_confirmed,
        )
        self._notify()
        return self.outcome

    def _log_submission_failure(self, future: asyncio.Future) -> None:
        if not future.cancelled() and future.exception() is not None:
            logger.error("submission failed attempt_id=%s", self.attempt.id, exc_info=future.exception())

    # ----- Teardown -----

    async def wait_closed(self) -> None:
        """Wait for background work started by a terminal transition."""
        pending = [t for t in (self._submission, self._abandon_task) if t is not None]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    def close(self) -> None:
        """Host navigated away: stop everything without submitting."""
        self.clock.cancel()
        self.monitor.stop()
