"""
Unit test fixtures. Use fakes; no real DB or network.
"""
import asyncio
from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest

from proctor.core.clock import Clock
from proctor.core.controller import SessionController, SessionState
from proctor.core.fallback_store import InMemoryFallbackStore
from proctor.core.gateway import AttemptGateway
from proctor.core.integrity import IntegrityMonitor
from proctor.core.signals import SignalBus
from proctor.core.submission import SubmissionCoordinator
from proctor.core.types import AttemptStatus, QuizDefinition
from proctor.core.wire import AttemptRecord, SubmitAttemptRequest, SubmitAttemptResponse


class FakeGateway(AttemptGateway):
    """
    Scripted attempt store. `submit_outcomes` is consumed one entry per submit
    call: an exception is raised, a SubmitAttemptResponse is returned. With no
    script left the response mirrors the payload metadata.
    """

    certificate_id = "CERT-1700000000000-abcdef12"

    def __init__(self, quiz: Optional[QuizDefinition] = None):
        self.quiz = quiz
        self.records: Dict[str, AttemptRecord] = {}
        self.start_calls = 0
        self.start_error: Optional[Exception] = None
        self.submit_calls: List[tuple] = []
        self.submit_outcomes: list = []
        self.submit_delay = 0.0
        self.abandon_calls: List[tuple] = []
        self.abandon_error: Optional[Exception] = None

    def seed(self, quiz_id: str, *, status: AttemptStatus = AttemptStatus.IN_PROGRESS, **fields) -> AttemptRecord:
        record = AttemptRecord(
            attempt_id=fields.pop("attempt_id", f"attempt-{quiz_id}"),
            quiz_id=quiz_id,
            status=status,
            start_time=datetime(2025, 1, 1, tzinfo=timezone.utc),
            duration_minutes=30,
            total_questions=2,
            **fields,
        )
        self.records[quiz_id] = record
        return record

    async def get_quiz(self, quiz_id: str) -> QuizDefinition:
        return self.quiz

    async def start_attempt(self, quiz_id: str) -> AttemptRecord:
        self.start_calls += 1
        if self.start_error is not None:
            raise self.start_error
        return self.records.get(quiz_id) or self.seed(quiz_id)

    async def find_attempt(self, quiz_id: str) -> Optional[AttemptRecord]:
        return self.records.get(quiz_id)

    async def submit_attempt(
        self, attempt_id: str, payload: SubmitAttemptRequest, *, timeout: float
    ) -> SubmitAttemptResponse:
        self.submit_calls.append((attempt_id, payload, timeout))
        if self.submit_delay:
            await asyncio.sleep(self.submit_delay)
        if self.submit_outcomes:
            outcome = self.submit_outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        meta = payload.metadata
        passed = bool(meta and meta.passed)
        return SubmitAttemptResponse(
            attempt_id=attempt_id,
            score=meta.score if meta else 0,
            percentage_score=meta.percentage_score if meta else 0,
            passed=passed,
            certificate_id=self.certificate_id if passed else None,
        )

    async def abandon_attempt(self, attempt_id: str, violation_count: int) -> None:
        self.abandon_calls.append((attempt_id, violation_count))
        if self.abandon_error is not None:
            raise self.abandon_error


async def _wait_for_state(controller: SessionController, state: SessionState, timeout: float = 3.0) -> None:
    async def _poll():
        while controller.state is not state:
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout)


@pytest.fixture
def wait_for_state():
    """Await a controller state: `await wait_for_state(controller, SessionState.COMPLETED)`."""
    return _wait_for_state


@pytest.fixture
def fake_gateway(two_question_quiz):
    return FakeGateway(two_question_quiz)


@pytest.fixture
def fallback_store():
    return InMemoryFallbackStore()


@pytest.fixture
def coordinator(fake_gateway, fallback_store):
    return SubmissionCoordinator(fake_gateway, fallback_store, primary_timeout=1.0, secondary_timeout=0.5)


@pytest.fixture
def signal_bus():
    return SignalBus()


@pytest.fixture
def make_controller(coordinator, signal_bus):
    """Controller with a fast clock (1ms ticks) and a short focus grace period."""
    def _make(quiz: QuizDefinition, *, tick_interval: float = 0.001, focus_grace: float = 0.02, **kwargs):
        return SessionController(
            quiz,
            coordinator,
            signal_bus,
            clock=Clock(tick_interval=tick_interval),
            monitor=IntegrityMonitor(signal_bus, focus_grace_seconds=focus_grace),
            **kwargs,
        )

    return _make
