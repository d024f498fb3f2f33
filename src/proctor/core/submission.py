"""
Submission coordinator: turns a scored attempt into exactly one durable result.

Ladder, each step only if the previous one failed:
  1. primary submit with the full payload
  2. secondary submit with the reduced payload and a shorter timeout
  3. local fallback: client-side certificate id + LocalFallbackStore

A completed attempt is never resubmitted; the stored result is returned. An
attempt that only this client completed or locked stays closed on restart,
even while the store still reports it in progress.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Set

from proctor.core.certificates import generate_certificate_id
from proctor.core.fallback_store import LocalFallbackStore
from proctor.core.gateway import AttemptGateway
from proctor.core.types import AttemptDraft, AttemptStatus, ScoreBreakdown, SubmissionResult, utcnow
from proctor.core.wire import (
    AttemptRecord,
    SubmissionMetadata,
    SubmitAttemptRequest,
    SubmitAttemptResponse,
    SubmittedAnswer,
)
from proctor.errors import ConflictError, NotFoundError, ProctorError, SessionStateError

logger = logging.getLogger(__name__)


def draft_from_record(record: AttemptRecord) -> AttemptDraft:
    return AttemptDraft(
        id=record.attempt_id,
        quiz_id=record.quiz_id,
        start_time=record.start_time,
        end_time=record.end_time,
        score=record.score,
        total_points=record.total_points,
        percentage_score=record.percentage_score,
        passed=bool(record.passed),
        violation_count=record.violation_count,
        certificate_id=record.certificate_id,
        status=record.status,
    )


def completed_draft(record: AttemptRecord, result: SubmissionResult) -> AttemptDraft:
    return AttemptDraft(
        id=record.attempt_id,
        quiz_id=record.quiz_id,
        answers=dict(result.answers),
        start_time=record.start_time,
        end_time=result.submitted_at,
        score=result.score,
        total_points=result.total_points,
        percentage_score=result.percentage_score,
        passed=result.passed,
        violation_count=result.violation_count,
        certificate_id=result.certificate_id,
        status=AttemptStatus.COMPLETED,
    )


def build_submit_payload(attempt: AttemptDraft, breakdown: ScoreBreakdown) -> SubmitAttemptRequest:
    answers: List[SubmittedAnswer] = []
    for index, result in enumerate(breakdown.question_results):
        selected = attempt.answers.get(index)
        if selected is None:
            continue
        answers.append(SubmittedAnswer(question_id=result.question_id, selected_option=selected))
    return SubmitAttemptRequest(
        answers=answers,
        start_time=attempt.start_time,
        end_time=attempt.end_time or utcnow(),
        metadata=SubmissionMetadata(
            score=breakdown.score,
            total_points=breakdown.total_points,
            percentage_score=breakdown.percentage_score,
            passed=breakdown.passed,
            correct_answers=breakdown.correct_answers,
            violation_count=attempt.violation_count,
        ),
    )


class SubmissionCoordinator:
    def __init__(
        self,
        gateway: AttemptGateway,
        fallback_store: LocalFallbackStore,
        *,
        primary_timeout: float = 10.0,
        secondary_timeout: float = 5.0,
    ):
        if secondary_timeout > primary_timeout:
            raise ValueError("secondary_timeout must not exceed primary_timeout")
        self.gateway = gateway
        self.fallback_store = fallback_store
        self.primary_timeout = primary_timeout
        self.secondary_timeout = secondary_timeout
        self._results: Dict[str, SubmissionResult] = {}
        self._inflight: Dict[str, asyncio.Future] = {}
        self._abandoned: Set[str] = set()

    # ----- Start -----

    async def start(self, quiz_id: str) -> AttemptDraft:
        """Request a new attempt or reuse the stored one for this (quiz, user)."""
        try:
            record = await self.gateway.start_attempt(quiz_id)
        except ConflictError:
            logger.info("attempt already exists quiz_id=%s, reusing stored attempt", quiz_id)
            record = await self.gateway.find_attempt(quiz_id)
            if record is None:
                raise NotFoundError(f"no stored attempt for quiz {quiz_id} after conflict")
        return self._apply_local_state(record)

    def _apply_local_state(self, record: AttemptRecord) -> AttemptDraft:
        """Close a stored in-progress attempt that this client already finished or locked."""
        draft = draft_from_record(record)
        if not draft.is_open:
            return draft
        previous = self.result_for(record.attempt_id)
        if previous is not None:
            logger.info("attempt has a local result attempt_id=%s, not reopening", record.attempt_id)
            return completed_draft(record, previous)
        if self.is_abandoned(record.attempt_id):
            logger.info("attempt was locked on this client attempt_id=%s, not reopening", record.attempt_id)
            draft.status = AttemptStatus.ABANDONED
        return draft

    # ----- Submit -----

    async def submit(self, attempt: AttemptDraft, breakdown: ScoreBreakdown) -> SubmissionResult:
        if attempt.is_completed:
            return self._previous_result(attempt)
        if attempt.status is AttemptStatus.ABANDONED or self.is_abandoned(attempt.id):
            raise SessionStateError(f"attempt {attempt.id} was abandoned and cannot be submitted")
        previous = self.result_for(attempt.id)
        if previous is not None:
            logger.info("attempt already has a result attempt_id=%s, not resubmitting", attempt.id)
            return self._complete(attempt, previous)

        pending = self._inflight.get(attempt.id)
        if pending is None:
            pending = asyncio.ensure_future(self._submit(attempt, breakdown))
            self._inflight[attempt.id] = pending
            pending.add_done_callback(lambda _: self._inflight.pop(attempt.id, None))
        return await asyncio.shield(pending)

    def result_for(self, attempt_id: str) -> Optional[SubmissionResult]:
        return self._results.get(attempt_id) or self.fallback_store.get(attempt_id)

    def is_abandoned(self, attempt_id: str) -> bool:
        return attempt_id in self._abandoned or self.fallback_store.is_abandoned(attempt_id)

    async def _submit(self, attempt: AttemptDraft, breakdown: ScoreBreakdown) -> SubmissionResult:
        if attempt.end_time is None:
            attempt.end_time = utcnow()
        payload = build_submit_payload(attempt, breakdown)
        ladder = (
            ("primary", payload, self.primary_timeout),
            ("secondary", payload.reduced(), self.secondary_timeout),
        )

        failures: List[str] = []
        for label, body, timeout in ladder:
            try:
                response = await self.gateway.submit_attempt(attempt.id, body, timeout=timeout)
            except ProctorError as exc:
                logger.warning(
                    "%s submit failed attempt_id=%s error=%s status=%s",
                    label, attempt.id, type(exc).__name__, exc.status_code,
                )
                failures.append(f"{label}: {type(exc).__name__}: {exc.message}")
                continue
            return self._confirm(attempt, breakdown, response, via=label)

        return self._fall_back(attempt, breakdown, "; ".join(failures))

    def _confirm(
        self,
        attempt: AttemptDraft,
        breakdown: ScoreBreakdown,
        response: SubmitAttemptResponse,
        *,
        via: str,
    ) -> SubmissionResult:
        if response.percentage_score != breakdown.percentage_score:
            logger.warning(
                "server score differs attempt_id=%s client=%s server=%s",
                attempt.id, breakdown.percentage_score, response.percentage_score,
            )
        certificate_id = response.certificate_id
        if certificate_id and not (response.passed and breakdown.certificate_eligible):
            logger.warning("ignoring certificate for ineligible attempt_id=%s", attempt.id)
            certificate_id = None

        result = SubmissionResult(
            attempt_id=attempt.id,
            quiz_id=attempt.quiz_id,
            is_server_confirmed=True,
            certificate_id=certificate_id,
            score=response.score,
            total_points=breakdown.total_points,
            percentage_score=response.percentage_score,
            passed=response.passed,
            violation_count=attempt.violation_count,
            submitted_at=utcnow(),
            answers=dict(attempt.answers),
            breakdown=breakdown,
            diagnostic=None if via == "primary" else f"confirmed via {via} submit",
        )
        logger.info("submission confirmed attempt_id=%s via=%s", attempt.id, via)
        return self._complete(attempt, result)

    def _fall_back(self, attempt: AttemptDraft, breakdown: ScoreBreakdown, reason: str) -> SubmissionResult:
        certificate_id = generate_certificate_id() if breakdown.certificate_allowed else None
        result = SubmissionResult(
            attempt_id=attempt.id,
            quiz_id=attempt.quiz_id,
            is_server_confirmed=False,
            certificate_id=certificate_id,
            score=breakdown.score,
            total_points=breakdown.total_points,
            percentage_score=breakdown.percentage_score,
            passed=breakdown.passed,
            violation_count=attempt.violation_count,
            submitted_at=utcnow(),
            answers=dict(attempt.answers),
            breakdown=breakdown,
            diagnostic=reason,
        )
        logger.warning("store unreachable, keeping result locally attempt_id=%s", attempt.id)
        try:
            self.fallback_store.put(attempt.id, result)
        except Exception:
            logger.exception("failed to persist fallback result attempt_id=%s", attempt.id)
        return self._complete(attempt, result)

    def _complete(self, attempt: AttemptDraft, result: SubmissionResult) -> SubmissionResult:
        attempt.score = result.score
        attempt.total_points = result.total_points
        attempt.percentage_score = result.percentage_score
        attempt.passed = result.passed
        attempt.certificate_id = result.certificate_id
        attempt.status = AttemptStatus.COMPLETED
        self._results[attempt.id] = result
        return result

    def _previous_result(self, attempt: AttemptDraft) -> SubmissionResult:
        stored = self.result_for(attempt.id)
        if stored is not None:
            return stored
        # Completed on the server before this session loaded it.
        return SubmissionResult(
            attempt_id=attempt.id,
            quiz_id=attempt.quiz_id,
            is_server_confirmed=True,
            certificate_id=attempt.certificate_id,
            score=attempt.score or 0,
            total_points=attempt.total_points or 0,
            percentage_score=attempt.percentage_score or 0,
            passed=attempt.passed,
            violation_count=attempt.violation_count,
            submitted_at=attempt.end_time or utcnow(),
            answers=dict(attempt.answers),
        )

    # ----- Abandon -----

    async def abandon(self, attempt: AttemptDraft) -> None:
        """Best effort: a locked session is final whether or not the store hears about it."""
        if not attempt.is_open:
            return
        attempt.status = AttemptStatus.ABANDONED
        self._abandoned.add(attempt.id)
        try:
            self.fallback_store.mark_abandoned(attempt.id, attempt.violation_count)
        except Exception:
            logger.exception("failed to persist abandoned attempt_id=%s", attempt.id)
        try:
            await self.gateway.abandon_attempt(attempt.id, attempt.violation_count)
        except ProctorError as exc:
            logger.warning("abandon not recorded attempt_id=%s error=%s", attempt.id, exc)
