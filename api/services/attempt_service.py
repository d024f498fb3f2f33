"""
Attempt store: quiz lookup, attempt lifecycle and certificate issuance.

Scores are always recomputed here with the same scoring rules the session
engine uses; client-side score metadata is only compared and logged.
"""

from datetime import timedelta
from typing import Dict, List, Optional, Tuple
from uuid import uuid4

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session as DBSession

from api.models.models import Attempt, Certificate, Quiz, User, utcnow
from api.schemas.attempt_schemas import AttemptRecord, SubmitAttemptRequest, SubmitAttemptResponse
from api.schemas.certificate_schemas import CertificateResponse, VerifyCertificateResponse
from api.schemas.user_schemas import CurrentUser
from api.utils.common import as_aware_utc, as_naive_utc, display_name, iso_format
from api.utils.logger import configure_logging, log_request
from proctor.core.certificates import generate_certificate_id, validate_certificate_id
from proctor.core.scoring import score_attempt
from proctor.core.types import AttemptStatus, QuizDefinition, ScoreBreakdown

logger = configure_logging()


def quiz_definition(quiz: Quiz) -> QuizDefinition:
    """Build the engine's QuizDefinition from a stored quiz row."""
    questions = quiz.questions or []
    total_points = quiz.total_points or sum(int(q.get("points", 1)) for q in questions if isinstance(q, dict))
    return QuizDefinition.model_validate(
        {
            "id": quiz.id,
            "title": quiz.title,
            "courseTitle": quiz.course_title,
            "durationMinutes": quiz.duration_minutes,
            "passingScorePercent": quiz.passing_score_percent,
            "totalPoints": total_points,
            "certificateEligible": bool(quiz.certificate_eligible),
            "questions": questions,
        }
    )


class AttemptService:
    """Attempt and certificate operations for one request-scoped DB session."""

    def __init__(self, db: DBSession):
        self.db = db

    # ----- Quizzes -----

    def get_quiz(self, quiz_id: str) -> QuizDefinition:
        return quiz_definition(self._quiz_row(quiz_id))

    # ----- Attempts -----

    def start_attempt(self, user: CurrentUser, quiz_id: str) -> AttemptRecord:
        """Create the caller's attempt for a quiz, or return the one that already exists (any status)."""
        with log_request(logger, f"start_attempt quiz={quiz_id} user={user.id}"):
            quiz = self._quiz_row(quiz_id)
            attempt = self._find_attempt(quiz_id, user.id)
            if attempt is not None:
                logger.info("reusing attempt=%s status=%s", attempt.id, attempt.status)
                return self._record(attempt, quiz)

            attempt = Attempt(
                id=str(uuid4()),
                quiz_id=quiz_id,
                user_id=user.id,
                status=AttemptStatus.IN_PROGRESS.value,
                answers={},
                start_time=utcnow(),
                violation_count=0,
            )
            self.db.add(attempt)
            try:
                self.db.commit()
            except IntegrityError:
                # Lost an insert race on (quiz_id, user_id); the winner's row is the attempt.
                self.db.rollback()
                attempt = self._find_attempt(quiz_id, user.id)
                if attempt is None:
                    raise
                logger.info("start race resolved to existing attempt=%s", attempt.id)
            return self._record(attempt, quiz)

    def get_attempt(self, user: CurrentUser, attempt_id: str) -> AttemptRecord:
        attempt = self._owned_attempt(user, attempt_id)
        return self._record(attempt, self._quiz_row(attempt.quiz_id))

    def list_attempts(self, user: CurrentUser, quiz_id: Optional[str] = None) -> List[AttemptRecord]:
        query = self.db.query(Attempt).filter(Attempt.user_id == user.id)
        if quiz_id:
            query = query.filter(Attempt.quiz_id == quiz_id)
        attempts = query.order_by(Attempt.start_time.desc()).all()
        quizzes: Dict[str, Quiz] = {}
        records = []
        for attempt in attempts:
            if attempt.quiz_id not in quizzes:
                quizzes[attempt.quiz_id] = self._quiz_row(attempt.quiz_id)
            records.append(self._record(attempt, quizzes[attempt.quiz_id]))
        return records

    def submit_attempt(
        self, user: CurrentUser, attempt_id: str, req: SubmitAttemptRequest
    ) -> SubmitAttemptResponse:
        """
        Score and complete an attempt. Accepts the full payload or the reduced
        `{answers}` form. Re-submitting a completed attempt returns the stored
        result unchanged.
        """
        with log_request(logger, f"submit_attempt attempt={attempt_id} user={user.id}"):
            attempt = self._owned_attempt(user, attempt_id)
            if attempt.status == AttemptStatus.COMPLETED.value:
                logger.info("attempt=%s already completed; returning stored result", attempt.id)
                return self._submit_response(attempt)
            if attempt.status == AttemptStatus.ABANDONED.value:
                raise HTTPException(status_code=409, detail="Attempt was abandoned")

            quiz_row = self._quiz_row(attempt.quiz_id)
            quiz = quiz_definition(quiz_row)
            answers = self._answers_by_index(quiz, req)
            breakdown = score_attempt(quiz, answers)
            if req.metadata is not None and req.metadata.score != breakdown.score:
                logger.warning(
                    "client score disagrees attempt=%s client=%s server=%s",
                    attempt.id,
                    req.metadata.score,
                    breakdown.score,
                )

            attempt.answers = {str(k): v for k, v in answers.items()}
            attempt.end_time = as_naive_utc(req.end_time) or utcnow()
            attempt.score = breakdown.score
            attempt.total_points = breakdown.total_points
            attempt.percentage_score = breakdown.percentage_score
            attempt.passed = breakdown.passed
            if req.metadata is not None:
                attempt.violation_count = max(attempt.violation_count or 0, req.metadata.violation_count)
            attempt.status = AttemptStatus.COMPLETED.value
            attempt.updated_at = utcnow()
            if breakdown.certificate_allowed:
                certificate = self._issue_certificate(attempt, quiz_row, breakdown)
                attempt.certificate_id = certificate.certificate_id
            self.db.add(attempt)
            self.db.commit()
            logger.info(
                "attempt=%s completed score=%s/%s pct=%s passed=%s certificate=%s",
                attempt.id,
                breakdown.score,
                breakdown.total_points,
                breakdown.percentage_score,
                breakdown.passed,
                attempt.certificate_id,
            )
            return self._submit_response(attempt)

    def abandon_attempt(self, user: CurrentUser, attempt_id: str, violation_count: int) -> AttemptRecord:
        """Mark an in-progress attempt abandoned; completed and abandoned attempts are left as they are."""
        with log_request(logger, f"abandon_attempt attempt={attempt_id} user={user.id}"):
            attempt = self._owned_attempt(user, attempt_id)
            if attempt.status == AttemptStatus.IN_PROGRESS.value:
                attempt.status = AttemptStatus.ABANDONED.value
                attempt.violation_count = max(attempt.violation_count or 0, violation_count)
                attempt.end_time = utcnow()
                attempt.updated_at = utcnow()
                self.db.add(attempt)
                self.db.commit()
            else:
                logger.info("abandon ignored attempt=%s status=%s", attempt.id, attempt.status)
            return self._record(attempt, self._quiz_row(attempt.quiz_id))

    # ----- Certificates -----

    def list_certificates(self, user: CurrentUser) -> List[CertificateResponse]:
        rows = (
            self.db.query(Certificate)
            .filter(Certificate.user_id == user.id, Certificate.status != "revoked")
            .order_by(Certificate.issued_at.desc())
            .all()
        )
        return [self._certificate_response(c) for c in rows]

    def verify_certificate(self, certificate_id: str) -> Tuple[int, VerifyCertificateResponse]:
        """Public check of a certificate id. Returns (http status, body)."""
        if not validate_certificate_id(certificate_id):
            return 404, VerifyCertificateResponse(valid=False, message="Invalid certificate id format")
        certificate = self.db.query(Certificate).filter(Certificate.certificate_id == certificate_id).first()
        if certificate is None:
            return 404, VerifyCertificateResponse(valid=False, message="Certificate not found")

        status = self._effective_status(certificate)
        if status == "expired":
            return 200, VerifyCertificateResponse(valid=False, status=status, message="Certificate has expired")
        if status != "active":
            return 200, VerifyCertificateResponse(valid=False, status=status, message=f"Certificate is {status}")
        return 200, VerifyCertificateResponse(
            valid=True, status=status, certificate=self._certificate_response(certificate)
        )

    # ----- Internals -----

    def _quiz_row(self, quiz_id: str) -> Quiz:
        quiz = self.db.query(Quiz).filter(Quiz.id == quiz_id).first()
        if quiz is None:
            raise HTTPException(status_code=404, detail="Quiz not found")
        return quiz

    def _find_attempt(self, quiz_id: str, user_id: int) -> Optional[Attempt]:
        return self.db.query(Attempt).filter(Attempt.quiz_id == quiz_id, Attempt.user_id == user_id).first()

    def _owned_attempt(self, user: CurrentUser, attempt_id: str) -> Attempt:
        attempt = self.db.query(Attempt).filter(Attempt.id == attempt_id).first()
        if attempt is None:
            raise HTTPException(status_code=404, detail="Attempt not found")
        if attempt.user_id != user.id:
            raise HTTPException(status_code=403, detail="Not authorized to access this attempt")
        return attempt

    @staticmethod
    def _answers_by_index(quiz: QuizDefinition, req: SubmitAttemptRequest) -> Dict[int, str]:
        index_by_id = {q.id: i for i, q in enumerate(quiz.questions)}
        answers: Dict[int, str] = {}
        for answer in req.answers:
            index = index_by_id.get(answer.question_id)
            if index is None:
                logger.debug("dropping answer for unknown question=%s", answer.question_id)
                continue
            answers[index] = answer.selected_option
        return answers

    def _issue_certificate(self, attempt: Attempt, quiz: Quiz, breakdown: ScoreBreakdown) -> Certificate:
        existing = (
            self.db.query(Certificate)
            .filter(Certificate.quiz_id == quiz.id, Certificate.user_id == attempt.user_id)
            .first()
        )
        if existing is not None:
            return existing
        issued_at = utcnow()
        certificate = Certificate(
            id=str(uuid4()),
            certificate_id=generate_certificate_id(),
            quiz_id=quiz.id,
            user_id=attempt.user_id,
            attempt_id=attempt.id,
            title=f"{quiz.title} Certificate",
            score=breakdown.percentage_score,
            status="active",
            issued_at=issued_at,
            expires_at=issued_at + timedelta(days=quiz.certificate_expiry_days)
            if quiz.certificate_expiry_days
            else None,
        )
        self.db.add(certificate)
        logger.info("issued certificate=%s attempt=%s", certificate.certificate_id, attempt.id)
        return certificate

    @staticmethod
    def _effective_status(certificate: Certificate) -> str:
        if certificate.status == "active" and certificate.expires_at is not None and utcnow() > certificate.expires_at:
            return "expired"
        return certificate.status

    def _certificate_response(self, certificate: Certificate) -> CertificateResponse:
        user = self.db.query(User).filter(User.id == certificate.user_id).first()
        return CertificateResponse(
            certificate_id=certificate.certificate_id,
            title=certificate.title,
            recipient_name=display_name(user.email, user.preferences) if user else "",
            quiz_id=certificate.quiz_id,
            quiz_title=certificate.quiz.title if certificate.quiz else "",
            course_title=certificate.quiz.course_title if certificate.quiz else None,
            score=certificate.score,
            status=self._effective_status(certificate),
            issued_at=iso_format(certificate.issued_at),
            expires_at=iso_format(certificate.expires_at),
        )

    @staticmethod
    def _record(attempt: Attempt, quiz: Quiz) -> AttemptRecord:
        return AttemptRecord(
            attempt_id=attempt.id,
            quiz_id=attempt.quiz_id,
            status=AttemptStatus(attempt.status),
            start_time=as_aware_utc(attempt.start_time),
            duration_minutes=quiz.duration_minutes,
            total_questions=len(quiz.questions or []),
            violation_count=attempt.violation_count or 0,
            end_time=as_aware_utc(attempt.end_time),
            score=attempt.score,
            total_points=attempt.total_points,
            percentage_score=attempt.percentage_score,
            passed=attempt.passed if attempt.status == AttemptStatus.COMPLETED.value else None,
            certificate_id=attempt.certificate_id,
        )

    @staticmethod
    def _submit_response(attempt: Attempt) -> SubmitAttemptResponse:
        return SubmitAttemptResponse(
            attempt_id=attempt.id,
            score=attempt.score or 0,
            percentage_score=attempt.percentage_score or 0,
            passed=bool(attempt.passed),
            certificate_id=attempt.certificate_id,
        )
