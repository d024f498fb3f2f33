"""
Core data types for a proctored assessment session.

QuizDefinition and the score/submission models are pydantic models because
they cross the wire (camelCase aliases). AttemptDraft is a plain mutable
dataclass owned by exactly one SessionController.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from proctor.errors import FrozenAttemptError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple-choice"
    TRUE_FALSE = "true-false"


class AttemptStatus(str, Enum):
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class QuestionOption(CamelModel):
    text: str
    is_correct: bool = False


class Question(CamelModel):
    id: str
    type: QuestionType = QuestionType.MULTIPLE_CHOICE
    text: str
    options: List[QuestionOption]
    points: int = Field(default=1, ge=0)

    @model_validator(mode="after")
    def _exactly_one_correct(self) -> "Question":
        if not self.options:
            raise ValueError(f"question {self.id} has no options")
        correct = sum(1 for o in self.options if o.is_correct)
        if correct != 1:
            raise ValueError(f"question {self.id} must have exactly one correct option, found {correct}")
        return self

    @property
    def correct_option(self) -> QuestionOption:
        return next(o for o in self.options if o.is_correct)


class QuizDefinition(CamelModel):
    """Read-only quiz definition owned by course content."""

    id: str
    title: str
    duration_minutes: int = Field(default=60, gt=0)
    passing_score_percent: int = Field(default=70, ge=0, le=100)
    total_points: int = 0
    certificate_eligible: bool = True
    course_title: Optional[str] = None
    questions: List[Question]

    @property
    def duration_seconds(self) -> int:
        return self.duration_minutes * 60


class QuestionResult(CamelModel):
    question_id: str
    question: str
    submitted_answer: Optional[str] = None
    correct_answer: str
    is_correct: bool
    points: int


class ScoreBreakdown(CamelModel):
    quiz_id: str
    score: int
    total_points: int
    percentage_score: int
    passed: bool
    passing_score_percent: int
    certificate_eligible: bool
    correct_answers: int
    total_questions: int
    question_results: List[QuestionResult] = Field(default_factory=list)

    @property
    def certificate_allowed(self) -> bool:
        return self.passed and self.certificate_eligible


class SubmissionResult(CamelModel):
    """Outcome of one submission, server-confirmed or held locally."""

    attempt_id: str
    quiz_id: str
    is_server_confirmed: bool
    certificate_id: Optional[str] = None
    score: int
    total_points: int
    percentage_score: int
    passed: bool
    violation_count: int = 0
    submitted_at: datetime
    answers: Dict[int, str] = Field(default_factory=dict)
    breakdown: Optional[ScoreBreakdown] = None
    diagnostic: Optional[str] = None


@dataclass
class AttemptDraft:
    """
    In-memory copy of an Attempt for one browser session.

    Derived from the stored record on load, never aliased to it. Once status is
    COMPLETED every further assignment raises FrozenAttemptError; `status` is
    declared last so a completed record can still be constructed.
    """

    id: str
    quiz_id: str
    answers: Dict[int, str] = field(default_factory=dict)
    start_time: datetime = field(default_factory=utcnow)
    end_time: Optional[datetime] = None
    score: Optional[int] = None
    total_points: Optional[int] = None
    percentage_score: Optional[int] = None
    passed: bool = False
    violation_count: int = 0
    certificate_id: Optional[str] = None
    status: AttemptStatus = AttemptStatus.IN_PROGRESS

    def __setattr__(self, name: str, value: Any) -> None:
        if getattr(self, "status", None) is AttemptStatus.COMPLETED:
            raise FrozenAttemptError(f"attempt {self.id} is completed; cannot set {name}")
        super().__setattr__(name, value)

    @property
    def is_completed(self) -> bool:
        return self.status is AttemptStatus.COMPLETED

    @property
    def is_open(self) -> bool:
        return self.status is AttemptStatus.IN_PROGRESS
