"""
Request/response shapes exchanged with the attempt store.

This is the one documented payload contract; the backend schemas re-export
these models so client and server cannot drift apart.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from proctor.core.types import AttemptStatus, CamelModel


class StartAttemptRequest(CamelModel):
    quiz_id: str


class AttemptRecord(CamelModel):
    """Stored attempt as returned by start/get/list."""

    attempt_id: str
    quiz_id: str
    status: AttemptStatus
    start_time: datetime
    duration_minutes: int
    total_questions: int
    violation_count: int = 0
    end_time: Optional[datetime] = None
    score: Optional[int] = None
    total_points: Optional[int] = None
    percentage_score: Optional[int] = None
    passed: Optional[bool] = None
    certificate_id: Optional[str] = None


class SubmittedAnswer(CamelModel):
    question_id: str
    selected_option: str


class SubmissionMetadata(CamelModel):
    score: int
    total_points: int
    percentage_score: int
    passed: bool
    correct_answers: Optional[int] = None
    violation_count: int = 0


class SubmitAttemptRequest(CamelModel):
    """
    Full payload for the primary submit. The secondary submit sends only
    `answers`; times and metadata are optional on the server.
    """

    answers: List[SubmittedAnswer] = Field(default_factory=list)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    metadata: Optional[SubmissionMetadata] = None

    def reduced(self) -> "SubmitAttemptRequest":
        return SubmitAttemptRequest(answers=list(self.answers))


class SubmitAttemptResponse(CamelModel):
    attempt_id: str
    score: int
    percentage_score: int
    passed: bool
    certificate_id: Optional[str] = None


class AbandonAttemptRequest(CamelModel):
    violation_count: int = 0
