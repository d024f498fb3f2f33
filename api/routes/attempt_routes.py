"""
Attempt lifecycle endpoints: start, fetch, list, submit, abandon.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api.config import get_db
from api.schemas.attempt_schemas import (
    AbandonAttemptRequest,
    AttemptRecord,
    StartAttemptRequest,
    SubmitAttemptRequest,
    SubmitAttemptResponse,
)
from api.schemas.user_schemas import CurrentUser
from api.services.attempt_service import AttemptService
from api.utils.auth import get_current_user

attempt_routes = APIRouter()


@attempt_routes.post("/attempts/start", response_model=AttemptRecord, response_model_exclude_none=True)
async def start_attempt(
    req: StartAttemptRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> AttemptRecord:
    """Start (or resume) the caller's attempt for a quiz. One attempt per quiz and user."""
    return AttemptService(db).start_attempt(current_user, req.quiz_id)


@attempt_routes.get("/attempts", response_model=List[AttemptRecord], response_model_exclude_none=True)
async def list_attempts(
    quiz_id: Optional[str] = Query(None, alias="quizId"),
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> List[AttemptRecord]:
    """List the caller's attempts, newest first."""
    return AttemptService(db).list_attempts(current_user, quiz_id)


@attempt_routes.get("/attempts/{attempt_id}", response_model=AttemptRecord, response_model_exclude_none=True)
async def get_attempt(
    attempt_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> AttemptRecord:
    return AttemptService(db).get_attempt(current_user, attempt_id)


@attempt_routes.post(
    "/attempts/{attempt_id}/submit", response_model=SubmitAttemptResponse, response_model_exclude_none=True
)
async def submit_attempt(
    attempt_id: str,
    req: SubmitAttemptRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> SubmitAttemptResponse:
    """Score and complete an attempt. Idempotent once completed."""
    return AttemptService(db).submit_attempt(current_user, attempt_id, req)


@attempt_routes.post("/attempts/{attempt_id}/abandon", response_model=AttemptRecord, response_model_exclude_none=True)
async def abandon_attempt(
    attempt_id: str,
    req: AbandonAttemptRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> AttemptRecord:
    return AttemptService(db).abandon_attempt(current_user, attempt_id, req.violation_count)
