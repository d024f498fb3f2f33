"""
Quiz definition endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.config import get_db
from api.schemas.quiz_schemas import QuizResponse
from api.schemas.user_schemas import CurrentUser
from api.services.attempt_service import AttemptService
from api.utils.auth import get_current_user

quiz_routes = APIRouter()


@quiz_routes.get("/quizzes/{quiz_id}", response_model=QuizResponse, response_model_exclude_none=True)
async def get_quiz(
    quiz_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> QuizResponse:
    """Fetch a quiz definition."""
    return AttemptService(db).get_quiz(quiz_id)
