"""
Pytest configuration and shared fixtures for the test suite.
Ensures proper Python path and provides common fixtures for unit and integration tests.
"""
import os
import sys
import tempfile
from pathlib import Path

# Settings are read at import time of api.config; point them at throwaway targets first.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("LOG_DIR", str(Path(tempfile.gettempdir()) / "proctor-test-logs"))

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

# Add project root and src to Python path for imports
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))
src_path = project_root / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))


def _quiz_payload(
    *,
    quiz_id: str = "quiz-1",
    points=(2, 2),
    duration_minutes: int = 30,
    passing_score_percent: int = 50,
    certificate_eligible: bool = True,
) -> dict:
    """camelCase quiz definition; question i has options A/B/C with B correct."""
    return {
        "id": quiz_id,
        "title": "Python Basics",
        "courseTitle": "Intro to Python",
        "durationMinutes": duration_minutes,
        "passingScorePercent": passing_score_percent,
        "totalPoints": sum(points),
        "certificateEligible": certificate_eligible,
        "questions": [
            {
                "id": f"q{i + 1}",
                "type": "multiple-choice",
                "text": f"Question {i + 1}?",
                "points": p,
                "options": [
                    {"text": "A", "isCorrect": False},
                    {"text": "B", "isCorrect": True},
                    {"text": "C", "isCorrect": False},
                ],
            }
            for i, p in enumerate(points)
        ],
    }


@pytest.fixture
def quiz_payload():
    """Factory for camelCase quiz definition dicts."""
    return _quiz_payload


@pytest.fixture
def make_quiz():
    """Factory for QuizDefinition objects (see _quiz_payload for the shape)."""
    from proctor.core.types import QuizDefinition

    def _make(**kwargs):
        return QuizDefinition.model_validate(_quiz_payload(**kwargs))

    return _make


@pytest.fixture
def two_question_quiz(make_quiz):
    """Two questions worth 2 points each; passing score 50%."""
    return make_quiz()


# ----- In-memory DB (for tests that need DB without touching real DB) -----
@pytest.fixture
def in_memory_engine():
    """In-memory SQLite engine shared across connections and threads."""
    return create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
