"""
Integration test fixtures. Overrides get_db for API tests with in-memory DB.
"""
import pytest
from sqlalchemy.orm import sessionmaker


@pytest.fixture
def session_factory(in_memory_engine):
    from api.config import Base
    import api.models  # noqa: F401
    Base.metadata.create_all(in_memory_engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=in_memory_engine)


@pytest.fixture
def override_get_db(session_factory):
    """get_db replacement bound to the in-memory engine."""
    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    return _get_db


@pytest.fixture
def api_client(override_get_db):
    """FastAPI TestClient with in-memory DB override."""
    from fastapi.testclient import TestClient
    from api.api import app
    from api.config import get_db
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def seed(session_factory, quiz_payload):
    """Insert rows directly: seed.user(email), seed.quiz(**quiz_payload kwargs)."""
    from api.models.models import Quiz, User

    class _Seeder:
        def user(self, email: str = "student@example.com", name: str = "Test Student") -> User:
            with session_factory() as db:
                user = User(email=email, preferences={"name": name})
                db.add(user)
                db.commit()
                db.refresh(user)
                db.expunge(user)
                return user

        def quiz(self, *, certificate_expiry_days=None, **kwargs) -> Quiz:
            data = quiz_payload(**kwargs)
            with session_factory() as db:
                quiz = Quiz(
                    id=data["id"],
                    title=data["title"],
                    course_title=data["courseTitle"],
                    duration_minutes=data["durationMinutes"],
                    passing_score_percent=data["passingScorePercent"],
                    total_points=data["totalPoints"],
                    certificate_eligible=data["certificateEligible"],
                    certificate_expiry_days=certificate_expiry_days,
                    questions=data["questions"],
                )
                db.add(quiz)
                db.commit()
                db.refresh(quiz)
                db.expunge(quiz)
                return quiz

    return _Seeder()


@pytest.fixture
def auth_headers():
    """Bearer header factory for a seeded user's email."""
    from api.schemas.auth_schemas import AuthTokenPayload
    from api.utils.jwt import create_access_token

    def _headers(email: str) -> dict:
        return {"Authorization": f"Bearer {create_access_token(AuthTokenPayload(sub=email))}"}

    return _headers


@pytest.fixture
def student(seed, auth_headers):
    user = seed.user()
    return user, auth_headers(user.email)


@pytest.fixture
def quiz(seed):
    return seed.quiz()
