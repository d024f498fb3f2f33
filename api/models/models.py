from api.config import Base
from sqlalchemy import Column, Integer, String, JSON, DateTime, ForeignKey, Boolean, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC timestamp (stored as-is; serialized with a Z suffix)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    preferences = Column(JSON)


class Quiz(Base):
    __tablename__ = "quizzes"
    id = Column(String, primary_key=True, index=True)  # uuid
    title = Column(String, nullable=False)
    course_title = Column(String, nullable=True)
    duration_minutes = Column(Integer, default=60, nullable=False)
    passing_score_percent = Column(Integer, default=70, nullable=False)
    total_points = Column(Integer, default=0, nullable=False)
    certificate_eligible = Column(Boolean, default=True, nullable=False)
    certificate_expiry_days = Column(Integer, nullable=True)  # null means no expiry
    questions = Column(JSON, nullable=False)  # list of {id, type, text, options: [{text, isCorrect}], points}
    created_at = Column(DateTime, default=utcnow, nullable=False)

    attempts = relationship("Attempt", backref="quiz", cascade="all, delete-orphan")


class Attempt(Base):
    __tablename__ = "attempts"
    __table_args__ = (UniqueConstraint("quiz_id", "user_id", name="uq_attempts_quiz_user"),)

    id = Column(String, primary_key=True, index=True)  # uuid
    quiz_id = Column(String, ForeignKey("quizzes.id"), index=True, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    status = Column(String, default="in-progress", nullable=False)  # in-progress|completed|abandoned
    answers = Column(JSON, nullable=True)  # {question_index: selected option text}
    start_time = Column(DateTime, default=utcnow, nullable=False)
    end_time = Column(DateTime, nullable=True)
    score = Column(Integer, nullable=True)
    total_points = Column(Integer, nullable=True)
    percentage_score = Column(Integer, nullable=True)
    passed = Column(Boolean, default=False, nullable=False)
    violation_count = Column(Integer, default=0, nullable=False)
    certificate_id = Column(String, nullable=True)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    user = relationship("User", backref="attempts", foreign_keys=[user_id])


class Certificate(Base):
    __tablename__ = "certificates"
    __table_args__ = (UniqueConstraint("quiz_id", "user_id", name="uq_certificates_quiz_user"),)

    id = Column(String, primary_key=True, index=True)  # uuid
    certificate_id = Column(String, unique=True, index=True, nullable=False)  # CERT-<ms>-<hex>
    quiz_id = Column(String, ForeignKey("quizzes.id"), index=True, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    attempt_id = Column(String, ForeignKey("attempts.id"), nullable=False)
    title = Column(String, nullable=False)
    score = Column(Integer, nullable=False)
    status = Column(String, default="active", nullable=False)  # active|expired|revoked
    issued_at = Column(DateTime, default=utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=True)

    user = relationship("User", backref="certificates", foreign_keys=[user_id])
    quiz = relationship("Quiz", foreign_keys=[quiz_id])
