"""
SQLAlchemy-backed LocalFallbackStore.

One row per attempt id holding the full SubmissionResult as JSON. Writing the
same attempt twice replaces the row. Locked attempts are kept in a second
table so a restarted client still refuses to reopen them.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import Column, DateTime, Integer, String, Text, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from proctor.core.fallback_store import LocalFallbackStore
from proctor.core.types import SubmissionResult

FallbackBase = declarative_base()


class FallbackRecord(FallbackBase):
    __tablename__ = "fallback_results"
    attempt_id = Column(String, primary_key=True, index=True)
    quiz_id = Column(String, index=True, nullable=False)
    certificate_id = Column(String, nullable=True)
    payload = Column(Text, nullable=False)  # SubmissionResult JSON (camelCase)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), nullable=False)


class AbandonedRecord(FallbackBase):
    __tablename__ = "fallback_abandoned"
    attempt_id = Column(String, primary_key=True, index=True)
    violation_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), nullable=False)


class SqlFallbackStore(LocalFallbackStore):
    def __init__(self, url: str = "sqlite:///./proctor-fallback.db", *, engine: Optional[Engine] = None):
        if engine is None:
            connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
            engine = create_engine(url, connect_args=connect_args)
        self.engine = engine
        FallbackBase.metadata.create_all(bind=self.engine)
        self._sessions = sessionmaker(autoflush=False, bind=self.engine)

    def put(self, attempt_id: str, result: SubmissionResult) -> None:
        with self._sessions() as db:
            db.merge(
                FallbackRecord(
                    attempt_id=attempt_id,
                    quiz_id=result.quiz_id,
                    certificate_id=result.certificate_id,
                    payload=result.model_dump_json(by_alias=True),
                )
            )
            db.commit()

    def get(self, attempt_id: str) -> Optional[SubmissionResult]:
        with self._sessions() as db:
            row = db.get(FallbackRecord, attempt_id)
            if row is None:
                return None
            return SubmissionResult.model_validate_json(row.payload)

    def list_ids(self) -> List[str]:
        with self._sessions() as db:
            rows = db.query(FallbackRecord.attempt_id).order_by(FallbackRecord.created_at.asc()).all()
            return [r.attempt_id for r in rows]

    def mark_abandoned(self, attempt_id: str, violation_count: int) -> None:
        with self._sessions() as db:
            db.merge(AbandonedRecord(attempt_id=attempt_id, violation_count=violation_count))
            db.commit()

    def is_abandoned(self, attempt_id: str) -> bool:
        with self._sessions() as db:
            return db.get(AbandonedRecord, attempt_id) is not None
