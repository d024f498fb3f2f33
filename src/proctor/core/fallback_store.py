"""
Client-side durable fallback for submission results and locked attempts.

Used only when the store cannot be reached. A certificate-viewing feature
reads it later to reconcile offline certificates; reconciliation is not done
here.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from proctor.core.types import SubmissionResult


class LocalFallbackStore(ABC):
    """Key-value store of SubmissionResult keyed by attempt id."""

    @abstractmethod
    def put(self, attempt_id: str, result: SubmissionResult) -> None:
        raise NotImplementedError

    @abstractmethod
    def get(self, attempt_id: str) -> Optional[SubmissionResult]:
        raise NotImplementedError

    @abstractmethod
    def list_ids(self) -> List[str]:
        raise NotImplementedError

    @abstractmethod
    def mark_abandoned(self, attempt_id: str, violation_count: int) -> None:
        """Remember that a session on this attempt was locked."""
        raise NotImplementedError

    @abstractmethod
    def is_abandoned(self, attempt_id: str) -> bool:
        raise NotImplementedError


class InMemoryFallbackStore(LocalFallbackStore):
    """Keeps serialized copies so callers never share a mutable result."""

    def __init__(self):
        self._records: Dict[str, str] = {}
        self._abandoned: Dict[str, int] = {}

    def put(self, attempt_id: str, result: SubmissionResult) -> None:
        self._records[attempt_id] = result.model_dump_json(by_alias=True)

    def get(self, attempt_id: str) -> Optional[SubmissionResult]:
        raw = self._records.get(attempt_id)
        if raw is None:
            return None
        return SubmissionResult.model_validate_json(raw)

    def list_ids(self) -> List[str]:
        return list(self._records.keys())

    def mark_abandoned(self, attempt_id: str, violation_count: int) -> None:
        self._abandoned[attempt_id] = violation_count

    def is_abandoned(self, attempt_id: str) -> bool:
        return attempt_id in self._abandoned
