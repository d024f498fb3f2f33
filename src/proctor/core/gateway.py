from abc import ABC, abstractmethod
from typing import Optional

from proctor.core.types import QuizDefinition
from proctor.core.wire import AttemptRecord, SubmitAttemptRequest, SubmitAttemptResponse


class AttemptGateway(ABC):
    """
    Contract to the attempt store.

    Implementations raise proctor.errors classes: NetworkError for transport
    failures and 5xx, AuthError for 401/403, NotFoundError for 404,
    ConflictError for 409, ValidationError for 400/422.
    """

    @abstractmethod
    async def get_quiz(self, quiz_id: str) -> QuizDefinition:
        raise NotImplementedError

    @abstractmethod
    async def start_attempt(self, quiz_id: str) -> AttemptRecord:
        raise NotImplementedError

    @abstractmethod
    async def find_attempt(self, quiz_id: str) -> Optional[AttemptRecord]:
        """The caller's stored attempt for this quiz, if any."""
        raise NotImplementedError

    @abstractmethod
    async def submit_attempt(
        self,
        attempt_id: str,
        payload: SubmitAttemptRequest,
        *,
        timeout: float,
    ) -> SubmitAttemptResponse:
        raise NotImplementedError

    @abstractmethod
    async def abandon_attempt(self, attempt_id: str, violation_count: int) -> None:
        raise NotImplementedError
