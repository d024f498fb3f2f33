import logging
from typing import Any, Dict, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel

from proctor.core.gateway import AttemptGateway
from proctor.core.types import QuizDefinition
from proctor.core.wire import (
    AbandonAttemptRequest,
    AttemptRecord,
    StartAttemptRequest,
    SubmitAttemptRequest,
    SubmitAttemptResponse,
)
from proctor.errors import (
    AuthError,
    ConflictError,
    NetworkError,
    NotFoundError,
    ProctorError,
    RequestError,
    ValidationError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


def _detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and "detail" in body:
        return str(body["detail"])
    return str(body)


def error_for_response(response: httpx.Response) -> ProctorError:
    """Map a non-2xx store response onto the engine error taxonomy."""
    status = response.status_code
    message = f"{response.request.method} {response.request.url.path} -> {status}: {_detail(response)}"
    if status >= 500:
        return NetworkError(message, status_code=status)
    if status in (401, 403):
        return AuthError(message, status_code=status)
    if status == 404:
        return NotFoundError(message, status_code=status)
    if status == 409:
        return ConflictError(message, status_code=status)
    if status in (400, 422):
        return ValidationError(message, status_code=status)
    return RequestError(message, status_code=status)


class HttpAttemptGateway(AttemptGateway):
    """
    httpx client for the attempt store. Every request carries the bearer token.
    Pass `transport` to run against an in-process app (httpx.ASGITransport) or a
    mock transport.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HttpAttemptGateway":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # ----- AttemptGateway -----

    async def get_quiz(self, quiz_id: str) -> QuizDefinition:
        response = await self._request("GET", f"/quizzes/{quiz_id}")
        return self._parse(QuizDefinition, response)

    async def start_attempt(self, quiz_id: str) -> AttemptRecord:
        body = StartAttemptRequest(quiz_id=quiz_id).to_wire()
        response = await self._request("POST", "/attempts/start", json=body)
        return self._parse(AttemptRecord, response)

    async def find_attempt(self, quiz_id: str) -> Optional[AttemptRecord]:
        response = await self._request("GET", "/attempts", params={"quizId": quiz_id})
        try:
            items = response.json()
            records = [AttemptRecord.model_validate(item) for item in items]
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"unexpected attempt list payload: {exc}") from exc
        return records[0] if records else None

    async def submit_attempt(
        self,
        attempt_id: str,
        payload: SubmitAttemptRequest,
        *,
        timeout: float,
    ) -> SubmitAttemptResponse:
        response = await self._request(
            "POST", f"/attempts/{attempt_id}/submit", json=payload.to_wire(), timeout=timeout
        )
        return self._parse(SubmitAttemptResponse, response)

    async def abandon_attempt(self, attempt_id: str, violation_count: int) -> None:
        body = AbandonAttemptRequest(violation_count=violation_count).to_wire()
        await self._request("POST", f"/attempts/{attempt_id}/abandon", json=body)

    # ----- Internals -----

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> httpx.Response:
        kwargs: Dict[str, Any] = {"json": json, "params": params}
        if timeout is not None:
            kwargs["timeout"] = timeout
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            raise NetworkError(f"{method} {path} timed out") from exc
        except httpx.HTTPError as exc:
            raise NetworkError(f"{method} {path} failed: {exc}") from exc

        if response.is_success:
            return response
        error = error_for_response(response)
        logger.debug("store error %s", error.message)
        raise error

    @staticmethod
    def _parse(model: Type[T], response: httpx.Response) -> T:
        try:
            return model.model_validate(response.json())
        except ValueError as exc:
            raise ValidationError(f"unexpected {model.__name__} payload: {exc}") from exc
