"""
Attempt schemas.

Request/response bodies are shared with the session engine (proctor.core.wire)
and use camelCase on the wire.
"""

from proctor.core.wire import (
    AbandonAttemptRequest,
    AttemptRecord,
    StartAttemptRequest,
    SubmissionMetadata,
    SubmitAttemptRequest,
    SubmitAttemptResponse,
    SubmittedAnswer,
)

__all__ = [
    "AbandonAttemptRequest",
    "AttemptRecord",
    "StartAttemptRequest",
    "SubmissionMetadata",
    "SubmitAttemptRequest",
    "SubmitAttemptResponse",
    "SubmittedAnswer",
]
