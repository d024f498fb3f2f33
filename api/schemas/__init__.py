"""
API schemas package. Import from submodules or from this package.

Example:
    from api.schemas import AttemptRecord, VerifyCertificateResponse
    from api.schemas.attempt_schemas import SubmitAttemptRequest
"""

from api.schemas.auth_schemas import AuthTokenPayload
from api.schemas.user_schemas import CurrentUser
from api.schemas.quiz_schemas import QuizResponse
from api.schemas.attempt_schemas import (
    AbandonAttemptRequest,
    AttemptRecord,
    StartAttemptRequest,
    SubmissionMetadata,
    SubmitAttemptRequest,
    SubmitAttemptResponse,
    SubmittedAnswer,
)
from api.schemas.certificate_schemas import (
    CertificateListResponse,
    CertificateResponse,
    VerifyCertificateResponse,
)

__all__ = [
    # auth
    "AuthTokenPayload",
    # user
    "CurrentUser",
    # quiz
    "QuizResponse",
    # attempt
    "AbandonAttemptRequest",
    "AttemptRecord",
    "StartAttemptRequest",
    "SubmissionMetadata",
    "SubmitAttemptRequest",
    "SubmitAttemptResponse",
    "SubmittedAnswer",
    # certificate
    "CertificateListResponse",
    "CertificateResponse",
    "VerifyCertificateResponse",
]
