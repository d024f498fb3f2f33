"""
Certificate schemas.
"""

from typing import List, Optional

from proctor.core.types import CamelModel


class CertificateResponse(CamelModel):
    certificate_id: str
    title: str
    recipient_name: str
    quiz_id: str
    quiz_title: str
    course_title: Optional[str] = None
    score: int
    status: str
    issued_at: str
    expires_at: Optional[str] = None


class CertificateListResponse(CamelModel):
    certificates: List[CertificateResponse]


class VerifyCertificateResponse(CamelModel):
    valid: bool
    status: Optional[str] = None
    message: Optional[str] = None
    certificate: Optional[CertificateResponse] = None
