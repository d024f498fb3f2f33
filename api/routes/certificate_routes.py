"""
Certificate endpoints. Verification is public.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from api.config import get_db
from api.schemas.certificate_schemas import CertificateListResponse, VerifyCertificateResponse
from api.schemas.user_schemas import CurrentUser
from api.services.attempt_service import AttemptService
from api.utils.auth import get_current_user

certificate_routes = APIRouter()


@certificate_routes.get("/certificates", response_model=CertificateListResponse, response_model_exclude_none=True)
async def list_certificates(
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> CertificateListResponse:
    """List the caller's certificates (revoked ones excluded)."""
    return CertificateListResponse(certificates=AttemptService(db).list_certificates(current_user))


@certificate_routes.get("/certificates/{certificate_id}/verify", response_model=VerifyCertificateResponse)
async def verify_certificate(certificate_id: str, db: Session = Depends(get_db)) -> JSONResponse:
    status_code, body = AttemptService(db).verify_certificate(certificate_id)
    return JSONResponse(status_code=status_code, content=body.to_wire())
