from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from portal.config import get_db
from portal.schemas.certificate_schemas import (
    CertificateResponse,
    GenerateCertificateRequest,
    GenerateCertificateResponse,
)
from portal.schemas.user_schemas import User
from portal.services.certificate_service import CertificateService
from portal.utils.auth import ensure_user_access, get_current_user
from portal.utils.responses import certificate_response

certificate_routes = APIRouter()


@certificate_routes.post("/generate-certificate", response_model=GenerateCertificateResponse)
async def generate_certificate(
    body: GenerateCertificateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> GenerateCertificateResponse:
    """
    Issue the user's certificate. Repeated calls return the active certificate;
    pass reissue=true to revoke it and mint a new one.
    """
    ensure_user_access(current_user, body.user_id)
    certificate, reissued = CertificateService(db).generate(body.user_id, body.user_name, reissue=body.reissue)
    return GenerateCertificateResponse(success=True, reissued=reissued, certificate=certificate_response(certificate))


@certificate_routes.get("/certificates/{certificate_id}", response_model=CertificateResponse)
async def get_certificate(certificate_id: str, db: Session = Depends(get_db)) -> CertificateResponse:
    """Public lookup by certificate id, used to verify a printed certificate."""
    certificate = CertificateService(db).get(certificate_id)
    if certificate is None:
        raise HTTPException(status_code=404, detail="Certificate not found")
    return certificate_response(certificate)
