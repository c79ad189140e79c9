from typing import Optional

from pydantic import Field

from portal.schemas.base import CamelModel


class GenerateCertificateRequest(CamelModel):
    user_id: int
    user_name: str = Field(min_length=1)
    reissue: bool = False


class CertificateResponse(CamelModel):
    certificate_id: str
    user_id: int
    user_name: str
    course_name: str
    completion_date: str
    certificate_url: Optional[str] = None
    revoked_at: Optional[str] = None
    created_at: str


class GenerateCertificateResponse(CamelModel):
    success: bool
    reissued: bool = False
    certificate: CertificateResponse
