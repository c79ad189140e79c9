"""
API schemas package. Import from submodules or from this package.

Example:
    from portal.schemas import ProgressResponse, EvaluationSubmitRequest
    from portal.schemas.progress_schemas import ProgressResponse
"""

from portal.schemas.auth_schemas import (
    AuthTokenPayload,
    AuthUser,
    LoginRequest,
    LoginResponse,
    LogoutResponse,
    RegisterRequest,
    RegisterResponse,
)
from portal.schemas.user_schemas import (
    User,
    UserResponse,
    AdminUpdateUserRequest,
    AdminUserResponse,
    LoginRecordResponse,
    UserLoginsResponse,
    ConsecutiveDaysResponse,
)
from portal.schemas.progress_schemas import (
    ModuleSummary,
    ProgressCreateRequest,
    ProgressUpdateRequest,
    ProgressResponse,
    SyncProgressResponse,
)
from portal.schemas.evaluation_schemas import (
    EvaluationSubmitRequest,
    EvaluationResponse,
    EvaluationOutcomeResponse,
    SubmitEvaluationData,
    SubmitEvaluationResponse,
    AttemptCheckResponse,
    DeadlineResponse,
    OutcomeHistoryResponse,
    UserEvaluationDataResponse,
    ModuleStatsResponse,
)
from portal.schemas.certificate_schemas import (
    GenerateCertificateRequest,
    CertificateResponse,
    GenerateCertificateResponse,
)

__all__ = [
    # auth
    "AuthTokenPayload",
    "AuthUser",
    "LoginRequest",
    "LoginResponse",
    "LogoutResponse",
    "RegisterRequest",
    "RegisterResponse",
    # user
    "User",
    "UserResponse",
    "AdminUpdateUserRequest",
    "AdminUserResponse",
    "LoginRecordResponse",
    "UserLoginsResponse",
    "ConsecutiveDaysResponse",
    # progress
    "ModuleSummary",
    "ProgressCreateRequest",
    "ProgressUpdateRequest",
    "ProgressResponse",
    "SyncProgressResponse",
    # evaluation
    "EvaluationSubmitRequest",
    "EvaluationResponse",
    "EvaluationOutcomeResponse",
    "SubmitEvaluationData",
    "SubmitEvaluationResponse",
    "AttemptCheckResponse",
    "DeadlineResponse",
    "OutcomeHistoryResponse",
    "UserEvaluationDataResponse",
    "ModuleStatsResponse",
    # certificate
    "GenerateCertificateRequest",
    "CertificateResponse",
    "GenerateCertificateResponse",
]
