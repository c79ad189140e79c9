"""
ORM row -> API schema conversion shared by several routers.
"""

from portal.models.models import Certificate, EvaluationOutcome, ModuleEvaluation, OnboardingProgress, User, UserLogin
from portal.schemas.certificate_schemas import CertificateResponse
from portal.schemas.evaluation_schemas import EvaluationOutcomeResponse, EvaluationResponse
from portal.schemas.progress_schemas import ModuleSummary, ProgressResponse
from portal.schemas.user_schemas import LoginRecordResponse, UserResponse
from portal.utils.common import iso_format, iso_or_none


def progress_response(p: OnboardingProgress) -> ProgressResponse:
    return ProgressResponse(
        user_id=p.user_id,
        current_module=p.current_module or 1,
        completed_modules=list(p.completed_modules or []),
        module_progress=dict(p.module_progress or {}),
        module_evaluations={k: ModuleSummary.model_validate(v) for k, v in (p.module_evaluations or {}).items()},
        completed_at=iso_or_none(p.completed_at),
        deadline=iso_or_none(p.deadline),
        is_expired=bool(p.is_expired),
        reset_at=iso_or_none(p.reset_at),
        created_at=iso_format(p.created_at),
        updated_at=iso_format(p.updated_at),
    )


def evaluation_response(e: ModuleEvaluation) -> EvaluationResponse:
    return EvaluationResponse(
        id=e.id,
        user_id=e.user_id,
        module_id=e.module_id,
        attempt_number=e.attempt_number,
        score=e.score,
        total_questions=e.total_questions,
        correct_answers=e.correct_answers,
        passed=bool(e.passed),
        answers=dict(e.answers or {}),
        time_spent=e.time_spent,
        completed_at=iso_format(e.completed_at),
    )


def outcome_response(o: EvaluationOutcome) -> EvaluationOutcomeResponse:
    return EvaluationOutcomeResponse(id=o.id, user_id=o.user_id, passed=bool(o.passed), created_at=iso_format(o.created_at))


def certificate_response(c: Certificate) -> CertificateResponse:
    return CertificateResponse(
        certificate_id=c.certificate_id,
        user_id=c.user_id,
        user_name=c.user_name,
        course_name=c.course_name,
        completion_date=iso_format(c.completion_date),
        certificate_url=c.certificate_url,
        revoked_at=iso_or_none(c.revoked_at),
        created_at=iso_format(c.created_at),
    )


def user_response(u: User) -> UserResponse:
    return UserResponse(
        id=u.id,
        username=u.username,
        user_mail=u.email,
        user_profile=u.role,
        created_at=iso_or_none(u.created_at),
    )


def login_response(login: UserLogin) -> LoginRecordResponse:
    return LoginRecordResponse(
        id=login.id,
        login_at=iso_format(login.login_at),
        ip_address=login.ip_address,
        user_agent=login.user_agent,
    )
