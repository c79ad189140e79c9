"""
Evaluation endpoints: attempt gate, deadline check, submission and history.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portal.config import get_db, settings
from portal.schemas.evaluation_schemas import (
    AttemptCheckResponse,
    DeadlineResponse,
    EvaluationResponse,
    EvaluationSubmitRequest,
    OutcomeHistoryResponse,
    SubmitEvaluationData,
    SubmitEvaluationResponse,
)
from portal.schemas.user_schemas import User
from portal.services.attempt_gate import AttemptDecision, AttemptGate
from portal.services.deadline_service import DeadlineTracker
from portal.services.evaluation_service import AttemptLimitExceeded, EvaluationService
from portal.services.progress_service import ProgressService
from portal.utils.auth import ensure_user_access, get_current_user, require_user_access
from portal.utils.common import iso_format, iso_or_none
from portal.utils.logger import get_logger
from portal.utils.responses import evaluation_response, outcome_response

evaluation_routes = APIRouter()
logger = get_logger(__name__)

RATE_LIMIT_MESSAGE = "Limit of {limit} attempts in {hours} hours reached. Try again later."


def _attempt_response(decision: AttemptDecision) -> AttemptCheckResponse:
    if decision.can_attempt:
        return AttemptCheckResponse(can_attempt=True)
    return AttemptCheckResponse(
        can_attempt=False,
        remaining_time=decision.remaining_time_ms,
        message=RATE_LIMIT_MESSAGE.format(limit=decision.max_attempts, hours=settings.attempt_window_hours),
        last_attempt=iso_or_none(decision.last_attempt),
        next_attempt_at=iso_or_none(decision.next_attempt_at),
        attempt_count=decision.attempt_count,
        max_attempts=decision.max_attempts,
    )


@evaluation_routes.get(
    "/check-attempts/{user_id}/{module_id}",
    response_model=AttemptCheckResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(require_user_access)],
)
async def check_attempts(user_id: int, module_id: int, db: Session = Depends(get_db)) -> AttemptCheckResponse:
    """Whether the user may start another evaluation of this module now."""
    if not 1 <= module_id <= settings.module_count:
        raise HTTPException(status_code=400, detail=f"moduleId must be between 1 and {settings.module_count}")
    return _attempt_response(AttemptGate(db).check(user_id, module_id))


@evaluation_routes.get(
    "/check-deadline/{user_id}",
    response_model=DeadlineResponse,
    dependencies=[Depends(require_user_access)],
)
async def check_deadline(user_id: int, db: Session = Depends(get_db)) -> DeadlineResponse:
    """Completion deadline status. Resets progress the first time the deadline is found expired."""
    status = DeadlineTracker(db).check(user_id)
    return DeadlineResponse(is_expired=status.is_expired, deadline=iso_format(status.deadline))


@evaluation_routes.post("/evaluations", response_model=SubmitEvaluationResponse)
async def submit_evaluation(
    body: EvaluationSubmitRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Record one quiz attempt, then reconcile the user's progress."""
    ensure_user_access(current_user, body.user_id)
    try:
        evaluation, outcome = EvaluationService(db).submit(body)
    except AttemptLimitExceeded as exc:
        content = _attempt_response(exc.decision).model_dump(by_alias=True, exclude_none=True)
        return JSONResponse(status_code=429, content=content)

    # The attempt is committed; a failed sync heals on the next login or explicit sync.
    try:
        ProgressService(db).sync(body.user_id)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("progress sync after evaluation failed user_id=%s", body.user_id)

    return SubmitEvaluationResponse(
        success=True,
        message="Evaluation saved",
        data=SubmitEvaluationData(
            evaluation=evaluation_response(evaluation),
            avaliacao_user=outcome_response(outcome),
        ),
    )


@evaluation_routes.get(
    "/evaluations/{user_id}",
    response_model=list[EvaluationResponse],
    dependencies=[Depends(require_user_access)],
)
async def evaluation_history(
    user_id: int,
    module_id: Optional[int] = Query(None, alias="moduleId"),
    db: Session = Depends(get_db),
) -> list[EvaluationResponse]:
    """A user's attempts, newest first, optionally for one module."""
    return [evaluation_response(e) for e in EvaluationService(db).history(user_id, module_id)]


@evaluation_routes.get(
    "/avaliacao/{user_id}",
    response_model=OutcomeHistoryResponse,
    dependencies=[Depends(require_user_access)],
)
async def outcome_history(user_id: int, db: Session = Depends(get_db)) -> OutcomeHistoryResponse:
    return OutcomeHistoryResponse(
        success=True,
        data=[outcome_response(o) for o in EvaluationService(db).outcome_history(user_id)],
    )
