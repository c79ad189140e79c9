"""
Progress store endpoints and explicit reconciliation.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from portal.config import get_db
from portal.schemas.progress_schemas import (
    ProgressCreateRequest,
    ProgressResponse,
    ProgressUpdateRequest,
    SyncProgressResponse,
)
from portal.schemas.user_schemas import User
from portal.services.progress_service import ProgressService
from portal.utils.auth import ensure_user_access, get_current_user, require_user_access
from portal.utils.responses import progress_response

progress_routes = APIRouter()


@progress_routes.get(
    "/progress/{user_id}",
    response_model=ProgressResponse,
    dependencies=[Depends(require_user_access)],
)
async def get_progress(user_id: int, db: Session = Depends(get_db)) -> ProgressResponse:
    progress = ProgressService(db).get(user_id)
    if progress is None:
        raise HTTPException(status_code=404, detail="Progress not found")
    return progress_response(progress)


@progress_routes.post("/progress", response_model=ProgressResponse)
async def create_progress(
    body: ProgressCreateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ProgressResponse:
    ensure_user_access(current_user, body.user_id)
    fields = body.model_dump(exclude_unset=True, exclude={"user_id"})
    return progress_response(ProgressService(db).create(body.user_id, fields))


@progress_routes.put(
    "/progress/{user_id}",
    response_model=ProgressResponse,
    dependencies=[Depends(require_user_access)],
)
async def update_progress(user_id: int, body: ProgressUpdateRequest, db: Session = Depends(get_db)) -> ProgressResponse:
    """
    Merge the supplied fields into the stored row as-is, without reconciliation.
    Accepts the legacy day-based field names as well.
    """
    progress = ProgressService(db).update(user_id, body.model_dump(exclude_unset=True))
    if progress is None:
        raise HTTPException(status_code=404, detail="Progress not found")
    return progress_response(progress)


@progress_routes.post(
    "/sync-progress/{user_id}",
    response_model=SyncProgressResponse,
    dependencies=[Depends(require_user_access)],
)
async def sync_progress(user_id: int, db: Session = Depends(get_db)) -> SyncProgressResponse:
    """Recompute progress from the evaluation history."""
    progress = ProgressService(db).sync(user_id)
    return SyncProgressResponse(success=True, message="Progress synchronized", progress=progress_response(progress))
