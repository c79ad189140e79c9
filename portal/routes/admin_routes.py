"""
Admin panel endpoints: user management and evaluation reporting.
Every route requires a session whose user has the admin role.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from portal.config import get_db, settings
from portal.schemas.evaluation_schemas import EvaluationResponse, ModuleStatsResponse, UserEvaluationDataResponse
from portal.schemas.user_schemas import AdminUpdateUserRequest, AdminUserResponse, User, UserResponse
from portal.services.evaluation_service import EvaluationService
from portal.services.progress_service import ProgressService
from portal.services.user_service import UserService
from portal.utils.auth import require_admin
from portal.utils.responses import evaluation_response, progress_response, user_response

admin_routes = APIRouter(dependencies=[Depends(require_admin)])


@admin_routes.get("/users", response_model=list[UserResponse])
async def list_users(db: Session = Depends(get_db)) -> list[UserResponse]:
    return [user_response(u) for u in UserService(db).list_users()]


@admin_routes.put("/users/{user_id}", response_model=AdminUserResponse)
async def update_user(user_id: int, body: AdminUpdateUserRequest, db: Session = Depends(get_db)) -> AdminUserResponse:
    """Update name, email and role; the password only changes when one is supplied."""
    user = UserService(db).update_user(user_id, body.username, body.email, body.profile, password=body.password or None)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return AdminUserResponse(success=True, message="User updated", user=user_response(user))


@admin_routes.delete("/users/{user_id}", response_model=AdminUserResponse)
async def delete_user(
    user_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> AdminUserResponse:
    if user_id == current_user.id:
        raise HTTPException(status_code=400, detail="Administrators cannot delete their own account")
    if not UserService(db).delete_user(user_id):
        raise HTTPException(status_code=404, detail="User not found")
    return AdminUserResponse(success=True, message="User deleted")


@admin_routes.get("/all-evaluations", response_model=list[EvaluationResponse])
async def all_evaluations(db: Session = Depends(get_db)) -> list[EvaluationResponse]:
    return [evaluation_response(e) for e in EvaluationService(db).all_evaluations()]


@admin_routes.get("/user-evaluations/{user_id}", response_model=UserEvaluationDataResponse)
async def user_evaluations(user_id: int, db: Session = Depends(get_db)) -> UserEvaluationDataResponse:
    service = EvaluationService(db)
    evaluations = service.history(user_id)
    progress = ProgressService(db).get(user_id)
    return UserEvaluationDataResponse(
        evaluations=[evaluation_response(e) for e in evaluations],
        total_attempts=len(evaluations),
        current_module=progress.current_module if progress else 1,
        attempts_by_module={
            key: [evaluation_response(e) for e in group] for key, group in service.attempts_by_module(user_id).items()
        },
        user_progress=progress_response(progress) if progress else None,
    )


@admin_routes.get("/module-stats/{module_number}", response_model=ModuleStatsResponse)
async def module_stats(module_number: int, db: Session = Depends(get_db)) -> ModuleStatsResponse:
    if not 1 <= module_number <= settings.module_count:
        raise HTTPException(status_code=400, detail=f"moduleNumber must be between 1 and {settings.module_count}")
    return ModuleStatsResponse(**EvaluationService(db).module_stats(module_number))
