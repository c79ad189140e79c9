"""
Login history endpoints (consecutive-day streak shown on the achievements panel).
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from portal.config import get_db
from portal.schemas.user_schemas import ConsecutiveDaysResponse, UserLoginsResponse
from portal.services.user_service import UserService
from portal.utils.auth import require_user_access
from portal.utils.responses import login_response

user_routes = APIRouter()


@user_routes.get(
    "/consecutive-days/{user_id}",
    response_model=ConsecutiveDaysResponse,
    dependencies=[Depends(require_user_access)],
)
async def consecutive_days(user_id: int, db: Session = Depends(get_db)) -> ConsecutiveDaysResponse:
    streak, days, total = UserService(db).consecutive_days(user_id)
    return ConsecutiveDaysResponse(
        success=True,
        consecutive_days=streak,
        total_logins=total,
        login_dates=[d.isoformat() for d in days],
    )


@user_routes.get(
    "/user-logins/{user_id}",
    response_model=UserLoginsResponse,
    dependencies=[Depends(require_user_access)],
)
async def user_logins(user_id: int, db: Session = Depends(get_db)) -> UserLoginsResponse:
    logins = UserService(db).login_history(user_id)
    return UserLoginsResponse(success=True, logins=[login_response(l) for l in logins], total_logins=len(logins))
