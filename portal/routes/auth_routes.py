from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portal.config import get_db
from portal.schemas.auth_schemas import LoginRequest, LoginResponse, LogoutResponse, RegisterRequest, RegisterResponse
from portal.schemas.user_schemas import User
from portal.services.progress_service import ProgressService
from portal.services.user_service import UserService
from portal.utils.auth import (
    authenticate_user,
    clear_auth_cookie,
    create_user,
    get_current_user,
    get_user_by_email,
    set_auth_cookie,
    to_auth_user,
)
from portal.utils.logger import get_logger

auth_routes = APIRouter()
logger = get_logger(__name__)


@auth_routes.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest, request: Request, response: Response, db: Session = Depends(get_db)) -> LoginResponse:
    """Authenticate, set the session cookie, record the login and reconcile progress."""
    user = authenticate_user(body.email, body.password, db)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    set_auth_cookie(response, user)

    # Bookkeeping below must never fail the login itself.
    try:
        UserService(db).record_login(
            user.id,
            ip_address=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
        )
    except SQLAlchemyError:
        db.rollback()
        logger.exception("failed to record login user_id=%s", user.id)
    try:
        ProgressService(db).sync(user.id)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("progress sync after login failed user_id=%s", user.id)

    return LoginResponse(success=True, user=to_auth_user(user))


@auth_routes.post("/register", response_model=RegisterResponse)
async def register(body: RegisterRequest, response: Response, db: Session = Depends(get_db)) -> RegisterResponse:
    """Register a new user and open a session for them."""
    if get_user_by_email(body.email, db):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="This email is already registered")

    user = create_user(
        body.username,
        body.email,
        body.password,
        db,
        role=body.profile,
        address=body.address,
        phone=body.phone,
    )
    set_auth_cookie(response, user)
    return RegisterResponse(success=True, user=to_auth_user(user))


@auth_routes.post("/logout", response_model=LogoutResponse)
async def logout(response: Response) -> LogoutResponse:
    clear_auth_cookie(response)
    return LogoutResponse(message="Logout successful")


@auth_routes.get("/me", response_model=User)
async def get_current_user_info(current_user: User = Depends(get_current_user)) -> User:
    return current_user
