from typing import Optional

from fastapi import Cookie, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from portal.config import get_db, settings
from portal.models.models import User as DbUser
from portal.schemas.auth_schemas import AuthTokenPayload, AuthUser
from portal.schemas.user_schemas import User
from portal.utils.jwt import create_access_token, get_password_hash, verify_password, verify_token
from portal.utils.logger import get_logger

logger = get_logger(__name__)

AUTH_COOKIE = "access_token"


def get_current_user(access_token: Optional[str] = Cookie(None), db: Session = Depends(get_db)) -> User:
    """Resolve the caller from the session cookie. Raises 401 if it is missing or stale."""
    if not access_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")

    payload = verify_token(access_token)
    user = db.get(DbUser, int(payload.sub)) if payload.sub.isdigit() else None
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return User(id=user.id, username=user.username, email=user.email, role=user.role)


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != "admin":
        logger.warning("admin access denied user_id=%s", current_user.id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Only administrators can use this feature.",
        )
    return current_user


def ensure_user_access(current_user: User, user_id: int) -> None:
    """Collaborators may only read or change their own onboarding data; admins may act on anyone's."""
    if current_user.role == "admin" or current_user.id == user_id:
        return
    logger.warning("cross-user access denied caller_id=%s target_user_id=%s", current_user.id, user_id)
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Access denied. You can only access your own onboarding data.",
    )


def require_user_access(user_id: int, current_user: User = Depends(get_current_user)) -> User:
    """Route dependency for paths carrying a {user_id} segment."""
    ensure_user_access(current_user, user_id)
    return current_user


def set_auth_cookie(response: Response, user: DbUser) -> None:
    token = create_access_token(AuthTokenPayload(sub=str(user.id), role=user.role))
    response.set_cookie(
        key=AUTH_COOKIE,
        value=token,
        httponly=True,
        secure=False,
        samesite="lax",
        max_age=settings.access_token_expire_minutes * 60,
    )


def clear_auth_cookie(response: Response) -> None:
    response.delete_cookie(key=AUTH_COOKIE, httponly=True, secure=False, samesite="lax")


def to_auth_user(user: DbUser) -> AuthUser:
    return AuthUser(user_id=str(user.id), name=user.username, email=user.email, profile=user.role)


def get_user_by_email(email: str, db: Session) -> DbUser | None:
    return db.query(DbUser).filter(DbUser.email == email.strip().lower()).first()


def create_user(
    username: str,
    email: str,
    password: str,
    db: Session,
    role: str = "collaborator",
    address: Optional[str] = None,
    phone: Optional[str] = None,
) -> DbUser:
    user = DbUser(
        username=username.strip(),
        email=email.strip().lower(),
        hashed_password=get_password_hash(password),
        role=role,
        address=address,
        phone=phone,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("user created user_id=%s role=%s", user.id, role)
    return user


def authenticate_user(email: str, password: str, db: Session) -> DbUser | None:
    user = get_user_by_email(email, db)
    if not user or not verify_password(password, user.hashed_password):
        return None
    return user
