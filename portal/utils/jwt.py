from datetime import timedelta
from typing import Optional

import bcrypt
from fastapi import HTTPException, status
from jose import JWTError
from jose.jwt import encode, decode

from portal.config import settings
from portal.schemas.auth_schemas import AuthTokenPayload
from portal.utils.common import utcnow
from portal.utils.logger import get_logger

logger = get_logger(__name__)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        logger.warning("stored password hash is malformed")
        return False


def get_password_hash(password: str) -> str:
    """Hash a password for storing."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def create_access_token(data: AuthTokenPayload) -> str:
    """Create a JWT access token. Missing exp defaults to the configured lifetime."""
    if data.exp is None:
        data = data.model_copy(update={"exp": utcnow() + timedelta(minutes=settings.access_token_expire_minutes)})
    return encode(data.model_dump(exclude_none=True), settings.secret_key, algorithm=settings.jwt_algorithm)


def verify_token(token: Optional[str]) -> AuthTokenPayload:
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")
    try:
        payload = decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
        return AuthTokenPayload(sub=str(payload["sub"]), role=payload.get("role"))
    except (JWTError, KeyError) as e:
        logger.info("rejected token: %s", e)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
