"""
User administration and login history.
"""

from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session as DBSession

from portal.models.models import User, UserLogin
from portal.utils.common import utcnow
from portal.utils.jwt import get_password_hash
from portal.utils.logger import get_logger

logger = get_logger(__name__)


def login_streak(login_days: Iterable[date], today: date) -> int:
    """Consecutive calendar days with a login, ending today (or yesterday if today has none yet)."""
    days = set(login_days)
    cursor = today if today in days else today - timedelta(days=1)
    streak = 0
    while cursor in days:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


class UserService:
    def __init__(self, db: DBSession):
        self.db = db

    def list_users(self) -> list[User]:
        return self.db.query(User).order_by(User.username.asc()).all()

    def update_user(
        self,
        user_id: int,
        username: str,
        email: str,
        role: str,
        password: Optional[str] = None,
    ) -> Optional[User]:
        user = self.db.get(User, user_id)
        if user is None:
            return None
        email = email.strip().lower()
        taken = self.db.query(User).filter(User.email == email, User.id != user_id).first()
        if taken is not None:
            raise HTTPException(status_code=400, detail="Email already in use")
        user.username = username.strip()
        user.email = email
        user.role = role
        if password:
            user.hashed_password = get_password_hash(password)
        self.db.commit()
        self.db.refresh(user)
        logger.info("user updated user_id=%s role=%s password_changed=%s", user_id, role, bool(password))
        return user

    def delete_user(self, user_id: int) -> bool:
        """Delete a user together with their progress, attempts, outcomes, logins and certificates."""
        user = self.db.get(User, user_id)
        if user is None:
            return False
        self.db.delete(user)
        self.db.commit()
        logger.info("user deleted user_id=%s", user_id)
        return True

    def record_login(
        self,
        user_id: int,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> UserLogin:
        login = UserLogin(user_id=user_id, ip_address=ip_address, user_agent=user_agent, login_at=now or utcnow())
        self.db.add(login)
        self.db.commit()
        self.db.refresh(login)
        return login

    def login_history(self, user_id: int) -> list[UserLogin]:
        return (
            self.db.query(UserLogin)
            .filter(UserLogin.user_id == user_id)
            .order_by(UserLogin.login_at.desc(), UserLogin.id.desc())
            .all()
        )

    def consecutive_days(self, user_id: int, now: Optional[datetime] = None) -> tuple[int, list[date], int]:
        """Return (streak, distinct login days newest first, total logins)."""
        logins = self.login_history(user_id)
        days = sorted({login.login_at.date() for login in logins}, reverse=True)
        today = (now or utcnow()).date()
        return login_streak(days, today), days, len(logins)
