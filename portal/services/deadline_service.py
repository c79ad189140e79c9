"""
Completion deadline: onboarding must finish within `deadline_days` of account creation.
The first time an expired account is seen its progress gets a one-time grace reset.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as DBSession

from portal.config import Settings, settings as default_settings
from portal.models.models import User
from portal.services.progress_service import ProgressService
from portal.utils.common import utcnow
from portal.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class DeadlineStatus:
    is_expired: bool
    deadline: datetime


class DeadlineTracker:
    def __init__(self, db: DBSession, settings: Settings = default_settings):
        self.db = db
        self.settings = settings
        self.progress = ProgressService(db, settings)

    def _fresh(self, now: datetime) -> DeadlineStatus:
        return DeadlineStatus(is_expired=False, deadline=now + timedelta(days=self.settings.deadline_days))

    def check(self, user_id: int, now: Optional[datetime] = None) -> DeadlineStatus:
        now = now or utcnow()
        try:
            user = self.db.get(User, user_id)
            if user is None or not isinstance(user.created_at, datetime):
                logger.warning("deadline anchor unavailable user_id=%s, granting a fresh window", user_id)
                return self._fresh(now)

            progress = self.progress.get_or_create(user_id, now=now)
            # A grace reset stores its own deadline; otherwise the window runs from account creation.
            deadline = progress.deadline or user.created_at + timedelta(days=self.settings.deadline_days)
            is_expired = now > deadline
            if is_expired and not progress.is_expired:
                self.progress.reset_for_deadline(progress, now)
            return DeadlineStatus(is_expired=is_expired, deadline=deadline)
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("deadline check failed user_id=%s, treating as not expired", user_id)
            return self._fresh(now)
