"""
Certificate issuing.

Completion is checked by the caller, not here. A user holds at most one active
certificate: issuing again returns the active one unless a re-issue is requested,
in which case the active certificate is revoked and a new one minted.
"""

from datetime import datetime
from typing import Optional
from uuid import uuid4

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session as DBSession

from portal.config import Settings, settings as default_settings
from portal.models.models import Certificate, User
from portal.utils.common import epoch_ms, utcnow
from portal.utils.logger import get_logger

logger = get_logger(__name__)

MAX_INSERT_RETRIES = 3


class CertificateService:
    def __init__(self, db: DBSession, settings: Settings = default_settings):
        self.db = db
        self.settings = settings

    def _new_certificate_id(self, user_id: int, now: datetime) -> str:
        # Short random suffix keeps ids unique when a re-issue lands in the same millisecond.
        return f"{self.settings.certificate_prefix}-{epoch_ms(now)}-{user_id}-{uuid4().hex[:6]}"

    def active_for_user(self, user_id: int) -> Optional[Certificate]:
        return (
            self.db.query(Certificate)
            .filter(Certificate.user_id == user_id, Certificate.revoked_at.is_(None))
            .order_by(Certificate.created_at.desc(), Certificate.id.desc())
            .first()
        )

    def _lock_user(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.id == user_id).with_for_update().first()
        if user is None:
            raise HTTPException(status_code=404, detail="User not found")
        return user

    def generate(
        self,
        user_id: int,
        user_name: str,
        reissue: bool = False,
        now: Optional[datetime] = None,
    ) -> tuple[Certificate, bool]:
        """
        Return (certificate, reissued).

        The user row is locked for the read-then-insert; where the database cannot
        lock, the partial unique index on active certificates rejects a concurrent
        insert and the request starts over against the winner's row.
        """
        now = now or utcnow()
        for attempt in range(1, MAX_INSERT_RETRIES + 1):
            try:
                self._lock_user(user_id)
                active = self.active_for_user(user_id)
                if active is not None and not reissue:
                    logger.info("certificate already issued user_id=%s certificate_id=%s", user_id, active.certificate_id)
                    self.db.rollback()
                    return active, False
                if active is not None:
                    active.revoked_at = now
                    self.db.flush()

                certificate_id = self._new_certificate_id(user_id, now)
                certificate = Certificate(
                    certificate_id=certificate_id,
                    user_id=user_id,
                    user_name=user_name,
                    course_name=self.settings.course_name,
                    completion_date=now,
                    certificate_url=f"/api/certificates/{certificate_id}",
                    created_at=now,
                )
                self.db.add(certificate)
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                logger.warning("concurrent certificate insert user_id=%s retry=%s", user_id, attempt)
                continue

            self.db.refresh(certificate)
            if active is not None:
                logger.warning("certificate re-issued user_id=%s revoked=%s", user_id, active.certificate_id)
            logger.info("certificate issued user_id=%s certificate_id=%s", user_id, certificate_id)
            return certificate, active is not None

        raise HTTPException(status_code=409, detail="Concurrent certificate request, please try again")

    def get(self, certificate_id: str) -> Optional[Certificate]:
        return self.db.query(Certificate).filter(Certificate.certificate_id == certificate_id).first()
