"""
Attempt gate: at most `max_attempts_per_window` evaluation attempts per
(user, module) inside any rolling `attempt_window_hours` window.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as DBSession

from portal.config import Settings, settings as default_settings
from portal.models.models import ModuleEvaluation
from portal.utils.common import utcnow
from portal.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class AttemptDecision:
    can_attempt: bool
    remaining_time_ms: Optional[int] = None
    last_attempt: Optional[datetime] = None
    next_attempt_at: Optional[datetime] = None
    attempt_count: int = 0
    max_attempts: int = 0


def decide(recent: Sequence[ModuleEvaluation], now: datetime, settings: Settings = default_settings) -> AttemptDecision:
    """
    Pure gate decision over the attempts already inside the window.

    When the limit is reached the next attempt opens one window after the most
    recent of those attempts.
    """
    limit = settings.max_attempts_per_window
    if len(recent) < limit:
        return AttemptDecision(can_attempt=True, attempt_count=len(recent), max_attempts=limit)

    newest = max(recent, key=lambda e: e.completed_at)
    next_attempt_at = newest.completed_at + timedelta(hours=settings.attempt_window_hours)
    remaining = max(0, int((next_attempt_at - now).total_seconds() * 1000))
    return AttemptDecision(
        can_attempt=False,
        remaining_time_ms=remaining,
        last_attempt=newest.completed_at,
        next_attempt_at=next_attempt_at,
        attempt_count=len(recent),
        max_attempts=limit,
    )


class AttemptGate:
    def __init__(self, db: DBSession, settings: Settings = default_settings):
        self.db = db
        self.settings = settings

    def recent_attempts(self, user_id: int, module_id: int, now: datetime) -> list[ModuleEvaluation]:
        window_start = now - timedelta(hours=self.settings.attempt_window_hours)
        return (
            self.db.query(ModuleEvaluation)
            .filter(
                ModuleEvaluation.user_id == user_id,
                ModuleEvaluation.module_id == module_id,
                ModuleEvaluation.completed_at >= window_start,
            )
            .order_by(ModuleEvaluation.completed_at.desc())
            .all()
        )

    def evaluate(self, user_id: int, module_id: int, now: Optional[datetime] = None) -> AttemptDecision:
        """Gate decision that lets storage errors propagate. Used inside the submission transaction."""
        now = now or utcnow()
        return decide(self.recent_attempts(user_id, module_id, now), now, self.settings)

    def check(self, user_id: int, module_id: int, now: Optional[datetime] = None) -> AttemptDecision:
        """Read-only eligibility check. Fails open: a storage error never blocks the user."""
        try:
            decision = self.evaluate(user_id, module_id, now)
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("attempt check failed, allowing user_id=%s module_id=%s", user_id, module_id)
            return AttemptDecision(can_attempt=True, max_attempts=self.settings.max_attempts_per_window)
        if not decision.can_attempt:
            logger.info(
                "attempt limit reached user_id=%s module_id=%s remaining_ms=%s",
                user_id,
                module_id,
                decision.remaining_time_ms,
            )
        return decision
