"""
Progress store and progress reconciliation.

A user's onboarding progress is derived from their evaluation log: `reconcile`
folds the attempts into the canonical state (current module, completed modules,
latest result per module) and `ProgressService.sync` persists that state when it
differs from the stored row. Running sync twice without new attempts is a no-op.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session as DBSession

from portal.config import Settings, settings as default_settings
from portal.models.models import ModuleEvaluation, OnboardingProgress, User
from portal.schemas.progress_schemas import ModuleSummary
from portal.utils.common import iso_format, module_key, to_naive_utc, utcnow
from portal.utils.logger import get_logger, log_request

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProgressState:
    current_module: int = 1
    completed_modules: list[int] = field(default_factory=list)
    module_evaluations: dict[str, dict] = field(default_factory=dict)


def qualifies(evaluation: Any, pass_threshold: int) -> bool:
    """An attempt completes its module only if it is flagged passed and meets the threshold."""
    return bool(evaluation.passed) and int(evaluation.score) >= pass_threshold


def summarize(evaluation: Any) -> dict:
    return {
        "score": int(evaluation.score),
        "passed": bool(evaluation.passed),
        "completedAt": iso_format(evaluation.completed_at),
    }


def _recency(evaluation: Any) -> tuple:
    return (evaluation.completed_at, getattr(evaluation, "attempt_number", 0) or 0, getattr(evaluation, "id", 0) or 0)


def reconcile(evaluations: Iterable[Any], module_count: int, pass_threshold: int) -> ProgressState:
    """
    Fold an evaluation history into canonical progress.

    Modules unlock strictly in order: the completed list is the longest prefix
    1..k where every module has a qualifying attempt, and the current module is
    k + 1 capped at module_count. A qualifying attempt keeps its module completed
    even if a later retake fails. Summaries hold the latest attempt of every
    attempted module, failed ones included.
    """
    latest: dict[int, Any] = {}
    qualified: set[int] = set()
    for evaluation in evaluations:
        module_id = int(evaluation.module_id)
        if not 1 <= module_id <= module_count:
            logger.warning("ignoring evaluation for unknown module=%s", module_id)
            continue
        current = latest.get(module_id)
        if current is None or _recency(evaluation) > _recency(current):
            latest[module_id] = evaluation
        if qualifies(evaluation, pass_threshold):
            qualified.add(module_id)

    completed: list[int] = []
    current_module = 1
    for module_id in range(1, module_count + 1):
        if module_id not in qualified:
            break
        completed.append(module_id)
        current_module = min(module_id + 1, module_count)

    summaries = {module_key(m): summarize(latest[m]) for m in sorted(latest)}
    return ProgressState(current_module=current_module, completed_modules=completed, module_evaluations=summaries)


class ProgressService:
    """Reads and writes the single onboarding_progress row of a user."""

    def __init__(self, db: DBSession, settings: Settings = default_settings):
        self.db = db
        self.settings = settings

    def _require_user(self, user_id: int) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            raise HTTPException(status_code=404, detail="User not found")
        return user

    def get(self, user_id: int) -> Optional[OnboardingProgress]:
        return self.db.query(OnboardingProgress).filter(OnboardingProgress.user_id == user_id).first()

    def get_or_create(self, user_id: int, now: Optional[datetime] = None) -> OnboardingProgress:
        progress = self.get(user_id)
        if progress is not None:
            return progress
        return self.create(user_id, {}, now=now)

    def create(self, user_id: int, fields: dict, now: Optional[datetime] = None) -> OnboardingProgress:
        self._require_user(user_id)
        if self.get(user_id) is not None:
            raise HTTPException(status_code=409, detail="Progress already exists")
        now = now or utcnow()
        progress = OnboardingProgress(
            user_id=user_id,
            current_module=1,
            completed_modules=[],
            module_progress={},
            module_evaluations={},
            is_expired=False,
            created_at=now,
            updated_at=now,
        )
        self._apply(progress, fields)
        self.db.add(progress)
        self.db.commit()
        self.db.refresh(progress)
        logger.info("progress created user_id=%s", user_id)
        return progress

    def update(self, user_id: int, fields: dict, now: Optional[datetime] = None) -> Optional[OnboardingProgress]:
        """Merge caller-supplied fields as-is. No reconciliation happens here."""
        progress = self.get(user_id)
        if progress is None:
            return None
        self._apply(progress, fields)
        progress.updated_at = now or utcnow()
        self.db.commit()
        self.db.refresh(progress)
        logger.info("progress updated user_id=%s fields=%s", user_id, sorted(fields))
        return progress

    def _apply(self, progress: OnboardingProgress, fields: dict) -> None:
        # JSON columns are reassigned, never mutated in place, so the ORM sees the change.
        if fields.get("current_module") is not None:
            progress.current_module = int(fields["current_module"])
        if fields.get("completed_modules") is not None:
            progress.completed_modules = [int(m) for m in fields["completed_modules"]]
        if fields.get("module_progress") is not None:
            progress.module_progress = {module_key(k): v for k, v in fields["module_progress"].items()}
        if fields.get("module_evaluations") is not None:
            progress.module_evaluations = {
                module_key(k): ModuleSummary.model_validate(v).model_dump(by_alias=True)
                for k, v in fields["module_evaluations"].items()
            }
        if "completed_at" in fields:
            value = fields["completed_at"]
            progress.completed_at = to_naive_utc(value) if value is not None else None

    def reset_for_deadline(self, progress: OnboardingProgress, now: datetime) -> OnboardingProgress:
        """One-time grace reset: wipe progress, flag it expired and open a fresh window from now."""
        progress.current_module = 1
        progress.completed_modules = []
        progress.module_evaluations = {}
        progress.module_progress = {}
        progress.completed_at = None
        progress.is_expired = True
        progress.reset_at = now
        progress.deadline = now + timedelta(days=self.settings.deadline_days)
        progress.updated_at = now
        self.db.commit()
        self.db.refresh(progress)
        logger.warning("deadline expired, progress reset user_id=%s new_deadline=%s", progress.user_id, iso_format(progress.deadline))
        return progress

    def sync(self, user_id: int, now: Optional[datetime] = None) -> OnboardingProgress:
        """Recompute progress from the evaluation log and persist it if it changed."""
        now = now or utcnow()
        with log_request(logger, f"sync_progress user_id={user_id}"):
            progress = self.get_or_create(user_id, now=now)

            query = self.db.query(ModuleEvaluation).filter(ModuleEvaluation.user_id == user_id)
            if progress.reset_at is not None:
                # Attempts made before a deadline reset no longer count.
                query = query.filter(ModuleEvaluation.completed_at >= progress.reset_at)
            evaluations = query.all()
            if not evaluations:
                logger.debug("no evaluations user_id=%s, keeping progress", user_id)
                return progress

            state = reconcile(evaluations, self.settings.module_count, self.settings.pass_threshold)
            all_done = len(state.completed_modules) == self.settings.module_count
            completed_at = (progress.completed_at or now) if all_done else None

            unchanged = (
                progress.current_module == state.current_module
                and list(progress.completed_modules or []) == state.completed_modules
                and dict(progress.module_evaluations or {}) == state.module_evaluations
                and progress.completed_at == completed_at
            )
            if unchanged:
                return progress

            progress.current_module = state.current_module
            progress.completed_modules = list(state.completed_modules)
            progress.module_evaluations = dict(state.module_evaluations)
            progress.completed_at = completed_at
            progress.updated_at = now
            self.db.commit()
            self.db.refresh(progress)
            logger.info(
                "progress reconciled user_id=%s current_module=%s completed=%s",
                user_id,
                state.current_module,
                state.completed_modules,
            )
            return progress
