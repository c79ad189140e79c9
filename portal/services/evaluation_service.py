"""
Evaluation record store.

Submissions are append-only. The attempt gate check and the insert run in one
transaction: the user row is locked (SELECT ... FOR UPDATE where the database
supports it) and the (user, module, attempt_number) unique constraint rejects a
concurrent insert that read the same history. A rejected insert is rolled back
and the gate re-evaluated, so the attempt limit holds under concurrent requests.
"""

from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session as DBSession

from portal.config import Settings, settings as default_settings
from portal.models.models import EvaluationOutcome, ModuleEvaluation, User
from portal.schemas.evaluation_schemas import EvaluationSubmitRequest
from portal.services.attempt_gate import AttemptDecision, AttemptGate
from portal.utils.common import module_key, utcnow
from portal.utils.logger import get_logger

logger = get_logger(__name__)

MAX_INSERT_RETRIES = 3


class AttemptLimitExceeded(Exception):
    def __init__(self, decision: AttemptDecision):
        super().__init__("attempt limit reached")
        self.decision = decision


class EvaluationService:
    def __init__(self, db: DBSession, settings: Settings = default_settings):
        self.db = db
        self.settings = settings
        self.gate = AttemptGate(db, settings)

    def _validate_module(self, module_id: int) -> None:
        if not 1 <= module_id <= self.settings.module_count:
            raise HTTPException(
                status_code=400,
                detail=f"moduleId must be between 1 and {self.settings.module_count}",
            )

    def _lock_user(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.id == user_id).with_for_update().first()
        if user is None:
            raise HTTPException(status_code=404, detail="User not found")
        return user

    def _next_attempt_number(self, user_id: int, module_id: int) -> int:
        last = (
            self.db.query(func.max(ModuleEvaluation.attempt_number))
            .filter(ModuleEvaluation.user_id == user_id, ModuleEvaluation.module_id == module_id)
            .scalar()
        )
        return int(last or 0) + 1

    def submit(self, req: EvaluationSubmitRequest, now: Optional[datetime] = None) -> tuple[ModuleEvaluation, EvaluationOutcome]:
        """Gate-check and append one attempt plus its outcome row. Raises AttemptLimitExceeded."""
        self._validate_module(req.module_id)
        now = now or utcnow()
        total = req.total_questions or self.settings.default_total_questions
        correct = req.correct_answers if req.correct_answers is not None else (req.score * total) // 100

        for attempt in range(1, MAX_INSERT_RETRIES + 1):
            try:
                self._lock_user(req.user_id)
                decision = self.gate.evaluate(req.user_id, req.module_id, now)
                if not decision.can_attempt:
                    self.db.rollback()
                    logger.info(
                        "evaluation rejected by attempt gate user_id=%s module_id=%s remaining_ms=%s",
                        req.user_id,
                        req.module_id,
                        decision.remaining_time_ms,
                    )
                    raise AttemptLimitExceeded(decision)

                evaluation = ModuleEvaluation(
                    user_id=req.user_id,
                    module_id=req.module_id,
                    attempt_number=self._next_attempt_number(req.user_id, req.module_id),
                    score=req.score,
                    total_questions=total,
                    correct_answers=correct,
                    passed=req.passed,
                    answers={str(k): int(v) for k, v in req.answers.items()},
                    time_spent=req.time_spent,
                    completed_at=now,
                )
                self.db.add(evaluation)
                self.db.flush()
                outcome = EvaluationOutcome(user_id=req.user_id, passed=req.passed, created_at=now)
                self.db.add(outcome)
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                logger.warning(
                    "concurrent evaluation insert user_id=%s module_id=%s retry=%s",
                    req.user_id,
                    req.module_id,
                    attempt,
                )
                continue

            self.db.refresh(evaluation)
            self.db.refresh(outcome)
            logger.info(
                "evaluation recorded user_id=%s module_id=%s attempt=%s score=%s passed=%s",
                req.user_id,
                req.module_id,
                evaluation.attempt_number,
                req.score,
                req.passed,
            )
            return evaluation, outcome

        raise HTTPException(status_code=409, detail="Concurrent evaluation submission, please try again")

    def history(self, user_id: int, module_id: Optional[int] = None) -> list[ModuleEvaluation]:
        query = self.db.query(ModuleEvaluation).filter(ModuleEvaluation.user_id == user_id)
        if module_id is not None:
            query = query.filter(ModuleEvaluation.module_id == module_id)
        return query.order_by(ModuleEvaluation.completed_at.desc(), ModuleEvaluation.id.desc()).all()

    def all_evaluations(self) -> list[ModuleEvaluation]:
        return self.db.query(ModuleEvaluation).order_by(ModuleEvaluation.completed_at.desc(), ModuleEvaluation.id.desc()).all()

    def outcome_history(self, user_id: int) -> list[EvaluationOutcome]:
        return (
            self.db.query(EvaluationOutcome)
            .filter(EvaluationOutcome.user_id == user_id)
            .order_by(EvaluationOutcome.created_at.desc(), EvaluationOutcome.id.desc())
            .all()
        )

    def attempts_by_module(self, user_id: int) -> dict[str, list[ModuleEvaluation]]:
        grouped: dict[str, list[ModuleEvaluation]] = {}
        for evaluation in self.history(user_id):
            grouped.setdefault(f"module_{module_key(evaluation.module_id)}", []).append(evaluation)
        return grouped

    def module_stats(self, module_id: int) -> dict:
        evaluations = self.db.query(ModuleEvaluation).filter(ModuleEvaluation.module_id == module_id).all()
        total = len(evaluations)
        passed = sum(1 for e in evaluations if e.passed and e.score >= self.settings.pass_threshold)
        return {
            "module_number": module_id,
            "total_attempts": total,
            "unique_users": len({e.user_id for e in evaluations}),
            "passed_attempts": passed,
            "avg_score": round(sum(e.score for e in evaluations) / total, 2) if total else 0.0,
            "pass_rate": round(passed * 100 / total, 2) if total else 0.0,
            "best_score": max((e.score for e in evaluations), default=None),
        }
