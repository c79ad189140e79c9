"""Unit tests for appending evaluation attempts under the attempt gate."""
from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from fastapi import HTTPException

from portal.models.models import EvaluationOutcome, ModuleEvaluation
from portal.schemas.evaluation_schemas import EvaluationSubmitRequest
from portal.services.evaluation_service import AttemptLimitExceeded, EvaluationService
from portal.utils.common import utcnow


def _request(user_id, module_id=1, score=95, passed=True, **extra):
    return EvaluationSubmitRequest(user_id=user_id, module_id=module_id, score=score, passed=passed, **extra)


@pytest.mark.unit
class TestSubmit:
    def test_records_attempt_and_outcome(self, db_session, make_user):
        user = make_user()
        evaluation, outcome = EvaluationService(db_session).submit(_request(user.id, answers={"q1": 2}, time_spent=300))
        assert evaluation.attempt_number == 1
        assert evaluation.total_questions == 20
        assert evaluation.correct_answers == 19
        assert evaluation.answers == {"q1": 2}
        assert outcome.user_id == user.id
        assert outcome.passed is True

    def test_third_attempt_in_window_rejected(self, db_session, make_user):
        user = make_user()
        service = EvaluationService(db_session)
        now = utcnow()
        service.submit(_request(user.id, score=40, passed=False), now=now - timedelta(hours=2))
        service.submit(_request(user.id, score=50, passed=False), now=now - timedelta(hours=1))
        with pytest.raises(AttemptLimitExceeded) as exc:
            service.submit(_request(user.id), now=now)
        assert exc.value.decision.can_attempt is False
        assert db_session.query(ModuleEvaluation).count() == 2
        assert db_session.query(EvaluationOutcome).count() == 2

    def test_attempt_numbers_continue_after_window(self, db_session, make_user):
        user = make_user()
        service = EvaluationService(db_session)
        start = utcnow() - timedelta(days=2)
        service.submit(_request(user.id, score=40, passed=False), now=start)
        service.submit(_request(user.id, score=50, passed=False), now=start + timedelta(minutes=10))
        evaluation, _ = service.submit(_request(user.id), now=start + timedelta(hours=25))
        assert evaluation.attempt_number == 3

    def test_module_out_of_range(self, db_session, make_user):
        user = make_user()
        with pytest.raises(HTTPException) as exc:
            EvaluationService(db_session).submit(_request(user.id, module_id=5))
        assert exc.value.status_code == 400

    def test_unknown_user(self, db_session):
        with pytest.raises(HTTPException) as exc:
            EvaluationService(db_session).submit(_request(404))
        assert exc.value.status_code == 404

    def test_conflicting_insert_retried(self, db_session, make_user, add_evaluation):
        user = make_user()
        add_evaluation(user.id, 1, 30, completed_at=utcnow() - timedelta(days=3))
        service = EvaluationService(db_session)
        # First read is stale, as if another request inserted attempt 1 concurrently.
        service._next_attempt_number = MagicMock(side_effect=[1, 2])
        evaluation, _ = service.submit(_request(user.id))
        assert evaluation.attempt_number == 2
        assert db_session.query(ModuleEvaluation).count() == 2
        assert db_session.query(EvaluationOutcome).count() == 1

    def test_gives_up_after_repeated_conflicts(self, db_session, make_user, add_evaluation):
        user = make_user()
        add_evaluation(user.id, 1, 30, completed_at=utcnow() - timedelta(days=3))
        service = EvaluationService(db_session)
        service._next_attempt_number = MagicMock(return_value=1)
        with pytest.raises(HTTPException) as exc:
            service.submit(_request(user.id))
        assert exc.value.status_code == 409
        assert db_session.query(ModuleEvaluation).count() == 1


@pytest.mark.unit
class TestReporting:
    def test_history_newest_first_and_filtered(self, db_session, make_user, add_evaluation):
        user = make_user()
        now = utcnow()
        add_evaluation(user.id, 1, 50, completed_at=now - timedelta(hours=5))
        add_evaluation(user.id, 2, 70, completed_at=now - timedelta(hours=1))
        add_evaluation(user.id, 1, 95, completed_at=now - timedelta(hours=3))
        service = EvaluationService(db_session)
        assert [e.score for e in service.history(user.id)] == [70, 95, 50]
        assert [e.score for e in service.history(user.id, 1)] == [95, 50]
        assert set(service.attempts_by_module(user.id)) == {"module_1", "module_2"}

    def test_module_stats(self, db_session, make_user, add_evaluation):
        first, second = make_user(), make_user()
        add_evaluation(first.id, 1, 80)
        add_evaluation(first.id, 1, 100)
        add_evaluation(second.id, 1, 90)
        stats = EvaluationService(db_session).module_stats(1)
        assert stats["total_attempts"] == 3
        assert stats["unique_users"] == 2
        assert stats["passed_attempts"] == 2
        assert stats["avg_score"] == 90.0
        assert stats["pass_rate"] == 66.67
        assert stats["best_score"] == 100

    def test_module_stats_empty(self, db_session):
        stats = EvaluationService(db_session).module_stats(3)
        assert stats["total_attempts"] == 0
        assert stats["avg_score"] == 0.0
        assert stats["best_score"] is None
