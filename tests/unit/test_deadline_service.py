"""Unit tests for the completion deadline and its one-time grace reset."""
from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from portal.services.deadline_service import DeadlineTracker
from portal.services.progress_service import ProgressService
from portal.utils.common import utcnow


@pytest.mark.unit
class TestDeadlineTracker:
    def test_fresh_account_not_expired(self, db_session, make_user):
        user = make_user(age_days=3)
        status = DeadlineTracker(db_session).check(user.id)
        assert status.is_expired is False
        assert status.deadline == user.created_at + timedelta(days=15)

    def test_expired_account_reset_once(self, db_session, make_user, add_evaluation):
        user = make_user(age_days=16)
        add_evaluation(user.id, 1, 95, completed_at=utcnow() - timedelta(days=10))
        add_evaluation(user.id, 2, 92, completed_at=utcnow() - timedelta(days=9))
        progress = ProgressService(db_session).sync(user.id)
        assert progress.completed_modules == [1, 2]

        now = utcnow()
        status = DeadlineTracker(db_session).check(user.id, now)
        assert status.is_expired is True
        assert status.deadline == user.created_at + timedelta(days=15)

        progress = ProgressService(db_session).get(user.id)
        assert progress.current_module == 1
        assert progress.completed_modules == []
        assert progress.module_evaluations == {}
        assert progress.is_expired is True
        assert progress.deadline == now + timedelta(days=15)

        # Reconciliation does not bring back modules passed before the reset.
        assert ProgressService(db_session).sync(user.id).completed_modules == []

    def test_grace_window_after_reset(self, db_session, make_user):
        user = make_user(age_days=16)
        tracker = DeadlineTracker(db_session)
        first_now = utcnow()
        tracker.check(user.id, first_now)
        status = tracker.check(user.id, first_now + timedelta(hours=1))
        assert status.is_expired is False
        assert status.deadline == first_now + timedelta(days=15)

    def test_no_second_reset(self, db_session, make_user, add_evaluation):
        user = make_user(age_days=40)
        tracker = DeadlineTracker(db_session)
        tracker.check(user.id)
        add_evaluation(user.id, 1, 95)
        ProgressService(db_session).sync(user.id)

        status = tracker.check(user.id, utcnow() + timedelta(days=20))
        assert status.is_expired is True
        assert ProgressService(db_session).get(user.id).completed_modules == [1]

    def test_unknown_user_gets_fresh_window(self, db_session):
        now = utcnow()
        status = DeadlineTracker(db_session).check(12345, now)
        assert status.is_expired is False
        assert status.deadline == now + timedelta(days=15)

    def test_storage_error_treated_as_not_expired(self):
        db = MagicMock()
        db.get.side_effect = OperationalError("SELECT", {}, Exception("db down"))
        status = DeadlineTracker(db).check(1)
        assert status.is_expired is False
        db.rollback.assert_called_once()
