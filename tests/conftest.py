"""
Pytest configuration and shared fixtures for the test suite.
Ensures proper Python path and an isolated environment, and provides common
fixtures for unit and integration tests.
"""
import os
import sys
import tempfile
from datetime import timedelta
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Settings are read at import time, so point them away from the real DB and log dir first.
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="portal-test-logs-"))
os.environ.setdefault("LOG_LEVEL", "WARNING")

# Add project root to Python path for imports
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))


def make_engine():
    # One shared connection so every session sees the same in-memory database.
    return create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


# ----- In-memory DB (for tests that need DB without touching real DB) -----
@pytest.fixture
def in_memory_engine():
    """Create an in-memory SQLite engine for tests."""
    return make_engine()


@pytest.fixture
def db_session(in_memory_engine):
    """Create an in-memory database session. Uses portal.config.Base for schema."""
    from portal.config import Base
    import portal.models  # noqa: F401

    Base.metadata.create_all(in_memory_engine)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=in_memory_engine)
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def make_user(db_session):
    """Factory creating users; `age_days` backdates created_at."""
    from portal.models.models import User
    from portal.utils.common import utcnow
    from portal.utils.jwt import get_password_hash

    counter = {"n": 0}

    def _make(username="Ana", email=None, password="secret123", role="collaborator", age_days=0):
        counter["n"] += 1
        user = User(
            username=username,
            email=email or f"user{counter['n']}@example.com",
            hashed_password=get_password_hash(password),
            role=role,
            created_at=utcnow() - timedelta(days=age_days),
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def add_evaluation(db_session):
    """Insert a stored attempt directly, bypassing the attempt gate."""
    from portal.models.models import ModuleEvaluation
    from portal.utils.common import utcnow

    def _add(user_id, module_id, score, passed=None, completed_at=None, attempt_number=None):
        if attempt_number is None:
            attempt_number = (
                db_session.query(ModuleEvaluation)
                .filter(ModuleEvaluation.user_id == user_id, ModuleEvaluation.module_id == module_id)
                .count()
                + 1
            )
        evaluation = ModuleEvaluation(
            user_id=user_id,
            module_id=module_id,
            attempt_number=attempt_number,
            score=score,
            total_questions=20,
            correct_answers=score * 20 // 100,
            passed=score >= 90 if passed is None else passed,
            answers={},
            completed_at=completed_at or utcnow(),
        )
        db_session.add(evaluation)
        db_session.commit()
        db_session.refresh(evaluation)
        return evaluation

    return _add
