"""
Unit test fixtures. Pure functions take lightweight attempt stand-ins; services
run against the in-memory db_session from the root conftest.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import pytest


@dataclass
class FakeEvaluation:
    module_id: int
    score: int
    passed: bool
    completed_at: datetime
    attempt_number: int = 1
    id: Optional[int] = None


@pytest.fixture
def fake_evaluation():
    def _make(module_id, score, completed_at, passed=None, attempt_number=1):
        return FakeEvaluation(
            module_id=module_id,
            score=score,
            passed=score >= 90 if passed is None else passed,
            completed_at=completed_at,
            attempt_number=attempt_number,
        )

    return _make
