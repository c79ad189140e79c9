"""
Evaluation (quiz attempt) schemas: submission, attempt gate and reporting.
"""

from typing import Optional

from pydantic import Field

from portal.schemas.base import CamelModel
from portal.schemas.progress_schemas import ProgressResponse


class EvaluationSubmitRequest(CamelModel):
    user_id: int
    module_id: int
    score: int = Field(ge=0, le=100)
    passed: bool
    total_questions: Optional[int] = Field(default=None, gt=0)
    correct_answers: Optional[int] = Field(default=None, ge=0)
    answers: dict[str, int] = Field(default_factory=dict)  # question id -> selected option index
    time_spent: Optional[int] = Field(default=None, ge=0)  # seconds


class EvaluationResponse(CamelModel):
    id: int
    user_id: int
    module_id: int
    attempt_number: int
    score: int
    total_questions: int
    correct_answers: int
    passed: bool
    answers: dict[str, int]
    time_spent: Optional[int] = None
    completed_at: str


class EvaluationOutcomeResponse(CamelModel):
    id: int
    user_id: int
    passed: bool
    created_at: str


class SubmitEvaluationData(CamelModel):
    evaluation: EvaluationResponse
    avaliacao_user: EvaluationOutcomeResponse


class SubmitEvaluationResponse(CamelModel):
    success: bool
    message: str
    data: SubmitEvaluationData


class AttemptCheckResponse(CamelModel):
    can_attempt: bool
    remaining_time: Optional[int] = None  # milliseconds
    message: Optional[str] = None
    last_attempt: Optional[str] = None
    next_attempt_at: Optional[str] = None
    attempt_count: Optional[int] = None
    max_attempts: Optional[int] = None


class DeadlineResponse(CamelModel):
    is_expired: bool
    deadline: str


class OutcomeHistoryResponse(CamelModel):
    success: bool
    data: list[EvaluationOutcomeResponse]


class UserEvaluationDataResponse(CamelModel):
    """Admin view of one user's attempt history."""
    evaluations: list[EvaluationResponse]
    total_attempts: int
    current_module: int
    attempts_by_module: dict[str, list[EvaluationResponse]]
    user_progress: Optional[ProgressResponse] = None


class ModuleStatsResponse(CamelModel):
    module_number: int
    total_attempts: int
    unique_users: int
    passed_attempts: int
    avg_score: float
    pass_rate: float
    best_score: Optional[int] = None
