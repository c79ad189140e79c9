"""
Onboarding progress schemas.

Older web clients send the same concepts under day-based names (currentDay,
completedDays, dayProgress, quizResults). They are translated onto the
canonical fields here, at the API boundary, and nowhere else. Responses mirror
completedDays, dayProgress and quizResults back for the same clients.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import Field, computed_field, model_validator
from pydantic.alias_generators import to_snake

from portal.schemas.base import CamelModel

LEGACY_FIELD_ALIASES: dict[str, str] = {
    "currentDay": "currentModule",
    "completedDays": "completedModules",
    "dayProgress": "moduleProgress",
    "quizResults": "moduleEvaluations",
}


def apply_legacy_aliases(data: Any) -> Any:
    """Rename legacy keys to canonical ones. A legacy key overrides its canonical counterpart."""
    if not isinstance(data, dict):
        return data
    out = {k: v for k, v in data.items() if k not in LEGACY_FIELD_ALIASES}
    for legacy, canonical in LEGACY_FIELD_ALIASES.items():
        if legacy in data:
            out.pop(to_snake(canonical), None)
            out[canonical] = data[legacy]
    return out


class ModuleSummary(CamelModel):
    """Latest evaluation of one module as recorded on the progress row."""
    score: int
    passed: bool
    completed_at: Optional[str] = None


class ProgressFields(CamelModel):
    current_module: Optional[int] = Field(default=None, ge=1)
    completed_modules: Optional[list[int]] = None
    module_progress: Optional[dict[str, float]] = None
    module_evaluations: Optional[dict[str, ModuleSummary]] = None
    completed_at: Optional[datetime] = None

    @model_validator(mode="before")
    @classmethod
    def _canonical_names(cls, data: Any) -> Any:
        return apply_legacy_aliases(data)


class ProgressCreateRequest(ProgressFields):
    user_id: int


class ProgressUpdateRequest(ProgressFields):
    pass


class ProgressResponse(CamelModel):
    """Canonical progress. The day-based names are mirrored for readers still using them."""
    user_id: int
    current_module: int
    completed_modules: list[int]
    module_progress: dict[str, float]
    module_evaluations: dict[str, ModuleSummary]
    completed_at: Optional[str] = None
    deadline: Optional[str] = None
    is_expired: bool
    reset_at: Optional[str] = None
    created_at: str
    updated_at: str

    @computed_field(alias="completedDays")
    @property
    def completed_days(self) -> list[int]:
        return self.completed_modules

    @computed_field(alias="dayProgress")
    @property
    def day_progress(self) -> dict[str, float]:
        return self.module_progress

    @computed_field(alias="quizResults")
    @property
    def quiz_results(self) -> dict[str, ModuleSummary]:
        return self.module_evaluations


class SyncProgressResponse(CamelModel):
    success: bool
    message: str
    progress: ProgressResponse
