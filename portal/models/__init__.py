"""
Portal data models. Single import surface for DB entities.

DB entities (portal.models.models):
- User, OnboardingProgress, ModuleEvaluation, EvaluationOutcome, Certificate, UserLogin
"""

from portal.models.models import (
    User,
    OnboardingProgress,
    ModuleEvaluation,
    EvaluationOutcome,
    Certificate,
    UserLogin,
)

__all__ = [
    "User",
    "OnboardingProgress",
    "ModuleEvaluation",
    "EvaluationOutcome",
    "Certificate",
    "UserLogin",
]
