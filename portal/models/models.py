from portal.config import Base
from sqlalchemy import Column, Integer, String, JSON, DateTime, ForeignKey, Boolean, Index, UniqueConstraint, text
from sqlalchemy.orm import relationship

from portal.utils.common import utcnow


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(String, nullable=False, default="collaborator")  # collaborator|admin
    address = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)  # deadline anchor

    progress = relationship("OnboardingProgress", back_populates="user", uselist=False, cascade="all, delete-orphan")
    evaluations = relationship("ModuleEvaluation", back_populates="user", cascade="all, delete-orphan")
    outcomes = relationship("EvaluationOutcome", back_populates="user", cascade="all, delete-orphan")
    certificates = relationship("Certificate", back_populates="user", cascade="all, delete-orphan")
    logins = relationship("UserLogin", back_populates="user", cascade="all, delete-orphan")


class OnboardingProgress(Base):
    __tablename__ = "onboarding_progress"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, index=True, nullable=False)
    current_module = Column(Integer, default=1, nullable=False)
    completed_modules = Column(JSON, default=list, nullable=False)  # list[int], ascending
    module_progress = Column(JSON, default=dict, nullable=False)  # {"<module>": percent}
    module_evaluations = Column(JSON, default=dict, nullable=False)  # {"<module>": {score, passed, completedAt}}
    completed_at = Column(DateTime, nullable=True)
    deadline = Column(DateTime, nullable=True)  # only set by the grace reset
    is_expired = Column(Boolean, default=False, nullable=False)
    reset_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    user = relationship("User", back_populates="progress")


class ModuleEvaluation(Base):
    """One quiz submission. Rows are never updated after insert."""
    __tablename__ = "module_evaluations"
    __table_args__ = (
        UniqueConstraint("user_id", "module_id", "attempt_number", name="uq_module_evaluations_attempt"),
    )
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    module_id = Column(Integer, index=True, nullable=False)
    attempt_number = Column(Integer, nullable=False, default=1)
    score = Column(Integer, nullable=False)
    total_questions = Column(Integer, nullable=False, default=20)
    correct_answers = Column(Integer, nullable=False)
    passed = Column(Boolean, nullable=False)
    answers = Column(JSON, default=dict, nullable=False)  # {"<question id>": option index}
    time_spent = Column(Integer, nullable=True)  # seconds
    completed_at = Column(DateTime, default=utcnow, index=True, nullable=False)

    user = relationship("User", back_populates="evaluations")


class EvaluationOutcome(Base):
    __tablename__ = "avaliacao_user"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    passed = Column(Boolean, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    user = relationship("User", back_populates="outcomes")


class Certificate(Base):
    __tablename__ = "certificates"
    __table_args__ = (
        # At most one active (not revoked) certificate per user.
        Index(
            "uq_certificates_active_user",
            "user_id",
            unique=True,
            sqlite_where=text("revoked_at IS NULL"),
            postgresql_where=text("revoked_at IS NULL"),
        ),
    )
    id = Column(Integer, primary_key=True, index=True)
    certificate_id = Column(String, unique=True, index=True, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    user_name = Column(String, nullable=False)
    course_name = Column(String, nullable=False)
    completion_date = Column(DateTime, nullable=False)
    certificate_url = Column(String, nullable=True)
    revoked_at = Column(DateTime, nullable=True)  # set when superseded by a re-issue
    created_at = Column(DateTime, default=utcnow, nullable=False)

    user = relationship("User", back_populates="certificates")


class UserLogin(Base):
    __tablename__ = "user_logins"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    login_at = Column(DateTime, default=utcnow, index=True, nullable=False)

    user = relationship("User", back_populates="logins")
