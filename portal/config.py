from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from dotenv import load_dotenv
load_dotenv()


class Settings(BaseSettings):
    """Runtime configuration. Every value can be overridden by an env var of the same name."""
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "sqlite:///./onboarding.db"
    log_level: str = "INFO"
    log_dir: str = "logs"

    # Onboarding policy
    module_count: int = Field(default=4, ge=1)
    pass_threshold: int = Field(default=90, ge=0, le=100)
    deadline_days: int = Field(default=15, ge=1)
    max_attempts_per_window: int = Field(default=2, ge=1)
    attempt_window_hours: int = Field(default=24, ge=1)
    default_total_questions: int = Field(default=20, ge=1)
    course_name: str = "Programa de Onboarding DWU IT Solutions"
    certificate_prefix: str = "DWU"

    # Auth
    secret_key: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 8 * 60


settings = Settings()


def _connect_args(url: str) -> dict:
    # SQLite connections are shared across FastAPI's threadpool.
    return {"check_same_thread": False} if url.startswith("sqlite") else {}


engine = create_engine(settings.database_url, connect_args=_connect_args(settings.database_url))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def create_db():
    # Models must be registered on Base before create_all.
    import portal.models  # noqa: F401
    Base.metadata.create_all(bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
