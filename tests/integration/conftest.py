"""
Integration test fixtures. Overrides get_db for API tests with in-memory DB.
"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool


@pytest.fixture
def session_factory():
    """In-memory engine shared by the API and the test body."""
    from portal.config import Base
    import portal.models  # noqa: F401

    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def override_get_db(session_factory):
    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    return _get_db


@pytest.fixture
def api_client(override_get_db):
    """FastAPI TestClient with in-memory DB override."""
    from fastapi.testclient import TestClient
    from portal.api import app
    from portal.config import get_db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def db(session_factory):
    """Session for arranging and inspecting rows directly."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def seed_user(db):
    """Insert a user (optionally backdated) and return its id."""
    from datetime import timedelta

    from portal.models.models import User
    from portal.utils.common import utcnow
    from portal.utils.jwt import get_password_hash

    def _seed(email="ana@example.com", password="secret123", role="collaborator", username="Ana", age_days=0):
        user = User(
            username=username,
            email=email,
            hashed_password=get_password_hash(password),
            role=role,
            created_at=utcnow() - timedelta(days=age_days),
        )
        db.add(user)
        db.commit()
        return user.id

    return _seed


@pytest.fixture
def admin_client(api_client, seed_user):
    """API client logged in as an administrator."""
    seed_user(email="admin@example.com", password="adminpass", role="admin", username="Admin")
    response = api_client.post("/api/auth/login", json={"email": "admin@example.com", "password": "adminpass"})
    assert response.status_code == 200
    return api_client


@pytest.fixture
def signed_in(api_client, seed_user):
    """Seed a user, log the client in as them and return the user id."""

    def _signed_in(email="ana@example.com", password="secret123", **kwargs):
        user_id = seed_user(email=email, password=password, **kwargs)
        response = api_client.post("/api/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200
        return user_id

    return _signed_in
