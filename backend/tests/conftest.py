import os
from typing import Generator

# Must be set before personalhub.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["EMAIL_MODE"] = "mock"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from personalhub.core.database import Base, get_db
from personalhub.core.rate_limit import rate_limiter
from personalhub.core.security import create_access_token
from personalhub.main import app
from personalhub.models.user import User
from personalhub.services import users as user_service
from personalhub.services.email.mock import MockEmailService
from personalhub.services.email.sender import get_email_service
from personalhub.services.security_events import failed_attempts

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

DEFAULT_PASSWORD = "password123"


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def _fresh_database() -> Generator[None, None, None]:
    """Every test starts with empty tables and clean in-memory counters."""
    Base.metadata.create_all(bind=engine)
    failed_attempts.reset()
    rate_limiter.reset()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def mail_outbox() -> MockEmailService:
    return MockEmailService()


@pytest.fixture
def client(mail_outbox) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_service] = lambda: mail_outbox
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def make_user(db: Session, email: str, username: str, password: str = DEFAULT_PASSWORD) -> User:
    return user_service.create_user(db, email, password, username)


def bearer(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.email)}"}


@pytest.fixture
def user(db) -> User:
    return make_user(db, "alice@example.com", "alice")


@pytest.fixture
def other_user(db) -> User:
    return make_user(db, "bob@example.com", "bob")


@pytest.fixture
def auth_headers(user) -> dict:
    return bearer(user)
