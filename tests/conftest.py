"""Pytest configuration and shared fixtures."""
import os
from typing import Generator
from unittest.mock import MagicMock

import pytest

# Set test environment variables BEFORE any app imports
os.environ["ENVIRONMENT"] = "test"
os.environ["FRONTEND_URL"] = "https://frontend.example.com"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "t8Qz3LpV9xWm2RkD7nYc5HbF1sJgA4eU"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_FORMAT"] = "console"
os.environ.pop("SENTRY_DSN", None)

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from project_admin.api.middleware.auth import issue_token_for
from project_admin.config.database import Base, Database, get_db
from project_admin.config.environment import Settings, validate_environment
from project_admin.core.application import create_application
from project_admin.models import User, UserRole

from tests.factories import ProjectFactory, UserFactory

TEST_ORIGIN = "https://frontend.example.com"


@pytest.fixture
def settings() -> Settings:
    """Validated settings with a blocking, in-memory database stage."""
    return validate_environment(
        database_startup_mode="blocking",
        database_connect_attempts=1,
        database_connect_backoff_seconds=0,
    )


@pytest.fixture
def exit_process() -> MagicMock:
    """Stand-in for the process terminator."""
    return MagicMock()


@pytest.fixture
def database(settings: Settings) -> Database:
    database = Database(settings.database_url)
    yield database
    database.dispose()


@pytest.fixture
def app(settings: Settings, database: Database, exit_process: MagicMock):
    """Application wired exactly as in production, on in-memory SQLite."""
    return create_application(settings, database=database, exit_process=exit_process)


@pytest.fixture
def db_session(database: Database) -> Generator[Session, None, None]:
    """Provide a database session for tests."""
    Base.metadata.create_all(bind=database.engine)
    session = database.session()

    UserFactory._meta.sqlalchemy_session = session
    ProjectFactory._meta.sqlalchemy_session = session

    # The `database` fixture gives every test its own in-memory engine, which
    # the app lifespan disposes; there is nothing left to drop afterwards.
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(app, db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI app."""
    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    # Set raise_server_exceptions=False so that 500 errors return responses instead of raising
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
        # Close before the lifespan disposes the in-memory engine
        db_session.close()
    app.dependency_overrides.clear()


@pytest.fixture
def admin_user(db_session: Session) -> User:
    return UserFactory(role=UserRole.ADMIN, name="Ada Admin", email="ada@example.com")


@pytest.fixture
def regular_user(db_session: Session) -> User:
    return UserFactory(role=UserRole.USER, name="Rui User", email="rui@example.com")


@pytest.fixture
def other_user(db_session: Session) -> User:
    return UserFactory(role=UserRole.USER, name="Olga Other", email="olga@example.com")


@pytest.fixture
def auth_headers(settings: Settings):
    """Build bearer headers for a user."""
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {issue_token_for(user, settings)}"}

    return _headers
