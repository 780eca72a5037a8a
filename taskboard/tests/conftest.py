"""Shared fixtures: in-memory database, API client and users."""

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from taskboard.database import get_session
from taskboard.main import app
from taskboard.models import User
from taskboard.store import TaskStore


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(name="engine")
def engine_fixture():
    """Create a fresh in-memory database for each test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Create a test client with overridden database session."""
    def get_session_override():
        yield session

    app.dependency_overrides[get_session] = get_session_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


def _make_user(session: Session, email: str) -> User:
    user = User(email=email, name=email.split("@")[0].title())
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture(name="user")
def user_fixture(session: Session) -> User:
    return _make_user(session, "alice@example.com")


@pytest.fixture(name="other_user")
def other_user_fixture(session: Session) -> User:
    return _make_user(session, "bob@example.com")


@pytest.fixture(name="headers")
def headers_fixture(user: User) -> dict:
    return {"X-User-Id": str(user.id)}


@pytest.fixture(name="store")
def store_fixture(session: Session) -> TaskStore:
    return TaskStore(session)
