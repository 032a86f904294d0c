"""
CareConnect - Test Configuration and Fixtures
"""
import os
from typing import Callable, Generator

import pytest
from faker import Faker
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Set testing environment before the app reads its settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ["DEBUG"] = "true"
os.environ["LOG_LEVEL"] = "WARNING"

from careconnect.main import app
from careconnect.core.config import settings
from careconnect.core.security import create_session_token, get_password_hash
from careconnect.db.base import Base
from careconnect.db.session import get_db
from careconnect.models import User

fake = Faker()

TEST_PASSWORD = "testpassword123"
# bcrypt is slow; hash the shared test password once
TEST_PASSWORD_HASH = get_password_hash(TEST_PASSWORD)


@pytest.fixture
def engine():
    """Fresh in-memory database per test"""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def override_db(session_factory):
    """Route the app's request sessions to the test database"""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client() -> TestClient:
    """Unauthenticated client"""
    return TestClient(app)


@pytest.fixture
def make_user(db_session: Session) -> Callable[..., User]:
    """Factory creating users directly in the database"""

    def _make_user(**overrides) -> User:
        data = {
            "first_name": fake.first_name(),
            "last_name": fake.last_name(),
            "email": fake.unique.email().lower(),
            "hashed_password": TEST_PASSWORD_HASH,
            "role": "user",
            "connections": [],
            "pending_connections": [],
        }
        data.update(overrides)
        user = User(**data)
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def client_for() -> Callable[[User], TestClient]:
    """Factory returning a client carrying the given user's session cookie"""

    def _client_for(user: User) -> TestClient:
        authed = TestClient(app)
        authed.cookies.set(settings.AUTH_COOKIE_NAME, create_session_token(user.id, user.email))
        return authed

    return _client_for


@pytest.fixture
def alice(make_user) -> User:
    return make_user(first_name="Alice", last_name="Morgan", specialty="Cardiology")


@pytest.fixture
def bob(make_user) -> User:
    return make_user(first_name="Bob", last_name="Singh", hospital="Mercy General")


@pytest.fixture
def carol(make_user) -> User:
    return make_user(first_name="Carol", last_name="Diaz", role="Nurse")
