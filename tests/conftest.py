"""
Volunteer Connect - Test Configuration and Fixtures
"""
import os
from datetime import timedelta
from typing import Generator

import pytest
from faker import Faker
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

# Set testing environment before the app reads its settings
os.environ["JWT_SECRET"] = "test-jwt-secret-key-for-testing"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["OPENAI_API_KEY"] = ""
os.environ["SMTP_HOST"] = ""

from volunteer_connect.main import app
from volunteer_connect.db.base import Base
from volunteer_connect.db.session import get_db
from volunteer_connect.db.seeds.seed_roles import seed_roles
from volunteer_connect.core.security import hash_password, create_user_token
from volunteer_connect.models import User, Activity, ActivityTask, TaskStatus
from volunteer_connect.models.role import ADMIN_ROLE_ID, VOLUNTEER_ROLE_ID
from volunteer_connect.services.lifecycle import utcnow

fake = Faker()

DEFAULT_PASSWORD = "password123"

test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(test_engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestSessionLocal = sessionmaker(bind=test_engine, autoflush=False)


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Fresh schema with seeded roles for each test"""
    Base.metadata.create_all(bind=test_engine)
    session = TestSessionLocal()
    seed_roles(session)
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Test client whose requests use the in-memory database"""
    def override_get_db():
        db = TestSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session: Session):
    """Factory for users with a known password"""
    def _make(role_id: int = VOLUNTEER_ROLE_ID, is_active: bool = True, **fields) -> User:
        user = User(
            name=fields.pop("name", fake.name()),
            email=fields.pop("email", fake.unique.email().lower()),
            hashed_password=hash_password(fields.pop("password", DEFAULT_PASSWORD)),
            role_id=role_id,
            is_active=is_active,
            **fields,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return _make


@pytest.fixture
def admin_user(make_user) -> User:
    return make_user(role_id=ADMIN_ROLE_ID)


@pytest.fixture
def volunteer(make_user) -> User:
    return make_user()


@pytest.fixture
def other_volunteer(make_user) -> User:
    return make_user()


def headers_for(user: User) -> dict:
    return {"Authorization": f"Bearer {create_user_token(user)}"}


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return headers_for(admin_user)


@pytest.fixture
def auth_headers(volunteer: User) -> dict:
    return headers_for(volunteer)


@pytest.fixture
def other_headers(other_volunteer: User) -> dict:
    return headers_for(other_volunteer)


@pytest.fixture
def make_activity(db_session: Session):
    """Factory inserting activities directly, bypassing the API rules"""
    def _make(creator: User, is_public: bool = None, **fields) -> Activity:
        activity = Activity(
            title=fields.pop("title", fake.sentence(nb_words=3)),
            start_date=fields.pop("start_date", utcnow() + timedelta(days=1)),
            created_by=creator.id,
            is_public=creator.role_id == ADMIN_ROLE_ID if is_public is None else is_public,
            is_active=fields.pop("is_active", True),
            **fields,
        )
        db_session.add(activity)
        db_session.commit()
        db_session.refresh(activity)
        return activity
    return _make


@pytest.fixture
def make_task(db_session: Session):
    def _make(activity: Activity, creator: User, status: TaskStatus = TaskStatus.in_progress, **fields) -> ActivityTask:
        task = ActivityTask(
            activity_id=activity.id,
            title=fields.pop("title", fake.sentence(nb_words=2)),
            status=status,
            created_by=creator.id,
            **fields,
        )
        db_session.add(task)
        db_session.commit()
        db_session.refresh(task)
        return task
    return _make
