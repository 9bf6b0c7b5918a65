"""
Pytest fixtures for Work Log Tracker tests.
Uses fresh in-memory SQLite for each test function.

Strategy:
- Each test gets a completely fresh database
- No shared state between tests
- Simple and reliable isolation
"""
import os
import sys
from datetime import date
from decimal import Decimal
from typing import Generator, Optional

import pytest
from starlette.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import Base, get_db
from main import app
from models import (
    Project,
    Team,
    TeamMember,
    TeamRole,
    User,
    UserRole,
    WorkCategory,
    WorkLog,
)
from schemas import Principal


# Test database URL (in-memory SQLite)
TEST_DATABASE_URL = "sqlite:///:memory:"


# =============================================================================
# Database Engine & Session (Function Scope - fresh for each test)
# =============================================================================

@pytest.fixture(scope="function")
def test_engine():
    """
    Create a fresh test database engine for each test.
    Tables are created fresh, ensuring complete isolation.
    """
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,  # Required for in-memory SQLite to share connection
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(test_engine) -> Generator[Session, None, None]:
    """Create a session for the test."""
    TestingSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=test_engine,
    )
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.rollback()
        session.close()


# =============================================================================
# FastAPI Test Client with DB Override
# =============================================================================

@pytest.fixture(scope="function")
def client(db_session) -> Generator[TestClient, None, None]:
    """
    Create a test client with overridden database dependency.
    All API requests use the test session.
    """
    def override_get_db():
        # DO NOT close here - fixture finalizer handles cleanup
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# =============================================================================
# User Fixtures
# =============================================================================

def make_user(db: Session, key: str, role: UserRole = UserRole.USER, is_active: bool = True) -> User:
    user = User(
        email=f"{key}@example.com",
        name=key.capitalize(),
        role=role,
        api_key=f"test_{key}_key",
        is_active=is_active,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture(scope="function")
def admin_user(db_session) -> User:
    """Create an admin user for testing."""
    return make_user(db_session, "admin", UserRole.ADMIN)


@pytest.fixture(scope="function")
def manager_user(db_session) -> User:
    """Create a manager user for testing."""
    return make_user(db_session, "manager", UserRole.MANAGER)


@pytest.fixture(scope="function")
def regular_user(db_session) -> User:
    """Create a regular user for testing."""
    return make_user(db_session, "alice")


@pytest.fixture(scope="function")
def other_user(db_session) -> User:
    """A second regular user who shares no team with regular_user."""
    return make_user(db_session, "bob")


@pytest.fixture(scope="function")
def inactive_user(db_session) -> User:
    """Create an inactive user for testing."""
    return make_user(db_session, "inactive", is_active=False)


# =============================================================================
# Team Fixtures
# =============================================================================

def make_team(db: Session, name: str, members: list[tuple[User, TeamRole]]) -> Team:
    team = Team(name=name, is_active=True)
    db.add(team)
    db.flush()
    for user, role in members:
        db.add(TeamMember(team_id=team.id, user_id=user.id, role=role))
    db.commit()
    db.refresh(team)
    return team


@pytest.fixture(scope="function")
def team_mate(db_session) -> User:
    return make_user(db_session, "carol")


@pytest.fixture(scope="function")
def test_team(db_session, manager_user, regular_user, team_mate) -> Team:
    """Team led by manager_user with regular_user and team_mate as members."""
    return make_team(
        db_session,
        "Platform",
        [
            (manager_user, TeamRole.LEADER),
            (regular_user, TeamRole.MEMBER),
            (team_mate, TeamRole.MEMBER),
        ],
    )


# =============================================================================
# Project & Category Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def test_project(db_session) -> Project:
    """Create a test project."""
    project = Project(name="Test Project", is_active=True)
    db_session.add(project)
    db_session.commit()
    db_session.refresh(project)
    return project


@pytest.fixture(scope="function")
def second_project(db_session) -> Project:
    project = Project(name="Second Project", is_active=True)
    db_session.add(project)
    db_session.commit()
    db_session.refresh(project)
    return project


@pytest.fixture(scope="function")
def inactive_project(db_session) -> Project:
    project = Project(name="Archived Project", is_active=False)
    db_session.add(project)
    db_session.commit()
    db_session.refresh(project)
    return project


@pytest.fixture(scope="function")
def test_category(db_session) -> WorkCategory:
    """Create a test work category."""
    category = WorkCategory(name="Development", display_order=1, is_active=True)
    db_session.add(category)
    db_session.commit()
    db_session.refresh(category)
    return category


# =============================================================================
# Helper Functions for Tests
# =============================================================================

def make_log(
    db: Session,
    user: User,
    project: Project,
    category: WorkCategory,
    log_date: date = date(2024, 1, 15),
    hours: str = "8",
    details: Optional[str] = None,
) -> WorkLog:
    """Insert a work log directly."""
    log = WorkLog(
        user_id=user.id,
        date=log_date,
        hours=Decimal(hours),
        project_id=project.id,
        category_id=category.id,
        details=details,
    )
    db.add(log)
    db.commit()
    db.refresh(log)
    return log


def auth_headers(user: User) -> dict:
    """Get headers for API key authentication."""
    return {"X-API-Key": user.api_key}


def principal_of(user: User) -> Principal:
    return Principal(id=user.id, role=user.role)


class OfflineSession:
    """Stands in for a Session where no query may run."""

    def query(self, *args, **kwargs):
        raise AssertionError("database was queried")
