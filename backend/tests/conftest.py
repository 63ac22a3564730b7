"""Pytest fixtures for DocShare tests.

Provides reusable test fixtures for:
- Database session on an in-memory SQLite database (fresh schema per test)
- Users with each role (NORMAL, VOLUNTEER, ADMIN)
- Category, tag and file factories that keep derived counters consistent
- Services wired to the test session
- Authenticated test clients with JWT tokens

Usage:
    def test_approve(engine, volunteer_user, make_file):
        file = make_file()
        engine.approve_file(actor_for(volunteer_user), file.id)
"""

import sys
import os
from pathlib import Path

# Set environment variables BEFORE any imports to ensure they take effect
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("PASSWORD_PEPPER", "test-pepper-secret-key-32-chars-long")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-key-256-bits-minimum-length-required-for-security")
os.environ.setdefault("LOG_JSON", "false")

backend_src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(backend_src))

from itertools import count
from typing import Callable, Generator, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from models import Base, Category, File, Tag, User
from domain.moderation.enums import FileStatus, UserRole
from domain.moderation.policy import Actor
from database import get_db as database_get_db, unit_of_work_factory
from moderation.engine import ModerationEngine
from files.service import FileService
from categories.service import CategoryService
from tags.service import TagService
from auth.jwt import create_access_token


# One connection shared by every session so the in-memory database survives
test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

# Argon2 is slow on purpose; tests never log in, so any non-empty hash will do
TEST_PASSWORD_HASH = "$argon2id$v=19$m=65536,t=3,p=4$test$test"

_sequence = count(1)


def actor_for(user: User) -> Actor:
    """Actor carrying the user's current role."""
    return Actor(id=user.id, role=UserRole(user.role))


def auth_headers(user: User) -> dict:
    token = create_access_token(user_id=user.id, role=user.role, username=user.username)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Fresh schema for each test; dropped afterwards."""
    Base.metadata.create_all(bind=test_engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        # Self-referential RESTRICT keys (category.parent_id) block DROP TABLE
        # while foreign keys are enforced, so suspend them for the teardown.
        with test_engine.connect() as conn:
            conn.exec_driver_sql("PRAGMA foreign_keys=OFF")
            Base.metadata.drop_all(bind=conn)
            conn.commit()
            conn.exec_driver_sql("PRAGMA foreign_keys=ON")


# =============================================================================
# ENTITY FACTORIES
# =============================================================================

@pytest.fixture(scope="function")
def make_user(db_session: Session) -> Callable[..., User]:
    def _make_user(role: str = "NORMAL", upload_status: str = "NORMAL", username: Optional[str] = None) -> User:
        n = next(_sequence)
        username = username or f"{role.lower()}{n}"
        user = User(
            username=username,
            email=f"{username}@test.com",
            password_hash=TEST_PASSWORD_HASH,
            role=role,
            upload_status=upload_status,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make_user


@pytest.fixture(scope="function")
def normal_user(make_user) -> User:
    return make_user("NORMAL", username="normal")


@pytest.fixture(scope="function")
def volunteer_user(make_user) -> User:
    return make_user("VOLUNTEER", username="volunteer")


@pytest.fixture(scope="function")
def admin_user(make_user) -> User:
    return make_user("ADMIN", username="admin")


@pytest.fixture(scope="function")
def category(db_session: Session) -> Category:
    category = Category(name="Lecture notes", sort_order=1)
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture(scope="function")
def make_tag(db_session: Session) -> Callable[..., Tag]:
    def _make_tag(name: Optional[str] = None, enabled: bool = True) -> Tag:
        tag = Tag(name=name or f"tag{next(_sequence)}", enabled=enabled)
        db_session.add(tag)
        db_session.commit()
        return tag

    return _make_tag


@pytest.fixture(scope="function")
def make_file(db_session: Session, normal_user: User, category: Category) -> Callable[..., File]:
    """Insert a file directly, bumping the counters it contributes to.

    Defaults to a PENDING file owned by ``normal_user``.
    """
    def _make_file(
        owner: Optional[User] = None,
        status: str = FileStatus.PENDING.value,
        tags: Optional[List[Tag]] = None,
    ) -> File:
        owner = owner or normal_user
        n = next(_sequence)
        file = File(
            owner_id=owner.id,
            category_id=category.id,
            title=f"File {n}",
            original_name=f"file{n}.pdf",
            blob_key=f"uploads/file{n}.pdf",
            file_type="document",
            file_ext="pdf",
            size_bytes=1024,
            audit_status=status,
        )
        file.tags = list(tags or [])
        db_session.add(file)
        owner.upload_count += 1
        if status == FileStatus.BANNED.value:
            owner.banned_file_count += 1
        for tag in file.tags:
            tag.usage_count += 1
        db_session.commit()
        return file

    return _make_file


@pytest.fixture(scope="function")
def independent_sessions(tmp_path) -> Generator[Callable[[], Session], None, None]:
    """Sessions on a file-backed database, each with its own connection.

    Unlike ``db_session`` these do not share an identity map or a
    connection, so one session can hold stale state while another commits.
    """
    file_engine = create_engine(f"sqlite:///{tmp_path / 'docshare.db'}")
    Base.metadata.create_all(bind=file_engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=file_engine)
    opened: List[Session] = []

    def _open() -> Session:
        session = factory()
        opened.append(session)
        return session

    yield _open

    for session in opened:
        session.close()
    file_engine.dispose()


# =============================================================================
# SERVICES
# =============================================================================

@pytest.fixture(scope="function")
def uow_factory(db_session: Session):
    return unit_of_work_factory(db_session)


@pytest.fixture(scope="function")
def engine(uow_factory) -> ModerationEngine:
    return ModerationEngine(uow_factory, remark_max_length=500)


@pytest.fixture(scope="function")
def file_service(uow_factory) -> FileService:
    return FileService(uow_factory)


@pytest.fixture(scope="function")
def category_service(uow_factory) -> CategoryService:
    return CategoryService(uow_factory)


@pytest.fixture(scope="function")
def tag_service(uow_factory) -> TagService:
    return TagService(uow_factory)


# =============================================================================
# HTTP CLIENTS
# =============================================================================

@pytest.fixture(scope="function")
def client(db_session: Session):
    """Unauthenticated test client bound to the test session."""
    from main import app

    def override_get_db():
        yield db_session

    app.dependency_overrides[database_get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def admin_client(client: TestClient, admin_user: User) -> TestClient:
    client.headers.update(auth_headers(admin_user))
    return client


@pytest.fixture(scope="function")
def volunteer_client(client: TestClient, volunteer_user: User) -> TestClient:
    client.headers.update(auth_headers(volunteer_user))
    return client


@pytest.fixture(scope="function")
def normal_client(client: TestClient, normal_user: User) -> TestClient:
    client.headers.update(auth_headers(normal_user))
    return client


@pytest.fixture
def actor():
    """Callable building an Actor from a User."""
    return actor_for


@pytest.fixture
def headers_for():
    """Callable building Authorization headers for a User."""
    return auth_headers
