"""
Pytest configuration and fixtures for term access tests

Every test gets a fresh in-memory SQLite database seeded with a small
taxonomy, a handful of users and roles, and content items.

Seed data:
    roles:    editor, reviewer, admin (*), manager (permissions.manage)
    users:    1 alice (editor), 2 bob (no roles), 3 carol (admin),
              4 dave (manager), 5 erin (reviewer)
    terms:    7 Finance, 8 Legal, 9 News (tags), 20 Budget (child of 7),
              21 Payroll (child of 20), 30 Misc (tags)
    content:  10 {7}, 11 {7, 8}, 12 {}, 13 {9}, 14 {21}, 42 unpublished {}
"""

import os
import sys

import pytest
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))  # noqa: PTH100, PTH118, PTH120

# Settings() refuses to load without a signing key
os.environ.setdefault("SECRET_KEY", "test-only-signing-key")

from term_access.config import Settings  # noqa: E402
from term_access.database import Base  # noqa: E402
from term_access.dependencies import build_access_hooks  # noqa: E402
from term_access.models import (  # noqa: E402
    ContentItem,
    Role,
    Term,
    User,
    content_item_terms,
    term_hierarchy,
)
from term_access.services.identity import Principal  # noqa: E402

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class RecordingCache:
    """Cache backend that remembers invalidated tags."""

    def __init__(self):
        self.invalidated: list[str] = []

    async def invalidate(self, tag: str) -> None:
        self.invalidated.append(tag)


class RecordingObserver:
    """Access observer that remembers denied content ids."""

    def __init__(self):
        self.denied: list[int] = []

    def on_access_denied(self, content_item_id: int) -> None:
        self.denied.append(content_item_id)


@pytest.fixture(scope="function")
async def test_engine():
    """Fresh in-memory database for each test function."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture(scope="function")
async def test_db(session_factory) -> AsyncSession:
    async with session_factory() as session:
        yield session


@pytest.fixture(scope="function")
async def seeded_db(session_factory, test_db) -> AsyncSession:
    """test_db with the seed data from the module docstring committed."""
    async with session_factory() as session:
        roles = {
            "editor": Role(name="editor", permissions=[]),
            "reviewer": Role(name="reviewer", permissions=[]),
            "admin": Role(name="admin", permissions=["*"]),
            "manager": Role(name="manager", permissions=["permissions.manage"]),
        }
        session.add_all(roles.values())
        session.add_all(
            [
                User(id=1, username="alice", email="alice@example.com", roles=[roles["editor"]]),
                User(id=2, username="bob", email="bob@example.com", roles=[]),
                User(id=3, username="carol", email="carol@example.com", roles=[roles["admin"]]),
                User(id=4, username="dave", email="dave@example.com", roles=[roles["manager"]]),
                User(id=5, username="erin", email="erin@example.com", roles=[roles["reviewer"]]),
            ]
        )
        session.add_all(
            [
                Term(id=7, name="Finance", vocabulary="departments"),
                Term(id=8, name="Legal", vocabulary="departments"),
                Term(id=9, name="News", vocabulary="tags"),
                Term(id=20, name="Budget", vocabulary="departments"),
                Term(id=21, name="Payroll", vocabulary="departments"),
                Term(id=30, name="Misc", vocabulary="tags"),
            ]
        )
        session.add_all(
            [
                ContentItem(id=10, title="Quarterly report", published=True, langcode="en"),
                ContentItem(id=11, title="Contract review", published=True, langcode="en"),
                ContentItem(id=12, title="Welcome", published=True),
                ContentItem(id=13, title="Press release", published=True),
                ContentItem(id=14, title="Salaries", published=True),
                ContentItem(id=42, title="Draft", published=False),
            ]
        )
        await session.flush()
        await session.execute(
            insert(term_hierarchy),
            [{"term_id": 20, "parent_id": 7}, {"term_id": 21, "parent_id": 20}],
        )
        await session.execute(
            insert(content_item_terms),
            [
                {"content_item_id": 10, "term_id": 7, "field_name": "field_department"},
                {"content_item_id": 11, "term_id": 7, "field_name": "field_department"},
                {"content_item_id": 11, "term_id": 8, "field_name": "field_department"},
                {"content_item_id": 13, "term_id": 9, "field_name": "field_tags"},
                {"content_item_id": 14, "term_id": 21, "field_name": "field_department"},
            ],
        )
        await session.commit()
    return test_db


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        database_url=TEST_DATABASE_URL,
        redis_url=None,
        secret_key="test-only-signing-key",
    )


@pytest.fixture
def cache() -> RecordingCache:
    return RecordingCache()


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def hooks(seeded_db, test_settings, cache, observer):
    return build_access_hooks(seeded_db, test_settings, cache=cache, observer=observer)


def make_principal(user_id: int, *roles: str, capabilities: tuple[str, ...] = ()) -> Principal:
    role_ids = {"anonymous"} if user_id == 0 else {"authenticated", *roles}
    return Principal(user_id=user_id, role_ids=frozenset(role_ids), capabilities=frozenset(capabilities))


@pytest.fixture
def alice() -> Principal:
    return make_principal(1, "editor")


@pytest.fixture
def bob() -> Principal:
    return make_principal(2)


@pytest.fixture
def erin() -> Principal:
    return make_principal(5, "reviewer")


@pytest.fixture
def admin() -> Principal:
    return make_principal(3, "admin", capabilities=("*",))


@pytest.fixture
def principal_factory():
    return make_principal
