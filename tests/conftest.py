"""Shared pytest fixtures for Swipematch tests.

Every test gets its own on-disk SQLite database (``aiosqlite``) so that
separate sessions really are separate connections, which the concurrency
tests rely on.
"""
import itertools
import os

import httpx
import pytest
from sqlalchemy import func, select

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./swipematch-test.db")

from app.config import Settings, get_settings  # noqa: E402
from app.database import create_store  # noqa: E402
from app.main import app  # noqa: E402
from app.schemas.user import UserCreate  # noqa: E402
from app.services.conversation_service import ConversationService  # noqa: E402
from app.services.matching_service import MatchingService  # noqa: E402
from app.services.swipe_service import SwipeService  # noqa: E402
from app.services.user_service import UserService  # noqa: E402


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'swipematch.db'}",
        DB_STATEMENT_TIMEOUT_SECONDS=30.0,
        MESSAGE_MAX_LENGTH=200,
        ENFORCE_MATCH_MEMBERSHIP=True,
    )


@pytest.fixture
async def store(settings):
    store = create_store(settings)
    await store.create_all()
    yield store
    await store.dispose()


@pytest.fixture
def user_service(store):
    return UserService(store)


@pytest.fixture
def swipe_service(store):
    return SwipeService(store)


@pytest.fixture
def matching_service(store):
    return MatchingService(store)


@pytest.fixture
def conversation_service(store, settings):
    return ConversationService(store, settings)


@pytest.fixture
def make_user(user_service):
    """Factory creating persisted users with unique usernames."""
    counter = itertools.count(1)

    async def _make(username=None, **overrides):
        n = next(counter)
        fields = {
            "username": username or f"user{n}",
            "display_name": overrides.pop("display_name", f"User {n}"),
            "age": 27,
            "bio": "Coffee, climbing and bad puns.",
            "interests": ["climbing", "coffee"],
        }
        fields.update(overrides)
        return await user_service.create_user(UserCreate(**fields))

    return _make


@pytest.fixture
async def alice(make_user):
    return await make_user("alice", display_name="Alice", avatar_url="https://cdn.example/a.png")


@pytest.fixture
async def bob(make_user):
    return await make_user("bob", display_name="Bob")


@pytest.fixture
async def carol(make_user):
    return await make_user("carol", display_name="Carol")


@pytest.fixture
def count_rows(store):
    """Count rows of ``model`` matching optional WHERE clauses."""

    async def _count(model, *where):
        stmt = select(func.count()).select_from(model)
        if where:
            stmt = stmt.where(*where)
        async with store.transaction() as session:
            return await session.scalar(stmt)

    return _count


@pytest.fixture
def mutual_like(swipe_service, matching_service):
    """Record likes in both directions and return the resulting MatchResult."""

    async def _mutual(first, second):
        await swipe_service.record_decision(first.id, second.id, "like")
        await swipe_service.record_decision(second.id, first.id, "like")
        return await matching_service.maybe_form_match(second.id, first.id)

    return _mutual


@pytest.fixture
async def client(store, settings):
    """In-process HTTP client bound to the per-test store."""
    app.state.store = store
    app.dependency_overrides[get_settings] = lambda: settings
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
    app.state.store = None
