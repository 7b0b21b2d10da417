"""
Tests for user registration and lookup (UserService).
"""

import asyncio
import uuid

import pytest

from app.errors import ConflictError, InvalidArgumentError, NotFoundError
from app.models.user import User
from app.schemas.user import UserCreate


def _payload(username: str) -> UserCreate:
    return UserCreate(username=username, display_name=username.title(), age=31)


class TestCreateUser:
    @pytest.mark.asyncio
    async def test_returns_persisted_user(self, user_service):
        user = await user_service.create_user(_payload("erin"))

        assert isinstance(user.id, uuid.UUID)
        assert user.username == "erin"
        assert user.bio == ""
        assert user.interests == []
        assert user.created_at is not None

    @pytest.mark.asyncio
    async def test_duplicate_username_conflict(self, user_service, count_rows):
        await user_service.create_user(_payload("erin"))

        with pytest.raises(ConflictError, match="already taken"):
            await user_service.create_user(_payload("erin"))
        assert await count_rows(User) == 1

    @pytest.mark.asyncio
    async def test_concurrent_duplicates_yield_one_user(self, user_service, count_rows):
        """Simultaneous registrations of one name: one wins, the rest conflict."""
        outcomes = await asyncio.gather(
            *(user_service.create_user(_payload("frank")) for _ in range(4)),
            return_exceptions=True,
        )

        created = [o for o in outcomes if isinstance(o, User)]
        conflicts = [o for o in outcomes if isinstance(o, ConflictError)]
        assert len(created) == 1
        assert len(conflicts) == 3
        assert await count_rows(User, User.username == "frank") == 1


class TestGetAndListUsers:
    @pytest.mark.asyncio
    async def test_get_user(self, user_service, alice):
        assert (await user_service.get_user(str(alice.id))).username == "alice"

    @pytest.mark.asyncio
    async def test_unknown_user_not_found(self, user_service):
        with pytest.raises(NotFoundError):
            await user_service.get_user(uuid.uuid4())

    @pytest.mark.asyncio
    async def test_malformed_id_invalid(self, user_service):
        with pytest.raises(InvalidArgumentError):
            await user_service.get_user("nope")

    @pytest.mark.asyncio
    async def test_list_newest_first(self, user_service, alice, bob):
        users = await user_service.list_users()
        assert [u.username for u in users] == ["bob", "alice"]
