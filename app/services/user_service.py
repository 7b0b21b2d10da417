"""
Swipematch — User registration and lookup.

Users are created here and only referenced (by id) by the swipe, match and
conversation components.
"""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy import select

from app.database import Store
from app.errors import ConflictError, NotFoundError
from app.models.user import User
from app.schemas.user import UserCreate
from app.utils.ids import coerce_uuid
from app.utils.timestamps import utcnow

logger = structlog.get_logger("swipematch.user_service")


class UserService:
    def __init__(self, store: Store) -> None:
        self.store = store

    async def create_user(self, payload: UserCreate) -> User:
        """Register a new user; usernames are unique.

        The insert ignores a clash on ``username`` and returns no row, so
        concurrent registrations of one name yield one user and
        ``ConflictError`` for the rest.
        """
        log = logger.bind(username=payload.username)

        stmt = (
            self.store.insert(User)
            .values(
                username=payload.username,
                display_name=payload.display_name,
                age=payload.age,
                bio=payload.bio,
                avatar_url=payload.avatar_url,
                location_lat=payload.location_lat,
                location_lng=payload.location_lng,
                interests=list(payload.interests),
                created_at=utcnow(),
            )
            .on_conflict_do_nothing(index_elements=[User.username])
            .returning(User)
        )
        async with self.store.transaction() as session:
            user = (await session.scalars(stmt)).one_or_none()

        if user is None:
            log.warning("create_user_duplicate_username")
            raise ConflictError(f"Username {payload.username!r} is already taken.")

        log.info("create_user_complete", user_id=str(user.id))
        return user

    async def get_user(self, user_id: uuid.UUID | str) -> User:
        user_id = coerce_uuid(user_id, "user_id")
        async with self.store.transaction() as session:
            user = await session.get(User, user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found.")
        return user

    async def list_users(self) -> list[User]:
        """All users, newest first."""
        async with self.store.transaction() as session:
            stmt = select(User).order_by(User.created_at.desc(), User.id)
            return list((await session.scalars(stmt)).all())
