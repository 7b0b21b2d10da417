"""
Swipematch — Users API

Endpoints for user registration and lookup.
"""

from __future__ import annotations

import uuid

import structlog
from fastapi import APIRouter, Depends, status

from app.api.deps import get_user_service
from app.models.user import User
from app.schemas.user import UserCreate, UserResponse
from app.services.user_service import UserService

logger = structlog.get_logger("swipematch.api.users")

router = APIRouter()


# ──────────────────────────────────────────────────────────────────────────────
# POST / — Create a new user
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new user",
)
async def create_user(
    payload: UserCreate,
    users: UserService = Depends(get_user_service),
) -> User:
    """Register a new user profile.

    Responds 409 when the username is already taken.
    """
    return await users.create_user(payload)


# ──────────────────────────────────────────────────────────────────────────────
# GET / — List users
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "",
    response_model=list[UserResponse],
    summary="List users, newest first",
)
async def list_users(
    users: UserService = Depends(get_user_service),
) -> list[User]:
    logger.info("list_users")
    return await users.list_users()


# ──────────────────────────────────────────────────────────────────────────────
# GET /{user_id} — Get user by ID
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/{user_id}",
    response_model=UserResponse,
    summary="Get user by ID",
)
async def get_user(
    user_id: uuid.UUID,
    users: UserService = Depends(get_user_service),
) -> User:
    """Retrieve a single user by their UUID."""
    logger.info("get_user", user_id=str(user_id))
    return await users.get_user(user_id)
