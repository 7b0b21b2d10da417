"""
Swipematch — FastAPI dependency providers.

Each request gets fresh service objects bound to the process-wide store that
the lifespan attached to ``app.state``.
"""

from fastapi import Depends

from app.config import Settings, get_settings
from app.database import Store, get_store
from app.services.conversation_service import ConversationService
from app.services.matching_service import MatchingService
from app.services.swipe_service import SwipeService
from app.services.user_service import UserService


def get_user_service(store: Store = Depends(get_store)) -> UserService:
    return UserService(store)


def get_swipe_service(store: Store = Depends(get_store)) -> SwipeService:
    return SwipeService(store)


def get_matching_service(store: Store = Depends(get_store)) -> MatchingService:
    return MatchingService(store)


def get_conversation_service(
    store: Store = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> ConversationService:
    return ConversationService(store, settings)
