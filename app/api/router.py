"""
Swipematch — Main API Router

Aggregates all sub-routers under a single prefix so that ``app.main``
can mount the entire API surface with one ``include_router`` call.
"""

from fastapi import APIRouter

from app.api import matches, messages, swipes, users

router = APIRouter()

router.include_router(users.router, prefix="/users", tags=["Users"])
router.include_router(swipes.router, prefix="/swipes", tags=["Swipes"])
router.include_router(matches.router, prefix="/matches", tags=["Matches"])
router.include_router(messages.router, prefix="/messages", tags=["Messages"])
