"""
Swipematch — Matches API

Read-side endpoints: a user's match list (with the counterpart's display
fields) and single-match lookup.
"""

from __future__ import annotations

import uuid

import structlog
from fastapi import APIRouter, Depends

from app.api.deps import get_matching_service
from app.models.match import Match
from app.schemas.match import MatchListItem, MatchResponse
from app.services.matching_service import MatchingService, MatchSummary

logger = structlog.get_logger("swipematch.api.matches")

router = APIRouter()


# ──────────────────────────────────────────────────────────────────────────────
# GET /user/{user_id} — List all matches for a user
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/user/{user_id}",
    response_model=list[MatchListItem],
    summary="List all matches for a user",
)
async def list_user_matches(
    user_id: uuid.UUID,
    matching: MatchingService = Depends(get_matching_service),
) -> list[MatchSummary]:
    """Return every match involving the user, most recent first."""
    return await matching.list_matches_for_user(user_id)


# ──────────────────────────────────────────────────────────────────────────────
# GET /{match_id} — Get match details
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/{match_id}",
    response_model=MatchResponse,
    summary="Get match details by ID",
)
async def get_match(
    match_id: uuid.UUID,
    matching: MatchingService = Depends(get_matching_service),
) -> Match:
    logger.info("get_match", match_id=str(match_id))
    return await matching.get_match(match_id)
