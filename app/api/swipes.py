"""
Swipematch — Swipes API

Records like / pass decisions and, on a like, runs match detection.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, status

from app.api.deps import get_matching_service, get_swipe_service
from app.models.match import Decision
from app.schemas.match import SwipeCreate, SwipeResponse
from app.services.matching_service import MatchingService, MatchResult
from app.services.swipe_service import SwipeService

logger = structlog.get_logger("swipematch.api.swipes")

router = APIRouter()


# ──────────────────────────────────────────────────────────────────────────────
# POST / — Record swipe decision
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "",
    response_model=SwipeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a swipe decision",
)
async def record_swipe(
    payload: SwipeCreate,
    swipes: SwipeService = Depends(get_swipe_service),
    matching: MatchingService = Depends(get_matching_service),
) -> SwipeResponse:
    """Record a like or pass and report whether it completed a match.

    The decision is written first; match detection only runs for a like, so
    a pass never creates (or removes) a match.
    """
    log = logger.bind(
        swiper_id=str(payload.swiper_id),
        target_id=str(payload.target_id),
        decision=payload.decision.value,
    )
    log.info("record_swipe_start")

    swipe = await swipes.record_decision(
        payload.swiper_id, payload.target_id, payload.decision
    )

    result = MatchResult(matched=False)
    if payload.decision is Decision.LIKE:
        result = await matching.maybe_form_match(payload.swiper_id, payload.target_id)

    log.info("record_swipe_complete", matched=result.matched)

    return SwipeResponse(
        id=swipe.id,
        swiper_id=swipe.swiper_id,
        target_id=swipe.target_id,
        decision=swipe.decision,
        created_at=swipe.created_at,
        updated_at=swipe.updated_at,
        matched=result.matched,
        match_id=result.match.id if result.match is not None else None,
    )
