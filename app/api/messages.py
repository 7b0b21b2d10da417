"""
Swipematch — Messages API

Append to and read a match's conversation.
"""

from __future__ import annotations

import uuid

import structlog
from fastapi import APIRouter, Depends, status

from app.api.deps import get_conversation_service
from app.models.message import Message
from app.schemas.message import (
    MarkReadRequest,
    MarkReadResponse,
    MessageCreate,
    MessageResponse,
)
from app.services.conversation_service import ConversationService

logger = structlog.get_logger("swipematch.api.messages")

router = APIRouter()


# ──────────────────────────────────────────────────────────────────────────────
# POST / — Send a message
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send a message within a match",
)
async def send_message(
    payload: MessageCreate,
    conversations: ConversationService = Depends(get_conversation_service),
) -> Message:
    return await conversations.append_message(
        payload.match_id,
        payload.sender_id,
        payload.content,
        image_url=payload.image_url,
    )


# ──────────────────────────────────────────────────────────────────────────────
# GET /{match_id} — List messages
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/{match_id}",
    response_model=list[MessageResponse],
    summary="List a match's messages, oldest first",
)
async def list_messages(
    match_id: uuid.UUID,
    conversations: ConversationService = Depends(get_conversation_service),
) -> list[Message]:
    return await conversations.list_messages(match_id)


# ──────────────────────────────────────────────────────────────────────────────
# POST /{match_id}/read — Mark counterpart messages read
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "/{match_id}/read",
    response_model=MarkReadResponse,
    summary="Mark the counterpart's messages as read",
)
async def mark_read(
    match_id: uuid.UUID,
    payload: MarkReadRequest,
    conversations: ConversationService = Depends(get_conversation_service),
) -> MarkReadResponse:
    updated = await conversations.mark_read(match_id, payload.reader_id)
    logger.info("mark_read_complete", match_id=str(match_id), updated=updated)
    return MarkReadResponse(match_id=match_id, updated=updated)
