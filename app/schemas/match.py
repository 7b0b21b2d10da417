from pydantic import BaseModel
from uuid import UUID
from datetime import datetime
from typing import Optional

from app.models.match import Decision

class SwipeCreate(BaseModel):
    swiper_id: UUID
    target_id: UUID
    decision: Decision

class SwipeResponse(BaseModel):
    id: UUID
    swiper_id: UUID
    target_id: UUID
    decision: Decision
    created_at: datetime
    updated_at: Optional[datetime] = None
    matched: bool = False
    match_id: Optional[UUID] = None

class MatchResponse(BaseModel):
    id: UUID
    user_a_id: UUID
    user_b_id: UUID
    matched_at: datetime
    last_message_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

class MatchListItem(BaseModel):
    match_id: UUID
    other_user_id: UUID
    other_username: str
    other_display_name: str
    other_avatar_url: Optional[str] = None
    matched_at: datetime
    last_message_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
