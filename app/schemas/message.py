from pydantic import BaseModel, Field
from uuid import UUID
from datetime import datetime
from typing import Optional

class MessageCreate(BaseModel):
    match_id: UUID
    sender_id: UUID
    content: str = Field(min_length=1)
    image_url: Optional[str] = None

class MessageResponse(BaseModel):
    id: UUID
    match_id: UUID
    sender_id: UUID
    content: str
    image_url: Optional[str] = None
    is_read: bool
    created_at: datetime

    model_config = {"from_attributes": True}

class MarkReadRequest(BaseModel):
    reader_id: UUID

class MarkReadResponse(BaseModel):
    match_id: UUID
    updated: int
