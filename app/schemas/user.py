from pydantic import BaseModel, Field
from uuid import UUID
from datetime import datetime
from typing import Optional

class UserCreate(BaseModel):
    username: str = Field(min_length=1, max_length=64)
    display_name: str = Field(min_length=1, max_length=128)
    age: int = Field(ge=18, le=120)
    bio: str = ""
    avatar_url: Optional[str] = None
    location_lat: Optional[float] = Field(None, ge=-90, le=90)
    location_lng: Optional[float] = Field(None, ge=-180, le=180)
    interests: list[str] = []

class UserResponse(BaseModel):
    id: UUID
    username: str
    display_name: str
    age: int
    bio: str
    avatar_url: Optional[str]
    location_lat: Optional[float]
    location_lng: Optional[float]
    interests: list[str] = []
    created_at: datetime
    updated_at: Optional[datetime]

    model_config = {"from_attributes": True}
