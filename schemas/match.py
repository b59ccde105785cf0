from typing import Optional, List
from datetime import datetime

from pydantic import BaseModel

from schemas.profile import ProfileRead


class MatchRead(BaseModel):
    id: int
    user1_id: int
    user2_id: int
    status: str
    created_at: datetime
    total_messages: int
    user1_message_count: int
    user2_message_count: int
    last_message_at: Optional[datetime] = None
    last_message_preview: Optional[str] = None
    date_suggested: bool
    date_suggestion_sent_at: Optional[datetime] = None
    venue_selected: Optional[int] = None
    other_user: Optional[ProfileRead] = None

    class Config:
        from_attributes = True


class MatchListResponse(BaseModel):
    matches: List[MatchRead]
    has_reached_limit: bool


class SwipeResponse(BaseModel):
    liked: bool
    matched: bool
    match: Optional[MatchRead] = None


class ReportCreate(BaseModel):
    reason: str
    description: Optional[str] = None
