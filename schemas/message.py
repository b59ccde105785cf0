from typing import Optional
from datetime import date, datetime

from pydantic import BaseModel, Field


class MessageCreate(BaseModel):
    content: str = Field(..., max_length=2000, description="Текст сообщения")


class MessageRead(BaseModel):
    id: int
    match_id: int
    sender_id: int
    content: str
    created_at: datetime
    read_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MessageLimitRead(BaseModel):
    match_id: int
    user_id: int
    messages_today: int
    last_message_date: date
    can_send: bool
    conversation_established: bool
    daily_limit: Optional[int] = Field(None, description="None, если лимита больше нет")


class SendMessageResponse(BaseModel):
    message: MessageRead
    limit: MessageLimitRead
    should_show_date_suggestion: bool


class DateSuggestionEligibility(BaseModel):
    match_id: int
    should_show_date_suggestion: bool
