# routers/messages.py
from dataclasses import asdict
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.security import get_current_user_id
from schemas.message import (
    DateSuggestionEligibility, MessageCreate, MessageLimitRead, MessageRead, SendMessageResponse,
)
from services.messaging import (
    check_message_limit, date_suggestion_eligibility, fetch_messages, mark_messages_read, send_message,
)

router = APIRouter(prefix="/matches", tags=["messages"])


@router.get(
    "/{match_id}/messages",
    response_model=List[MessageRead],
    summary="История переписки (since: только новые, для опроса)",
)
async def get_messages(
    match_id: int,
    since: Optional[datetime] = Query(None, description="Вернуть сообщения новее этого момента"),
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
) -> List[MessageRead]:
    messages = await fetch_messages(db, current_user_id, match_id, since)
    return [MessageRead.model_validate(m) for m in messages]


@router.post(
    "/{match_id}/messages",
    response_model=SendMessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Отправить сообщение",
)
async def post_message(
    match_id: int,
    payload: MessageCreate,
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
) -> SendMessageResponse:
    result = await send_message(db, current_user_id, match_id, payload.content)
    return SendMessageResponse(
        message=MessageRead.model_validate(result.message),
        limit=MessageLimitRead(**asdict(result.limit)),
        should_show_date_suggestion=result.should_show_date_suggestion,
    )


@router.post(
    "/{match_id}/messages/read",
    summary="Отметить входящие сообщения прочитанными",
)
async def read_messages(
    match_id: int,
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
):
    updated = await mark_messages_read(db, current_user_id, match_id)
    return {"marked_read": updated}


@router.get(
    "/{match_id}/message-limit",
    response_model=MessageLimitRead,
    summary="Сколько сообщений ещё можно отправить сегодня",
)
async def get_message_limit(
    match_id: int,
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
) -> MessageLimitRead:
    limit = await check_message_limit(db, current_user_id, match_id)
    return MessageLimitRead(**asdict(limit))


@router.get(
    "/{match_id}/date-suggestion/eligibility",
    response_model=DateSuggestionEligibility,
    summary="Пора ли предложить свидание",
)
async def get_date_suggestion_eligibility(
    match_id: int,
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
) -> DateSuggestionEligibility:
    show = await date_suggestion_eligibility(db, current_user_id, match_id)
    return DateSuggestionEligibility(match_id=match_id, should_show_date_suggestion=show)
