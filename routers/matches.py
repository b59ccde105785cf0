# routers/matches.py
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.database import get_db
from core.security import get_current_user_id
from schemas.match import MatchListResponse, MatchRead
from services.matching import count_active_matches, list_matches, unmatch
from services.messaging import list_conversations
from utils.user_helpers import to_match_read

router = APIRouter(prefix="/matches", tags=["matches"])


@router.get(
    "",
    response_model=MatchListResponse,
    summary="Активные матчи и флаг достижения лимита",
)
async def get_my_matches(
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
) -> MatchListResponse:
    pairs = await list_matches(db, current_user_id)
    active = await count_active_matches(db, current_user_id)
    return MatchListResponse(
        matches=[to_match_read(m, other) for m, other in pairs],
        has_reached_limit=active >= settings.MAX_ACTIVE_MATCHES,
    )


@router.get(
    "/conversations",
    response_model=List[MatchRead],
    summary="Матчи, где уже есть переписка",
)
async def get_conversations(
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
) -> List[MatchRead]:
    pairs = await list_conversations(db, current_user_id)
    return [to_match_read(m, other) for m, other in pairs]


@router.post(
    "/{match_id}/unmatch",
    response_model=MatchRead,
    summary="Разорвать матч",
)
async def unmatch_user(
    match_id: int,
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
) -> MatchRead:
    match = await unmatch(db, current_user_id, match_id)
    return to_match_read(match)
