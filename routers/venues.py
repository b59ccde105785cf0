# routers/venues.py
import logging
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import AsyncSessionLocal, get_db
from core.errors import DependencyError
from core.security import get_current_user_id
from schemas.venue import (
    DateSuggestionCreate, DateSuggestionRead, DateSuggestionRespond, Midpoint,
    VenueRead, VenueRecommendationResponse,
)
from services.venues import (
    get_latest_date_suggestion, recommend_venues, record_impressions,
    respond_to_date_suggestion, select_venue, submit_date_suggestion,
)
from utils.user_helpers import to_date_suggestion_read, to_venue_read

logger = logging.getLogger(__name__)

router = APIRouter(tags=["venues"])


async def count_impressions(venue_ids: List[int]) -> None:
    """Фоновая задача: своя сессия, потому что сессия запроса уже закрыта."""
    async with AsyncSessionLocal() as session:
        try:
            await record_impressions(session, venue_ids)
        except DependencyError:
            logger.error("Impressions for venues %s were not recorded", venue_ids)
            raise


@router.get(
    "/matches/{match_id}/venues",
    response_model=VenueRecommendationResponse,
    summary="Площадки для свидания рядом с серединой между участниками",
)
async def get_venue_recommendations(
    match_id: int,
    background_tasks: BackgroundTasks,
    category: Optional[str] = Query(None, description="Категория площадки"),
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
) -> VenueRecommendationResponse:
    result = await recommend_venues(db, current_user_id, match_id, category)

    venue_ids = [venue.id for venue, _ in result.venues]
    if venue_ids:
        background_tasks.add_task(count_impressions, venue_ids)

    lat, lng = result.midpoint
    return VenueRecommendationResponse(
        match_id=result.match_id,
        category=result.category,
        midpoint=Midpoint(lat=lat, lng=lng),
        venues=[to_venue_read(venue, distance) for venue, distance in result.venues],
    )


@router.post(
    "/venues/{venue_id}/click",
    response_model=VenueRead,
    summary="Пользователь открыл площадку",
)
async def click_venue(
    venue_id: int,
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
) -> VenueRead:
    venue = await select_venue(db, venue_id)
    return to_venue_read(venue)


@router.post(
    "/matches/{match_id}/date-suggestions",
    response_model=DateSuggestionRead,
    status_code=status.HTTP_201_CREATED,
    summary="Предложить свидание в площадке",
)
async def create_date_suggestion(
    match_id: int,
    payload: DateSuggestionCreate,
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
) -> DateSuggestionRead:
    suggestion, venue = await submit_date_suggestion(db, current_user_id, match_id, payload.venue_id)
    return to_date_suggestion_read(suggestion, venue)


@router.get(
    "/matches/{match_id}/date-suggestions/latest",
    response_model=Optional[DateSuggestionRead],
    summary="Последнее предложение свидания в матче",
)
async def latest_date_suggestion(
    match_id: int,
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
) -> Optional[DateSuggestionRead]:
    found = await get_latest_date_suggestion(db, current_user_id, match_id)
    if found is None:
        return None
    suggestion, venue = found
    return to_date_suggestion_read(suggestion, venue)


@router.post(
    "/date-suggestions/{suggestion_id}/respond",
    response_model=DateSuggestionRead,
    summary="Принять или отклонить предложение свидания",
)
async def answer_date_suggestion(
    suggestion_id: int,
    payload: DateSuggestionRespond,
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
) -> DateSuggestionRead:
    suggestion, venue = await respond_to_date_suggestion(db, current_user_id, suggestion_id, payload.accepted)
    return to_date_suggestion_read(suggestion, venue)
