# services/venues.py
"""
Подбор площадок для свидания и предложения свиданий.

Площадки ищутся вокруг середины между участниками матча: площадка
подходит, если середина лежит в её радиусе обслуживания. Спонсорский
слот важнее расстояния.
"""
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.database import commit_or_rollback
from core.errors import (
    ConflictError, DependencyError, LocationUnavailable, NotFound, ValidationError,
)
from models.date_suggestion import DateSuggestion, SuggestionStatus
from models.match import Match, MatchStatus
from models.profile import Profile
from models.venue import Venue
from services.matching import get_match_for_participant
from utils.dates import utcnow
from utils.geo import distance_miles, midpoint
from utils.options import VENUE_CATEGORIES

logger = logging.getLogger(__name__)


@dataclass
class VenueRecommendation:
    match_id: int
    midpoint: Tuple[float, float]
    category: Optional[str] = None
    venues: List[Tuple[Venue, float]] = field(default_factory=list)


def rank_venues(
    venues: Iterable[Venue],
    center: Tuple[float, float],
    limit: Optional[int] = None,
) -> List[Tuple[Venue, float]]:
    """Оставляет площадки, в радиус которых попадает center; сортирует по (слот, дистанция)."""
    limit = limit or settings.MAX_VENUE_SUGGESTIONS
    lat, lng = center

    in_range = []
    for venue in venues:
        distance = distance_miles(lat, lng, venue.lat, venue.lng)
        if distance <= venue.service_radius_miles:
            in_range.append((venue, distance))

    in_range.sort(key=lambda pair: (pair[0].partnership_slot, pair[1]))
    return in_range[:limit]


async def recommend_venues(
    db: AsyncSession,
    user_id: int,
    match_id: int,
    category: Optional[str] = None,
    limit: Optional[int] = None,
) -> VenueRecommendation:
    if category is not None and category not in VENUE_CATEGORIES:
        raise ValidationError(f"Unknown venue category '{category}'")

    match = await get_match_for_participant(db, user_id, match_id)

    res = await db.execute(
        select(Profile)
        .where(Profile.id.in_(match.participants()))
        .execution_options(populate_existing=True)
    )
    profiles = res.scalars().all()
    if len(profiles) != 2 or any(p.location_lat is None or p.location_lng is None for p in profiles):
        raise LocationUnavailable()

    a, b = profiles
    center = midpoint(a.location_lat, a.location_lng, b.location_lat, b.location_lng)

    stmt = select(Venue).where(Venue.is_active.is_(True))
    if category is not None:
        stmt = stmt.where(Venue.category == category)
    venues = (await db.execute(stmt)).scalars().all()

    ranked = rank_venues(venues, center, limit)
    logger.debug("match=%s category=%s venues=%s", match_id, category, [v.id for v, _ in ranked])
    return VenueRecommendation(match_id=match.id, midpoint=center, category=category, venues=ranked)


async def record_impressions(db: AsyncSession, venue_ids: List[int]) -> None:
    """impression_count + 1 всем показанным площадкам одним UPDATE."""
    if not venue_ids:
        return
    try:
        await db.execute(
            update(Venue)
            .where(Venue.id.in_(venue_ids))
            .values(impression_count=Venue.impression_count + 1)
            .execution_options(synchronize_session=False)
        )
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Impression update for venues %s failed", venue_ids)
        raise DependencyError("Could not record venue impressions") from exc
    await commit_or_rollback(db, "record venue impressions")


async def select_venue(db: AsyncSession, venue_id: int) -> Venue:
    venue = await db.get(Venue, venue_id, populate_existing=True)
    if venue is None or not venue.is_active:
        raise NotFound("Venue not found")

    await db.execute(
        update(Venue)
        .where(Venue.id == venue.id)
        .values(click_count=Venue.click_count + 1)
        .execution_options(synchronize_session=False)
    )
    await commit_or_rollback(db, "record the venue click")
    await db.refresh(venue)
    return venue


async def _pending_suggestion(db: AsyncSession, match_id: int) -> Optional[DateSuggestion]:
    res = await db.execute(
        select(DateSuggestion).where(
            DateSuggestion.match_id == match_id,
            DateSuggestion.status == SuggestionStatus.PENDING,
        )
    )
    return res.scalars().first()


async def submit_date_suggestion(
    db: AsyncSession, user_id: int, match_id: int, venue_id: int
) -> Tuple[DateSuggestion, Venue]:
    """Предлагает свидание в площадке; у матча может быть одно ожидающее предложение."""
    match = await get_match_for_participant(db, user_id, match_id)
    if match.status != MatchStatus.ACTIVE:
        raise ValidationError("This conversation is closed")

    venue = await db.get(Venue, venue_id, populate_existing=True)
    if venue is None or not venue.is_active:
        raise NotFound("Venue not found")

    if await _pending_suggestion(db, match.id) is not None:
        raise ConflictError("A date suggestion is already waiting for an answer")

    now = utcnow()
    try:
        suggestion = DateSuggestion(
            match_id=match.id,
            suggested_by_id=user_id,
            venue_id=venue.id,
            status=SuggestionStatus.PENDING,
        )
        db.add(suggestion)
        await db.execute(
            update(Match)
            .where(Match.id == match.id)
            .values(date_suggested=True, date_suggestion_sent_at=now)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Date suggestion in match %s failed", match_id)
        raise DependencyError("Could not send the date suggestion, please retry") from exc

    await db.refresh(suggestion)
    logger.info("User %s suggested venue %s in match %s", user_id, venue.id, match.id)
    return suggestion, venue


async def respond_to_date_suggestion(
    db: AsyncSession, user_id: int, suggestion_id: int, accepted: bool
) -> Tuple[DateSuggestion, Optional[Venue]]:
    """Ответ получателя. Принятие фиксирует площадку в матче и date_count + 1."""
    suggestion = await db.get(DateSuggestion, suggestion_id, populate_existing=True)
    if suggestion is None:
        raise NotFound("Date suggestion not found")

    match = await get_match_for_participant(db, user_id, suggestion.match_id)
    if suggestion.suggested_by_id == user_id:
        raise ValidationError("You cannot answer your own date suggestion")

    new_status = SuggestionStatus.ACCEPTED if accepted else SuggestionStatus.DECLINED
    try:
        # Ответ принимается только из pending и только один раз
        res = await db.execute(
            update(DateSuggestion)
            .where(
                DateSuggestion.id == suggestion.id,
                DateSuggestion.status == SuggestionStatus.PENDING,
            )
            .values(status=new_status, responded_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if res.rowcount == 0:
            await db.rollback()
            raise ValidationError("This date suggestion was already answered")

        if accepted:
            await db.execute(
                update(Match)
                .where(Match.id == match.id)
                .values(venue_selected=suggestion.venue_id)
                .execution_options(synchronize_session=False)
            )
            await db.execute(
                update(Venue)
                .where(Venue.id == suggestion.venue_id)
                .values(date_count=Venue.date_count + 1)
                .execution_options(synchronize_session=False)
            )
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Answer to date suggestion %s failed", suggestion_id)
        raise DependencyError("Could not save your answer, please retry") from exc

    await db.refresh(suggestion)
    venue = await db.get(Venue, suggestion.venue_id, populate_existing=True)
    logger.info("Date suggestion %s %s by user %s", suggestion.id, new_status.value, user_id)
    return suggestion, venue


async def get_latest_date_suggestion(
    db: AsyncSession, user_id: int, match_id: int
) -> Optional[Tuple[DateSuggestion, Optional[Venue]]]:
    match = await get_match_for_participant(db, user_id, match_id)
    res = await db.execute(
        select(DateSuggestion)
        .where(DateSuggestion.match_id == match.id)
        .order_by(DateSuggestion.created_at.desc(), DateSuggestion.id.desc())
        .limit(1)
    )
    suggestion = res.scalar_one_or_none()
    if suggestion is None:
        return None
    return suggestion, await db.get(Venue, suggestion.venue_id, populate_existing=True)
