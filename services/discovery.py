# services/discovery.py
"""
Подбор анкет для ленты свайпов.

Жёсткие фильтры считаются в SQL: сам зритель, неактивные/на паузе/удалённые
анкеты, анкеты без главного фото, уже просвайпанные, заблокированные
в любую сторону, а также возраст, рост и списки допустимых значений из
deal_breakers. Дистанция (haversine) досчитывается в Python по страницам
выборки, чтобы лимит выдачи соблюдался и с этим фильтром.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import select, not_
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.errors import NotFound
from models.block import Block
from models.deal_breakers import DealBreakers
from models.profile import Profile
from models.swipe import Swipe
from utils.dates import local_today, years_ago
from utils.geo import distance_miles
from utils.options import ALLOW_LISTS

logger = logging.getLogger(__name__)


@dataclass
class Candidate:
    profile: Profile
    distance: Optional[float] = None
    compatibility: int = 0


def eligible_profiles_query(viewer_id: int):
    """Базовая выборка: кого вообще можно показывать зрителю."""
    sub_swiped = select(Swipe.swiped_id).where(Swipe.swiper_id == viewer_id)
    sub_blocked = select(Block.blocked_id).where(Block.blocker_id == viewer_id)
    sub_blocked_by = select(Block.blocker_id).where(Block.blocked_id == viewer_id)

    return select(Profile).where(
        Profile.id != viewer_id,
        Profile.is_active.is_(True),
        Profile.is_paused.is_(False),
        Profile.is_deleted.is_(False),
        Profile.main_photo_url.is_not(None),
        not_(Profile.id.in_(sub_swiped)),
        not_(Profile.id.in_(sub_blocked)),
        not_(Profile.id.in_(sub_blocked_by)),
    )


def apply_deal_breakers(stmt, deal_breakers: Optional[DealBreakers]):
    """Добавляет к выборке условия из deal_breakers зрителя (кроме дистанции)."""
    if deal_breakers is None:
        return stmt

    today = local_today()
    # Возраст в [min_age, max_age] включительно
    if deal_breakers.min_age is not None:
        stmt = stmt.where(Profile.birth_date <= years_ago(today, deal_breakers.min_age))
    if deal_breakers.max_age is not None:
        stmt = stmt.where(Profile.birth_date > years_ago(today, deal_breakers.max_age + 1))

    if deal_breakers.min_height is not None:
        stmt = stmt.where(Profile.height_cm >= deal_breakers.min_height)
    if deal_breakers.max_height is not None:
        stmt = stmt.where(Profile.height_cm <= deal_breakers.max_height)

    # None или пустой список: ограничения нет; иначе значение кандидата должно входить в список
    for field, (profile_field, _) in ALLOW_LISTS.items():
        allowed = getattr(deal_breakers, field)
        if allowed:
            stmt = stmt.where(getattr(Profile, profile_field).in_(allowed))

    return stmt


def compatibility_score(viewer: Profile, candidate: Profile) -> int:
    """Взаимное совпадение по полу: +1 за каждую сторону, которой подходит другая."""
    score = 0
    if _wants(viewer.looking_for, candidate.gender):
        score += 1
    if _wants(candidate.looking_for, viewer.gender):
        score += 1
    return score


def _wants(looking_for: Optional[list], gender: str) -> bool:
    if not looking_for:
        return False
    # "other" в looking_for значит "все"
    return gender in looking_for or "other" in looking_for


async def discover(
    db: AsyncSession,
    viewer_id: int,
    limit: Optional[int] = None,
    offset: int = 0,
) -> List[Candidate]:
    """
    Возвращает до `limit` подходящих анкет, начиная с `offset`.
    Повторный вызов выдаёт следующую порцию: просвайпанные анкеты выпадают сами.
    """
    limit = limit or settings.DISCOVER_PAGE_SIZE

    viewer = await db.get(Profile, viewer_id, populate_existing=True)
    if viewer is None or viewer.is_deleted:
        raise NotFound("Complete your profile before discovering matches")

    res = await db.execute(select(DealBreakers).where(DealBreakers.user_id == viewer_id))
    deal_breakers = res.scalar_one_or_none()

    stmt = apply_deal_breakers(eligible_profiles_query(viewer_id), deal_breakers)
    stmt = stmt.order_by(Profile.last_active.desc(), Profile.id.asc())

    max_distance = deal_breakers.max_distance if deal_breakers else None
    use_distance = (
        max_distance is not None
        and viewer.location_lat is not None
        and viewer.location_lng is not None
    )

    if use_distance:
        candidates = await _page_with_distance(db, stmt, viewer, max_distance, limit, offset)
    else:
        result = await db.execute(stmt.offset(offset).limit(limit))
        candidates = [
            Candidate(profile=p, distance=_distance_between(viewer, p))
            for p in result.scalars().all()
        ]

    for candidate in candidates:
        candidate.compatibility = compatibility_score(viewer, candidate.profile)
    # sort стабилен: внутри одного балла остаётся порядок по активности
    candidates.sort(key=lambda c: c.compatibility, reverse=True)

    logger.debug("discover viewer=%s offset=%s returned=%s", viewer_id, offset, len(candidates))
    return candidates


async def _page_with_distance(
    db: AsyncSession,
    stmt,
    viewer: Profile,
    max_distance: int,
    limit: int,
    offset: int,
) -> List[Candidate]:
    """Листает выборку пачками, пока не наберёт offset + limit анкет в радиусе."""
    stmt = stmt.where(Profile.location_lat.is_not(None), Profile.location_lng.is_not(None))
    batch_size = max(limit * 2, 50)
    matched: List[Candidate] = []
    scanned = 0

    while len(matched) < offset + limit:
        result = await db.execute(stmt.offset(scanned).limit(batch_size))
        batch = result.scalars().all()
        if not batch:
            break
        scanned += len(batch)
        for profile in batch:
            distance = _distance_between(viewer, profile)
            if distance is not None and distance <= max_distance:
                matched.append(Candidate(profile=profile, distance=distance))
        if len(batch) < batch_size:
            break

    return matched[offset:offset + limit]


def _distance_between(viewer: Profile, other: Profile) -> Optional[float]:
    if None in (viewer.location_lat, viewer.location_lng, other.location_lat, other.location_lng):
        return None
    return distance_miles(viewer.location_lat, viewer.location_lng, other.location_lat, other.location_lng)
