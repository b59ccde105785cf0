# services/matching.py
"""
Свайпы, образование матчей, анматч, блокировки и жалобы.

Матч хранится на канонической паре (user1_id < user2_id) с уникальным
ограничением, поэтому два встречных лайка не создадут две строки.
Счётчики match_count меняются атомарным UPDATE ... SET col = col ± 1.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from sqlalchemy import select, update, func, or_, and_, case
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.database import commit_or_rollback
from core.errors import (
    CapacityExceeded, ConflictError, DependencyError, NotFound, ValidationError,
)
from models.block import Block
from models.match import Match, MatchStatus
from models.profile import Profile
from models.report import Report
from models.swipe import Swipe
from utils.options import REPORT_REASONS

logger = logging.getLogger(__name__)


@dataclass
class SwipeResult:
    liked: bool
    matched: bool
    match: Optional[Match] = None
    other_user: Optional[Profile] = None


def canonical_pair(a: int, b: int) -> Tuple[int, int]:
    return (a, b) if a < b else (b, a)


def pair_filter(a: int, b: int):
    u1, u2 = canonical_pair(a, b)
    return and_(Match.user1_id == u1, Match.user2_id == u2)


def participant_filter(user_id: int):
    return or_(Match.user1_id == user_id, Match.user2_id == user_id)


async def count_active_matches(db: AsyncSession, user_id: int) -> int:
    res = await db.execute(
        select(func.count(Match.id)).where(
            participant_filter(user_id),
            Match.status == MatchStatus.ACTIVE,
        )
    )
    return res.scalar_one()


async def is_blocked_pair(db: AsyncSession, a: int, b: int) -> bool:
    res = await db.execute(
        select(func.count(Block.id)).where(
            or_(
                and_(Block.blocker_id == a, Block.blocked_id == b),
                and_(Block.blocker_id == b, Block.blocked_id == a),
            )
        )
    )
    return res.scalar_one() > 0


async def has_blocked(db: AsyncSession, blocker_id: int, blocked_id: int) -> bool:
    res = await db.execute(
        select(func.count(Block.id)).where(
            Block.blocker_id == blocker_id,
            Block.blocked_id == blocked_id,
        )
    )
    return res.scalar_one() > 0


async def get_match_for_participant(db: AsyncSession, user_id: int, match_id: int) -> Match:
    """Матч по id; NotFound, если его нет или пользователь не участник."""
    match = await db.get(Match, match_id, populate_existing=True)
    if match is None or user_id not in match.participants():
        raise NotFound("Match not found")
    return match


async def _change_match_count(db: AsyncSession, user_ids, delta: int) -> None:
    if delta > 0:
        new_value = Profile.match_count + delta
    else:
        # Не уходим ниже нуля
        new_value = case(
            (Profile.match_count + delta > 0, Profile.match_count + delta),
            else_=0,
        )
    await db.execute(
        update(Profile)
        .where(Profile.id.in_(list(user_ids)))
        .values(match_count=new_value)
        .execution_options(synchronize_session=False)
    )


async def _load_swipe_target(db: AsyncSession, swiper_id: int, target_id: int) -> Profile:
    if target_id == swiper_id:
        raise ValidationError("You cannot swipe on yourself")

    target = await db.get(Profile, target_id, populate_existing=True)
    if (
        target is None
        or target.is_deleted
        or not target.is_active
        or await is_blocked_pair(db, swiper_id, target_id)
    ):
        raise NotFound("Profile not found")

    res = await db.execute(
        select(func.count(Swipe.id)).where(
            Swipe.swiper_id == swiper_id,
            Swipe.swiped_id == target_id,
        )
    )
    if res.scalar_one() > 0:
        raise ConflictError("You have already swiped on this profile")
    return target


async def _create_match(db: AsyncSession, a: int, b: int) -> Match:
    """
    Создаёт матч на канонической паре внутри SAVEPOINT.
    Если параллельный запрос успел раньше, возвращает уже существующую строку.
    """
    u1, u2 = canonical_pair(a, b)
    try:
        async with db.begin_nested():
            match = Match(
                user1_id=u1,
                user2_id=u2,
                status=MatchStatus.ACTIVE,
                total_messages=0,
                user1_message_count=0,
                user2_message_count=0,
                date_suggested=False,
            )
            db.add(match)
            await db.flush()
    except IntegrityError:
        res = await db.execute(select(Match).where(pair_filter(u1, u2)))
        existing = res.scalar_one_or_none()
        if existing is None:
            raise ConflictError("Match is being created concurrently, please retry")
        logger.info("Match %s↔%s already exists, reusing id=%s", u1, u2, existing.id)
        return existing

    await _change_match_count(db, (u1, u2), +1)
    logger.info("Match created id=%s between %s and %s", match.id, u1, u2)
    return match


async def lock_pair(db: AsyncSession, a: int, b: int) -> None:
    """
    SELECT ... FOR UPDATE по обеим анкетам в каноническом порядке.
    Встречные лайки одной пары и проверки лимита матчей одного пользователя
    идут по очереди до конца транзакции. SQLite FOR UPDATE игнорирует.
    """
    await db.execute(
        select(Profile.id)
        .where(Profile.id.in_(canonical_pair(a, b)))
        .order_by(Profile.id)
        .with_for_update()
    )


async def swipe_right(db: AsyncSession, swiper_id: int, target_id: int) -> SwipeResult:
    """
    Лайк. Если у свайпера уже MAX_ACTIVE_MATCHES активных матчей: CapacityExceeded,
    свайп не записывается и анкета вернётся в выдачу. При встречном лайке создаётся матч.
    Лимит второй стороны не проверяется.
    """
    target = await _load_swipe_target(db, swiper_id, target_id)

    try:
        await lock_pair(db, swiper_id, target_id)
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Could not lock pair %s↔%s", swiper_id, target_id)
        raise DependencyError("Could not record the swipe, please retry") from exc

    if await count_active_matches(db, swiper_id) >= settings.MAX_ACTIVE_MATCHES:
        await db.rollback()
        logger.info("User %s hit the active match cap", swiper_id)
        raise CapacityExceeded()

    try:
        db.add(Swipe(swiper_id=swiper_id, swiped_id=target_id, liked=True))
        await db.flush()

        mutual = await db.execute(
            select(func.count(Swipe.id)).where(
                Swipe.swiper_id == target_id,
                Swipe.swiped_id == swiper_id,
                Swipe.liked.is_(True),
            )
        )
        match = None
        if mutual.scalar_one() > 0:
            match = await _create_match(db, swiper_id, target_id)

        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError("You have already swiped on this profile") from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Swipe %s→%s failed", swiper_id, target_id)
        raise DependencyError("Could not record the swipe, please retry") from exc

    if match is None:
        return SwipeResult(liked=True, matched=False)

    await db.refresh(match)
    return SwipeResult(liked=True, matched=True, match=match, other_user=target)


async def swipe_left(db: AsyncSession, swiper_id: int, target_id: int) -> SwipeResult:
    """Пас: записывает liked=false, матч не создаётся никогда."""
    await _load_swipe_target(db, swiper_id, target_id)

    db.add(Swipe(swiper_id=swiper_id, swiped_id=target_id, liked=False))
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError("You have already swiped on this profile") from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Pass %s→%s failed", swiper_id, target_id)
        raise DependencyError("Could not record the swipe, please retry") from exc

    return SwipeResult(liked=False, matched=False)


async def unmatch(db: AsyncSession, user_id: int, match_id: int) -> Match:
    """Необратимо переводит матч в unmatched; переписка остаётся."""
    match = await get_match_for_participant(db, user_id, match_id)

    # Условный UPDATE: из active в unmatched переходит ровно один запрос
    res = await db.execute(
        update(Match)
        .where(Match.id == match.id, Match.status == MatchStatus.ACTIVE)
        .values(status=MatchStatus.UNMATCHED)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount == 0:
        await db.rollback()
        raise ValidationError("Match is not active")

    await _change_match_count(db, match.participants(), -1)
    await commit_or_rollback(db, "unmatch")
    await db.refresh(match)

    logger.info("User %s unmatched match id=%s", user_id, match.id)
    return match


async def block_user(db: AsyncSession, blocker_id: int, blocked_id: int) -> None:
    """
    Блокировка: запись в blocks (повтор не ошибка), матч пары: в blocked,
    счётчики уменьшаются, если матч был активным.
    """
    if blocker_id == blocked_id:
        raise ValidationError("You cannot block yourself")

    target = await db.get(Profile, blocked_id, populate_existing=True)
    if target is None:
        raise NotFound("Profile not found")

    if not await has_blocked(db, blocker_id, blocked_id):
        try:
            async with db.begin_nested():
                db.add(Block(blocker_id=blocker_id, blocked_id=blocked_id))
                await db.flush()
        except IntegrityError:
            # Параллельный запрос уже записал блокировку
            logger.info("User %s already blocked user %s", blocker_id, blocked_id)

    res = await db.execute(select(Match).where(pair_filter(blocker_id, blocked_id)))
    match = res.scalar_one_or_none()
    if match is not None and match.status != MatchStatus.BLOCKED:
        was_active = await db.execute(
            update(Match)
            .where(Match.id == match.id, Match.status == MatchStatus.ACTIVE)
            .values(status=MatchStatus.BLOCKED)
            .execution_options(synchronize_session=False)
        )
        if was_active.rowcount:
            await _change_match_count(db, match.participants(), -1)
        else:
            await db.execute(
                update(Match)
                .where(Match.id == match.id)
                .values(status=MatchStatus.BLOCKED)
                .execution_options(synchronize_session=False)
            )

    await commit_or_rollback(db, "block the user")
    if match is not None:
        await db.refresh(match)
    logger.info("User %s blocked user %s", blocker_id, blocked_id)


async def report_user(
    db: AsyncSession,
    reporter_id: int,
    reported_id: int,
    reason: str,
    description: Optional[str] = None,
) -> Report:
    if reporter_id == reported_id:
        raise ValidationError("You cannot report yourself")
    if reason not in REPORT_REASONS:
        raise ValidationError(f"Unknown report reason '{reason}'")
    if await db.get(Profile, reported_id, populate_existing=True) is None:
        raise NotFound("Profile not found")

    report = Report(
        reporter_id=reporter_id,
        reported_id=reported_id,
        reason=reason,
        description=(description or "").strip() or None,
        status="pending",
    )
    db.add(report)
    await commit_or_rollback(db, "submit the report")
    await db.refresh(report)

    logger.info("User %s reported user %s for %s", reporter_id, reported_id, reason)
    return report


async def list_matches(
    db: AsyncSession,
    user_id: int,
    with_messages_only: bool = False,
) -> List[Tuple[Match, Optional[Profile]]]:
    """Активные матчи пользователя вместе с анкетой второй стороны, свежая переписка первой."""
    stmt = select(Match).where(
        participant_filter(user_id),
        Match.status == MatchStatus.ACTIVE,
    )
    if with_messages_only:
        stmt = stmt.where(Match.total_messages > 0)
    stmt = stmt.order_by(Match.last_message_at.desc().nulls_last(), Match.created_at.desc(), Match.id.desc())

    matches = (await db.execute(stmt)).scalars().all()
    if not matches:
        return []

    other_ids = {m.other_user_id(user_id) for m in matches}
    res = await db.execute(select(Profile).where(Profile.id.in_(other_ids)))
    profiles = {p.id: p for p in res.scalars().all()}

    return [(m, profiles.get(m.other_user_id(user_id))) for m in matches]
