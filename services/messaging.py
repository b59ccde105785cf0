# services/messaging.py
"""
Переписка внутри матча и дневной лимит сообщений.

Пока вторая сторона не ответила ни разу, отправитель может слать не больше
INITIAL_MESSAGE_LIMIT сообщений за календарный день. После первого ответа
лимит снимается. Все производные флаги пересчитываются из счётчиков
матча при каждом чтении и отправке.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.database import commit_or_rollback
from core.errors import DependencyError, RateLimited, ValidationError
from models.match import Match, MatchStatus
from models.message import Message
from models.message_limit import MessageLimit
from services.matching import get_match_for_participant, list_matches
from utils.dates import local_today, utcnow

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 50


@dataclass
class MessageLimitStatus:
    match_id: int
    user_id: int
    messages_today: int
    last_message_date: date
    can_send: bool
    conversation_established: bool
    daily_limit: Optional[int]


@dataclass
class SendResult:
    message: Message
    limit: MessageLimitStatus
    should_show_date_suggestion: bool


def is_user1(match: Match, user_id: int) -> bool:
    return match.user1_id == user_id


def other_party_count(match: Match, user_id: int) -> int:
    return match.user2_message_count if is_user1(match, user_id) else match.user1_message_count


def is_established(match: Match, user_id: int) -> bool:
    """Переписка установлена, когда вторая сторона прислала хотя бы одно сообщение."""
    return other_party_count(match, user_id) > 0


def should_show_date_suggestion(match: Match, threshold: Optional[int] = None) -> bool:
    """
    Предложение свидания показывается один раз: всего сообщений >= threshold,
    каждый участник написал минимум половину, и свидание ещё не предлагали.
    """
    threshold = threshold if threshold is not None else settings.MESSAGES_FOR_DATE_SUGGESTION
    per_user = threshold // 2
    if match.date_suggested:
        return False
    return (
        match.total_messages >= threshold
        and match.user1_message_count >= per_user
        and match.user2_message_count >= per_user
    )


async def _limit_row(db: AsyncSession, match_id: int, user_id: int) -> Optional[MessageLimit]:
    res = await db.execute(
        select(MessageLimit).where(
            MessageLimit.match_id == match_id,
            MessageLimit.user_id == user_id,
        )
        .execution_options(populate_existing=True)
    )
    return res.scalar_one_or_none()


async def _compute_limit(db: AsyncSession, match: Match, user_id: int) -> MessageLimitStatus:
    today = local_today()

    if is_established(match, user_id):
        return MessageLimitStatus(
            match_id=match.id,
            user_id=user_id,
            messages_today=0,
            last_message_date=today,
            can_send=True,
            conversation_established=True,
            daily_limit=None,
        )

    row = await _limit_row(db, match.id, user_id)
    # Счётчик за прошлые дни не учитывается: сброс по смене календарного дня
    messages_today = row.messages_today if row is not None and row.last_message_date == today else 0

    return MessageLimitStatus(
        match_id=match.id,
        user_id=user_id,
        messages_today=messages_today,
        last_message_date=today,
        can_send=messages_today < settings.INITIAL_MESSAGE_LIMIT,
        conversation_established=False,
        daily_limit=settings.INITIAL_MESSAGE_LIMIT,
    )


async def check_message_limit(db: AsyncSession, user_id: int, match_id: int) -> MessageLimitStatus:
    match = await get_match_for_participant(db, user_id, match_id)
    return await _compute_limit(db, match, user_id)


async def date_suggestion_eligibility(db: AsyncSession, user_id: int, match_id: int) -> bool:
    match = await get_match_for_participant(db, user_id, match_id)
    return should_show_date_suggestion(match)


async def _bump_today(db: AsyncSession, match_id: int, user_id: int, today: date, cap: Optional[int]) -> bool:
    stmt = update(MessageLimit).where(
        MessageLimit.match_id == match_id,
        MessageLimit.user_id == user_id,
        MessageLimit.last_message_date == today,
    )
    if cap is not None:
        stmt = stmt.where(MessageLimit.messages_today < cap)
    res = await db.execute(
        stmt
        .values(messages_today=MessageLimit.messages_today + 1)
        .execution_options(synchronize_session=False)
    )
    return bool(res.rowcount)


async def _bump_message_limit(
    db: AsyncSession,
    match_id: int,
    user_id: int,
    today: date,
    cap: Optional[int] = None,
) -> bool:
    """
    +1 к сегодняшнему счётчику; если сохранённая дата не сегодня: начинаем с 1.
    С cap счётчик растёт только ниже лимита. False: лимит на сегодня уже выбран.
    """
    if await _bump_today(db, match_id, user_id, today, cap):
        return True

    res = await db.execute(
        update(MessageLimit)
        .where(
            MessageLimit.match_id == match_id,
            MessageLimit.user_id == user_id,
            MessageLimit.last_message_date != today,
        )
        .values(messages_today=1, last_message_date=today)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount:
        return True

    if await _limit_row(db, match_id, user_id) is not None:
        return False

    try:
        async with db.begin_nested():
            db.add(MessageLimit(match_id=match_id, user_id=user_id, messages_today=1, last_message_date=today))
            await db.flush()
    except IntegrityError:
        # Первое сообщение дня пришло параллельно: строка уже есть
        return await _bump_today(db, match_id, user_id, today, cap)
    return True


async def send_message(db: AsyncSession, user_id: int, match_id: int, content: str) -> SendResult:
    """
    Отправка одной транзакцией: сообщение, счётчики матча, превью,
    дневной лимит отправителя. Проверки правил идут до любых изменений.
    """
    text = (content or "").strip()
    if not text:
        raise ValidationError("Message cannot be empty")

    match = await get_match_for_participant(db, user_id, match_id)
    if match.status != MatchStatus.ACTIVE:
        raise ValidationError("This conversation is closed")

    limit = await _compute_limit(db, match, user_id)
    if not limit.can_send:
        logger.info("User %s hit the daily message limit in match %s", user_id, match_id)
        raise RateLimited()

    now = utcnow()
    today = local_today()
    sender_counter = "user1_message_count" if is_user1(match, user_id) else "user2_message_count"
    cap = None if limit.conversation_established else settings.INITIAL_MESSAGE_LIMIT

    try:
        # Условный инкремент: при выбранном за день лимите строка не обновится
        if not await _bump_message_limit(db, match.id, user_id, today, cap):
            await db.rollback()
            logger.info("User %s hit the daily message limit in match %s", user_id, match_id)
            raise RateLimited()

        message = Message(match_id=match.id, sender_id=user_id, content=text, created_at=now)
        db.add(message)

        await db.execute(
            update(Match)
            .where(Match.id == match.id)
            .values(
                {
                    Match.total_messages: Match.total_messages + 1,
                    getattr(Match, sender_counter): getattr(Match, sender_counter) + 1,
                    Match.last_message_at: now,
                    Match.last_message_preview: text[:PREVIEW_LENGTH],
                }
            )
            .execution_options(synchronize_session=False)
        )
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Sending message in match %s failed", match_id)
        raise DependencyError("Message was not sent, please retry") from exc

    await db.refresh(match)
    await db.refresh(message)

    return SendResult(
        message=message,
        limit=await _compute_limit(db, match, user_id),
        should_show_date_suggestion=should_show_date_suggestion(match),
    )


async def fetch_messages(
    db: AsyncSession,
    user_id: int,
    match_id: int,
    since: Optional[datetime] = None,
) -> List[Message]:
    """История переписки по возрастанию; с `since`: только более новые (для опроса)."""
    match = await get_match_for_participant(db, user_id, match_id)

    stmt = select(Message).where(Message.match_id == match.id)
    if since is not None:
        if since.tzinfo is not None:
            since = since.astimezone(timezone.utc)
        stmt = stmt.where(Message.created_at > since)
    stmt = stmt.order_by(Message.created_at.asc(), Message.id.asc())

    res = await db.execute(stmt)
    return list(res.scalars().all())


async def mark_messages_read(db: AsyncSession, user_id: int, match_id: int) -> int:
    """Проставляет read_at входящим непрочитанным сообщениям, возвращает их число."""
    match = await get_match_for_participant(db, user_id, match_id)

    res = await db.execute(
        update(Message)
        .where(
            Message.match_id == match.id,
            Message.sender_id != user_id,
            Message.read_at.is_(None),
        )
        .values(read_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    await commit_or_rollback(db, "mark messages as read")
    return res.rowcount or 0


async def list_conversations(db: AsyncSession, user_id: int):
    """Активные матчи, где уже есть хотя бы одно сообщение."""
    return await list_matches(db, user_id, with_messages_only=True)
