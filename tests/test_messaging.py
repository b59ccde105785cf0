from datetime import timedelta

import pytest
from sqlalchemy import select

from core.errors import NotFound, RateLimited, ValidationError
from models.match import Match, MatchStatus
from models.message_limit import MessageLimit
from services.messaging import (
    MessageLimitStatus, check_message_limit, date_suggestion_eligibility, fetch_messages, list_conversations,
    mark_messages_read, send_message, should_show_date_suggestion,
)
from services.venues import submit_date_suggestion
from utils.dates import local_today


def test_three_messages_then_rate_limited_until_reply(run_db, make_profile, make_match):
    async def scenario(Session):
        async with Session() as s:
            await make_profile(s, 1)
            await make_profile(s, 2)
            match = await make_match(s, 1, 2)

        for n in range(1, 4):
            async with Session() as s:
                result = await send_message(s, 1, match.id, f"hello #{n}")
                assert result.limit.messages_today == n

        async with Session() as s:
            status = await check_message_limit(s, 1, match.id)
            assert status.can_send is False
            assert status.daily_limit == 3
            with pytest.raises(RateLimited) as exc:
                await send_message(s, 1, match.id, "one more")
            assert exc.value.kind == "not_allowed"

        async with Session() as s:
            reply = await send_message(s, 2, match.id, "hey!")
            assert reply.limit.conversation_established is True

        async with Session() as s:
            status = await check_message_limit(s, 1, match.id)
            assert status.conversation_established is True
            assert status.can_send is True
            assert status.daily_limit is None
            await send_message(s, 1, match.id, "finally")

        async with Session() as s:
            row = await s.get(Match, match.id)
            assert row.total_messages == 5
            assert row.user1_message_count == 4
            assert row.user2_message_count == 1

    run_db(scenario)


def test_counter_from_previous_day_does_not_count(run_db, make_profile, make_match):
    async def scenario(Session):
        async with Session() as s:
            await make_profile(s, 1)
            await make_profile(s, 2)
            match = await make_match(s, 1, 2)
            s.add(MessageLimit(
                match_id=match.id, user_id=1, messages_today=3,
                last_message_date=local_today() - timedelta(days=1),
            ))
            await s.commit()

        async with Session() as s:
            status = await check_message_limit(s, 1, match.id)
            assert status.messages_today == 0
            assert status.can_send is True
            await send_message(s, 1, match.id, "new day")

        async with Session() as s:
            row = (await s.execute(select(MessageLimit).where(MessageLimit.user_id == 1))).scalar_one()
            assert row.messages_today == 1
            assert row.last_message_date == local_today()

    run_db(scenario)


def test_stale_limit_read_cannot_push_past_daily_cap(run_db, make_profile, make_match, monkeypatch):
    async def scenario(Session):
        async with Session() as s:
            await make_profile(s, 1)
            await make_profile(s, 2)
            match = await make_match(s, 1, 2)
            s.add(MessageLimit(match_id=match.id, user_id=1, messages_today=3, last_message_date=local_today()))
            await s.commit()

        # Параллельный запрос прочитал счётчик до того, как третье сообщение закоммитилось
        async def stale_limit(db, match, user_id):
            return MessageLimitStatus(
                match_id=match.id,
                user_id=user_id,
                messages_today=2,
                last_message_date=local_today(),
                can_send=True,
                conversation_established=False,
                daily_limit=3,
            )

        monkeypatch.setattr("services.messaging._compute_limit", stale_limit)

        async with Session() as s:
            with pytest.raises(RateLimited):
                await send_message(s, 1, match.id, "fourth")

        async with Session() as s:
            row = await s.get(Match, match.id, populate_existing=True)
            assert row.total_messages == 0
            assert row.last_message_preview is None
            assert await fetch_messages(s, 1, match.id) == []
            limit = (await s.execute(select(MessageLimit).where(MessageLimit.user_id == 1))).scalar_one()
            assert limit.messages_today == 3

    run_db(scenario)


def test_send_updates_preview_and_rejects_bad_input(run_db, make_profile, make_match):
    async def scenario(Session):
        async with Session() as s:
            await make_profile(s, 1)
            await make_profile(s, 2)
            await make_profile(s, 3)
            match = await make_match(s, 1, 2)
            closed = await make_match(s, 1, 3, status=MatchStatus.UNMATCHED)

        async with Session() as s:
            with pytest.raises(ValidationError):
                await send_message(s, 1, match.id, "   ")
            with pytest.raises(NotFound):
                await send_message(s, 3, match.id, "hi")
            with pytest.raises(ValidationError):
                await send_message(s, 1, closed.id, "hi")

        async with Session() as s:
            await send_message(s, 2, match.id, "x" * 80)

        async with Session() as s:
            row = await s.get(Match, match.id)
            assert row.last_message_preview == "x" * 50
            assert row.last_message_at is not None
            assert row.user2_message_count == 1

    run_db(scenario)


def test_fetch_since_and_mark_read(run_db, make_profile, make_match):
    async def scenario(Session):
        async with Session() as s:
            await make_profile(s, 1)
            await make_profile(s, 2)
            match = await make_match(s, 1, 2)

        async with Session() as s:
            first = (await send_message(s, 1, match.id, "one")).message
        async with Session() as s:
            await send_message(s, 2, match.id, "two")
        async with Session() as s:
            await send_message(s, 1, match.id, "three")

        async with Session() as s:
            history = await fetch_messages(s, 2, match.id)
            assert [m.content for m in history] == ["one", "two", "three"]
            newer = await fetch_messages(s, 2, match.id, since=history[0].created_at)
            assert [m.content for m in newer] == ["two", "three"]
            assert first.id == history[0].id

        async with Session() as s:
            assert await mark_messages_read(s, 2, match.id) == 2
            assert await mark_messages_read(s, 2, match.id) == 0

        async with Session() as s:
            conversations = await list_conversations(s, 1)
            assert [m.id for m, _ in conversations] == [match.id]

    run_db(scenario)


def test_should_show_date_suggestion_rules():
    def match(total, a, b, suggested=False):
        return Match(
            total_messages=total, user1_message_count=a, user2_message_count=b,
            date_suggested=suggested,
        )

    assert should_show_date_suggestion(match(10, 5, 5)) is True
    assert should_show_date_suggestion(match(12, 7, 5)) is True
    assert should_show_date_suggestion(match(9, 5, 4)) is False
    assert should_show_date_suggestion(match(10, 8, 2)) is False
    assert should_show_date_suggestion(match(10, 5, 5, suggested=True)) is False
    assert should_show_date_suggestion(match(4, 2, 2), threshold=4) is True


def test_tenth_message_triggers_suggestion_once(run_db, make_profile, make_match, make_venue):
    async def scenario(Session):
        async with Session() as s:
            await make_profile(s, 1)
            await make_profile(s, 2)
            match = await make_match(s, 1, 2)
            venue = await make_venue(s, "Trattoria", 40.71, -74.0)

        flags = []
        for n in range(10):
            sender = 1 if n % 2 == 0 else 2
            async with Session() as s:
                result = await send_message(s, sender, match.id, f"message {n}")
                flags.append(result.should_show_date_suggestion)

        assert flags == [False] * 9 + [True]

        async with Session() as s:
            assert await date_suggestion_eligibility(s, 1, match.id) is True
            await submit_date_suggestion(s, 1, match.id, venue.id)

        async with Session() as s:
            assert await date_suggestion_eligibility(s, 2, match.id) is False
            result = await send_message(s, 2, match.id, "see you there")
            assert result.should_show_date_suggestion is False

    run_db(scenario)
