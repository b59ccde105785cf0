import pytest
from sqlalchemy import event, func, select
from sqlalchemy.dialects import postgresql

from core.errors import CapacityExceeded, ConflictError, NotFound, ValidationError
from models.block import Block
from models.match import Match, MatchStatus
from models.message import Message
from models.profile import Profile
from models.report import Report
from models.swipe import Swipe
from services.discovery import discover
from services.matching import (
    block_user, list_matches, report_user, swipe_left, swipe_right, unmatch,
)


async def count(session, model):
    return (await session.execute(select(func.count(model.id)))).scalar_one()


async def match_count(session, user_id):
    profile = await session.get(Profile, user_id, populate_existing=True)
    return profile.match_count


def test_one_sided_like_does_not_match(run_db, make_profile):
    async def scenario(Session):
        async with Session() as s:
            await make_profile(s, 1)
            await make_profile(s, 2)

        async with Session() as s:
            result = await swipe_right(s, 1, 2)
            assert result.liked and not result.matched
            assert await count(s, Match) == 0

    run_db(scenario)


def test_mutual_like_creates_exactly_one_canonical_match(run_db, make_profile):
    async def scenario(Session):
        async with Session() as s:
            await make_profile(s, 3)
            await make_profile(s, 5)

        async with Session() as s:
            await swipe_right(s, 5, 3)
        async with Session() as s:
            result = await swipe_right(s, 3, 5)

        assert result.matched
        assert (result.match.user1_id, result.match.user2_id) == (3, 5)
        assert result.match.status == MatchStatus.ACTIVE
        assert result.other_user.id == 5

        async with Session() as s:
            assert await count(s, Match) == 1
            assert await match_count(s, 3) == 1
            assert await match_count(s, 5) == 1

    run_db(scenario)


def test_like_locks_both_profiles_before_checking_reciprocal(run_db, make_profile):
    async def scenario(Session):
        async with Session() as s:
            await make_profile(s, 4)
            await make_profile(s, 7)

        async with Session() as s:
            selects = []

            def record(state):
                if state.is_select:
                    selects.append(str(state.statement.compile(dialect=postgresql.dialect())))

            event.listen(s.sync_session, "do_orm_execute", record)
            await swipe_right(s, 7, 4)

        locks = [i for i, sql in enumerate(selects) if "FOR UPDATE" in sql]
        assert len(locks) == 1
        assert "FROM profiles" in selects[locks[0]]
        assert "ORDER BY profiles.id" in selects[locks[0]]
        # Лимит и встречный лайк проверяются уже под блокировкой
        assert any("matches" in sql for sql in selects[locks[0] + 1:])
        assert any("swipes" in sql for sql in selects[locks[0] + 1:])

    run_db(scenario)


@pytest.mark.parametrize("first, second", [(1, 2), (2, 1)])
def test_overlapping_likes_match_once_in_either_order(run_db, make_profile, first, second):
    async def scenario(Session):
        async with Session() as s:
            await make_profile(s, 1)
            await make_profile(s, 2)

        # Обе сессии открыты до того, как первая закоммитит свой лайк
        async with Session() as early, Session() as late:
            first_result = await swipe_right(early, first, second)
            second_result = await swipe_right(late, second, first)

        assert not first_result.matched
        assert second_result.matched
        async with Session() as s:
            assert await count(s, Match) == 1
            assert await count(s, Swipe) == 2
            assert await match_count(s, 1) == 1
            assert await match_count(s, 2) == 1

    run_db(scenario)


def test_swipe_errors(run_db, make_profile):
    async def scenario(Session):
        async with Session() as s:
            await make_profile(s, 1)
            await make_profile(s, 2)
            await make_profile(s, 3, is_deleted=True)

        async with Session() as s:
            with pytest.raises(ValidationError):
                await swipe_right(s, 1, 1)
            with pytest.raises(NotFound):
                await swipe_right(s, 1, 404)
            with pytest.raises(NotFound):
                await swipe_left(s, 1, 3)

        async with Session() as s:
            await swipe_left(s, 1, 2)
        async with Session() as s:
            with pytest.raises(ConflictError):
                await swipe_right(s, 1, 2)

    run_db(scenario)


def test_pass_never_matches(run_db, make_profile):
    async def scenario(Session):
        async with Session() as s:
            await make_profile(s, 1)
            await make_profile(s, 2)

        async with Session() as s:
            await swipe_right(s, 2, 1)
        async with Session() as s:
            result = await swipe_left(s, 1, 2)
            assert not result.liked and not result.matched
            assert await count(s, Match) == 0

    run_db(scenario)


def test_cap_rejects_like_without_writing(run_db, make_profile, make_match):
    async def scenario(Session):
        async with Session() as s:
            await make_profile(s, 1)
            await make_profile(s, 2)
            for other in range(10, 20):
                await make_profile(s, other)
                await make_match(s, 1, other)
            await swipe_right(s, 2, 1)

        async with Session() as s:
            swipes_before = await count(s, Swipe)
            with pytest.raises(CapacityExceeded) as exc:
                await swipe_right(s, 1, 2)
            assert exc.value.kind == "not_allowed"

        async with Session() as s:
            assert await count(s, Swipe) == swipes_before
            assert await count(s, Match) == 10
            # Пропуск лимитом не ограничен
            await swipe_left(s, 1, 2)

    run_db(scenario)


def test_passive_liker_cap_is_not_checked(run_db, make_profile, make_match):
    async def scenario(Session):
        async with Session() as s:
            await make_profile(s, 1)
            await make_profile(s, 2)

        async with Session() as s:
            await swipe_right(s, 1, 2)

        async with Session() as s:
            for other in range(10, 20):
                await make_profile(s, other)
                await make_match(s, 1, other)

        async with Session() as s:
            result = await swipe_right(s, 2, 1)
            assert result.matched

    run_db(scenario)


def test_unmatch_keeps_messages_and_decrements_counters(run_db, make_profile):
    async def scenario(Session):
        async with Session() as s:
            await make_profile(s, 1)
            await make_profile(s, 2)
            await make_profile(s, 3)
        async with Session() as s:
            await swipe_right(s, 1, 2)
        async with Session() as s:
            match = (await swipe_right(s, 2, 1)).match
            s.add(Message(match_id=match.id, sender_id=1, content="hi"))
            await s.commit()

        async with Session() as s:
            with pytest.raises(NotFound):
                await unmatch(s, 3, match.id)

        async with Session() as s:
            result = await unmatch(s, 2, match.id)
            assert result.status == MatchStatus.UNMATCHED

        async with Session() as s:
            assert await match_count(s, 1) == 0
            assert await match_count(s, 2) == 0
            assert await count(s, Message) == 1
            with pytest.raises(ValidationError):
                await unmatch(s, 1, match.id)

    run_db(scenario)


def test_counters_never_go_below_zero(run_db, make_profile, make_match):
    async def scenario(Session):
        async with Session() as s:
            await make_profile(s, 1)
            await make_profile(s, 2)
            match = await make_match(s, 1, 2)

        async with Session() as s:
            await unmatch(s, 1, match.id)
            assert await match_count(s, 1) == 0

    run_db(scenario)


def test_block_closes_match_and_hides_both_sides(run_db, make_profile):
    async def scenario(Session):
        async with Session() as s:
            await make_profile(s, 1, gender="male", looking_for=["female"])
            await make_profile(s, 2, looking_for=["male"])
        async with Session() as s:
            await swipe_right(s, 1, 2)
        async with Session() as s:
            match = (await swipe_right(s, 2, 1)).match

        async with Session() as s:
            await block_user(s, 2, 1)
        async with Session() as s:
            # повторная блокировка не ошибка
            await block_user(s, 2, 1)

        async with Session() as s:
            row = await s.get(Match, match.id)
            assert row.status == MatchStatus.BLOCKED
            assert await match_count(s, 1) == 0
            assert await match_count(s, 2) == 0
            assert await count(s, Block) == 1
            assert await discover(s, 1) == []
            assert await discover(s, 2) == []
            with pytest.raises(NotFound):
                await swipe_right(s, 1, 2)

    run_db(scenario)


def test_block_after_unmatch_does_not_decrement_again(run_db, make_profile, make_match):
    async def scenario(Session):
        async with Session() as s:
            await make_profile(s, 1, match_count=1)
            await make_profile(s, 2, match_count=1)
            await make_profile(s, 3)
            match = await make_match(s, 1, 2, status=MatchStatus.UNMATCHED)
            await make_match(s, 1, 3)

        async with Session() as s:
            await block_user(s, 1, 2)
            row = await s.get(Match, match.id)
            assert row.status == MatchStatus.BLOCKED
            assert await match_count(s, 1) == 1

    run_db(scenario)


def test_block_written_concurrently_is_still_idempotent(run_db, make_profile, make_match, monkeypatch):
    async def scenario(Session):
        async with Session() as s:
            await make_profile(s, 1, match_count=1)
            await make_profile(s, 2, match_count=1)
            match = await make_match(s, 1, 2)
            # Строка блокировки появилась после проверки существования
            s.add(Block(blocker_id=1, blocked_id=2))
            await s.commit()

        async def not_blocked_yet(db, blocker_id, blocked_id):
            return False

        monkeypatch.setattr("services.matching.has_blocked", not_blocked_yet)

        async with Session() as s:
            await block_user(s, 1, 2)

        async with Session() as s:
            row = await s.get(Match, match.id)
            assert row.status == MatchStatus.BLOCKED
            assert await count(s, Block) == 1
            assert await match_count(s, 1) == 0
            assert await match_count(s, 2) == 0

    run_db(scenario)


def test_report_validates_reason(run_db, make_profile):
    async def scenario(Session):
        async with Session() as s:
            await make_profile(s, 1)
            await make_profile(s, 2)

        async with Session() as s:
            with pytest.raises(ValidationError):
                await report_user(s, 1, 2, "rude")
            with pytest.raises(ValidationError):
                await report_user(s, 1, 1, "spam")
            report = await report_user(s, 1, 2, "spam", "  sends links  ")

        assert report.status == "pending"
        assert report.description == "sends links"
        async with Session() as s:
            assert await count(s, Report) == 1

    run_db(scenario)


def test_list_matches_newest_conversation_first(run_db, make_profile, make_match):
    from datetime import datetime, timezone

    async def scenario(Session):
        async with Session() as s:
            for user_id in (1, 2, 3, 4):
                await make_profile(s, user_id)
            quiet = await make_match(s, 1, 2)
            old = await make_match(s, 1, 3, last_message_at=datetime(2024, 1, 1, tzinfo=timezone.utc))
            new = await make_match(s, 1, 4, last_message_at=datetime(2024, 2, 1, tzinfo=timezone.utc))
            await make_match(s, 2, 3, status=MatchStatus.UNMATCHED)

        async with Session() as s:
            pairs = await list_matches(s, 1)
            assert [m.id for m, _ in pairs] == [new.id, old.id, quiet.id]
            assert [other.id for _, other in pairs] == [4, 3, 2]

    run_db(scenario)
