from datetime import datetime, timezone

import pytest

from core.errors import NotFound
from models.block import Block
from models.swipe import Swipe
from services.discovery import compatibility_score, discover
from models.profile import Profile


def ids(candidates):
    return [c.profile.id for c in candidates]


def test_excludes_self_inactive_paused_deleted_and_photoless(run_db, make_profile):
    async def scenario(Session):
        async with Session() as s:
            await make_profile(s, 1, gender="male", looking_for=["female"])
            await make_profile(s, 2)
            await make_profile(s, 3, is_active=False)
            await make_profile(s, 4, is_paused=True)
            await make_profile(s, 5, is_deleted=True)
            await make_profile(s, 6, photo=False)

        async with Session() as s:
            return await discover(s, 1)

    assert ids(run_db(scenario)) == [2]


def test_swiped_profiles_drop_out_but_incoming_swipes_do_not(run_db, make_profile):
    async def scenario(Session):
        async with Session() as s:
            await make_profile(s, 1, gender="male", looking_for=["female"])
            await make_profile(s, 2)
            await make_profile(s, 3)
            s.add(Swipe(swiper_id=1, swiped_id=2, liked=False))
            # 3 лайкнул зрителя: это не повод прятать 3 из ленты
            s.add(Swipe(swiper_id=3, swiped_id=1, liked=True))
            await s.commit()

        async with Session() as s:
            return await discover(s, 1)

    assert ids(run_db(scenario)) == [3]


def test_blocks_exclude_in_both_directions(run_db, make_profile):
    async def scenario(Session):
        async with Session() as s:
            await make_profile(s, 1, gender="male", looking_for=["female"])
            await make_profile(s, 2)
            await make_profile(s, 3)
            await make_profile(s, 4)
            s.add(Block(blocker_id=1, blocked_id=2))
            s.add(Block(blocker_id=3, blocked_id=1))
            await s.commit()

        async with Session() as s:
            viewer_feed = await discover(s, 1)
            blocked_feed = await discover(s, 2)
        return viewer_feed, blocked_feed

    viewer_feed, blocked_feed = run_db(scenario)
    assert ids(viewer_feed) == [4]
    assert 1 not in ids(blocked_feed)


def test_age_window_is_inclusive(run_db, make_profile):
    async def scenario(Session):
        async with Session() as s:
            await make_profile(
                s, 1, gender="male", looking_for=["female"],
                deal_breakers={"min_age": 25, "max_age": 30},
            )
            await make_profile(s, 2, age=24)
            await make_profile(s, 3, age=25)
            await make_profile(s, 4, age=30)
            await make_profile(s, 5, age=31)

        async with Session() as s:
            return await discover(s, 1)

    assert sorted(ids(run_db(scenario))) == [3, 4]


def test_height_and_allow_lists(run_db, make_profile):
    async def scenario(Session):
        async with Session() as s:
            await make_profile(
                s, 1, gender="male", looking_for=["female"],
                deal_breakers={
                    "min_height": 160,
                    "max_height": 180,
                    "acceptable_religions": ["buddhist", "agnostic"],
                    # пустой список ограничения не задаёт
                    "acceptable_diets": [],
                },
            )
            await make_profile(s, 2, height_cm=170, religion="buddhist", diet="vegan")
            await make_profile(s, 3, height_cm=150, religion="buddhist")
            await make_profile(s, 4, height_cm=170, religion="catholic")
            await make_profile(s, 5, height_cm=180, religion="agnostic")

        async with Session() as s:
            return await discover(s, 1)

    assert sorted(ids(run_db(scenario))) == [2, 5]


def test_max_distance_excludes_far_and_unlocated_candidates(run_db, make_profile):
    async def scenario(Session):
        async with Session() as s:
            await make_profile(
                s, 1, gender="male", looking_for=["female"], deal_breakers={"max_distance": 10},
            )
            await make_profile(s, 2, location=(40.75, -74.0))   # ~3 мили
            await make_profile(s, 3, location=(41.5, -74.0))    # ~54 мили
            await make_profile(s, 4, location=None)

        async with Session() as s:
            return await discover(s, 1)

    feed = run_db(scenario)
    assert ids(feed) == [2]
    assert feed[0].distance == pytest.approx(2.6, abs=0.5)


def test_without_viewer_location_distance_is_not_applied(run_db, make_profile):
    async def scenario(Session):
        async with Session() as s:
            await make_profile(
                s, 1, gender="male", looking_for=["female"], location=None,
                deal_breakers={"max_distance": 10},
            )
            await make_profile(s, 2, location=(41.5, -74.0))
            await make_profile(s, 3, location=None)

        async with Session() as s:
            return await discover(s, 1)

    assert sorted(ids(run_db(scenario))) == [2, 3]


def test_recent_activity_then_mutual_preference(run_db, make_profile):
    def at(hour):
        return datetime(2024, 5, 1, hour, tzinfo=timezone.utc)

    async def scenario(Session):
        async with Session() as s:
            await make_profile(s, 1, gender="male", looking_for=["female"])
            await make_profile(s, 2, looking_for=["male"], last_active=at(9))
            await make_profile(s, 3, looking_for=["female"], last_active=at(12))
            await make_profile(s, 4, looking_for=["male"], last_active=at(10))

        async with Session() as s:
            return await discover(s, 1)

    feed = run_db(scenario)
    # 4 и 2 подходят взаимно (сначала более активный), 3: только зрителю
    assert ids(feed) == [4, 2, 3]
    assert [c.compatibility for c in feed] == [2, 2, 1]


def test_limit_and_offset_page_through_results(run_db, make_profile):
    async def scenario(Session):
        async with Session() as s:
            await make_profile(s, 1, gender="male", looking_for=["female"])
            for user_id in range(2, 8):
                await make_profile(s, user_id)

        async with Session() as s:
            first = await discover(s, 1, limit=4)
            second = await discover(s, 1, limit=4, offset=4)
        return first, second

    first, second = run_db(scenario)
    assert len(first) == 4
    assert len(second) == 2
    assert not set(ids(first)) & set(ids(second))


def test_nobody_eligible_gives_empty_feed(run_db, make_profile):
    async def scenario(Session):
        async with Session() as s:
            await make_profile(s, 1)

        async with Session() as s:
            return await discover(s, 1)

    assert run_db(scenario) == []


def test_viewer_without_profile_is_not_found(run_db):
    async def scenario(Session):
        async with Session() as s:
            with pytest.raises(NotFound):
                await discover(s, 99)

    run_db(scenario)


def test_other_in_looking_for_means_everyone():
    viewer = Profile(gender="non-binary", looking_for=["other"])
    candidate = Profile(gender="female", looking_for=["non-binary"])
    assert compatibility_score(viewer, candidate) == 2
