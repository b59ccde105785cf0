import asyncio
import os
from datetime import date, datetime, timedelta, timezone

# Настройки читаются при импорте core.config, поэтому окружение задаём заранее
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "test")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "test")
os.environ.setdefault("AWS_S3_BUCKET_NAME", "photos")
os.environ.setdefault("AWS_S3_ENDPOINT_URL", "http://localhost:9000")
os.environ.setdefault("AWS_S3_REGION", "us-east-1")

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from models.base import Base
from models import (  # noqa: F401
    block, date_suggestion, deal_breakers, match, message, message_limit,
    profile, report, swipe, venue,
)
from models.deal_breakers import DealBreakers
from models.match import Match, MatchStatus
from models.profile import Profile
from models.venue import Venue
from utils.dates import local_today

NYC = (40.7128, -74.0060)


@pytest.fixture
def run_db():
    """
    Запускает сценарий `async def scenario(Session)` на свежей in-memory базе.
    Каждый `async with Session()` внутри сценария: как отдельный запрос.
    """
    def runner(scenario):
        async def main():
            engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            session_factory = async_sessionmaker(engine, expire_on_commit=False)
            try:
                return await scenario(session_factory)
            finally:
                await engine.dispose()

        return asyncio.run(main())

    return runner


def birth_date_for(age: int) -> date:
    # 1 января: возраст на сегодня ровно `age` в любой день года
    return date(local_today().year - age, 1, 1)


@pytest.fixture
def make_profile():
    async def factory(
        session,
        user_id: int,
        *,
        age: int = 30,
        gender: str = "female",
        looking_for=("male",),
        location=NYC,
        photo: bool = True,
        last_active: datetime | None = None,
        deal_breakers: dict | None = None,
        **fields,
    ) -> Profile:
        lat, lng = location if location is not None else (None, None)
        values = dict(
            id=user_id,
            first_name=f"User{user_id}",
            birth_date=birth_date_for(age),
            gender=gender,
            looking_for=list(looking_for),
            location_lat=lat,
            location_lng=lng,
            main_photo_url=f"http://localhost:9000/photos/profiles/{user_id}/main.jpg" if photo else None,
            photo_urls=[],
            last_active=last_active or datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(minutes=user_id),
            is_active=True,
            is_paused=False,
            is_deleted=False,
            match_count=0,
        )
        values.update(fields)
        profile = Profile(**values)
        session.add(profile)
        breakers = {"max_distance": 25}
        breakers.update(deal_breakers or {})
        session.add(DealBreakers(user_id=user_id, **breakers))
        await session.commit()
        return profile

    return factory


@pytest.fixture
def make_match():
    async def factory(session, a: int, b: int, **fields) -> Match:
        u1, u2 = sorted((a, b))
        row = Match(
            user1_id=u1,
            user2_id=u2,
            status=fields.pop("status", MatchStatus.ACTIVE),
            total_messages=0,
            user1_message_count=0,
            user2_message_count=0,
            date_suggested=False,
            **fields,
        )
        session.add(row)
        await session.commit()
        await session.refresh(row)
        return row

    return factory


@pytest.fixture
def make_venue():
    async def factory(session, name: str, lat: float, lng: float, **fields) -> Venue:
        row = Venue(
            name=name,
            category=fields.pop("category", "italian"),
            lat=lat,
            lng=lng,
            partnership_slot=fields.pop("partnership_slot", 3),
            service_radius_miles=fields.pop("service_radius_miles", 5.0),
            photo_urls=[],
            **fields,
        )
        session.add(row)
        await session.commit()
        await session.refresh(row)
        return row

    return factory
