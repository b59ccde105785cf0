# services/profiles.py
"""
Анкета пользователя: создание, редактирование, фильтры (deal breakers),
геопозиция, пауза, мягкое удаление и фотографии.
"""
import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from core.config import settings
from core.database import commit_or_rollback
from core.errors import ConflictError, DependencyError, NotFound, ValidationError
from models.deal_breakers import DealBreakers
from models.profile import Profile
from schemas.deal_breakers import DealBreakersUpdate
from schemas.profile import LocationUpdate, ProfileCreate, ProfileUpdate
from utils.dates import calculate_age, utcnow
from utils.options import (
    AGE_RANGE, ALLOW_LISTS, DIETS, ETHNICITIES, FREQUENCIES, GENDERS, HEIGHT_RANGE_CM,
    INCOMES, OFFSPRING, RELIGIONS,
)
from utils.s3 import build_key, delete_file_from_s3, key_from_url, upload_file_to_s3

logger = logging.getLogger(__name__)

# Поле анкеты → допустимые значения
PROFILE_CHOICES = {
    "ethnicity": ETHNICITIES,
    "religion": RELIGIONS,
    "offspring": OFFSPRING,
    "smoker": FREQUENCIES,
    "alcohol": FREQUENCIES,
    "drugs": FREQUENCIES,
    "diet": DIETS,
    "income": INCOMES,
}


def _validate_profile_fields(data: dict) -> None:
    if "gender" in data and data["gender"] not in GENDERS:
        raise ValidationError(f"Unknown gender '{data['gender']}'")
    for value in data.get("looking_for") or []:
        if value not in GENDERS:
            raise ValidationError(f"Unknown gender '{value}' in looking_for")
    for field, choices in PROFILE_CHOICES.items():
        value = data.get(field)
        if value is not None and value not in choices:
            raise ValidationError(f"Unknown {field} '{value}'")


async def _get_live_profile(db: AsyncSession, user_id: int) -> Profile:
    profile = await db.get(Profile, user_id, populate_existing=True)
    if profile is None or profile.is_deleted:
        raise NotFound("Profile not found")
    return profile


async def create_profile(db: AsyncSession, user_id: int, data: ProfileCreate) -> Profile:
    """Одна анкета на пользователя; вместе с ней создаются фильтры по умолчанию."""
    if await db.get(Profile, user_id, populate_existing=True) is not None:
        raise ConflictError("Profile already exists")

    if calculate_age(data.birth_date) < AGE_RANGE[0]:
        raise ValidationError(f"You must be at least {AGE_RANGE[0]} years old")

    fields = data.model_dump()
    _validate_profile_fields(fields)

    profile = Profile(
        id=user_id,
        is_active=True,
        is_paused=False,
        is_deleted=False,
        match_count=0,
        photo_urls=[],
        **fields,
    )
    db.add(profile)
    try:
        await db.flush()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError("Profile already exists") from exc

    db.add(DealBreakers(user_id=user_id, max_distance=settings.DEFAULT_MAX_DISTANCE))
    await commit_or_rollback(db, "create the profile")
    await db.refresh(profile)

    logger.info("Profile created for user %s", user_id)
    return profile


async def get_profile(db: AsyncSession, user_id: int) -> Profile:
    return await _get_live_profile(db, user_id)


async def update_profile(db: AsyncSession, user_id: int, data: ProfileUpdate) -> Profile:
    profile = await _get_live_profile(db, user_id)

    changes = data.model_dump(exclude_unset=True)
    # first_name и gender обязательны в анкете, null не принимаем
    for required in ("first_name", "gender"):
        if required in changes and changes[required] is None:
            raise ValidationError(f"{required} cannot be empty")
    _validate_profile_fields(changes)

    for field, value in changes.items():
        setattr(profile, field, value)
    profile.last_active = utcnow()

    await commit_or_rollback(db, "update the profile")
    await db.refresh(profile)
    return profile


async def get_deal_breakers(db: AsyncSession, user_id: int) -> DealBreakers:
    await _get_live_profile(db, user_id)
    res = await db.execute(select(DealBreakers).where(DealBreakers.user_id == user_id))
    deal_breakers = res.scalar_one_or_none()
    if deal_breakers is None:
        raise NotFound("Deal breakers not found")
    return deal_breakers


def _check_range(name: str, low: Optional[int], high: Optional[int], bounds) -> None:
    lo, hi = bounds
    for value in (low, high):
        if value is not None and not lo <= value <= hi:
            raise ValidationError(f"{name} must be between {lo} and {hi}")
    if low is not None and high is not None and low > high:
        raise ValidationError(f"Minimum {name} cannot exceed maximum {name}")


def validate_deal_breakers(values: dict) -> None:
    _check_range("age", values.get("min_age"), values.get("max_age"), AGE_RANGE)
    _check_range("height", values.get("min_height"), values.get("max_height"), HEIGHT_RANGE_CM)

    max_distance = values.get("max_distance")
    if max_distance is not None and max_distance <= 0:
        raise ValidationError("max_distance must be positive")

    for field, (_, choices) in ALLOW_LISTS.items():
        for value in values.get(field) or []:
            if value not in choices:
                raise ValidationError(f"Unknown value '{value}' in {field}")


async def update_deal_breakers(db: AsyncSession, user_id: int, data: DealBreakersUpdate) -> DealBreakers:
    """Частичное обновление; проверяется итоговое состояние, а не только присланные поля."""
    deal_breakers = await get_deal_breakers(db, user_id)

    changes = data.model_dump(exclude_unset=True)
    merged = {
        column.name: getattr(deal_breakers, column.name)
        for column in DealBreakers.__table__.columns
    }
    merged.update(changes)
    validate_deal_breakers(merged)

    for field, value in changes.items():
        setattr(deal_breakers, field, value)

    await commit_or_rollback(db, "update deal breakers")
    await db.refresh(deal_breakers)
    return deal_breakers


async def update_location(db: AsyncSession, user_id: int, data: LocationUpdate) -> Profile:
    profile = await _get_live_profile(db, user_id)

    profile.location_lat = data.latitude
    profile.location_lng = data.longitude
    if data.city is not None:
        profile.location_city = data.city
    if data.state is not None:
        profile.location_state = data.state
    profile.last_active = utcnow()

    await commit_or_rollback(db, "update the location")
    await db.refresh(profile)
    return profile


async def set_paused(db: AsyncSession, user_id: int, paused: bool) -> Profile:
    """На паузе анкета не показывается в ленте, матчи и переписка остаются."""
    profile = await _get_live_profile(db, user_id)
    profile.is_paused = paused

    await commit_or_rollback(db, "pause the profile" if paused else "resume the profile")
    await db.refresh(profile)
    logger.info("User %s %s their profile", user_id, "paused" if paused else "resumed")
    return profile


async def delete_account(db: AsyncSession, user_id: int) -> None:
    """Мягкое удаление: строка остаётся, анкета пропадает из ленты и поиска."""
    profile = await _get_live_profile(db, user_id)

    await db.execute(
        update(Profile)
        .where(Profile.id == profile.id)
        .values(is_deleted=True, is_active=False)
        .execution_options(synchronize_session=False)
    )
    await commit_or_rollback(db, "delete the account")
    logger.info("User %s deleted their account", user_id)


async def _drop_stored_photo(url: Optional[str]) -> None:
    """Удаляет объект, на который анкета уже не ссылается; сбой хранилища только логируется."""
    if not url:
        return
    try:
        await run_in_threadpool(delete_file_from_s3, key_from_url(url))
    except (DependencyError, ValidationError):
        logger.warning("Could not remove stored photo %s", url)


async def upload_main_photo(db: AsyncSession, user_id: int, file_like) -> Profile:
    """Главное фото: сжимается, кладётся в S3 и действует PHOTO_EXPIRATION_DAYS дней."""
    profile = await _get_live_profile(db, user_id)

    url = await run_in_threadpool(upload_file_to_s3, file_like, build_key(user_id, "main"))

    previous = profile.main_photo_url
    profile.main_photo_url = url
    profile.main_photo_expires_at = utcnow() + timedelta(days=settings.PHOTO_EXPIRATION_DAYS)
    await commit_or_rollback(db, "save the photo")
    await db.refresh(profile)

    await _drop_stored_photo(previous)
    logger.info("User %s uploaded a main photo", user_id)
    return profile


async def upload_gallery_photo(db: AsyncSession, user_id: int, file_like, position: int) -> Profile:
    """Фото галереи в слот 0..MAX_GALLERY_PHOTOS-1; занятый слот перезаписывается."""
    if not 0 <= position < settings.MAX_GALLERY_PHOTOS:
        raise ValidationError(f"Photo position must be between 0 and {settings.MAX_GALLERY_PHOTOS - 1}")

    profile = await _get_live_profile(db, user_id)

    url = await run_in_threadpool(upload_file_to_s3, file_like, build_key(user_id, f"gallery{position}"))

    slots = list(profile.photo_urls or [])
    if len(slots) <= position:
        slots.extend([None] * (position + 1 - len(slots)))
    previous = slots[position]
    slots[position] = url
    # JSON-колонка: присваиваем новый список, чтобы изменение попало в UPDATE
    profile.photo_urls = slots

    await commit_or_rollback(db, "save the photo")
    await db.refresh(profile)

    await _drop_stored_photo(previous)
    return profile


async def delete_photo(db: AsyncSession, user_id: int, url: str) -> Profile:
    profile = await _get_live_profile(db, user_id)

    slots = list(profile.photo_urls or [])
    if url == profile.main_photo_url:
        profile.main_photo_url = None
        profile.main_photo_expires_at = None
    elif url in slots:
        slots[slots.index(url)] = None
        while slots and slots[-1] is None:
            slots.pop()
        profile.photo_urls = slots
    else:
        raise NotFound("Photo not found")

    await commit_or_rollback(db, "delete the photo")
    await db.refresh(profile)

    # Объект в хранилище убираем только после коммита
    await _drop_stored_photo(url)
    return profile
