# routers/profile.py
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.security import get_current_user_id
from schemas.deal_breakers import DealBreakersRead, DealBreakersUpdate
from schemas.profile import (
    LocationUpdate, PauseRequest, PhotoUploadResponse, ProfileCreate, ProfileMe, ProfileUpdate,
)
from services import profiles as profile_service
from utils.user_helpers import to_profile_me

router = APIRouter(prefix="/profile", tags=["profile"])


@router.post(
    "",
    response_model=ProfileMe,
    status_code=status.HTTP_201_CREATED,
    summary="Создать анкету",
)
async def create_profile(
    payload: ProfileCreate,
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
) -> ProfileMe:
    profile = await profile_service.create_profile(db, current_user_id, payload)
    return to_profile_me(profile)


@router.get(
    "/me",
    response_model=ProfileMe,
    summary="Получить свою анкету",
)
async def read_my_profile(
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
) -> ProfileMe:
    profile = await profile_service.get_profile(db, current_user_id)
    return to_profile_me(profile)


@router.patch(
    "/me",
    response_model=ProfileMe,
    summary="Обновить свою анкету",
)
async def update_my_profile(
    payload: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
) -> ProfileMe:
    profile = await profile_service.update_profile(db, current_user_id, payload)
    return to_profile_me(profile)


@router.get(
    "/me/deal-breakers",
    response_model=DealBreakersRead,
    summary="Мои фильтры (deal breakers)",
)
async def read_deal_breakers(
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
) -> DealBreakersRead:
    deal_breakers = await profile_service.get_deal_breakers(db, current_user_id)
    return DealBreakersRead.model_validate(deal_breakers)


@router.patch(
    "/me/deal-breakers",
    response_model=DealBreakersRead,
    summary="Обновить фильтры",
)
async def update_deal_breakers(
    payload: DealBreakersUpdate,
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
) -> DealBreakersRead:
    deal_breakers = await profile_service.update_deal_breakers(db, current_user_id, payload)
    return DealBreakersRead.model_validate(deal_breakers)


@router.put(
    "/me/location",
    response_model=ProfileMe,
    summary="Обновить геопозицию",
)
async def update_location(
    payload: LocationUpdate,
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
) -> ProfileMe:
    profile = await profile_service.update_location(db, current_user_id, payload)
    return to_profile_me(profile)


@router.post(
    "/me/pause",
    response_model=ProfileMe,
    summary="Поставить анкету на паузу или снять с паузы",
)
async def pause_profile(
    payload: PauseRequest,
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
) -> ProfileMe:
    profile = await profile_service.set_paused(db, current_user_id, payload.paused)
    return to_profile_me(profile)


@router.delete(
    "/me",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Удалить аккаунт",
)
async def delete_my_account(
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
):
    await profile_service.delete_account(db, current_user_id)


@router.post(
    "/me/photos/main",
    response_model=PhotoUploadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Загрузить главное фото",
)
async def upload_main_photo(
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
) -> PhotoUploadResponse:
    profile = await profile_service.upload_main_photo(db, current_user_id, file.file)
    return PhotoUploadResponse(url=profile.main_photo_url, expires_at=profile.main_photo_expires_at)


@router.post(
    "/me/photos",
    response_model=PhotoUploadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Загрузить фото в галерею",
)
async def upload_gallery_photo(
    position: int = Form(..., description="Слот в галерее, 0..8"),
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
) -> PhotoUploadResponse:
    profile = await profile_service.upload_gallery_photo(db, current_user_id, file.file, position)
    return PhotoUploadResponse(url=profile.photo_urls[position], position=position)


@router.delete(
    "/me/photos",
    response_model=ProfileMe,
    summary="Удалить фото по URL",
)
async def delete_photo(
    url: str = Query(..., description="Публичный URL фотографии"),
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
) -> ProfileMe:
    profile = await profile_service.delete_photo(db, current_user_id, url)
    return to_profile_me(profile)
