# routers/interactions.py
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.security import get_current_user_id
from schemas.match import ReportCreate, SwipeResponse
from services.matching import block_user, report_user, swipe_left, swipe_right
from utils.user_helpers import to_match_read

router = APIRouter(prefix="/interactions", tags=["interactions"])


@router.post(
    "/like/{user_id}",
    response_model=SwipeResponse,
    summary="Лайк (свайп вправо)",
)
async def like_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
) -> SwipeResponse:
    result = await swipe_right(db, current_user_id, user_id)
    return SwipeResponse(
        liked=result.liked,
        matched=result.matched,
        match=to_match_read(result.match, result.other_user) if result.match is not None else None,
    )


@router.post(
    "/pass/{user_id}",
    response_model=SwipeResponse,
    summary="Пропустить анкету (свайп влево)",
)
async def pass_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
) -> SwipeResponse:
    result = await swipe_left(db, current_user_id, user_id)
    return SwipeResponse(liked=result.liked, matched=result.matched)


@router.post(
    "/block/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Заблокировать пользователя",
)
async def block(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
):
    await block_user(db, current_user_id, user_id)


@router.post(
    "/report/{user_id}",
    status_code=status.HTTP_201_CREATED,
    summary="Пожаловаться на пользователя",
)
async def report(
    user_id: int,
    payload: ReportCreate,
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
):
    created = await report_user(db, current_user_id, user_id, payload.reason, payload.description)
    return {"id": created.id, "status": created.status}
