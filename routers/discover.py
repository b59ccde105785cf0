# routers/discover.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.security import get_current_user_id
from schemas.profile import ProfileRead
from services.discovery import discover
from utils.user_helpers import to_profile_read

router = APIRouter(prefix="/discover", tags=["discover"])


@router.get(
    "",
    response_model=List[ProfileRead],
    summary="Лента анкет для свайпов",
)
async def get_discover_feed(
    limit: Optional[int] = Query(None, ge=1, le=100, description="Сколько анкет вернуть (по умолчанию DISCOVER_PAGE_SIZE)"),
    offset: int = Query(0, ge=0, description="Сколько подходящих анкет пропустить"),
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
) -> List[ProfileRead]:
    candidates = await discover(db, current_user_id, limit=limit, offset=offset)
    return [to_profile_read(c.profile, c.distance) for c in candidates]
