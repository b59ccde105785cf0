# core/security.py
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError

from core.config import settings
from core.errors import Unauthenticated

ALGORITHM = "HS256"

# Токены выдаёт внешний провайдер авторизации, мы только проверяем подпись
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth", auto_error=False)


def create_access_token(user_id: int, expires_minutes: Optional[int] = None) -> str:
    """Собирает JWT с claim user_id, подписанный общим секретом."""
    minutes = expires_minutes if expires_minutes is not None else settings.ACCESS_TOKEN_EXPIRE_MINUTES
    expires = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    payload = {"user_id": user_id, "exp": expires}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=ALGORITHM)


def decode_access_token(token: str) -> int:
    """
    Проверяет подпись и срок действия токена и возвращает стабильный user_id.
    Бросает Unauthenticated, если токен битый, просрочен или без user_id.
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[ALGORITHM])
    except JWTError:
        raise Unauthenticated("Could not validate credentials")

    user_id = payload.get("user_id")
    if user_id is None:
        raise Unauthenticated("Could not validate credentials")
    try:
        return int(user_id)
    except (TypeError, ValueError):
        raise Unauthenticated("Could not validate credentials")


async def get_current_user_id(token: Optional[str] = Depends(oauth2_scheme)) -> int:
    if not token:
        raise Unauthenticated()
    return decode_access_token(token)
