# schemas/profile.py
from typing import Optional, List
from datetime import date, datetime

from pydantic import BaseModel, Field


class ProfileBase(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100, description="Имя")
    birth_date: date = Field(..., description="Дата рождения (YYYY-MM-DD)")
    gender: str = Field(..., max_length=20, description="Пол: 'male', 'female', 'non-binary', 'other'")
    looking_for: List[str] = Field(default_factory=list, description="Кого ищет пользователь")
    height_cm: Optional[int] = Field(None, ge=120, le=230, description="Рост в сантиметрах")
    ethnicity: Optional[str] = None
    religion: Optional[str] = None
    offspring: Optional[str] = None
    smoker: Optional[str] = None
    alcohol: Optional[str] = None
    drugs: Optional[str] = None
    diet: Optional[str] = None
    occupation: Optional[str] = Field(None, max_length=100)
    income: Optional[str] = None
    bio: Optional[str] = Field(None, max_length=500)
    things_to_know: Optional[str] = Field(None, max_length=300)


class ProfileCreate(ProfileBase):
    email: Optional[str] = Field(None, max_length=255)


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    gender: Optional[str] = Field(None, max_length=20)
    looking_for: Optional[List[str]] = None
    height_cm: Optional[int] = Field(None, ge=120, le=230)
    ethnicity: Optional[str] = None
    religion: Optional[str] = None
    offspring: Optional[str] = None
    smoker: Optional[str] = None
    alcohol: Optional[str] = None
    drugs: Optional[str] = None
    diet: Optional[str] = None
    occupation: Optional[str] = Field(None, max_length=100)
    income: Optional[str] = None
    bio: Optional[str] = Field(None, max_length=500)
    things_to_know: Optional[str] = Field(None, max_length=300)


class ProfileRead(BaseModel):
    """Публичная карточка профиля (выдача discover, другой участник матча)."""
    id: int
    first_name: str
    age: Optional[int] = Field(None, description="Возраст на сегодня")
    gender: str
    looking_for: List[str] = []
    height_cm: Optional[int] = None
    ethnicity: Optional[str] = None
    religion: Optional[str] = None
    offspring: Optional[str] = None
    smoker: Optional[str] = None
    alcohol: Optional[str] = None
    drugs: Optional[str] = None
    diet: Optional[str] = None
    occupation: Optional[str] = None
    bio: Optional[str] = None
    things_to_know: Optional[str] = None
    location_city: Optional[str] = None
    location_state: Optional[str] = None
    main_photo_url: Optional[str] = None
    photo_urls: List[str] = []
    last_active: Optional[datetime] = None
    distance_miles: Optional[float] = Field(None, description="Расстояние до зрителя")

    class Config:
        from_attributes = True


class ProfileMe(ProfileBase):
    """Собственный профиль со служебными полями."""
    id: int
    email: Optional[str] = None
    age: int
    is_active: bool
    is_paused: bool
    is_deleted: bool
    location_lat: Optional[float] = None
    location_lng: Optional[float] = None
    location_city: Optional[str] = None
    location_state: Optional[str] = None
    main_photo_url: Optional[str] = None
    main_photo_expires_at: Optional[datetime] = None
    photo_urls: List[Optional[str]] = Field(default_factory=list, description="Слоты галереи, пустой слот: null")
    match_count: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class LocationUpdate(BaseModel):
    latitude: float = Field(..., ge=-90, le=90, description="Широта пользователя")
    longitude: float = Field(..., ge=-180, le=180, description="Долгота пользователя")
    city: Optional[str] = Field(None, max_length=64, description="Город пользователя")
    state: Optional[str] = Field(None, max_length=64, description="Штат / регион")


class PauseRequest(BaseModel):
    paused: bool


class PhotoUploadResponse(BaseModel):
    url: str
    position: Optional[int] = Field(None, description="Слот в галерее; None для главного фото")
    expires_at: Optional[datetime] = None
