# models/profile.py
from sqlalchemy import Column, Integer, String, Date, Text, Float, DateTime, Boolean, JSON
from sqlalchemy.sql import func

from .base import Base


class Profile(Base):
    __tablename__ = "profiles"

    # id совпадает со стабильным id пользователя из провайдера авторизации
    id = Column(Integer, primary_key=True, autoincrement=False)
    email = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    last_active = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    is_paused = Column(Boolean, default=False, nullable=False)
    is_deleted = Column(Boolean, default=False, nullable=False)

    first_name = Column(String(100), nullable=False)
    birth_date = Column(Date, nullable=False)
    gender = Column(String(20), nullable=False)
    looking_for = Column(JSON, default=list, nullable=False)
    height_cm = Column(Integer, nullable=True)

    ethnicity = Column(String(32), nullable=True)
    religion = Column(String(32), nullable=True)
    offspring = Column(String(32), nullable=True)
    smoker = Column(String(16), nullable=True)
    alcohol = Column(String(16), nullable=True)
    drugs = Column(String(16), nullable=True)
    diet = Column(String(16), nullable=True)
    occupation = Column(String(100), nullable=True)
    income = Column(String(32), nullable=True)
    bio = Column(Text, nullable=True)
    things_to_know = Column(Text, nullable=True)

    location_lat = Column(Float, nullable=True)
    location_lng = Column(Float, nullable=True)
    location_city = Column(String(64), nullable=True)
    location_state = Column(String(64), nullable=True)

    main_photo_url = Column(String(512), nullable=True)
    main_photo_expires_at = Column(DateTime(timezone=True), nullable=True)
    photo_urls = Column(JSON, default=list, nullable=False)

    match_count = Column(Integer, default=0, nullable=False)

    def __repr__(self):
        return f"<Profile id={self.id} name={self.first_name}>"
