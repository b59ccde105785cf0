# models/venue.py
from sqlalchemy import Column, Integer, String, Text, Float, Boolean, DateTime, JSON
from sqlalchemy.sql import func

from .base import Base


class Venue(Base):
    __tablename__ = "venues"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(128), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(32), index=True, nullable=False)
    address = Column(String(255), nullable=False, default="")
    city = Column(String(64), nullable=False, default="")
    state = Column(String(64), nullable=False, default="")
    zip_code = Column(String(16), nullable=False, default="")
    lat = Column(Float, nullable=False)
    lng = Column(Float, nullable=False)

    # 1: самый приоритетный спонсорский слот
    partnership_slot = Column(Integer, default=3, nullable=False)
    payment_tier = Column(String(32), default="basic", nullable=False)
    service_radius_miles = Column(Float, nullable=False)

    photo_urls = Column(JSON, default=list, nullable=False)
    menu_url = Column(String(512), nullable=True)
    website_url = Column(String(512), nullable=True)
    phone = Column(String(32), nullable=True)

    impression_count = Column(Integer, default=0, nullable=False)
    click_count = Column(Integer, default=0, nullable=False)
    date_count = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Venue id={self.id} {self.name} slot={self.partnership_slot}>"
