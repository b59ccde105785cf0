from typing import Optional, List
from datetime import datetime

from pydantic import BaseModel


class VenueRead(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    category: str
    address: str
    city: str
    state: str
    zip_code: str
    lat: float
    lng: float
    partnership_slot: int
    service_radius_miles: float
    photo_urls: List[str] = []
    menu_url: Optional[str] = None
    website_url: Optional[str] = None
    phone: Optional[str] = None
    distance_miles: Optional[float] = None

    class Config:
        from_attributes = True


class Midpoint(BaseModel):
    lat: float
    lng: float


class VenueRecommendationResponse(BaseModel):
    match_id: int
    category: Optional[str] = None
    midpoint: Midpoint
    venues: List[VenueRead]


class DateSuggestionCreate(BaseModel):
    venue_id: int


class DateSuggestionRespond(BaseModel):
    accepted: bool


class DateSuggestionRead(BaseModel):
    id: int
    match_id: int
    suggested_by_id: int
    venue_id: int
    status: str
    created_at: datetime
    responded_at: Optional[datetime] = None
    venue: Optional[VenueRead] = None

    class Config:
        from_attributes = True
