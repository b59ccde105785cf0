"""Утилиты для преобразования моделей в схемы Pydantic."""
from typing import Optional

from models.date_suggestion import DateSuggestion
from models.match import Match
from models.profile import Profile
from models.venue import Venue
from schemas.match import MatchRead
from schemas.profile import ProfileMe, ProfileRead
from schemas.venue import DateSuggestionRead, VenueRead
from utils.dates import calculate_age


def to_profile_read(profile: Profile, distance: Optional[float] = None) -> ProfileRead:
    """Публичная карточка профиля с возрастом вместо даты рождения."""
    return ProfileRead(
        id=profile.id,
        first_name=profile.first_name,
        age=calculate_age(profile.birth_date) if profile.birth_date else None,
        gender=profile.gender,
        looking_for=profile.looking_for or [],
        height_cm=profile.height_cm,
        ethnicity=profile.ethnicity,
        religion=profile.religion,
        offspring=profile.offspring,
        smoker=profile.smoker,
        alcohol=profile.alcohol,
        drugs=profile.drugs,
        diet=profile.diet,
        occupation=profile.occupation,
        bio=profile.bio,
        things_to_know=profile.things_to_know,
        location_city=profile.location_city,
        location_state=profile.location_state,
        main_photo_url=profile.main_photo_url,
        photo_urls=[url for url in (profile.photo_urls or []) if url],
        last_active=profile.last_active,
        distance_miles=round(distance, 1) if distance is not None else None,
    )


def to_profile_me(profile: Profile) -> ProfileMe:
    return ProfileMe(
        id=profile.id,
        email=profile.email,
        first_name=profile.first_name,
        birth_date=profile.birth_date,
        age=calculate_age(profile.birth_date),
        gender=profile.gender,
        looking_for=profile.looking_for or [],
        height_cm=profile.height_cm,
        ethnicity=profile.ethnicity,
        religion=profile.religion,
        offspring=profile.offspring,
        smoker=profile.smoker,
        alcohol=profile.alcohol,
        drugs=profile.drugs,
        diet=profile.diet,
        occupation=profile.occupation,
        income=profile.income,
        bio=profile.bio,
        things_to_know=profile.things_to_know,
        is_active=profile.is_active,
        is_paused=profile.is_paused,
        is_deleted=profile.is_deleted,
        location_lat=profile.location_lat,
        location_lng=profile.location_lng,
        location_city=profile.location_city,
        location_state=profile.location_state,
        main_photo_url=profile.main_photo_url,
        main_photo_expires_at=profile.main_photo_expires_at,
        photo_urls=profile.photo_urls or [],
        match_count=profile.match_count,
        created_at=profile.created_at,
        updated_at=profile.updated_at,
    )


def to_match_read(match: Match, other_user: Optional[Profile] = None) -> MatchRead:
    return MatchRead(
        id=match.id,
        user1_id=match.user1_id,
        user2_id=match.user2_id,
        status=match.status.value,
        created_at=match.created_at,
        total_messages=match.total_messages,
        user1_message_count=match.user1_message_count,
        user2_message_count=match.user2_message_count,
        last_message_at=match.last_message_at,
        last_message_preview=match.last_message_preview,
        date_suggested=match.date_suggested,
        date_suggestion_sent_at=match.date_suggestion_sent_at,
        venue_selected=match.venue_selected,
        other_user=to_profile_read(other_user) if other_user is not None else None,
    )


def to_venue_read(venue: Venue, distance: Optional[float] = None) -> VenueRead:
    read = VenueRead.model_validate(venue)
    if distance is not None:
        read.distance_miles = round(distance, 2)
    return read


def to_date_suggestion_read(
    suggestion: DateSuggestion, venue: Optional[Venue] = None
) -> DateSuggestionRead:
    return DateSuggestionRead(
        id=suggestion.id,
        match_id=suggestion.match_id,
        suggested_by_id=suggestion.suggested_by_id,
        venue_id=suggestion.venue_id,
        status=suggestion.status.value,
        created_at=suggestion.created_at,
        responded_at=suggestion.responded_at,
        venue=to_venue_read(venue) if venue is not None else None,
    )
