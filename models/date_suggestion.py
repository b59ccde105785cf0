# models/date_suggestion.py
import enum

from sqlalchemy import Column, Integer, DateTime, Enum, ForeignKey
from sqlalchemy.sql import func

from .base import Base


class SuggestionStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class DateSuggestion(Base):
    __tablename__ = "date_suggestions"

    id = Column(Integer, primary_key=True, index=True)
    match_id = Column(Integer, ForeignKey("matches.id", ondelete="CASCADE"), index=True, nullable=False)
    suggested_by_id = Column(Integer, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    venue_id = Column(Integer, ForeignKey("venues.id", ondelete="CASCADE"), nullable=False)
    status = Column(
        Enum(SuggestionStatus, name="date_suggestion_status", values_callable=lambda e: [m.value for m in e]),
        default=SuggestionStatus.PENDING,
        nullable=False,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    responded_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<DateSuggestion id={self.id} match={self.match_id} {self.status}>"
