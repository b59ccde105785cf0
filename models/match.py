# models/match.py
import enum

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Enum, ForeignKey,
    UniqueConstraint, CheckConstraint,
)
from sqlalchemy.sql import func

from .base import Base


class MatchStatus(str, enum.Enum):
    ACTIVE = "active"
    UNMATCHED = "unmatched"
    BLOCKED = "blocked"


class Match(Base):
    __tablename__ = "matches"

    id = Column(Integer, primary_key=True, index=True)
    # Пара хранится упорядоченной: user1_id < user2_id
    user1_id = Column(Integer, ForeignKey("profiles.id", ondelete="CASCADE"), index=True, nullable=False)
    user2_id = Column(Integer, ForeignKey("profiles.id", ondelete="CASCADE"), index=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    status = Column(
        Enum(MatchStatus, name="match_status", values_callable=lambda e: [m.value for m in e]),
        default=MatchStatus.ACTIVE,
        nullable=False,
    )

    total_messages = Column(Integer, default=0, nullable=False)
    user1_message_count = Column(Integer, default=0, nullable=False)
    user2_message_count = Column(Integer, default=0, nullable=False)
    last_message_at = Column(DateTime(timezone=True), nullable=True)
    last_message_preview = Column(String(50), nullable=True)

    date_suggested = Column(Boolean, default=False, nullable=False)
    date_suggestion_sent_at = Column(DateTime(timezone=True), nullable=True)
    venue_selected = Column(Integer, ForeignKey("venues.id", ondelete="SET NULL"), nullable=True)

    __table_args__ = (
        UniqueConstraint("user1_id", "user2_id", name="uq_match_pair"),
        CheckConstraint("user1_id < user2_id", name="chk_match_canonical_pair"),
    )

    def participants(self) -> tuple[int, int]:
        return self.user1_id, self.user2_id

    def other_user_id(self, user_id: int) -> int:
        return self.user2_id if self.user1_id == user_id else self.user1_id

    def __repr__(self):
        return f"<Match {self.user1_id}↔{self.user2_id} {self.status}>"
