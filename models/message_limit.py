# models/message_limit.py
from sqlalchemy import Column, Integer, Date, ForeignKey, UniqueConstraint

from .base import Base


class MessageLimit(Base):
    __tablename__ = "message_limits"

    id = Column(Integer, primary_key=True, index=True)
    match_id = Column(Integer, ForeignKey("matches.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    messages_today = Column(Integer, default=0, nullable=False)
    last_message_date = Column(Date, nullable=False)

    __table_args__ = (
        UniqueConstraint("match_id", "user_id", name="uq_message_limit_match_user"),
    )

    def __repr__(self):
        return f"<MessageLimit match={self.match_id} user={self.user_id} today={self.messages_today}>"
