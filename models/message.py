# models/message.py
from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey

from utils.dates import utcnow
from .base import Base


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    match_id = Column(Integer, ForeignKey("matches.id", ondelete="CASCADE"), index=True, nullable=False)
    sender_id = Column(Integer, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    # Время проставляем на стороне приложения: нужна точность до микросекунд для опроса "с момента X"
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    read_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<Message id={self.id} match={self.match_id} sender={self.sender_id}>"
