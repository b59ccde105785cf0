# models/report.py
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.sql import func

from .base import Base


class Report(Base):
    __tablename__ = "reports"

    id = Column(Integer, primary_key=True, index=True)
    reporter_id = Column(Integer, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    reported_id = Column(Integer, ForeignKey("profiles.id", ondelete="CASCADE"), index=True, nullable=False)
    reason = Column(String(32), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(16), default="pending", nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Report {self.reporter_id}→{self.reported_id} {self.reason}>"
