# backend/personalhub/models/event.py
from datetime import datetime

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, Uuid

from personalhub.core.database import Base


class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    start_date_time = Column(DateTime, nullable=False, index=True)
    end_date_time = Column(DateTime, nullable=False)
    location = Column(String(255), nullable=True)
    all_day = Column(Boolean, default=False, nullable=False)
    reminder_minutes = Column(Integer, nullable=True)
    color = Column(String(20), nullable=True)
    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return self.start_date_time < end and self.end_date_time > start

    def __repr__(self):
        return f"<Event(id={self.id}, start={self.start_date_time})>"
