# backend/personalhub/models/moment.py
from datetime import datetime
from typing import List

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Uuid

from personalhub.core.database import Base
from personalhub.models.note import split_tags

DEFAULT_MOMENT_TAGS = ["Ideas", "Discoveries", "Emotions", "Log", "Other"]


class Moment(Base):
    """A short timestamped journal entry"""
    __tablename__ = "moments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    tags = Column(String(500), nullable=True)  # comma separated
    created_at = Column(DateTime, default=datetime.now, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)

    @property
    def tag_list(self) -> List[str]:
        return split_tags(self.tags)

    def has_tag(self, tag: str) -> bool:
        wanted = tag.strip().lower()
        return any(t.lower() == wanted for t in self.tag_list)
