# backend/personalhub/models/note.py
from datetime import datetime
from typing import List, Optional

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Uuid

from personalhub.core.database import Base


def split_tags(raw: Optional[str]) -> List[str]:
    """'a, b,,c' -> ['a', 'b', 'c']"""
    if not raw:
        return []
    return [tag.strip() for tag in raw.split(",") if tag.strip()]


def join_tags(tags: Optional[List[str]]) -> Optional[str]:
    cleaned = [tag.strip() for tag in (tags or []) if tag and tag.strip()]
    return ",".join(cleaned) if cleaned else None


class Note(Base):
    __tablename__ = "notes"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=True)
    tags = Column(String(500), nullable=True)  # comma separated
    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)

    @property
    def tag_list(self) -> List[str]:
        return split_tags(self.tags)

    def __repr__(self):
        return f"<Note(id={self.id}, title={self.title})>"
