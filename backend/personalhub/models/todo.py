# backend/personalhub/models/todo.py
from datetime import datetime
import enum

from sqlalchemy import Column, Integer, String, Boolean, Date, DateTime, Enum, ForeignKey, Uuid

from personalhub.core.database import Base


class TodoStatus(str, enum.Enum):
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"


class TodoPriority(str, enum.Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class RepeatType(str, enum.Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"
    ONCE = "ONCE"


class Todo(Base):
    __tablename__ = "todos"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(String(1000), nullable=True)
    status = Column(Enum(TodoStatus, native_enum=False, length=20), default=TodoStatus.TODO, nullable=False)
    priority = Column(Enum(TodoPriority, native_enum=False, length=20), default=TodoPriority.MEDIUM, nullable=False)
    due_date = Column(Date, nullable=True)
    parent_id = Column(Integer, ForeignKey("todos.id", ondelete="CASCADE"), nullable=True, index=True)

    # Repeat configuration (only set on the original repeatable todo)
    is_repeatable = Column(Boolean, default=False, nullable=False)
    repeat_type = Column(Enum(RepeatType, native_enum=False, length=20), nullable=True)
    repeat_interval = Column(Integer, nullable=True)
    repeat_days_of_week = Column(String(20), nullable=True)   # "1,3,5" (ISO: 1=Mon .. 7=Sun)
    repeat_day_of_month = Column(Integer, nullable=True)
    repeat_end_date = Column(Date, nullable=True)

    # Set on generated instances
    original_todo_id = Column(Integer, ForeignKey("todos.id", ondelete="SET NULL"), nullable=True, index=True)

    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)

    @property
    def repeat_config(self):
        if not self.is_repeatable or self.repeat_type is None:
            return None
        days = [int(d) for d in self.repeat_days_of_week.split(",")] if self.repeat_days_of_week else None
        return {
            "repeat_type": self.repeat_type,
            "interval": self.repeat_interval,
            "days_of_week": days,
            "day_of_month": self.repeat_day_of_month,
            "end_date": self.repeat_end_date,
        }

    def clear_repeat_config(self):
        self.is_repeatable = False
        self.repeat_type = None
        self.repeat_interval = None
        self.repeat_days_of_week = None
        self.repeat_day_of_month = None
        self.repeat_end_date = None

    def __repr__(self):
        return f"<Todo(id={self.id}, status={self.status})>"
