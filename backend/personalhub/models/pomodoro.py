# backend/personalhub/models/pomodoro.py
from datetime import datetime
import enum
import uuid

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, ForeignKey, Uuid
from sqlalchemy.orm import relationship

from personalhub.core.database import Base


class SessionStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class SessionType(str, enum.Enum):
    WORK = "WORK"
    SHORT_BREAK = "SHORT_BREAK"
    LONG_BREAK = "LONG_BREAK"


class AlarmSound(str, enum.Enum):
    DEFAULT = "default"
    BELL = "bell"
    CHIME = "chime"
    DING = "ding"
    GENTLE = "gentle"

    @classmethod
    def from_value(cls, value: str | None) -> "AlarmSound":
        """Unknown or empty values fall back to the default sound."""
        for sound in cls:
            if value and sound.value == value.strip().lower():
                return sound
        return cls.DEFAULT


class PomodoroSession(Base):
    __tablename__ = "pomodoro_sessions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    start_time = Column(DateTime, nullable=True)
    end_time = Column(DateTime, nullable=True)
    work_duration = Column(Integer, nullable=False, default=25)   # minutes
    break_duration = Column(Integer, nullable=False, default=5)   # minutes
    completed_cycles = Column(Integer, nullable=False, default=0)
    status = Column(Enum(SessionStatus, native_enum=False, length=20), default=SessionStatus.ACTIVE, nullable=False)
    session_type = Column(Enum(SessionType, native_enum=False, length=20), default=SessionType.WORK, nullable=False)
    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)

    tasks = relationship(
        "PomodoroTask",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="PomodoroTask.order_index",
    )


class PomodoroTask(Base):
    __tablename__ = "pomodoro_tasks"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    session_id = Column(Uuid, ForeignKey("pomodoro_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    todo_id = Column(Integer, ForeignKey("todos.id", ondelete="SET NULL"), nullable=True)
    description = Column(String(500), nullable=False)
    completed = Column(Boolean, default=False, nullable=False)
    order_index = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)

    session = relationship("PomodoroSession", back_populates="tasks")


class PomodoroConfig(Base):
    """Per-user timer preferences"""
    __tablename__ = "pomodoro_configs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    work_duration = Column(Integer, default=25, nullable=False)
    short_break_duration = Column(Integer, default=5, nullable=False)
    long_break_duration = Column(Integer, default=15, nullable=False)
    cycles_before_long_break = Column(Integer, default=4, nullable=False)
    alarm_sound = Column(Enum(AlarmSound, native_enum=False, length=20, values_callable=lambda e: [m.value for m in e]),
                         default=AlarmSound.DEFAULT, nullable=False)
    alarm_volume = Column(Integer, default=50, nullable=False)   # 0-100
    auto_start_breaks = Column(Boolean, default=True, nullable=False)
    auto_start_work = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)
