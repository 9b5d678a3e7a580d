# backend/personalhub/models/goal.py
from datetime import date, datetime
import enum

from sqlalchemy import (
    Column, Integer, String, Text, Boolean, Date, DateTime, Enum, ForeignKey, Uuid, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from personalhub.core.database import Base


class GoalType(str, enum.Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    ANNUAL = "ANNUAL"


class Goal(Base):
    __tablename__ = "goals"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    goal_type = Column(Enum(GoalType, native_enum=False, length=20), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)

    achievements = relationship(
        "GoalAchievement", back_populates="goal", cascade="all, delete-orphan"
    )
    streak = relationship(
        "GoalStreak", back_populates="goal", uselist=False, cascade="all, delete-orphan"
    )

    def is_in_range(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def __repr__(self):
        return f"<Goal(id={self.id}, type={self.goal_type})>"


class GoalAchievement(Base):
    """One row per achieved period; achieved_date is the normalised period start"""
    __tablename__ = "goal_achievement_history"
    __table_args__ = (UniqueConstraint("goal_id", "achieved_date"),)

    id = Column(Integer, primary_key=True, index=True)
    goal_id = Column(Integer, ForeignKey("goals.id", ondelete="CASCADE"), nullable=False, index=True)
    achieved_date = Column(Date, nullable=False)
    created_at = Column(DateTime, default=datetime.now, nullable=False)

    goal = relationship("Goal", back_populates="achievements")


class GoalStreak(Base):
    """Running streak counters for a goal"""
    __tablename__ = "goal_streaks"

    id = Column(Integer, primary_key=True, index=True)
    goal_id = Column(Integer, ForeignKey("goals.id", ondelete="CASCADE"), nullable=False, unique=True)
    current_streak = Column(Integer, default=0, nullable=False)
    longest_streak = Column(Integer, default=0, nullable=False)
    last_achieved_date = Column(Date, nullable=True)
    streak_broken_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)

    goal = relationship("Goal", back_populates="streak")

    def __init__(self, **kwargs):
        kwargs.setdefault("current_streak", 0)
        kwargs.setdefault("longest_streak", 0)
        super().__init__(**kwargs)
