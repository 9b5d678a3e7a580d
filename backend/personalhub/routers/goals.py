# backend/personalhub/routers/goals.py
"""
Goals API
Goals grouped by period type, achievement toggling, history and streaks.
"""
from datetime import date, datetime
import datetime as dt
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from personalhub.core.auth import get_current_user
from personalhub.core.database import get_db
from personalhub.models.goal import GoalType
from personalhub.models.user import User
from personalhub.services import goals as goal_service

router = APIRouter()


# ── Request / Response models ─────────────────────────────────────

class GoalCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    goal_type: GoalType
    start_date: Optional[date] = None     # default: 1 Jan of the current year
    end_date: Optional[date] = None       # default: 31 Dec of the current year


class GoalUpdate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class GoalResponse(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    goal_type: GoalType
    is_active: bool
    start_date: date
    end_date: date
    completed: bool = False
    current_streak: int = 0
    longest_streak: int = 0
    created_at: datetime
    updated_at: datetime


class GroupedGoalsResponse(BaseModel):
    daily: List[GoalResponse]
    weekly: List[GoalResponse]
    monthly: List[GoalResponse]
    annual: List[GoalResponse]


class AchievementRequest(BaseModel):
    date: Optional[dt.date] = None


class ToggleAchievementResponse(BaseModel):
    goal_id: int
    period_type: GoalType
    period_date: date
    achieved: bool


class AchievementRecord(BaseModel):
    date: dt.date
    achieved: bool


class AchievementHistoryResponse(BaseModel):
    achievements: List[AchievementRecord]
    total_days: int
    achieved_days: int
    achievement_rate: float


class StreakResponse(BaseModel):
    goal_id: int
    current_streak: int
    longest_streak: int
    last_achieved_date: Optional[date] = None
    streak_broken_date: Optional[date] = None

    class Config:
        from_attributes = True


# ── Goals ─────────────────────────────────────────────────────────

@router.get("", response_model=GroupedGoalsResponse)
async def list_goals(
    date_: Optional[date] = Query(None, alias="date"),
    filter: str = Query("active"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Goals grouped by type with completion and streaks as of ``date`` (default today)."""
    return goal_service.grouped_goals(db, current_user, date_ or date.today(), filter)


@router.post("", response_model=GoalResponse, status_code=status.HTTP_201_CREATED)
async def create_goal(
    data: GoalCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    goal = goal_service.create_goal(
        db,
        current_user,
        title=data.title,
        goal_type=data.goal_type,
        description=data.description,
        start_date=data.start_date,
        end_date=data.end_date,
    )
    return goal_service.describe_goal(db, goal, current_user, date.today())


@router.put("/{goal_id}", response_model=GoalResponse)
async def update_goal(
    goal_id: int,
    data: GoalUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    goal = goal_service.get_owned_goal(db, goal_id, current_user)
    goal = goal_service.update_goal(db, goal, data.title, data.description, data.is_active)
    return goal_service.describe_goal(db, goal, current_user, date.today())


@router.delete("/{goal_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_goal(
    goal_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    goal = goal_service.get_owned_goal(db, goal_id, current_user)
    goal_service.delete_goal(db, goal)


# ── Achievements ──────────────────────────────────────────────────

@router.post("/{goal_id}/achievements", response_model=ToggleAchievementResponse)
async def toggle_achievement(
    goal_id: int,
    data: Optional[AchievementRequest] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Flip the achievement for the period containing ``date`` (default today)."""
    goal = goal_service.get_owned_goal(db, goal_id, current_user)
    return goal_service.toggle_achievement(db, goal, current_user, data.date if data else None)


@router.delete("/{goal_id}/achievements", response_model=ToggleAchievementResponse)
async def toggle_achievement_by_query(
    goal_id: int,
    date_: Optional[date] = Query(None, alias="date"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    goal = goal_service.get_owned_goal(db, goal_id, current_user)
    return goal_service.toggle_achievement(db, goal, current_user, date_)


@router.get("/{goal_id}/achievements", response_model=AchievementHistoryResponse)
async def achievement_history(
    goal_id: int,
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    goal = goal_service.get_owned_goal(db, goal_id, current_user)
    return goal_service.achievement_history(db, goal, date_from, date_to)


@router.get("/{goal_id}/streak", response_model=StreakResponse)
async def get_streak(
    goal_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    goal = goal_service.get_owned_goal(db, goal_id, current_user)
    return goal_service.get_streak(db, goal)
