# backend/personalhub/routers/analytics.py
"""
Analytics API
Dashboard counters and todo activity derived from the user's todos,
events and notes.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from pydantic import BaseModel
from typing import List, Dict, Optional
from datetime import date, timedelta
import datetime as dt

from personalhub.core.database import get_db
from personalhub.core.auth import get_current_user
from personalhub.core.exceptions import ValidationError
from personalhub.models.user import User
from personalhub.services import analytics as analytics_service

router = APIRouter()


# ── Response models ───────────────────────────────────────────────────────────

class DailyCount(BaseModel):
    date: dt.date
    count: int


class TodoStats(BaseModel):
    total_todos: int
    completed_todos: int
    in_progress_todos: int
    pending_todos: int
    completion_rate: float      # percent, 2 decimals
    overdue_count: int


class EventStats(BaseModel):
    total_events: int
    upcoming_events: int
    past_events: int
    today_events: int


class NoteStats(BaseModel):
    total_notes: int
    notes_this_week: int
    notes_this_month: int
    total_tags: int


class ProductivityStats(BaseModel):
    daily_todo_completions: List[DailyCount]
    daily_event_counts: List[DailyCount]
    daily_note_creations: List[DailyCount]
    weekly_productivity_score: float


class DashboardResponse(BaseModel):
    todo_stats: TodoStats
    event_stats: EventStats
    note_stats: NoteStats
    productivity_stats: ProductivityStats


class TodoActivityResponse(BaseModel):
    daily_completions: List[DailyCount]
    daily_creations: List[DailyCount]
    priority_distribution: Dict[str, int]
    status_distribution: Dict[str, int]
    average_completion_time: float      # days


# ── Endpoints ─────────────────────────────────────────────────────────────────

@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Summary counters for todos, events and notes plus the last week's productivity."""
    return analytics_service.dashboard(db, current_user)


@router.get("/todos/activity", response_model=TodoActivityResponse)
async def get_todo_activity(
    days: int = Query(30, ge=1, le=366),
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Daily completions and creations over a window.
    The window ends at ``date_to`` (default today) and starts at ``date_from``
    (default ``days`` before the end).
    """
    end = date_to or date.today()
    start = date_from or end - timedelta(days=days)
    if start > end:
        raise ValidationError("date_from must not be after date_to")
    return analytics_service.todo_activity(db, current_user, start, end)
