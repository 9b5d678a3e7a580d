# backend/personalhub/routers/pomodoro.py
"""
Pomodoro API
Timer sessions with their task lists, plus per-user timer settings.
"""
from datetime import datetime
from typing import List, Literal, Optional
import uuid

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from personalhub.core.auth import get_current_user
from personalhub.core.database import get_db
from personalhub.core.exceptions import NotFoundError
from personalhub.core.pagination import Page, paginate
from personalhub.models.pomodoro import AlarmSound, SessionStatus, SessionType
from personalhub.models.user import User
from personalhub.services import pomodoro as pomodoro_service

router = APIRouter()


# ── Request / Response models ─────────────────────────────────────

class TaskCreate(BaseModel):
    description: str = Field(..., min_length=1, max_length=500)
    todo_id: Optional[int] = None


class TaskUpdate(BaseModel):
    completed: bool


class TaskResponse(BaseModel):
    id: uuid.UUID
    session_id: uuid.UUID
    todo_id: Optional[int] = None
    description: str
    completed: bool
    order_index: int

    class Config:
        from_attributes = True


class SessionCreate(BaseModel):
    work_duration: int = Field(25, ge=1, le=180)     # minutes
    break_duration: int = Field(5, ge=1, le=60)      # minutes
    session_type: SessionType = SessionType.WORK
    tasks: List[TaskCreate] = []


class SessionUpdate(BaseModel):
    action: Literal["START", "PAUSE", "RESUME", "COMPLETE", "CANCEL", "SWITCH_TYPE"]
    session_type: Optional[SessionType] = None   # used by SWITCH_TYPE


class SessionResponse(BaseModel):
    id: uuid.UUID
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    work_duration: int
    break_duration: int
    completed_cycles: int
    status: SessionStatus
    session_type: SessionType
    tasks: List[TaskResponse] = []
    created_at: datetime

    class Config:
        from_attributes = True


class ConfigUpdate(BaseModel):
    """Partial update: omitted fields are left unchanged."""
    work_duration: Optional[int] = Field(None, ge=1, le=180)
    short_break_duration: Optional[int] = Field(None, ge=1, le=60)
    long_break_duration: Optional[int] = Field(None, ge=1, le=120)
    cycles_before_long_break: Optional[int] = Field(None, ge=1, le=12)
    alarm_sound: Optional[str] = None             # unknown names fall back to "default"
    alarm_volume: Optional[int] = Field(None, ge=0, le=100)
    auto_start_breaks: Optional[bool] = None
    auto_start_work: Optional[bool] = None


class ConfigResponse(BaseModel):
    work_duration: int
    short_break_duration: int
    long_break_duration: int
    cycles_before_long_break: int
    alarm_sound: AlarmSound
    alarm_volume: int
    auto_start_breaks: bool
    auto_start_work: bool

    class Config:
        from_attributes = True


# ── Sessions ──────────────────────────────────────────────────────

@router.post("/sessions", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
    data: SessionCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return pomodoro_service.create_session(
        db,
        current_user,
        work_duration=data.work_duration,
        break_duration=data.break_duration,
        session_type=data.session_type,
        tasks=[task.model_dump() for task in data.tasks],
    )


@router.get("/sessions/active", response_model=SessionResponse)
async def get_active_session(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    session = pomodoro_service.find_active_session(db, current_user)
    if session is None:
        raise NotFoundError("No active session")
    return session


@router.get("/sessions", response_model=Page[SessionResponse])
async def session_history(
    page: int = Query(0, ge=0),
    size: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Past and current sessions, newest first."""
    return paginate(pomodoro_service.history_query(db, current_user), page, size)


@router.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_session(
    session_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return pomodoro_service.get_owned_session(db, session_id, current_user)


@router.put("/sessions/{session_id}", response_model=SessionResponse)
async def update_session(
    session_id: uuid.UUID,
    data: SessionUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    session = pomodoro_service.get_owned_session(db, session_id, current_user)
    return pomodoro_service.apply_action(db, session, data.action, data.session_type)


# ── Session tasks ─────────────────────────────────────────────────

@router.get("/sessions/{session_id}/tasks", response_model=List[TaskResponse])
async def list_tasks(
    session_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return pomodoro_service.get_owned_session(db, session_id, current_user).tasks


@router.post("/sessions/{session_id}/tasks", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def add_task(
    session_id: uuid.UUID,
    data: TaskCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    session = pomodoro_service.get_owned_session(db, session_id, current_user)
    return pomodoro_service.add_task(db, session, data.description, data.todo_id)


@router.put("/sessions/{session_id}/tasks/{task_id}", response_model=TaskResponse)
async def update_task(
    session_id: uuid.UUID,
    task_id: uuid.UUID,
    data: TaskUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    session = pomodoro_service.get_owned_session(db, session_id, current_user)
    task = pomodoro_service.get_owned_task(db, session, task_id)
    return pomodoro_service.set_task_completed(db, task, data.completed)


@router.delete("/sessions/{session_id}/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_task(
    session_id: uuid.UUID,
    task_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    session = pomodoro_service.get_owned_session(db, session_id, current_user)
    task = pomodoro_service.get_owned_task(db, session, task_id)
    pomodoro_service.remove_task(db, task)


# ── Config ────────────────────────────────────────────────────────

@router.get("/config", response_model=ConfigResponse)
async def get_config(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return pomodoro_service.get_or_create_config(db, current_user)


@router.put("/config", response_model=ConfigResponse)
async def update_config(
    data: ConfigUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return pomodoro_service.update_config(db, current_user, data.model_dump())
