# backend/personalhub/routers/todos.py
from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from personalhub.core.auth import get_current_user
from personalhub.core.database import get_db
from personalhub.core.pagination import Page, apply_sort, paginate
from personalhub.models.todo import RepeatType, Todo, TodoPriority, TodoStatus
from personalhub.models.user import User
from personalhub.services import todos as todo_service

router = APIRouter()

SORTABLE_FIELDS = ("id", "title", "status", "priority", "due_date", "created_at", "updated_at")


# ── Request / Response models ─────────────────────────────────────

class RepeatConfig(BaseModel):
    repeat_type: RepeatType
    interval: Optional[int] = Field(None, ge=1)
    days_of_week: Optional[List[int]] = None     # ISO weekdays, 1 = Monday .. 7 = Sunday
    day_of_month: Optional[int] = Field(None, ge=1, le=31)
    end_date: Optional[date] = None

    @field_validator("days_of_week")
    @classmethod
    def check_days_of_week(cls, days):
        for day in days or []:
            if not 1 <= day <= 7:
                raise ValueError("days_of_week entries must be between 1 and 7")
        return days


class TodoCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    priority: Optional[TodoPriority] = None
    due_date: Optional[date] = None
    parent_id: Optional[int] = None
    is_repeatable: bool = False
    repeat_config: Optional[RepeatConfig] = None


class TodoUpdate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    status: TodoStatus
    priority: TodoPriority
    due_date: Optional[date] = None
    parent_id: Optional[int] = None
    is_repeatable: bool = False
    repeat_config: Optional[RepeatConfig] = None


class TodoResponse(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    status: TodoStatus
    priority: TodoPriority
    due_date: Optional[date] = None
    parent_id: Optional[int] = None
    is_repeatable: bool
    repeat_config: Optional[RepeatConfig] = None
    original_todo_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# ── Collection endpoints (declared before /{todo_id}) ─────────────

@router.post("", response_model=TodoResponse, status_code=status.HTTP_201_CREATED)
async def create_todo(
    data: TodoCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return todo_service.create_todo(
        db,
        current_user,
        title=data.title,
        description=data.description,
        priority=data.priority,
        due_date=data.due_date,
        parent_id=data.parent_id,
        is_repeatable=data.is_repeatable,
        repeat_config=data.repeat_config,
    )


@router.get("", response_model=Page[TodoResponse])
async def list_todos(
    page: int = Query(0, ge=0),
    size: int = Query(10, ge=1, le=100),
    sort: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = db.query(Todo).filter(Todo.user_id == current_user.id)
    query = apply_sort(query, Todo, sort, SORTABLE_FIELDS, "created_at,desc")
    return paginate(query, page, size)


@router.get("/status/{todo_status}", response_model=List[TodoResponse])
async def list_by_status(
    todo_status: TodoStatus,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return todo_service.list_by_status(db, current_user, todo_status)


@router.get("/repeatable", response_model=List[TodoResponse])
async def list_repeatable(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return todo_service.repeatable_todos(db, current_user)


@router.post("/repeat/generate", response_model=List[TodoResponse])
async def generate_repeat_instances(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create the next instance of every repeatable todo that is due."""
    return todo_service.generate_pending_instances(db, current_user)


# ── Single todo ───────────────────────────────────────────────────

@router.get("/{todo_id}", response_model=TodoResponse)
async def get_todo(
    todo_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return todo_service.get_owned_todo(db, todo_id, current_user)


@router.put("/{todo_id}", response_model=TodoResponse)
async def update_todo(
    todo_id: int,
    data: TodoUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    todo = todo_service.get_owned_todo(db, todo_id, current_user)
    return todo_service.update_todo(
        db,
        todo,
        current_user,
        title=data.title,
        status=data.status,
        priority=data.priority,
        description=data.description,
        due_date=data.due_date,
        parent_id=data.parent_id,
        is_repeatable=data.is_repeatable,
        repeat_config=data.repeat_config,
    )


@router.delete("/{todo_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_todo(
    todo_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    todo = todo_service.get_owned_todo(db, todo_id, current_user)
    todo_service.delete_todo(db, todo)


@router.get("/{todo_id}/children", response_model=List[TodoResponse])
async def get_children(
    todo_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    parent = todo_service.get_owned_todo(db, todo_id, current_user)
    return todo_service.children(db, parent)


@router.get("/{todo_id}/instances", response_model=List[TodoResponse])
async def get_instances(
    todo_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    original = todo_service.get_owned_todo(db, todo_id, current_user)
    return todo_service.repeat_instances(db, original)


@router.post("/{todo_id}/toggle-status", response_model=TodoResponse)
async def toggle_status(
    todo_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    todo = todo_service.get_owned_todo(db, todo_id, current_user)
    return todo_service.toggle_status(db, todo)
