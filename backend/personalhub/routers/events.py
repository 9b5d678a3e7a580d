# backend/personalhub/routers/events.py
from datetime import datetime
from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from personalhub.core.auth import get_current_user
from personalhub.core.database import get_db
from personalhub.core.datetimes import to_local_naive
from personalhub.core.exceptions import NotFoundError, ValidationError
from personalhub.core.pagination import Page, apply_sort, paginate
from personalhub.models.event import Event
from personalhub.models.user import User

router = APIRouter()
logger = logging.getLogger(__name__)

SORTABLE_FIELDS = ("id", "title", "start_date_time", "end_date_time", "created_at")

# ── Request / Response models ─────────────────────────────────────

class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    start_date_time: datetime
    end_date_time: datetime
    location: Optional[str] = Field(None, max_length=255)
    all_day: bool = False
    reminder_minutes: Optional[int] = Field(None, ge=0)
    color: Optional[str] = Field(None, max_length=20)

    @field_validator("start_date_time", "end_date_time")
    @classmethod
    def as_local_time(cls, value):
        return to_local_naive(value)

class EventUpdate(BaseModel):
    """Partial update: omitted fields are left unchanged."""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    start_date_time: Optional[datetime] = None
    end_date_time: Optional[datetime] = None
    location: Optional[str] = Field(None, max_length=255)
    all_day: Optional[bool] = None
    reminder_minutes: Optional[int] = Field(None, ge=0)
    color: Optional[str] = Field(None, max_length=20)

    @field_validator("start_date_time", "end_date_time")
    @classmethod
    def as_local_time(cls, value):
        return to_local_naive(value)

class EventResponse(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    start_date_time: datetime
    end_date_time: datetime
    location: Optional[str] = None
    all_day: bool
    reminder_minutes: Optional[int] = None
    color: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

# ── Helper ────────────────────────────────────────────────────────

def _get_owned_event(db: Session, event_id: int, user: User) -> Event:
    event = db.query(Event).filter(Event.id == event_id, Event.user_id == user.id).first()
    if event is None:
        raise NotFoundError(f"Event not found with id: {event_id}")
    return event

def _check_time_range(start: datetime, end: datetime):
    if end < start:
        raise ValidationError("end_date_time must not be before start_date_time")

# ── Collection ────────────────────────────────────────────────────

@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    data: EventCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _check_time_range(data.start_date_time, data.end_date_time)
    event = Event(user_id=current_user.id, **data.model_dump())
    db.add(event)
    db.commit()
    db.refresh(event)
    logger.info("EVENT_CREATED event_id=%s user_id=%s", event.id, current_user.id)
    return event

@router.get("", response_model=Page[EventResponse])
async def list_events(
    page: int = Query(0, ge=0),
    size: int = Query(10, ge=1, le=100),
    sort: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = db.query(Event).filter(Event.user_id == current_user.id)
    query = apply_sort(query, Event, sort, SORTABLE_FIELDS, "start_date_time,asc")
    return paginate(query, page, size)

@router.get("/range", response_model=List[EventResponse])
async def events_in_range(
    start_date: datetime,
    end_date: datetime,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Events overlapping [start_date, end_date], ordered by start."""
    start_date, end_date = to_local_naive(start_date), to_local_naive(end_date)
    _check_time_range(start_date, end_date)
    return (
        db.query(Event)
        .filter(
            Event.user_id == current_user.id,
            Event.start_date_time <= end_date,
            Event.end_date_time >= start_date,
        )
        .order_by(Event.start_date_time, Event.id)
        .all()
    )

# ── Single event ──────────────────────────────────────────────────

@router.get("/{event_id}", response_model=EventResponse)
async def get_event(
    event_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _get_owned_event(db, event_id, current_user)

@router.put("/{event_id}", response_model=EventResponse)
async def update_event(
    event_id: int,
    data: EventUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    event = _get_owned_event(db, event_id, current_user)
    changes = data.model_dump(exclude_none=True)
    _check_time_range(
        changes.get("start_date_time", event.start_date_time),
        changes.get("end_date_time", event.end_date_time),
    )
    for field, value in changes.items():
        setattr(event, field, value)
    db.commit()
    db.refresh(event)
    return event

@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(
    event_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    event = _get_owned_event(db, event_id, current_user)
    db.delete(event)
    db.commit()
    logger.info("EVENT_DELETED event_id=%s user_id=%s", event_id, current_user.id)
