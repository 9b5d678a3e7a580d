# backend/personalhub/routers/moments.py
from datetime import datetime
from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy import func
from sqlalchemy.orm import Session

from personalhub.core.auth import get_current_user
from personalhub.core.database import get_db
from personalhub.core.datetimes import to_local_naive
from personalhub.core.exceptions import NotFoundError, ValidationError
from personalhub.core.pagination import Page, apply_sort, paginate
from personalhub.models.moment import DEFAULT_MOMENT_TAGS, Moment
from personalhub.models.note import join_tags
from personalhub.models.user import User

router = APIRouter()
logger = logging.getLogger(__name__)

SORTABLE_FIELDS = ("id", "created_at", "updated_at")

# ── Request / Response models ─────────────────────────────────────

class MomentCreate(BaseModel):
    content: str = Field(..., min_length=1)
    tags: List[str] = []

class MomentUpdate(BaseModel):
    content: str = Field(..., min_length=1)
    tags: List[str] = []

class MomentResponse(BaseModel):
    id: int
    content: str
    tags: List[str] = Field(default_factory=list, validation_alias="tag_list")
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

# ── Helper ────────────────────────────────────────────────────────

def _get_owned_moment(db: Session, moment_id: int, user: User) -> Moment:
    moment = db.query(Moment).filter(Moment.id == moment_id, Moment.user_id == user.id).first()
    if moment is None:
        raise NotFoundError(f"Moment not found with id: {moment_id}")
    return moment

def _user_moments(db: Session, user: User):
    return db.query(Moment).filter(Moment.user_id == user.id)

def _newest_first(query):
    return query.order_by(Moment.created_at.desc(), Moment.id.desc())

# ── Collection ────────────────────────────────────────────────────

@router.post("", response_model=MomentResponse, status_code=status.HTTP_201_CREATED)
async def create_moment(
    data: MomentCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    moment = Moment(user_id=current_user.id, content=data.content, tags=join_tags(data.tags))
    db.add(moment)
    db.commit()
    db.refresh(moment)
    logger.info("MOMENT_CREATED moment_id=%s user_id=%s", moment.id, current_user.id)
    return moment

@router.get("", response_model=Page[MomentResponse])
async def list_moments(
    page: int = Query(0, ge=0),
    size: int = Query(10, ge=1, le=100),
    sort: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = apply_sort(_user_moments(db, current_user), Moment, sort, SORTABLE_FIELDS, "created_at,desc")
    return paginate(query, page, size)

@router.get("/tags/default", response_model=List[str])
async def default_tags():
    """Suggested tags offered by the moment composer."""
    return DEFAULT_MOMENT_TAGS

@router.get("/range", response_model=List[MomentResponse])
async def moments_in_range(
    start_date: datetime,
    end_date: datetime,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    start_date, end_date = to_local_naive(start_date), to_local_naive(end_date)
    if end_date < start_date:
        raise ValidationError("end_date must not be before start_date")
    query = _user_moments(db, current_user).filter(
        Moment.created_at >= start_date, Moment.created_at <= end_date
    )
    return _newest_first(query).all()

@router.get("/search", response_model=List[MomentResponse])
async def search_moments(
    query: Optional[str] = None,
    tag: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Content substring and/or tag match, both case-insensitive."""
    q = _user_moments(db, current_user)
    if query:
        q = q.filter(func.lower(Moment.content).contains(query.lower(), autoescape=True))
    moments = _newest_first(q).all()
    if tag:
        moments = [m for m in moments if m.has_tag(tag)]
    return moments

@router.get("/tag/{tag}", response_model=List[MomentResponse])
async def moments_by_tag(
    tag: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    candidates = _newest_first(
        _user_moments(db, current_user).filter(func.lower(Moment.tags).contains(tag.lower(), autoescape=True))
    ).all()
    return [m for m in candidates if m.has_tag(tag)]

# ── Single moment ─────────────────────────────────────────────────

@router.get("/{moment_id}", response_model=MomentResponse)
async def get_moment(
    moment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _get_owned_moment(db, moment_id, current_user)

@router.put("/{moment_id}", response_model=MomentResponse)
async def update_moment(
    moment_id: int,
    data: MomentUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    moment = _get_owned_moment(db, moment_id, current_user)
    moment.content = data.content
    moment.tags = join_tags(data.tags)
    db.commit()
    db.refresh(moment)
    return moment

@router.delete("/{moment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_moment(
    moment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    moment = _get_owned_moment(db, moment_id, current_user)
    db.delete(moment)
    db.commit()
    logger.info("MOMENT_DELETED moment_id=%s user_id=%s", moment_id, current_user.id)
