# backend/personalhub/routers/notes.py
from datetime import datetime
from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from personalhub.core.auth import get_current_user
from personalhub.core.database import get_db
from personalhub.core.exceptions import NotFoundError
from personalhub.core.pagination import Page, apply_sort, paginate
from personalhub.models.note import Note, join_tags
from personalhub.models.user import User

router = APIRouter()
logger = logging.getLogger(__name__)

SORTABLE_FIELDS = ("id", "title", "created_at", "updated_at")

# ── Request / Response models ─────────────────────────────────────

class NoteCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: Optional[str] = None
    tags: List[str] = []

class NoteUpdate(BaseModel):
    """Partial update: omitted fields are left unchanged."""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    content: Optional[str] = None
    tags: Optional[List[str]] = None

class NoteResponse(BaseModel):
    id: int
    title: str
    content: Optional[str] = None
    tags: List[str] = Field(default_factory=list, validation_alias="tag_list")
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

# ── Helper ────────────────────────────────────────────────────────

def _get_owned_note(db: Session, note_id: int, user: User) -> Note:
    note = db.query(Note).filter(Note.id == note_id, Note.user_id == user.id).first()
    if note is None:
        raise NotFoundError(f"Note not found with id: {note_id}")
    return note

def _user_notes(db: Session, user: User):
    return db.query(Note).filter(Note.user_id == user.id)

# ── Collection ────────────────────────────────────────────────────

@router.post("", response_model=NoteResponse, status_code=status.HTTP_201_CREATED)
async def create_note(
    data: NoteCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    note = Note(
        user_id=current_user.id,
        title=data.title,
        content=data.content,
        tags=join_tags(data.tags),
    )
    db.add(note)
    db.commit()
    db.refresh(note)
    logger.info("NOTE_CREATED note_id=%s user_id=%s", note.id, current_user.id)
    return note

@router.get("", response_model=Page[NoteResponse])
async def list_notes(
    page: int = Query(0, ge=0),
    size: int = Query(10, ge=1, le=100),
    sort: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = apply_sort(_user_notes(db, current_user), Note, sort, SORTABLE_FIELDS, "created_at,desc")
    return paginate(query, page, size)

@router.get("/search", response_model=List[NoteResponse])
async def search_notes(
    query: str = Query(..., min_length=1),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Case-insensitive match on title or content."""
    needle = query.lower()
    return (
        _user_notes(db, current_user)
        .filter(or_(
            func.lower(Note.title).contains(needle, autoescape=True),
            func.lower(Note.content).contains(needle, autoescape=True),
        ))
        .order_by(Note.created_at.desc(), Note.id.desc())
        .all()
    )

@router.get("/tag/{tag}", response_model=List[NoteResponse])
async def notes_by_tag(
    tag: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    # Tags are stored as CSV: narrow in SQL, then match exact tags
    candidates = (
        _user_notes(db, current_user)
        .filter(func.lower(Note.tags).contains(tag.lower(), autoescape=True))
        .order_by(Note.created_at.desc(), Note.id.desc())
        .all()
    )
    wanted = tag.strip().lower()
    return [n for n in candidates if any(t.lower() == wanted for t in n.tag_list)]

# ── Single note ───────────────────────────────────────────────────

@router.get("/{note_id}", response_model=NoteResponse)
async def get_note(
    note_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _get_owned_note(db, note_id, current_user)

@router.put("/{note_id}", response_model=NoteResponse)
async def update_note(
    note_id: int,
    data: NoteUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    note = _get_owned_note(db, note_id, current_user)
    if data.title is not None:
        note.title = data.title
    if data.content is not None:
        note.content = data.content
    if data.tags is not None:
        note.tags = join_tags(data.tags)
    db.commit()
    db.refresh(note)
    return note

@router.delete("/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_note(
    note_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    note = _get_owned_note(db, note_id, current_user)
    db.delete(note)
    db.commit()
    logger.info("NOTE_DELETED note_id=%s user_id=%s", note_id, current_user.id)
