# backend/personalhub/routers/users.py
"""
Account management. Every endpoint acts on the caller's own account;
a different user id is answered with 403.
"""
from datetime import datetime
from typing import List, Optional
import uuid

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from personalhub.core.auth import get_current_user
from personalhub.core.database import get_db
from personalhub.models.user import User
from personalhub.routers.auth import UserResponse
from personalhub.services import users as user_service
from personalhub.services.security_events import recent_events

router = APIRouter()


# ── Request / Response models ─────────────────────────────────────

class UserUpdate(BaseModel):
    username: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = Field(None, max_length=255)
    current_password: Optional[str] = None   # required when the account has a password

class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8)

class WeekStartDayUpdate(BaseModel):
    week_start_day: int = Field(..., ge=0, le=6)   # 0 = Sunday

class SecurityEventResponse(BaseModel):
    id: int
    event_type: str
    client_id: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    success: bool
    error_code: Optional[str] = None
    error_description: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


# ── Security events (declared before /{user_id}) ──────────────────

@router.get("/me/security-events", response_model=List[SecurityEventResponse])
async def my_security_events(
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Most recent authentication events for the caller."""
    return recent_events(db, current_user.id, limit)


# ── Account ───────────────────────────────────────────────────────

@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return user_service.get_owned_user(db, user_id, current_user)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: uuid.UUID,
    data: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user = user_service.get_owned_user(db, user_id, current_user)
    return user_service.update_profile(db, user, data.username, data.email, data.current_password)


@router.put("/{user_id}/password", status_code=status.HTTP_204_NO_CONTENT)
async def change_password(
    user_id: uuid.UUID,
    data: PasswordChange,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user = user_service.get_owned_user(db, user_id, current_user)
    user_service.change_password(db, user, data.current_password, data.new_password)


@router.put("/{user_id}/week-start-day", response_model=UserResponse)
async def update_week_start_day(
    user_id: uuid.UUID,
    data: WeekStartDayUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user = user_service.get_owned_user(db, user_id, current_user)
    return user_service.set_week_start_day(db, user, data.week_start_day)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user = user_service.get_owned_user(db, user_id, current_user)
    user_service.delete_user(db, user)
