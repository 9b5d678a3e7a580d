# backend/personalhub/routers/oauth_clients.py
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from personalhub.core.auth import get_current_user
from personalhub.core.database import get_db
from personalhub.models.oauth import OAuthApplication
from personalhub.models.user import User
from personalhub.services import oidc

router = APIRouter()


# ── Request / Response models ─────────────────────────────────────

class ApplicationCreate(BaseModel):
    application_name: str = Field(..., min_length=1, max_length=255)
    redirect_uris: List[str] = Field(..., min_length=1)
    scopes: Optional[List[str]] = None      # default: all supported scopes
    client_uri: Optional[str] = None


class ApplicationResponse(BaseModel):
    client_id: str
    application_name: str
    redirect_uris: List[str]
    scopes: List[str]
    grant_types: List[str]
    response_types: List[str]
    application_type: str
    client_uri: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ApplicationCreatedResponse(ApplicationResponse):
    client_secret: str     # shown once, only the hash is stored


# ── Endpoints ─────────────────────────────────────────────────────

@router.post("/applications", response_model=ApplicationCreatedResponse, status_code=status.HTTP_201_CREATED)
async def register_application(
    data: ApplicationCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    application, client_secret = oidc.register_application(
        db,
        current_user,
        application_name=data.application_name,
        redirect_uris=data.redirect_uris,
        scopes=data.scopes,
        client_uri=data.client_uri,
    )
    body = ApplicationResponse.model_validate(application).model_dump()
    body["client_secret"] = client_secret
    return body


@router.get("/applications", response_model=List[ApplicationResponse])
async def list_applications(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return (
        db.query(OAuthApplication)
        .filter(OAuthApplication.owner_id == current_user.id)
        .order_by(OAuthApplication.created_at)
        .all()
    )
