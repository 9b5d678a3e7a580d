# backend/personalhub/routers/auth.py
from personalhub.core.auth import get_current_user, request_meta
from datetime import datetime
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field
from typing import Optional
import logging
import uuid
import jwt
from personalhub.core.database import get_db
from personalhub.core.exceptions import AccountLockedError, AuthenticationError
from personalhub.core.security import (
    REFRESH_TOKEN_TYPE, create_access_token, create_refresh_token, decode_session_token,
)
from personalhub.models.user import User
from personalhub.services import password_reset, users as user_service
from personalhub.services import oidc
from personalhub.services.email.base import EmailService
from personalhub.services.email.sender import deliver_password_reset, deliver_welcome, get_email_service
from personalhub.services.security_events import SecurityEventType, failed_attempts, record_event
from personalhub.services.social_login import github_oauth, oauth_states

router = APIRouter()
logger = logging.getLogger(__name__)

FORGOT_PASSWORD_MESSAGE = "If an account exists for that email, a password reset link has been sent."

# ── Request / Response models ─────────────────────────────────────

class UserRegister(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=8)
    username: str = Field(..., min_length=1, max_length=100)

class UserLogin(BaseModel):
    email: str
    password: str

class RefreshRequest(BaseModel):
    refresh_token: str

class UserResponse(BaseModel):
    id: uuid.UUID
    email: str
    username: str
    enabled: bool
    email_verified: bool
    profile_picture_url: Optional[str] = None
    given_name: Optional[str] = None
    family_name: Optional[str] = None
    locale: Optional[str] = None
    week_start_day: int
    last_login_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class AuthResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserResponse

class ForgotPasswordRequest(BaseModel):
    email: str

class ResetPasswordRequest(BaseModel):
    token: str
    new_password: str = Field(..., min_length=8)

class MessageResponse(BaseModel):
    message: str

class TokenValidationResponse(BaseModel):
    valid: bool

class SocialAuthorizeResponse(BaseModel):
    authorization_url: str
    state: str
    provider: str

class SocialCallbackRequest(BaseModel):
    code: Optional[str] = None
    state: Optional[str] = None
    error: Optional[str] = None
    error_description: Optional[str] = None

# ── Helper ────────────────────────────────────────────────────────

def _session_tokens(user: User) -> dict:
    return {
        "access_token": create_access_token(user.email),
        "refresh_token": create_refresh_token(user.email),
        "token_type": "bearer",
        "user": user,
    }

# ── Public: registration / login ──────────────────────────────────

@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserRegister,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
):
    """Create an account and sign in straight away."""
    user = user_service.create_user(db, user_data.email, user_data.password, user_data.username.strip())
    background_tasks.add_task(deliver_welcome, email_service, user.email, user.username)
    return _session_tokens(user)

@router.post("/login", response_model=AuthResponse)
async def login(credentials: UserLogin, request: Request, db: Session = Depends(get_db)):
    """Login and get a token pair"""
    client_ip, user_agent = request_meta(request)
    if failed_attempts.is_locked(client_ip):
        logger.warning("AUTH_LOGIN_BLOCKED email=%s ip=%s reason=locked", credentials.email, client_ip)
        raise AccountLockedError("Too many failed login attempts. Please try again later.")

    try:
        user = user_service.authenticate(db, credentials.email, credentials.password)
    except AuthenticationError as exc:
        attempts = failed_attempts.record_failure(client_ip)
        record_event(
            db, SecurityEventType.LOGIN_FAILURE, False,
            ip_address=client_ip, user_agent=user_agent,
            error_code="invalid_credentials", error_description=exc.message,
            metadata={"email": credentials.email, "attempts": attempts},
        )
        db.commit()
        logger.warning(
            "AUTH_LOGIN_FAILED email=%s ip=%s user_agent=%s attempts=%s",
            credentials.email,
            client_ip,
            user_agent,
            attempts,
        )
        raise

    failed_attempts.record_success(client_ip)
    record_event(
        db, SecurityEventType.LOGIN_SUCCESS, True,
        user_id=user.id, ip_address=client_ip, user_agent=user_agent,
    )
    user_service.mark_login(db, user, client_ip)

    logger.info(
        "AUTH_LOGIN_SUCCESS user_id=%s email=%s ip=%s user_agent=%s",
        user.id,
        user.email,
        client_ip,
        user_agent,
    )
    return _session_tokens(user)

@router.post("/refresh", response_model=AuthResponse)
async def refresh(data: RefreshRequest, db: Session = Depends(get_db)):
    """Trade a refresh token for a new token pair"""
    try:
        payload = decode_session_token(data.refresh_token, REFRESH_TOKEN_TYPE)
    except jwt.InvalidTokenError:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid refresh token")

    user = user_service.find_by_email(db, payload.get("sub", ""))
    if user is None or not user.enabled:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid refresh token")

    record_event(db, SecurityEventType.TOKEN_REFRESH, True, user_id=user.id)
    db.commit()
    return _session_tokens(user)

@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Logout audit endpoint (JWTs stay valid until they expire)."""
    client_ip, user_agent = request_meta(request)
    current_user.last_logout_at = datetime.now()
    record_event(
        db, SecurityEventType.LOGOUT, True,
        user_id=current_user.id, ip_address=client_ip, user_agent=user_agent,
    )
    db.commit()

    logger.info("AUTH_LOGOUT user_id=%s email=%s ip=%s", current_user.id, current_user.email, client_ip)
    return {"message": "Logged out successfully"}

# ── Authenticated: current user ───────────────────────────────────

@router.get("/me", response_model=UserResponse)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    """Get current user information"""
    return current_user

# ── Public: password reset ────────────────────────────────────────

@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    data: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
):
    """
    Always answers with the same message so the endpoint cannot be used to
    discover which emails are registered.
    """
    token = password_reset.request_reset(db, data.email)
    if token is not None:
        background_tasks.add_task(
            deliver_password_reset, email_service, user_service.normalize_email(data.email), token
        )
    return {"message": FORGOT_PASSWORD_MESSAGE}

@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(data: ResetPasswordRequest, request: Request, db: Session = Depends(get_db)):
    client_ip, user_agent = request_meta(request)
    user = password_reset.reset_password(db, data.token, data.new_password)
    record_event(
        db, SecurityEventType.PASSWORD_RESET, True,
        user_id=user.id, ip_address=client_ip, user_agent=user_agent,
    )
    db.commit()
    return {"message": "Password has been reset successfully"}

@router.get("/validate-reset-token", response_model=TokenValidationResponse)
async def validate_reset_token(token: str, db: Session = Depends(get_db)):
    return {"valid": password_reset.is_token_valid(db, token)}

# ── Public: GitHub login ──────────────────────────────────────────

@router.get("/oidc/github/authorize", response_model=SocialAuthorizeResponse)
async def github_authorize():
    """Start a GitHub login: the frontend redirects the browser to the returned URL."""
    state = oauth_states.generate(github_oauth.provider)
    return {
        "authorization_url": github_oauth.authorization_url(state),
        "state": state,
        "provider": github_oauth.provider,
    }

@router.post("/oidc/github/callback", response_model=AuthResponse)
async def github_callback(data: SocialCallbackRequest, request: Request, db: Session = Depends(get_db)):
    client_ip, user_agent = request_meta(request)
    if data.error:
        logger.warning("AUTH_SOCIAL_PROVIDER_ERROR provider=github error=%s", data.error)
        raise HTTPException(
            status.HTTP_400_BAD_REQUEST,
            f"GitHub authorization failed: {data.error_description or data.error}",
        )
    if oauth_states.consume(data.state) != github_oauth.provider:
        logger.warning("AUTH_SOCIAL_STATE_INVALID provider=github ip=%s", client_ip)
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Invalid or expired state parameter")
    if not data.code:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Authorization code is required")

    profile, email = await github_oauth.fetch_identity(data.code)
    user = github_oauth.link_account(db, profile, email)
    if not user.enabled:
        raise AuthenticationError("Account is disabled")

    record_event(
        db, SecurityEventType.SOCIAL_LOGIN, True,
        user_id=user.id, ip_address=client_ip, user_agent=user_agent,
        metadata={"provider": github_oauth.provider},
    )
    user_service.mark_login(db, user, client_ip)
    logger.info("AUTH_SOCIAL_LOGIN_SUCCESS provider=github user_id=%s email=%s", user.id, user.email)

    return {
        "access_token": oidc.generate_user_token(user),
        "refresh_token": create_refresh_token(user.email),
        "token_type": "bearer",
        "user": user,
    }
