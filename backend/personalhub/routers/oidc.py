# backend/personalhub/routers/oidc.py
"""
OpenID Connect provider endpoints.

Mounted at the application root: discovery under ``/.well-known`` and the
protocol endpoints under ``/auth``.
"""
from typing import Optional, Tuple
from urllib.parse import urlencode
import logging

import jwt
from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBasic, HTTPBasicCredentials
from pydantic import BaseModel
from sqlalchemy.orm import Session

from personalhub.core.auth import bearer_scheme, get_current_user, request_meta
from personalhub.core.database import get_db
from personalhub.core.exceptions import OAuthError
from personalhub.core.keys import signing_keys
from personalhub.models.user import User
from personalhub.services import oidc
from personalhub.services.oidc import AuthorizationRequestError
from personalhub.services.users import find_by_email

router = APIRouter()
logger = logging.getLogger(__name__)

basic_scheme = HTTPBasic(auto_error=False)

# ── Request / Response models ─────────────────────────────────────

class AuthorizeRequest(BaseModel):
    response_type: Optional[str] = None
    client_id: Optional[str] = None
    redirect_uri: Optional[str] = None
    scope: Optional[str] = None
    state: Optional[str] = None
    nonce: Optional[str] = None
    code_challenge: Optional[str] = None
    code_challenge_method: Optional[str] = None

class AuthorizeResponse(BaseModel):
    code: str
    state: Optional[str] = None
    redirect_uri: str

# ── Helper ────────────────────────────────────────────────────────

def _redirect_with(redirect_uri: str, params: dict) -> RedirectResponse:
    query = urlencode({k: v for k, v in params.items() if v is not None})
    separator = "&" if "?" in redirect_uri else "?"
    return RedirectResponse(f"{redirect_uri}{separator}{query}", status_code=status.HTTP_302_FOUND)

def _client_credentials(
    basic: Optional[HTTPBasicCredentials],
    client_id: Optional[str],
    client_secret: Optional[str],
) -> Tuple[Optional[str], Optional[str]]:
    """client_secret_basic wins over client_secret_post."""
    if basic is not None:
        return basic.username, basic.password
    return client_id, client_secret

# ── Discovery ─────────────────────────────────────────────────────

@router.get("/.well-known/openid-configuration")
async def openid_configuration():
    return oidc.discovery_document()

@router.get("/.well-known/jwks.json")
async def jwks():
    return signing_keys.get_jwks()

# ── Authorization endpoint ────────────────────────────────────────

@router.get("/auth/authorize")
async def authorize(
    request: Request,
    response_type: Optional[str] = None,
    client_id: Optional[str] = None,
    redirect_uri: Optional[str] = None,
    scope: Optional[str] = None,
    state: Optional[str] = None,
    nonce: Optional[str] = None,
    code_challenge: Optional[str] = None,
    code_challenge_method: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Issue an authorization code and send the browser back to the client.
    Errors go back to the client too, unless the client or its redirect URI
    could not be verified, in which case they are returned here as JSON.
    """
    client_ip, user_agent = request_meta(request)
    try:
        code = oidc.issue_authorization_code(
            db,
            current_user,
            response_type=response_type,
            client_id=client_id,
            redirect_uri=redirect_uri,
            scope=scope,
            state=state,
            nonce=nonce,
            code_challenge=code_challenge,
            code_challenge_method=code_challenge_method,
            ip_address=client_ip,
            user_agent=user_agent,
        )
    except AuthorizationRequestError as exc:
        if not exc.redirectable:
            raise
        logger.info("OIDC_AUTHORIZE_REJECTED client_id=%s reason=%s", client_id, exc.description)
        return _redirect_with(redirect_uri, {
            "error": exc.error,
            "error_description": exc.description,
            "state": state,
        })

    logger.info("OIDC_CODE_ISSUED user_id=%s client_id=%s", current_user.id, client_id)
    return _redirect_with(redirect_uri, {"code": code, "state": state})

@router.post("/auth/authorize", response_model=AuthorizeResponse)
async def authorize_json(
    data: AuthorizeRequest,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Same as GET, for single-page apps that handle the redirect themselves."""
    client_ip, user_agent = request_meta(request)
    code = oidc.issue_authorization_code(
        db,
        current_user,
        ip_address=client_ip,
        user_agent=user_agent,
        **data.model_dump(),
    )
    return {"code": code, "state": data.state, "redirect_uri": data.redirect_uri}

# ── Token endpoint ────────────────────────────────────────────────

@router.post("/auth/token")
async def token(
    request: Request,
    grant_type: Optional[str] = Form(None),
    code: Optional[str] = Form(None),
    redirect_uri: Optional[str] = Form(None),
    code_verifier: Optional[str] = Form(None),
    refresh_token: Optional[str] = Form(None),
    client_id: Optional[str] = Form(None),
    client_secret: Optional[str] = Form(None),
    basic: Optional[HTTPBasicCredentials] = Depends(basic_scheme),
    db: Session = Depends(get_db),
):
    client_ip, _ = request_meta(request)
    if not grant_type:
        raise OAuthError("invalid_request", "grant_type is required")

    resolved_id, resolved_secret = _client_credentials(basic, client_id, client_secret)
    application = oidc.authenticate_client(db, resolved_id, resolved_secret)
    body = oidc.exchange_token(
        db,
        application,
        grant_type,
        code=code,
        redirect_uri=redirect_uri,
        code_verifier=code_verifier,
        refresh_token=refresh_token,
        ip_address=client_ip,
    )
    return JSONResponse(body, headers={"Cache-Control": "no-store", "Pragma": "no-cache"})

@router.post("/auth/revoke")
async def revoke(
    request: Request,
    token: Optional[str] = Form(None),
    token_type_hint: Optional[str] = Form(None),
    client_id: Optional[str] = Form(None),
    client_secret: Optional[str] = Form(None),
    basic: Optional[HTTPBasicCredentials] = Depends(basic_scheme),
    db: Session = Depends(get_db),
):
    """RFC 7009: answers 200 whether or not the token was known."""
    client_ip, _ = request_meta(request)
    resolved_id, resolved_secret = _client_credentials(basic, client_id, client_secret)
    if resolved_id:
        oidc.authenticate_client(db, resolved_id, resolved_secret)
    if token:
        oidc.revoke_token(db, token, token_type_hint, resolved_id, client_ip)
    return JSONResponse({}, status_code=status.HTTP_200_OK)

# ── UserInfo endpoint ─────────────────────────────────────────────

async def _userinfo(credentials: Optional[HTTPAuthorizationCredentials], db: Session) -> dict:
    if credentials is None:
        raise OAuthError("invalid_token", "Bearer token required", status_code=status.HTTP_401_UNAUTHORIZED)
    try:
        claims = signing_keys.verify(credentials.credentials)
    except jwt.InvalidTokenError as exc:
        logger.info("OIDC_USERINFO_TOKEN_REJECTED reason=%s", exc)
        raise OAuthError("invalid_token", "Invalid access token", status_code=status.HTTP_401_UNAUTHORIZED)

    user = find_by_email(db, claims.get("sub", ""))
    if user is None or not user.enabled:
        raise OAuthError("invalid_token", "Unknown subject", status_code=status.HTTP_401_UNAUTHORIZED)
    return oidc.userinfo_claims(user, oidc.parse_scopes(claims.get("scope")))

@router.get("/auth/userinfo")
async def userinfo(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
):
    return await _userinfo(credentials, db)

@router.post("/auth/userinfo")
async def userinfo_post(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
):
    return await _userinfo(credentials, db)
