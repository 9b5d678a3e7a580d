# backend/personalhub/services/oidc.py
"""
OpenID Connect provider: client registration, authorization codes,
token issuance (access / ID / refresh), revocation and userinfo.
"""
import logging
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from personalhub.config import settings
from personalhub.core.exceptions import OAuthError
from personalhub.core.keys import signing_keys
from personalhub.core.security import generate_secure_token, get_password_hash, hash_token, verify_password
from personalhub.models.oauth import AuthorizationCode, OAuthApplication, RefreshToken
from personalhub.models.user import User
from personalhub.services import pkce
from personalhub.services.security_events import SecurityEventType, record_event

logger = logging.getLogger(__name__)

DEFAULT_SCOPE = "openid"
SUPPORTED_SCOPES = ["openid", "profile", "email"]
SUPPORTED_GRANT_TYPES = ["authorization_code", "refresh_token"]
SUPPORTED_CLAIMS = [
    "sub", "iss", "aud", "exp", "iat", "auth_time", "nonce", "email", "email_verified",
    "name", "preferred_username", "given_name", "family_name", "picture", "locale", "updated_at",
]


class AuthorizationRequestError(OAuthError):
    """
    Invalid /authorize request. ``redirectable`` is False when the client or
    redirect URI cannot be trusted, so the error must not be sent there.
    """

    def __init__(self, description: str, redirectable: bool = True):
        super().__init__("invalid_request", description)
        self.redirectable = redirectable


def parse_scopes(scope: Optional[str]) -> List[str]:
    if not scope or not scope.strip():
        return [DEFAULT_SCOPE]
    return scope.split()


def _epoch(moment: datetime) -> int:
    return int(moment.timestamp())


# ── Discovery ─────────────────────────────────────────────────────

def discovery_document() -> dict:
    base = settings.OIDC_BASE_URL.rstrip("/")
    return {
        "issuer": settings.OIDC_ISSUER,
        "authorization_endpoint": f"{base}/auth/authorize",
        "token_endpoint": f"{base}/auth/token",
        "userinfo_endpoint": f"{base}/auth/userinfo",
        "revocation_endpoint": f"{base}/auth/revoke",
        "jwks_uri": f"{base}/.well-known/jwks.json",
        "response_types_supported": ["code"],
        "grant_types_supported": SUPPORTED_GRANT_TYPES,
        "subject_types_supported": ["public"],
        "id_token_signing_alg_values_supported": ["RS256"],
        "scopes_supported": SUPPORTED_SCOPES,
        "token_endpoint_auth_methods_supported": ["client_secret_basic", "client_secret_post"],
        "claims_supported": SUPPORTED_CLAIMS,
        "code_challenge_methods_supported": list(pkce.SUPPORTED_METHODS),
    }


# ── Client registration ───────────────────────────────────────────

def register_application(
    db: Session,
    owner: User,
    application_name: str,
    redirect_uris: List[str],
    scopes: Optional[List[str]] = None,
    client_uri: Optional[str] = None,
) -> Tuple[OAuthApplication, str]:
    """Create a confidential client. The plain secret is only returned here."""
    unknown = [s for s in (scopes or []) if s not in SUPPORTED_SCOPES]
    if unknown:
        raise OAuthError("invalid_client_metadata", f"Unsupported scope: {unknown[0]}")

    client_secret = generate_secure_token()
    application = OAuthApplication(
        client_id=f"ph_{secrets.token_hex(12)}",
        client_secret_hash=get_password_hash(client_secret),
        application_name=application_name,
        redirect_uris=list(redirect_uris),
        scopes=list(scopes or SUPPORTED_SCOPES),
        grant_types=list(SUPPORTED_GRANT_TYPES),
        response_types=["code"],
        client_uri=client_uri,
        owner_id=owner.id,
    )
    db.add(application)
    db.commit()
    db.refresh(application)
    logger.info("OIDC_CLIENT_REGISTERED client_id=%s owner=%s", application.client_id, owner.id)
    return application, client_secret


def get_application(db: Session, client_id: Optional[str]) -> Optional[OAuthApplication]:
    if not client_id:
        return None
    return db.query(OAuthApplication).filter(OAuthApplication.client_id == client_id).first()


def authenticate_client(db: Session, client_id: Optional[str], client_secret: Optional[str]) -> OAuthApplication:
    application = get_application(db, client_id)
    if application is None or not client_secret or not verify_password(client_secret, application.client_secret_hash):
        raise OAuthError("invalid_client", "Client authentication failed", status_code=401)
    return application


# ── Authorization codes ───────────────────────────────────────────

def issue_authorization_code(
    db: Session,
    user: User,
    response_type: Optional[str],
    client_id: Optional[str],
    redirect_uri: Optional[str],
    scope: Optional[str] = None,
    state: Optional[str] = None,
    nonce: Optional[str] = None,
    code_challenge: Optional[str] = None,
    code_challenge_method: Optional[str] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> str:
    if not client_id or not client_id.strip():
        raise AuthorizationRequestError("client_id is required", redirectable=False)
    if not redirect_uri or not redirect_uri.strip():
        raise AuthorizationRequestError("redirect_uri is required", redirectable=False)

    application = get_application(db, client_id)
    if application is None:
        raise AuthorizationRequestError("Invalid client_id", redirectable=False)
    if redirect_uri not in (application.redirect_uris or []):
        raise AuthorizationRequestError("Invalid redirect_uri", redirectable=False)

    if response_type != "code":
        raise AuthorizationRequestError("Only 'code' response type is supported")

    scopes = parse_scopes(scope)
    for requested in scopes:
        if requested not in (application.scopes or []):
            raise AuthorizationRequestError(f"Invalid scope: {requested}")

    if code_challenge is not None:
        if not code_challenge.strip():
            raise AuthorizationRequestError("code_challenge is required when using PKCE")
        code_challenge_method = code_challenge_method or "plain"
        if code_challenge_method not in pkce.SUPPORTED_METHODS:
            raise AuthorizationRequestError(f"Unsupported code_challenge_method: {code_challenge_method}")
    else:
        code_challenge_method = None

    now = datetime.now()
    code = generate_secure_token()
    db.add(AuthorizationCode(
        code=code,
        client_id=client_id,
        user_id=user.id,
        redirect_uri=redirect_uri,
        scopes=scopes,
        code_challenge=code_challenge,
        code_challenge_method=code_challenge_method,
        nonce=nonce,
        state=state,
        auth_time=now,
        expires_at=now + timedelta(seconds=settings.OIDC_AUTHORIZATION_CODE_TTL),
    ))
    record_event(
        db, SecurityEventType.AUTHORIZATION_CODE_ISSUED, True,
        user_id=user.id, client_id=client_id, ip_address=ip_address, user_agent=user_agent,
    )
    db.commit()
    return code


def consume_authorization_code(
    db: Session,
    code: str,
    client_id: str,
    redirect_uri: str,
    code_verifier: Optional[str],
) -> Optional[AuthorizationCode]:
    """Validate and mark the code used. Returns None when it cannot be redeemed."""
    auth_code = db.query(AuthorizationCode).filter(AuthorizationCode.code == code).first()
    if auth_code is None:
        logger.warning("OIDC_CODE_UNKNOWN client_id=%s", client_id)
        return None

    if not auth_code.is_valid():
        record_event(
            db, SecurityEventType.AUTHORIZATION_CODE_EXPIRED, False,
            user_id=auth_code.user_id, client_id=client_id,
            error_code="invalid_grant", error_description="Authorization code is invalid or expired",
        )
        db.commit()
        return None

    if auth_code.client_id != client_id:
        logger.warning("OIDC_CODE_CLIENT_MISMATCH client_id=%s", client_id)
        return None
    if auth_code.redirect_uri != redirect_uri:
        logger.warning("OIDC_CODE_REDIRECT_MISMATCH client_id=%s", client_id)
        return None

    if auth_code.code_challenge is not None:
        if not code_verifier:
            logger.warning("OIDC_PKCE_VERIFIER_MISSING client_id=%s", client_id)
            return None
        if not pkce.verify_code_challenge(code_verifier, auth_code.code_challenge, auth_code.code_challenge_method):
            logger.warning("OIDC_PKCE_FAILED client_id=%s", client_id)
            return None

    auth_code.used = True
    record_event(
        db, SecurityEventType.AUTHORIZATION_CODE_USED, True,
        user_id=auth_code.user_id, client_id=client_id,
    )
    db.commit()
    return auth_code


# ── Token generation ──────────────────────────────────────────────

def generate_access_token(user: User, client_id: str, scopes: List[str]) -> str:
    now = datetime.now(timezone.utc)
    return signing_keys.sign({
        "iss": settings.OIDC_ISSUER,
        "sub": user.email,
        "aud": client_id,
        "exp": _epoch(now + timedelta(seconds=settings.OIDC_ACCESS_TOKEN_TTL)),
        "iat": _epoch(now),
        "nbf": _epoch(now),
        "jti": str(uuid.uuid4()),
        "scope": " ".join(scopes),
        "client_id": client_id,
        "email": user.email,
        "email_verified": bool(user.email_verified),
        "user_id": str(user.id),
    })


def generate_user_token(user: User) -> str:
    """RS256 token for first-party sessions created through social login."""
    now = datetime.now(timezone.utc)
    return signing_keys.sign({
        "iss": settings.OIDC_ISSUER,
        "sub": user.email,
        "exp": _epoch(now + timedelta(seconds=settings.OIDC_ACCESS_TOKEN_TTL)),
        "iat": _epoch(now),
        "nbf": _epoch(now),
        "jti": str(uuid.uuid4()),
        "email": user.email,
        "email_verified": bool(user.email_verified),
        "user_id": str(user.id),
    })


def generate_id_token(user: User, client_id: str, nonce: Optional[str], auth_time: datetime) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "iss": settings.OIDC_ISSUER,
        "sub": user.email,
        "aud": client_id,
        "exp": _epoch(now + timedelta(seconds=settings.OIDC_ID_TOKEN_TTL)),
        "iat": _epoch(now),
        "auth_time": _epoch(auth_time),
        "email": user.email,
        "email_verified": bool(user.email_verified),
        "name": user.username,
        "preferred_username": user.email,
        "user_id": str(user.id),
    }
    optional = {
        "given_name": user.given_name,
        "family_name": user.family_name,
        "picture": user.profile_picture_url,
        "locale": user.locale,
        "nonce": nonce,
    }
    claims.update({k: v for k, v in optional.items() if v is not None})
    return signing_keys.sign(claims)


def _store_refresh_token(db: Session, user: User, client_id: str, scopes: List[str]) -> str:
    value = str(uuid.uuid4())
    db.add(RefreshToken(
        token_hash=hash_token(value),
        user_id=user.id,
        client_id=client_id,
        scopes=list(scopes),
        expires_at=datetime.now() + timedelta(seconds=settings.OIDC_REFRESH_TOKEN_TTL),
    ))
    return value


def _token_response(access_token: str, refresh_token: str, scopes: List[str], id_token: Optional[str] = None) -> dict:
    body = {
        "access_token": access_token,
        "token_type": "Bearer",
        "expires_in": settings.OIDC_ACCESS_TOKEN_TTL,
        "refresh_token": refresh_token,
        "scope": " ".join(scopes),
    }
    if id_token:
        body["id_token"] = id_token
    return body


# ── Token endpoint ────────────────────────────────────────────────

def exchange_token(
    db: Session,
    application: OAuthApplication,
    grant_type: Optional[str],
    code: Optional[str] = None,
    redirect_uri: Optional[str] = None,
    code_verifier: Optional[str] = None,
    refresh_token: Optional[str] = None,
    ip_address: Optional[str] = None,
) -> dict:
    if grant_type == "authorization_code":
        return _authorization_code_grant(db, application, code, redirect_uri, code_verifier)
    if grant_type == "refresh_token":
        return _refresh_token_grant(db, application, refresh_token, ip_address)
    raise OAuthError("unsupported_grant_type", f"Unsupported grant type: {grant_type}")


def _authorization_code_grant(
    db: Session,
    application: OAuthApplication,
    code: Optional[str],
    redirect_uri: Optional[str],
    code_verifier: Optional[str],
) -> dict:
    if not code or not redirect_uri:
        raise OAuthError("invalid_request", "Missing required parameters for authorization_code grant")

    auth_code = consume_authorization_code(db, code, application.client_id, redirect_uri, code_verifier)
    if auth_code is None:
        raise OAuthError("invalid_grant", "Invalid authorization code")

    user = auth_code.user
    scopes = list(auth_code.scopes or [])
    access_token = generate_access_token(user, application.client_id, scopes)
    refresh_value = _store_refresh_token(db, user, application.client_id, scopes)
    id_token = None
    if "openid" in scopes:
        id_token = generate_id_token(user, application.client_id, auth_code.nonce, auth_code.auth_time)
    db.commit()

    logger.info("OIDC_TOKENS_ISSUED user_id=%s client_id=%s scopes=%s", user.id, application.client_id, scopes)
    return _token_response(access_token, refresh_value, scopes, id_token)


def _refresh_token_grant(
    db: Session,
    application: OAuthApplication,
    refresh_token: Optional[str],
    ip_address: Optional[str],
) -> dict:
    if not refresh_token:
        raise OAuthError("invalid_request", "Missing refresh_token parameter")

    stored = db.query(RefreshToken).filter(RefreshToken.token_hash == hash_token(refresh_token)).first()
    if stored is None or not stored.is_valid() or stored.client_id != application.client_id:
        raise OAuthError("invalid_grant", "Invalid refresh token")

    user = stored.user
    scopes = list(stored.scopes or [])
    stored.revoke()
    access_token = generate_access_token(user, application.client_id, scopes)
    new_refresh = _store_refresh_token(db, user, application.client_id, scopes)
    record_event(
        db, SecurityEventType.TOKEN_REFRESH, True,
        user_id=user.id, client_id=application.client_id, ip_address=ip_address,
    )
    db.commit()
    return _token_response(access_token, new_refresh, scopes)


def revoke_token(
    db: Session,
    token: str,
    token_type_hint: Optional[str],
    client_id: Optional[str],
    ip_address: Optional[str] = None,
) -> bool:
    """
    Revoke a refresh token issued to ``client_id``. Access tokens are
    self-contained and simply expire. Returns True when something was revoked.
    """
    if token_type_hint not in (None, "", "refresh_token"):
        return False

    stored = db.query(RefreshToken).filter(RefreshToken.token_hash == hash_token(token)).first()
    if stored is None or (client_id and stored.client_id != client_id) or stored.revoked:
        return False

    stored.revoke()
    record_event(
        db, SecurityEventType.TOKEN_REVOKE, True,
        user_id=stored.user_id, client_id=stored.client_id, ip_address=ip_address,
    )
    db.commit()
    return True


# ── Userinfo ──────────────────────────────────────────────────────

def userinfo_claims(user: User, scopes: List[str]) -> dict:
    claims = {"sub": user.email}
    if "profile" in scopes:
        profile = {
            "name": user.username,
            "preferred_username": user.email,
            "given_name": user.given_name,
            "family_name": user.family_name,
            "picture": user.profile_picture_url,
            "locale": user.locale,
            "updated_at": _epoch(user.updated_at) if user.updated_at else None,
        }
        claims.update({k: v for k, v in profile.items() if v is not None})
    if "email" in scopes:
        claims["email"] = user.email
        claims["email_verified"] = bool(user.email_verified)
    return claims
