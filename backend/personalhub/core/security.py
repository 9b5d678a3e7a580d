# backend/personalhub/core/security.py
from datetime import datetime, timedelta, timezone
from typing import Optional
import base64
import hashlib
import secrets
import uuid

import bcrypt
import jwt

from personalhub.config import settings

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


# ── Passwords ─────────────────────────────────────────────────────

def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    return bcrypt.checkpw(plain_password.encode("utf-8"), password_hash.encode("utf-8"))


# ── Opaque tokens ─────────────────────────────────────────────────

def generate_secure_token(num_bytes: int = 32) -> str:
    """URL-safe base64 of random bytes, without padding."""
    return base64.urlsafe_b64encode(secrets.token_bytes(num_bytes)).rstrip(b"=").decode("ascii")


def hash_token(token: str) -> str:
    """Deterministic digest used to look up stored refresh tokens."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


# ── Session JWTs (HS256) ──────────────────────────────────────────

def _encode_session_token(subject: str, token_type: str, expires_delta: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": subject,
        "type": token_type,
        "iat": now,
        "exp": now + expires_delta,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_access_token(subject: str, expires_delta: Optional[timedelta] = None) -> str:
    return _encode_session_token(
        subject,
        ACCESS_TOKEN_TYPE,
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def create_refresh_token(subject: str, expires_delta: Optional[timedelta] = None) -> str:
    return _encode_session_token(
        subject,
        REFRESH_TOKEN_TYPE,
        expires_delta or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )


def decode_session_token(token: str, expected_type: str) -> dict:
    """Verify an HS256 session token. Raises ``jwt.InvalidTokenError``."""
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    if payload.get("type") != expected_type:
        raise jwt.InvalidTokenError(f"expected a {expected_type} token")
    return payload
