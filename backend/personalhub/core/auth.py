# backend/personalhub/core/auth.py
import logging
from typing import Optional, Tuple

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from personalhub.core.database import get_db
from personalhub.core.keys import signing_keys
from personalhub.core.security import ACCESS_TOKEN_TYPE, decode_session_token
from personalhub.models.user import User

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_client_ip(request: Request) -> str:
    forwarded_for = request.headers.get("x-forwarded-for", "").split(",")[0].strip()
    if forwarded_for:
        return forwarded_for
    real_ip = request.headers.get("x-real-ip", "").strip()
    if real_ip:
        return real_ip
    return request.client.host if request.client else "unknown"


def request_meta(request: Request) -> Tuple[str, str]:
    return get_client_ip(request), request.headers.get("user-agent", "unknown")


def decode_bearer_token(token: str) -> dict:
    """
    Accept both token families: RS256 tokens signed by our OIDC key and
    HS256 first-party session tokens. Raises ``jwt.InvalidTokenError``.
    """
    header = jwt.get_unverified_header(token)
    if header.get("alg") == "RS256":
        return signing_keys.verify(token)
    return decode_session_token(token, ACCESS_TOKEN_TYPE)


def _credentials_exception(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the bearer token to an enabled user (token subject is the email)."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise _credentials_exception("Not authenticated")

    try:
        payload = decode_bearer_token(credentials.credentials)
    except jwt.InvalidTokenError as exc:
        logger.info("AUTH_TOKEN_REJECTED reason=%s", exc)
        raise _credentials_exception()

    email = payload.get("sub")
    if not email:
        raise _credentials_exception()

    user = db.query(User).filter(User.email == email).first()
    if user is None or not user.enabled:
        raise _credentials_exception()
    return user
