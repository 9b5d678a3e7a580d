# backend/personalhub/services/social_login.py
import logging
import secrets
import threading
import time
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Tuple
from urllib.parse import urlencode

import httpx
from sqlalchemy.orm import Session

from personalhub.config import settings
from personalhub.core.exceptions import AuthenticationError
from personalhub.models.user import User, UserSocialAccount
from personalhub.services.users import find_by_email, normalize_email

logger = logging.getLogger(__name__)

GITHUB_AUTH_URL = "https://github.com/login/oauth/authorize"
GITHUB_TOKEN_URL = "https://github.com/login/oauth/access_token"
GITHUB_USER_URL = "https://api.github.com/user"
GITHUB_USER_EMAILS_URL = "https://api.github.com/user/emails"

_GITHUB_TIMEOUT = httpx.Timeout(connect=5.0, read=15.0, write=15.0, pool=5.0)


class OAuthStateStore:
    """One-time OAuth ``state`` values with a short TTL, remembering the provider."""

    def __init__(self, ttl_seconds: int = 600, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._states: Dict[str, Tuple[str, float]] = {}
        self._lock = threading.Lock()

    def generate(self, provider: str) -> str:
        state = secrets.token_urlsafe(32)
        with self._lock:
            self._purge()
            self._states[state] = (provider, self._clock() + self.ttl_seconds)
        return state

    def consume(self, state: Optional[str]) -> Optional[str]:
        """Return the provider the state was issued for, or None. A state works once."""
        if not state:
            return None
        with self._lock:
            entry = self._states.pop(state, None)
        if entry is None:
            return None
        provider, expires_at = entry
        if self._clock() > expires_at:
            return None
        return provider

    def _purge(self):
        now = self._clock()
        for key in [k for k, (_, exp) in self._states.items() if exp < now]:
            del self._states[key]


class GitHubOAuthService:
    """GitHub OAuth login: code exchange, profile lookup, local account linking"""

    provider = "github"

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._transport = transport

    def authorization_url(self, state: str) -> str:
        query = urlencode({
            "client_id": settings.GITHUB_CLIENT_ID,
            "redirect_uri": settings.GITHUB_REDIRECT_URI,
            "scope": "read:user user:email",
            "state": state,
        })
        return f"{GITHUB_AUTH_URL}?{query}"

    async def fetch_identity(self, code: str) -> Tuple[Dict[str, Any], Optional[str]]:
        """Exchange the code and return (GitHub profile, primary email)."""
        async with httpx.AsyncClient(timeout=_GITHUB_TIMEOUT, transport=self._transport) as client:
            try:
                access_token = await self._exchange_code(client, code)
                headers = {
                    "Authorization": f"Bearer {access_token}",
                    "Accept": "application/vnd.github.v3+json",
                }
                profile_resp = await client.get(GITHUB_USER_URL, headers=headers)
                profile_resp.raise_for_status()
                emails_resp = await client.get(GITHUB_USER_EMAILS_URL, headers=headers)
                emails_resp.raise_for_status()
            except httpx.HTTPError as exc:
                logger.error("GITHUB_API_ERROR error=%s", exc)
                raise AuthenticationError("GitHub authentication failed") from exc

        profile = profile_resp.json()
        primary_email = None
        for entry in emails_resp.json():
            if entry.get("primary") and entry.get("verified"):
                primary_email = entry.get("email")
                break
        return profile, primary_email or profile.get("email")

    async def _exchange_code(self, client: httpx.AsyncClient, code: str) -> str:
        response = await client.post(
            GITHUB_TOKEN_URL,
            data={
                "client_id": settings.GITHUB_CLIENT_ID,
                "client_secret": settings.GITHUB_CLIENT_SECRET,
                "code": code,
                "redirect_uri": settings.GITHUB_REDIRECT_URI,
            },
            headers={"Accept": "application/json"},
        )
        response.raise_for_status()
        body = response.json()
        if "access_token" not in body:
            error = body.get("error", "unknown_error")
            description = body.get("error_description", "Unknown error")
            logger.warning("GITHUB_TOKEN_EXCHANGE_FAILED error=%s description=%s", error, description)
            raise AuthenticationError(f"GitHub token exchange failed: {error}")
        return body["access_token"]

    def link_account(self, db: Session, profile: Dict[str, Any], email: Optional[str]) -> User:
        """Find the user behind a GitHub identity, creating account and link if needed."""
        provider_user_id = str(profile.get("id", ""))
        if not provider_user_id:
            raise AuthenticationError("GitHub profile has no id")

        link = (
            db.query(UserSocialAccount)
            .filter(
                UserSocialAccount.provider == self.provider,
                UserSocialAccount.provider_user_id == provider_user_id,
            )
            .first()
        )
        if link is not None:
            user = link.user
        else:
            if not email:
                raise AuthenticationError("GitHub account has no verified email address")
            user = find_by_email(db, email)
            if user is None:
                user = User(
                    email=normalize_email(email),
                    password_hash=None,
                    username=profile.get("login") or email.split("@")[0],
                    enabled=True,
                    email_verified=True,
                    profile_picture_url=profile.get("avatar_url"),
                )
                _split_name(user, profile.get("name"))
                db.add(user)
                db.flush()
                logger.info("SOCIAL_USER_CREATED provider=github email=%s", user.email)
            link = UserSocialAccount(user_id=user.id, provider=self.provider, provider_user_id=provider_user_id)
            db.add(link)

        link.email = email
        link.name = profile.get("name") or profile.get("login")
        link.profile_url = profile.get("html_url")
        link.last_login_at = datetime.now()
        if not user.profile_picture_url and profile.get("avatar_url"):
            user.profile_picture_url = profile.get("avatar_url")
        db.commit()
        db.refresh(user)
        return user


def _split_name(user: User, full_name: Optional[str]):
    if not full_name:
        return
    parts = full_name.strip().split(" ", 1)
    user.given_name = parts[0]
    if len(parts) > 1:
        user.family_name = parts[1]


# Singletons used across the app
oauth_states = OAuthStateStore()
github_oauth = GitHubOAuthService()
