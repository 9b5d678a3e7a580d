# backend/personalhub/core/rate_limit.py
"""Per-IP rate limiting on a moving window, backed by the ``limits`` library."""
import logging
from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from limits import RateLimitItem, parse
from limits.storage import MemoryStorage, Storage
from limits.strategies import MovingWindowRateLimiter
from starlette.middleware.base import BaseHTTPMiddleware

from personalhub.config import settings
from personalhub.core.auth import get_client_ip

logger = logging.getLogger(__name__)

AUTH_PATH_PREFIX = "/api/v1/auth/"
RETRY_AFTER_SECONDS = 60


class RateLimiter:
    """
    One moving window per (limit kind, client IP).

    Windows live in a ``limits`` storage, which expires them once they are
    older than the limit's period.
    """

    def __init__(self, auth_limit: str, general_limit: str, storage: Optional[Storage] = None):
        self.limits = {
            "auth": parse(auth_limit),
            "general": parse(general_limit),
        }
        self.storage = storage or MemoryStorage()
        self.strategy = MovingWindowRateLimiter(self.storage)

    @staticmethod
    def bucket_kind(path: str) -> str:
        return "auth" if path.startswith(AUTH_PATH_PREFIX) else "general"

    def limit_for(self, path: str) -> RateLimitItem:
        return self.limits[self.bucket_kind(path)]

    def allow(self, client_ip: str, path: str) -> bool:
        kind = self.bucket_kind(path)
        return self.strategy.hit(self.limits[kind], kind, client_ip)

    def reset(self):
        self.storage.reset()


rate_limiter = RateLimiter(settings.RATE_LIMIT_AUTH, settings.RATE_LIMIT_GENERAL)


def rate_limit_exceeded_response() -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={"error": "Rate limit exceeded. Please try again later."},
        headers={"X-Rate-Limit-Retry-After-Seconds": str(RETRY_AFTER_SECONDS)},
    )


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, limiter: RateLimiter = rate_limiter, enabled: bool = True):
        super().__init__(app)
        self.limiter = limiter
        self.enabled = enabled

    async def dispatch(self, request: Request, call_next):
        if not self.enabled or request.method == "OPTIONS":
            return await call_next(request)

        client_ip = get_client_ip(request)
        if not self.limiter.allow(client_ip, request.url.path):
            logger.warning("RATE_LIMIT_EXCEEDED ip=%s path=%s", client_ip, request.url.path)
            return rate_limit_exceeded_response()
        return await call_next(request)
