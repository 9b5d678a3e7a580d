from fastapi import FastAPI
from fastapi.testclient import TestClient

from personalhub.config import settings
from personalhub.core.rate_limit import RateLimiter, RateLimitMiddleware


def test_default_limits():
    limiter = RateLimiter(settings.RATE_LIMIT_AUTH, settings.RATE_LIMIT_GENERAL)

    auth = limiter.limit_for("/api/v1/auth/login")
    assert auth.amount == 10
    assert auth.get_expiry() == 15 * 60

    general = limiter.limit_for("/api/v1/todos")
    assert general.amount == 100
    assert general.get_expiry() == 60


def test_auth_paths_use_their_own_limit():
    assert RateLimiter.bucket_kind("/api/v1/auth/login") == "auth"
    assert RateLimiter.bucket_kind("/api/v1/todos") == "general"
    assert RateLimiter.bucket_kind("/auth/token") == "general"


def test_limits_are_per_ip_and_per_kind():
    limiter = RateLimiter("1/15 minutes", "2/minute")
    assert limiter.allow("10.0.0.1", "/api/v1/auth/login")
    assert not limiter.allow("10.0.0.1", "/api/v1/auth/login")
    assert limiter.allow("10.0.0.2", "/api/v1/auth/login")
    assert limiter.allow("10.0.0.1", "/api/v1/notes")
    assert limiter.allow("10.0.0.1", "/api/v1/notes")
    assert not limiter.allow("10.0.0.1", "/api/v1/notes")

    limiter.reset()
    assert limiter.allow("10.0.0.1", "/api/v1/auth/login")


def _limited_app(limiter):
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, limiter=limiter, enabled=True)

    @app.post("/api/v1/auth/login")
    async def login():
        return {"ok": True}

    return app


def test_middleware_answers_429_with_retry_header():
    client = TestClient(_limited_app(RateLimiter("2/15 minutes", "100/minute")))

    assert client.post("/api/v1/auth/login").status_code == 200
    assert client.post("/api/v1/auth/login").status_code == 200
    response = client.post("/api/v1/auth/login")

    assert response.status_code == 429
    assert response.json() == {"error": "Rate limit exceeded. Please try again later."}
    assert response.headers["X-Rate-Limit-Retry-After-Seconds"] == "60"


def test_middleware_keys_on_forwarded_ip():
    client = TestClient(_limited_app(RateLimiter("1/15 minutes", "100/minute")))

    first = {"X-Forwarded-For": "203.0.113.5, 10.0.0.1"}
    assert client.post("/api/v1/auth/login", headers=first).status_code == 200
    assert client.post("/api/v1/auth/login", headers=first).status_code == 429
    assert client.post("/api/v1/auth/login", headers={"X-Real-IP": "203.0.113.9"}).status_code == 200
