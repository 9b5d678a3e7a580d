# backend/personalhub/main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from personalhub.config import settings
from personalhub.core.database import engine, Base
from personalhub.core.exceptions import register_exception_handlers
from personalhub.core.rate_limit import RateLimitMiddleware

# Import routers
from personalhub.routers import auth, users
from personalhub.routers import todos, goals, notes, events, moments
from personalhub.routers import pomodoro
from personalhub.routers import analytics
from personalhub.routers import oidc, oauth_clients

# Import all models so Base.metadata knows about them
from personalhub.models import user, oauth                           # noqa: F401
from personalhub.models import todo, goal, note, event, moment       # noqa: F401
from personalhub.models import pomodoro as pomodoro_model            # noqa: F401

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

# Create database tables
Base.metadata.create_all(bind=engine)

# Initialize FastAPI app
app = FastAPI(
    title="Personal Hub API",
    description="Todos, goals, notes, calendar events, moments and pomodoro sessions, with an OIDC provider",
    version="0.1.0",
    debug=settings.DEBUG
)

# Rate limiting (wrapped by CORS below)
app.add_middleware(RateLimitMiddleware, enabled=settings.RATE_LIMIT_ENABLED)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Health check endpoints
@app.get("/")
async def root():
    return {
        "message": "Personal Hub API is running",
        "version": "0.1.0",
        "status": "healthy"
    }

@app.get("/health")
async def health_check():
    return {"status": "ok"}

# Include routers
app.include_router(oidc.router, tags=["OpenID Connect"])
app.include_router(auth.router, prefix="/api/v1/auth", tags=["Authentication"])
app.include_router(users.router, prefix="/api/v1/users", tags=["Users"])
app.include_router(oauth_clients.router, prefix="/api/v1/oauth", tags=["OAuth Clients"])
app.include_router(todos.router, prefix="/api/v1/todos", tags=["Todos"])
app.include_router(goals.router, prefix="/api/v1/goals", tags=["Goals"])
app.include_router(notes.router, prefix="/api/v1/notes", tags=["Notes"])
app.include_router(events.router, prefix="/api/v1/events", tags=["Events"])
app.include_router(moments.router, prefix="/api/v1/moments", tags=["Moments"])
app.include_router(pomodoro.router, prefix="/api/v1/pomodoro", tags=["Pomodoro"])
app.include_router(analytics.router, prefix="/api/v1/analytics", tags=["Analytics"])
