# backend/personalhub/core/database.py
from sqlalchemy import create_engine
from sqlalchemy.engine import URL, make_url
from sqlalchemy.orm import sessionmaker, declarative_base
from typing import Optional
import logging

from personalhub.config import settings

logger = logging.getLogger(__name__)


def build_database_url(
    raw_url: str,
    username: Optional[str] = None,
    password: Optional[str] = None,
) -> URL:
    """
    Normalise a database URL.

    Heroku/Render style ``postgres://`` URLs are mapped onto the SQLAlchemy
    ``postgresql`` dialect. Explicit username/password settings win over the
    credentials embedded in the URL.
    """
    if raw_url.startswith("postgres://"):
        raw_url = "postgresql://" + raw_url[len("postgres://"):]

    url = make_url(raw_url)
    if url.get_backend_name() != "postgresql":
        return url

    overrides = {}
    if username:
        overrides["username"] = username
    if password:
        overrides["password"] = password
    return url.set(**overrides) if overrides else url


def engine_options(url: URL) -> dict:
    """Connection-pool arguments (only meaningful for server databases)."""
    if url.get_backend_name() == "sqlite":
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": settings.DATABASE_POOL_SIZE,
        "pool_timeout": settings.DATABASE_POOL_TIMEOUT,
        "pool_recycle": settings.DATABASE_POOL_RECYCLE,
        "pool_pre_ping": True,
    }


database_url = build_database_url(
    settings.DATABASE_URL, settings.DATABASE_USERNAME, settings.DATABASE_PASSWORD
)
logger.info(
    "DB_CONFIG backend=%s host=%s database=%s",
    database_url.get_backend_name(),
    database_url.host or "",
    database_url.database or "",
)

engine = create_engine(database_url, **engine_options(database_url))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """FastAPI dependency: one session per request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
