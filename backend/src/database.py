"""Database engines and sessions.

Two credentials are used, never interchangeably:

- DATABASE_URL: the runtime role. It should hold only SELECT, INSERT,
  UPDATE and DELETE on the application tables. Every request gets a session
  from SessionLocal through the get_db dependency.
- MIGRATION_DATABASE_URL: the deployment role that owns the schema. It is
  used by backend/scripts/init_db.py through create_schema and nowhere else.
"""

from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from config import settings
from models.base import Base


def build_engine(url: str) -> Engine:
    """Engine with pooling suited to the backend named in url."""
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(url, pool_pre_ping=True, pool_size=5, max_overflow=10)


engine = build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency: one session per request, always closed.

    Services commit explicitly; anything left uncommitted is rolled back on
    close.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_schema(bind: Engine) -> None:
    """Create every table on bind, which must use MIGRATION_DATABASE_URL."""
    import models  # noqa: F401  (registers all models on Base.metadata)

    Base.metadata.create_all(bind=bind)
