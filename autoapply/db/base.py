"""Database configuration and session management."""

from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from autoapply.config import settings


class Base(DeclarativeBase):
    """SQLAlchemy declarative base."""

    pass


# Create engine lazily to allow testing without database
_engine = None
_SessionLocal = None


def create_db_engine(database_url: str) -> Engine:
    """Create an engine, with thread-safe settings for SQLite."""
    if database_url.startswith("sqlite"):
        # Background runs use their own sessions on worker threads and wait on
        # each other's write locks instead of failing fast
        return create_engine(database_url, connect_args={"check_same_thread": False, "timeout": 30})
    return create_engine(
        database_url,
        pool_pre_ping=True,  # Test connections before use
        pool_recycle=300,  # Recycle connections after 5 minutes
    )


def get_engine():
    """Get or create database engine."""
    global _engine
    if _engine is None:
        if not settings.database_url:
            raise ValueError("DATABASE_URL not configured")
        _engine = create_db_engine(settings.database_url)
    return _engine


def get_session_factory():
    """Get or create session factory."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=get_engine())
    return _SessionLocal


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency for database sessions."""
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


def init_db(engine: Engine | None = None):
    """Initialize database tables."""
    from autoapply.db import tables  # noqa: F401

    Base.metadata.create_all(bind=engine or get_engine())
