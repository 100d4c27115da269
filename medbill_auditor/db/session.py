"""
Database session configuration.

Provides the SQLAlchemy engine and session factory. SQLite is the
default; any SQLAlchemy URL can be configured with DATABASE_URL.
"""

from typing import Generator, Optional

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from medbill_auditor.core.config import settings
from medbill_auditor.db.base import Base


def create_db_engine(database_url: Optional[str] = None) -> Engine:
    """
    Create an engine with settings suited to the backend.

    Args:
        database_url: SQLAlchemy URL. Defaults to settings.DATABASE_URL.
    """
    url = database_url or settings.DATABASE_URL

    if url.startswith("sqlite"):
        # SQLite-specific settings
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
        )

    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
    )


engine = create_db_engine()

# Session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


def init_db(bind: Optional[Engine] = None) -> None:
    """Create all tables that do not exist yet."""
    # Importing registers the records on Base.metadata
    from medbill_auditor.db import tables  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


def get_db() -> Generator[Session, None, None]:
    """
    Yield a database session and ensure it's closed after use.

    Yields:
        Session: SQLAlchemy database session.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
