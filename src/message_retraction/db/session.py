"""Database session configuration.

The engine is built once per process by :func:`init_engine`; callers that need
a session go through :func:`get_session_factory` or the :func:`get_db`
dependency instead of reaching for a module-level engine.
"""

from __future__ import annotations

import threading
from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from message_retraction.core.settings import settings


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


# Ensure model modules are imported so that metadata is populated when create_all runs.
import message_retraction.models  # noqa: E402,F401

_lock = threading.Lock()
_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def init_engine(database_url: str | None = None) -> Engine:
    """Create the process-wide engine on first call and return it afterwards.

    Args:
        database_url: Optional URL overriding the configured one. Only honoured
            on the first call; later calls return the existing engine.

    Returns:
        The shared SQLAlchemy engine
    """
    global _engine, _session_factory
    with _lock:
        if _engine is None:
            _engine = create_engine(
                database_url or settings.effective_database_url,
                pool_pre_ping=True,
                echo=settings.sql_debug,
            )
            _session_factory = sessionmaker(
                autocommit=False,
                autoflush=False,
                bind=_engine,
            )
        return _engine


def get_session_factory() -> sessionmaker[Session]:
    """Return the session factory bound to the shared engine."""
    init_engine()
    assert _session_factory is not None
    return _session_factory


def get_db() -> Generator[Session, None, None]:
    """Yield a database session for dependency injection."""
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


def create_tables(engine: Engine | None = None) -> None:
    """Create all database tables."""
    Base.metadata.create_all(bind=engine or init_engine())


def drop_tables(engine: Engine | None = None) -> None:
    """Drop all database tables."""
    Base.metadata.drop_all(bind=engine or init_engine())
