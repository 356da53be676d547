"""Database configuration and utilities."""

from .session import get_db, get_session_factory, init_engine

__all__ = ["get_db", "get_session_factory", "init_engine"]
