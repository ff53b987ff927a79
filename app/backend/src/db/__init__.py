"""Database access: declarative base, engine and session helpers.

Services never open sessions themselves. Requests receive one through
:func:`get_session_dependency`; scripts and tests use :func:`session_scope`.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager

from sqlalchemy import Engine
from sqlalchemy.orm import Session

from .base import Base
from .session import SessionLocal, engine as _engine


@contextmanager
def get_session(*, commit: bool = False) -> Iterator[Session]:
    """Yield a session that is rolled back on error and always closed.

    With ``commit=True`` pending work is committed when the block exits
    cleanly.
    """

    session = SessionLocal()
    try:
        yield session
        if commit:
            session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_session_dependency() -> Iterator[Session]:
    """FastAPI dependency; services commit their own changes."""

    with get_session() as session:
        yield session


def session_scope() -> AbstractContextManager[Session]:
    """Provide a committing session for scripts and tests."""

    return get_session(commit=True)


def get_engine() -> Engine:
    return _engine


__all__ = [
    "Base",
    "get_engine",
    "get_session",
    "get_session_dependency",
    "session_scope",
]
