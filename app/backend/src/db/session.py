"""Engine and session factory for the billing database."""

from __future__ import annotations

from pathlib import Path

import structlog
from sqlalchemy import Engine, create_engine, event
from sqlalchemy.engine import URL, make_url
from sqlalchemy.orm import sessionmaker

from app.backend.src.core.config import Settings, get_settings

LOGGER = structlog.get_logger(__name__)
PROJECT_ROOT = Path(__file__).resolve().parents[4]


def resolve_database_url(raw_url: str) -> URL:
    """Anchor relative SQLite paths at the project root.

    Other drivers and in-memory SQLite URLs are returned unchanged.
    """

    url = make_url(raw_url)
    database = url.database or ""
    if not url.drivername.startswith("sqlite") or database in {"", ":memory:"}:
        return url

    path = Path(database)
    if not path.is_absolute():
        path = (PROJECT_ROOT / path).resolve()
        LOGGER.info("database_path_resolved", database=database, resolved=str(path))
    return url.set(database=str(path))


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:  # type: ignore[no-untyped-def]
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(settings: Settings) -> Engine:
    url = resolve_database_url(settings.database_url)
    if not url.drivername.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)

    # Request threads share the connection pool.
    sqlite_engine = create_engine(
        url,
        pool_pre_ping=True,
        connect_args={"check_same_thread": False},
    )
    event.listen(sqlite_engine, "connect", _enable_sqlite_foreign_keys)
    return sqlite_engine


engine = build_engine(get_settings())
SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
)

LOGGER.info("database_engine_initialized", url=engine.url.render_as_string(hide_password=True))

__all__ = ["SessionLocal", "build_engine", "engine", "resolve_database_url"]
