"""Engine/session helpers for the synchronizer's record store.

Usage
-----
from lunchsync_db.client import session_scope

with session_scope() as s:
    s.execute(...)

The process-wide engine is bound to ``DATABASE_URL`` (or an explicit
override) on first use. ``build_engine`` creates an unshared engine for
callers that manage their own lifecycle, such as tests.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .models.ledger import Base

_ENGINE: Engine | None = None
_SESSION_MAKER: sessionmaker[Session] | None = None
_DB_URL: str | None = None


def _database_url(override: str | None = None) -> str:
    url = override or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is not set; cannot initialize the record store")
    return url


def _enable_sqlite_foreign_keys(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_conn, _record):  # pragma: no cover - tiny bridge
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()


def build_engine(database_url: str) -> Engine:
    """Create a new engine for ``database_url``.

    SQLite connections get ``PRAGMA foreign_keys = ON`` so history rows are
    removed together with their transaction.
    """

    engine = create_engine(database_url, pool_pre_ping=True)
    if engine.dialect.name == "sqlite":
        _enable_sqlite_foreign_keys(engine)
    return engine


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    # Rows stay readable after commit; the sync loop commits per record.
    return sessionmaker(bind=engine, expire_on_commit=False, class_=Session)


def get_engine(*, database_url: str | None = None) -> Engine:
    """Return the shared engine, creating it on first use."""

    global _ENGINE, _SESSION_MAKER, _DB_URL
    url = _database_url(database_url)
    if _ENGINE is None:
        engine = build_engine(url)
        _SESSION_MAKER = build_session_factory(engine)
        _ENGINE = engine
        _DB_URL = url
        return engine
    if _DB_URL is not None and url != _DB_URL:
        raise RuntimeError(
            "get_engine() already initialized with a different DATABASE_URL; "
            "call dispose_engine() first or restart the process"
        )
    return _ENGINE


def dispose_engine() -> None:
    """Drop the shared engine so the next call can bind a different URL."""

    global _ENGINE, _SESSION_MAKER, _DB_URL
    if _ENGINE is not None:
        _ENGINE.dispose()
    _ENGINE = None
    _SESSION_MAKER = None
    _DB_URL = None


def get_session(*, database_url: str | None = None) -> Session:
    """Return a new session bound to the shared engine."""

    get_engine(database_url=database_url)
    assert _SESSION_MAKER is not None  # bound by get_engine
    return _SESSION_MAKER()


@contextmanager
def session_scope(*, database_url: str | None = None) -> Iterator[Session]:
    """Provide a transactional scope around a series of operations."""

    session = get_session(database_url=database_url)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_schema(*, database_url: str | None = None) -> Engine:
    """Create any missing tables directly from ORM metadata.

    Alembic migrations remain the path for managed databases; this is the
    quick start used by ``lunchsync init-db`` and by tests.
    """

    engine = get_engine(database_url=database_url)
    Base.metadata.create_all(bind=engine)
    return engine


__all__ = [
    "build_engine",
    "build_session_factory",
    "dispose_engine",
    "get_engine",
    "get_session",
    "init_schema",
    "session_scope",
]
