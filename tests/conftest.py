"""Pytest configuration for test isolation.

Every test gets a fresh file-backed SQLite record store under ``tmp_path``,
a scrubbed ``LUNCHSYNC_*`` / ``DATABASE_URL`` environment, and a clean
process-wide engine afterwards (the CLI binds one on first use).
"""

# ruff: noqa: E402, I001
from __future__ import annotations

import os
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

# Make the workspace packages importable without an editable install.
_ROOT = Path(__file__).resolve().parents[1]
for _p in (_ROOT / "libs" / "db" / "src", _ROOT / "packages", _ROOT):
    if str(_p) not in sys.path:
        sys.path.insert(0, str(_p))

from lunchsync.store import RecordStore
from lunchsync_db.client import dispose_engine
from sqlalchemy.orm import Session

from tests.helpers.db import bootstrap_sqlite_db, open_session


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Drop configuration leaking in from the developer's shell or ``.env``."""

    for name in list(os.environ):
        if name.startswith("LUNCHSYNC_") or name == "DATABASE_URL":
            monkeypatch.delenv(name, raising=False)
    yield
    dispose_engine()


@pytest.fixture()
def database_url(tmp_path: Path) -> str:
    return bootstrap_sqlite_db(tmp_path / "lunchsync.db")


@pytest.fixture()
def session(database_url: str) -> Iterator[Session]:
    s = open_session(database_url)
    try:
        yield s
    finally:
        bind = s.get_bind()
        s.close()
        bind.dispose()


@pytest.fixture()
def store(session: Session) -> RecordStore:
    return RecordStore(session)
