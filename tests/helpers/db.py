"""DB helpers for tests: bootstrap a temporary SQLite record store and seed rows."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, date, datetime
from decimal import Decimal
from pathlib import Path

from lunchsync_db import Base
from lunchsync_db.client import build_engine, build_session_factory
from lunchsync_db.models.ledger import LsAccount, LsCategoryMapping, LsTransaction
from sqlalchemy import text as sql_text
from sqlalchemy.orm import Session


def sqlite_url(db_file: Path) -> str:
    return f"sqlite+pysqlite:///{db_file}"


def bootstrap_sqlite_db(db_file: Path) -> str:
    """Create a SQLite database file with the full schema and return its URL.

    A file-backed database lets the CLI's shared engine and the test's own
    session see the same state (in-memory DBs are per-connection).
    """

    db_file.parent.mkdir(parents=True, exist_ok=True)
    url = sqlite_url(db_file)
    engine = build_engine(url)
    try:
        Base.metadata.create_all(bind=engine)
        _assert_foreign_keys_enabled(engine)
    finally:
        engine.dispose()
    return url


def open_session(database_url: str) -> Session:
    """Return a session on a private engine (not the process-wide one)."""

    engine = build_engine(database_url)
    return build_session_factory(engine)()


def _assert_foreign_keys_enabled(engine) -> None:
    with engine.connect() as conn:
        enabled = conn.execute(sql_text("PRAGMA foreign_keys")).scalar()
    assert enabled == 1, "PRAGMA foreign_keys should be ON for SQLite engines"


# ---- Seeding ------------------------------------------------------------------


def add_account(
    session: Session,
    account_id: str,
    name: str,
    *,
    balance: str = "0.00",
    remote_asset_id: str = "",
    sync_enabled: bool = True,
    sync_balance_only: bool = False,
) -> LsAccount:
    row = LsAccount(
        id=account_id,
        name=name,
        balance=Decimal(balance),
        remote_asset_id=remote_asset_id,
        remote_asset_name=f"Asset {remote_asset_id}" if remote_asset_id else "",
        sync_enabled=sync_enabled,
        sync_balance_only=sync_balance_only,
        last_updated=datetime(2024, 5, 1, 12, 0, tzinfo=UTC),
    )
    session.add(row)
    session.commit()
    return row


def add_transaction(
    session: Session,
    tx_id: str,
    *,
    account_id: str = "acct-1",
    payee: str = "Coffee",
    amount: str = "4.50",
    on: date = date(2024, 5, 10),
    sync_state: str = "pending",
    remote_id: str = "",
    classification_code: str | None = None,
    remote_category_id: str | None = None,
    remote_category_name: str | None = None,
) -> LsTransaction:
    row = LsTransaction(
        id=tx_id,
        account_id=account_id,
        payee=payee,
        amount=Decimal(amount),
        date=on,
        sync_state=sync_state,
        remote_id=remote_id,
        classification_code=classification_code,
        remote_category_id=remote_category_id,
        remote_category_name=remote_category_name,
    )
    session.add(row)
    session.commit()
    return row


def add_mappings(session: Session, rows: Iterable[tuple[str, str, str, str]]) -> None:
    """Insert ``(code, local_name, remote_category_id, remote_category_name)`` rows."""

    for code, local_name, remote_id, remote_name in rows:
        session.add(
            LsCategoryMapping(
                code=code,
                local_name=local_name,
                remote_category_id=remote_id,
                remote_category_name=remote_name,
            )
        )
    session.commit()
