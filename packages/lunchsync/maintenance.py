"""Retention and manual recovery operations on the record store."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, date, datetime, timedelta

from .logging_setup import get_logger
from .models import SyncState
from .store import RecordStore

logger = get_logger("lunchsync.maintenance")

# Only rows whose push has settled are eligible for purging.
PURGEABLE_STATES: tuple[SyncState, ...] = (SyncState.COMPLETE, SyncState.NEVER)


def _cutoff(days: int, today: date | None) -> date:
    if days < 0:
        raise ValueError("days must be non-negative")
    return (today or date.today()) - timedelta(days=days)


def count_older_than(store: RecordStore, days: int, *, today: date | None = None) -> int:
    """Number of rows :func:`purge_transactions_older_than` would delete."""

    return store.count_older_than(_cutoff(days, today), PURGEABLE_STATES)


def purge_transactions_older_than(
    store: RecordStore, days: int, *, today: date | None = None
) -> int:
    """Delete complete/never transactions dated before ``today - days``."""

    deleted = store.purge_older_than(_cutoff(days, today), PURGEABLE_STATES)
    store.save()
    logger.info("purged %d transactions older than %d days", deleted, days)
    return deleted


def requeue(
    store: RecordStore,
    transaction_ids: Iterable[str] | None = None,
    *,
    tag: str = "CLI",
) -> int:
    """Move transactions back to ``pending``.

    With ``transaction_ids`` omitted, every ``never`` transaction is requeued.
    Unknown ids are ignored. Returns the number of rows moved.
    """

    if transaction_ids is None:
        rows = store.transactions(states=[SyncState.NEVER])
    else:
        rows = [r for r in (store.get_transaction(i) for i in transaction_ids) if r is not None]

    now = datetime.now(UTC)
    moved = 0
    for row in rows:
        if row.sync_state == SyncState.PENDING:
            continue
        previous = row.sync_state
        row.sync_state = SyncState.PENDING.value
        store.append_history(row, f"Requeued for sync (was {previous})", source_tag=tag, at=now)
        moved += 1
    store.save()
    return moved


def clear_logs(store: RecordStore) -> int:
    removed = store.clear_logs()
    store.save()
    return removed


__all__ = [
    "PURGEABLE_STATES",
    "clear_logs",
    "count_older_than",
    "purge_transactions_older_than",
    "requeue",
]
