"""Push pending transactions to the remote ledger.

Each pending row is matched against remote transactions by ``external_id``
(our source id) inside a +/-30 day window around its date. A match is updated
in place; otherwise a new remote transaction is created. Pushing the same row
twice therefore never creates a duplicate.

Failures are retried per :class:`~lunchsync.models.RetryPolicy`. A row whose
retries run out keeps its error in history and stays ``pending`` for the next
cycle. The loop is strictly sequential and checks ``should_continue`` before
every record, so a cancelled run leaves the remaining rows ``pending``.

Only rows of sync-enabled accounts are pushed.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from lunchsync_db.models.ledger import LsTransaction

from .config import SyncConfig
from .cycle_log import CycleLog
from .ledger_client import LedgerAPI
from .ledger_models import (
    GetTransactionsRequest,
    NewTransaction,
    TransactionUpdate,
    UpdateTransactionRequest,
)
from .logging_setup import get_logger
from .models import (
    PushOutcome,
    RetryPolicy,
    SyncProgress,
    format_amount,
    is_categorizable,
    parse_remote_id,
)
from .reconcile import apply_push_outcome
from .store import RecordStore

logger = get_logger("lunchsync.push")

PUSH_WINDOW_DAYS = 30
UNLINKED_ASSET = "0"
CURRENCY = "usd"

type ProgressCallback = Callable[[SyncProgress], None]


@dataclass(slots=True)
class PushReport:
    total: int = 0
    completed: int = 0
    never: int = 0
    untouched: int = 0
    retries: int = 0
    cancelled: bool = False


def transaction_fields(row: LsTransaction, config: SyncConfig) -> dict[str, Any]:
    """Fields shared by the UPDATE and CREATE payloads."""

    category_id = (
        parse_remote_id(row.remote_category_id)
        if is_categorizable(row.remote_category_id)
        else None
    )
    notes = row.notes if config.put_status_in_notes and row.notes else None
    return {
        "date": row.date.isoformat(),
        "payee": row.payee,
        "amount": format_amount(row.amount),
        "currency": CURRENCY,
        "category_id": category_id,
        "asset_id": parse_remote_id(row.remote_account_ref),
        "notes": notes,
        "status": "cleared" if config.import_as_cleared else "uncleared",
        "is_pending": False,
    }


def perform_push(
    client: LedgerAPI,
    row: LsTransaction,
    config: SyncConfig,
    *,
    log: CycleLog | None = None,
) -> PushOutcome:
    """Send one row to the remote ledger and describe what happened.

    Network and API errors propagate to the caller.
    """

    start = row.date - timedelta(days=PUSH_WINDOW_DAYS)
    end = row.date + timedelta(days=PUSH_WINDOW_DAYS)
    remote = client.get_transactions(
        GetTransactionsRequest(start_date=start.isoformat(), end_date=end.isoformat())
    )
    fields = transaction_fields(row, config)

    match = next((t for t in remote if t.external_id == row.id), None)
    if match is not None:
        response = client.update_transaction(
            match.id, UpdateTransactionRequest(transaction=TransactionUpdate(**fields))
        )
        if response.errors:
            message = f"Error updating transaction {row.id}: {', '.join(response.errors)}"
            if log is not None:
                log.add(message)
            else:
                logger.warning(message)
            return PushOutcome.untouched()
        asset = str(match.asset_id) if match.asset_id is not None else None
        return PushOutcome.updated(str(match.id), asset)

    created = client.create_transactions(
        [NewTransaction(**fields, external_id=row.id)],
        apply_rules=config.apply_rules,
        skip_duplicates=config.skip_duplicates,
        check_for_recurring=config.check_for_recurring,
        skip_balance_update=config.skip_balance_update,
    )
    if created.ids:
        return PushOutcome.created(str(created.ids[0]))
    return PushOutcome.rejected()


def _linked_asset(store: RecordStore, row: LsTransaction) -> str:
    account = store.get_account(row.account_id)
    if account is not None and account.sync_enabled and account.remote_asset_id:
        return account.remote_asset_id
    return UNLINKED_ASSET


def _save_quietly(store: RecordStore, log: CycleLog, row: LsTransaction) -> None:
    try:
        store.save()
    except SQLAlchemyError as exc:
        log.add(f"Failed to save push result for {row.id}: {exc}")


def push_pending(
    store: RecordStore,
    client: LedgerAPI,
    *,
    config: SyncConfig,
    log: CycleLog,
    policy: RetryPolicy | None = None,
    progress: ProgressCallback | None = None,
    should_continue: Callable[[], bool] | None = None,
    sleep: Callable[[float], None] = time.sleep,
    monotonic: Callable[[], float] = time.monotonic,
) -> PushReport:
    """Push every ``pending`` row, retrying failures per ``policy``.

    Parameters
    ----------
    policy:
        Retry policy; the default caps attempts. Pass
        ``RetryPolicy.unbounded()`` to retry until success or cancellation.
    progress:
        Receives ``SyncProgress`` updates (``"Syncing i of n for <payee>"``).
    should_continue:
        Checked before each record and before each retry.
    sleep, monotonic:
        Injected for tests.

    Returns
    -------
    PushReport
        Counts per outcome. Only a failure of the final store commit raises.
    """

    policy = policy or RetryPolicy()
    pending = store.pending_transactions(synced_accounts_only=True)
    report = PushReport(total=len(pending))
    total = report.total

    def _progress(current: int, status: str) -> None:
        if progress is not None:
            progress(SyncProgress(current, total, status))

    def _continue() -> bool:
        return should_continue is None or should_continue()

    _progress(0, "Starting sync...")
    for i, row in enumerate(pending, start=1):
        if not _continue():
            report.cancelled = True
            log.add(f"Push cancelled after {i - 1} of {total}")
            break

        _progress(i, f"Syncing {i} of {total} for {row.payee}")
        row.remote_account_ref = _linked_asset(store, row)

        attempts = 0
        started = monotonic()
        while True:
            attempts += 1
            try:
                outcome = perform_push(client, row, config, log=log)
            except Exception as exc:  # noqa: BLE001
                apply_push_outcome(store, row, PushOutcome.failed(exc), tag=log.prefix)
                _save_quietly(store, log, row)
                log.add(f"Error syncing {row.id} (attempt {attempts}): {exc}")
                if not policy.allows_retry(attempts, monotonic() - started) or not _continue():
                    report.untouched += 1
                    break
                report.retries += 1
                _progress(i, f"Error with {i} of {total}, retry {attempts}")
                sleep(policy.backoff_seconds)
                continue

            if apply_push_outcome(store, row, outcome, tag=log.prefix):
                _save_quietly(store, log, row)
                if outcome.remote_id:
                    report.completed += 1
                else:
                    report.never += 1
            else:
                report.untouched += 1
            _progress(i, f"Completed {i} of {total}")
            break

    store.save()
    log.add(
        f"Push finished: {report.completed} synced, {report.never} failed, "
        f"{report.untouched} left pending of {total}",
        2,
    )
    return report


__all__ = [
    "PUSH_WINDOW_DAYS",
    "UNLINKED_ASSET",
    "PushReport",
    "perform_push",
    "push_pending",
    "transaction_fields",
]
