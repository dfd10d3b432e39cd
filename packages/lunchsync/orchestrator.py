# ruff: noqa: I001
"""The sync cycle.

Every trigger (scheduled run, push wake, CLI, shortcut) calls
:meth:`SyncOrchestrator.run_sync_cycle` with its own log tag. One cycle runs
through these stages in order::

    acquire_credential -> fetch_candidates -> categorize -> reconcile
        -> push_pending -> sync_balances -> finalize

A missing API token ends a background cycle quietly (returns 0). Setup
failures in interactive cycles, and fetch failures in any cycle, end in
``failed`` and raise :class:`SyncCycleError`. Per-record problems (a store
write, a single push, a single balance) are logged and never abort the
cycle. Cycles are serialized per orchestrator by a lock.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from datetime import date

from sqlalchemy.exc import SQLAlchemyError

from lunchsync_db.models.ledger import LsAccount

from .balances import BalanceReport, sync_account_balances
from .categories import apply_categories, resolve_categories
from .config import Settings, SyncConfig
from .credentials import CredentialStore
from .cycle_log import CycleLog
from .errors import CredentialMissingError, SourceError, SyncCycleError
from .ledger_client import LedgerAPI, LedgerClient
from .models import (
    AuthorizationStatus,
    CandidateAccount,
    CandidateTransaction,
    CycleStage,
    PreloadedData,
    ReconcileResult,
    RetryPolicy,
    SyncState,
)
from .notifications import BadgeSink, LogNotifier, Notifier, NullBadge
from .push import ProgressCallback, PushReport, push_pending
from .reconcile import reconcile_transaction
from .source import TransactionSource, fetch_window, wallet_accounts
from .store import RecordStore

type ClientFactory = Callable[[str], LedgerAPI]


@dataclass(slots=True)
class CycleReport:
    tag: str
    stage: CycleStage = CycleStage.IDLE
    credential_missing: bool = False
    fetched: int = 0
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    skipped: int = 0
    failed_records: int = 0
    ready_count: int = 0
    pending_count: int = 0
    uncategorized_count: int = 0
    summary: str = ""
    push: PushReport | None = None
    balances: BalanceReport | None = None


def summary_text(synced: int, uncategorized: int) -> str:
    """Notification body for a finished cycle; empty when there is nothing to say."""

    parts: list[str] = []
    if synced > 0:
        parts.append(f"{synced} transaction{'' if synced == 1 else 's'} synced")
    if uncategorized > 0:
        parts.append(f"{uncategorized} categories that need mapping")
    return ", ".join(parts)


class SyncOrchestrator:
    """Runs sync cycles against one record store, source and ledger."""

    def __init__(
        self,
        store: RecordStore,
        source: TransactionSource,
        credentials: CredentialStore,
        *,
        config: SyncConfig | None = None,
        settings: Settings | None = None,
        client_factory: ClientFactory | None = None,
        retry_policy: RetryPolicy | None = None,
        notifier: Notifier | None = None,
        badge: BadgeSink | None = None,
        sleep: Callable[[float], None] = time.sleep,
        fetch_retry_delay: float = 1.0,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.store = store
        self.source = source
        self.credentials = credentials
        self.config = config or SyncConfig()
        self.settings = settings or Settings()
        self.client_factory = client_factory or self._default_client
        self.retry_policy = retry_policy or self.settings.retry_policy()
        self.notifier = notifier or LogNotifier()
        self.badge = badge or NullBadge()
        self.sleep = sleep
        self.fetch_retry_delay = fetch_retry_delay
        self.today = today
        self.stage = CycleStage.IDLE
        self._lock = threading.Lock()

    def _default_client(self, token: str) -> LedgerAPI:
        return LedgerClient(
            token, base_url=self.settings.api_url, timeout=self.settings.request_timeout
        )

    # ---- public entry points -----------------------------------------------

    def run_sync_cycle(
        self,
        tag: str,
        *,
        auto_push: bool,
        categorize_enabled: bool,
        preloaded: PreloadedData | None = None,
        should_continue: Callable[[], bool] | None = None,
        progress: ProgressCallback | None = None,
        interactive: bool = False,
        show_alert: bool = False,
        fetch_retry: bool = False,
    ) -> int:
        """Run one cycle and return the number of transactions still pending."""

        report = self.run_cycle(
            tag,
            auto_push=auto_push,
            categorize_enabled=categorize_enabled,
            preloaded=preloaded,
            should_continue=should_continue,
            progress=progress,
            interactive=interactive,
            show_alert=show_alert,
            fetch_retry=fetch_retry,
        )
        return report.pending_count

    def run_cycle(
        self,
        tag: str,
        *,
        auto_push: bool,
        categorize_enabled: bool,
        preloaded: PreloadedData | None = None,
        should_continue: Callable[[], bool] | None = None,
        progress: ProgressCallback | None = None,
        interactive: bool = False,
        show_alert: bool = False,
        fetch_retry: bool = False,
    ) -> CycleReport:
        """Like :meth:`run_sync_cycle` but return the full :class:`CycleReport`."""

        with self._lock:
            report = CycleReport(tag=tag)
            log = CycleLog(self.store, tag)
            clients: list[LedgerAPI] = []
            try:
                self._run(
                    report,
                    log,
                    clients,
                    auto_push=auto_push,
                    categorize_enabled=categorize_enabled,
                    preloaded=preloaded,
                    should_continue=should_continue,
                    progress=progress,
                    interactive=interactive,
                    show_alert=show_alert,
                    fetch_retry=fetch_retry,
                )
            except Exception as exc:
                failed_at = report.stage
                self._enter(report, CycleStage.FAILED)
                self.store.discard()
                error = exc if isinstance(exc, SyncCycleError) else SyncCycleError(failed_at, exc)
                log.add(f"Sync failed with error: {error}")
                if show_alert:
                    self.notifier.notify("Sync Error", str(error))
                if error is exc:
                    raise
                raise error from exc
            finally:
                for client in clients:
                    if isinstance(client, LedgerClient):
                        client.close()
                self.stage = CycleStage.IDLE
            return report

    # ---- stages --------------------------------------------------------------

    def _enter(self, report: CycleReport, stage: CycleStage) -> None:
        report.stage = stage
        self.stage = stage

    def _run(
        self,
        report: CycleReport,
        log: CycleLog,
        clients: list[LedgerAPI],
        *,
        auto_push: bool,
        categorize_enabled: bool,
        preloaded: PreloadedData | None,
        should_continue: Callable[[], bool] | None,
        progress: ProgressCallback | None,
        interactive: bool,
        show_alert: bool,
        fetch_retry: bool,
    ) -> None:
        cfg = self.config
        log.add(
            f"Starting transaction fetch (import_as_cleared: {cfg.import_as_cleared}, "
            f"status_in_notes: {cfg.put_status_in_notes}, auto_push: {auto_push})"
        )

        self._enter(report, CycleStage.ACQUIRE_CREDENTIAL)
        try:
            token = self.credentials.api_token()
        except CredentialMissingError as exc:
            log.add(f"error getting token: {exc}")
            if interactive:
                raise SyncCycleError(CycleStage.ACQUIRE_CREDENTIAL, exc) from exc
            report.credential_missing = True
            self._enter(report, CycleStage.DONE)
            return
        log.detail("token retrieved")

        def _client() -> LedgerAPI:
            if not clients:
                clients.append(self.client_factory(token))
            return clients[0]

        self._enter(report, CycleStage.FETCH_CANDIDATES)
        accounts = {a.id: a for a in self.store.synced_accounts()}
        log.detail(f"got accounts: {len(accounts)} to sync")
        candidates = self._candidates(accounts, preloaded, log, fetch_retry=fetch_retry)
        report.fetched = len(candidates)
        log.detail(f"found {len(candidates)} transactions to sync")

        self._enter(report, CycleStage.CATEGORIZE)
        table = resolve_categories(self.store, candidates, log=log)
        log.detail(f"processing {len(table)} classification codes")
        candidates = apply_categories(candidates, table, enabled=categorize_enabled)

        self._enter(report, CycleStage.RECONCILE)
        self._reconcile(report, log, candidates, accounts)
        report.ready_count = self.store.count_transactions(SyncState.PENDING)
        log.detail(f"{report.ready_count} transactions ready to sync")

        self._enter(report, CycleStage.PUSH_PENDING)
        if auto_push:
            log.detail(f"starting import for {report.ready_count} transactions")
            report.push = push_pending(
                self.store,
                _client(),
                config=cfg,
                log=log,
                policy=self.retry_policy,
                progress=progress,
                should_continue=should_continue,
                sleep=self.sleep,
            )
        else:
            log.detail("skipping auto import")

        self._enter(report, CycleStage.SYNC_BALANCES)
        log.detail("Updating account balances")
        report.balances = sync_account_balances(
            self.store,
            _client(),
            self._balance_candidates(preloaded, log),
            log=log,
            concurrency=self.settings.balance_concurrency,
        )

        self._enter(report, CycleStage.FINALIZE)
        report.pending_count = self.store.count_transactions(SyncState.PENDING)
        report.uncategorized_count = self.store.count_unmapped()
        badge = report.pending_count + report.uncategorized_count
        log.detail(f"Updating badge count to {badge}")
        self.badge.set_count(badge)

        report.summary = summary_text(report.ready_count, report.uncategorized_count)
        if report.summary:
            log.detail(report.summary)
            if show_alert and cfg.alert_after_import:
                self.notifier.notify("Transactions synced", report.summary)
        log.add(
            f"Sync complete, pending={report.pending_count}, "
            f"uncategorized={report.uncategorized_count}"
        )
        self._enter(report, CycleStage.DONE)

    def _candidates(
        self,
        accounts: dict[str, LsAccount],
        preloaded: PreloadedData | None,
        log: CycleLog,
        *,
        fetch_retry: bool,
    ) -> list[CandidateTransaction]:
        if preloaded is not None:
            raw: Sequence[CandidateTransaction] = preloaded.transactions
        elif not accounts:
            raw = []
        else:
            raw = self._fetch(list(accounts), log, fetch_retry=fetch_retry)

        out: list[CandidateTransaction] = []
        for tx in raw:
            account = accounts.get(tx.account_id)
            if account is None:
                continue
            if not tx.account_name:
                tx = replace(tx, account_name=account.name)
            out.append(tx)
        return out

    def _fetch(
        self, account_ids: list[str], log: CycleLog, *, fetch_retry: bool
    ) -> list[CandidateTransaction]:
        start, end = fetch_window(self.today(), self.settings.fetch_window_days)
        attempts = 2 if fetch_retry else 1
        for attempt in range(1, attempts + 1):
            try:
                status = self.source.request_authorization()
                if status is not AuthorizationStatus.AUTHORIZED:
                    raise SourceError(f"wallet access is {status.value}")
                return self.source.list_transactions(account_ids, start, end)
            except Exception as exc:
                log.add(f"Fetch failed (attempt {attempt} of {attempts}): {exc}")
                if attempt == attempts:
                    raise SyncCycleError(CycleStage.FETCH_CANDIDATES, exc) from exc
                self.sleep(self.fetch_retry_delay)
        raise AssertionError("unreachable")  # pragma: no cover

    def _reconcile(
        self,
        report: CycleReport,
        log: CycleLog,
        candidates: Sequence[CandidateTransaction],
        accounts: dict[str, LsAccount],
    ) -> None:
        for tx in candidates:
            if accounts[tx.account_id].sync_balance_only:
                stored = self.store.get_transaction(tx.id)
                if stored is None or not stored.remote_id:
                    report.skipped += 1
                    continue
            try:
                result = reconcile_transaction(self.store, tx, tag=report.tag)
            except SQLAlchemyError as exc:
                report.failed_records += 1
                log.add(f"Failed to save transaction {tx.id}: {exc}")
                continue
            if result is ReconcileResult.CREATED:
                report.created += 1
            elif result is ReconcileResult.UPDATED:
                report.updated += 1
            else:
                report.unchanged += 1

    def _balance_candidates(
        self, preloaded: PreloadedData | None, log: CycleLog
    ) -> list[CandidateAccount]:
        if preloaded is not None and preloaded.accounts:
            return list(preloaded.accounts)
        try:
            return wallet_accounts(self.source)
        except Exception as exc:  # noqa: BLE001
            log.add(f"Failed to list wallet accounts: {exc}")
            return []


__all__ = ["CycleReport", "SyncOrchestrator", "summary_text"]
