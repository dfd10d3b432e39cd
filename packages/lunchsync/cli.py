# ruff: noqa: I001
"""Command-line interface for ``lunchsync``.

The root callback loads a local ``.env`` (never overriding variables that are
already set) and configures logging; each command then builds what it needs
from :class:`~lunchsync.config.Settings`. Errors are printed to stderr and the
process exits with status 1.

Run ``python -m lunchsync.cli --help`` for the command list.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path
from typing import NoReturn

import typer
from dotenv import load_dotenv

from .config import Settings, SyncConfig
from .credentials import EnvCredentialStore
from .errors import LunchSyncError
from .logging_setup import configure_logging
from .models import SyncProgress, format_currency
from .store import RecordStore

FEED_ENV = "LUNCHSYNC_FEED_PATH"


# ---- Small module-level helpers used by CLI commands -------------------------


def _fail(message: str) -> NoReturn:
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(1)


@contextmanager
def _open_store(database_url: str | None) -> Iterator[RecordStore]:
    from lunchsync_db.client import get_engine, session_scope

    try:
        get_engine(database_url=database_url)
    except RuntimeError as exc:
        # DATABASE_URL is missing or conflicts with the bound engine.
        _fail(str(exc))
    with session_scope(database_url=database_url) as session:
        yield RecordStore(session)


def _settings(database_url: str | None) -> Settings:
    try:
        settings = Settings.from_env()
    except ValueError as exc:
        _fail(str(exc))
    if database_url:
        settings = replace(settings, database_url=database_url)
    return settings


def _sync_config() -> SyncConfig:
    try:
        return SyncConfig.from_env()
    except ValueError as exc:
        _fail(str(exc))


def _ledger_client(settings: Settings):
    from .ledger_client import LedgerClient

    try:
        token = EnvCredentialStore().api_token()
    except LunchSyncError as exc:
        _fail(str(exc))
    return LedgerClient(token, base_url=settings.api_url, timeout=settings.request_timeout)


def _build_source(feed: Path | None, mcc_table: Path | None, simulate: bool):
    from .mcc import MCC_DESCRIPTIONS, load_mcc_table
    from .source import JsonFeedSource, SimulatedSource

    if simulate:
        return SimulatedSource.demo()
    feed = feed or (Path(os.environ[FEED_ENV]) if os.getenv(FEED_ENV) else None)
    if feed is None:
        _fail(f"no wallet source configured; pass --feed, set {FEED_ENV}, or use --simulate")
    table = None
    if mcc_table is not None:
        try:
            table = {**MCC_DESCRIPTIONS, **load_mcc_table(mcc_table)}
        except (OSError, ValueError) as exc:
            _fail(f"failed to load MCC table: {exc}")
    return JsonFeedSource(feed, mcc_table=table)


class _EchoNotifier:
    def notify(self, title: str, body: str) -> None:
        typer.echo(f"{title}: {body}")


def _echo_progress(progress: SyncProgress) -> None:
    typer.echo(f"[{progress.current}/{progress.total}] {progress.status}")


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Sync wallet transactions and balances to a Lunch Money-style budgeting ledger. "
        "Loads DATABASE_URL and LUNCHSYNC_API_TOKEN from a local .env before running."
    ),
)

DATABASE_URL_OPTION = typer.Option(None, help="Override DATABASE_URL (falls back to env var).")


@app.command("init-db")
def init_db_cmd(database_url: str | None = DATABASE_URL_OPTION) -> None:
    """Create the record store tables (use Alembic for managed databases)."""

    from lunchsync_db.client import init_schema

    try:
        engine = init_schema(database_url=_settings(database_url).database_url)
    except RuntimeError as exc:
        _fail(str(exc))
    typer.echo(f"Initialized schema on {engine.url.render_as_string(hide_password=True)}")


@app.command("sync")
def sync_cmd(
    tag: str = typer.Option("CLI", help="Log tag identifying this trigger."),
    auto_push: bool | None = typer.Option(
        None,
        "--auto-push/--no-auto-push",
        help=(
            "Push pending transactions "
            "(default: on for interactive runs, else LUNCHSYNC_AUTO_IMPORT)."
        ),
    ),
    feed: Path | None = typer.Option(None, help="Wallet export JSON file.", dir_okay=False),
    mcc_table: Path | None = typer.Option(None, help="Extra MCC descriptions (JSON list)."),
    simulate: bool = typer.Option(False, help="Use built-in sample accounts instead of a feed."),
    interactive: bool = typer.Option(
        True, "--interactive/--background", help="Interactive runs report errors and notify."
    ),
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Run one full sync cycle."""

    from .orchestrator import SyncOrchestrator

    settings = _settings(database_url)
    config = _sync_config()
    source = _build_source(feed, mcc_table, simulate)
    push = auto_push if auto_push is not None else (interactive or config.auto_import)

    with _open_store(settings.database_url) as store:
        orchestrator = SyncOrchestrator(
            store,
            source,
            EnvCredentialStore(),
            config=config,
            settings=settings,
            notifier=_EchoNotifier(),
        )
        try:
            report = orchestrator.run_cycle(
                tag,
                auto_push=push,
                categorize_enabled=config.categorize_incoming,
                progress=_echo_progress if interactive else None,
                interactive=interactive,
                show_alert=interactive,
            )
        except LunchSyncError as exc:
            _fail(str(exc))

    if report.credential_missing:
        typer.echo("Skipped: no API token configured")
        return
    typer.echo(
        f"fetched={report.fetched} created={report.created} updated={report.updated} "
        f"unchanged={report.unchanged} pending={report.pending_count} "
        f"uncategorized={report.uncategorized_count}"
    )


@app.command("push")
def push_cmd(
    tag: str = typer.Option("CLI", help="Log tag identifying this trigger."),
    retry_forever: bool = typer.Option(
        False, help="Retry each failing transaction until it succeeds (Ctrl-C to stop)."
    ),
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Push pending transactions without fetching from the wallet."""

    from .cycle_log import CycleLog
    from .models import RetryPolicy
    from .push import push_pending

    settings = _settings(database_url)
    policy = (
        RetryPolicy.unbounded(settings.push_backoff_seconds)
        if retry_forever
        else settings.retry_policy()
    )
    client = _ledger_client(settings)
    with client, _open_store(settings.database_url) as store:
        report = push_pending(
            store,
            client,
            config=_sync_config(),
            log=CycleLog(store, tag),
            policy=policy,
            progress=_echo_progress,
        )
    typer.echo(
        f"pushed={report.completed} failed={report.never} "
        f"left_pending={report.untouched} total={report.total}"
    )


@app.command("requeue")
def requeue_cmd(
    transaction_ids: list[str] | None = typer.Argument(
        None, help="Transaction ids to requeue (default: every 'never' transaction)."
    ),
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Move transactions back to pending so the next push retries them."""

    from .maintenance import requeue

    with _open_store(_settings(database_url).database_url) as store:
        moved = requeue(store, transaction_ids or None)
    typer.echo(f"Requeued {moved} transaction(s)")


@app.command("cleanup")
def cleanup_cmd(
    older_than_days: int = typer.Option(..., min=0, help="Purge synced rows older than N days."),
    dry_run: bool = typer.Option(False, help="Only report how many rows would be deleted."),
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Delete settled (complete/never) transactions older than the cutoff."""

    from .maintenance import count_older_than, purge_transactions_older_than

    with _open_store(_settings(database_url).database_url) as store:
        if dry_run:
            n = count_older_than(store, older_than_days)
            typer.echo(f"{n} transaction(s) would be deleted")
            return
        n = purge_transactions_older_than(store, older_than_days)
    typer.echo(f"Deleted {n} transaction(s)")


@app.command("accounts")
def accounts_cmd(database_url: str | None = DATABASE_URL_OPTION) -> None:
    """List wallet accounts known to the record store."""

    with _open_store(_settings(database_url).database_url) as store:
        for acct in store.accounts():
            flags = "sync" if acct.sync_enabled else "off"
            if acct.sync_balance_only:
                flags += ",balance-only"
            link = acct.remote_asset_name or acct.remote_asset_id or "-"
            typer.echo(
                f"{acct.id}\t{acct.name}\t{format_currency(acct.balance)}\t{flags}\t{link}"
            )


@app.command("link-account")
def link_account_cmd(
    account_id: str = typer.Argument(..., help="Wallet account id."),
    asset_id: int | None = typer.Argument(None, help="Remote asset id (omit with --unlink)."),
    unlink: bool = typer.Option(False, help="Remove the remote link and disable sync."),
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Pair a wallet account with a remote asset."""

    from .accounts import link_account, unlink_account

    settings = _settings(database_url)
    if unlink:
        with _open_store(settings.database_url) as store:
            try:
                unlink_account(store, account_id)
            except KeyError as exc:
                _fail(str(exc.args[0]))
        typer.echo(f"Unlinked {account_id}")
        return
    if asset_id is None:
        _fail("asset id is required unless --unlink is given")

    with _ledger_client(settings) as client:
        try:
            assets = client.get_assets()
        except LunchSyncError as exc:
            _fail(str(exc))
    asset = next((a for a in assets if a.id == asset_id), None)
    if asset is None:
        _fail(f"remote asset {asset_id} not found")
    with _open_store(settings.database_url) as store:
        try:
            link_account(store, account_id, asset)
        except KeyError as exc:
            _fail(str(exc.args[0]))
    typer.echo(f"Linked {account_id} to {asset.display_name or asset.name}")


@app.command("toggle-account")
def toggle_account_cmd(
    account_id: str = typer.Argument(..., help="Wallet account id."),
    enabled: bool | None = typer.Option(None, "--enable/--disable", help="Sync this account."),
    balance_only: bool | None = typer.Option(
        None, "--balance-only/--full", help="Only push the balance, not transactions."
    ),
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Change an account's sync flags."""

    from .accounts import set_sync_flags

    if enabled is None and balance_only is None:
        _fail("nothing to change; pass --enable/--disable and/or --balance-only/--full")
    with _open_store(_settings(database_url).database_url) as store:
        try:
            row = set_sync_flags(store, account_id, enabled=enabled, balance_only=balance_only)
        except KeyError as exc:
            _fail(str(exc.args[0]))
        typer.echo(
            f"{row.id}\tsync={'on' if row.sync_enabled else 'off'}\t"
            f"balance_only={'on' if row.sync_balance_only else 'off'}"
        )


@app.command("assets")
def assets_cmd(
    active_only: bool = typer.Option(
        False, help="Only assets with a transaction in the last 30 days."
    ),
) -> None:
    """List remote assets."""

    settings = _settings(None)
    with _ledger_client(settings) as client:
        try:
            assets = (
                client.assets_with_recent_transactions() if active_only else client.get_assets()
            )
        except LunchSyncError as exc:
            _fail(str(exc))
    for asset in assets:
        name = asset.display_name or asset.name
        typer.echo(f"{asset.id}\t{name}\t{asset.type_name}\t{asset.balance}")


@app.command("categories")
def categories_cmd() -> None:
    """List remote categories (ids are used by ``map-category``)."""

    with _ledger_client(_settings(None)) as client:
        try:
            categories = client.get_categories()
        except LunchSyncError as exc:
            _fail(str(exc))
    for cat in categories:
        if cat.archived:
            continue
        typer.echo(f"{cat.id}\t{cat.name}")


@app.command("mappings")
def mappings_cmd(
    unmapped: bool = typer.Option(False, help="Only codes that still need a category."),
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """List classification code mappings."""

    from .categories import list_mappings
    from .models import RemoteCategoryId

    with _open_store(_settings(database_url).database_url) as store:
        for m in list_mappings(store, unmapped_only=unmapped):
            if m.remote_category_id == RemoteCategoryId.SKIP:
                target = "(skip)"
            else:
                target = m.remote_category_name or "(unmapped)"
            typer.echo(f"{m.code}\t{m.local_name}\t{target}")


@app.command("map-category")
def map_category_cmd(
    code: str = typer.Argument(..., help="Classification code (e.g. an MCC)."),
    category_id: int | None = typer.Option(None, help="Remote category id to assign."),
    skip: bool = typer.Option(False, help="Never categorize this code."),
    clear: bool = typer.Option(False, help="Reset the mapping to unmapped."),
    requeue: bool = typer.Option(
        True, help="Re-push stored transactions with this code that lack a category."
    ),
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Assign, skip or clear the remote category for a classification code."""

    from .categories import assign_remote_category, clear_remote_category, skip_category

    chosen = sum([category_id is not None, skip, clear])
    if chosen != 1:
        _fail("pass exactly one of --category-id, --skip or --clear")

    settings = _settings(database_url)
    category = None
    if category_id is not None:
        with _ledger_client(settings) as client:
            try:
                categories = client.get_categories()
            except LunchSyncError as exc:
                _fail(str(exc))
        category = next((c for c in categories if c.id == category_id), None)
        if category is None:
            _fail(f"remote category {category_id} not found")

    with _open_store(settings.database_url) as store:
        try:
            if category is not None:
                n = assign_remote_category(store, code, category, requeue=requeue)
                message = f"Mapped {code} to {category.name} ({n} requeued)"
            elif skip:
                skip_category(store, code)
                message = f"{code} will not be categorized"
            else:
                clear_remote_category(store, code)
                message = f"Cleared mapping for {code}"
        except KeyError as exc:
            _fail(str(exc.args[0]))
    typer.echo(message)


@app.command("logs")
def logs_cmd(
    limit: int = typer.Option(50, min=1, help="Number of entries to show."),
    verbose: bool = typer.Option(False, help="Include detail (level 2) entries."),
    clear: bool = typer.Option(False, help="Delete all stored log entries."),
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Show the sync cycle trail, most recent first."""

    from .maintenance import clear_logs

    with _open_store(_settings(database_url).database_url) as store:
        if clear:
            n = clear_logs(store)
            typer.echo(f"Deleted {n} log entries")
            return
        for entry in store.logs(limit=limit, max_level=None if verbose else 1):
            stamp = entry.logged_at.strftime("%Y-%m-%d %H:%M:%S")
            typer.echo(f"{stamp}\t{entry.prefix}\t{entry.message}")


@app.command("whoami")
def whoami_cmd() -> None:
    """Show the remote ledger user the API token belongs to."""

    with _ledger_client(_settings(None)) as client:
        try:
            user = client.get_user()
        except LunchSyncError as exc:
            _fail(str(exc))
    typer.echo(f"{user.user_name} <{user.user_email}> budget={user.budget_name}")


@app.callback(invoke_without_command=True)
def _root(
    ctx: typer.Context,
    log_level: str | None = typer.Option(
        None, help="Log level (default: LUNCHSYNC_LOG_LEVEL or INFO)."
    ),
) -> None:
    """Root command: load ``.env`` and configure logging."""

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)

    if ctx.invoked_subcommand is None:
        typer.echo("No subcommand provided. Use --help to see available commands.")
        raise typer.Exit(1)


if __name__ == "__main__":  # pragma: no cover - `python -m lunchsync.cli`
    app()
