from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from lunchsync import cli as cli_mod
from lunchsync.models import SyncState
from lunchsync.store import RecordStore

from tests.helpers.db import add_mappings, add_transaction, open_session

runner = CliRunner()


@pytest.fixture(autouse=True)
def _cli_env(
    database_url: str, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    # Keep the root callback from attaching handlers to the captured streams.
    monkeypatch.setattr(cli_mod, "configure_logging", lambda *a, **k: None)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DATABASE_URL", database_url)


def _invoke(*args: str):
    return runner.invoke(cli_mod.app, list(args))


def test_no_subcommand_shows_help() -> None:
    result = _invoke()
    assert "Usage" in result.output


def test_simulated_sync_records_accounts(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LUNCHSYNC_API_TOKEN", "tok")

    result = _invoke("sync", "--simulate", "--no-auto-push", "--background")

    assert result.exit_code == 0, result.output
    assert "fetched=0" in result.output

    listing = _invoke("accounts")
    assert listing.exit_code == 0
    assert "Apple Card" in listing.output
    assert "-$3,000.00" in listing.output


def test_background_sync_without_token_is_skipped() -> None:
    result = _invoke("sync", "--simulate", "--background")

    assert result.exit_code == 0, result.output
    assert "Skipped: no API token configured" in result.output


def test_interactive_sync_without_token_fails() -> None:
    result = _invoke("sync", "--simulate")

    assert result.exit_code == 1
    assert "acquire_credential" in result.output


def test_sync_requires_a_source(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LUNCHSYNC_API_TOKEN", "tok")

    result = _invoke("sync")

    assert result.exit_code == 1
    assert "--simulate" in result.output


def test_toggle_account_flags(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LUNCHSYNC_API_TOKEN", "tok")
    _invoke("sync", "--simulate", "--no-auto-push", "--background")

    result = _invoke("toggle-account", "111111111", "--enable", "--balance-only")

    assert result.exit_code == 0, result.output
    assert "sync=on" in result.output
    assert "balance_only=on" in result.output

    missing = _invoke("toggle-account", "999", "--enable")
    assert missing.exit_code == 1


def test_mapping_commands(database_url: str) -> None:
    session = open_session(database_url)
    add_mappings(session, [("5411", "Grocery Stores", "", "")])
    session.close()

    listed = _invoke("mappings", "--unmapped")
    assert "5411\tGrocery Stores\t(unmapped)" in listed.output

    skipped = _invoke("map-category", "5411", "--skip")
    assert skipped.exit_code == 0, skipped.output
    assert "5411\tGrocery Stores\t(skip)" in _invoke("mappings").output

    both = _invoke("map-category", "5411", "--skip", "--clear")
    assert both.exit_code == 1


def test_requeue_and_cleanup(database_url: str) -> None:
    session = open_session(database_url)
    add_transaction(session, "t1", sync_state="never")
    add_transaction(session, "t2", sync_state="complete")
    session.close()

    assert "Requeued 1 transaction(s)" in _invoke("requeue").output
    preview = _invoke("cleanup", "--older-than-days", "0", "--dry-run")
    assert "1 transaction(s) would be deleted" in preview.output
    assert "Deleted 1 transaction(s)" in _invoke("cleanup", "--older-than-days", "0").output

    check = open_session(database_url)
    store = RecordStore(check)
    assert [t.id for t in store.transactions()] == ["t1"]
    assert store.get_transaction("t1").sync_state == SyncState.PENDING  # type: ignore[union-attr]
    check.close()


def test_logs_listing_and_clear(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LUNCHSYNC_API_TOKEN", "tok")
    _invoke("sync", "--simulate", "--no-auto-push", "--background", "--tag", "CLI")

    logs = _invoke("logs")
    assert "\tCLI\tStarting transaction fetch" in logs.output

    cleared = _invoke("logs", "--clear")
    assert cleared.exit_code == 0
    assert _invoke("logs").output == ""


def test_missing_database_url(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("DATABASE_URL")

    result = _invoke("accounts")

    assert result.exit_code == 1
    assert "DATABASE_URL" in result.output
