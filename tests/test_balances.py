from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from lunchsync.balances import sync_account_balances
from lunchsync.cycle_log import CycleLog
from lunchsync.models import CandidateAccount
from lunchsync.store import RecordStore

from tests.helpers.db import add_account
from tests.helpers.fakes import FakeLedger

AS_OF = datetime(2024, 5, 12, 7, 0, tzinfo=UTC)


def _candidates() -> list[CandidateAccount]:
    return [
        CandidateAccount("a1", "Apple Card", balance=Decimal("10.00"), last_updated=AS_OF),
        CandidateAccount("a2", "Visa Card", balance=Decimal("-5.5"), last_updated=AS_OF),
        CandidateAccount("a3", "Savings", balance=Decimal("99.99"), last_updated=AS_OF),
        CandidateAccount("a4", "New Account", balance=Decimal("1.00"), last_updated=AS_OF),
    ]


def test_balances_pushed_for_enabled_linked_accounts(store: RecordStore, session: Session) -> None:
    add_account(session, "a1", "Apple Card", remote_asset_id="11")
    add_account(session, "a2", "Visa Card", remote_asset_id="22")
    add_account(session, "a3", "Savings", remote_asset_id="33", sync_enabled=False)
    ledger = FakeLedger()

    report = sync_account_balances(
        store, ledger, _candidates(), log=CycleLog(store, "T"), concurrency=2
    )

    assert (report.accounts, report.created, report.updated) == (4, 1, 3)
    assert report.pushed == 2
    assert sorted(ledger.assets) == [11, 22]
    assert ledger.assets[22].balance == "-5.50"
    assert ledger.assets[11].balance_as_of is not None
    assert ledger.assets[11].balance_as_of.startswith("2024-05-12T07:00:00")
    new = store.get_account("a4")
    assert new is not None and new.sync_enabled is False


def test_one_failing_push_does_not_stop_the_others(store: RecordStore, session: Session) -> None:
    add_account(session, "a1", "Apple Card", remote_asset_id="11")
    add_account(session, "a2", "Visa Card", remote_asset_id="22")
    ledger = FakeLedger()
    ledger.failing_assets = {11}
    log = CycleLog(store, "T")

    report = sync_account_balances(store, ledger, _candidates()[:2], log=log)

    assert report.failed == ["a1"]
    assert report.pushed == 1
    assert 22 in ledger.assets
    messages = [e.message for e in store.logs()]
    assert any("Failed to update balance for Apple Card" in m for m in messages)


def test_without_client_only_local_rows_are_refreshed(
    store: RecordStore, session: Session
) -> None:
    add_account(session, "a1", "Apple Card", balance="1.00", remote_asset_id="11")

    report = sync_account_balances(store, None, _candidates()[:1], log=CycleLog(None, "T"))

    assert report.pushed == 0
    row = store.get_account("a1")
    assert row is not None
    assert row.balance == Decimal("10.00")
