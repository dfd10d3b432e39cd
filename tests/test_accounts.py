from __future__ import annotations

import pytest
from sqlalchemy.orm import Session

from lunchsync.accounts import link_account, set_sync_flags, unlink_account
from lunchsync.ledger_models import LedgerAsset
from lunchsync.store import RecordStore

from tests.helpers.db import add_account


def test_link_and_unlink(store: RecordStore, session: Session) -> None:
    add_account(session, "a1", "Apple Card", sync_enabled=False)
    asset = LedgerAsset(
        id=12, type_name="credit", name="apple", display_name="Apple Card", balance="0"
    )

    row = link_account(store, "a1", asset)
    assert (row.remote_asset_id, row.remote_asset_name, row.sync_enabled) == (
        "12",
        "Apple Card",
        True,
    )

    row = unlink_account(store, "a1")
    assert (row.remote_asset_id, row.sync_enabled) == ("", False)


def test_set_sync_flags_changes_only_given_flags(store: RecordStore, session: Session) -> None:
    add_account(session, "a1", "Apple Card", remote_asset_id="12")

    row = set_sync_flags(store, "a1", balance_only=True)

    assert row.sync_balance_only is True
    assert row.sync_enabled is True


def test_unknown_account(store: RecordStore) -> None:
    with pytest.raises(KeyError):
        set_sync_flags(store, "missing", enabled=True)
