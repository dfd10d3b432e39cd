"""User-driven account settings: remote asset link and sync flags."""

from __future__ import annotations

from lunchsync_db.models.ledger import LsAccount

from .ledger_models import LedgerAsset
from .models import AccountPatch
from .store import RecordStore


def update_account(store: RecordStore, account_id: str, patch: AccountPatch) -> LsAccount:
    """Apply ``patch`` to a stored account and commit. Raises KeyError if unknown."""

    row = store.get_account(account_id)
    if row is None:
        raise KeyError(f"unknown account {account_id!r}")
    for name, value in patch.items():
        setattr(row, name, value)
    store.save()
    return row


def link_account(
    store: RecordStore, account_id: str, asset: LedgerAsset, *, enable: bool = True
) -> LsAccount:
    """Pair a wallet account with a remote asset (and enable sync by default)."""

    return update_account(
        store,
        account_id,
        AccountPatch(
            remote_asset_id=str(asset.id),
            remote_asset_name=asset.display_name or asset.name,
            sync_enabled=True if enable else None,
        ),
    )


def unlink_account(store: RecordStore, account_id: str) -> LsAccount:
    return update_account(
        store,
        account_id,
        AccountPatch(remote_asset_id="", remote_asset_name="", sync_enabled=False),
    )


def set_sync_flags(
    store: RecordStore,
    account_id: str,
    *,
    enabled: bool | None = None,
    balance_only: bool | None = None,
) -> LsAccount:
    return update_account(
        store, account_id, AccountPatch(sync_enabled=enabled, sync_balance_only=balance_only)
    )


__all__ = ["link_account", "set_sync_flags", "unlink_account", "update_account"]
