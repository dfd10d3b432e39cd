"""Account upsert and balance push.

Every wallet account is upserted into the store (new accounts are recorded
with sync disabled until the user links them). Accounts that are enabled and
linked to a remote asset have their balance pushed; those pushes fan out over
a small thread pool and the caller waits for all of them. Store writes stay
on the calling thread. Failures are logged and never abort the cycle.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime

from sqlalchemy.exc import SQLAlchemyError

from .cycle_log import CycleLog
from .ledger_client import LedgerAPI
from .ledger_models import UpdateAssetRequest
from .models import CandidateAccount, ReconcileResult, format_amount, parse_remote_id
from .pmap import p_map
from .reconcile import upsert_account
from .store import RecordStore


@dataclass(frozen=True, slots=True)
class BalancePush:
    account_id: str
    account_name: str
    asset_id: int
    request: UpdateAssetRequest


@dataclass(frozen=True, slots=True)
class BalancePushResult:
    push: BalancePush
    error: Exception | None = None


@dataclass(slots=True)
class BalanceReport:
    accounts: int = 0
    created: int = 0
    updated: int = 0
    pushed: int = 0
    failed: list[str] = field(default_factory=list)


def _push_one(client: LedgerAPI, push: BalancePush) -> BalancePushResult:
    try:
        client.update_asset(push.asset_id, push.request)
    except Exception as exc:  # noqa: BLE001
        return BalancePushResult(push, exc)
    return BalancePushResult(push)


def sync_account_balances(
    store: RecordStore,
    client: LedgerAPI | None,
    accounts: Sequence[CandidateAccount],
    *,
    log: CycleLog,
    concurrency: int = 4,
) -> BalanceReport:
    """Upsert ``accounts`` and push balances of linked ones.

    ``client`` may be None to only refresh the local rows.
    """

    report = BalanceReport(accounts=len(accounts))
    pushes: list[BalancePush] = []
    for candidate in accounts:
        try:
            result = upsert_account(store, candidate)
        except SQLAlchemyError as exc:
            log.add(f"Failed to save account {candidate.name}: {exc}")
            continue
        if result is ReconcileResult.CREATED:
            report.created += 1
        elif result is ReconcileResult.UPDATED:
            report.updated += 1

        row = store.get_account(candidate.id)
        if row is None or not row.sync_enabled:
            continue
        asset_id = parse_remote_id(row.remote_asset_id)
        if asset_id is None:
            continue
        as_of = row.last_updated or datetime.now(UTC)
        pushes.append(
            BalancePush(
                account_id=row.id,
                account_name=row.name,
                asset_id=asset_id,
                request=UpdateAssetRequest(
                    balance=format_amount(row.balance), balance_as_of=as_of.isoformat()
                ),
            )
        )

    if client is None or not pushes:
        return report

    results = p_map(pushes, lambda p: _push_one(client, p), concurrency=concurrency)
    for res in results:
        if res.error is not None:
            report.failed.append(res.push.account_id)
            log.add(f"Failed to update balance for {res.push.account_name}: {res.error}")
        else:
            report.pushed += 1
            log.add(f"Updated balance for {res.push.account_name}", 2)
    return report


__all__ = ["BalancePush", "BalancePushResult", "BalanceReport", "sync_account_balances"]
