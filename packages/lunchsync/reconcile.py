"""Reconciliation of candidate records against the record store.

Transactions are keyed by their source id. A stored row is only touched when
the incoming record carries a real change, and for descriptive fields
(payee, notes, classification and remote category) a blank incoming value
never overwrites a stored one ("non-empty wins"). Amount, pending flag and
date are compared plainly.

Every content change forces the row back to ``pending`` and appends exactly
one history entry that itemizes the transitions. Inserting a new row writes
no history.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from lunchsync_db.models.ledger import LsAccount, LsTransaction

from .models import (
    AccountPatch,
    CandidateAccount,
    CandidateTransaction,
    FieldChange,
    PushOutcome,
    ReconcileResult,
    SyncState,
    TransactionField,
    TransactionPatch,
    quantize_amount,
)
from .store import RecordStore

# Fields where a blank incoming value is treated as "no information".
NON_EMPTY_WINS: frozenset[TransactionField] = frozenset(
    {
        TransactionField.PAYEE,
        TransactionField.NOTES,
        TransactionField.CLASSIFICATION_CODE,
        TransactionField.CLASSIFICATION_NAME,
        TransactionField.REMOTE_CATEGORY_ID,
        TransactionField.REMOTE_CATEGORY_NAME,
    }
)

# Comparison (and history) order.
DIFF_ORDER: tuple[TransactionField, ...] = (
    TransactionField.PAYEE,
    TransactionField.AMOUNT,
    TransactionField.DATE,
    TransactionField.NOTES,
    TransactionField.IS_PENDING,
    TransactionField.CLASSIFICATION_CODE,
    TransactionField.CLASSIFICATION_NAME,
    TransactionField.REMOTE_CATEGORY_ID,
    TransactionField.REMOTE_CATEGORY_NAME,
)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def diff_transaction(stored: LsTransaction, incoming: CandidateTransaction) -> TransactionPatch:
    """Return the content changes ``incoming`` would apply to ``stored``."""

    changes: list[FieldChange] = []
    for field in DIFF_ORDER:
        new = getattr(incoming, field.value)
        if field in NON_EMPTY_WINS and _is_blank(new):
            continue
        if field is TransactionField.AMOUNT:
            new = quantize_amount(new)
        old = getattr(stored, field.value)
        if old != new:
            changes.append(FieldChange(field, old, new))
    return TransactionPatch(tuple(changes))


def apply_patch(row: LsTransaction, patch: TransactionPatch) -> None:
    for change in patch.changes:
        setattr(row, change.field.value, change.new)


def new_transaction_row(incoming: CandidateTransaction) -> LsTransaction:
    return LsTransaction(
        id=incoming.id,
        account_id=incoming.account_id,
        account_name=incoming.account_name,
        payee=incoming.payee,
        amount=quantize_amount(incoming.amount),
        date=incoming.date,
        notes=incoming.notes,
        is_pending=incoming.is_pending,
        classification_code=incoming.classification_code,
        classification_name=incoming.classification_name,
        remote_category_id=incoming.remote_category_id,
        remote_category_name=incoming.remote_category_name,
        remote_id=incoming.remote_id,
        remote_account_ref=incoming.remote_account_ref,
        sync_state=incoming.sync_state.value,
    )


def reconcile_transaction(
    store: RecordStore,
    incoming: CandidateTransaction,
    *,
    tag: str,
    at: datetime | None = None,
) -> ReconcileResult:
    """Insert or update one transaction and commit it.

    Raises whatever the store raises on commit; the store has already rolled
    the failed write back, so callers may log and continue with the next
    record.
    """

    stored = store.get_transaction(incoming.id)
    if stored is None:
        store.add(new_transaction_row(incoming))
        store.save()
        return ReconcileResult.CREATED

    patch = diff_transaction(stored, incoming)
    if not patch:
        return ReconcileResult.UNCHANGED

    apply_patch(stored, patch)
    stored.remote_id = incoming.remote_id
    stored.remote_account_ref = incoming.remote_account_ref
    stored.sync_state = SyncState.PENDING.value
    store.append_history(stored, patch.summary(), source_tag=tag, at=at)
    store.save()
    return ReconcileResult.UPDATED


def apply_push_outcome(
    store: RecordStore,
    row: LsTransaction,
    outcome: PushOutcome,
    *,
    tag: str,
    at: datetime | None = None,
) -> bool:
    """Write a push result onto ``row`` (uncommitted). Returns False when untouched."""

    if outcome.sync_state is None:
        return False
    if outcome.remote_id is not None:
        row.remote_id = outcome.remote_id
    if outcome.remote_account_ref is not None:
        row.remote_account_ref = outcome.remote_account_ref
    row.sync_state = outcome.sync_state.value
    if outcome.history_note:
        store.append_history(row, outcome.history_note, source_tag=tag, at=at or datetime.now(UTC))
    return True


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timezone-aware columns back naive, in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _same_value(stored: Any, new: Any) -> bool:
    if isinstance(stored, datetime) and isinstance(new, datetime):
        return _as_utc(stored) == _as_utc(new)
    return stored == new


def upsert_account(
    store: RecordStore,
    candidate: CandidateAccount,
    patch: AccountPatch | None = None,
) -> ReconcileResult:
    """Create or refresh an account row and commit it.

    ``patch`` selects the fields to refresh on an existing row; by default only
    the balance and its timestamp are taken from the source. User-owned fields
    (remote link, sync flags) are never touched unless the patch names them.
    """

    row = store.get_account(candidate.id)
    if patch is None:
        balance = quantize_amount(candidate.balance)
        last_updated = candidate.last_updated
        if last_updated is None and (row is None or row.balance != balance):
            last_updated = datetime.now(UTC)
        patch = AccountPatch(balance=balance, last_updated=last_updated)

    if row is None:
        row = LsAccount(
            id=candidate.id,
            name=candidate.name,
            institution_name=candidate.institution_name,
            balance=quantize_amount(candidate.balance),
            last_updated=candidate.last_updated,
        )
        for name, value in patch.items():
            setattr(row, name, value)
        store.add(row)
        store.save()
        return ReconcileResult.CREATED

    changed = False
    for name, value in patch.items():
        if not _same_value(getattr(row, name), value):
            setattr(row, name, value)
            changed = True
    if not changed:
        return ReconcileResult.UNCHANGED
    store.save()
    return ReconcileResult.UPDATED


__all__ = [
    "DIFF_ORDER",
    "NON_EMPTY_WINS",
    "apply_patch",
    "apply_push_outcome",
    "diff_transaction",
    "new_transaction_row",
    "reconcile_transaction",
    "upsert_account",
]
