# ruff: noqa: I001
"""Record store facade over a SQLAlchemy session.

``RecordStore`` gives the sync core keyed lookups, predicate queries and an
explicit ``save``. Rows are the ``lunchsync_db`` ORM models; callers mutate
them in place and call :meth:`RecordStore.save` to commit. A failed commit is
rolled back before the error propagates so the session remains usable for the
next record.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import UTC, date, datetime

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from lunchsync_db.models.ledger import (
    LsAccount,
    LsCategoryMapping,
    LsSyncLog,
    LsTransaction,
    LsTransactionHistory,
)

from .models import RemoteCategoryId, SyncState


class RecordStore:
    """Local persistence used by reconciliation, push and balance sync."""

    def __init__(self, session: Session) -> None:
        self.session = session

    # ---- unit of work ------------------------------------------------------

    def add(self, row: object) -> None:
        self.session.add(row)

    def save(self) -> None:
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def discard(self) -> None:
        """Drop uncommitted changes."""

        self.session.rollback()

    # ---- transactions -------------------------------------------------------

    def get_transaction(self, transaction_id: str) -> LsTransaction | None:
        return self.session.get(LsTransaction, transaction_id)

    def transactions(
        self,
        *,
        states: Iterable[SyncState] | None = None,
        account_id: str | None = None,
        limit: int | None = None,
    ) -> list[LsTransaction]:
        stmt = select(LsTransaction).order_by(LsTransaction.date.desc(), LsTransaction.id)
        if states is not None:
            stmt = stmt.where(LsTransaction.sync_state.in_([s.value for s in states]))
        if account_id is not None:
            stmt = stmt.where(LsTransaction.account_id == account_id)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.session.scalars(stmt))

    def pending_transactions(self, *, synced_accounts_only: bool = False) -> list[LsTransaction]:
        """Pending rows in push order (oldest first).

        ``synced_accounts_only`` drops rows whose account is missing or has
        sync disabled.
        """

        stmt = select(LsTransaction).where(LsTransaction.sync_state == SyncState.PENDING.value)
        if synced_accounts_only:
            stmt = stmt.join(LsAccount, LsAccount.id == LsTransaction.account_id).where(
                LsAccount.sync_enabled.is_(True)
            )
        stmt = stmt.order_by(LsTransaction.date, LsTransaction.id)
        return list(self.session.scalars(stmt))

    def count_transactions(self, state: SyncState) -> int:
        stmt = (
            select(func.count())
            .select_from(LsTransaction)
            .where(LsTransaction.sync_state == state.value)
        )
        return int(self.session.scalar(stmt) or 0)

    def transactions_with_code(self, code: str) -> list[LsTransaction]:
        stmt = select(LsTransaction).where(LsTransaction.classification_code == code)
        return list(self.session.scalars(stmt))

    def append_history(
        self, row: LsTransaction, note: str, *, source_tag: str, at: datetime | None = None
    ) -> LsTransactionHistory:
        entry = LsTransactionHistory(
            recorded_at=at or datetime.now(UTC),
            note=note,
            source_tag=source_tag,
        )
        row.history.append(entry)
        return entry

    def delete_transaction(self, row: LsTransaction) -> None:
        self.session.delete(row)

    # ---- retention ----------------------------------------------------------

    def _older_than(self, cutoff: date, states: Sequence[SyncState]):
        return (LsTransaction.date < cutoff) & LsTransaction.sync_state.in_(
            [s.value for s in states]
        )

    def count_older_than(self, cutoff: date, states: Sequence[SyncState]) -> int:
        stmt = select(func.count()).select_from(LsTransaction).where(
            self._older_than(cutoff, states)
        )
        return int(self.session.scalar(stmt) or 0)

    def purge_older_than(self, cutoff: date, states: Sequence[SyncState]) -> int:
        """Delete matching transactions and their history; returns the row count."""

        ids = list(
            self.session.scalars(select(LsTransaction.id).where(self._older_than(cutoff, states)))
        )
        if not ids:
            return 0
        self.session.execute(
            delete(LsTransactionHistory).where(LsTransactionHistory.transaction_id.in_(ids))
        )
        self.session.execute(delete(LsTransaction).where(LsTransaction.id.in_(ids)))
        self.session.expire_all()
        return len(ids)

    # ---- accounts -----------------------------------------------------------

    def get_account(self, account_id: str) -> LsAccount | None:
        return self.session.get(LsAccount, account_id)

    def accounts(self) -> list[LsAccount]:
        return list(self.session.scalars(select(LsAccount).order_by(LsAccount.name)))

    def synced_accounts(self) -> list[LsAccount]:
        stmt = select(LsAccount).where(LsAccount.sync_enabled.is_(True)).order_by(LsAccount.name)
        return list(self.session.scalars(stmt))

    # ---- category mappings -------------------------------------------------

    def get_mapping(self, code: str) -> LsCategoryMapping | None:
        return self.session.get(LsCategoryMapping, code)

    def mappings(self, *, unmapped_only: bool = False) -> list[LsCategoryMapping]:
        stmt = select(LsCategoryMapping).order_by(LsCategoryMapping.local_name)
        if unmapped_only:
            stmt = stmt.where(
                LsCategoryMapping.remote_category_id == RemoteCategoryId.UNMAPPED.value
            )
        return list(self.session.scalars(stmt))

    def count_unmapped(self) -> int:
        stmt = (
            select(func.count())
            .select_from(LsCategoryMapping)
            .where(LsCategoryMapping.remote_category_id == RemoteCategoryId.UNMAPPED.value)
        )
        return int(self.session.scalar(stmt) or 0)

    # ---- cycle logs ---------------------------------------------------------

    def append_log(self, prefix: str, message: str, level: int, *, at: datetime) -> LsSyncLog:
        entry = LsSyncLog(logged_at=at, prefix=prefix, message=message, level=level)
        self.session.add(entry)
        return entry

    def logs(self, *, limit: int = 100, max_level: int | None = None) -> list[LsSyncLog]:
        """Most recent log rows first."""

        stmt = select(LsSyncLog).order_by(LsSyncLog.id.desc()).limit(limit)
        if max_level is not None:
            stmt = stmt.where(LsSyncLog.level <= max_level)
        return list(self.session.scalars(stmt))

    def clear_logs(self) -> int:
        result = self.session.execute(delete(LsSyncLog))
        return int(result.rowcount or 0)


__all__ = ["RecordStore"]
