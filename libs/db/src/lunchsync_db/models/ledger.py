from __future__ import annotations

from datetime import UTC, date, datetime
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# Surrogate keys are BIGINT on Postgres but must be INTEGER on SQLite to get
# rowid autoincrement semantics.
_SurrogateKey = BigInteger().with_variant(Integer(), "sqlite")

SYNC_STATES: tuple[str, ...] = ("pending", "complete", "never", "skipped")


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    pass


# ---------------------------
# Reference: ls_category_mappings
# ---------------------------


class LsCategoryMapping(Base):
    __tablename__ = "ls_category_mappings"

    # Source-side merchant classification code (e.g. an MCC).
    code: Mapped[str] = mapped_column(String, primary_key=True)
    local_name: Mapped[str] = mapped_column(Text, nullable=False)
    # Empty until the user maps it; "0" means "do not categorize".
    remote_category_id: Mapped[str] = mapped_column(
        String, nullable=False, default="", server_default=text("''")
    )
    remote_category_name: Mapped[str] = mapped_column(
        Text, nullable=False, default="", server_default=text("''")
    )
    remote_description: Mapped[str] = mapped_column(
        Text, nullable=False, default="", server_default=text("''")
    )
    exclude_from_budget: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    exclude_from_totals: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )


# ---------------------------
# Core: ls_accounts
# ---------------------------


class LsAccount(Base):
    __tablename__ = "ls_accounts"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    institution_name: Mapped[str] = mapped_column(
        Text, nullable=False, default="", server_default=text("''")
    )
    balance: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), nullable=False, default=Decimal("0.00"), server_default=text("0")
    )
    # Remote asset link; empty means the account is not linked.
    remote_asset_id: Mapped[str] = mapped_column(
        String, nullable=False, default="", server_default=text("''")
    )
    remote_asset_name: Mapped[str] = mapped_column(
        Text, nullable=False, default="", server_default=text("''")
    )
    sync_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    sync_balance_only: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    last_updated: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )


# ---------------------------
# Core: ls_transactions
# ---------------------------


class LsTransaction(Base):
    __tablename__ = "ls_transactions"

    # Source-assigned identifier; doubles as the remote ``external_id``.
    id: Mapped[str] = mapped_column(String, primary_key=True)
    account_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    account_name: Mapped[str] = mapped_column(
        Text, nullable=False, default="", server_default=text("''")
    )
    payee: Mapped[str] = mapped_column(Text, nullable=False, default="")
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default=text("''"))
    is_pending: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    classification_code: Mapped[str | None] = mapped_column(String, nullable=True)
    classification_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    remote_category_id: Mapped[str | None] = mapped_column(String, nullable=True)
    remote_category_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    remote_id: Mapped[str] = mapped_column(
        String, nullable=False, default="", server_default=text("''")
    )
    remote_account_ref: Mapped[str] = mapped_column(
        String, nullable=False, default="", server_default=text("''")
    )
    sync_state: Mapped[str] = mapped_column(
        String, nullable=False, default="pending", server_default=text("'pending'"), index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    history: Mapped[list[LsTransactionHistory]] = relationship(
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="LsTransactionHistory.id",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint(
            "sync_state in ('pending','complete','never','skipped')",
            name="ck_ls_tx_sync_state",
        ),
    )


class LsTransactionHistory(Base):
    __tablename__ = "ls_transaction_history"

    id: Mapped[int] = mapped_column(_SurrogateKey, primary_key=True, autoincrement=True)
    transaction_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("ls_transactions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    note: Mapped[str] = mapped_column(Text, nullable=False)
    # Trigger tag of the cycle that wrote the entry (e.g. "BGF", "CLI").
    source_tag: Mapped[str] = mapped_column(String, nullable=False)

    transaction: Mapped[LsTransaction] = relationship(back_populates="history")


# ---------------------------
# Observability: ls_sync_logs
# ---------------------------


class LsSyncLog(Base):
    __tablename__ = "ls_sync_logs"

    id: Mapped[int] = mapped_column(_SurrogateKey, primary_key=True, autoincrement=True)
    logged_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    prefix: Mapped[str] = mapped_column(String, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)


__all__ = [
    "SYNC_STATES",
    "Base",
    "LsAccount",
    "LsCategoryMapping",
    "LsSyncLog",
    "LsTransaction",
    "LsTransactionHistory",
]
