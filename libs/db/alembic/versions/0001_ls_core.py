# ruff: noqa: I001
"""Record store core tables: transactions, history, accounts, mappings, logs.

Revision ID: 0001_ls_core
Revises: None
Create Date: 2026-10-19
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_ls_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "ls_category_mappings",
        sa.Column("code", sa.String(), primary_key=True),
        sa.Column("local_name", sa.Text(), nullable=False),
        sa.Column("remote_category_id", sa.String(), nullable=False, server_default=""),
        sa.Column("remote_category_name", sa.Text(), nullable=False, server_default=""),
        sa.Column("remote_description", sa.Text(), nullable=False, server_default=""),
        sa.Column(
            "exclude_from_budget", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column(
            "exclude_from_totals", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        *_timestamps(),
    )

    op.create_table(
        "ls_accounts",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("institution_name", sa.Text(), nullable=False, server_default=""),
        sa.Column("balance", sa.Numeric(18, 2), nullable=False, server_default="0"),
        sa.Column("remote_asset_id", sa.String(), nullable=False, server_default=""),
        sa.Column("remote_asset_name", sa.Text(), nullable=False, server_default=""),
        sa.Column("sync_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "sync_balance_only", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("last_updated", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "ls_transactions",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("account_id", sa.String(), nullable=False),
        sa.Column("account_name", sa.Text(), nullable=False, server_default=""),
        sa.Column("payee", sa.Text(), nullable=False),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=False, server_default=""),
        sa.Column("is_pending", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("classification_code", sa.String(), nullable=True),
        sa.Column("classification_name", sa.Text(), nullable=True),
        sa.Column("remote_category_id", sa.String(), nullable=True),
        sa.Column("remote_category_name", sa.Text(), nullable=True),
        sa.Column("remote_id", sa.String(), nullable=False, server_default=""),
        sa.Column("remote_account_ref", sa.String(), nullable=False, server_default=""),
        sa.Column("sync_state", sa.String(), nullable=False, server_default="pending"),
        *_timestamps(),
        sa.CheckConstraint(
            "sync_state in ('pending','complete','never','skipped')",
            name="ck_ls_tx_sync_state",
        ),
    )
    op.create_index("ix_ls_transactions_account_id", "ls_transactions", ["account_id"])
    op.create_index("ix_ls_transactions_date", "ls_transactions", ["date"])
    op.create_index("ix_ls_transactions_sync_state", "ls_transactions", ["sync_state"])

    op.create_table(
        "ls_transaction_history",
        sa.Column("id", sa.BigInteger().with_variant(sa.Integer(), "sqlite"), primary_key=True),
        sa.Column(
            "transaction_id",
            sa.String(),
            sa.ForeignKey("ls_transactions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("note", sa.Text(), nullable=False),
        sa.Column("source_tag", sa.String(), nullable=False),
    )
    op.create_index(
        "ix_ls_transaction_history_transaction_id",
        "ls_transaction_history",
        ["transaction_id"],
    )

    op.create_table(
        "ls_sync_logs",
        sa.Column("id", sa.BigInteger().with_variant(sa.Integer(), "sqlite"), primary_key=True),
        sa.Column("logged_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("prefix", sa.String(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("level", sa.Integer(), nullable=False, server_default="1"),
    )


def downgrade() -> None:
    op.drop_table("ls_sync_logs")
    op.drop_index(
        "ix_ls_transaction_history_transaction_id", table_name="ls_transaction_history"
    )
    op.drop_table("ls_transaction_history")
    op.drop_index("ix_ls_transactions_sync_state", table_name="ls_transactions")
    op.drop_index("ix_ls_transactions_date", table_name="ls_transactions")
    op.drop_index("ix_ls_transactions_account_id", table_name="ls_transactions")
    op.drop_table("ls_transactions")
    op.drop_table("ls_accounts")
    op.drop_table("ls_category_mappings")
