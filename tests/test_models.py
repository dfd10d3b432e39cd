from __future__ import annotations

from datetime import UTC, date, datetime
from decimal import Decimal

import pytest

from lunchsync.models import (
    AccountPatch,
    AvailableAndBookedBalance,
    AvailableBalance,
    BalanceAmount,
    BookedBalance,
    CreditDebit,
    FieldChange,
    TransactionField,
    TransactionPatch,
    format_currency,
    is_categorizable,
    normalize_balance,
    parse_remote_id,
)

AS_OF = datetime(2024, 5, 1, 8, 0, tzinfo=UTC)


def _amt(value: str, indicator: CreditDebit) -> BalanceAmount:
    return BalanceAmount(Decimal(value), indicator, AS_OF)


@pytest.mark.parametrize(
    ("balance", "expected"),
    [
        (AvailableBalance(_amt("3000", CreditDebit.DEBIT)), Decimal("3000.00")),
        (AvailableBalance(_amt("3000", CreditDebit.CREDIT)), Decimal("-3000.00")),
        (BookedBalance(_amt("2000", CreditDebit.DEBIT)), Decimal("2000.00")),
        # Credit line: the available figure is spare credit, so booked wins.
        (
            AvailableAndBookedBalance(
                _amt("9000", CreditDebit.CREDIT), _amt("1000", CreditDebit.DEBIT)
            ),
            Decimal("1000.00"),
        ),
        (
            AvailableAndBookedBalance(
                _amt("250.5", CreditDebit.DEBIT), _amt("300", CreditDebit.DEBIT)
            ),
            Decimal("250.50"),
        ),
    ],
)
def test_normalize_balance(balance, expected: Decimal) -> None:
    amount, as_of = normalize_balance(balance)
    assert amount == expected
    assert as_of == AS_OF


def test_patch_summary_formats_values() -> None:
    patch = TransactionPatch(
        (
            FieldChange(TransactionField.AMOUNT, Decimal("-1234.5"), Decimal("12")),
            FieldChange(TransactionField.DATE, date(2024, 5, 1), date(2024, 5, 2)),
            FieldChange(TransactionField.REMOTE_CATEGORY_NAME, None, "Groceries"),
        )
    )

    assert bool(patch)
    assert not TransactionPatch()
    assert patch.summary() == (
        "amount: -$1,234.50 -> $12.00, date: 2024-05-01 -> 2024-05-02, "
        "remote category: (none) -> Groceries"
    )


def test_account_patch_items_skip_unset_fields() -> None:
    patch = AccountPatch(sync_enabled=False, remote_asset_name="")

    assert patch.items() == [("remote_asset_name", ""), ("sync_enabled", False)]


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("", None), ("0", None), (None, None), ("abc", None), ("42", 42)],
)
def test_parse_remote_id(raw, expected) -> None:
    assert parse_remote_id(raw) == expected


def test_categorizable_excludes_skip_and_unmapped() -> None:
    assert is_categorizable("12")
    assert not is_categorizable("0")
    assert not is_categorizable("")
    assert not is_categorizable(None)


def test_format_currency() -> None:
    assert format_currency(Decimal("0")) == "$0.00"
    assert format_currency(Decimal("-0.005")) == "-$0.01"
