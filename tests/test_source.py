from __future__ import annotations

import json
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from lunchsync.errors import SourceError
from lunchsync.mcc import describe_mcc, load_mcc_table
from lunchsync.models import AuthorizationStatus, CandidateAccount
from lunchsync.source import JsonFeedSource, SimulatedSource, fetch_window, wallet_accounts

FEED = {
    "accounts": [
        {
            "id": "acct-1",
            "name": "Apple Card",
            "institution_name": "Goldman Sachs",
            "balance": {
                "available": {
                    "amount": "9000",
                    "indicator": "credit",
                    "as_of": "2024-05-12T08:00:00Z",
                },
                "booked": {
                    "amount": "812.40",
                    "indicator": "debit",
                    "as_of": "2024-05-12T08:00:00Z",
                },
            },
        },
        {"id": "acct-2", "name": "Apple Cash"},
    ],
    "transactions": [
        {
            "id": "w-1",
            "account_id": "acct-1",
            "description": " Whole Foods ",
            "amount": "54.20",
            "date": "2024-05-10",
            "status": "booked",
            "merchant_category_code": "5411",
        },
        {
            "id": "w-2",
            "account_id": "acct-1",
            "description": "Refund",
            "amount": "12.00",
            "indicator": "credit",
            "date": "2024-05-11",
            "status": "pending",
        },
        {
            "id": "w-3",
            "account_id": "acct-1",
            "description": "Too old",
            "amount": "1.00",
            "date": "2024-04-01",
        },
        {
            "id": "w-4",
            "account_id": "acct-2",
            "description": "Other account",
            "amount": "1.00",
            "date": "2024-05-10",
        },
    ],
}


@pytest.fixture()
def feed_path(tmp_path: Path) -> Path:
    path = tmp_path / "wallet.json"
    path.write_text(json.dumps(FEED), encoding="utf-8")
    return path


def test_feed_transactions_are_windowed_and_signed(feed_path: Path) -> None:
    source = JsonFeedSource(feed_path)

    txs = source.list_transactions(["acct-1"], date(2024, 5, 5), date(2024, 5, 12))

    assert [t.id for t in txs] == ["w-1", "w-2"]
    grocery, refund = txs
    assert grocery.payee == "Whole Foods"
    assert grocery.amount == Decimal("54.20")
    assert (grocery.notes, grocery.is_pending) == ("booked", False)
    assert grocery.classification_code == "5411"
    assert grocery.classification_name == "Grocery Stores, Supermarkets"
    assert grocery.account_name == "Apple Card"
    assert refund.amount == Decimal("-12.00")
    assert (refund.notes, refund.is_pending) == ("pending", True)
    assert refund.classification_code is None


def test_feed_balances(feed_path: Path) -> None:
    source = JsonFeedSource(feed_path)

    accounts = wallet_accounts(source)

    # acct-2 reports no balance and is left out for this cycle.
    assert [a.id for a in accounts] == ["acct-1"]
    assert accounts[0].balance == Decimal("812.40")
    assert accounts[0].institution_name == "Goldman Sachs"


def test_missing_or_invalid_feed(tmp_path: Path) -> None:
    missing = JsonFeedSource(tmp_path / "nope.json")
    assert missing.request_authorization() is AuthorizationStatus.NOT_DETERMINED
    with pytest.raises(SourceError):
        missing.list_accounts()

    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"accounts": [{"id": "x"}]}), encoding="utf-8")
    with pytest.raises(SourceError, match="invalid wallet feed"):
        JsonFeedSource(bad).list_accounts()


def test_custom_mcc_table(tmp_path: Path, feed_path: Path) -> None:
    table_path = tmp_path / "mcc.json"
    table_path.write_text(
        json.dumps([{"mcc": "5411", "description": "Groceries (custom)"}, {"mcc": ""}]),
        encoding="utf-8",
    )
    table = load_mcc_table(table_path)

    assert table == {"5411": "Groceries (custom)"}
    source = JsonFeedSource(feed_path, mcc_table=table)
    (tx,) = source.list_transactions(["acct-1"], date(2024, 5, 10), date(2024, 5, 10))
    assert tx.classification_name == "Groceries (custom)"
    assert describe_mcc("0000") is None


def test_fetch_window() -> None:
    assert fetch_window(date(2024, 5, 12), 7) == (date(2024, 5, 5), date(2024, 5, 12))


def test_demo_source_matches_sign_convention() -> None:
    source = SimulatedSource.demo(date(2024, 5, 12))

    balances = {a.id: a.balance for a in wallet_accounts(source)}
    assert balances == {
        "111111111": Decimal("1000.00"),
        "222222222": Decimal("2000.00"),
        "333333333": Decimal("-3000.00"),
    }
    txs = source.list_transactions(["222222222"], date(2024, 5, 1), date(2024, 5, 12))
    assert {t.id: t.amount for t in txs} == {
        "sim-3": Decimal("150.75"),
        "sim-4": Decimal("-24.00"),
    }


def test_unreadable_balance_is_skipped() -> None:
    source = SimulatedSource([CandidateAccount("a", "A")])
    source.accounts.append(CandidateAccount("b", "B"))
    source.balances["a"] = "not a balance"  # type: ignore[assignment]

    assert [a.id for a in wallet_accounts(source)] == ["b"]
