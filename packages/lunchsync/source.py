# ruff: noqa: I001
"""Wallet sources: where candidate accounts, balances and transactions come from.

Any object with the :class:`TransactionSource` methods can drive a sync
cycle. Two implementations ship with the package:

- :class:`SimulatedSource`: in-memory records, used for offline runs
  (``lunchsync sync --simulate``) and tests.
- :class:`JsonFeedSource`: reads a wallet export JSON file.

Sign convention: outflows are positive and credits are negative, matching
the remote ledger.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .errors import SourceError
from .logging_setup import get_logger
from .mcc import describe_mcc
from .models import (
    AuthorizationStatus,
    AvailableAndBookedBalance,
    AvailableBalance,
    Balance,
    BalanceAmount,
    BookedBalance,
    CandidateAccount,
    CandidateTransaction,
    CreditDebit,
    normalize_balance,
    quantize_amount,
)

logger = get_logger("lunchsync.source")

BOOKED = "booked"
PENDING = "pending"


class TransactionSource(Protocol):
    def request_authorization(self) -> AuthorizationStatus: ...

    def list_accounts(self) -> list[CandidateAccount]: ...

    def list_balance(self, account_id: str) -> Balance: ...

    def list_transactions(
        self, account_ids: Sequence[str], start: date, end: date
    ) -> list[CandidateTransaction]: ...


# ---------------------------------------------------------------------------
# Helpers shared by every source
# ---------------------------------------------------------------------------


def fetch_window(today: date, days: int) -> tuple[date, date]:
    """Return the ``(start, end)`` dates of a fetch ``days`` back from ``today``."""

    return today - timedelta(days=days), today


def wallet_accounts(source: TransactionSource) -> list[CandidateAccount]:
    """List accounts with their current normalized balance.

    An account whose balance cannot be read is skipped for this cycle so its
    stored balance is left alone.
    """

    out: list[CandidateAccount] = []
    for account in source.list_accounts():
        try:
            amount, as_of = normalize_balance(source.list_balance(account.id))
        except Exception as exc:  # noqa: BLE001
            logger.warning("could not read balance for %s: %s", account.name, exc)
            continue
        out.append(replace(account, balance=amount, last_updated=as_of))
    return out


def source_transaction(
    *,
    id: str,
    account_id: str,
    account_name: str,
    description: str,
    amount: Decimal,
    indicator: CreditDebit,
    on: date,
    status: str,
    merchant_category_code: str | None,
    mcc_table: Mapping[str, str] | None = None,
) -> CandidateTransaction:
    """Build a candidate from raw wallet fields."""

    signed = -amount if indicator is CreditDebit.CREDIT else amount
    code = (merchant_category_code or "").strip() or None
    booked = status == BOOKED
    return CandidateTransaction(
        id=id,
        account_id=account_id,
        account_name=account_name,
        payee=description,
        amount=quantize_amount(signed),
        date=on,
        notes=BOOKED if booked else PENDING,
        is_pending=not booked,
        classification_code=code,
        classification_name=describe_mcc(code, mcc_table),
    )


# ---------------------------------------------------------------------------
# Simulated source
# ---------------------------------------------------------------------------


class SimulatedSource:
    """Record-based source; everything it returns was handed to it."""

    def __init__(
        self,
        accounts: Iterable[CandidateAccount] = (),
        transactions: Iterable[CandidateTransaction] = (),
        *,
        balances: Mapping[str, Balance] | None = None,
        authorization: AuthorizationStatus = AuthorizationStatus.AUTHORIZED,
    ) -> None:
        self.accounts = list(accounts)
        self.transactions = list(transactions)
        self.balances = dict(balances or {})
        self.authorization = authorization

    def request_authorization(self) -> AuthorizationStatus:
        return self.authorization

    def list_accounts(self) -> list[CandidateAccount]:
        return list(self.accounts)

    def list_balance(self, account_id: str) -> Balance:
        balance = self.balances.get(account_id)
        if balance is not None:
            return balance
        account = next((a for a in self.accounts if a.id == account_id), None)
        if account is None:
            raise SourceError(f"unknown account {account_id}")
        indicator = CreditDebit.CREDIT if account.balance < 0 else CreditDebit.DEBIT
        return BookedBalance(
            BalanceAmount(
                abs(account.balance), indicator, account.last_updated or datetime.now(UTC)
            )
        )

    def list_transactions(
        self, account_ids: Sequence[str], start: date, end: date
    ) -> list[CandidateTransaction]:
        wanted = set(account_ids)
        return [
            t for t in self.transactions if t.account_id in wanted and start <= t.date <= end
        ]

    @classmethod
    def demo(cls, today: date | None = None) -> SimulatedSource:
        """Three sample wallet accounts with a few recent transactions each."""

        today = today or date.today()
        now = datetime.now(UTC)
        accounts = [
            CandidateAccount("111111111", "Apple Card", institution_name="Bank of America"),
            CandidateAccount("222222222", "Visa Card", institution_name="Chase Bank"),
            CandidateAccount("333333333", "Apple Cash", institution_name="Apple"),
        ]
        balances: dict[str, Balance] = {
            "111111111": AvailableAndBookedBalance(
                available=BalanceAmount(Decimal("9000.00"), CreditDebit.CREDIT, now),
                booked=BalanceAmount(Decimal("1000.00"), CreditDebit.DEBIT, now),
            ),
            "222222222": BookedBalance(BalanceAmount(Decimal("2000.00"), CreditDebit.DEBIT, now)),
            "333333333": AvailableBalance(
                BalanceAmount(Decimal("3000.00"), CreditDebit.CREDIT, now)
            ),
        }
        raw = [
            ("sim-1", "111111111", "Grocery Store", "50.00", CreditDebit.DEBIT, 1, BOOKED, "5411"),
            ("sim-2", "111111111", "Cafe", "20.00", CreditDebit.DEBIT, 2, PENDING, "5814"),
            ("sim-3", "222222222", "Online Shop", "150.75", CreditDebit.DEBIT, 3, BOOKED, "5964"),
            ("sim-4", "222222222", "Refund", "24.00", CreditDebit.CREDIT, 4, BOOKED, None),
            ("sim-5", "333333333", "Daily Cash", "3.10", CreditDebit.CREDIT, 1, BOOKED, None),
        ]
        names = {a.id: a.name for a in accounts}
        transactions = [
            source_transaction(
                id=tx_id,
                account_id=account_id,
                account_name=names[account_id],
                description=payee,
                amount=Decimal(amount),
                indicator=indicator,
                on=today - timedelta(days=days_ago),
                status=status,
                merchant_category_code=mcc,
            )
            for tx_id, account_id, payee, amount, indicator, days_ago, status, mcc in raw
        ]
        return cls(accounts, transactions, balances=balances)


# ---------------------------------------------------------------------------
# JSON wallet export
# ---------------------------------------------------------------------------


class FeedAmount(BaseModel):
    model_config = ConfigDict(extra="forbid")

    amount: Decimal
    indicator: CreditDebit
    as_of: datetime

    def to_balance_amount(self) -> BalanceAmount:
        return BalanceAmount(self.amount, self.indicator, self.as_of)


class FeedBalance(BaseModel):
    model_config = ConfigDict(extra="forbid")

    available: FeedAmount | None = None
    booked: FeedAmount | None = None

    @model_validator(mode="after")
    def _one_figure_required(self) -> FeedBalance:
        if self.available is None and self.booked is None:
            raise ValueError("balance needs an 'available' or a 'booked' figure")
        return self

    def to_balance(self) -> Balance:
        if self.available is not None and self.booked is not None:
            return AvailableAndBookedBalance(
                self.available.to_balance_amount(), self.booked.to_balance_amount()
            )
        if self.available is not None:
            return AvailableBalance(self.available.to_balance_amount())
        assert self.booked is not None  # enforced by the validator
        return BookedBalance(self.booked.to_balance_amount())


class FeedAccount(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    id: str
    name: str
    institution_name: str = ""
    balance: FeedBalance | None = None


class FeedTransaction(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True, populate_by_name=True)

    id: str
    account_id: str
    description: str
    amount: Decimal
    indicator: CreditDebit = CreditDebit.DEBIT
    posted_on: date = Field(alias="date")
    status: str = BOOKED
    merchant_category_code: str | None = None


class WalletFeed(BaseModel):
    model_config = ConfigDict(extra="ignore")

    accounts: list[FeedAccount] = []
    transactions: list[FeedTransaction] = []


class JsonFeedSource:
    """Reads accounts, balances and transactions from a wallet export file.

    The file is re-read on every call so a long-running host picks up new
    exports.
    """

    def __init__(self, path: Path, *, mcc_table: Mapping[str, str] | None = None) -> None:
        self.path = Path(path)
        self.mcc_table = mcc_table

    def _load(self) -> WalletFeed:
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise SourceError(f"cannot read wallet feed {self.path}: {exc}") from exc
        try:
            return WalletFeed.model_validate_json(text)
        except ValidationError as exc:
            raise SourceError(f"invalid wallet feed {self.path}: {exc}") from exc

    def request_authorization(self) -> AuthorizationStatus:
        if self.path.is_file():
            return AuthorizationStatus.AUTHORIZED
        return AuthorizationStatus.NOT_DETERMINED

    def list_accounts(self) -> list[CandidateAccount]:
        return [
            CandidateAccount(a.id, a.name, institution_name=a.institution_name)
            for a in self._load().accounts
        ]

    def list_balance(self, account_id: str) -> Balance:
        for account in self._load().accounts:
            if account.id == account_id:
                if account.balance is None:
                    raise SourceError(f"no balance reported for account {account_id}")
                return account.balance.to_balance()
        raise SourceError(f"unknown account {account_id}")

    def list_transactions(
        self, account_ids: Sequence[str], start: date, end: date
    ) -> list[CandidateTransaction]:
        feed = self._load()
        names = {a.id: a.name for a in feed.accounts}
        wanted = set(account_ids)
        return [
            source_transaction(
                id=t.id,
                account_id=t.account_id,
                account_name=names.get(t.account_id, ""),
                description=t.description,
                amount=t.amount,
                indicator=t.indicator,
                on=t.posted_on,
                status=t.status,
                merchant_category_code=t.merchant_category_code,
                mcc_table=self.mcc_table,
            )
            for t in feed.transactions
            if t.account_id in wanted and start <= t.posted_on <= end
        ]


__all__ = [
    "BOOKED",
    "PENDING",
    "JsonFeedSource",
    "SimulatedSource",
    "TransactionSource",
    "WalletFeed",
    "fetch_window",
    "source_transaction",
    "wallet_accounts",
]
