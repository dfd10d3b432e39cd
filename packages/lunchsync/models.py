"""Domain types shared across the synchronizer.

Persistence lives in ``lunchsync_db`` (SQLAlchemy rows); the types here are
the plain values that flow between the source, the reconciliation engine, the
push loop and the orchestrator.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field, fields
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import StrEnum
from typing import Any

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class SyncState(StrEnum):
    """Push lifecycle of a stored transaction."""

    PENDING = "pending"
    COMPLETE = "complete"
    NEVER = "never"
    SKIPPED = "skipped"


class RemoteCategoryId(StrEnum):
    """Reserved values of a mapping's remote category id."""

    UNMAPPED = ""
    SKIP = "0"


class ReconcileResult(StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


class CycleStage(StrEnum):
    """Stages of one sync cycle, in execution order."""

    IDLE = "idle"
    ACQUIRE_CREDENTIAL = "acquire_credential"
    FETCH_CANDIDATES = "fetch_candidates"
    CATEGORIZE = "categorize"
    RECONCILE = "reconcile"
    PUSH_PENDING = "push_pending"
    SYNC_BALANCES = "sync_balances"
    FINALIZE = "finalize"
    DONE = "done"
    FAILED = "failed"


class AuthorizationStatus(StrEnum):
    AUTHORIZED = "authorized"
    DENIED = "denied"
    NOT_DETERMINED = "not_determined"
    RESTRICTED = "restricted"


class CreditDebit(StrEnum):
    CREDIT = "credit"
    DEBIT = "debit"


def parse_remote_id(value: str | None) -> int | None:
    """Return the integer form of a stored remote id, or None when unset or unlinked."""

    if not value or value == RemoteCategoryId.SKIP:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def is_categorizable(remote_category_id: str | None) -> bool:
    """Return True when ``remote_category_id`` names a real remote category."""

    return bool(remote_category_id) and remote_category_id != RemoteCategoryId.SKIP


# ---------------------------------------------------------------------------
# Money formatting
# ---------------------------------------------------------------------------

_CENTS = Decimal("0.01")


def quantize_amount(amount: Decimal) -> Decimal:
    return amount.quantize(_CENTS, rounding=ROUND_HALF_UP)


def format_amount(amount: Decimal) -> str:
    """Render ``amount`` as a plain two-decimal string (``"-12.30"``)."""

    return f"{quantize_amount(amount):.2f}"


def format_currency(amount: Decimal) -> str:
    """Render ``amount`` for humans (``"-$12.30"``)."""

    q = quantize_amount(amount)
    sign = "-" if q < 0 else ""
    return f"{sign}${abs(q):,.2f}"


# ---------------------------------------------------------------------------
# Source balances
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class BalanceAmount:
    amount: Decimal
    indicator: CreditDebit
    as_of: datetime


@dataclass(frozen=True, slots=True)
class AvailableBalance:
    available: BalanceAmount


@dataclass(frozen=True, slots=True)
class BookedBalance:
    booked: BalanceAmount


@dataclass(frozen=True, slots=True)
class AvailableAndBookedBalance:
    available: BalanceAmount
    booked: BalanceAmount


type Balance = AvailableBalance | BookedBalance | AvailableAndBookedBalance


def normalize_balance(balance: Balance) -> tuple[Decimal, datetime]:
    """Collapse a source balance into a signed amount and its as-of timestamp.

    When both figures are present, a credit ``available`` figure means the
    account is a credit line, and the ``booked`` figure is the meaningful
    one. Credit amounts are negated, matching the sign convention used for
    transactions.
    """

    if isinstance(balance, AvailableAndBookedBalance):
        if balance.available.indicator is CreditDebit.CREDIT:
            chosen = balance.booked
        else:
            chosen = balance.available
    elif isinstance(balance, AvailableBalance):
        chosen = balance.available
    elif isinstance(balance, BookedBalance):
        chosen = balance.booked
    else:  # pragma: no cover - exhaustive over Balance
        raise TypeError(f"unsupported balance type: {type(balance).__name__}")

    amount = chosen.amount
    if chosen.indicator is CreditDebit.CREDIT:
        amount = -amount
    return quantize_amount(amount), chosen.as_of


# ---------------------------------------------------------------------------
# Candidate records (source side, before reconciliation)
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CandidateTransaction:
    """A transaction as produced by the wallet source.

    ``id`` is the stable source identifier; it becomes the primary key of the
    stored row and the remote ``external_id``.
    """

    id: str
    account_id: str
    payee: str
    amount: Decimal
    date: date
    notes: str = ""
    is_pending: bool = False
    account_name: str = ""
    classification_code: str | None = None
    classification_name: str | None = None
    remote_category_id: str | None = None
    remote_category_name: str | None = None
    remote_id: str = ""
    remote_account_ref: str = ""
    sync_state: SyncState = SyncState.PENDING


@dataclass(frozen=True, slots=True)
class CandidateAccount:
    id: str
    name: str
    balance: Decimal = Decimal("0.00")
    institution_name: str = ""
    last_updated: datetime | None = None


@dataclass(frozen=True, slots=True)
class PreloadedData:
    """Candidates fetched ahead of the cycle (e.g. by a background trigger)."""

    transactions: Sequence[CandidateTransaction] = ()
    accounts: Sequence[CandidateAccount] = ()


# ---------------------------------------------------------------------------
# Typed partial updates
# ---------------------------------------------------------------------------


class TransactionField(StrEnum):
    """Content fields compared by reconciliation; values are row attributes."""

    PAYEE = "payee"
    AMOUNT = "amount"
    DATE = "date"
    NOTES = "notes"
    IS_PENDING = "is_pending"
    CLASSIFICATION_CODE = "classification_code"
    CLASSIFICATION_NAME = "classification_name"
    REMOTE_CATEGORY_ID = "remote_category_id"
    REMOTE_CATEGORY_NAME = "remote_category_name"


_FIELD_LABELS: dict[TransactionField, str] = {
    TransactionField.PAYEE: "payee",
    TransactionField.AMOUNT: "amount",
    TransactionField.DATE: "date",
    TransactionField.NOTES: "notes",
    TransactionField.IS_PENDING: "pending",
    TransactionField.CLASSIFICATION_CODE: "category code",
    TransactionField.CLASSIFICATION_NAME: "category",
    TransactionField.REMOTE_CATEGORY_ID: "remote category id",
    TransactionField.REMOTE_CATEGORY_NAME: "remote category",
}


def _describe_value(value: Any) -> str:
    if value is None:
        return "(none)"
    if isinstance(value, Decimal):
        return format_currency(value)
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


@dataclass(frozen=True, slots=True)
class FieldChange:
    field: TransactionField
    old: Any
    new: Any

    def describe(self) -> str:
        label = _FIELD_LABELS[self.field]
        return f"{label}: {_describe_value(self.old)} -> {_describe_value(self.new)}"


@dataclass(frozen=True, slots=True)
class TransactionPatch:
    """Content changes detected between a stored row and an incoming record."""

    changes: tuple[FieldChange, ...] = ()

    def __bool__(self) -> bool:
        return bool(self.changes)

    @property
    def fields(self) -> tuple[TransactionField, ...]:
        return tuple(c.field for c in self.changes)

    def summary(self) -> str:
        return ", ".join(c.describe() for c in self.changes)


@dataclass(frozen=True, slots=True)
class AccountPatch:
    """Optional per-field account update; ``None`` leaves a field untouched."""

    name: str | None = None
    institution_name: str | None = None
    balance: Decimal | None = None
    last_updated: datetime | None = None
    remote_asset_id: str | None = None
    remote_asset_name: str | None = None
    sync_enabled: bool | None = None
    sync_balance_only: bool | None = None

    def items(self) -> list[tuple[str, Any]]:
        """Return the (attribute, value) pairs that are set."""

        pairs = [(f.name, getattr(self, f.name)) for f in fields(self)]
        return [(name, value) for name, value in pairs if value is not None]


# ---------------------------------------------------------------------------
# Push results and policy
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PushOutcome:
    """Result of one push attempt, applied back onto the stored row.

    ``sync_state=None`` means the attempt must leave the row untouched (the
    remote rejected an update and the record stays pending).
    """

    sync_state: SyncState | None
    remote_id: str | None = None
    remote_account_ref: str | None = None
    history_note: str | None = None

    @classmethod
    def updated(cls, remote_id: str, remote_account_ref: str | None) -> PushOutcome:
        return cls(SyncState.COMPLETE, remote_id, remote_account_ref, "Synced to LM (updated)")

    @classmethod
    def created(cls, remote_id: str) -> PushOutcome:
        return cls(SyncState.COMPLETE, remote_id, None, "Synced to LM")

    @classmethod
    def rejected(cls) -> PushOutcome:
        return cls(SyncState.NEVER, history_note="Sync to LM returned no transaction id")

    @classmethod
    def failed(cls, error: BaseException) -> PushOutcome:
        return cls(SyncState.PENDING, history_note=f"Error syncing to LM: {error}")

    @classmethod
    def untouched(cls) -> PushOutcome:
        return cls(None)


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """How often a failing push is retried before moving on.

    Attributes
    ----------
    max_attempts:
        Total attempts per transaction, including the first. ``None`` removes
        the cap.
    backoff_seconds:
        Fixed delay between attempts.
    deadline_seconds:
        Optional wall-clock budget per transaction; a retry is not started
        when the backoff would cross it.
    allow_unbounded:
        Must be set (see :meth:`unbounded`) for a policy with neither a cap
        nor a deadline.
    """

    max_attempts: int | None = 5
    backoff_seconds: float = 2.0
    deadline_seconds: float | None = None
    allow_unbounded: bool = field(default=False, repr=False)

    def __post_init__(self) -> None:
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError("max_attempts must be a positive integer or None")
        if self.backoff_seconds < 0:
            raise ValueError("backoff_seconds must be non-negative")
        if self.deadline_seconds is not None and self.deadline_seconds <= 0:
            raise ValueError("deadline_seconds must be positive or None")
        if self.max_attempts is None and self.deadline_seconds is None and not self.allow_unbounded:
            raise ValueError(
                "retry policy has no attempt cap and no deadline; use RetryPolicy.unbounded()"
            )

    @classmethod
    def unbounded(cls, backoff_seconds: float = 2.0) -> RetryPolicy:
        """Retry until the push succeeds or the caller cancels."""

        return cls(
            max_attempts=None,
            backoff_seconds=backoff_seconds,
            deadline_seconds=None,
            allow_unbounded=True,
        )

    def allows_retry(self, attempts: int, elapsed_seconds: float) -> bool:
        """Return True when another attempt may follow ``attempts`` failures."""

        if self.max_attempts is not None and attempts >= self.max_attempts:
            return False
        if (
            self.deadline_seconds is not None
            and elapsed_seconds + self.backoff_seconds > self.deadline_seconds
        ):
            return False
        return True


@dataclass(frozen=True, slots=True)
class SyncProgress:
    current: int
    total: int
    status: str


__all__ = [
    "AccountPatch",
    "AuthorizationStatus",
    "AvailableAndBookedBalance",
    "AvailableBalance",
    "Balance",
    "BalanceAmount",
    "BookedBalance",
    "CandidateAccount",
    "CandidateTransaction",
    "CreditDebit",
    "CycleStage",
    "FieldChange",
    "PreloadedData",
    "PushOutcome",
    "ReconcileResult",
    "RemoteCategoryId",
    "RetryPolicy",
    "SyncProgress",
    "SyncState",
    "TransactionField",
    "TransactionPatch",
    "format_amount",
    "format_currency",
    "is_categorizable",
    "normalize_balance",
    "parse_remote_id",
    "quantize_amount",
]
