"""Wire models for the remote ledger REST API.

Field names follow the API's snake_case JSON, so no aliases are needed except
where the server's key differs from ours. Response models ignore unknown keys;
request models forbid them.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _Response(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class _Request(BaseModel):
    model_config = ConfigDict(extra="forbid")


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class LedgerUser(_Response):
    user_name: str
    user_email: str
    user_id: int
    account_id: int
    budget_name: str
    primary_currency: str
    api_key_label: str | None = None


class LedgerCategory(_Response):
    id: int
    name: str
    description: str | None = None
    exclude_from_budget: bool = False
    exclude_from_totals: bool = False
    archived: bool = False
    is_income: bool = False
    group_id: int | None = None


class LedgerAsset(_Response):
    id: int
    type_name: str
    subtype_name: str | None = None
    name: str
    display_name: str | None = None
    balance: str
    balance_as_of: str | None = None
    closed_on: str | None = None
    currency: str = "usd"
    institution_name: str | None = None
    exclude_transactions: bool = False
    created_at: str | None = None


class LedgerTransaction(_Response):
    id: int
    date: str
    payee: str
    amount: str
    currency: str = "usd"
    category_id: int | None = None
    asset_id: int | None = None
    notes: str | None = None
    status: str = "uncleared"
    is_pending: bool = False
    external_id: str | None = None


class CategoriesResponse(_Response):
    categories: list[LedgerCategory]


class AssetsResponse(_Response):
    assets: list[LedgerAsset]


class TransactionsResponse(_Response):
    transactions: list[LedgerTransaction]


class CreateTransactionsResponse(_Response):
    ids: list[int] = Field(default_factory=list)
    errors: list[str] | None = None


class UpdateTransactionResponse(_Response):
    updated: bool | None = None
    split: list[int] | None = None
    # The API reports update failures under "error", sometimes as a bare string.
    errors: list[str] | None = Field(default=None, alias="error")

    @field_validator("errors", mode="before")
    @classmethod
    def _coerce_errors(cls, v: object) -> object:
        if isinstance(v, str):
            return [v]
        return v


class CreateAssetResponse(_Response):
    asset_id: int | None = None
    id: int | None = None
    asset: LedgerAsset | None = None

    @property
    def resolved_id(self) -> int | None:
        if self.asset_id is not None:
            return self.asset_id
        if self.id is not None:
            return self.id
        return self.asset.id if self.asset is not None else None


class UpdateAssetResponse(LedgerAsset):
    errors: list[str] | None = None


class DeleteTransactionsResponse(_Response):
    transactions: list[int] | None = None
    errors: list[str] | None = None


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class GetTransactionsRequest(_Request):
    start_date: str | None = None
    end_date: str | None = None
    asset_id: int | None = None


class NewTransaction(_Request):
    date: str
    payee: str
    amount: str
    currency: str = "usd"
    category_id: int | None = None
    asset_id: int | None = None
    notes: str | None = None
    status: str | None = None
    external_id: str | None = None
    is_pending: bool = False


class CreateTransactionsRequest(_Request):
    transactions: list[NewTransaction]
    apply_rules: bool | None = None
    skip_duplicates: bool | None = None
    check_for_recurring: bool | None = None
    skip_balance_update: bool | None = None


class TransactionUpdate(_Request):
    date: str | None = None
    payee: str | None = None
    amount: str | None = None
    currency: str | None = None
    category_id: int | None = None
    asset_id: int | None = None
    notes: str | None = None
    status: str | None = None
    external_id: str | None = None
    is_pending: bool | None = None


class UpdateTransactionRequest(_Request):
    transaction: TransactionUpdate


class CreateAssetRequest(_Request):
    type_name: str
    balance: str
    currency: str = "usd"
    name: str | None = None
    institution_name: str | None = None
    created_at: str | None = None
    note: str | None = None


class UpdateAssetRequest(_Request):
    balance: str | None = None
    balance_as_of: str | None = None
    name: str | None = None
    display_name: str | None = None
    institution_name: str | None = None
    currency: str | None = None
    exclude_transactions: bool | None = None


__all__ = [
    "AssetsResponse",
    "CategoriesResponse",
    "CreateAssetRequest",
    "CreateAssetResponse",
    "CreateTransactionsRequest",
    "CreateTransactionsResponse",
    "DeleteTransactionsResponse",
    "GetTransactionsRequest",
    "LedgerAsset",
    "LedgerCategory",
    "LedgerTransaction",
    "LedgerUser",
    "NewTransaction",
    "TransactionUpdate",
    "TransactionsResponse",
    "UpdateAssetRequest",
    "UpdateAssetResponse",
    "UpdateTransactionRequest",
    "UpdateTransactionResponse",
]
