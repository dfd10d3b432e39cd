"""Thin client for the remote budgeting ledger (Lunch Money-style REST API).

Every call sends the bearer token, decodes JSON into the pydantic models from
:mod:`lunchsync.ledger_models`, and raises :class:`LedgerAPIError` when the
server answers with a non-2xx status or a non-empty ``errors`` array. There is
no retry or caching at this layer; the push loop owns retry policy.

Usage
-----
with LedgerClient(token) as client:
    assets = client.get_assets()
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, timedelta
from typing import Any, Protocol, TypeVar

import httpx
from pydantic import BaseModel

from .config import DEFAULT_API_URL
from .errors import LedgerAPIError
from .ledger_models import (
    AssetsResponse,
    CategoriesResponse,
    CreateAssetRequest,
    CreateAssetResponse,
    CreateTransactionsRequest,
    CreateTransactionsResponse,
    DeleteTransactionsResponse,
    GetTransactionsRequest,
    LedgerAsset,
    LedgerCategory,
    LedgerTransaction,
    LedgerUser,
    NewTransaction,
    TransactionsResponse,
    UpdateAssetRequest,
    UpdateAssetResponse,
    UpdateTransactionRequest,
    UpdateTransactionResponse,
)
from .logging_setup import get_logger

logger = get_logger("lunchsync.ledger_client")

ModelT = TypeVar("ModelT", bound=BaseModel)

RECENT_ACTIVITY_DAYS = 30


class LedgerAPI(Protocol):
    """The subset of the remote ledger the push loop and balance sync use."""

    def get_transactions(
        self, request: GetTransactionsRequest | None = None
    ) -> list[LedgerTransaction]: ...

    def create_transactions(
        self,
        transactions: Sequence[NewTransaction],
        *,
        apply_rules: bool | None = None,
        skip_duplicates: bool | None = None,
        check_for_recurring: bool | None = None,
        skip_balance_update: bool | None = None,
    ) -> CreateTransactionsResponse: ...

    def update_transaction(
        self, transaction_id: int, request: UpdateTransactionRequest
    ) -> UpdateTransactionResponse: ...

    def update_asset(self, asset_id: int, request: UpdateAssetRequest) -> UpdateAssetResponse: ...


def query_params(request: BaseModel | None) -> dict[str, str]:
    """Project a request model onto GET query parameters.

    Only string and integer scalars survive; ``None``, booleans, nested models
    and lists are dropped.
    """

    if request is None:
        return {}
    params: dict[str, str] = {}
    for key, value in request.model_dump(mode="json", exclude_none=True).items():
        if isinstance(value, bool):
            continue
        if isinstance(value, str | int):
            params[key] = str(value)
    return params


def _error_messages(response: httpx.Response) -> list[str] | None:
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    errors = body.get("errors")
    if isinstance(errors, list) and errors:
        return [str(e) for e in errors]
    if isinstance(errors, str) and errors:
        return [errors]
    return None


class LedgerClient:
    def __init__(
        self,
        api_token: str,
        *,
        base_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
        debug: bool = False,
    ) -> None:
        self.debug = debug
        self._http = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers={
                "Authorization": f"Bearer {api_token}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    # ---- lifecycle ----------------------------------------------------------

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> LedgerClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ---- transport ----------------------------------------------------------

    def _call(
        self,
        method: str,
        path: str,
        response_model: type[ModelT],
        *,
        body: BaseModel | None = None,
        query: BaseModel | None = None,
    ) -> ModelT:
        json_body: Any = None
        if body is not None:
            json_body = body.model_dump(mode="json", exclude_none=True)
        params = query_params(query) if method == "GET" else None

        response = self._http.request(method, path, params=params, json=json_body)
        if self.debug:
            logger.debug(
                "%s %s params=%s body=%s -> %s %s",
                method,
                path,
                params,
                json_body,
                response.status_code,
                response.text,
            )

        if not response.is_success:
            messages = _error_messages(response)
            if messages:
                raise LedgerAPIError(messages, response.status_code)
            raw = response.text or "No response body"
            raise LedgerAPIError(
                [f"Unknown error occurred. Status: {response.status_code}. Response: {raw}"],
                response.status_code,
            )

        messages = _error_messages(response)
        if messages:
            raise LedgerAPIError(messages, response.status_code)
        return response_model.model_validate(response.json())

    # ---- endpoints ----------------------------------------------------------

    def get_user(self) -> LedgerUser:
        return self._call("GET", "/me", LedgerUser)

    def get_categories(self) -> list[LedgerCategory]:
        return self._call("GET", "/categories", CategoriesResponse).categories

    def get_assets(self) -> list[LedgerAsset]:
        return self._call("GET", "/assets", AssetsResponse).assets

    def create_asset(self, request: CreateAssetRequest) -> CreateAssetResponse:
        return self._call("POST", "/assets", CreateAssetResponse, body=request)

    def update_asset(self, asset_id: int, request: UpdateAssetRequest) -> UpdateAssetResponse:
        return self._call("PUT", f"/assets/{asset_id}", UpdateAssetResponse, body=request)

    def get_transactions(
        self, request: GetTransactionsRequest | None = None
    ) -> list[LedgerTransaction]:
        return self._call("GET", "/transactions", TransactionsResponse, query=request).transactions

    def get_transaction(self, transaction_id: int) -> LedgerTransaction:
        return self._call("GET", f"/transactions/{transaction_id}", LedgerTransaction)

    def create_transactions(
        self,
        transactions: Sequence[NewTransaction],
        *,
        apply_rules: bool | None = None,
        skip_duplicates: bool | None = None,
        check_for_recurring: bool | None = None,
        skip_balance_update: bool | None = None,
    ) -> CreateTransactionsResponse:
        request = CreateTransactionsRequest(
            transactions=list(transactions),
            apply_rules=apply_rules,
            skip_duplicates=skip_duplicates,
            check_for_recurring=check_for_recurring,
            skip_balance_update=skip_balance_update,
        )
        return self._call("POST", "/transactions", CreateTransactionsResponse, body=request)

    def update_transaction(
        self, transaction_id: int, request: UpdateTransactionRequest
    ) -> UpdateTransactionResponse:
        return self._call(
            "PUT", f"/transactions/{transaction_id}", UpdateTransactionResponse, body=request
        )

    def delete_transaction_group(self, transaction_id: int) -> DeleteTransactionsResponse:
        return self._call(
            "DELETE", f"/transactions/group/{transaction_id}", DeleteTransactionsResponse
        )

    def recent_transactions_for_asset(
        self, asset_id: int, *, today: date | None = None
    ) -> list[LedgerTransaction]:
        end = today or date.today()
        start = end - timedelta(days=RECENT_ACTIVITY_DAYS)
        return self.get_transactions(
            GetTransactionsRequest(
                start_date=start.isoformat(), end_date=end.isoformat(), asset_id=asset_id
            )
        )

    def assets_with_recent_transactions(self, *, today: date | None = None) -> list[LedgerAsset]:
        """Assets that saw at least one transaction in the last 30 days.

        A failure for one asset is logged and that asset is left out.
        """

        active: list[LedgerAsset] = []
        for asset in self.get_assets():
            try:
                if self.recent_transactions_for_asset(asset.id, today=today):
                    active.append(asset)
            except (LedgerAPIError, httpx.HTTPError) as exc:
                logger.warning("could not list transactions for asset %s: %s", asset.name, exc)
        return active


__all__ = ["LedgerAPI", "LedgerClient", "query_params"]
