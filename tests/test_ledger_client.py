from __future__ import annotations

import json
from datetime import date

import httpx
import pytest

from lunchsync.errors import LedgerAPIError
from lunchsync.ledger_client import LedgerClient, query_params
from lunchsync.ledger_models import (
    CreateAssetResponse,
    GetTransactionsRequest,
    NewTransaction,
    TransactionUpdate,
    UpdateAssetRequest,
    UpdateTransactionRequest,
    UpdateTransactionResponse,
)

ASSET = {
    "id": 12,
    "type_name": "credit",
    "name": "Apple Card",
    "display_name": None,
    "balance": "100.0000",
    "currency": "usd",
}


def _client(handler, seen: list[httpx.Request] | None = None) -> LedgerClient:
    def _record(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return handler(request)

    return LedgerClient(
        "secret", base_url="https://ledger.test/v1/", transport=httpx.MockTransport(_record)
    )


def test_requests_carry_bearer_token_and_base_url() -> None:
    seen: list[httpx.Request] = []
    user = {
        "user_name": "Ada",
        "user_email": "ada@example.com",
        "user_id": 1,
        "account_id": 2,
        "budget_name": "Home",
        "primary_currency": "usd",
    }
    with _client(lambda r: httpx.Response(200, json=user), seen) as client:
        me = client.get_user()

    assert me.budget_name == "Home"
    (request,) = seen
    assert request.headers["Authorization"] == "Bearer secret"
    assert str(request.url) == "https://ledger.test/v1/me"


def test_get_transactions_sends_query_params() -> None:
    seen: list[httpx.Request] = []
    body = {
        "transactions": [
            {
                "id": 5,
                "date": "2024-05-10",
                "payee": "Cafe",
                "amount": "4.5000",
                "external_id": "t1",
                "unknown_field": "ignored",
            }
        ]
    }
    with _client(lambda r: httpx.Response(200, json=body), seen) as client:
        txs = client.get_transactions(
            GetTransactionsRequest(start_date="2024-04-10", end_date="2024-06-09")
        )

    assert [t.external_id for t in txs] == ["t1"]
    assert dict(seen[0].url.params) == {"start_date": "2024-04-10", "end_date": "2024-06-09"}


def test_create_transactions_posts_body_with_flags() -> None:
    seen: list[httpx.Request] = []
    with _client(lambda r: httpx.Response(200, json={"ids": [901]}), seen) as client:
        res = client.create_transactions(
            [NewTransaction(date="2024-05-10", payee="Cafe", amount="4.50", external_id="t1")],
            apply_rules=True,
        )

    assert res.ids == [901]
    payload = json.loads(seen[0].content)
    assert payload["apply_rules"] is True
    assert "skip_duplicates" not in payload
    assert payload["transactions"][0]["external_id"] == "t1"
    assert seen[0].method == "POST"


def test_non_2xx_with_errors_raises_server_messages() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"errors": ["bad date", "bad payee"]})

    with _client(handler) as client, pytest.raises(LedgerAPIError) as excinfo:
        client.get_assets()

    assert excinfo.value.messages == ("bad date", "bad payee")
    assert excinfo.value.status_code == 400
    assert str(excinfo.value) == "API Error: bad date, bad payee"


def test_non_2xx_without_json_synthesizes_message() -> None:
    with _client(lambda r: httpx.Response(502, text="Bad Gateway")) as client:
        with pytest.raises(LedgerAPIError) as excinfo:
            client.get_categories()

    assert excinfo.value.messages == (
        "Unknown error occurred. Status: 502. Response: Bad Gateway",
    )


def test_errors_in_success_body_raise() -> None:
    body = {"ids": [], "errors": ["duplicate external_id"]}
    with _client(lambda r: httpx.Response(200, json=body)) as client:
        with pytest.raises(LedgerAPIError, match="duplicate external_id"):
            client.create_transactions(
                [NewTransaction(date="2024-05-10", payee="Cafe", amount="1.00")]
            )


def test_update_error_field_is_normalized() -> None:
    res = UpdateTransactionResponse.model_validate({"error": "Transaction is locked"})
    assert res.errors == ["Transaction is locked"]

    seen: list[httpx.Request] = []
    with _client(lambda r: httpx.Response(200, json={"updated": True}), seen) as client:
        out = client.update_transaction(
            55, UpdateTransactionRequest(transaction=TransactionUpdate(amount="6.00"))
        )
    assert out.updated is True
    assert seen[0].method == "PUT"
    assert seen[0].url.path == "/v1/transactions/55"
    assert json.loads(seen[0].content) == {"transaction": {"amount": "6.00"}}


def test_update_asset_round_trip() -> None:
    seen: list[httpx.Request] = []
    with _client(lambda r: httpx.Response(200, json=ASSET), seen) as client:
        res = client.update_asset(12, UpdateAssetRequest(balance="-20.00"))

    assert res.id == 12
    assert json.loads(seen[0].content) == {"balance": "-20.00"}


def test_create_asset_id_resolution() -> None:
    assert CreateAssetResponse.model_validate({"asset_id": 3}).resolved_id == 3
    assert CreateAssetResponse.model_validate({"id": 4}).resolved_id == 4
    assert CreateAssetResponse.model_validate({"asset": ASSET}).resolved_id == 12
    assert CreateAssetResponse.model_validate({}).resolved_id is None


def test_assets_with_recent_transactions_filters_inactive() -> None:
    quiet = {**ASSET, "id": 13, "name": "Old Card"}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/assets"):
            return httpx.Response(200, json={"assets": [ASSET, quiet]})
        asset_id = request.url.params["asset_id"]
        assert request.url.params["start_date"] == "2024-04-12"
        txs = [{"id": 1, "date": "2024-05-01", "payee": "x", "amount": "1"}]
        return httpx.Response(200, json={"transactions": txs if asset_id == "12" else []})

    with _client(handler) as client:
        active = client.assets_with_recent_transactions(today=date(2024, 5, 12))

    assert [a.id for a in active] == [12]


def test_query_params_keep_only_scalars() -> None:
    assert query_params(None) == {}
    assert query_params(GetTransactionsRequest(asset_id=7)) == {"asset_id": "7"}
    assert query_params(UpdateAssetRequest(balance="1.00", exclude_transactions=True)) == {
        "balance": "1.00"
    }
