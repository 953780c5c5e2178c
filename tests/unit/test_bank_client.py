"""Unit tests for the bank API client"""

import httpx
import pytest
from datetime import date
from card_reconciler.domain.exceptions import BankAPIError
from card_reconciler.infrastructure.clients.bank import BankClient

START = date(2025, 2, 24)
END = date(2025, 3, 4)


def client_for(handler) -> BankClient:
    return BankClient(base_url="http://bank.test", timeout=1.0, transport=httpx.MockTransport(handler))


async def test_parses_transactions():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/bank/transactions"
        assert request.url.params["start"] == "2025-02-24"
        assert request.url.params["end"] == "2025-03-04"
        return httpx.Response(
            200,
            json={
                "transactions": [
                    {"id": "bank-1", "date": "2025-02-27", "amount": 52340, "description": "三井住友カード"},
                    {"id": "bank-2", "date": "2025-02-28", "amount": -1200, "description": None},
                ]
            },
        )

    transactions = await client_for(handler).find_by_date_range(START, END)

    assert [t.id for t in transactions] == ["bank-1", "bank-2"]
    assert transactions[0].date == date(2025, 2, 27)
    assert transactions[0].amount == 52340
    assert transactions[1].description == ""


async def test_empty_response():
    transactions = await client_for(lambda request: httpx.Response(200, json={})).find_by_date_range(START, END)
    assert transactions == []


async def test_server_error_raises_bank_api_error():
    with pytest.raises(BankAPIError, match="503"):
        await client_for(lambda request: httpx.Response(503)).find_by_date_range(START, END)


async def test_timeout_raises_bank_api_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(BankAPIError, match="timeout"):
        await client_for(handler).find_by_date_range(START, END)


async def test_connection_error_raises_bank_api_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(BankAPIError, match="unreachable"):
        await client_for(handler).find_by_date_range(START, END)


@pytest.mark.parametrize(
    "payload",
    [
        {"transactions": [{"id": "bank-1", "date": "2025-02-27", "description": "x"}]},
        {"transactions": [{"id": "bank-1", "date": "27/02/2025", "amount": 100}]},
        {"transactions": [{"id": "bank-1", "date": "2025-02-27", "amount": 100.5}]},
    ],
)
async def test_malformed_transactions_raise_bank_api_error(payload):
    with pytest.raises(BankAPIError, match="Invalid transaction data"):
        await client_for(lambda request: httpx.Response(200, json=payload)).find_by_date_range(START, END)
