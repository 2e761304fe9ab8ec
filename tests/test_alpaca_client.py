"""Unit tests for the Alpaca REST wrapper."""
from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Dict, List

import pytest
import requests

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from ladderdesk.core.alpaca_client import (
    AlpacaClient,
    BrokerError,
    TransportError,
    build_order_payload,
    extract_error_message,
)
from ladderdesk.orders.options_orders import place_options_order


class DummyResponse:
    def __init__(self, status_code: int, payload: Any = None, text: str | None = None) -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else ("" if payload is None else json.dumps(payload))
        self.reason = "Forbidden" if status_code == 403 else "OK"

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self) -> Any:
        return json.loads(self.text)


class DummySession:
    """Session stub recording each request and replaying scripted responses."""

    def __init__(self, responses: List[Any]) -> None:
        self.headers: Dict[str, str] = {}
        self._responses = list(responses)
        self.calls: List[Dict[str, Any]] = []

    def request(self, method, url, params=None, json=None, timeout=None):
        self.calls.append({"method": method, "url": url, "params": params, "json": json, "timeout": timeout})
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def test_auth_headers_and_timeout_are_applied(config) -> None:
    session = DummySession([DummyResponse(200, {"id": "acct-1"})])
    client = AlpacaClient(config, session=session)

    assert client.get_account() == {"id": "acct-1"}
    assert session.headers["APCA-API-KEY-ID"] == "key"
    assert session.headers["APCA-API-SECRET-KEY"] == "secret"
    assert session.calls[0]["url"] == "https://paper-api.alpaca.markets/v2/account"
    assert session.calls[0]["timeout"] == config.timeout_seconds


def test_live_mode_uses_live_host(config) -> None:
    session = DummySession([DummyResponse(200, [])])
    client = AlpacaClient(config.for_mode("live"), session=session)

    client.list_positions()

    assert session.calls[0]["url"] == "https://api.alpaca.markets/v2/positions"


def test_missing_position_returns_none(config) -> None:
    session = DummySession([DummyResponse(404, {"code": 40410000, "message": "position does not exist"})])

    assert AlpacaClient(config, session=session).get_position("XYZ240101C00100000") is None


def test_other_position_errors_propagate(config) -> None:
    session = DummySession([DummyResponse(500, {"message": "internal error"})])

    with pytest.raises(BrokerError) as excinfo:
        AlpacaClient(config, session=session).get_position("XYZ240101C00100000")

    assert excinfo.value.status == 500


def test_order_rejection_carries_code_and_message(config) -> None:
    payload = {"code": 40310000, "message": "potential wash trade detected. use complex orders"}
    session = DummySession([DummyResponse(403, payload)])
    body = build_order_payload("xyz240101c00100000", "buy", 1, "limit", limit_price="1.44")

    with pytest.raises(BrokerError) as excinfo:
        AlpacaClient(config, session=session).create_order(body)

    assert excinfo.value.status == 403
    assert excinfo.value.code == 40310000
    assert excinfo.value.message == payload["message"]
    assert excinfo.value.payload == payload
    assert session.calls[0]["json"]["symbol"] == "XYZ240101C00100000"


def test_non_json_error_body_is_kept_as_message(config) -> None:
    session = DummySession([DummyResponse(403, text="<html>forbidden</html>")])

    with pytest.raises(BrokerError) as excinfo:
        AlpacaClient(config, session=session).create_order({"symbol": "XYZ"})

    assert excinfo.value.message == "<html>forbidden</html>"
    assert excinfo.value.code is None


def test_non_json_success_body_raises_transport_error(config) -> None:
    session = DummySession([DummyResponse(200, text="<html>gateway</html>")])

    with pytest.raises(TransportError, match="Invalid response from Alpaca API"):
        AlpacaClient(config, session=session).create_order({"symbol": "XYZ"})


def test_garbled_order_reply_is_reported_as_bad_gateway(config) -> None:
    session = DummySession(
        [
            DummyResponse(200, {"id": "acct-1", "options_trading_level": 2}),
            DummyResponse(404, {"code": 40410000, "message": "position does not exist"}),
            DummyResponse(200, text="<html>gateway</html>"),
        ]
    )
    client = AlpacaClient(config, session=session)
    payload = {"symbol": "XYZ240101C00100000", "side": "buy", "quantity": 1, "price": "1.44"}

    result = place_options_order(payload, client, config, sleep_fn=lambda _: None)

    assert result.status_code == 502
    assert result.body["success"] is False
    assert "Invalid response from Alpaca API" in result.body["error"]
    assert [call["method"] for call in session.calls] == ["GET", "GET", "POST"]


def test_network_failure_raises_transport_error(config) -> None:
    session = DummySession([requests.ConnectionError("connection refused")])

    with pytest.raises(TransportError):
        AlpacaClient(config, session=session).create_order({"symbol": "XYZ"})


def test_cancel_order_accepts_empty_body(config) -> None:
    session = DummySession([DummyResponse(204)])

    assert AlpacaClient(config, session=session).cancel_order("order-1") is None
    assert session.calls[0]["method"] == "DELETE"


def test_list_orders_joins_symbols(config) -> None:
    session = DummySession([DummyResponse(200, [{"id": "order-1"}])])

    orders = AlpacaClient(config, session=session).list_orders("open", ["AAA", "BBB"], limit=5)

    assert orders == [{"id": "order-1"}]
    assert session.calls[0]["params"] == {
        "status": "open",
        "limit": 5,
        "direction": "desc",
        "nested": "true",
        "symbols": "AAA,BBB",
    }


def test_option_quotes_use_data_host(config) -> None:
    quotes = {"XYZ240101C00100000": {"bp": 1.4, "ap": 1.5}}
    session = DummySession([DummyResponse(200, {"quotes": quotes})])

    result = AlpacaClient(config, session=session).get_latest_option_quotes(["XYZ240101C00100000"])

    assert result == quotes
    assert session.calls[0]["url"] == "https://data.alpaca.markets/v1beta1/options/quotes/latest"
    assert session.calls[0]["params"] == {"symbols": "XYZ240101C00100000"}


def test_option_contracts_filters(config) -> None:
    session = DummySession([DummyResponse(200, {"option_contracts": [{"symbol": "XYZ240101C00100000"}]})])

    contracts = AlpacaClient(config, session=session).list_option_contracts(
        "XYZ", expiration="2024-01-01", option_type="call"
    )

    assert contracts == [{"symbol": "XYZ240101C00100000"}]
    assert session.calls[0]["params"] == {
        "underlying_symbols": "XYZ",
        "limit": 500,
        "expiration_date": "2024-01-01",
        "type": "call",
    }


def test_build_order_payload_only_prices_limit_orders() -> None:
    limit = build_order_payload("abc", "sell", 2, "limit", limit_price="0.55")
    market = build_order_payload("abc", "sell", 2, "market", limit_price="0.55")

    assert limit == {
        "symbol": "ABC",
        "qty": 2,
        "side": "sell",
        "type": "limit",
        "time_in_force": "day",
        "limit_price": "0.55",
    }
    assert "limit_price" not in market


@pytest.mark.parametrize(
    "payload,expected",
    [
        ({"message": "m", "error": "e"}, "m"),
        ({"reject_reason": "r"}, "r"),
        ({"error": "e"}, "e"),
        ({}, "fallback"),
    ],
)
def test_extract_error_message(payload, expected: str) -> None:
    assert extract_error_message(payload, default="fallback") == expected
