"""Unit tests for the trading desk facade."""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from ladderdesk.core.alpaca_client import BrokerError
from ladderdesk.core.desk import TradingDesk


def test_stock_order_is_sent_without_smart_routing(config, make_client, make_order) -> None:
    client = make_client(order_responses=[make_order(symbol="AAPL", side="sell")])
    desk = TradingDesk(client, config)

    result = desk.place_stock_order({"symbol": "aapl", "side": "sell", "quantity": 5, "price": "190.005"})

    assert result.status_code == 200
    assert result.body["order"]["symbol"] == "AAPL"
    assert client.submitted == [
        {
            "symbol": "AAPL",
            "qty": 5,
            "side": "sell",
            "type": "limit",
            "time_in_force": "day",
            "limit_price": "190.01",
        }
    ]
    assert client.position_lookups == []


@pytest.mark.parametrize(
    "payload,fragment",
    [
        ({"symbol": "AAPL", "side": "sell_to_close", "quantity": 1, "price": 1}, "Side must be one of"),
        ({"symbol": "XYZ240101C00100000", "side": "buy", "quantity": 1, "price": 1}, "options symbol"),
        ({"symbol": "AAPL", "side": "buy", "quantity": 1}, "price"),
        ({"symbol": "AAPL", "side": "buy", "quantity": 1, "price": "1e30"}, "too large"),
    ],
)
def test_stock_order_validation(config, make_client, payload, fragment: str) -> None:
    client = make_client()

    result = TradingDesk(client, config).place_stock_order(payload)

    assert result.status_code == 400
    assert fragment in result.body["error"]
    assert client.submitted == []


def test_stock_order_rejection_is_not_retried(config, make_client) -> None:
    client = make_client(order_responses=[BrokerError(403, "potential wash trade detected", code=40310000)])

    result = TradingDesk(client, config).place_stock_order({"symbol": "AAPL", "side": "buy", "quantity": 1, "price": 1})

    assert result.status_code == 403
    assert len(client.submitted) == 1


def test_cancel_all_orders_reports_failures(config, make_client, make_order) -> None:
    client = make_client(orders=[make_order(id="a"), make_order(id="b")])
    client.cancel_errors["b"] = BrokerError(422, "order is not cancelable")

    results = TradingDesk(client, config).cancel_all_orders()

    assert [entry["status"] for entry in results] == ["cancelled", "failed_to_cancel"]
    assert client.cancelled == ["a"]


def test_portfolio_summary_totals_unrealized_pl(config, make_client) -> None:
    client = make_client(
        positions=[
            {"symbol": "AAA", "qty": "1", "side": "long", "unrealized_pl": "10.505"},
            {"symbol": "BBB", "qty": "-2", "side": "short", "unrealized_pl": "-3.2"},
        ]
    )

    summary = TradingDesk(client, config).portfolio_summary()

    assert summary["positions"] == 2
    assert summary["total_pl"] == "7.31"
    assert summary["open_orders"] == 0


def test_account_summary_falls_back_to_buying_power(config, make_client) -> None:
    summary = TradingDesk(make_client(), config).account_summary()

    assert summary["options_buying_power"] == "1000"
    assert summary["id"] == "acct-1"
