"""Shared stubs for the desk tests."""
from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from ladderdesk.core.config import AlpacaConfig


class DummyAlpacaClient:
    """Scripted stand-in for AlpacaClient.

    ``order_responses`` are consumed one per ``create_order`` call; an
    exception instance is raised instead of returned.
    """

    def __init__(
        self,
        position: Optional[Dict[str, Any]] = None,
        position_error: Optional[Exception] = None,
        order_responses: Optional[List[Any]] = None,
        orders: Optional[List[Dict[str, Any]]] = None,
        account: Optional[Dict[str, Any]] = None,
        positions: Optional[List[Dict[str, Any]]] = None,
        option_quotes: Optional[Dict[str, Dict[str, Any]]] = None,
        contracts: Optional[List[Dict[str, Any]]] = None,
    ) -> None:
        self.position = position
        self.position_error = position_error
        self.order_responses = list(order_responses or [])
        self.orders = list(orders or [])
        self.account = account or {"id": "acct-1", "status": "ACTIVE", "buying_power": "1000", "equity": "1500"}
        self.positions = list(positions or [])
        self.option_quotes = option_quotes or {}
        self.contracts = list(contracts or [])
        self.submitted: List[Dict[str, Any]] = []
        self.cancelled: List[str] = []
        self.cancel_errors: Dict[str, Exception] = {}
        self.position_lookups: List[str] = []

    def get_position(self, symbol: str) -> Optional[Dict[str, Any]]:
        self.position_lookups.append(symbol)
        if self.position_error is not None:
            raise self.position_error
        return self.position

    def create_order(self, order_body: Dict[str, Any]) -> Dict[str, Any]:
        self.submitted.append(dict(order_body))
        response = self.order_responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def list_orders(self, status: str = "all", symbols=None, limit: int = 100) -> List[Dict[str, Any]]:
        return list(self.orders)

    def get_order(self, order_id: str) -> Dict[str, Any]:
        return next(order for order in self.orders if order["id"] == order_id)

    def cancel_order(self, order_id: str) -> None:
        if order_id in self.cancel_errors:
            raise self.cancel_errors[order_id]
        self.cancelled.append(order_id)

    def get_account(self) -> Dict[str, Any]:
        return dict(self.account)

    def list_positions(self) -> List[Dict[str, Any]]:
        return list(self.positions)

    def get_latest_option_quotes(self, symbols) -> Dict[str, Dict[str, Any]]:
        return {symbol: self.option_quotes[symbol] for symbol in symbols if symbol in self.option_quotes}

    def list_option_contracts(self, underlying, expiration=None, option_type=None, limit=500):
        return list(self.contracts)


def accepted_order(**overrides: Any) -> Dict[str, Any]:
    order = {
        "id": "order-1",
        "symbol": "XYZ240101C00100000",
        "side": "buy",
        "qty": "1",
        "type": "limit",
        "status": "accepted",
        "limit_price": "1.44",
        "filled_qty": "0",
        "created_at": "2024-01-01T14:30:00Z",
    }
    order.update(overrides)
    return order


@pytest.fixture
def config() -> AlpacaConfig:
    return AlpacaConfig(api_key="key", api_secret="secret")


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def record_sleep(sleeps: List[float]):
    return sleeps.append


@pytest.fixture
def make_client():
    return DummyAlpacaClient


@pytest.fixture
def make_order():
    return accepted_order
