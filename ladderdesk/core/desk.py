"""High level trading desk facade used by the CLI, the API and the dashboard."""
from __future__ import annotations

import logging
import time
from decimal import Decimal
from typing import Any, Callable, Dict, List, Mapping, Optional

from .alpaca_client import AlpacaClient, AlpacaClientFactory, BrokerError, build_order_payload
from .config import AlpacaConfig
from .validators import (
    ORDER_TYPE_LIMIT,
    PRIMITIVE_SIDES,
    ValidationError,
    format_price,
    is_option_symbol,
    normalize_symbol,
    validate_order_type,
    validate_price,
    validate_quantity,
    validate_side,
)
from ..orders.base import ORDER_DETAIL_FIELDS, project_order
from ..orders.normalizer import NormalizedResult, normalize_validation_error
from ..orders.options_orders import place_options_order

LOGGER = logging.getLogger(__name__)

ACCOUNT_FIELDS = (
    "id",
    "status",
    "currency",
    "buying_power",
    "cash",
    "portfolio_value",
    "equity",
    "last_equity",
    "pattern_day_trader",
    "trading_blocked",
    "transfers_blocked",
    "account_blocked",
    "max_margin_multiplier",
    "regt_buying_power",
    "daytrading_buying_power",
    "effective_buying_power",
    "options_buying_power",
    "options_trading_level",
)

POSITION_FIELDS = (
    "symbol",
    "qty",
    "side",
    "market_value",
    "cost_basis",
    "unrealized_pl",
    "unrealized_plpc",
    "current_price",
    "avg_entry_price",
    "change_today",
)


def _project(raw: Mapping[str, Any], fields: tuple[str, ...]) -> Dict[str, Any]:
    return {name: raw.get(name) for name in fields}


class TradingDesk:
    """Facade over one request-scoped Alpaca client."""

    def __init__(
        self,
        client: AlpacaClient,
        config: AlpacaConfig,
        sleep_fn: Callable[[float], None] = time.sleep,
    ):
        self._client = client
        self._config = config
        self._sleep_fn = sleep_fn

    @classmethod
    def from_config(cls, config: AlpacaConfig) -> "TradingDesk":
        client = AlpacaClientFactory.create_client(config)
        return cls(client, config)

    @property
    def client(self) -> AlpacaClient:
        return self._client

    @property
    def trading_mode(self) -> str:
        return self._config.trading_mode

    # Orders ----------------------------------------------------------------

    def place_options_order(self, payload: Mapping[str, Any]) -> NormalizedResult:
        return place_options_order(payload, self._client, self._config, sleep_fn=self._sleep_fn)

    def place_stock_order(self, payload: Mapping[str, Any]) -> NormalizedResult:
        """Plain equity order: primitive side only, no smart routing, no retry."""
        try:
            order_body = self._build_stock_order(payload)
        except ValidationError as exc:
            LOGGER.error("Validation error: %s", exc)
            return normalize_validation_error(str(exc))

        LOGGER.info("Placing order: %s", order_body)
        try:
            response = self._client.create_order(order_body)
        except BrokerError as exc:
            LOGGER.error("Order failed (HTTP %s): %s", exc.status, exc.message)
            return NormalizedResult(
                status_code=exc.status,
                body={"success": False, "error": exc.message, "details": exc.payload},
            )
        LOGGER.info("Order accepted: %s", response)
        return NormalizedResult(
            status_code=200,
            body={
                "success": True,
                "order": project_order(response),
                "message": "Order placed successfully. All existing orders remain active.",
            },
        )

    def _build_stock_order(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        order_type = validate_order_type(payload.get("orderType", payload.get("order_type")))
        missing = [name for name in ("symbol", "side", "quantity") if payload.get(name) in (None, "")]
        if order_type == ORDER_TYPE_LIMIT and payload.get("price") in (None, ""):
            missing.append("price")
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        symbol = normalize_symbol(payload.get("symbol"))
        if is_option_symbol(symbol):
            raise ValidationError(
                f"Options orders should use the /api/options/orders endpoint (detected options symbol: {symbol})"
            )
        side = validate_side(payload.get("side"), allowed=PRIMITIVE_SIDES)
        quantity = validate_quantity(payload.get("quantity"))
        price = validate_price(payload.get("price"))
        limit_price = format_price(price) if order_type == ORDER_TYPE_LIMIT else None
        return build_order_payload(symbol, side, quantity, order_type, limit_price=limit_price)

    def orders(self, status: str = "all", symbol: Optional[str] = None, limit: int = 100) -> List[Dict[str, Any]]:
        symbols = [normalize_symbol(symbol)] if symbol else None
        return [project_order(order, ORDER_DETAIL_FIELDS) for order in self._client.list_orders(status, symbols, limit)]

    def order(self, order_id: str) -> Dict[str, Any]:
        return project_order(self._client.get_order(order_id), ORDER_DETAIL_FIELDS)

    def cancel_order(self, order_id: str) -> None:
        LOGGER.info("Cancelling order %s", order_id)
        self._client.cancel_order(order_id)

    def cancel_all_orders(self) -> List[Dict[str, Any]]:
        """Cancel open orders one by one, reporting each order's outcome."""
        results: List[Dict[str, Any]] = []
        for order in self._client.list_orders(status="open", limit=50):
            try:
                self._client.cancel_order(order["id"])
                results.append({"id": order["id"], "symbol": order.get("symbol"), "status": "cancelled"})
            except BrokerError as exc:
                LOGGER.error("Failed to cancel order %s: %s", order["id"], exc)
                results.append({"id": order["id"], "symbol": order.get("symbol"), "status": "failed_to_cancel"})
        return results

    # Account and positions -------------------------------------------------

    def account_summary(self) -> Dict[str, Any]:
        account = _project(self._client.get_account(), ACCOUNT_FIELDS)
        account["options_buying_power"] = account.get("options_buying_power") or account.get("buying_power")
        return account

    def positions(self) -> List[Dict[str, Any]]:
        return [_project(position, POSITION_FIELDS) for position in self._client.list_positions()]

    def position(self, symbol: str) -> Optional[Dict[str, Any]]:
        raw = self._client.get_position(normalize_symbol(symbol))
        return _project(raw, POSITION_FIELDS) if raw else None

    def close_position(self, symbol: str) -> Dict[str, Any]:
        symbol = normalize_symbol(symbol)
        LOGGER.info("Closing position %s", symbol)
        return project_order(self._client.close_position(symbol), ("id", "symbol", "side", "qty", "type", "status"))

    def portfolio_summary(self) -> Dict[str, Any]:
        account = self._client.get_account()
        positions = self._client.list_positions()
        open_orders = self._client.list_orders(status="open", limit=50)
        total_pl = sum((Decimal(str(pos.get("unrealized_pl") or 0)) for pos in positions), Decimal(0))
        return {
            "account": _project(account, ("buying_power", "cash", "portfolio_value", "equity", "last_equity")),
            "positions": len(positions),
            "open_orders": len(open_orders),
            "total_pl": format_price(total_pl),
            "position_summary": [
                _project(pos, ("symbol", "qty", "side", "unrealized_pl", "current_price")) for pos in positions
            ],
        }
