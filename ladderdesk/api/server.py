"""Flask JSON API consumed by the browser ladder."""
from __future__ import annotations

import logging
import time
from dataclasses import asdict
from typing import Any, Callable, Optional

from flask import Blueprint, Flask, current_app, jsonify, request
from flask_cors import CORS

from ..core.alpaca_client import AlpacaClient, AlpacaClientFactory, BrokerError, TransportError
from ..core.config import AlpacaConfig, TradingModeSwitch
from ..core.desk import TradingDesk
from ..core.validators import ValidationError, normalize_symbol, parse_option_symbol
from ..data.market_data import (
    CONTRACT_DATA_ONLY,
    NO_DATA,
    LIVE_MARKET_DATA,
    chain_entries,
    group_by_expiration,
    latest_option_quote,
    latest_option_quotes,
    latest_stock_quote,
    unique_expirations,
)

LOGGER = logging.getLogger(__name__)

bp = Blueprint("api", __name__)

EXTENSION_KEY = "ladderdesk"


class DeskState:
    """Per-app wiring: base config, the shared mode switch and a client factory."""

    def __init__(
        self,
        config: AlpacaConfig,
        switch: TradingModeSwitch,
        client_factory: Callable[[AlpacaConfig], AlpacaClient],
        sleep_fn: Callable[[float], None],
    ) -> None:
        self.config = config
        self.switch = switch
        self.client_factory = client_factory
        self.sleep_fn = sleep_fn

    def desk(self) -> TradingDesk:
        # One snapshot per request; later mode switches do not touch it.
        snapshot = self.switch.snapshot(self.config)
        return TradingDesk(self.client_factory(snapshot), snapshot, sleep_fn=self.sleep_fn)


def _state() -> DeskState:
    return current_app.extensions[EXTENSION_KEY]


def _failure(error: str, status: int, details: Any = None):
    body = {"success": False, "error": error}
    if details is not None:
        body["details"] = details
    return jsonify(body), status


def _json_body() -> dict:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


@bp.errorhandler(ValidationError)
def _handle_validation(exc: ValidationError):
    return _failure(str(exc), 400)


@bp.errorhandler(BrokerError)
def _handle_broker(exc: BrokerError):
    LOGGER.error("Broker error on %s: %s", request.path, exc.message)
    return _failure(exc.message, exc.status or 500, exc.payload)


@bp.errorhandler(TransportError)
def _handle_transport(exc: TransportError):
    LOGGER.error("Transport error on %s: %s", request.path, exc)
    return _failure("Could not reach Alpaca", 502, str(exc))


@bp.route("/health", methods=["GET"])
def health():
    return jsonify({"status": "OK", "message": "Ladder desk API is running"})


@bp.route("/trading-mode", methods=["GET"])
def get_trading_mode():
    return jsonify({"success": True, "mode": _state().switch.current})


@bp.route("/trading-mode", methods=["POST"])
def set_trading_mode():
    data = _json_body()
    try:
        previous = _state().switch.switch(data.get("mode"))
    except ValueError as exc:
        return _failure(str(exc), 400)
    mode = _state().switch.current
    LOGGER.info("Trading mode changed from %s to %s", previous, mode)
    return jsonify({"success": True, "mode": mode, "message": f"Switched to {mode} trading"})


@bp.route("/account", methods=["GET"])
def account():
    desk = _state().desk()
    return jsonify({"success": True, "account": desk.account_summary(), "trading_mode": desk.trading_mode})


@bp.route("/portfolio", methods=["GET"])
def portfolio():
    return jsonify({"success": True, "portfolio": _state().desk().portfolio_summary()})


@bp.route("/positions", methods=["GET"])
def positions():
    desk = _state().desk()
    symbol = request.args.get("symbol")
    if symbol:
        return jsonify({"success": True, "position": desk.position(symbol)})
    return jsonify({"success": True, "positions": desk.positions()})


@bp.route("/positions/<symbol>", methods=["DELETE"])
def close_position(symbol: str):
    order = _state().desk().close_position(symbol)
    return jsonify({"success": True, "message": f"Position closed for {symbol}", "order": order})


@bp.route("/orders", methods=["POST"])
def place_order():
    result = _state().desk().place_stock_order(_json_body())
    return jsonify(result.body), result.status_code


@bp.route("/orders", methods=["GET"])
def list_orders():
    orders = _state().desk().orders(
        status=request.args.get("status", "all"),
        symbol=request.args.get("symbol"),
    )
    return jsonify({"success": True, "orders": orders})


@bp.route("/orders", methods=["DELETE"])
def cancel_all_orders():
    results = _state().desk().cancel_all_orders()
    cancelled = sum(1 for entry in results if entry["status"] == "cancelled")
    return jsonify({"success": True, "message": f"Cancelled {cancelled} orders", "cancelled_orders": results})


@bp.route("/orders/<order_id>", methods=["GET"])
def get_order(order_id: str):
    return jsonify({"success": True, "order": _state().desk().order(order_id)})


@bp.route("/orders/<order_id>", methods=["DELETE"])
@bp.route("/orders/<order_id>/cancel", methods=["POST"])
def cancel_order(order_id: str):
    _state().desk().cancel_order(order_id)
    return jsonify({"success": True, "message": f"Order {order_id} cancelled successfully"})


@bp.route("/quote/<symbol>", methods=["GET"])
def stock_quote(symbol: str):
    quote = latest_stock_quote(_state().desk().client, symbol)
    return jsonify({"success": True, "symbol": quote.symbol, "quote": quote.as_dict()})


@bp.route("/options/quote/<symbol>", methods=["GET"])
def option_quote(symbol: str):
    quote = latest_option_quote(_state().desk().client, symbol)
    return jsonify({"success": True, "quote": quote.as_dict()})


@bp.route("/options/quotes/live", methods=["GET"])
def option_quotes_live():
    symbols = request.args.get("symbols")
    if not symbols:
        return _failure("Symbols parameter is required (comma-separated list)", 400)
    symbol_list = [entry for entry in (part.strip() for part in symbols.split(",")) if entry]
    quotes = latest_option_quotes(_state().desk().client, symbol_list)
    return jsonify(
        {
            "success": True,
            "quotes": [quote.as_dict() for quote in quotes],
            "pricing_source": LIVE_MARKET_DATA if quotes else "unavailable",
        }
    )


@bp.route("/options/expirations/<symbol>", methods=["GET"])
def option_expirations(symbol: str):
    underlying = normalize_symbol(symbol)
    contracts = _state().desk().client.list_option_contracts(underlying, limit=100)
    return jsonify({"success": True, "symbol": underlying, "expirations": unique_expirations(contracts)})


@bp.route("/options/chain/<symbol>", methods=["GET"])
def option_chain(symbol: str):
    underlying = normalize_symbol(symbol)
    expiration = request.args.get("expiration")
    contracts = _state().desk().client.list_option_contracts(underlying, expiration=expiration)
    options = [asdict(entry) for entry in chain_entries(contracts, expiration)]
    return jsonify(
        {
            "success": True,
            "symbol": underlying,
            "expiration": expiration,
            "options": options,
            "pricing_source": CONTRACT_DATA_ONLY if options else NO_DATA,
        }
    )


@bp.route("/options/all/<symbol>", methods=["GET"])
def option_chain_all(symbol: str):
    underlying = normalize_symbol(symbol)
    contracts = _state().desk().client.list_option_contracts(underlying, limit=1000)
    return jsonify(
        {
            "success": True,
            "symbol": underlying,
            "expirations": group_by_expiration(contracts),
            "pricing_source": CONTRACT_DATA_ONLY if contracts else NO_DATA,
        }
    )


@bp.route("/options/contracts/<symbol>", methods=["GET"])
def option_contracts(symbol: str):
    underlying = normalize_symbol(symbol)
    contracts = _state().desk().client.list_option_contracts(
        underlying,
        expiration=request.args.get("expiration"),
        option_type=request.args.get("type"),
    )
    return jsonify({"success": True, "symbol": underlying, "contracts": contracts})


@bp.route("/options/orders", methods=["POST"])
def place_options_order():
    payload = _json_body()
    symbol = payload.get("symbol")
    if isinstance(symbol, str) and symbol.strip():
        parse_option_symbol(symbol)
    result = _state().desk().place_options_order(payload)
    return jsonify(result.body), result.status_code


def create_app(
    config: AlpacaConfig,
    switch: Optional[TradingModeSwitch] = None,
    client_factory: Callable[[AlpacaConfig], AlpacaClient] = AlpacaClientFactory.create_client,
    sleep_fn: Callable[[float], None] = time.sleep,
) -> Flask:
    app = Flask(__name__)
    CORS(app)
    app.extensions[EXTENSION_KEY] = DeskState(
        config=config,
        switch=switch or TradingModeSwitch(config.trading_mode),
        client_factory=client_factory,
        sleep_fn=sleep_fn,
    )
    app.register_blueprint(bp, url_prefix="/api")
    return app
