"""Command line interface for the Alpaca options ladder desk."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from typing import Any, Dict

from .core.alpaca_client import BrokerError, TransportError
from .core.config import TRADING_MODES, AlpacaConfig, TradingModeSwitch
from .core.desk import TradingDesk
from .core.logger import setup_logging
from .core.validators import SUPPORTED_ORDER_TYPES, SUPPORTED_SIDES, is_option_symbol, normalize_symbol
from .data.market_data import chain_entries, latest_option_quote, latest_stock_quote
from .orders.normalizer import NormalizedResult
from .orders.options_orders import placement_summary

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ladderdesk",
        description="Options and stock order desk on top of the Alpaca trading API.",
    )
    parser.add_argument(
        "--log-file",
        default="ladderdesk.log",
        help="Path to write log output (default: ladderdesk.log)",
    )
    parser.add_argument(
        "--raw-json",
        action="store_true",
        help="Print raw JSON responses instead of the human-friendly summary.",
    )
    parser.add_argument(
        "--mode",
        choices=TRADING_MODES,
        default=None,
        help="Trading mode for this invocation (default: ALPACA_TRADING_MODE or paper)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    options_parser = subparsers.add_parser(
        "options-order",
        help="Place an options order; buy/sell are resolved to open/close from the current position",
    )
    _add_common_order_arguments(options_parser, sides=SUPPORTED_SIDES)

    stock_parser = subparsers.add_parser("stock-order", help="Place a plain stock order")
    _add_common_order_arguments(stock_parser, sides=("buy", "sell"))

    positions_parser = subparsers.add_parser("positions", help="List open positions")
    positions_parser.add_argument("--symbol", help="Show only this symbol")

    orders_parser = subparsers.add_parser("orders", help="List orders")
    orders_parser.add_argument("--status", default="all", help="open, closed or all (default: all)")
    orders_parser.add_argument("--symbol", help="Filter by symbol")

    cancel_parser = subparsers.add_parser("cancel", help="Cancel one order or every open order")
    cancel_group = cancel_parser.add_mutually_exclusive_group(required=True)
    cancel_group.add_argument("order_id", nargs="?", help="Order id to cancel")
    cancel_group.add_argument("--all", action="store_true", help="Cancel every open order")

    quote_parser = subparsers.add_parser("quote", help="Latest quote for a stock or option symbol")
    quote_parser.add_argument("symbol", help="Ticker or OCC option symbol")

    chain_parser = subparsers.add_parser("chain", help="List option contracts for an underlying")
    chain_parser.add_argument("underlying", help="Underlying ticker, e.g. SPY")
    chain_parser.add_argument("--expiration", help="Only this expiration (YYYY-MM-DD)")

    serve_parser = subparsers.add_parser("serve", help="Run the JSON API for the browser ladder")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=3001)

    return parser


def _add_common_order_arguments(sub_parser: argparse.ArgumentParser, sides: tuple[str, ...]) -> None:
    sub_parser.add_argument("symbol", help="Ticker or OCC option symbol, e.g. SPY250117C00600000")
    sub_parser.add_argument("side", choices=sides, help="Order side")
    sub_parser.add_argument("quantity", help="Whole number of contracts or shares")
    sub_parser.add_argument("--price", help="Limit price (required for limit orders)")
    sub_parser.add_argument(
        "--order-type",
        choices=SUPPORTED_ORDER_TYPES,
        default="limit",
        help="limit or market (default: limit)",
    )


def _result_as_summary(payload: Dict[str, Any], raw_json: bool) -> str:
    if raw_json:
        return json.dumps(payload, indent=2, default=str)
    lines = ["Order Summary:"]
    for key, value in payload.items():
        lines.append(f"  - {key}: {value}")
    return "\n".join(lines)


def _rows_as_table(rows: list[Dict[str, Any]], raw_json: bool) -> str:
    if raw_json:
        return json.dumps(rows, indent=2, default=str)
    if not rows:
        return "(none)"
    return "\n".join("  ".join(f"{key}={value}" for key, value in row.items() if value is not None) for row in rows)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.log_file)
    LOGGER.info("Starting CLI with command: %s", args.command)

    try:
        config = AlpacaConfig.from_env()
    except (EnvironmentError, ValueError) as exc:
        LOGGER.error("Configuration error: %s", exc)
        parser.error(str(exc))
        return 1
    if args.mode:
        config = config.for_mode(args.mode)

    if args.command == "serve":
        return _handle_serve(args, config)

    desk = TradingDesk.from_config(config)

    try:
        if args.command == "options-order":
            return _print_order_result(desk.place_options_order(_order_payload(args)), args.raw_json)
        if args.command == "stock-order":
            return _print_order_result(desk.place_stock_order(_order_payload(args)), args.raw_json)
        if args.command == "positions":
            return _handle_positions(args, desk)
        if args.command == "orders":
            print(_rows_as_table(desk.orders(status=args.status, symbol=args.symbol), args.raw_json))
            return 0
        if args.command == "cancel":
            return _handle_cancel(args, desk)
        if args.command == "quote":
            return _handle_quote(args, desk)
        if args.command == "chain":
            entries = chain_entries(
                desk.client.list_option_contracts(normalize_symbol(args.underlying), expiration=args.expiration),
                args.expiration,
            )
            print(_rows_as_table([asdict(entry) for entry in entries], args.raw_json))
            return 0
    except ValueError as exc:
        LOGGER.error("Validation error: %s", exc)
        parser.error(str(exc))
    except BrokerError as exc:
        LOGGER.error("Alpaca rejected the request (HTTP %s): %s", exc.status, exc.message)
        print(f"Alpaca error ({exc.status}): {exc.message}", file=sys.stderr)
        return 1
    except TransportError as exc:
        LOGGER.error("Could not reach Alpaca: %s", exc)
        print(f"Could not reach Alpaca: {exc}", file=sys.stderr)
        return 1

    parser.error("No command provided")
    return 1


def _order_payload(args: argparse.Namespace) -> Dict[str, Any]:
    return {
        "symbol": args.symbol,
        "side": args.side,
        "quantity": args.quantity,
        "price": args.price,
        "orderType": args.order_type,
    }


def _print_order_result(result: NormalizedResult, raw_json: bool) -> int:
    body = result.body
    if raw_json:
        print(_result_as_summary(body, raw_json=True))
        return 0 if result.is_success else 1
    if result.is_success:
        order = body.get("order") or {}
        summary = placement_summary(result)
        summary.update({key: order.get(key) for key in ("status", "symbol", "side", "qty", "limit_price")})
        print(_result_as_summary({k: v for k, v in summary.items() if v is not None}, raw_json=False))
        return 0
    print(f"FAILED ({result.status_code}): {body.get('error')}", file=sys.stderr)
    for suggestion in body.get("suggestions", []):
        print(f"  * {suggestion}", file=sys.stderr)
    return 1


def _handle_positions(args: argparse.Namespace, desk: TradingDesk) -> int:
    if args.symbol:
        position = desk.position(args.symbol)
        print(_rows_as_table([position] if position else [], args.raw_json))
    else:
        print(_rows_as_table(desk.positions(), args.raw_json))
    return 0


def _handle_cancel(args: argparse.Namespace, desk: TradingDesk) -> int:
    if args.all:
        results = desk.cancel_all_orders()
        print(_rows_as_table(results, args.raw_json))
        return 0 if all(entry["status"] == "cancelled" for entry in results) else 1
    desk.cancel_order(args.order_id)
    print(f"Order {args.order_id} cancelled")
    return 0


def _handle_quote(args: argparse.Namespace, desk: TradingDesk) -> int:
    symbol = normalize_symbol(args.symbol)
    if is_option_symbol(symbol):
        quote = latest_option_quote(desk.client, symbol)
    else:
        quote = latest_stock_quote(desk.client, symbol)
    print(_result_as_summary(quote.as_dict(), args.raw_json))
    return 0


def _handle_serve(args: argparse.Namespace, config: AlpacaConfig) -> int:
    from .api.server import create_app

    app = create_app(config, TradingModeSwitch(config.trading_mode))
    LOGGER.info("Ladder desk API listening on %s:%s (%s trading)", args.host, args.port, config.trading_mode)
    app.run(host=args.host, port=args.port, threaded=True)
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
