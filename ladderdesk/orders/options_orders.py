"""Smart-routed options order placement."""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Mapping

from ..core.alpaca_client import AlpacaClient, BrokerError, TransportError
from ..core.config import AlpacaConfig
from ..core.validators import (
    ORDER_TYPE_LIMIT,
    ValidationError,
    format_price,
    normalize_symbol,
    validate_order_type,
    validate_price,
    validate_quantity,
    validate_side,
)
from .base import OrderRequest
from .normalizer import NormalizedResult, normalize_placement, normalize_validation_error
from .position_lookup import PositionLookup
from .retry import RetryController
from .side_resolver import resolve
from .submission import OrderSubmitter, build_wire_order

LOGGER = logging.getLogger(__name__)


def parse_order_request(payload: Mapping[str, Any]) -> OrderRequest:
    """Validate a caller payload (camelCase or snake_case order type)."""
    missing = [name for name in ("symbol", "side", "quantity") if payload.get(name) in (None, "")]
    order_type = validate_order_type(payload.get("orderType", payload.get("order_type")))
    if order_type == ORDER_TYPE_LIMIT and payload.get("price") in (None, ""):
        missing.append("price")
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    price = validate_price(payload.get("price"))
    if order_type == ORDER_TYPE_LIMIT and format_price(price) == "0.00":
        raise ValidationError("Price must be at least 0.01.")

    return OrderRequest(
        symbol=normalize_symbol(payload.get("symbol")),
        side=validate_side(payload.get("side")),
        quantity=validate_quantity(payload.get("quantity")),
        order_type=order_type,
        price=price,
    )


def _log_options_level(client: AlpacaClient) -> None:
    """Log the account's options level; a failed read never blocks the order."""
    try:
        account = client.get_account() or {}
    except (BrokerError, TransportError) as exc:
        LOGGER.warning("Could not read account before routing: %s", exc)
        return
    LOGGER.info(
        "Account %s options trading level: %s, options buying power: %s",
        account.get("account_number") or account.get("id"),
        account.get("options_trading_level"),
        account.get("options_buying_power"),
    )


def place_options_order(
    payload: Mapping[str, Any],
    client: AlpacaClient,
    config: AlpacaConfig,
    sleep_fn: Callable[[float], None] = time.sleep,
) -> NormalizedResult:
    """Resolve the open/close intent for an options order and place it.

    ``config`` is the per-request snapshot; its trading mode and retry delays
    stay fixed for the whole call even if the process-wide mode changes.
    """
    try:
        request = parse_order_request(payload)
    except ValidationError as exc:
        LOGGER.error("Validation error: %s", exc)
        return normalize_validation_error(str(exc))

    _log_options_level(client)
    lookup = PositionLookup(client).lookup(request.symbol)
    position_qty = lookup.position.quantity if lookup.position else None
    intent = resolve(request.side, position_qty)
    LOGGER.info(
        "Original side: %s, smart side: %s, wire side: %s",
        request.side,
        intent.smart_side,
        intent.wire_side,
    )

    order_body = build_wire_order(request, intent)
    controller = RetryController(OrderSubmitter(client).submit, config, sleep_fn=sleep_fn)
    result = controller.place(order_body)

    return normalize_placement(
        result,
        smart_side=intent.smart_side,
        original_side=request.side,
        position=lookup.position,
        trading_mode=config.trading_mode,
    )


def placement_summary(result: NormalizedResult) -> Dict[str, Any]:
    body = result.body
    order = body.get("order") or {}
    return {
        "success": body.get("success"),
        "status_code": result.status_code,
        "order_id": order.get("id"),
        "smart_side": body.get("smart_side") or body.get("debug_info", {}).get("smart_side"),
        "method": body.get("method"),
        "error": body.get("error"),
    }
