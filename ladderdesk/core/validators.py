"""Input validation helpers."""
from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any


BUY = "buy"
SELL = "sell"
BUY_TO_OPEN = "buy_to_open"
BUY_TO_CLOSE = "buy_to_close"
SELL_TO_OPEN = "sell_to_open"
SELL_TO_CLOSE = "sell_to_close"

PRIMITIVE_SIDES = (BUY, SELL)
QUALIFIED_SIDES = (BUY_TO_OPEN, BUY_TO_CLOSE, SELL_TO_OPEN, SELL_TO_CLOSE)
SUPPORTED_SIDES = PRIMITIVE_SIDES + QUALIFIED_SIDES

ORDER_TYPE_LIMIT = "limit"
ORDER_TYPE_MARKET = "market"
SUPPORTED_ORDER_TYPES = (ORDER_TYPE_LIMIT, ORDER_TYPE_MARKET)

OPTION_SYMBOL_PATTERN = re.compile(r"^([A-Z]+)(\d{2})(\d{2})(\d{2})([CP])(\d{8})$")

PRICE_QUANTUM = Decimal("0.01")


class ValidationError(ValueError):
    """Raised for malformed order input before any broker call is made."""


@dataclass(frozen=True)
class OptionSymbol:
    symbol: str
    underlying: str
    expiration: str
    option_type: str
    strike: Decimal

    @property
    def display(self) -> str:
        year, month, day = self.expiration.split("-")
        return f"{self.underlying} {month}/{day}/{year[2:]} ${self.strike} {self.option_type.title()}"


def normalize_symbol(symbol: Any) -> str:
    if not isinstance(symbol, str) or not symbol.strip():
        raise ValidationError("Symbol must be a non-empty string.")
    return symbol.strip().upper()


def is_option_symbol(symbol: str) -> bool:
    return len(symbol) > 10 and OPTION_SYMBOL_PATTERN.match(symbol) is not None


def parse_option_symbol(symbol: str) -> OptionSymbol:
    match = OPTION_SYMBOL_PATTERN.match(normalize_symbol(symbol))
    if not match:
        raise ValidationError(f"Invalid option symbol format: '{symbol}'.")
    underlying, year, month, day, kind, strike_raw = match.groups()
    return OptionSymbol(
        symbol=match.group(0),
        underlying=underlying,
        expiration=f"20{year}-{month}-{day}",
        option_type="call" if kind == "C" else "put",
        strike=Decimal(int(strike_raw)) / 1000,
    )


def validate_side(side: Any, allowed: tuple[str, ...] = SUPPORTED_SIDES) -> str:
    if not isinstance(side, str) or not side.strip():
        raise ValidationError("Side is required.")
    normalized = side.strip().lower()
    if normalized not in allowed:
        raise ValidationError(f"Side must be one of {', '.join(allowed)}. Got '{side}'.")
    return normalized


def validate_quantity(quantity: Any) -> int:
    """Contracts and shares are whole units; fractional input is rejected."""
    if isinstance(quantity, bool) or quantity is None or quantity == "":
        raise ValidationError("Quantity is required.")
    try:
        qty = Decimal(str(quantity).strip())
    except InvalidOperation as exc:
        raise ValidationError("Quantity must be a number.") from exc
    if not qty.is_finite() or qty != qty.to_integral_value():
        raise ValidationError("Quantity must be a whole number.")
    if qty <= 0:
        raise ValidationError("Quantity must be greater than zero.")
    return int(qty)


def validate_price(price: Any) -> Decimal | None:
    if price is None or price == "":
        return None
    if isinstance(price, bool):
        raise ValidationError("Price must be a number when provided.")
    try:
        price_val = Decimal(str(price).strip())
    except InvalidOperation as exc:
        raise ValidationError("Price must be a number when provided.") from exc
    if not price_val.is_finite() or price_val <= 0:
        raise ValidationError("Price must be greater than zero.")
    return price_val


def validate_order_type(order_type: Any) -> str:
    if order_type is None or order_type == "":
        return ORDER_TYPE_LIMIT
    normalized = str(order_type).strip().lower()
    if normalized not in SUPPORTED_ORDER_TYPES:
        raise ValidationError(f"Order type must be one of {SUPPORTED_ORDER_TYPES}.")
    return normalized


def format_price(price: Decimal) -> str:
    try:
        return str(price.quantize(PRICE_QUANTUM, rounding=ROUND_HALF_UP))
    except InvalidOperation as exc:
        raise ValidationError(f"Price {price} is too large.") from exc
