"""Price ladder rows for the dashboard's bid/ask view."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional

DEFAULT_INCREMENT = Decimal("0.01")
DEFAULT_LEVELS = 25
WORKING_STATUSES = {"new", "accepted", "pending_new", "partially_filled"}


@dataclass
class LadderRow:
    price: Decimal
    bid_size: int = 0
    ask_size: int = 0
    is_bid: bool = False
    is_ask: bool = False
    working_buy_qty: int = 0
    working_sell_qty: int = 0
    filled_qty: int = 0
    avg_fill_price: Optional[Decimal] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "price": f"{self.price:.2f}",
            "bid_size": self.bid_size or "",
            "ask_size": self.ask_size or "",
            "marker": "/".join(label for label, flag in (("BID", self.is_bid), ("ASK", self.is_ask)) if flag),
            "working_buy": self.working_buy_qty or "",
            "working_sell": self.working_sell_qty or "",
            "filled": self.filled_qty or "",
            "avg_fill": f"{self.avg_fill_price:.2f}" if self.avg_fill_price is not None else "",
        }


def _to_decimal(value: Any) -> Optional[Decimal]:
    if value in (None, ""):
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def snap(price: Decimal, increment: Decimal = DEFAULT_INCREMENT) -> Decimal:
    steps = (price / increment).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return (steps * increment).quantize(increment)


def build_ladder(
    bid: Any,
    ask: Any,
    orders: Iterable[Dict[str, Any]] = (),
    *,
    bid_size: int = 0,
    ask_size: int = 0,
    levels: int = DEFAULT_LEVELS,
    increment: Decimal = DEFAULT_INCREMENT,
) -> List[LadderRow]:
    """Build ladder rows around the inside market, highest price first.

    ``orders`` are Alpaca order dicts for the ladder's symbol; resting orders
    show as working quantity and filled ones as filled quantity at their limit.
    """
    bid_price = snap(_to_decimal(bid) or Decimal(0), increment)
    ask_price = snap(_to_decimal(ask) or Decimal(0), increment)

    start = max(increment, bid_price - levels * increment)
    rows: Dict[Decimal, LadderRow] = {}
    for step in range(levels * 2 + 1):
        price = snap(start + step * increment, increment)
        rows[price] = LadderRow(price=price)

    for order in orders:
        limit_price = _to_decimal(order.get("limit_price"))
        if limit_price is None or limit_price <= 0:
            continue
        price = snap(limit_price, increment)
        row = rows.setdefault(price, LadderRow(price=price))
        status = str(order.get("status") or "").lower()
        if status in WORKING_STATUSES:
            remaining = int(Decimal(str(order.get("qty") or 0)) - Decimal(str(order.get("filled_qty") or 0)))
            if str(order.get("side")).lower() == "buy":
                row.working_buy_qty += remaining
            else:
                row.working_sell_qty += remaining
        elif status == "filled":
            filled = int(Decimal(str(order.get("filled_qty") or order.get("qty") or 0)))
            fill_price = _to_decimal(order.get("filled_avg_price")) or limit_price
            previous_value = (row.avg_fill_price or Decimal(0)) * row.filled_qty
            row.filled_qty += filled
            if row.filled_qty:
                row.avg_fill_price = ((previous_value + fill_price * filled) / row.filled_qty).quantize(increment)

    if bid_price > 0:
        bid_row = rows.setdefault(bid_price, LadderRow(price=bid_price))
        bid_row.is_bid = True
        bid_row.bid_size = bid_size
    if ask_price > 0:
        ask_row = rows.setdefault(ask_price, LadderRow(price=ask_price))
        ask_row.is_ask = True
        ask_row.ask_size = ask_size

    return sorted(rows.values(), key=lambda row: row.price, reverse=True)
