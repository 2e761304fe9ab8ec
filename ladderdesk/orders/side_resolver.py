"""Maps a requested side plus the current position onto an open/close intent."""
from __future__ import annotations

from decimal import Decimal
from typing import Optional

from ..core.validators import (
    BUY,
    BUY_TO_CLOSE,
    BUY_TO_OPEN,
    QUALIFIED_SIDES,
    SELL,
    SELL_TO_CLOSE,
    SELL_TO_OPEN,
    ValidationError,
)
from .base import ResolvedIntent


def wire_side_for(smart_side: str) -> str:
    """Alpaca only accepts primitive buy/sell on the order endpoint."""
    return BUY if smart_side in (BUY_TO_OPEN, BUY_TO_CLOSE) else SELL


def resolve(requested_side: str, position_quantity: Optional[Decimal]) -> ResolvedIntent:
    """Resolve ``requested_side`` against a signed position quantity.

    ``None`` means no position. Qualified sides pass through untouched; a
    plain ``sell`` closes a long, a plain ``buy`` closes a short, and
    everything else opens.
    """
    side = requested_side.lower()
    quantity = position_quantity if position_quantity is not None else Decimal(0)

    if side in QUALIFIED_SIDES:
        smart_side = side
    elif side == SELL and quantity > 0:
        smart_side = SELL_TO_CLOSE
    elif side == BUY and quantity < 0:
        smart_side = BUY_TO_CLOSE
    elif side == SELL:
        smart_side = SELL_TO_OPEN
    elif side == BUY:
        smart_side = BUY_TO_OPEN
    else:
        raise ValidationError(f"Unsupported side '{requested_side}'.")
    return ResolvedIntent(smart_side=smart_side, wire_side=wire_side_for(smart_side))
