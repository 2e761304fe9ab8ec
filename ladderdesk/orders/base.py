"""Shared order dataclasses."""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Union


ORDER_RECORD_FIELDS = (
    "id",
    "symbol",
    "side",
    "qty",
    "type",
    "status",
    "limit_price",
    "filled_qty",
    "created_at",
)

ORDER_DETAIL_FIELDS = ORDER_RECORD_FIELDS + (
    "filled_avg_price",
    "updated_at",
    "submitted_at",
    "filled_at",
    "canceled_at",
    "expired_at",
    "replaced_at",
    "asset_class",
    "position_intent",
)


def project_order(raw: Dict[str, Any], fields: tuple[str, ...] = ORDER_RECORD_FIELDS) -> Dict[str, Any]:
    return {name: raw.get(name) for name in fields}


@dataclass
class OrderRequest:
    symbol: str
    side: str
    quantity: int
    order_type: str = "limit"
    price: Optional[Decimal] = None


@dataclass(frozen=True)
class Position:
    symbol: str
    quantity: Decimal
    side: str

    @classmethod
    def from_broker(cls, raw: Dict[str, Any]) -> "Position":
        quantity = Decimal(str(raw.get("qty") or "0"))
        side = str(raw.get("side") or "").lower()
        if side == "short" and quantity > 0:
            quantity = -quantity
        if not side:
            side = "long" if quantity > 0 else "short" if quantity < 0 else "flat"
        return cls(symbol=str(raw.get("symbol", "")), quantity=quantity, side=side)

    def as_info(self) -> Dict[str, str]:
        return {"qty": str(self.quantity), "side": self.side}


@dataclass(frozen=True)
class ResolvedIntent:
    smart_side: str
    wire_side: str


class RejectionReason(str, Enum):
    WASH_TRADE = "wash_trade"
    LONG_SHORT_CONFLICT = "long_short_conflict"
    BROKER_REJECTED = "broker_rejected"
    TRANSPORT_ERROR = "transport_error"


@dataclass
class Accepted:
    order: Dict[str, Any]
    raw_response: Dict[str, Any]

    is_success = True


@dataclass
class Rejected:
    reason: RejectionReason
    message: str
    status: Optional[int] = None
    code: Optional[int] = None
    payload: Dict[str, Any] = field(default_factory=dict)

    is_success = False

    @property
    def is_retryable(self) -> bool:
        return self.reason in (RejectionReason.WASH_TRADE, RejectionReason.LONG_SHORT_CONFLICT)


SubmissionOutcome = Union[Accepted, Rejected]


@dataclass
class AttemptRecord:
    number: int
    order_body: Dict[str, Any]
    outcome: SubmissionOutcome

    def summary(self) -> Dict[str, Any]:
        if isinstance(self.outcome, Accepted):
            return {"attempt": self.number, "accepted": True, "order_id": self.outcome.order.get("id")}
        return {
            "attempt": self.number,
            "accepted": False,
            "reason": self.outcome.reason.value,
            "status": self.outcome.status,
            "message": self.outcome.message,
        }


@dataclass
class PlacementResult:
    """Final outcome of one placement call, with every attempt it made."""

    outcome: SubmissionOutcome
    attempts: List[AttemptRecord]
    method: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return isinstance(self.outcome, Accepted)

    @property
    def final_attempt(self) -> int:
        return self.attempts[-1].number

    @property
    def retried(self) -> bool:
        return len(self.attempts) > 1

    @property
    def root_cause(self) -> Optional[Rejected]:
        first = self.attempts[0].outcome
        return first if isinstance(first, Rejected) else None
