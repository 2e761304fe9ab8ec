"""Known broker rejection signatures and how to classify a rejection.

The patterns below were observed from Alpaca's order endpoint rather than
taken from a documented contract, so matching is a best-effort heuristic.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Optional

from .base import RejectionReason

FORBIDDEN_CODE = 40310000


@dataclass(frozen=True)
class RejectionSignature:
    reason: RejectionReason
    fragment: str
    codes: FrozenSet[int] = field(default_factory=frozenset)
    retry_delay_attr: str = "wash_trade_retry_delay"
    retry_overrides: Dict[str, Any] = field(default_factory=dict)
    retry_method: str = ""

    def matches(self, message: str, code: Optional[int]) -> bool:
        # A structured code outside the known set rules the signature out.
        if code is not None and self.codes and code not in self.codes:
            return False
        return self.fragment in message.lower()


WASH_TRADE = RejectionSignature(
    reason=RejectionReason.WASH_TRADE,
    fragment="potential wash trade detected",
    codes=frozenset({FORBIDDEN_CODE}),
    retry_delay_attr="wash_trade_retry_delay",
    retry_method="retry_after_wash_trade",
)

LONG_SHORT_CONFLICT = RejectionSignature(
    reason=RejectionReason.LONG_SHORT_CONFLICT,
    fragment="cannot open a short sell while a long buy order is open",
    codes=frozenset({FORBIDDEN_CODE}),
    retry_delay_attr="conflict_retry_delay",
    retry_overrides={"order_class": "simple"},
    retry_method="retry_after_position_conflict",
)

KNOWN_SIGNATURES = (WASH_TRADE, LONG_SHORT_CONFLICT)


def match_signature(message: str, code: Optional[int] = None) -> Optional[RejectionSignature]:
    for signature in KNOWN_SIGNATURES:
        if signature.matches(message or "", code):
            return signature
    return None


def signature_for(reason: RejectionReason) -> Optional[RejectionSignature]:
    for signature in KNOWN_SIGNATURES:
        if signature.reason is reason:
            return signature
    return None


def classify_rejection(message: str, code: Optional[int] = None) -> RejectionReason:
    signature = match_signature(message, code)
    return signature.reason if signature else RejectionReason.BROKER_REJECTED
