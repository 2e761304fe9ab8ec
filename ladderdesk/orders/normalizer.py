"""Shapes placement results into the payload the HTTP layer and UI consume."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from .base import Accepted, PlacementResult, Position, Rejected, RejectionReason

SUGGESTIONS = (
    "Use a margin account to allow simultaneous long/short positions",
    "Close existing positions before placing opposing orders",
    "Use 'sell_to_close' instead of 'sell_to_open' if you have long positions",
    "Use 'buy_to_close' instead of 'buy_to_open' if you have short positions",
)

AUTHORIZATION_GUIDANCE = (
    ". Please ensure: 1) Options trading is enabled in your Alpaca account, "
    "2) You have the required options trading level, "
    "3) Your API keys have options trading permissions."
)

SUCCESS_MESSAGES = {
    "primary": "Options order placed successfully",
    "retry_after_wash_trade": "Options order placed successfully (retry after wash trade detection)",
    "retry_after_position_conflict": "Options order placed successfully (retry with simple order class)",
}


@dataclass
class NormalizedResult:
    status_code: int
    body: Dict[str, Any]

    @property
    def is_success(self) -> bool:
        return bool(self.body.get("success"))


def _position_info(position: Optional[Position]) -> Optional[Dict[str, str]]:
    return position.as_info() if position else None


def describe_rejection(rejection: Rejected) -> str:
    message = rejection.message or "Options order failed"
    if rejection.reason is RejectionReason.LONG_SHORT_CONFLICT:
        message = (
            f"Broker restriction: {message}. This occurs because you have existing long positions "
            "and are trying to create a short position. Consider using a margin account or "
            "closing existing positions first."
        )
    elif rejection.reason is RejectionReason.WASH_TRADE:
        message = f"Wash trade detection triggered: {message}."
    lowered = message.lower()
    if "not authorized" in lowered or "authorization" in lowered:
        message += AUTHORIZATION_GUIDANCE
    return message


def rejection_status(rejection: Rejected) -> int:
    if rejection.status:
        return rejection.status
    if rejection.reason is RejectionReason.TRANSPORT_ERROR:
        return 502
    return 500


def normalize_validation_error(message: str) -> NormalizedResult:
    return NormalizedResult(status_code=400, body={"success": False, "error": message})


def normalize_placement(
    result: PlacementResult,
    *,
    smart_side: str,
    original_side: str,
    position: Optional[Position],
    trading_mode: str,
) -> NormalizedResult:
    outcome = result.outcome
    attempts = [attempt.summary() for attempt in result.attempts]

    if isinstance(outcome, Accepted):
        method = result.method or "primary"
        return NormalizedResult(
            status_code=200,
            body={
                "success": True,
                "order": outcome.order,
                "message": SUCCESS_MESSAGES.get(method, SUCCESS_MESSAGES["primary"]),
                "method": method,
                "smart_side": smart_side,
                "original_side": original_side,
                "position_info": _position_info(position),
                "attempts": attempts,
            },
        )

    error = describe_rejection(outcome)
    root_cause = result.root_cause
    if result.retried and root_cause is not None:
        error += f" A retry after {root_cause.reason.value.replace('_', ' ')} detection also failed."

    return NormalizedResult(
        status_code=rejection_status(outcome),
        body={
            "success": False,
            "error": error,
            "details": outcome.payload,
            "debug_info": {
                "order_data": result.attempts[-1].order_body,
                "trading_mode": trading_mode,
                "original_side": original_side,
                "smart_side": smart_side,
                "existing_position": _position_info(position),
                "rejection_reason": outcome.reason.value,
                "attempts": attempts,
                "failed_attempt": result.final_attempt,
                "retried": result.retried,
                "root_cause": root_cause.message if root_cause else None,
            },
            "suggestions": list(SUGGESTIONS),
        },
    )
