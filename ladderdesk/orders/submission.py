"""Order submission: resolved intent -> Alpaca wire body -> outcome."""
from __future__ import annotations

import logging
from typing import Any, Dict

from ..core.alpaca_client import AlpacaClient, BrokerError, TransportError, build_order_payload
from ..core.validators import ORDER_TYPE_LIMIT, ValidationError, format_price
from .base import Accepted, OrderRequest, Rejected, RejectionReason, ResolvedIntent, SubmissionOutcome, project_order
from .rejections import classify_rejection

LOGGER = logging.getLogger(__name__)


def build_wire_order(request: OrderRequest, intent: ResolvedIntent) -> Dict[str, Any]:
    limit_price = None
    if request.order_type == ORDER_TYPE_LIMIT:
        if request.price is None:
            raise ValidationError("Limit orders require a price.")
        limit_price = format_price(request.price)
    return build_order_payload(
        symbol=request.symbol,
        side=intent.wire_side,
        quantity=request.quantity,
        order_type=request.order_type,
        limit_price=limit_price,
    )


class OrderSubmitter:
    """Sends one order body to Alpaca and reports the result as an outcome."""

    def __init__(self, client: AlpacaClient):
        self._client = client

    def submit(self, order_body: Dict[str, Any]) -> SubmissionOutcome:
        LOGGER.info("Submitting order: %s", order_body)
        try:
            response = self._client.create_order(dict(order_body))
        except BrokerError as exc:
            reason = classify_rejection(exc.message, exc.code)
            LOGGER.warning(
                "Order rejected (HTTP %s, code %s, %s): %s", exc.status, exc.code, reason.value, exc.message
            )
            return Rejected(
                reason=reason,
                message=exc.message,
                status=exc.status,
                code=exc.code,
                payload=exc.payload,
            )
        except TransportError as exc:
            LOGGER.error("Order submission failed in transport: %s", exc)
            return Rejected(
                reason=RejectionReason.TRANSPORT_ERROR,
                message=str(exc),
                payload={"message": str(exc)},
            )
        if not isinstance(response, dict) or not response.get("id"):
            LOGGER.error("Unexpected order response from Alpaca: %r", response)
            return Rejected(
                reason=RejectionReason.TRANSPORT_ERROR,
                message="Invalid response from Alpaca API",
                payload={"message": repr(response)},
            )
        LOGGER.info("Order accepted: %s", response)
        return Accepted(order=project_order(response), raw_response=response)
