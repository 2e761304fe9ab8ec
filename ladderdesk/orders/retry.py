"""Primary order attempt plus at most one retry for known transient rejections."""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List

from ..core.config import AlpacaConfig
from .base import AttemptRecord, PlacementResult, Rejected, SubmissionOutcome
from .rejections import signature_for

LOGGER = logging.getLogger(__name__)

PRIMARY_METHOD = "primary"


class RetryController:
    """Submits serially: attempt two starts only after attempt one is known."""

    def __init__(
        self,
        submit: Callable[[Dict[str, Any]], SubmissionOutcome],
        config: AlpacaConfig,
        sleep_fn: Callable[[float], None] = time.sleep,
    ) -> None:
        self._submit = submit
        self._config = config
        self._sleep_fn = sleep_fn

    def place(self, order_body: Dict[str, Any]) -> PlacementResult:
        attempts: List[AttemptRecord] = []

        first = self._submit(dict(order_body))
        attempts.append(AttemptRecord(number=1, order_body=dict(order_body), outcome=first))
        if not isinstance(first, Rejected):
            return PlacementResult(outcome=first, attempts=attempts, method=PRIMARY_METHOD)

        signature = signature_for(first.reason) if first.is_retryable else None
        if signature is None:
            LOGGER.error("Order rejected without retry (%s): %s", first.reason.value, first.message)
            return PlacementResult(outcome=first, attempts=attempts)

        retry_body = dict(order_body)
        retry_body.update(signature.retry_overrides)
        delay = float(getattr(self._config, signature.retry_delay_attr))
        LOGGER.warning(
            "Retrying once after %s rejection in %.3fs with body %s",
            first.reason.value,
            delay,
            retry_body,
        )
        self._sleep_fn(delay)

        second = self._submit(dict(retry_body))
        attempts.append(AttemptRecord(number=2, order_body=retry_body, outcome=second))
        if isinstance(second, Rejected):
            LOGGER.error(
                "Retry after %s also rejected (%s): %s",
                first.reason.value,
                second.reason.value,
                second.message,
            )
            return PlacementResult(outcome=second, attempts=attempts)
        return PlacementResult(outcome=second, attempts=attempts, method=signature.retry_method)
