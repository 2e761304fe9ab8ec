"""Best-effort read of the caller's current position in one contract."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..core.alpaca_client import AlpacaClient, BrokerError, TransportError
from .base import Position

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class PositionLookupResult:
    position: Optional[Position]
    degraded: bool = False
    error: Optional[str] = None


class PositionLookup:
    """Reads one position; a failed read is reported as flat, never raised."""

    def __init__(self, client: AlpacaClient):
        self._client = client

    def lookup(self, symbol: str) -> PositionLookupResult:
        try:
            raw = self._client.get_position(symbol)
        except (BrokerError, TransportError) as exc:
            LOGGER.warning(
                "Position lookup for %s failed, resolving side as flat: %s", symbol, exc
            )
            return PositionLookupResult(position=None, degraded=True, error=str(exc))

        if not raw:
            LOGGER.info("No existing position for %s", symbol)
            return PositionLookupResult(position=None)

        position = Position.from_broker(raw)
        LOGGER.info(
            "Found existing position for %s: %s (%s)", symbol, position.quantity, position.side
        )
        return PositionLookupResult(position=position)
