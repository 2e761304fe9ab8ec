"""Projections of Alpaca quote and option-contract data."""
from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from ..core.alpaca_client import AlpacaClient
from ..core.validators import normalize_symbol, parse_option_symbol

LIVE_MARKET_DATA = "live_market_data"
CONTRACT_DATA_ONLY = "contract_data_only"
NO_DATA = "no_data"


def _as_float(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def _as_int(value: Any) -> int:
    try:
        return int(float(value or 0))
    except (TypeError, ValueError):
        return 0


@dataclass
class Quote:
    symbol: str
    bid: float
    ask: float
    last: float
    bid_size: int
    ask_size: int
    volume: int
    timestamp: str
    pricing_source: str

    @property
    def mid(self) -> float:
        if self.bid and self.ask:
            return round((self.bid + self.ask) / 2, 4)
        return self.bid or self.ask

    @classmethod
    def from_alpaca(cls, symbol: str, raw: Dict[str, Any]) -> "Quote":
        # Market-data v2/v1beta1 abbreviate fields; the long names are kept for older payloads.
        return cls(
            symbol=symbol,
            bid=_as_float(raw.get("bp", raw.get("bid_price"))),
            ask=_as_float(raw.get("ap", raw.get("ask_price"))),
            last=_as_float(raw.get("last_price")),
            bid_size=_as_int(raw.get("bs", raw.get("bid_size"))),
            ask_size=_as_int(raw.get("as", raw.get("ask_size"))),
            volume=_as_int(raw.get("volume")),
            timestamp=str(raw.get("t", raw.get("timestamp")) or ""),
            pricing_source=LIVE_MARKET_DATA,
        )

    @classmethod
    def empty(cls, symbol: str) -> "Quote":
        return cls(
            symbol=symbol,
            bid=0.0,
            ask=0.0,
            last=0.0,
            bid_size=0,
            ask_size=0,
            volume=0,
            timestamp=datetime.now(timezone.utc).isoformat(),
            pricing_source=NO_DATA,
        )

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ChainEntry:
    symbol: str
    underlying: str
    strike: float
    expiration: str
    type: str
    open_interest: int
    pricing_source: str = CONTRACT_DATA_ONLY

    @classmethod
    def from_contract(cls, contract: Dict[str, Any]) -> "ChainEntry":
        return cls(
            symbol=contract.get("symbol", ""),
            underlying=contract.get("underlying_symbol", ""),
            strike=_as_float(contract.get("strike_price")),
            expiration=contract.get("expiration_date", ""),
            type=contract.get("type", ""),
            open_interest=_as_int(contract.get("open_interest")),
        )


def latest_stock_quote(client: AlpacaClient, symbol: str) -> Quote:
    symbol = normalize_symbol(symbol)
    return Quote.from_alpaca(symbol, client.get_latest_stock_quote(symbol))


def latest_option_quotes(client: AlpacaClient, symbols: Iterable[str]) -> List[Quote]:
    """Return quotes in request order, skipping symbols the feed did not answer."""
    symbol_list = [normalize_symbol(symbol) for symbol in symbols]
    raw_quotes = client.get_latest_option_quotes(symbol_list)
    return [Quote.from_alpaca(symbol, raw_quotes[symbol]) for symbol in symbol_list if symbol in raw_quotes]


def latest_option_quote(client: AlpacaClient, symbol: str) -> Quote:
    parsed = parse_option_symbol(symbol)
    quotes = latest_option_quotes(client, [parsed.symbol])
    return quotes[0] if quotes else Quote.empty(parsed.symbol)


def chain_entries(contracts: Iterable[Dict[str, Any]], expiration: Optional[str] = None) -> List[ChainEntry]:
    entries = [ChainEntry.from_contract(contract) for contract in contracts]
    if expiration:
        entries = [entry for entry in entries if entry.expiration == expiration]
    return sorted(entries, key=lambda entry: (entry.expiration, entry.strike, entry.type))


def group_by_expiration(contracts: Iterable[Dict[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
    grouped: Dict[str, List[Dict[str, Any]]] = {}
    for entry in chain_entries(contracts):
        grouped.setdefault(entry.expiration, []).append(asdict(entry))
    return grouped


def unique_expirations(contracts: Iterable[Dict[str, Any]]) -> List[str]:
    return sorted({contract.get("expiration_date") for contract in contracts if contract.get("expiration_date")})
