"""Configuration helpers for the Alpaca trading desk."""
from __future__ import annotations

from dataclasses import dataclass, replace
import os
from pathlib import Path
import threading


_DOTENV_LOADED = False

PAPER_MODE = "paper"
LIVE_MODE = "live"
TRADING_MODES = (PAPER_MODE, LIVE_MODE)

DEFAULT_PAPER_URL = "https://paper-api.alpaca.markets"
DEFAULT_LIVE_URL = "https://api.alpaca.markets"
DEFAULT_DATA_URL = "https://data.alpaca.markets"


def _load_dotenv_if_available() -> None:
    global _DOTENV_LOADED
    if _DOTENV_LOADED:
        return
    from dotenv import load_dotenv

    env_path = Path(__file__).resolve().parents[2] / ".env"
    if env_path.exists():
        load_dotenv(dotenv_path=env_path, override=False)
    else:
        load_dotenv(override=False)
    _DOTENV_LOADED = True


def validate_trading_mode(mode: str | None) -> str:
    normalized = (mode or "").strip().lower()
    if normalized not in TRADING_MODES:
        raise ValueError("Mode must be 'paper' or 'live'")
    return normalized


@dataclass(frozen=True)
class AlpacaConfig:
    """Holds configuration values required to talk to Alpaca.

    Instances are immutable; a request takes one snapshot via :meth:`for_mode`
    and threads it through every broker call it makes.
    """

    api_key: str
    api_secret: str
    trading_mode: str = PAPER_MODE
    paper_base_url: str = DEFAULT_PAPER_URL
    live_base_url: str = DEFAULT_LIVE_URL
    data_base_url: str = DEFAULT_DATA_URL
    timeout_seconds: float = 10.0
    wash_trade_retry_delay: float = 0.1
    conflict_retry_delay: float = 0.2

    @property
    def is_paper(self) -> bool:
        return self.trading_mode == PAPER_MODE

    @property
    def trading_base_url(self) -> str:
        base = self.paper_base_url if self.is_paper else self.live_base_url
        return base.rstrip("/")

    def for_mode(self, mode: str) -> "AlpacaConfig":
        return replace(self, trading_mode=validate_trading_mode(mode))

    @classmethod
    def from_env(cls) -> "AlpacaConfig":
        """Load credentials and options from environment variables."""
        _load_dotenv_if_available()
        api_key = os.getenv("ALPACA_API_KEY")
        api_secret = os.getenv("ALPACA_SECRET_KEY")
        if not api_key or not api_secret:
            raise EnvironmentError(
                "ALPACA_API_KEY and ALPACA_SECRET_KEY must be set as environment variables."
            )

        trading_mode = validate_trading_mode(os.getenv("ALPACA_TRADING_MODE", PAPER_MODE))

        return cls(
            api_key=api_key,
            api_secret=api_secret,
            trading_mode=trading_mode,
            paper_base_url=os.getenv("ALPACA_PAPER_URL", DEFAULT_PAPER_URL),
            live_base_url=os.getenv("ALPACA_LIVE_URL", DEFAULT_LIVE_URL),
            data_base_url=os.getenv("ALPACA_DATA_URL", DEFAULT_DATA_URL),
            timeout_seconds=float(os.getenv("ALPACA_TIMEOUT_SECONDS", "10")),
            wash_trade_retry_delay=float(os.getenv("LADDERDESK_WASH_TRADE_RETRY_DELAY", "0.1")),
            conflict_retry_delay=float(os.getenv("LADDERDESK_CONFLICT_RETRY_DELAY", "0.2")),
        )


class TradingModeSwitch:
    """Process-wide paper/live selector shared by the API and the dashboard."""

    def __init__(self, initial_mode: str = PAPER_MODE) -> None:
        self._mode = validate_trading_mode(initial_mode)
        self._lock = threading.Lock()

    @property
    def current(self) -> str:
        with self._lock:
            return self._mode

    def switch(self, mode: str) -> str:
        """Set the active mode and return the one it replaced."""
        new_mode = validate_trading_mode(mode)
        with self._lock:
            previous = self._mode
            self._mode = new_mode
        return previous

    def snapshot(self, config: AlpacaConfig) -> AlpacaConfig:
        return config.for_mode(self.current)

