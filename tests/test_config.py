"""Unit tests for configuration loading and the trading mode switch."""
from __future__ import annotations

import dataclasses
import sys
import threading
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from ladderdesk.core import config as config_module
from ladderdesk.core.config import AlpacaConfig, TradingModeSwitch

ENV_VARS = (
    "ALPACA_API_KEY",
    "ALPACA_SECRET_KEY",
    "ALPACA_TRADING_MODE",
    "ALPACA_PAPER_URL",
    "ALPACA_LIVE_URL",
    "ALPACA_DATA_URL",
    "ALPACA_TIMEOUT_SECONDS",
    "LADDERDESK_WASH_TRADE_RETRY_DELAY",
    "LADDERDESK_CONFLICT_RETRY_DELAY",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    monkeypatch.setattr(config_module, "_DOTENV_LOADED", True)
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_from_env_defaults(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("ALPACA_API_KEY", "key")
    clean_env.setenv("ALPACA_SECRET_KEY", "secret")

    config = AlpacaConfig.from_env()

    assert config.trading_mode == "paper"
    assert config.is_paper
    assert config.trading_base_url == "https://paper-api.alpaca.markets"
    assert config.wash_trade_retry_delay == 0.1
    assert config.conflict_retry_delay == 0.2


def test_from_env_overrides(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("ALPACA_API_KEY", "key")
    clean_env.setenv("ALPACA_SECRET_KEY", "secret")
    clean_env.setenv("ALPACA_TRADING_MODE", "LIVE")
    clean_env.setenv("ALPACA_LIVE_URL", "https://live.example/")
    clean_env.setenv("ALPACA_TIMEOUT_SECONDS", "2.5")
    clean_env.setenv("LADDERDESK_WASH_TRADE_RETRY_DELAY", "0")

    config = AlpacaConfig.from_env()

    assert config.trading_mode == "live"
    assert config.trading_base_url == "https://live.example"
    assert config.timeout_seconds == 2.5
    assert config.wash_trade_retry_delay == 0.0


def test_from_env_requires_keys(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("ALPACA_API_KEY", "key")

    with pytest.raises(EnvironmentError):
        AlpacaConfig.from_env()


def test_from_env_rejects_unknown_mode(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("ALPACA_API_KEY", "key")
    clean_env.setenv("ALPACA_SECRET_KEY", "secret")
    clean_env.setenv("ALPACA_TRADING_MODE", "sandbox")

    with pytest.raises(ValueError):
        AlpacaConfig.from_env()


def test_for_mode_returns_new_snapshot(config: AlpacaConfig) -> None:
    live = config.for_mode("live")

    assert live.trading_mode == "live"
    assert config.trading_mode == "paper"
    with pytest.raises(dataclasses.FrozenInstanceError):
        live.trading_mode = "paper"  # type: ignore[misc]


def test_switch_returns_previous_mode(config: AlpacaConfig) -> None:
    switch = TradingModeSwitch("paper")
    snapshot = switch.snapshot(config)

    assert switch.switch("live") == "paper"
    assert switch.current == "live"
    assert snapshot.trading_mode == "paper"
    assert switch.snapshot(config).trading_mode == "live"


def test_switch_rejects_unknown_mode() -> None:
    switch = TradingModeSwitch()

    with pytest.raises(ValueError, match="Mode must be 'paper' or 'live'"):
        switch.switch("demo")
    assert switch.current == "paper"


def test_concurrent_switches_leave_a_valid_mode() -> None:
    switch = TradingModeSwitch()
    threads = [
        threading.Thread(target=switch.switch, args=("live" if index % 2 else "paper",)) for index in range(20)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert switch.current in ("paper", "live")
