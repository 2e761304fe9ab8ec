"""Thin wrapper around Alpaca's trading and market-data REST endpoints."""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

import requests

from .config import AlpacaConfig

LOGGER = logging.getLogger(__name__)


class BrokerError(Exception):
    """Alpaca answered with a non-2xx status."""

    def __init__(
        self,
        status: int,
        message: str,
        code: int | None = None,
        payload: Dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.message = message
        self.code = code
        self.payload = payload or {}


class TransportError(Exception):
    """The request never produced a broker response (network, timeout, bad body)."""


def extract_error_message(payload: Dict[str, Any], default: str = "Request failed") -> str:
    for key in ("message", "reject_reason", "error"):
        value = payload.get(key)
        if value:
            return str(value)
    return default


def _error_code(payload: Dict[str, Any]) -> int | None:
    code = payload.get("code")
    if isinstance(code, str) and code.lstrip("-+").isdigit():
        code = int(code)
    return code if isinstance(code, int) else None


class AlpacaClient:
    """Issues authenticated requests against one trading host and the data host."""

    def __init__(self, config: AlpacaConfig, session: requests.Session | None = None) -> None:
        self._config = config
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "APCA-API-KEY-ID": config.api_key,
                "APCA-API-SECRET-KEY": config.api_secret,
                "Accept": "application/json",
            }
        )

    @property
    def config(self) -> AlpacaConfig:
        return self._config

    def _request(
        self,
        method: str,
        path: str,
        *,
        base_url: str | None = None,
        params: Dict[str, Any] | None = None,
        json_body: Dict[str, Any] | None = None,
    ) -> Any:
        url = f"{(base_url or self._config.trading_base_url).rstrip('/')}{path}"
        try:
            response = self._session.request(
                method,
                url,
                params=params,
                json=json_body,
                timeout=self._config.timeout_seconds,
            )
        except requests.RequestException as exc:
            LOGGER.error("%s %s failed before a response arrived: %s", method, path, exc)
            raise TransportError(str(exc)) from exc

        text = response.text or ""
        try:
            payload = response.json() if text.strip() else None
        except ValueError as exc:
            if response.ok:
                LOGGER.error("%s %s returned a non-JSON body: %.200s", method, path, text)
                raise TransportError("Invalid response from Alpaca API") from exc
            payload = {"message": text}

        if not response.ok:
            error_payload = payload if isinstance(payload, dict) else {"message": text}
            message = extract_error_message(
                error_payload, default=f"HTTP {response.status_code}: {response.reason}"
            )
            raise BrokerError(response.status_code, message, _error_code(error_payload), error_payload)
        return payload

    # Account and positions -------------------------------------------------

    def get_account(self) -> Dict[str, Any]:
        return self._request("GET", "/v2/account")

    def list_positions(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/v2/positions") or []

    def get_position(self, symbol: str) -> Optional[Dict[str, Any]]:
        """Return the open position for ``symbol`` or ``None`` when flat."""
        try:
            return self._request("GET", f"/v2/positions/{symbol}")
        except BrokerError as exc:
            if exc.status == 404:
                return None
            raise

    def close_position(self, symbol: str) -> Dict[str, Any]:
        return self._request("DELETE", f"/v2/positions/{symbol}")

    # Orders ----------------------------------------------------------------

    def create_order(self, order_body: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/v2/orders", json_body=order_body)

    def list_orders(
        self,
        status: str = "all",
        symbols: Iterable[str] | None = None,
        limit: int = 100,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {
            "status": status,
            "limit": limit,
            "direction": "desc",
            "nested": "true",
        }
        if symbols:
            params["symbols"] = ",".join(symbols)
        return self._request("GET", "/v2/orders", params=params) or []

    def get_order(self, order_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/v2/orders/{order_id}")

    def cancel_order(self, order_id: str) -> None:
        self._request("DELETE", f"/v2/orders/{order_id}")

    # Market data -----------------------------------------------------------

    def get_latest_stock_quote(self, symbol: str) -> Dict[str, Any]:
        payload = self._request(
            "GET",
            f"/v2/stocks/{symbol}/quotes/latest",
            base_url=self._config.data_base_url,
        )
        return (payload or {}).get("quote", {})

    def get_latest_option_quotes(self, symbols: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        payload = self._request(
            "GET",
            "/v1beta1/options/quotes/latest",
            base_url=self._config.data_base_url,
            params={"symbols": ",".join(symbols)},
        )
        return (payload or {}).get("quotes", {})

    def list_option_contracts(
        self,
        underlying: str,
        expiration: str | None = None,
        option_type: str | None = None,
        limit: int = 500,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"underlying_symbols": underlying, "limit": limit}
        if expiration:
            params["expiration_date"] = expiration
        if option_type:
            params["type"] = option_type
        payload = self._request("GET", "/v2/options/contracts", params=params)
        return (payload or {}).get("option_contracts") or []


class AlpacaClientFactory:
    """Builds authenticated clients following project defaults."""

    @staticmethod
    def create_client(config: AlpacaConfig) -> AlpacaClient:
        LOGGER.info(
            "Using Alpaca %s trading endpoint at %s",
            config.trading_mode,
            config.trading_base_url,
        )
        return AlpacaClient(config)


def build_order_payload(
    symbol: str,
    side: str,
    quantity: int,
    order_type: str,
    limit_price: str | None = None,
    time_in_force: str = "day",
    extra_params: Dict[str, Any] | None = None,
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "symbol": symbol.upper(),
        "qty": int(quantity),
        "side": side,
        "type": order_type,
        "time_in_force": time_in_force,
    }
    if order_type == "limit" and limit_price is not None:
        payload["limit_price"] = limit_price
    if extra_params:
        payload.update(extra_params)
    return payload
