"""Streamlit dashboard for the Alpaca options ladder desk."""
from __future__ import annotations

import sys
from pathlib import Path

import pandas as pd
import streamlit as st

if __package__ in {None, ""}:  # Running as a script (e.g., streamlit run)
    PROJECT_ROOT = Path(__file__).resolve().parents[2]
    if str(PROJECT_ROOT) not in sys.path:
        sys.path.append(str(PROJECT_ROOT))
    from ladderdesk.core.alpaca_client import BrokerError, TransportError
    from ladderdesk.core.config import TRADING_MODES, AlpacaConfig, TradingModeSwitch
    from ladderdesk.core.desk import TradingDesk
    from ladderdesk.core.logger import setup_logging
    from ladderdesk.core.validators import SUPPORTED_SIDES, ValidationError, parse_option_symbol
    from ladderdesk.data.ladder import build_ladder
    from ladderdesk.data.market_data import NO_DATA, Quote, latest_option_quote
    from ladderdesk.orders.normalizer import NormalizedResult
else:  # Imported as part of the ladderdesk package (e.g., pytest or modules)
    from ..core.alpaca_client import BrokerError, TransportError
    from ..core.config import TRADING_MODES, AlpacaConfig, TradingModeSwitch
    from ..core.desk import TradingDesk
    from ..core.logger import setup_logging
    from ..core.validators import SUPPORTED_SIDES, ValidationError, parse_option_symbol
    from ..data.ladder import build_ladder
    from ..data.market_data import NO_DATA, Quote, latest_option_quote
    from ..orders.normalizer import NormalizedResult


st.set_page_config(page_title="Options Ladder Desk", page_icon="📈", layout="wide")

DEFAULT_SYMBOL = "SPY250117C00600000"


@st.cache_resource(show_spinner=False)
def _mode_switch(initial_mode: str) -> TradingModeSwitch:
    # Shared across reruns and sessions, like the API's process-wide switch.
    return TradingModeSwitch(initial_mode)


def _load_config() -> AlpacaConfig | None:
    try:
        config = AlpacaConfig.from_env()
    except (EnvironmentError, ValueError) as exc:
        st.error(f"Configuration error: {exc}")
        return None
    setup_logging()
    return config


def _render_mode_panel(config: AlpacaConfig) -> TradingDesk:
    switch = _mode_switch(config.trading_mode)
    st.sidebar.header("Trading Mode")
    selected = st.sidebar.radio(
        "Mode",
        options=list(TRADING_MODES),
        index=list(TRADING_MODES).index(switch.current),
        horizontal=True,
    )
    if selected != switch.current:
        switch.switch(selected)
    if selected == "live":
        st.sidebar.warning("LIVE trading: orders use real money.")
    snapshot = switch.snapshot(config)
    return TradingDesk.from_config(snapshot)


def _render_account_panel(desk: TradingDesk) -> None:
    st.sidebar.header("Account")
    try:
        account = desk.account_summary()
    except (BrokerError, TransportError) as exc:
        st.sidebar.warning(f"Could not load account: {exc}")
        return
    st.sidebar.metric("Equity", f"${float(account.get('equity') or 0):,.2f}")
    st.sidebar.metric("Buying Power", f"${float(account.get('buying_power') or 0):,.2f}")
    st.sidebar.metric("Options Buying Power", f"${float(account.get('options_buying_power') or 0):,.2f}")
    if account.get("options_trading_level") is not None:
        st.sidebar.caption(f"Options trading level: {account['options_trading_level']}")


def _load_quote(desk: TradingDesk, symbol: str) -> Quote | None:
    try:
        return latest_option_quote(desk.client, symbol)
    except (BrokerError, TransportError) as exc:
        st.warning(f"Could not load quote for {symbol}: {exc}")
    return None


def _render_quote(quote: Quote) -> None:
    bid_col, ask_col, mid_col, size_col = st.columns(4)
    bid_col.metric("Bid", f"{quote.bid:.2f}")
    ask_col.metric("Ask", f"{quote.ask:.2f}")
    mid_col.metric("Mid", f"{quote.mid:.2f}")
    size_col.metric("Size (bid x ask)", f"{quote.bid_size} x {quote.ask_size}")
    if quote.pricing_source == NO_DATA:
        st.caption("No live quote available for this contract.")
    else:
        st.caption(f"Quote time: {quote.timestamp}")


def _render_ladder(desk: TradingDesk, symbol: str, quote: Quote) -> None:
    st.subheader("Price Ladder")
    try:
        orders = desk.orders(status="all", symbol=symbol, limit=100)
    except (BrokerError, TransportError) as exc:
        st.warning(f"Could not load orders for the ladder: {exc}")
        orders = []
    levels = st.slider("Levels each side", min_value=5, max_value=50, value=15)
    rows = build_ladder(
        quote.bid,
        quote.ask,
        orders,
        bid_size=quote.bid_size,
        ask_size=quote.ask_size,
        levels=levels,
    )
    st.dataframe(pd.DataFrame([row.as_dict() for row in rows]), hide_index=True, use_container_width=True)


def _render_order_form(desk: TradingDesk, symbol: str, quote: Quote | None) -> None:
    st.subheader("Order Ticket")
    default_price = quote.mid if quote and quote.mid else 0.01
    with st.form("options_order_form"):
        side = st.selectbox("Side", options=list(SUPPORTED_SIDES), index=0)
        quantity = st.number_input("Contracts", min_value=1, value=1, step=1, format="%d")
        order_type = st.selectbox("Order Type", options=["limit", "market"], index=0)
        price = st.number_input("Limit Price", min_value=0.0, value=float(default_price), step=0.01, format="%.2f")
        st.caption("Plain buy/sell is resolved to open or close from your current position.")
        submitted = st.form_submit_button(f"Submit ({desk.trading_mode})")
        if submitted:
            result = desk.place_options_order(
                {
                    "symbol": symbol,
                    "side": side,
                    "quantity": int(quantity),
                    "orderType": order_type,
                    "price": price if order_type == "limit" else None,
                }
            )
            _render_result_panel(result)


def _render_result_panel(result: NormalizedResult) -> None:
    st.write("---")
    body = result.body
    if result.is_success:
        st.success(body.get("message", "Order placed"))
        st.json(
            {
                "order": body.get("order"),
                "smart_side": body.get("smart_side"),
                "original_side": body.get("original_side"),
                "method": body.get("method"),
                "position_info": body.get("position_info"),
            }
        )
        return
    st.error(f"Order failed ({result.status_code}): {body.get('error')}")
    for suggestion in body.get("suggestions", []):
        st.caption(f"- {suggestion}")
    if body.get("debug_info"):
        with st.expander("Debug info"):
            st.json(body["debug_info"])


def _render_open_orders(desk: TradingDesk) -> None:
    st.subheader("Open Orders")
    try:
        orders = desk.orders(status="open")
    except (BrokerError, TransportError) as exc:
        st.warning(f"Could not load open orders: {exc}")
        return
    if not orders:
        st.info("No open orders.")
        return
    st.dataframe(pd.DataFrame(orders), hide_index=True, use_container_width=True)

    cancel_col, cancel_all_col = st.columns(2)
    order_id = cancel_col.selectbox("Order", options=[order["id"] for order in orders])
    if cancel_col.button("Cancel Order"):
        try:
            desk.cancel_order(order_id)
            st.success(f"Order {order_id} cancelled")
        except (BrokerError, TransportError) as exc:
            st.error(f"Cancel failed: {exc}")
    if cancel_all_col.button("Cancel All"):
        results = desk.cancel_all_orders()
        failed = [entry for entry in results if entry["status"] != "cancelled"]
        if failed:
            st.warning(f"{len(failed)} of {len(results)} orders could not be cancelled.")
        else:
            st.success(f"Cancelled {len(results)} orders")


def main() -> None:
    st.title("Options Ladder Desk")
    st.caption("Alpaca options trading with position-aware open/close routing.")

    config = _load_config()
    if config is None:
        st.info("Configure ALPACA_API_KEY and ALPACA_SECRET_KEY to enable trading.")
        return

    desk = _render_mode_panel(config)
    _render_account_panel(desk)

    raw_symbol = st.text_input("Option Symbol", value=DEFAULT_SYMBOL)
    try:
        contract = parse_option_symbol(raw_symbol)
    except ValidationError as exc:
        st.error(str(exc))
        return
    st.markdown(f"**{contract.display}**")

    quote = _load_quote(desk, contract.symbol)
    ladder_col, ticket_col = st.columns([3, 2])
    with ladder_col:
        if quote:
            _render_quote(quote)
            _render_ladder(desk, contract.symbol, quote)
    with ticket_col:
        _render_order_form(desk, contract.symbol, quote)

    _render_open_orders(desk)


if __name__ == "__main__":
    main()
