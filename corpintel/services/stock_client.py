# corpintel/services/stock_client.py
"""
Stock quote + price history from the Yahoo Finance chart API.

fetch_stock_data(ticker, range_="1y") -> dict
    Current quote (price, change, day range, 52-week range, volume) plus a close
    price history for the requested range. Timestamps are epoch milliseconds;
    missing closes are dropped.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

YAHOO_CHART_API = "https://query1.finance.yahoo.com/v8/finance/chart"
HTTP_TIMEOUT = 10.0
USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"

RANGE_CONFIG = {
    "1d": {"interval": "5m", "label": "1 Day"},
    "5d": {"interval": "15m", "label": "5 Days"},
    "1mo": {"interval": "1h", "label": "1 Month"},
    "ytd": {"interval": "1d", "label": "Year to Date"},
    "1y": {"interval": "1d", "label": "1 Year"},
    "2y": {"interval": "1wk", "label": "2 Years"},
    "5y": {"interval": "1wk", "label": "5 Years"},
}


class StockDataError(RuntimeError):
    pass


class TickerNotFound(StockDataError):
    pass


def _chart(client: httpx.Client, ticker: str, interval: str, range_: str) -> Optional[Dict[str, Any]]:
    resp = client.get(f"{YAHOO_CHART_API}/{quote(ticker)}", params={"interval": interval, "range": range_})
    resp.raise_for_status()
    results = (resp.json().get("chart") or {}).get("result") or []
    return results[0] if results else None


def _history(result: Optional[Dict[str, Any]]) -> Dict[str, List[float]]:
    timestamps: List[int] = []
    prices: List[float] = []
    if not result:
        return {"timestamps": timestamps, "prices": prices}
    quotes = ((result.get("indicators") or {}).get("quote") or [{}])[0] or {}
    closes = quotes.get("close") or []
    for i, ts in enumerate(result.get("timestamp") or []):
        close = closes[i] if i < len(closes) else None
        if close is None:
            continue
        timestamps.append(int(ts) * 1000)
        prices.append(close)
    return {"timestamps": timestamps, "prices": prices}


def fetch_stock_data(ticker: str, range_: str = "1y") -> Dict[str, Any]:
    """
    Raises ValueError for an empty ticker or unknown range, TickerNotFound when
    Yahoo has no chart for the symbol, StockDataError for upstream failures.
    """
    ticker = (ticker or "").strip()
    if not ticker:
        raise ValueError("Ticker is required")
    range_cfg = RANGE_CONFIG.get(range_)
    if not range_cfg:
        raise ValueError(f"Invalid range. Valid ranges: {', '.join(RANGE_CONFIG)}")

    with httpx.Client(timeout=HTTP_TIMEOUT, headers={"User-Agent": USER_AGENT}) as client:
        try:
            daily = _chart(client, ticker, "1d", "1d")
        except (httpx.HTTPError, ValueError) as e:
            logger.exception("Yahoo chart request failed for %s: %s", ticker, e)
            raise StockDataError("Failed to fetch stock data") from e
        if not daily:
            raise TickerNotFound(f"Ticker not found: {ticker}")
        try:
            history_result = _chart(client, ticker, range_cfg["interval"], range_)
        except (httpx.HTTPError, ValueError) as e:
            # history is optional; the quote alone is still useful
            logger.warning("Yahoo history request failed for %s (%s): %s", ticker, range_, e)
            history_result = None

    meta = daily.get("meta") or {}
    previous_close = meta.get("chartPreviousClose") or meta.get("previousClose") or 0
    price = meta.get("regularMarketPrice") or 0
    change = price - previous_close
    opens = (((daily.get("indicators") or {}).get("quote") or [{}])[0] or {}).get("open") or []

    return {
        "ticker": meta.get("symbol", ticker),
        "company_name": meta.get("longName") or meta.get("shortName") or meta.get("symbol", ticker),
        "price": price,
        "previous_close": previous_close,
        "change": change,
        "change_percent": (change / previous_close * 100) if previous_close > 0 else 0,
        "currency": meta.get("currency"),
        "market_state": meta.get("marketState"),
        "day_high": meta.get("regularMarketDayHigh") or 0,
        "day_low": meta.get("regularMarketDayLow") or 0,
        "day_open": (opens[0] if opens and opens[0] is not None else price),
        "fifty_two_week_high": meta.get("fiftyTwoWeekHigh") or 0,
        "fifty_two_week_low": meta.get("fiftyTwoWeekLow") or 0,
        "volume": meta.get("regularMarketVolume") or 0,
        "avg_volume": meta.get("averageDailyVolume10Day") or 0,
        # shares outstanding are not in the chart payload
        "market_cap": None,
        "history": {
            **_history(history_result),
            "range": range_,
            "range_label": range_cfg["label"],
        },
    }
