from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any, Protocol

import requests

from portfolio_ledger.config.settings import Settings
from portfolio_ledger.portfolio.metrics import Portfolio
from portfolio_ledger.utils.logging import get_logger

logger = get_logger(__name__)

EODHD_REALTIME_URL = "https://eodhd.com/api/real-time"

# Asset keys use Yahoo-style suffixes; EODHD expects exchange codes.
EXCHANGE_SUFFIXES = {
    ".NS": (".NSE", "INR"),
    ".NSE": (".NSE", "INR"),
    ".BO": (".BSE", "INR"),
    ".BSE": (".BSE", "INR"),
}


@dataclass(frozen=True)
class PriceQuote:
    ticker: str
    price: float
    currency: str


@dataclass(frozen=True)
class PriceError:
    ticker: str
    error: str


class PriceProvider(Protocol):
    def fetch_price(self, ticker: str) -> PriceQuote | PriceError: ...


def provider_symbol(ticker: str) -> tuple[str, str]:
    text = ticker.strip().upper()
    for suffix, (exchange, currency) in EXCHANGE_SUFFIXES.items():
        if text.endswith(suffix):
            return f"{text[: -len(suffix)]}{exchange}", currency
    if "." in text:
        return text, "USD"
    return f"{text}.US", "USD"


def _default_fetcher(url: str, params: dict[str, str], timeout_seconds: float) -> Any:
    response = requests.get(
        url,
        params=params,
        timeout=timeout_seconds,
        headers={"User-Agent": "PortfolioLedger/1.0 (+local)"},
    )
    response.raise_for_status()
    return response.json()


class EodhdPriceProvider:
    """Delayed quotes from the EODHD real-time endpoint."""

    def __init__(
        self,
        api_key: str,
        *,
        timeout_seconds: float = 10.0,
        fetcher: Callable[[str, dict[str, str], float], Any] | None = None,
    ) -> None:
        key = str(api_key or "").strip()
        if not key:
            raise RuntimeError("EODHD_API_KEY is not configured.")
        self.api_key = key
        self.timeout_seconds = timeout_seconds
        self._fetcher = fetcher or _default_fetcher

    @classmethod
    def from_settings(cls, settings: Settings) -> EodhdPriceProvider:
        return cls(settings.eodhd_api_key, timeout_seconds=settings.price_timeout_seconds)

    def fetch_price(self, ticker: str) -> PriceQuote | PriceError:
        symbol, currency = provider_symbol(ticker)
        url = f"{EODHD_REALTIME_URL}/{symbol}"
        try:
            payload = self._fetcher(url, {"api_token": self.api_key, "fmt": "json"}, self.timeout_seconds)
        except requests.RequestException as exc:
            logger.warning("Price request for %s failed: %s", ticker, exc)
            return PriceError(ticker=ticker, error=f"Price request failed: {exc}")
        except ValueError as exc:
            logger.warning("Price response for %s is not JSON: %s", ticker, exc)
            return PriceError(ticker=ticker, error="Failed to parse price response.")

        if not isinstance(payload, dict):
            return PriceError(ticker=ticker, error="Failed to parse price response.")
        close = payload.get("close")
        try:
            price = float(close)
        except (TypeError, ValueError):
            return PriceError(ticker=ticker, error=f"No price available for {symbol}.")
        if not math.isfinite(price) or price <= 0:
            return PriceError(ticker=ticker, error=f"No price available for {symbol}.")
        return PriceQuote(ticker=ticker, price=price, currency=currency)


def apply_live_prices(
    portfolio: Portfolio, provider: PriceProvider
) -> tuple[Portfolio, list[PriceError]]:
    """Overwrite `current_price` from the provider; failed tickers keep their previous price."""
    errors: list[PriceError] = []
    assets = []
    for asset in portfolio.assets:
        quote = provider.fetch_price(asset.asset)
        if isinstance(quote, PriceError):
            errors.append(quote)
            assets.append(asset)
            continue
        assets.append(replace(asset, current_price=quote.price))
    return replace(portfolio, assets=assets), errors
