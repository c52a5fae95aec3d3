from __future__ import annotations

import pytest
import requests

from portfolio_ledger.domain.models import Asset, AssetType
from portfolio_ledger.portfolio.metrics import calculate_portfolio_metrics
from portfolio_ledger.providers.prices import (
    EodhdPriceProvider,
    PriceError,
    PriceQuote,
    apply_live_prices,
    provider_symbol,
)


def test_provider_symbol_maps_exchange_suffixes():
    assert provider_symbol("reliance.ns") == ("RELIANCE.NSE", "INR")
    assert provider_symbol("TCS.BO") == ("TCS.BSE", "INR")
    assert provider_symbol("AAPL") == ("AAPL.US", "USD")
    assert provider_symbol("BTC-USD.CC") == ("BTC-USD.CC", "USD")


def test_fetch_price_uses_realtime_endpoint():
    calls: list[tuple[str, dict[str, str], float]] = []

    def fetcher(url: str, params: dict[str, str], timeout: float):
        calls.append((url, params, timeout))
        return {"code": "RELIANCE.NSE", "close": 2950.5}

    provider = EodhdPriceProvider("key-123", timeout_seconds=3.0, fetcher=fetcher)

    quote = provider.fetch_price("RELIANCE.NS")

    assert quote == PriceQuote(ticker="RELIANCE.NS", price=2950.5, currency="INR")
    assert calls == [
        ("https://eodhd.com/api/real-time/RELIANCE.NSE", {"api_token": "key-123", "fmt": "json"}, 3.0)
    ]


def test_fetch_price_reports_failures_as_values():
    def failing(url, params, timeout):
        raise requests.ConnectionError("boom")

    error = EodhdPriceProvider("key", fetcher=failing).fetch_price("AAPL")
    assert isinstance(error, PriceError)
    assert "boom" in error.error

    missing = EodhdPriceProvider("key", fetcher=lambda *_: {"close": "NA"}).fetch_price("AAPL")
    assert missing == PriceError(ticker="AAPL", error="No price available for AAPL.US.")

    garbage = EodhdPriceProvider("key", fetcher=lambda *_: ["not", "a", "dict"]).fetch_price("AAPL")
    assert garbage == PriceError(ticker="AAPL", error="Failed to parse price response.")


def test_provider_requires_api_key():
    with pytest.raises(RuntimeError, match="EODHD_API_KEY"):
        EodhdPriceProvider("  ")


class _StaticProvider:
    def __init__(self, prices: dict[str, float]) -> None:
        self.prices = prices

    def fetch_price(self, ticker: str) -> PriceQuote | PriceError:
        if ticker not in self.prices:
            return PriceError(ticker=ticker, error="unknown ticker")
        return PriceQuote(ticker=ticker, price=self.prices[ticker], currency="USD")


def test_apply_live_prices_overwrites_current_price_only():
    portfolio = calculate_portfolio_metrics(
        [
            Asset("AAPL", 10, 150.0, 150.0, AssetType.STOCK),
            Asset("GOLD", 1, 2000.0, 2000.0, AssetType.COMMODITY),
        ]
    )

    priced, errors = apply_live_prices(portfolio, _StaticProvider({"AAPL": 175.0}))

    assert [asset.current_price for asset in priced.assets] == [175.0, 2000.0]
    assert [asset.purchase_price for asset in priced.assets] == [150.0, 2000.0]
    assert priced.total_cost == portfolio.total_cost
    assert priced.unrealized_profit == 250.0
    assert errors == [PriceError(ticker="GOLD", error="unknown ticker")]
    assert portfolio.assets[0].current_price == 150.0
