from __future__ import annotations

from portfolio_ledger.config.paths import last_result_path, mappings_path
from portfolio_ledger.domain.models import Asset, AssetType
from portfolio_ledger.portfolio.metrics import calculate_portfolio_metrics
from portfolio_ledger.storage.cache import clear_last_portfolio, load_last_portfolio, save_last_portfolio


def _portfolio():
    return calculate_portfolio_metrics(
        [Asset("INFY.NS", 3, 1500.0, 1600.0, AssetType.STOCK)],
        currency="INR",
        realized_profit=42.0,
    )


def test_save_and_load_last_portfolio(tmp_path):
    path = tmp_path / "cache" / "last.json"

    saved_to = save_last_portfolio(_portfolio(), path=path)

    assert saved_to == path
    loaded = load_last_portfolio(path=path)
    assert loaded == _portfolio()
    assert loaded.currency == "INR"


def test_missing_cache_returns_none(tmp_path):
    assert load_last_portfolio(path=tmp_path / "absent.json") is None


def test_corrupt_cache_is_discarded(tmp_path):
    path = tmp_path / "last.json"
    path.write_text('{"portfolio": {"assets": [{"asset": "X"}]}}', encoding="utf-8")

    assert load_last_portfolio(path=path) is None
    assert not path.exists()

    path.write_text("not json", encoding="utf-8")
    assert load_last_portfolio(path=path) is None
    assert not path.exists()


def test_clear_last_portfolio(tmp_path):
    path = save_last_portfolio(_portfolio(), path=tmp_path / "last.json")

    clear_last_portfolio(path=path)
    clear_last_portfolio(path=path)

    assert not path.exists()


def test_default_cache_location_follows_data_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("PORTFOLIO_LEDGER_DATA_DIR", str(tmp_path / "data"))

    assert last_result_path() == tmp_path / "data" / "cache" / "last_portfolio.json"
    assert mappings_path() == tmp_path / "data" / "mappings" / "schema_mappings.json"

    save_last_portfolio(_portfolio())
    assert load_last_portfolio() == _portfolio()
