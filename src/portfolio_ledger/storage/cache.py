"""Local cache of the last parsed and priced portfolio."""

from __future__ import annotations

import json
from pathlib import Path

from portfolio_ledger.config.paths import last_result_path
from portfolio_ledger.ingest.csv_mapping import write_json_atomic
from portfolio_ledger.portfolio.metrics import Portfolio
from portfolio_ledger.utils.logging import get_logger

logger = get_logger(__name__)


def save_last_portfolio(portfolio: Portfolio, *, path: Path | None = None) -> Path:
    target = path or last_result_path()
    write_json_atomic(target, {"portfolio": portfolio.to_dict()})
    return target


def load_last_portfolio(*, path: Path | None = None) -> Portfolio | None:
    target = path or last_result_path()
    if not target.exists():
        return None
    try:
        payload = json.loads(target.read_text(encoding="utf-8"))
        portfolio = Portfolio.from_dict(payload["portfolio"])
    except (json.JSONDecodeError, AttributeError, KeyError, TypeError, ValueError) as exc:
        logger.warning("Discarding unreadable portfolio cache %s: %s", target, exc)
        target.unlink(missing_ok=True)
        return None
    return portfolio


def clear_last_portfolio(*, path: Path | None = None) -> None:
    (path or last_result_path()).unlink(missing_ok=True)
