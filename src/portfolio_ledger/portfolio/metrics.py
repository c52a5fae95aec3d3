from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from portfolio_ledger.domain.models import Asset, Transaction
from portfolio_ledger.ingest.csv_mapping import CsvTemplate, resolve_template
from portfolio_ledger.ingest.csv_parser import ParseResult
from portfolio_ledger.utils.money import format_money


@dataclass(frozen=True)
class Portfolio:
    assets: list[Asset]
    transactions: list[Transaction] = field(default_factory=list)
    total_cost: float = 0.0  # net invested value of current holdings
    currency: str = "USD"
    realized_profit: float = 0.0

    @property
    def current_value(self) -> float:
        return sum(asset.current_value for asset in self.assets)

    @property
    def unrealized_profit(self) -> float:
        return self.current_value - self.total_cost

    def to_dict(self) -> dict[str, Any]:
        return {
            "assets": [asset.to_dict() for asset in self.assets],
            "transactions": [transaction.to_dict() for transaction in self.transactions],
            "total_cost": self.total_cost,
            "currency": self.currency,
            "realized_profit": self.realized_profit,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> Portfolio:
        return cls(
            assets=[Asset.from_dict(item) for item in payload.get("assets") or []],
            transactions=[Transaction.from_dict(item) for item in payload.get("transactions") or []],
            total_cost=float(payload.get("total_cost") or 0.0),
            currency=str(payload.get("currency") or "USD"),
            realized_profit=float(payload.get("realized_profit") or 0.0),
        )


def calculate_portfolio_metrics(
    assets: list[Asset],
    transactions: list[Transaction] | None = None,
    *,
    currency: str = "USD",
    realized_profit: float = 0.0,
) -> Portfolio:
    total_cost = sum(asset.invested_value for asset in assets)
    return Portfolio(
        assets=list(assets),
        transactions=list(transactions or []),
        total_cost=total_cost,
        currency=currency,
        realized_profit=realized_profit,
    )


def portfolio_from_result(
    result: ParseResult, template: CsvTemplate | str = CsvTemplate.DEFAULT
) -> Portfolio:
    if result.error is not None:
        raise ValueError(f"Cannot build a portfolio from a failed parse: {result.error}")
    config = resolve_template(template)
    if config is None:
        raise ValueError(f"Unsupported CSV template: {template}")
    return calculate_portfolio_metrics(
        result.assets,
        result.transactions,
        currency=config.currency,
        realized_profit=result.realized_profit,
    )


def build_portfolio_summary(portfolio: Portfolio) -> str:
    """Plain-text portfolio description handed to the suggestion flow."""
    lines = [
        f"Asset: {asset.asset}, Type: {asset.asset_type.value}, "
        f"Invested Value: {format_money(asset.invested_value, portfolio.currency)}, "
        f"Current Value: {format_money(asset.current_value, portfolio.currency)}"
        for asset in portfolio.assets
    ]
    header = (
        f"Total Investment: {format_money(portfolio.total_cost, portfolio.currency)}. "
        f"Realized Profit: {format_money(portfolio.realized_profit, portfolio.currency)}."
    )
    return "\n".join([header, *lines])
