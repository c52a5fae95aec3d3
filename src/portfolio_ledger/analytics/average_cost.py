"""Weighted-average cost basis engine for buy/sell streams."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from portfolio_ledger.domain.models import Asset, AssetType, Transaction, TransactionType

HOLDING_EPSILON = 1e-5


@dataclass(slots=True)
class Holding:
    quantity: float = 0.0
    total_cost: float = 0.0

    @property
    def average_cost(self) -> float:
        if self.quantity <= 0:
            return 0.0
        return self.total_cost / self.quantity


@dataclass(frozen=True)
class LedgerEntry:
    transaction: Transaction
    quantity_after: float
    total_cost_after: float
    average_cost_before: float | None = None
    realized_profit: float = 0.0
    short_sale: bool = False
    closed: bool = False


class AverageCostLedger:
    """Running quantity and cost per asset, applied strictly in the order given.

    Sells realize profit against the average cost held immediately before the
    sale and remove cost at that same average, so the remaining units keep it.
    A sell against no recorded quantity only reduces quantity.
    """

    def __init__(self) -> None:
        self._holdings: dict[str, Holding] = {}
        self._asset_types: dict[str, AssetType] = {}
        self.realized_profit = 0.0

    def process_transactions(self, transactions: Iterable[Transaction]) -> list[LedgerEntry]:
        return [self.process_transaction(transaction) for transaction in transactions]

    def process_transaction(self, transaction: Transaction) -> LedgerEntry:
        holding = self._holdings.setdefault(transaction.asset, Holding())
        self._asset_types.setdefault(transaction.asset, transaction.asset_type)

        if transaction.type == TransactionType.BUY:
            return self._buy(holding, transaction)
        if transaction.type == TransactionType.SELL:
            return self._sell(holding, transaction)
        raise ValueError(f"Unsupported transaction type: {transaction.type}")

    @staticmethod
    def _buy(holding: Holding, transaction: Transaction) -> LedgerEntry:
        holding.quantity += transaction.quantity
        holding.total_cost += transaction.quantity * transaction.price
        return LedgerEntry(
            transaction=transaction,
            quantity_after=holding.quantity,
            total_cost_after=holding.total_cost,
        )

    def _sell(self, holding: Holding, transaction: Transaction) -> LedgerEntry:
        quantity = transaction.quantity
        average_before: float | None = None
        profit = 0.0
        short_sale = holding.quantity <= 0

        if not short_sale:
            average_before = holding.total_cost / holding.quantity
            profit = (transaction.price - average_before) * quantity
            self.realized_profit += profit
            holding.total_cost = max(holding.total_cost - average_before * quantity, 0.0)

        holding.quantity -= quantity

        closed = abs(holding.quantity) < HOLDING_EPSILON
        if closed:
            holding.quantity = 0.0
            holding.total_cost = 0.0

        return LedgerEntry(
            transaction=transaction,
            quantity_after=holding.quantity,
            total_cost_after=holding.total_cost,
            average_cost_before=average_before,
            realized_profit=profit,
            short_sale=short_sale,
            closed=closed,
        )

    def holding(self, asset: str) -> Holding | None:
        return self._holdings.get(asset)

    def holdings(self) -> dict[str, Holding]:
        return dict(self._holdings)

    def closing_assets(self) -> list[Asset]:
        assets: list[Asset] = []
        for asset, holding in self._holdings.items():
            if holding.quantity <= HOLDING_EPSILON:
                continue
            average_price = holding.total_cost / holding.quantity if holding.quantity > 0 else 0.0
            assets.append(
                Asset(
                    asset=asset,
                    quantity=holding.quantity,
                    purchase_price=average_price,
                    current_price=average_price,
                    asset_type=self._asset_types.get(asset, AssetType.STOCK),
                )
            )
        return assets
