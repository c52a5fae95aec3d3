"""Tabular views of a parse result."""

from __future__ import annotations

import pandas as pd

from portfolio_ledger.ingest.csv_parser import ParseResult

ASSET_COLUMNS = ["asset", "asset_type", "quantity", "purchase_price", "current_price", "invested_value"]
TRANSACTION_COLUMNS = ["date", "asset", "type", "quantity", "price", "value", "asset_type"]
LOG_COLUMNS = ["step", "action", "details", "result"]


def assets_frame(result: ParseResult) -> pd.DataFrame:
    rows = [
        {
            "asset": asset.asset,
            "asset_type": asset.asset_type.value,
            "quantity": asset.quantity,
            "purchase_price": asset.purchase_price,
            "current_price": asset.current_price,
            "invested_value": asset.invested_value,
        }
        for asset in result.assets
    ]
    return pd.DataFrame(rows, columns=ASSET_COLUMNS)


def transactions_frame(result: ParseResult) -> pd.DataFrame:
    rows = [
        {
            "date": transaction.date,
            "asset": transaction.asset,
            "type": transaction.type.value,
            "quantity": transaction.quantity,
            "price": transaction.price,
            "value": transaction.value,
            "asset_type": transaction.asset_type.value,
        }
        for transaction in result.transactions
    ]
    return pd.DataFrame(rows, columns=TRANSACTION_COLUMNS)


def asset_log_frame(result: ParseResult, asset: str) -> pd.DataFrame:
    asset_log = result.logs.asset_logs.get(asset)
    if asset_log is None:
        return pd.DataFrame(columns=LOG_COLUMNS)
    return pd.DataFrame([entry.to_dict() for entry in asset_log.logs], columns=LOG_COLUMNS)
