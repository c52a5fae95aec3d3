from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from portfolio_ledger.analytics.average_cost import AverageCostLedger, LedgerEntry
from portfolio_ledger.domain.models import Asset, Transaction, TransactionType
from portfolio_ledger.ingest.audit import ParsingLogs
from portfolio_ledger.ingest.csv_mapping import (
    CsvTemplate,
    ResolvedSchema,
    resolve_columns,
    resolve_template,
)
from portfolio_ledger.ingest.tokenizer import TokenRow, tokenize
from portfolio_ledger.ingest.validators import (
    normalize_asset_type,
    normalize_side,
    normalize_status,
    parse_float,
)
from portfolio_ledger.utils.dates import utc_now_naive
from portfolio_ledger.utils.logging import get_logger

logger = get_logger(__name__)

SKIPPED = "Skipped"


@dataclass(frozen=True)
class ParseResult:
    assets: list[Asset]
    transactions: list[Transaction]
    logs: ParsingLogs = field(default_factory=ParsingLogs)
    realized_profit: float = 0.0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "assets": [asset.to_dict() for asset in self.assets],
            "transactions": [transaction.to_dict() for transaction in self.transactions],
            "realized_profit": self.realized_profit,
            "logs": self.logs.to_dict(),
        }
        if self.error is not None:
            payload["error"] = self.error
        return payload


def _format_number(value: float) -> str:
    text = f"{value:.8f}".rstrip("0").rstrip(".")
    return "0" if text in {"", "-0"} else text


def _failed(logs: ParsingLogs, error: str) -> ParseResult:
    logs.add_error(error)
    logger.info("CSV parse aborted: %s", error)
    return ParseResult(assets=[], transactions=[], logs=logs, realized_profit=0.0, error=error)


def _asset_key(fields: list[str], schema: ResolvedSchema) -> str | None:
    name = (schema.value(fields, "asset") or "").strip()
    if not name:
        return None
    exchange = (schema.value(fields, "exchange") or "").strip()
    if exchange:
        name = f"{name}.{exchange}"
    return f"{name}{schema.config.asset_suffix}"


class _RowValidator:
    def __init__(self, schema: ResolvedSchema, logs: ParsingLogs, parse_time: datetime) -> None:
        self.schema = schema
        self.config = schema.config
        self.logs = logs
        self.parse_time = parse_time
        self.skipped = 0

    def _skip(self, asset: str | None, row: TokenRow, details: str) -> None:
        self.skipped += 1
        step = f"Row {row.row_number}"
        if asset is None:
            self.logs.add_setup(f"{step}: {details} {SKIPPED}.")
        else:
            self.logs.record(asset, step, "Validate", details, SKIPPED)
        logger.debug("%s skipped: %s", step, details)

    def _cell(self, row: TokenRow, logical_field: str) -> str:
        return (self.schema.value(row.fields, logical_field) or "").strip()

    def __call__(self, row: TokenRow) -> Transaction | None:
        if row.is_blank:
            self._skip(None, row, "Empty row.")
            return None

        asset = _asset_key(row.fields, self.schema)
        if asset is not None:
            self.logs.record(
                asset, f"Row {row.row_number}", "Read", f"Raw data: [{', '.join(row.fields)}]"
            )

        if len(row.fields) < self.schema.header_count:
            self._skip(
                asset,
                row,
                f"Malformed row. Expected {self.schema.header_count} columns, got {len(row.fields)}.",
            )
            return None
        if asset is None:
            self._skip(None, row, "Missing asset name.")
            return None

        if self.config.status_sentinel is not None:
            status = normalize_status(self._cell(row, "status"))
            if status != self.config.status_sentinel:
                self._skip(
                    asset,
                    row,
                    f"Order status is '{status}', expected '{self.config.status_sentinel}'.",
                )
                return None

        asset_type = self.config.fixed_asset_type
        if self.config.validates_asset_type:
            raw_type = self._cell(row, "asset_type")
            asset_type = normalize_asset_type(raw_type)
            if asset_type is None:
                self._skip(asset, row, f"Invalid AssetType: {raw_type}")
                return None

        numbers: dict[str, float] = {}
        for logical in self.config.numeric_fields:
            raw_value = self._cell(row, logical)
            parsed = parse_float(raw_value)
            if parsed is None:
                column = self.schema.mapping[logical]
                self._skip(asset, row, f"Invalid number format in column '{column}': '{raw_value}'.")
                return None
            numbers[logical] = parsed

        quantity = numbers["quantity"]
        if quantity <= 0:
            self._skip(asset, row, f"Invalid quantity {_format_number(quantity)}; must be greater than zero.")
            return None
        price_value = numbers[self.config.price_field]
        if price_value < 0:
            self._skip(asset, row, f"Invalid price {_format_number(price_value)}; must not be negative.")
            return None
        unit_price = price_value / quantity if self.config.price_is_total else price_value

        raw_date = self._cell(row, "date")
        if not raw_date and not self.config.date_required:
            date = self.parse_time
        else:
            date = self.config.parse_date(raw_date)
            if date is None:
                self._skip(asset, row, f"Invalid date: '{raw_date}'.")
                return None

        side = TransactionType.BUY
        if self.config.has_transaction_type:
            raw_side = self._cell(row, "type")
            side = normalize_side(raw_side)
            if side is None:
                self._skip(asset, row, f"Invalid transaction type: '{raw_side}'.")
                return None

        transaction = Transaction(
            asset=asset,
            quantity=quantity,
            price=unit_price,
            type=side,
            date=date,
            asset_type=asset_type,
        )
        self.logs.record(
            asset,
            f"Row {row.row_number}",
            "Parse",
            "Parsed transaction.",
            f"Type: {side.value}, Qty: {_format_number(quantity)}, Unit price: {_format_number(unit_price)}",
        )
        return transaction


def _record_ledger_entry(logs: ParsingLogs, row_number: int, entry: LedgerEntry) -> None:
    transaction = entry.transaction
    step = f"Row {row_number}"
    trade = (
        f"{transaction.type.value} {_format_number(transaction.quantity)} "
        f"@ {_format_number(transaction.price)}"
    )
    holding = (
        f"Holding qty {_format_number(entry.quantity_after)}, "
        f"total cost {entry.total_cost_after:.2f}"
    )
    if transaction.type == TransactionType.BUY:
        logs.record(transaction.asset, step, "Accumulate", trade, holding)
        return

    if entry.short_sale:
        details = (
            f"{trade} with no quantity on record; cost basis and realized profit "
            "left unchanged (short sale pending review)."
        )
        logs.record(transaction.asset, step, "Sell", details, holding)
    else:
        details = f"{trade} against average cost {_format_number(entry.average_cost_before or 0.0)}"
        logs.record(
            transaction.asset,
            step,
            "Sell",
            details,
            f"Realized {entry.realized_profit:.2f}; {holding}",
        )
    if entry.closed:
        logs.record(transaction.asset, step, "Close", "Remaining quantity within epsilon.", "Position closed")


def parse_csv(
    csv_text: str | None,
    template: CsvTemplate | str = CsvTemplate.DEFAULT,
    schema_mapping: Mapping[str, Any] | None = None,
    *,
    now: datetime | None = None,
) -> ParseResult:
    """Parse a broker export into transactions, average-cost holdings and an audit trail.

    Rows are applied in file order. Structural problems (empty input, missing
    header columns, bad schema overrides) abort with `error` set; row problems
    only skip the row.
    """
    logs = ParsingLogs()
    config = resolve_template(template)
    if config is None:
        return _failed(logs, f"Unsupported CSV template: {template}")
    logs.add_setup(f"Template: {config.label}")

    grid, error = tokenize(csv_text)
    if grid is not None:
        logs.add_setup(f'Detected delimiter: "{grid.delimiter_name}"')
        logs.add_setup(f"Detected headers: {', '.join(grid.headers)}")
    if error:
        return _failed(logs, error)

    schema, error = resolve_columns(grid.headers, config, schema_mapping)
    if error:
        return _failed(logs, error)
    logs.add_setup(f"Using schema mapping: {json.dumps(schema.mapping)}")

    validate = _RowValidator(schema, logs, parse_time=now or utc_now_naive())
    ledger = AverageCostLedger()
    transactions: list[Transaction] = []
    for row in grid.rows():
        transaction = validate(row)
        if transaction is None:
            continue
        transactions.append(transaction)
        logs.attach_transaction(transaction)
        _record_ledger_entry(logs, row.row_number, ledger.process_transaction(transaction))

    assets = ledger.closing_assets()
    logs.add_summary(
        f"Finished processing. Total assets: {len(assets)}. "
        f"Total transactions: {len(transactions)}. "
        f"Realized Profit: {ledger.realized_profit:.2f}"
    )
    logs.add_summary(f"Skipped rows: {validate.skipped}.")
    logger.info(
        "Parsed %s CSV: %d transactions, %d assets, %d skipped rows",
        config.label,
        len(transactions),
        len(assets),
        validate.skipped,
    )
    return ParseResult(
        assets=assets,
        transactions=transactions,
        logs=logs,
        realized_profit=ledger.realized_profit,
    )
