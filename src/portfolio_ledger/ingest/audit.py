"""Structured audit trail of every decision taken while parsing a file."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from portfolio_ledger.domain.models import Transaction


@dataclass(frozen=True)
class StructuredLog:
    step: str
    action: str
    details: str
    result: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            "step": self.step,
            "action": self.action,
            "details": self.details,
            "result": self.result,
        }


@dataclass
class AssetLog:
    logs: list[StructuredLog] = field(default_factory=list)
    transactions: list[Transaction] = field(default_factory=list)


@dataclass
class ParsingLogs:
    setup: list[str] = field(default_factory=list)
    asset_logs: dict[str, AssetLog] = field(default_factory=dict)
    summary: list[str] = field(default_factory=list)

    def add_setup(self, message: str) -> None:
        self.setup.append(message)

    def add_error(self, error: str) -> None:
        self.setup.append(f"Error: {error}")

    def add_summary(self, message: str) -> None:
        self.summary.append(message)

    def for_asset(self, asset: str) -> AssetLog:
        return self.asset_logs.setdefault(asset, AssetLog())

    def record(self, asset: str, step: str, action: str, details: str, result: str = "") -> None:
        self.for_asset(asset).logs.append(
            StructuredLog(step=step, action=action, details=details, result=result)
        )

    def attach_transaction(self, transaction: Transaction) -> None:
        self.for_asset(transaction.asset).transactions.append(transaction)

    def to_dict(self) -> dict[str, Any]:
        return {
            "setup": list(self.setup),
            "asset_logs": {
                asset: {
                    "logs": [entry.to_dict() for entry in asset_log.logs],
                    "transactions": [tx.to_dict() for tx in asset_log.transactions],
                }
                for asset, asset_log in self.asset_logs.items()
            },
            "summary": list(self.summary),
        }
