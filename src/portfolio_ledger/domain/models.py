from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


class TransactionType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class AssetType(str, Enum):
    STOCK = "Stock"
    CRYPTOCURRENCY = "Cryptocurrency"
    COMMODITY = "Commodity"


@dataclass(frozen=True)
class Transaction:
    asset: str
    quantity: float
    price: float  # per unit
    type: TransactionType
    date: datetime
    asset_type: AssetType

    @property
    def value(self) -> float:
        return self.quantity * self.price

    def to_dict(self) -> dict[str, Any]:
        return {
            "asset": self.asset,
            "quantity": self.quantity,
            "price": self.price,
            "type": self.type.value,
            "date": self.date.isoformat(),
            "asset_type": self.asset_type.value,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> Transaction:
        return cls(
            asset=str(payload["asset"]),
            quantity=float(payload["quantity"]),
            price=float(payload["price"]),
            type=TransactionType(payload["type"]),
            date=datetime.fromisoformat(str(payload["date"])),
            asset_type=AssetType(payload["asset_type"]),
        )


@dataclass(frozen=True)
class Asset:
    asset: str
    quantity: float
    purchase_price: float  # average cost per unit
    current_price: float
    asset_type: AssetType

    @property
    def invested_value(self) -> float:
        return self.quantity * self.purchase_price

    @property
    def current_value(self) -> float:
        return self.quantity * self.current_price

    def to_dict(self) -> dict[str, Any]:
        return {
            "asset": self.asset,
            "quantity": self.quantity,
            "purchase_price": self.purchase_price,
            "current_price": self.current_price,
            "asset_type": self.asset_type.value,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> Asset:
        return cls(
            asset=str(payload["asset"]),
            quantity=float(payload["quantity"]),
            purchase_price=float(payload["purchase_price"]),
            current_price=float(payload["current_price"]),
            asset_type=AssetType(payload["asset_type"]),
        )
