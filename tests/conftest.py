from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

import pytest

GROWW_HEADER = ["Stock name", "Type", "Quantity", "Price", "Execution date and time", "Order status"]
DEFAULT_HEADER = ["Asset", "Quantity", "PurchasePrice", "CurrentPrice", "AssetType", "Date"]


def _render(header: list[str], rows: list[list[str]], delimiter: str) -> str:
    lines = [delimiter.join(header)]
    lines.extend(delimiter.join(row) for row in rows)
    return "\n".join(lines)


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2025, 3, 1, 12, 0, 0)


@pytest.fixture
def groww_csv() -> Callable[..., str]:
    def _build(
        rows: list[list[str]],
        *,
        header: list[str] | None = None,
        delimiter: str = ",",
    ) -> str:
        return _render(header or GROWW_HEADER, rows, delimiter)

    return _build


@pytest.fixture
def default_csv() -> Callable[..., str]:
    def _build(rows: list[list[str]], *, header: list[str] | None = None) -> str:
        return _render(header or DEFAULT_HEADER, rows, ",")

    return _build


@pytest.fixture
def sell_chain_rows() -> list[list[str]]:
    # Price column carries the total order value.
    return [
        ["ACME", "BUY", "10", "1000", "01-02-2024 10:00 AM", "Executed"],
        ["ACME", "SELL", "4", "600", "05-02-2024 11:30 AM", "Executed"],
        ["ACME", "BUY", "5", "600", "10-02-2024 02:15 PM", "Executed"],
    ]
