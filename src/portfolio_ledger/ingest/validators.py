from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from typing import Any

import pandas as pd

from portfolio_ledger.domain.models import AssetType, TransactionType
from portfolio_ledger.utils.dates import as_utc_naive

DATE_FORMATS = [
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d %H:%M:%S",
    "%m/%d/%Y %H:%M:%S",
]

DATE_FORMATS_WITH_TZ = [
    "%Y-%m-%d %H:%M:%S %z",
    "%Y/%m/%d %H:%M:%S %z",
    "%m/%d/%Y %H:%M:%S %z",
]

TZ_ABBR_OFFSETS = {
    "EST": "-0500",
    "EDT": "-0400",
    "CST": "-0600",
    "CDT": "-0500",
    "MST": "-0700",
    "MDT": "-0600",
    "PST": "-0800",
    "PDT": "-0700",
    "IST": "+0530",
    "UTC": "+0000",
    "GMT": "+0000",
}

TZ_SUFFIX_RE = re.compile(r"^(.*\d)\s+([A-Za-z]{2,4})$")

# pandas fills in the wall clock for relative words and bare times.
_YEAR_RE = re.compile(r"\d{4}")

# DD-MM-YYYY H:MM AM/PM, e.g. "05-03-2024 9:15 AM"
GROWW_DATE_RE = re.compile(
    r"(\d{2})-(\d{2})-(\d{4})\s(\d{1,2}):(\d{2})\s(AM|PM)", re.IGNORECASE
)

ASSET_TYPES = {asset_type.value: asset_type for asset_type in AssetType}

_CURRENCY_TOKENS = ("US$", "USD", "INR", "Rs.", "$", "₹", "@")


def _replace_tz_abbreviation(text: str) -> str:
    match = TZ_SUFFIX_RE.match(text.strip())
    if not match:
        return text
    base, abbr = match.groups()
    offset = TZ_ABBR_OFFSETS.get(abbr.upper())
    if offset is None:
        return text
    return f"{base} {offset}"


def parse_datetime(value: Any) -> datetime | None:
    """Permissive date parsing for the default template.

    Returns a naive UTC datetime, or None when the text is not a valid instant.
    """
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None

    text_with_offset = _replace_tz_abbreviation(text)

    for fmt in DATE_FORMATS_WITH_TZ:
        try:
            return as_utc_naive(datetime.strptime(text_with_offset, fmt))
        except ValueError:
            continue

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue

    if not _YEAR_RE.search(text):
        return None
    parsed = pd.to_datetime(text_with_offset, errors="coerce", utc=False)
    if isinstance(parsed, pd.Timestamp) and pd.notna(parsed):
        return as_utc_naive(parsed.to_pydatetime())
    return None


def parse_groww_date(value: Any) -> datetime | None:
    """Strict `DD-MM-YYYY H:MM AM/PM` parsing for the broker template.

    The instant is built in UTC and rejected unless day, month and year read
    back unchanged, so `31-04-2024` never becomes 1 May.
    """
    if value is None:
        return None
    match = GROWW_DATE_RE.search(str(value))
    if not match:
        return None

    day, month, year, hour, minute = (int(part) for part in match.groups()[:5])
    meridiem = match.group(6).upper()
    if not 1 <= hour <= 12:
        return None

    if meridiem == "PM" and hour < 12:
        hour += 12
    if meridiem == "AM" and hour == 12:
        hour = 0

    try:
        parsed = datetime(year, month, day, hour, minute, tzinfo=timezone.utc)
    except ValueError:
        return None
    if (parsed.year, parsed.month, parsed.day) != (year, month, day):
        return None
    return parsed.replace(tzinfo=None)


def parse_float(value: Any, default: float | None = None) -> float | None:
    """Parse a numeric cell; non-finite values are treated as unparseable."""
    if value is None:
        return default
    text = str(value).strip().replace(",", "")
    for token in _CURRENCY_TOKENS:
        text = text.replace(token, "")
    text = text.strip()
    if text == "":
        return default
    if text.startswith("(") and text.endswith(")"):
        text = f"-{text[1:-1]}"
    try:
        parsed = float(text)
    except ValueError:
        return default
    if not math.isfinite(parsed):
        return default
    return parsed


def normalize_side(value: Any) -> TransactionType | None:
    text = str(value or "").strip().upper()
    try:
        return TransactionType(text)
    except ValueError:
        return None


def normalize_status(value: Any) -> str:
    return str(value or "").strip().upper()


def normalize_asset_type(value: Any) -> AssetType | None:
    return ASSET_TYPES.get(str(value or "").strip())
