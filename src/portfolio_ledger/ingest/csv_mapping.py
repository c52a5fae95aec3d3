from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from hashlib import sha256
from pathlib import Path
from typing import Any
from uuid import uuid4

from portfolio_ledger.config.paths import mappings_path
from portfolio_ledger.domain.models import AssetType
from portfolio_ledger.ingest.validators import parse_datetime, parse_groww_date
from portfolio_ledger.utils.dates import utc_now_naive
from portfolio_ledger.utils.logging import get_logger

logger = get_logger(__name__)

EXECUTED_STATUS = "EXECUTED"


class CsvTemplate(str, Enum):
    DEFAULT = "default"
    ALTERNATE = "alternate"


TEMPLATE_ALIASES = {
    "default": CsvTemplate.DEFAULT,
    "alternate": CsvTemplate.ALTERNATE,
    "groww": CsvTemplate.ALTERNATE,
}


@dataclass(frozen=True)
class TemplateConfig:
    """Everything that differs between broker layouts, consumed by one row pipeline."""

    template: CsvTemplate
    label: str
    default_mapping: dict[str, str]
    required_fields: tuple[str, ...]
    optional_fields: tuple[str, ...]
    numeric_fields: tuple[str, ...]
    price_field: str
    parse_date: Callable[[Any], datetime | None]
    date_required: bool
    status_sentinel: str | None = None
    has_transaction_type: bool = False
    validates_asset_type: bool = False
    price_is_total: bool = False
    fixed_asset_type: AssetType | None = None
    asset_suffix: str = ""
    currency: str = "USD"

    @property
    def logical_fields(self) -> tuple[str, ...]:
        return (*self.required_fields, *self.optional_fields)


DEFAULT_TEMPLATE = TemplateConfig(
    template=CsvTemplate.DEFAULT,
    label="default",
    default_mapping={
        "asset": "Asset",
        "quantity": "Quantity",
        "purchase_price": "PurchasePrice",
        "current_price": "CurrentPrice",
        "asset_type": "AssetType",
        "date": "Date",
        "exchange": "Exchange",
    },
    required_fields=("asset", "quantity", "purchase_price", "current_price", "asset_type"),
    optional_fields=("date", "exchange"),
    numeric_fields=("quantity", "purchase_price", "current_price"),
    price_field="purchase_price",
    parse_date=parse_datetime,
    date_required=False,
    validates_asset_type=True,
    currency="USD",
)

ALTERNATE_TEMPLATE = TemplateConfig(
    template=CsvTemplate.ALTERNATE,
    label="Groww",
    default_mapping={
        "asset": "Stock name",
        "type": "Type",
        "quantity": "Quantity",
        "price": "Price",
        "date": "Execution date and time",
        "status": "Order status",
    },
    required_fields=("asset", "type", "quantity", "price", "date", "status"),
    optional_fields=(),
    numeric_fields=("quantity", "price"),
    price_field="price",
    parse_date=parse_groww_date,
    date_required=True,
    status_sentinel=EXECUTED_STATUS,
    has_transaction_type=True,
    price_is_total=True,
    fixed_asset_type=AssetType.STOCK,
    asset_suffix=".NS",
    currency="INR",
)

TEMPLATES = {
    CsvTemplate.DEFAULT: DEFAULT_TEMPLATE,
    CsvTemplate.ALTERNATE: ALTERNATE_TEMPLATE,
}


@dataclass(frozen=True)
class ResolvedSchema:
    config: TemplateConfig
    mapping: dict[str, str]
    indices: dict[str, int] = field(default_factory=dict)
    header_count: int = 0

    def value(self, fields: list[str], logical_field: str) -> str | None:
        index = self.indices.get(logical_field)
        if index is None or index >= len(fields):
            return None
        return fields[index]


def _normalize(text: str) -> str:
    return " ".join(text.strip().lower().replace("_", " ").split())


def resolve_template(template: CsvTemplate | str | None) -> TemplateConfig | None:
    if isinstance(template, CsvTemplate):
        return TEMPLATES[template]
    key = str(template or CsvTemplate.DEFAULT.value).strip().lower()
    resolved = TEMPLATE_ALIASES.get(key)
    return TEMPLATES[resolved] if resolved else None


def file_signature(columns: list[str]) -> str:
    canonical = "|".join(_normalize(c) for c in columns)
    return sha256(canonical.encode("utf-8")).hexdigest()


def validate_schema_mapping(
    mapping: Mapping[str, Any] | None, config: TemplateConfig
) -> tuple[dict[str, str], list[str]]:
    """Check caller overrides against the template's logical fields."""
    if mapping is None:
        return {}, []
    if not isinstance(mapping, Mapping):
        return {}, ["Schema mapping must be a dictionary."]

    allowed = {_normalize(name): name for name in config.logical_fields}
    cleaned: dict[str, str] = {}
    errors: list[str] = []
    for logical, header in mapping.items():
        logical_text = str(logical).strip()
        resolved = allowed.get(_normalize(logical_text))
        if resolved is None:
            errors.append(
                f"Unsupported field '{logical_text}' for the {config.label} template."
            )
            continue
        if isinstance(header, (dict, list, tuple, set)):
            errors.append(f"Field '{resolved}' has a non-scalar column name.")
            continue
        header_text = str(header or "").strip()
        if not header_text:
            errors.append(f"Field '{resolved}' has an empty column name.")
            continue
        if resolved in cleaned and cleaned[resolved] != header_text:
            errors.append(
                f"Field '{resolved}' is mapped to multiple columns "
                f"('{cleaned[resolved]}' and '{header_text}')."
            )
            continue
        cleaned[resolved] = header_text

    merged = {**config.default_mapping, **cleaned}
    header_to_field: dict[str, str] = {}
    for logical in config.logical_fields:
        header = merged.get(logical)
        if header is None:
            continue
        previous = header_to_field.get(header)
        if previous and (logical in cleaned or previous in cleaned):
            errors.append(
                f"Column '{header}' is mapped to multiple fields ('{previous}' and '{logical}')."
            )
        header_to_field.setdefault(header, logical)
    return cleaned, errors


def _locate_header(headers: list[str], name: str) -> int | None:
    if name in headers:
        return headers.index(name)
    target = _normalize(name)
    matches = [idx for idx, header in enumerate(headers) if _normalize(header) == target]
    if len(matches) == 1:
        return matches[0]
    return None


def missing_required_columns(
    headers: list[str], mapping: dict[str, str], required: tuple[str, ...]
) -> list[str]:
    return [mapping[name] for name in required if _locate_header(headers, mapping[name]) is None]


def resolve_columns(
    headers: list[str],
    config: TemplateConfig,
    schema_mapping: Mapping[str, Any] | None = None,
) -> tuple[ResolvedSchema | None, str | None]:
    overrides, errors = validate_schema_mapping(schema_mapping, config)
    if errors:
        return None, "Invalid schema mapping: " + " ".join(errors)

    mapping = {**config.default_mapping, **overrides}
    missing = missing_required_columns(headers, mapping, config.required_fields)
    if missing:
        return None, (
            f"Invalid {config.label} CSV headers. Your file is missing: {', '.join(missing)}. "
            "Please configure the schema if your column names differ."
        )

    indices: dict[str, int] = {}
    for logical in config.logical_fields:
        index = _locate_header(headers, mapping[logical])
        if index is not None:
            indices[logical] = index
    return ResolvedSchema(config=config, mapping=mapping, indices=indices, header_count=len(headers)), None


def load_schema_mapping_store(path: Path | None = None) -> dict[str, Any]:
    store_path = path or mappings_path()
    if not store_path.exists():
        return {}
    try:
        loaded = json.loads(store_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        logger.warning("Ignoring unreadable schema mapping store at %s", store_path)
        return {}
    if not isinstance(loaded, dict):
        return {}
    return {key: value for key, value in loaded.items() if isinstance(key, str) and isinstance(value, dict)}


def write_json_atomic(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.parent / f".{path.name}.{uuid4().hex}.tmp"
    temp_path.write_text(
        json.dumps(payload, indent=2, sort_keys=True),
        encoding="utf-8",
    )
    temp_path.replace(path)


def save_schema_mapping(
    template: CsvTemplate | str,
    signature: str,
    columns: list[str],
    mapping: dict[str, str],
    *,
    path: Path | None = None,
) -> None:
    config = resolve_template(template)
    if config is None:
        raise ValueError(f"Unsupported CSV template: {template}")
    signature_text = signature.strip()
    if not signature_text:
        raise ValueError("Signature is required.")

    cleaned, errors = validate_schema_mapping(mapping, config)
    if errors:
        raise ValueError("; ".join(errors))
    merged = {**config.default_mapping, **cleaned}
    missing = missing_required_columns([str(col) for col in columns], merged, config.required_fields)
    if missing:
        raise ValueError(f"Mapping references columns not present in the CSV: {', '.join(missing)}")

    store_path = path or mappings_path()
    store = load_schema_mapping_store(store_path)
    store[f"{config.template.value}::{signature_text}"] = {
        "template": config.template.value,
        "signature": signature_text,
        "columns": [str(col) for col in columns],
        "mapping": cleaned,
        "updated_at": utc_now_naive().isoformat(timespec="seconds"),
    }
    write_json_atomic(store_path, store)


def get_saved_schema_mapping(
    template: CsvTemplate | str, signature: str, *, path: Path | None = None
) -> dict[str, str] | None:
    config = resolve_template(template)
    signature_text = signature.strip()
    if config is None or not signature_text:
        return None

    record = load_schema_mapping_store(path).get(f"{config.template.value}::{signature_text}")
    if not record:
        return None
    mapping = record.get("mapping")
    if not isinstance(mapping, dict):
        return None
    cleaned, errors = validate_schema_mapping(mapping, config)
    if errors:
        return None
    columns = record.get("columns")
    if isinstance(columns, list):
        merged = {**config.default_mapping, **cleaned}
        if missing_required_columns([str(col) for col in columns], merged, config.required_fields):
            return None
    return cleaned
