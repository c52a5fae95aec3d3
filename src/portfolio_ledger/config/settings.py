from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from portfolio_ledger.config.paths import data_dir


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "t", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    raw = str(os.getenv(name, "") or "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def _env_template(name: str, default: str) -> str:
    raw = str(os.getenv(name, "") or "").strip().lower()
    if raw in {"default", "alternate", "groww"}:
        return "alternate" if raw == "groww" else raw
    return default


@dataclass(frozen=True)
class Settings:
    app_env: str
    log_level: str
    data_dir: Path
    default_template: str
    eodhd_api_key: str
    price_timeout_seconds: float
    openai_model: str
    enable_suggestions: bool


def get_settings() -> Settings:
    return Settings(
        app_env=os.getenv("APP_ENV", "development"),
        log_level=os.getenv("LOG_LEVEL", "WARNING").strip().upper() or "WARNING",
        data_dir=data_dir(),
        default_template=_env_template("DEFAULT_CSV_TEMPLATE", "default"),
        eodhd_api_key=os.getenv("EODHD_API_KEY", "").strip(),
        price_timeout_seconds=_env_float("PRICE_TIMEOUT_SECONDS", 10.0),
        openai_model=os.getenv("OPENAI_MODEL", "gpt-5-mini"),
        enable_suggestions=_env_bool("ENABLE_SUGGESTIONS", False),
    )
