"""
Configuration for the studio dashboard backend.

Every value can be supplied through environment variables; ``overrides`` lets
callers (tests, embedding apps) pass nested dicts that act as the fallback when
the variable is unset.
"""

from __future__ import annotations

import os
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel

from .formatting import DEFAULT_CURRENCY_SYMBOL
from .models import TrainerMetric


class SheetsConfig(BaseModel):
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    refresh_token: Optional[str] = None
    token_url: str = "https://oauth2.googleapis.com/token"
    spreadsheet_id: Optional[str] = None
    expirations_range: str = "Expirations"
    trainers_range: str = "Trainer Performance"
    timeout_seconds: float = 30.0

    @property
    def is_configured(self) -> bool:
        return all((self.client_id, self.client_secret, self.refresh_token, self.spreadsheet_id))


class DisplayConfig(BaseModel):
    currency_symbol: str = DEFAULT_CURRENCY_SYMBOL
    default_metric: TrainerMetric = TrainerMetric.TOTAL_SESSIONS


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: Literal["text", "json"] = "text"


class DashboardConfig(BaseModel):
    sheets: SheetsConfig = SheetsConfig()
    display: DisplayConfig = DisplayConfig()
    logging: LoggingConfig = LoggingConfig()


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def load_dashboard_config(overrides: Optional[Dict[str, Any]] = None) -> DashboardConfig:
    cfg = DashboardConfig()
    overrides = overrides or {}

    sheets_cfg = overrides.get("sheets", {})
    cfg.sheets = SheetsConfig(
        client_id=os.getenv("SHEETS_CLIENT_ID", sheets_cfg.get("client_id", cfg.sheets.client_id)),
        client_secret=os.getenv("SHEETS_CLIENT_SECRET", sheets_cfg.get("client_secret", cfg.sheets.client_secret)),
        refresh_token=os.getenv("SHEETS_REFRESH_TOKEN", sheets_cfg.get("refresh_token", cfg.sheets.refresh_token)),
        token_url=os.getenv("SHEETS_TOKEN_URL", sheets_cfg.get("token_url", cfg.sheets.token_url)),
        spreadsheet_id=os.getenv(
            "SHEETS_SPREADSHEET_ID", sheets_cfg.get("spreadsheet_id", cfg.sheets.spreadsheet_id)
        ),
        expirations_range=os.getenv(
            "SHEETS_EXPIRATIONS_RANGE", sheets_cfg.get("expirations_range", cfg.sheets.expirations_range)
        ),
        trainers_range=os.getenv(
            "SHEETS_TRAINERS_RANGE", sheets_cfg.get("trainers_range", cfg.sheets.trainers_range)
        ),
        timeout_seconds=_env_float(
            "SHEETS_TIMEOUT_SECONDS", sheets_cfg.get("timeout_seconds", cfg.sheets.timeout_seconds)
        ),
    )

    display_cfg = overrides.get("display", {})
    cfg.display = DisplayConfig(
        currency_symbol=os.getenv(
            "DASHBOARD_CURRENCY_SYMBOL", display_cfg.get("currency_symbol", cfg.display.currency_symbol)
        ),
        default_metric=os.getenv(
            "DASHBOARD_DEFAULT_METRIC", display_cfg.get("default_metric", cfg.display.default_metric)
        ),
    )

    logging_cfg = overrides.get("logging", {})
    cfg.logging = LoggingConfig(
        level=os.getenv("LOG_LEVEL", logging_cfg.get("level", cfg.logging.level)),
        format=os.getenv("LOG_FORMAT", logging_cfg.get("format", cfg.logging.format)).lower(),
    )

    return cfg
