from __future__ import annotations

from typing import Any, Dict, Optional


class DashboardError(Exception):
    """Base error for the studio dashboard package."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DataSourceError(DashboardError):
    """The spreadsheet feed could not be loaded."""


class SheetsAuthError(DataSourceError):
    """Refresh-token exchange failed or returned no access token."""


class SheetsFetchError(DataSourceError):
    """The values request failed or returned a non-success status."""


class PeriodLabelError(DashboardError, ValueError):
    def __init__(self, label: str):
        super().__init__(f"Unrecognised period label: {label!r}", {"label": label})
        self.label = label
