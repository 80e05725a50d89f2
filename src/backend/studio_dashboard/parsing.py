from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Optional

_NON_NUMERIC = re.compile(r"[^0-9.\-]")

# Day-first formats come before month-first ones: the studio sheets are
# exported with an Indian locale.
SHEET_DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%d/%m/%Y",
    "%d/%m/%Y %H:%M:%S",
    "%d-%m-%Y",
    "%d %b %Y",
    "%d-%b-%Y",
    "%b %d, %Y",
)


def coerce_number(value: Any) -> float:
    """
    Read a sheet cell as a float.

    Currency symbols, thousands separators and ``%`` are stripped; blank or
    unreadable cells count as ``0.0``.
    """

    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    text = _NON_NUMERIC.sub("", str(value or ""))
    if not text:
        return 0.0
    try:
        return float(text)
    except ValueError:
        return 0.0


def coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().upper() == "TRUE"


def parse_sheet_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value or "").strip()
    if not text:
        return None
    for fmt in SHEET_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None
