from __future__ import annotations

import csv
import io
import json
from collections import Counter
from typing import Any, Dict, Iterable, List

from .models import ExpirationRecord, OrganizedColumn, YearOnYearTable, serialize

EXPIRATION_COLUMNS = [
    "Unique Id",
    "Member ID",
    "First Name",
    "Last Name",
    "Email",
    "Membership Name",
    "End Date",
    "Home Location",
    "Current Usage",
    "Id",
    "Order At",
    "Sold By",
    "Membership Id",
    "Frozen",
    "Paid",
    "Status",
]


def write_csv(rows: Iterable[Dict[str, Any]], columns: List[str]) -> str:
    buf = io.StringIO()
    w = csv.DictWriter(buf, fieldnames=columns, extrasaction="ignore")
    w.writeheader()
    for r in rows:
        w.writerow({k: r.get(k) for k in columns})
    return buf.getvalue()


def write_expirations_csv(records: Iterable[ExpirationRecord]) -> str:
    rows = (
        {
            "Unique Id": record.unique_id,
            "Member ID": record.member_id,
            "First Name": record.first_name,
            "Last Name": record.last_name,
            "Email": record.email,
            "Membership Name": record.membership_name,
            "End Date": record.end_date,
            "Home Location": record.home_location,
            "Current Usage": record.current_usage,
            "Id": record.id,
            "Order At": record.order_at,
            "Sold By": record.sold_by,
            "Membership Id": record.membership_id,
            "Frozen": "TRUE" if record.frozen else "FALSE",
            "Paid": record.paid,
            "Status": record.status,
        }
        for record in records
    )
    return write_csv(rows, EXPIRATION_COLUMNS)


def _period_headers(column: OrganizedColumn) -> Dict[str, str]:
    """Header per period label; a year listed under two label formats keeps the label in its header."""
    years = Counter(year for year, _ in column.years)
    return {
        label: f"{column.month_name} {year}" if years[year] == 1 else f"{column.month_name} {year} ({label})"
        for year, label in column.years
    }


def year_on_year_columns(table: YearOnYearTable) -> List[str]:
    columns = ["Trainer"]
    for column in table.columns:
        columns.extend(_period_headers(column).values())
        if column.has_growth:
            columns.append(f"{column.month_name} YoY Growth")
    columns.append("Overall")
    return columns


def write_year_on_year_csv(table: YearOnYearTable) -> str:
    """
    Flatten the comparison table: the ``TOTAL`` row first, then one row per trainer.

    Cells carry the formatted values shown in the dashboard.
    """

    def _row(row) -> Dict[str, Any]:
        out: Dict[str, Any] = {"Trainer": row.trainer_name, "Overall": row.display_total}
        for column in table.columns:
            for label, header in _period_headers(column).items():
                out[header] = row.display_values[label]
            if column.has_growth:
                out[f"{column.month_name} YoY Growth"] = row.growth[column.month_name].display
        return out

    rows = [_row(table.totals)] + [_row(row) for row in table.rows]
    return write_csv(rows, year_on_year_columns(table))


def write_json(payload: Any) -> str:
    if hasattr(payload, "as_dict"):
        payload = payload.as_dict()
    return json.dumps(serialize(payload), ensure_ascii=False, indent=2)
