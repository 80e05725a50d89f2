import csv
import io
import json
import unittest
from datetime import date

from backend.studio_dashboard.expirations import build_expiration_section
from backend.studio_dashboard.exports import (
    EXPIRATION_COLUMNS,
    write_expirations_csv,
    write_json,
    write_year_on_year_csv,
    year_on_year_columns,
)
from backend.studio_dashboard.models import ExpirationRecord, MetricRecord, TrainerMetric
from backend.studio_dashboard.year_on_year import build_year_on_year_table


def _read(text):
    return list(csv.DictReader(io.StringIO(text)))


class TestExpirationsCsv(unittest.TestCase):
    def test_header_and_rows(self):
        records = [
            ExpirationRecord(member_id="9", first_name="Riya", paid="₹4,500", frozen=True, status="Active"),
            ExpirationRecord(member_id="10", status="Expired"),
        ]
        text = write_expirations_csv(records)

        self.assertEqual(text.splitlines()[0].split(","), EXPIRATION_COLUMNS)
        rows = _read(text)
        self.assertEqual(rows[0]["Member ID"], "9")
        self.assertEqual(rows[0]["Paid"], "₹4,500")
        self.assertEqual(rows[0]["Frozen"], "TRUE")
        self.assertEqual(rows[1]["Frozen"], "FALSE")
        self.assertEqual(rows[1]["First Name"], "")

    def test_empty_export_has_header_only(self):
        self.assertEqual(len(write_expirations_csv([]).splitlines()), 1)


class TestYearOnYearCsv(unittest.TestCase):
    def setUp(self):
        self.table = build_year_on_year_table(
            [
                MetricRecord("A", "Jan-2024", {"totalPaid": 1000}),
                MetricRecord("A", "Jan-2025", {"totalPaid": 1500}),
                MetricRecord("B", "Feb-2025", {"totalPaid": 200}),
            ],
            TrainerMetric.TOTAL_PAID,
        )

    def test_columns(self):
        self.assertEqual(
            year_on_year_columns(self.table),
            ["Trainer", "Jan 2024", "Jan 2025", "Jan YoY Growth", "Feb 2025", "Overall"],
        )

    def test_total_row_first_then_trainers(self):
        rows = _read(write_year_on_year_csv(self.table))
        self.assertEqual([row["Trainer"] for row in rows], ["TOTAL", "A", "B"])
        self.assertEqual(rows[0]["Overall"], "₹2,700")
        self.assertEqual(rows[1]["Jan 2025"], "₹1,500")
        self.assertEqual(rows[1]["Jan YoY Growth"], "+50.0%")
        self.assertEqual(rows[2]["Jan YoY Growth"], "N/A")
        self.assertEqual(rows[2]["Feb 2025"], "₹200")

    def test_same_year_under_both_label_formats_keeps_both_columns(self):
        table = build_year_on_year_table(
            [
                MetricRecord("A", "01/2024", {"totalSessions": 3}),
                MetricRecord("B", "Jan-2024", {"totalSessions": 7}),
            ],
            TrainerMetric.TOTAL_SESSIONS,
        )
        columns = year_on_year_columns(table)
        self.assertEqual(columns, ["Trainer", "Jan 2024 (01/2024)", "Jan 2024 (Jan-2024)", "Overall"])

        text = write_year_on_year_csv(table)
        self.assertEqual(text.splitlines()[0].split(","), columns)
        rows = {row["Trainer"]: row for row in _read(text)}
        self.assertEqual(rows["A"]["Jan 2024 (01/2024)"], "3")
        self.assertEqual(rows["A"]["Jan 2024 (Jan-2024)"], "0")
        self.assertEqual(rows["B"]["Jan 2024 (Jan-2024)"], "7")
        self.assertEqual(rows["TOTAL"]["Overall"], "10")


class TestJsonExport(unittest.TestCase):
    def test_section_payload(self):
        section = build_expiration_section(
            [ExpirationRecord(member_id="1", status="Expired", home_location="Bandra")],
            None,
            date(2025, 6, 1),
        )
        payload = json.loads(write_json(section))
        self.assertEqual(payload["referenceDate"], "2025-06-01")
        self.assertEqual(payload["summary"]["churnRate"], 100.0)

    def test_plain_values_keep_unicode(self):
        text = write_json({"symbol": "₹", "when": date(2025, 1, 31)})
        self.assertIn("₹", text)
        self.assertEqual(json.loads(text)["when"], "2025-01-31")


if __name__ == "__main__":
    unittest.main()
