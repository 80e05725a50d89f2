import unittest
from datetime import date

from backend.studio_dashboard.expirations import (
    CARD_KEYS,
    available_filter_options,
    breakdown_by,
    build_expiration_cards,
    build_expiration_section,
    churn_rate,
    days_until_expiration,
    drill_down,
    filter_expirations,
    summarize_expirations,
)
from backend.studio_dashboard.models import ExpirationFilters, ExpirationRecord, ExpirationStatus

REFERENCE_DATE = date(2025, 6, 1)
KEMPS = "Kwality House, Kemps Corner"
BANDRA = "Supreme HQ, Bandra"


def _records():
    return [
        ExpirationRecord(
            member_id="1",
            first_name="Riya",
            last_name="Shah",
            membership_name="Studio 12 Class Package",
            end_date="2025-06-05",
            home_location=KEMPS,
            sold_by="Ayesha",
            paid="₹12,000",
            status="Active",
        ),
        ExpirationRecord(
            member_id="2",
            membership_name="Studio Annual Unlimited",
            end_date="2025-05-20",
            home_location=BANDRA,
            sold_by="Imran",
            paid="30000",
            status="Expired",
        ),
        ExpirationRecord(
            member_id="3",
            membership_name="Studio 4 Class Package",
            end_date="25/06/2025",
            home_location=KEMPS,
            sold_by="Ayesha Khan",
            paid="4,500",
            frozen=True,
            status="Expiring This Month",
        ),
        ExpirationRecord(
            member_id="3",
            membership_name="Studio 8 Class Package",
            home_location=BANDRA,
            status="expired",
        ),
    ]


class TestFilterExpirations(unittest.TestCase):
    def setUp(self):
        self.records = _records()

    def _members(self, filters):
        return [record.membership_name for record in filter_expirations(self.records, filters)]

    def test_no_filters_returns_everything_in_order(self):
        self.assertEqual(filter_expirations(self.records), self.records)
        self.assertEqual(filter_expirations(self.records, ExpirationFilters()), self.records)

    def test_location_is_exact_and_case_insensitive(self):
        result = filter_expirations(self.records, ExpirationFilters(locations=[KEMPS.lower()]))
        self.assertEqual([record.member_id for record in result], ["1", "3"])
        self.assertEqual(filter_expirations(self.records, ExpirationFilters(locations=["Kwality"])), [])

    def test_status_is_substring_match(self):
        result = filter_expirations(self.records, ExpirationFilters(statuses=["EXPIR"]))
        self.assertEqual(len(result), 3)

    def test_or_within_dimension(self):
        result = filter_expirations(self.records, ExpirationFilters(statuses=["active", "expired"]))
        self.assertEqual([record.status for record in result], ["Active", "Expired", "expired"])

    def test_and_across_dimensions(self):
        filters = ExpirationFilters(locations=[BANDRA], statuses=["expired"])
        self.assertEqual(len(filter_expirations(self.records, filters)), 2)
        filters = ExpirationFilters(locations=[BANDRA], statuses=["expired"], sellers=["imran"])
        self.assertEqual(self._members(filters), ["Studio Annual Unlimited"])

    def test_membership_type_substring(self):
        filters = ExpirationFilters(membership_types=["class package"])
        self.assertEqual(
            self._members(filters),
            ["Studio 12 Class Package", "Studio 4 Class Package", "Studio 8 Class Package"],
        )

    def test_filtering_is_idempotent(self):
        filters = ExpirationFilters(locations=[KEMPS, BANDRA], sellers=["ayesha"])
        once = filter_expirations(self.records, filters)
        self.assertEqual(filter_expirations(once, filters), once)

    def test_blank_values_do_not_constrain(self):
        self.assertEqual(len(filter_expirations(self.records, ExpirationFilters(locations=["  "]))), 4)


class TestSummaries(unittest.TestCase):
    def setUp(self):
        self.records = _records()
        self.summary = summarize_expirations(self.records, REFERENCE_DATE)

    def test_status_counts_and_churn(self):
        self.assertEqual(self.summary.total, 4)
        self.assertEqual(self.summary.active, 1)
        self.assertEqual(self.summary.expiring, 1)
        self.assertEqual(self.summary.expired, 2)
        self.assertAlmostEqual(self.summary.churn_rate, 50.0)

    def test_member_and_frozen_counts(self):
        self.assertEqual(self.summary.frozen, 1)
        self.assertEqual(self.summary.unique_members, 3)

    def test_expiry_windows(self):
        self.assertEqual(self.summary.expiring_7_days, 1)
        self.assertEqual(self.summary.expiring_30_days, 2)
        self.assertEqual(self.summary.expiring_90_days, 2)

    def test_value_at_risk(self):
        self.assertAlmostEqual(self.summary.value_at_risk, 46500.0)

    def test_days_until_expiration(self):
        self.assertEqual(days_until_expiration(self.records[0], REFERENCE_DATE), 4)
        self.assertEqual(days_until_expiration(self.records[1], REFERENCE_DATE), -12)
        self.assertIsNone(days_until_expiration(self.records[3], REFERENCE_DATE))

    def test_churn_rate_of_empty_set(self):
        self.assertEqual(churn_rate([]), 0.0)
        self.assertEqual(summarize_expirations([], REFERENCE_DATE).churn_rate, 0.0)

    def test_status_category(self):
        self.assertIs(self.records[3].status_category, ExpirationStatus.EXPIRED)
        self.assertIsNone(ExpirationRecord(status="Paused").status_category)

    def test_cards(self):
        cards = build_expiration_cards(self.summary)
        self.assertEqual(tuple(card.key for card in cards), CARD_KEYS)
        by_key = {card.key: card for card in cards}
        self.assertEqual(by_key["churn_rate"].display, "50.0%")
        self.assertEqual(by_key["value_at_risk"].display, "₹46,500")
        self.assertEqual(by_key["critical_7_days"].value, 1)


class TestBreakdownsAndDrillDown(unittest.TestCase):
    def setUp(self):
        self.records = _records()

    def test_breakdown_by_location(self):
        rows = breakdown_by(self.records, "location")
        self.assertEqual([row.label for row in rows], [KEMPS, BANDRA])
        self.assertEqual(rows[1].metrics, {"count": 2, "expired": 2, "churnRate": 100.0})
        self.assertEqual(rows[0].metrics["expired"], 0)

    def test_breakdown_by_seller_labels_blank_as_unknown(self):
        rows = breakdown_by(self.records, "seller")
        self.assertEqual([row.label for row in rows], ["Ayesha", "Ayesha Khan", "Imran", "Unknown"])

    def test_unknown_breakdown_field(self):
        with self.assertRaises(ValueError):
            breakdown_by(self.records, "colour")

    def test_drill_down(self):
        critical = drill_down(self.records, "critical_7_days", REFERENCE_DATE)
        self.assertEqual([record.member_id for record in critical], ["1"])
        expired = drill_down(self.records, "expired", REFERENCE_DATE)
        self.assertEqual([record.membership_name for record in expired],
                         ["Studio Annual Unlimited", "Studio 8 Class Package"])
        self.assertEqual(len(drill_down(self.records, "total_memberships", REFERENCE_DATE)), 4)
        self.assertIsNone(drill_down(self.records, "nope", REFERENCE_DATE))

    def test_filter_options(self):
        options = available_filter_options(self.records)
        self.assertEqual(options["locations"], [KEMPS, BANDRA])
        self.assertEqual(options["sellers"], ["Ayesha", "Ayesha Khan", "Imran"])
        self.assertEqual(options["statuses"], ["Active", "Expired", "Expiring This Month", "expired"])


class TestExpirationSection(unittest.TestCase):
    def test_section_recomputes_from_filtered_records(self):
        section = build_expiration_section(
            _records(), ExpirationFilters(locations=[BANDRA]), REFERENCE_DATE
        )
        self.assertEqual(section.summary.total, 2)
        self.assertEqual(section.summary.churn_rate, 100.0)
        self.assertEqual(set(section.breakdowns), {"location", "membership", "seller", "status"})

        payload = section.as_dict()
        self.assertEqual(payload["referenceDate"], "2025-06-01")
        self.assertEqual(payload["filters"]["locations"], [BANDRA])
        self.assertEqual(payload["summary"]["churnRate"], 100.0)
        self.assertEqual(payload["records"][0]["homeLocation"], BANDRA)
        self.assertEqual(payload["cards"][0]["key"], "total_memberships")


if __name__ == "__main__":
    unittest.main()
