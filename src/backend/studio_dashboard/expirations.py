from __future__ import annotations

from collections import Counter, defaultdict
from datetime import date
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from .formatting import DEFAULT_CURRENCY_SYMBOL, format_currency, format_number, format_percentage
from .models import (
    CardMetric,
    ExpirationFilters,
    ExpirationRecord,
    ExpirationSection,
    ExpirationStatus,
    ExpirationSummary,
    LeaderboardRow,
)
from .parsing import coerce_number, parse_sheet_date

UNKNOWN_LABEL = "Unknown"

BREAKDOWN_FIELDS: Mapping[str, Callable[[ExpirationRecord], str]] = {
    "location": lambda record: record.home_location,
    "membership": lambda record: record.membership_name,
    "seller": lambda record: record.sold_by,
    "status": lambda record: record.status,
}

CARD_KEYS = (
    "total_memberships",
    "expiring_30_days",
    "critical_7_days",
    "expired",
    "churn_rate",
    "value_at_risk",
)


def _normalize(values: Iterable[str]) -> List[str]:
    return [value.strip().lower() for value in values if value and value.strip()]


def matches_filters(record: ExpirationRecord, filters: ExpirationFilters) -> bool:
    locations = _normalize(filters.locations)
    if locations and record.home_location.strip().lower() not in locations:
        return False

    checks = (
        (_normalize(filters.statuses), record.status),
        (_normalize(filters.membership_types), record.membership_name),
        (_normalize(filters.sellers), record.sold_by),
    )
    for needles, haystack in checks:
        if needles and not any(needle in haystack.lower() for needle in needles):
            return False
    return True


def filter_expirations(
    records: Iterable[ExpirationRecord],
    filters: Optional[ExpirationFilters] = None,
) -> List[ExpirationRecord]:
    """
    Keep the records matching every specified filter dimension.

    Dimensions combine with AND, values inside a dimension with OR. Location is
    an exact match; status, membership type and seller are substring matches.
    All comparisons ignore case.
    """

    if filters is None or filters.is_empty():
        return list(records)
    return [record for record in records if matches_filters(record, filters)]


def days_until_expiration(record: ExpirationRecord, reference_date: date) -> Optional[int]:
    end = parse_sheet_date(record.end_date)
    if end is None:
        return None
    return (end - reference_date).days


def _expiring_within(record: ExpirationRecord, reference_date: date, days: int) -> bool:
    remaining = days_until_expiration(record, reference_date)
    return remaining is not None and 0 < remaining <= days


def churn_rate(records: Sequence[ExpirationRecord]) -> float:
    if not records:
        return 0.0
    expired = sum(1 for record in records if record.status_category is ExpirationStatus.EXPIRED)
    return expired / len(records) * 100


def summarize_expirations(records: Sequence[ExpirationRecord], reference_date: date) -> ExpirationSummary:
    statuses = Counter(record.status_category for record in records)
    return ExpirationSummary(
        total=len(records),
        active=statuses[ExpirationStatus.ACTIVE],
        expiring=statuses[ExpirationStatus.EXPIRING],
        expired=statuses[ExpirationStatus.EXPIRED],
        frozen=sum(1 for record in records if record.frozen),
        unique_members=len({record.member_id for record in records if record.member_id}),
        churn_rate=churn_rate(records),
        expiring_7_days=sum(1 for record in records if _expiring_within(record, reference_date, 7)),
        expiring_30_days=sum(1 for record in records if _expiring_within(record, reference_date, 30)),
        expiring_90_days=sum(1 for record in records if _expiring_within(record, reference_date, 90)),
        value_at_risk=sum(coerce_number(record.paid) for record in records),
    )


def build_expiration_cards(
    summary: ExpirationSummary,
    currency_symbol: str = DEFAULT_CURRENCY_SYMBOL,
) -> List[CardMetric]:
    return [
        CardMetric(
            key="total_memberships",
            label="Total Memberships",
            value=summary.total,
            description="Total active and expiring memberships being tracked",
            calculation="Count of all membership records",
            display=format_number(summary.total),
        ),
        CardMetric(
            key="expiring_30_days",
            label="Expiring (30 Days)",
            value=summary.expiring_30_days,
            description="Memberships expiring within the next 30 days",
            calculation="Count where days until expiration <= 30",
            display=format_number(summary.expiring_30_days),
        ),
        CardMetric(
            key="critical_7_days",
            label="Critical (7 Days)",
            value=summary.expiring_7_days,
            description="Memberships expiring within the next 7 days - requires immediate attention",
            calculation="Count where days until expiration <= 7",
            display=format_number(summary.expiring_7_days),
        ),
        CardMetric(
            key="expired",
            label="Expired",
            value=summary.expired,
            description="Memberships that have already expired",
            calculation="Count where status is Expired",
            display=format_number(summary.expired),
        ),
        CardMetric(
            key="churn_rate",
            label="Churn Rate",
            value=summary.churn_rate,
            unit="%",
            description="Share of tracked memberships in Expired status",
            calculation="Expired / total memberships x 100",
            display=format_percentage(summary.churn_rate),
        ),
        CardMetric(
            key="value_at_risk",
            label="Total Value at Risk",
            value=summary.value_at_risk,
            unit=currency_symbol,
            description="Total potential revenue from expiring memberships",
            calculation="Sum of all membership values",
            display=format_currency(summary.value_at_risk, currency_symbol),
        ),
    ]


def breakdown_by(records: Iterable[ExpirationRecord], field_name: str) -> List[LeaderboardRow]:
    """
    Count records per value of ``field_name`` (location, membership, seller or status).

    Each row also carries its expired count and churn rate. Rows are ordered by
    count descending, then label.
    """

    try:
        accessor = BREAKDOWN_FIELDS[field_name]
    except KeyError:
        raise ValueError(f"Unknown breakdown field: {field_name}") from None

    stats: Dict[str, Dict[str, float]] = defaultdict(lambda: defaultdict(float))
    for record in records:
        label = accessor(record).strip() or UNKNOWN_LABEL
        stats[label]["count"] += 1
        if record.status_category is ExpirationStatus.EXPIRED:
            stats[label]["expired"] += 1

    rows = []
    for label, values in stats.items():
        count = values["count"]
        expired = values.get("expired", 0.0)
        rows.append(
            LeaderboardRow(
                label=label,
                metrics={"count": count, "expired": expired, "churnRate": expired / count * 100},
            )
        )
    return sorted(rows, key=lambda row: (-row.metrics["count"], row.label))


def drill_down(
    records: Sequence[ExpirationRecord],
    card_key: str,
    reference_date: date,
) -> Optional[List[ExpirationRecord]]:
    """Return the records behind a summary card, or ``None`` for an unknown card."""
    if card_key in ("total_memberships", "value_at_risk"):
        return list(records)
    if card_key == "expiring_30_days":
        return [record for record in records if _expiring_within(record, reference_date, 30)]
    if card_key == "critical_7_days":
        return [record for record in records if _expiring_within(record, reference_date, 7)]
    if card_key in ("expired", "churn_rate"):
        return [record for record in records if record.status_category is ExpirationStatus.EXPIRED]
    return None


def available_filter_options(records: Iterable[ExpirationRecord]) -> Dict[str, List[str]]:
    locations, statuses, memberships, sellers = set(), set(), set(), set()
    for record in records:
        locations.add(record.home_location.strip())
        statuses.add(record.status.strip())
        memberships.add(record.membership_name.strip())
        sellers.add(record.sold_by.strip())
    return {
        "locations": sorted(value for value in locations if value),
        "statuses": sorted(value for value in statuses if value),
        "membershipTypes": sorted(value for value in memberships if value),
        "sellers": sorted(value for value in sellers if value),
    }


def build_expiration_section(
    records: Sequence[ExpirationRecord],
    filters: Optional[ExpirationFilters],
    reference_date: date,
    currency_symbol: str = DEFAULT_CURRENCY_SYMBOL,
) -> ExpirationSection:
    filters = filters or ExpirationFilters()
    filtered = filter_expirations(records, filters)
    summary = summarize_expirations(filtered, reference_date)
    return ExpirationSection(
        filters=filters,
        reference_date=reference_date,
        summary=summary,
        cards=build_expiration_cards(summary, currency_symbol),
        breakdowns={name: breakdown_by(filtered, name) for name in BREAKDOWN_FIELDS},
        records=filtered,
    )
