from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple, Union


class TrainerMetric(str, Enum):
    TOTAL_SESSIONS = "totalSessions"
    EMPTY_SESSIONS = "emptySessions"
    NON_EMPTY_SESSIONS = "nonEmptySessions"
    TOTAL_CUSTOMERS = "totalCustomers"
    TOTAL_PAID = "totalPaid"
    CYCLE_SESSIONS = "cycleSessions"
    BARRE_SESSIONS = "barreSessions"
    CYCLE_REVENUE = "cycleRevenue"
    BARRE_REVENUE = "barreRevenue"
    RETENTION = "retention"
    CONVERSION = "conversion"
    CLASS_AVERAGE_EXCL_EMPTY = "classAverageExclEmpty"
    CLASS_AVERAGE_INCL_EMPTY = "classAverageInclEmpty"
    NEW_MEMBERS = "newMembers"


MetricKey = Union[TrainerMetric, str]


def metric_key(metric: MetricKey) -> str:
    """Return the wire name of a metric so enum members and plain strings share dict keys."""
    return metric.value if isinstance(metric, TrainerMetric) else str(metric)


class ExpirationStatus(str, Enum):
    ACTIVE = "Active"
    EXPIRING = "Expiring This Month"
    EXPIRED = "Expired"

    @classmethod
    def from_text(cls, text: Optional[str]) -> Optional["ExpirationStatus"]:
        normalized = (text or "").strip().lower()
        for status in cls:
            if status.value.lower() == normalized:
                return status
        return None


@dataclass(frozen=True)
class MetricRecord:
    """
    One trainer/period row of the performance sheet.

    ``month_year`` is the raw period label (``MM/YYYY`` or ``Mon-YYYY``) and is
    kept verbatim so the column headers match the source sheet.
    """

    trainer_name: str
    month_year: str
    metrics: Dict[str, float] = field(default_factory=dict)
    location: Optional[str] = None

    def value(self, metric: MetricKey) -> float:
        return float(self.metrics.get(metric_key(metric), 0.0))


@dataclass(frozen=True)
class ExpirationRecord:
    """
    Snapshot of a membership row from the ``Expirations`` sheet.

    Date and money columns stay as the sheet text; parsing happens in the
    aggregation layer where a reference date is available.
    """

    unique_id: str = ""
    member_id: str = ""
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    membership_name: str = ""
    end_date: str = ""
    home_location: str = ""
    current_usage: str = ""
    id: str = ""
    order_at: str = ""
    sold_by: str = ""
    membership_id: str = ""
    frozen: bool = False
    paid: str = ""
    status: str = ""

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    @property
    def status_category(self) -> Optional[ExpirationStatus]:
        return ExpirationStatus.from_text(self.status)


@dataclass(frozen=True)
class ExpirationFilters:
    """
    Filter dimensions of the expirations section.

    Every dimension is a sequence of accepted values; an empty sequence leaves
    the dimension unconstrained.
    """

    locations: Sequence[str] = ()
    statuses: Sequence[str] = ()
    membership_types: Sequence[str] = ()
    sellers: Sequence[str] = ()

    def is_empty(self) -> bool:
        return not (self.locations or self.statuses or self.membership_types or self.sellers)


@dataclass(frozen=True)
class PeriodLabel:
    label: str
    month: int
    year: int
    month_name: str


@dataclass(frozen=True)
class OrganizedColumn:
    month_name: str
    years: Tuple[Tuple[int, str], ...]

    @property
    def labels(self) -> Tuple[str, ...]:
        return tuple(label for _, label in self.years)

    @property
    def has_growth(self) -> bool:
        return len({year for year, _ in self.years}) > 1


@dataclass(frozen=True)
class GrowthCell:
    month_name: str
    previous_year: int
    latest_year: int
    growth: Optional[float]
    display: str

    @property
    def direction(self) -> Optional[str]:
        if self.growth is None:
            return None
        return "up" if self.growth >= 0 else "down"


@dataclass(frozen=True)
class TrainerRow:
    trainer_name: str
    values: Dict[str, float]
    display_values: Dict[str, str]
    growth: Dict[str, GrowthCell]
    total: float
    display_total: str


@dataclass(frozen=True)
class YearOnYearTable:
    metric: str
    columns: Sequence[OrganizedColumn]
    totals: TrainerRow
    rows: Sequence[TrainerRow]
    overall_total: float

    @property
    def trainer_names(self) -> Tuple[str, ...]:
        return tuple(row.trainer_name for row in self.rows)

    def row_for(self, trainer_name: str) -> Optional[TrainerRow]:
        for row in self.rows:
            if row.trainer_name == trainer_name:
                return row
        return None

    def as_dict(self) -> Dict[str, Any]:
        return _serialize(self)


@dataclass(frozen=True)
class TrainerSummary:
    trainer_name: str
    metric: str
    total: float
    average_per_period: float
    peak: float
    consistency: float
    growth: Sequence[GrowthCell]
    display: Dict[str, str] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        return _serialize(self)


@dataclass(frozen=True)
class CardMetric:
    key: str
    label: str
    value: float
    unit: Optional[str] = None
    delta_percent: Optional[float] = None
    description: Optional[str] = None
    calculation: Optional[str] = None
    display: Optional[str] = None


@dataclass(frozen=True)
class LeaderboardRow:
    label: str
    metrics: Dict[str, float]


@dataclass(frozen=True)
class ExpirationSummary:
    total: int
    active: int
    expiring: int
    expired: int
    frozen: int
    unique_members: int
    churn_rate: float
    expiring_7_days: int
    expiring_30_days: int
    expiring_90_days: int
    value_at_risk: float


@dataclass(frozen=True)
class ExpirationSection:
    filters: ExpirationFilters
    reference_date: date
    summary: ExpirationSummary
    cards: Sequence[CardMetric]
    breakdowns: Mapping[str, Sequence[LeaderboardRow]]
    records: Sequence[ExpirationRecord]

    def as_dict(self) -> Dict[str, Any]:
        """
        Convert the section into a JSON-serialisable structure.

        Keys are camelCase so the frontend can consume the payload unchanged.
        """

        return _serialize(self)


def _serialize(obj: Any) -> Any:
    if isinstance(obj, ExpirationSection):
        return {
            "filters": _serialize(obj.filters),
            "referenceDate": obj.reference_date.isoformat(),
            "summary": _serialize(obj.summary),
            "cards": [_serialize(card) for card in obj.cards],
            "breakdowns": {
                name: [_serialize(row) for row in rows] for name, rows in obj.breakdowns.items()
            },
            "records": [_serialize(record) for record in obj.records],
        }
    if isinstance(obj, ExpirationFilters):
        return {
            "locations": list(obj.locations),
            "statuses": list(obj.statuses),
            "membershipTypes": list(obj.membership_types),
            "sellers": list(obj.sellers),
        }
    if isinstance(obj, ExpirationSummary):
        return {
            "total": obj.total,
            "active": obj.active,
            "expiring": obj.expiring,
            "expired": obj.expired,
            "frozen": obj.frozen,
            "uniqueMembers": obj.unique_members,
            "churnRate": obj.churn_rate,
            "expiring7Days": obj.expiring_7_days,
            "expiring30Days": obj.expiring_30_days,
            "expiring90Days": obj.expiring_90_days,
            "valueAtRisk": obj.value_at_risk,
        }
    if isinstance(obj, ExpirationRecord):
        return {
            "uniqueId": obj.unique_id,
            "memberId": obj.member_id,
            "firstName": obj.first_name,
            "lastName": obj.last_name,
            "email": obj.email,
            "membershipName": obj.membership_name,
            "endDate": obj.end_date,
            "homeLocation": obj.home_location,
            "currentUsage": obj.current_usage,
            "id": obj.id,
            "orderAt": obj.order_at,
            "soldBy": obj.sold_by,
            "membershipId": obj.membership_id,
            "frozen": obj.frozen,
            "paid": obj.paid,
            "status": obj.status,
        }
    if isinstance(obj, CardMetric):
        return {
            "key": obj.key,
            "label": obj.label,
            "value": obj.value,
            "unit": obj.unit,
            "deltaPercent": obj.delta_percent,
            "description": obj.description,
            "calculation": obj.calculation,
            "display": obj.display,
        }
    if isinstance(obj, LeaderboardRow):
        return {"label": obj.label, "metrics": obj.metrics}
    if isinstance(obj, YearOnYearTable):
        return {
            "metric": obj.metric,
            "columns": [_serialize(column) for column in obj.columns],
            "totals": _serialize(obj.totals),
            "rows": [_serialize(row) for row in obj.rows],
            "overallTotal": obj.overall_total,
        }
    if isinstance(obj, OrganizedColumn):
        return {
            "monthName": obj.month_name,
            "years": [{"year": year, "monthYear": label} for year, label in obj.years],
        }
    if isinstance(obj, TrainerRow):
        return {
            "trainerName": obj.trainer_name,
            "values": dict(obj.values),
            "displayValues": dict(obj.display_values),
            "growth": {month: _serialize(cell) for month, cell in obj.growth.items()},
            "total": obj.total,
            "displayTotal": obj.display_total,
        }
    if isinstance(obj, GrowthCell):
        return {
            "monthName": obj.month_name,
            "previousYear": obj.previous_year,
            "latestYear": obj.latest_year,
            "growth": obj.growth,
            "direction": obj.direction,
            "display": obj.display,
        }
    if isinstance(obj, TrainerSummary):
        return {
            "trainerName": obj.trainer_name,
            "metric": obj.metric,
            "total": obj.total,
            "averagePerPeriod": obj.average_per_period,
            "peak": obj.peak,
            "consistency": obj.consistency,
            "growth": [_serialize(cell) for cell in obj.growth],
            "display": dict(obj.display),
        }
    if isinstance(obj, MetricRecord):
        return {
            "trainerName": obj.trainer_name,
            "monthYear": obj.month_year,
            "location": obj.location,
            "metrics": dict(obj.metrics),
        }
    if isinstance(obj, (date, datetime)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, Mapping):
        return {key: _serialize(value) for key, value in obj.items()}
    if isinstance(obj, Iterable) and not isinstance(obj, (str, bytes)):
        return [_serialize(item) for item in obj]
    return obj


def serialize(obj: Any) -> Any:
    return _serialize(obj)
