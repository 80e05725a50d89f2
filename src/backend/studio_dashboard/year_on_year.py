from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence

from .formatting import DEFAULT_CURRENCY_SYMBOL, format_growth, format_metric_value
from .models import (
    GrowthCell,
    MetricKey,
    MetricRecord,
    OrganizedColumn,
    TrainerMetric,
    TrainerRow,
    TrainerSummary,
    YearOnYearTable,
    metric_key,
)
from .periods import organize_columns

TOTAL_ROW_LABEL = "TOTAL"


def year_on_year_growth(current: float, previous: float) -> float:
    """
    Percentage change from ``previous`` to ``current``.

    A zero baseline yields 100% when the current value is positive and 0%
    otherwise.
    """

    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return (current - previous) / previous * 100


def group_by_trainer(records: Iterable[MetricRecord]) -> Dict[str, Dict[str, MetricRecord]]:
    groups: Dict[str, Dict[str, MetricRecord]] = {}
    for record in records:
        groups.setdefault(record.trainer_name, {})[record.month_year] = record
    return groups


def _growth_cell(column: OrganizedColumn, values: Dict[str, Optional[float]]) -> GrowthCell:
    latest_year, latest_label = column.years[-1]
    previous_year, previous_label = [entry for entry in column.years if entry[0] < latest_year][-1]
    previous = values.get(previous_label)
    latest = values.get(latest_label)
    growth = None if previous is None or latest is None else year_on_year_growth(latest, previous)
    return GrowthCell(
        month_name=column.month_name,
        previous_year=previous_year,
        latest_year=latest_year,
        growth=growth,
        display=format_growth(growth),
    )


def _build_row(
    name: str,
    columns: Sequence[OrganizedColumn],
    present: Dict[str, Optional[float]],
    metric: str,
    currency_symbol: str,
) -> TrainerRow:
    values = {
        label: present.get(label) or 0.0 for column in columns for label in column.labels
    }
    growth = {
        column.month_name: _growth_cell(column, present) for column in columns if column.has_growth
    }
    total = sum(values.values())
    return TrainerRow(
        trainer_name=name,
        values=values,
        display_values={
            label: format_metric_value(value, metric, currency_symbol) for label, value in values.items()
        },
        growth=growth,
        total=total,
        display_total=format_metric_value(total, metric, currency_symbol),
    )


def build_year_on_year_table(
    records: Sequence[MetricRecord],
    metric: MetricKey = TrainerMetric.TOTAL_SESSIONS,
    currency_symbol: str = DEFAULT_CURRENCY_SYMBOL,
) -> YearOnYearTable:
    """
    Lay trainer records out as month-across-years comparison columns.

    Trainer rows keep first-seen order. A trainer missing either period of a
    comparison gets an ``N/A`` growth cell; the totals row treats missing
    periods as zero.
    """

    key = metric_key(metric)
    groups = group_by_trainer(records)
    columns = organize_columns(record.month_year for record in records)

    totals: Dict[str, Optional[float]] = {}
    for column in columns:
        for label in column.labels:
            totals[label] = sum(
                periods[label].value(key) for periods in groups.values() if label in periods
            )

    rows: List[TrainerRow] = []
    for trainer_name, periods in groups.items():
        present: Dict[str, Optional[float]] = {
            label: record.value(key) for label, record in periods.items()
        }
        rows.append(_build_row(trainer_name, columns, present, key, currency_symbol))

    totals_row = _build_row(TOTAL_ROW_LABEL, columns, totals, key, currency_symbol)
    return YearOnYearTable(
        metric=key,
        columns=columns,
        totals=totals_row,
        rows=rows,
        overall_total=totals_row.total,
    )


def _consistency(values: Sequence[float]) -> float:
    """
    Score how steady a trainer's values are, 100 meaning no change between periods.

    Each consecutive change is taken relative to the earlier value (at least 1).
    The raw score goes negative for very volatile trainers; it is floored at 0
    here rather than shown as a negative number.
    """

    if len(values) < 2:
        return 100.0
    changes = [
        abs((current - previous) / max(previous, 1)) * 100
        for previous, current in zip(values, values[1:])
    ]
    return max(0.0, 100 - sum(changes) / len(changes))


def summarize_trainer(
    table: YearOnYearTable,
    trainer_name: str,
    currency_symbol: str = DEFAULT_CURRENCY_SYMBOL,
) -> Optional[TrainerSummary]:
    """
    Build the drill-down summary of one trainer row.

    Returns ``None`` when the trainer is not part of the table.
    """

    row = table.row_for(trainer_name)
    if row is None:
        return None

    values = [row.values[label] for column in table.columns for label in column.labels]
    active_periods = [value for value in values if value > 0]
    average = row.total / len(active_periods) if active_periods else 0.0
    peak = max(values) if values else 0.0
    consistency = _consistency(values)
    growth = [cell for cell in row.growth.values() if cell.growth is not None]

    return TrainerSummary(
        trainer_name=trainer_name,
        metric=table.metric,
        total=row.total,
        average_per_period=average,
        peak=peak,
        consistency=consistency,
        growth=growth,
        display={
            "total": format_metric_value(row.total, table.metric, currency_symbol),
            "averagePerPeriod": format_metric_value(average, table.metric, currency_symbol),
            "peak": format_metric_value(peak, table.metric, currency_symbol),
            "consistency": f"{consistency:.0f}%",
        },
    )
