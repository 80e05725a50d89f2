from __future__ import annotations

from typing import Optional

from .models import MetricKey, TrainerMetric, metric_key

DEFAULT_CURRENCY_SYMBOL = "₹"

CURRENCY_METRICS = frozenset(
    {
        TrainerMetric.TOTAL_PAID.value,
        TrainerMetric.CYCLE_REVENUE.value,
        TrainerMetric.BARRE_REVENUE.value,
    }
)
PERCENT_METRICS = frozenset({TrainerMetric.RETENTION.value, TrainerMetric.CONVERSION.value})
DECIMAL_METRICS = frozenset(
    {
        TrainerMetric.CLASS_AVERAGE_EXCL_EMPTY.value,
        TrainerMetric.CLASS_AVERAGE_INCL_EMPTY.value,
    }
)


def format_currency(value: float, symbol: str = DEFAULT_CURRENCY_SYMBOL) -> str:
    amount = f"{abs(value):,.0f}"
    return f"-{symbol}{amount}" if round(value) < 0 else f"{symbol}{amount}"


def format_number(value: float) -> str:
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.1f}"


def format_percentage(value: float) -> str:
    return f"{value:.1f}%"


def format_growth(growth: Optional[float]) -> str:
    if growth is None:
        return "N/A"
    sign = "+" if growth >= 0 else ""
    return f"{sign}{growth:.1f}%"


def format_metric_value(
    value: float,
    metric: MetricKey,
    currency_symbol: str = DEFAULT_CURRENCY_SYMBOL,
) -> str:
    key = metric_key(metric)
    if key in CURRENCY_METRICS:
        return format_currency(value, currency_symbol)
    if key in PERCENT_METRICS:
        return format_percentage(value)
    if key in DECIMAL_METRICS:
        return f"{value:.1f}"
    return format_number(value)
