from __future__ import annotations

import logging
import re
from collections import defaultdict
from typing import Dict, Iterable, List, Sequence, Tuple

from .exceptions import PeriodLabelError
from .models import OrganizedColumn, PeriodLabel

logger = logging.getLogger(__name__)

MONTH_NAMES: Tuple[str, ...] = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)

_NUMERIC_LABEL = re.compile(r"^(\d{1,2})/(\d{4})$")
_NAMED_LABEL = re.compile(r"^([A-Za-z]{3})-(\d{4})$")


def parse_period_label(label: str) -> PeriodLabel:
    """
    Parse a period label in either ``MM/YYYY`` or ``Mon-YYYY`` form.

    ``03/2024`` and ``mar-2024`` both resolve to month 3 of 2024 with the month
    name ``Mar``; anything else raises ``PeriodLabelError``.
    """

    text = (label or "").strip()

    match = _NUMERIC_LABEL.match(text)
    if match:
        month, year = int(match.group(1)), int(match.group(2))
        if not 1 <= month <= 12:
            raise PeriodLabelError(label)
        return PeriodLabel(label=label, month=month, year=year, month_name=MONTH_NAMES[month - 1])

    match = _NAMED_LABEL.match(text)
    if match:
        month_name = match.group(1).title()
        if month_name not in MONTH_NAMES:
            raise PeriodLabelError(label)
        return PeriodLabel(
            label=label,
            month=MONTH_NAMES.index(month_name) + 1,
            year=int(match.group(2)),
            month_name=month_name,
        )

    raise PeriodLabelError(label)


def parse_period_labels(labels: Iterable[str]) -> List[PeriodLabel]:
    """Parse every distinct label, skipping the ones that are not period labels."""
    parsed: List[PeriodLabel] = []
    for label in sorted(set(labels)):
        try:
            parsed.append(parse_period_label(label))
        except PeriodLabelError:
            logger.warning("Skipping unrecognised period label %r", label)
    return parsed


def organize_columns(labels: Iterable[str]) -> Sequence[OrganizedColumn]:
    """
    Group period labels by calendar month across years.

    Each column lists its ``(year, label)`` pairs year-ascending; columns are
    ordered Jan..Dec. Labels are de-duplicated and sorted before grouping so the
    result does not depend on input order.
    """

    groups: Dict[str, List[Tuple[int, str]]] = defaultdict(list)
    for period in parse_period_labels(labels):
        groups[period.month_name].append((period.year, period.label))

    return [
        OrganizedColumn(month_name=month_name, years=tuple(sorted(groups[month_name])))
        for month_name in MONTH_NAMES
        if month_name in groups
    ]
