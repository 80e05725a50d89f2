from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .configuration import DashboardConfig
from .exceptions import DataSourceError
from .expirations import available_filter_options, build_expiration_section, drill_down, filter_expirations
from .models import (
    ExpirationFilters,
    ExpirationRecord,
    ExpirationSection,
    MetricKey,
    MetricRecord,
    TrainerSummary,
    YearOnYearTable,
)
from .repository import DashboardDataRepository
from .year_on_year import build_year_on_year_table, summarize_trainer

logger = logging.getLogger(__name__)

EXPIRATIONS_ERROR = "Failed to load expirations data"
TRAINERS_ERROR = "Failed to load trainer data"


@dataclass
class LoadState:
    """
    Latest snapshot of one feed.

    ``error`` is a generic message for the UI; the underlying exception is only
    logged. A failed refresh keeps the previous ``data``. ``lock`` serialises
    fetches so concurrent requests share one load.
    """

    data: Sequence = ()
    loading: bool = False
    error: Optional[str] = None
    fetched_at: Optional[datetime] = None
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def loaded(self) -> bool:
        return self.fetched_at is not None

    @property
    def unavailable(self) -> bool:
        return self.error is not None and not self.data


class DashboardService:
    """
    Holds the fetched feeds and recomputes the dashboard sections from them.

    Each feed is fetched on first use and again only on an explicit refresh.
    """

    def __init__(
        self,
        repository: Optional[DashboardDataRepository],
        config: Optional[DashboardConfig] = None,
    ) -> None:
        self.repository = repository
        self.config = config or DashboardConfig()
        self.expirations = LoadState()
        self.trainers = LoadState()
        self._feeds: Dict[str, Tuple[LoadState, str, Callable[[], Sequence]]] = {
            "expirations": (self.expirations, EXPIRATIONS_ERROR, self._load_expirations),
            "trainers": (self.trainers, TRAINERS_ERROR, self._load_trainers),
        }

    def refresh_expirations(self) -> LoadState:
        return self._refresh_feed("expirations")

    def refresh_trainers(self) -> LoadState:
        return self._refresh_feed("trainers")

    def refresh(self) -> Dict[str, LoadState]:
        return {name: self._refresh_feed(name) for name in self._feeds}

    def expiration_records(self) -> Sequence[ExpirationRecord]:
        return self._records("expirations")

    def trainer_records(self) -> Sequence[MetricRecord]:
        return self._records("trainers")

    def close(self) -> None:
        if self.repository is not None:
            self.repository.close()

    def expiration_section(
        self,
        filters: Optional[ExpirationFilters] = None,
        reference_date: Optional[date] = None,
    ) -> ExpirationSection:
        return build_expiration_section(
            self.expiration_records(),
            filters,
            reference_date or date.today(),
            currency_symbol=self.config.display.currency_symbol,
        )

    def expiration_drill_down(
        self,
        card_key: str,
        filters: Optional[ExpirationFilters] = None,
        reference_date: Optional[date] = None,
    ) -> Optional[List[ExpirationRecord]]:
        filtered = filter_expirations(self.expiration_records(), filters)
        return drill_down(filtered, card_key, reference_date or date.today())

    def expiration_options(self) -> Dict[str, List[str]]:
        return available_filter_options(self.expiration_records())

    def year_on_year_section(self, metric: Optional[MetricKey] = None) -> YearOnYearTable:
        return build_year_on_year_table(
            self.trainer_records(),
            metric or self.config.display.default_metric,
            currency_symbol=self.config.display.currency_symbol,
        )

    def trainer_detail(
        self,
        trainer_name: str,
        metric: Optional[MetricKey] = None,
    ) -> Tuple[YearOnYearTable, Optional[TrainerSummary]]:
        table = self.year_on_year_section(metric)
        summary = summarize_trainer(table, trainer_name, currency_symbol=self.config.display.currency_symbol)
        return table, summary

    def _load_expirations(self) -> Sequence[ExpirationRecord]:
        return self._require_repository().load_expirations()

    def _load_trainers(self) -> Sequence[MetricRecord]:
        return self._require_repository().load_trainer_metrics()

    def _require_repository(self) -> DashboardDataRepository:
        if self.repository is None:
            raise DataSourceError("No spreadsheet data source is configured")
        return self.repository

    def _refresh_feed(self, name: str) -> LoadState:
        state, error_message, loader = self._feeds[name]
        with state.lock:
            return self._refresh(state, name, error_message, loader)

    def _records(self, name: str) -> Sequence:
        state, error_message, loader = self._feeds[name]
        if not state.loaded and state.error is None:
            with state.lock:
                # re-check: a concurrent request may have loaded it
                if not state.loaded and state.error is None:
                    self._refresh(state, name, error_message, loader)
        return state.data

    @staticmethod
    def _refresh(
        state: LoadState,
        name: str,
        error_message: str,
        loader: Callable[[], Sequence],
    ) -> LoadState:
        """Load one feed; callers hold ``state.lock``."""
        state.loading = True
        try:
            records = tuple(loader())
        except DataSourceError as exc:
            logger.warning("Error fetching %s data: %s", name, exc)
            state.error = error_message
            return state
        finally:
            state.loading = False

        state.data = records
        state.fetched_at = datetime.now(timezone.utc)
        state.error = None
        logger.info("Loaded %d %s records", len(records), name)
        return state
