from __future__ import annotations

from typing import Optional, Sequence

from .configuration import DashboardConfig, SheetsConfig, load_dashboard_config
from .models import ExpirationRecord, MetricRecord
from .sheets import SheetsClient, expiration_from_row, metric_record_from_row


class DashboardDataRepository:
    """
    Interface for loading the dashboard feeds.

    Implementations return the full record set of each feed; filtering and
    aggregation happen in Python on the fetched snapshot.
    """

    def load_expirations(self) -> Sequence[ExpirationRecord]:
        raise NotImplementedError

    def load_trainer_metrics(self) -> Sequence[MetricRecord]:
        raise NotImplementedError

    def close(self) -> None:
        """Release connections held by the repository."""


class SheetsDashboardRepository(DashboardDataRepository):
    """
    Load both feeds from one spreadsheet.

    Expected tabs (configurable):
      - Expirations: Unique Id, Member ID, First Name, Last Name, Email,
        Membership Name, End Date, Home Location, Current Usage, Id, Order At,
        Sold By, Membership Id, Frozen, Paid, Status
      - Trainer Performance: Trainer Name, Month Year, Location and one column
        per trainer metric (Total Sessions, Total Paid, ...)
    """

    def __init__(self, client: SheetsClient, config: SheetsConfig):
        self.client = client
        self.config = config

    def load_expirations(self) -> Sequence[ExpirationRecord]:
        rows = self.client.fetch_rows(self.config.expirations_range)
        return tuple(expiration_from_row(row) for row in rows)

    def load_trainer_metrics(self) -> Sequence[MetricRecord]:
        rows = self.client.fetch_rows(self.config.trainers_range)
        records = (metric_record_from_row(row) for row in rows)
        return tuple(record for record in records if record is not None)

    def close(self) -> None:
        self.client.close()


class InMemoryDashboardRepository(DashboardDataRepository):
    def __init__(
        self,
        expirations: Sequence[ExpirationRecord] = (),
        trainer_metrics: Sequence[MetricRecord] = (),
    ):
        self.expirations = tuple(expirations)
        self.trainer_metrics = tuple(trainer_metrics)

    def load_expirations(self) -> Sequence[ExpirationRecord]:
        return self.expirations

    def load_trainer_metrics(self) -> Sequence[MetricRecord]:
        return self.trainer_metrics


def build_repository_from_env(config: Optional[DashboardConfig] = None) -> Optional[DashboardDataRepository]:
    cfg = config or load_dashboard_config()
    if cfg.sheets.is_configured:
        return SheetsDashboardRepository(SheetsClient(cfg.sheets), cfg.sheets)
    return None
