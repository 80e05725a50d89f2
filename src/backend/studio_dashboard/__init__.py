"""
Backend for the fitness-studio analytics dashboard.

Trainer performance and membership-expiration rows are pulled from a Google
Sheets spreadsheet and turned into the tables, cards and drill-downs the
frontend renders: a year-on-year trainer comparison and an expirations section
with filtering and churn metrics.
"""

from .configuration import DashboardConfig, load_dashboard_config  # noqa: F401
from .exceptions import (  # noqa: F401
    DashboardError,
    DataSourceError,
    PeriodLabelError,
    SheetsAuthError,
    SheetsFetchError,
)
from .expirations import (  # noqa: F401
    build_expiration_section,
    filter_expirations,
    summarize_expirations,
)
from .models import (  # noqa: F401
    CardMetric,
    ExpirationFilters,
    ExpirationRecord,
    ExpirationSection,
    ExpirationStatus,
    ExpirationSummary,
    GrowthCell,
    LeaderboardRow,
    MetricRecord,
    OrganizedColumn,
    PeriodLabel,
    TrainerMetric,
    TrainerRow,
    TrainerSummary,
    YearOnYearTable,
)
from .periods import organize_columns, parse_period_label  # noqa: F401
from .repository import (  # noqa: F401
    DashboardDataRepository,
    InMemoryDashboardRepository,
    SheetsDashboardRepository,
    build_repository_from_env,
)
from .service import DashboardService, LoadState  # noqa: F401
from .year_on_year import build_year_on_year_table, summarize_trainer, year_on_year_growth  # noqa: F401
