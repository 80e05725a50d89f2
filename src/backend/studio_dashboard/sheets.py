"""
Google Sheets access for the dashboard feeds.

The client builds google-auth user credentials from a stored refresh token and
reads a whole range with gspread through the ``values`` endpoint. Rows come
back as lists; ``rows_to_dicts`` keys them by the header row and the
``*_from_row`` helpers map them onto the dashboard records.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import gspread
from google.auth.exceptions import RefreshError, TransportError
from google.auth.transport.requests import AuthorizedSession, Request
from google.oauth2.credentials import Credentials
from gspread.exceptions import APIError, SpreadsheetNotFound
from requests.exceptions import RequestException

from .configuration import SheetsConfig
from .exceptions import SheetsAuthError, SheetsFetchError
from .models import ExpirationRecord, MetricRecord, TrainerMetric
from .parsing import coerce_bool, coerce_number

logger = logging.getLogger(__name__)

EXPIRATION_COLUMNS: Mapping[str, Tuple[str, ...]] = {
    "unique_id": ("Unique Id", "uniqueId"),
    "member_id": ("Member ID", "memberId"),
    "first_name": ("First Name", "firstName"),
    "last_name": ("Last Name", "lastName"),
    "email": ("Email", "email"),
    "membership_name": ("Membership Name", "membershipName"),
    "end_date": ("End Date", "endDate"),
    "home_location": ("Home Location", "homeLocation"),
    "current_usage": ("Current Usage", "currentUsage"),
    "id": ("Id", "id"),
    "order_at": ("Order At", "orderAt"),
    "sold_by": ("Sold By", "soldBy"),
    "membership_id": ("Membership Id", "membershipId"),
    "paid": ("Paid", "paid"),
    "status": ("Status", "status"),
}

TRAINER_NAME_COLUMNS = ("Trainer Name", "Teacher Name", "trainerName", "teacherName")
PERIOD_COLUMNS = ("Month Year", "monthYear", "Month", "Period")
LOCATION_COLUMNS = ("Location", "location")


def _humanize(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", " ", key).title()


METRIC_COLUMNS: Mapping[str, Tuple[str, ...]] = {
    metric.value: (_humanize(metric.value), metric.value) for metric in TrainerMetric
}


def build_credentials(config: SheetsConfig) -> Credentials:
    """User credentials that mint access tokens from the stored refresh token."""
    return Credentials(
        token=None,
        refresh_token=config.refresh_token,
        client_id=config.client_id,
        client_secret=config.client_secret,
        token_uri=config.token_url,
    )


class SheetsClient:
    def __init__(
        self,
        config: SheetsConfig,
        credentials: Optional[Credentials] = None,
        gspread_client: Optional[gspread.Client] = None,
    ):
        self.config = config
        self.credentials = credentials or build_credentials(config)
        self._session: Optional[AuthorizedSession] = None
        self._client = gspread_client

    def get_access_token(self) -> str:
        if not self.credentials.valid:
            try:
                self.credentials.refresh(Request())
            except (RefreshError, TransportError) as exc:
                raise SheetsAuthError(f"Token exchange failed: {exc}") from exc

        if not self.credentials.token:
            raise SheetsAuthError("Token response did not include an access token")
        return self.credentials.token

    def _gspread(self) -> gspread.Client:
        if self._client is None:
            self._session = AuthorizedSession(self.credentials)
            self._client = gspread.authorize(self.credentials, session=self._session)
            self._client.set_timeout(self.config.timeout_seconds)
        return self._client

    def fetch_values(self, range_name: str) -> List[List[Any]]:
        """Return the raw rows of ``range_name``, header row included."""
        self.get_access_token()
        logger.debug("Access token obtained for range %s", range_name)

        try:
            spreadsheet = self._gspread().open_by_key(self.config.spreadsheet_id)
            payload = spreadsheet.values_get(range_name)
        except RefreshError as exc:
            raise SheetsAuthError(f"Token exchange failed: {exc}") from exc
        except APIError as exc:
            status_code = exc.response.status_code
            raise SheetsFetchError(
                f"Failed to fetch range {range_name}: status={status_code}",
                {"range": range_name, "status_code": status_code},
            ) from exc
        except (SpreadsheetNotFound, RequestException) as exc:
            raise SheetsFetchError(f"Failed to fetch range {range_name}: {exc!r}", {"range": range_name}) from exc

        values = payload.get("values") if isinstance(payload, dict) else None
        return values or []

    def fetch_rows(self, range_name: str) -> List[Dict[str, str]]:
        logger.info("Fetching %s from spreadsheet %s", range_name, self.config.spreadsheet_id)
        rows = rows_to_dicts(self.fetch_values(range_name))
        logger.info("Fetched %d rows from %s", len(rows), range_name)
        return rows

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None


def rows_to_dicts(values: Sequence[Sequence[Any]]) -> List[Dict[str, str]]:
    """
    Key every data row by the header row.

    Ranges with fewer than two rows hold no data. Short rows are padded with
    empty strings.
    """

    if len(values) < 2:
        return []
    headers = [str(header).strip() for header in values[0]]
    rows: List[Dict[str, str]] = []
    for raw in values[1:]:
        row = {}
        for index, header in enumerate(headers):
            cell = raw[index] if index < len(raw) else None
            row[header] = "" if cell is None else str(cell)
        rows.append(row)
    return rows


def _pick(row: Mapping[str, Any], aliases: Sequence[str]) -> str:
    for alias in aliases:
        value = row.get(alias)
        if value:
            return str(value).strip()
    return ""


def expiration_from_row(row: Mapping[str, Any]) -> ExpirationRecord:
    fields = {name: _pick(row, aliases) for name, aliases in EXPIRATION_COLUMNS.items()}
    frozen = coerce_bool(row.get("Frozen")) or coerce_bool(row.get("frozen"))
    return ExpirationRecord(frozen=frozen, **fields)


def metric_record_from_row(row: Mapping[str, Any]) -> Optional[MetricRecord]:
    trainer_name = _pick(row, TRAINER_NAME_COLUMNS)
    month_year = _pick(row, PERIOD_COLUMNS)
    if not trainer_name or not month_year:
        return None
    metrics = {key: coerce_number(_pick(row, aliases)) for key, aliases in METRIC_COLUMNS.items()}
    return MetricRecord(
        trainer_name=trainer_name,
        month_year=month_year,
        metrics=metrics,
        location=_pick(row, LOCATION_COLUMNS) or None,
    )
