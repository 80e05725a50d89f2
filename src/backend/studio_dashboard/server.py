from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.responses import Response
from pydantic import BaseModel, Field, field_validator

from .configuration import load_dashboard_config
from .exports import write_expirations_csv, write_year_on_year_csv
from .logging_utils import setup_logging
from .models import ExpirationFilters, MetricRecord, TrainerMetric, serialize
from .repository import build_repository_from_env
from .service import DashboardService, LoadState
from .year_on_year import build_year_on_year_table

config = load_dashboard_config()
setup_logging(config.logging.level, config.logging.format)
logger = logging.getLogger(__name__)

service = DashboardService(build_repository_from_env(config), config)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting studio dashboard API (spreadsheet configured: %s)", config.sheets.is_configured)
    yield
    service.close()
    logger.info("Studio dashboard API stopped")


app = FastAPI(title="Studio Dashboard API", version="0.1.0", lifespan=lifespan)


def get_service() -> DashboardService:
    return service


class MetricRecordPayload(BaseModel):
    trainer_name: str
    month_year: str
    location: Optional[str] = None
    metrics: Dict[str, float] = Field(default_factory=dict)

    @field_validator("trainer_name", "month_year")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class YearOnYearRequest(BaseModel):
    metric: TrainerMetric = TrainerMetric.TOTAL_SESSIONS
    records: List[MetricRecordPayload] = Field(..., min_length=1)


class DashboardResponse(BaseModel):
    data: Any
    source: str
    error: Optional[str] = None
    fetched_at: Optional[datetime] = None


def _expiration_filters(
    location: Optional[List[str]] = Query(None),
    status: Optional[List[str]] = Query(None),
    membership_type: Optional[List[str]] = Query(None),
    seller: Optional[List[str]] = Query(None),
) -> ExpirationFilters:
    return ExpirationFilters(
        locations=tuple(location or ()),
        statuses=tuple(status or ()),
        membership_types=tuple(membership_type or ()),
        sellers=tuple(seller or ()),
    )


def _respond(data: Any, state: LoadState) -> DashboardResponse:
    if state.unavailable:
        raise HTTPException(status_code=503, detail=state.error)
    return DashboardResponse(data=data, source="spreadsheet", error=state.error, fetched_at=state.fetched_at)


def _csv_response(body: str, filename: str) -> Response:
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/expirations", response_model=DashboardResponse)
def expirations_endpoint(
    reference_date: Optional[date] = Query(None),
    filters: ExpirationFilters = Depends(_expiration_filters),
    dashboard: DashboardService = Depends(get_service),
) -> DashboardResponse:
    section = dashboard.expiration_section(filters, reference_date)
    return _respond(section.as_dict(), dashboard.expirations)


@app.get("/expirations/options", response_model=DashboardResponse)
def expiration_options_endpoint(dashboard: DashboardService = Depends(get_service)) -> DashboardResponse:
    options = dashboard.expiration_options()
    return _respond(options, dashboard.expirations)


@app.get("/expirations/export.csv")
def expirations_export(
    filters: ExpirationFilters = Depends(_expiration_filters),
    dashboard: DashboardService = Depends(get_service),
) -> Response:
    section = dashboard.expiration_section(filters)
    if dashboard.expirations.unavailable:
        raise HTTPException(status_code=503, detail=dashboard.expirations.error)
    return _csv_response(write_expirations_csv(section.records), "membership-expiration-export.csv")


@app.get("/expirations/cards/{card_key}", response_model=DashboardResponse)
def expiration_card_drill_down(
    card_key: str,
    reference_date: Optional[date] = Query(None),
    filters: ExpirationFilters = Depends(_expiration_filters),
    dashboard: DashboardService = Depends(get_service),
) -> DashboardResponse:
    records = dashboard.expiration_drill_down(card_key, filters, reference_date)
    if records is None:
        raise HTTPException(status_code=404, detail=f"Unknown card: {card_key}")
    return _respond(serialize(records), dashboard.expirations)


@app.get("/trainers/year-on-year", response_model=DashboardResponse)
def year_on_year_endpoint(
    metric: Optional[TrainerMetric] = Query(None),
    dashboard: DashboardService = Depends(get_service),
) -> DashboardResponse:
    table = dashboard.year_on_year_section(metric)
    return _respond(table.as_dict(), dashboard.trainers)


@app.post("/trainers/year-on-year", response_model=DashboardResponse)
def year_on_year_inline(
    request: YearOnYearRequest,
    dashboard: DashboardService = Depends(get_service),
) -> DashboardResponse:
    records = [
        MetricRecord(
            trainer_name=payload.trainer_name,
            month_year=payload.month_year,
            metrics=dict(payload.metrics),
            location=payload.location,
        )
        for payload in request.records
    ]
    table = build_year_on_year_table(
        records,
        request.metric,
        currency_symbol=dashboard.config.display.currency_symbol,
    )
    return DashboardResponse(data=table.as_dict(), source="inline")


@app.get("/trainers/year-on-year/export.csv")
def year_on_year_export(
    metric: Optional[TrainerMetric] = Query(None),
    dashboard: DashboardService = Depends(get_service),
) -> Response:
    table = dashboard.year_on_year_section(metric)
    if dashboard.trainers.unavailable:
        raise HTTPException(status_code=503, detail=dashboard.trainers.error)
    return _csv_response(write_year_on_year_csv(table), f"trainer-year-on-year-{table.metric}.csv")


@app.get("/trainers/year-on-year/{trainer_name}", response_model=DashboardResponse)
def trainer_drill_down(
    trainer_name: str,
    metric: Optional[TrainerMetric] = Query(None),
    dashboard: DashboardService = Depends(get_service),
) -> DashboardResponse:
    table, summary = dashboard.trainer_detail(trainer_name, metric)
    if dashboard.trainers.unavailable:
        raise HTTPException(status_code=503, detail=dashboard.trainers.error)
    if summary is None:
        raise HTTPException(status_code=404, detail=f"Unknown trainer: {trainer_name}")
    data = {
        "summary": summary.as_dict(),
        "row": serialize(table.row_for(trainer_name)),
        "columns": serialize(table.columns),
    }
    return _respond(data, dashboard.trainers)


@app.post("/refresh")
def refresh_endpoint(dashboard: DashboardService = Depends(get_service)) -> Dict[str, Any]:
    states = dashboard.refresh()
    return {
        name: {
            "records": len(state.data),
            "error": state.error,
            "fetchedAt": state.fetched_at.isoformat() if state.fetched_at else None,
        }
        for name, state in states.items()
    }
