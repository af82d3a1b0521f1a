from __future__ import annotations

from typing import Literal

import structlog
from fastapi import Depends, FastAPI, HTTPException, Query

from . import aggregator
from . import db as db_mod
from .cache import LogCache
from .errors import UnknownMetricError
from .logging_setup import configure_logging
from .logs import DailyLog
from .models import (
    AggregatedPointsResponse,
    GroupedPointsResponse,
    InvalidateResponse,
    LogSavedResponse,
    MetricSummaryOut,
    PointsResponse,
    StatusResponse,
    grouped_out,
    info_out,
    point_out,
)
from .periods import TimePeriod
from .security import require_api_key
from .service import ChartDataService
from .source import SqliteLogSource

logger = structlog.get_logger(__name__)

app = FastAPI(title="Health Chart Data Pipeline", version="0.1.0")

source = SqliteLogSource(db_mod.DB_PATH)
cache = LogCache(source)
service = ChartDataService(cache)


def get_service() -> ChartDataService:
    return service


@app.on_event("startup")
def _startup() -> None:
    configure_logging()
    db_mod.init_db(source.db_path)
    logger.info("chart pipeline started", db_path=str(source.db_path))


def _unknown_metric(e: UnknownMetricError) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Unknown metric: {e.metric_id}")


@app.get("/api/status", response_model=StatusResponse)
def status(_: None = Depends(require_api_key)) -> StatusResponse:
    return StatusResponse(ok=True, dbPath=str(source.db_path), totalLogs=source.count())


@app.get("/api/metrics", response_model=list[MetricSummaryOut])
def list_metrics(
    period: TimePeriod = TimePeriod.MONTH,
    svc: ChartDataService = Depends(get_service),
    _: None = Depends(require_api_key),
) -> list[MetricSummaryOut]:
    return [
        MetricSummaryOut(
            id=s.id,
            displayName=s.display_name,
            description=s.description,
            category=s.category.value,
            dataType=s.data_type.value,
            dataPointCount=s.data_point_count,
            lastValue=s.last_value,
        )
        for s in svc.registry.summaries(period)
    ]


@app.get("/api/metrics/{metric_id}/points", response_model=PointsResponse)
def metric_points(
    metric_id: str,
    period: TimePeriod = TimePeriod.MONTH,
    svc: ChartDataService = Depends(get_service),
    _: None = Depends(require_api_key),
) -> PointsResponse:
    try:
        points = svc.get_points(metric_id, period)
    except UnknownMetricError as e:
        raise _unknown_metric(e)
    return PointsResponse(metricId=metric_id, period=period.value, points=[point_out(p) for p in points])


@app.get("/api/metrics/{metric_id}/aggregated", response_model=AggregatedPointsResponse)
def metric_aggregated(
    metric_id: str,
    period: TimePeriod = TimePeriod.MONTH,
    max_points: int | None = Query(default=None, ge=1, le=1000),
    svc: ChartDataService = Depends(get_service),
    _: None = Depends(require_api_key),
) -> AggregatedPointsResponse:
    try:
        provider = svc.provider(metric_id)
        raw = svc.get_points(metric_id, period)
    except UnknownMetricError as e:
        raise _unknown_metric(e)

    config = svc.aggregation_config(provider, len(raw), max_points)
    points, info = aggregator.aggregate(raw, period, config)
    return AggregatedPointsResponse(
        metricId=metric_id,
        period=period.value,
        points=[point_out(p) for p in points],
        info=info_out(info),
        preserveZeros=config.preserve_zeros,
    )


@app.get("/api/metrics/{metric_id}/smoothed", response_model=PointsResponse)
def metric_smoothed(
    metric_id: str,
    period: TimePeriod = TimePeriod.MONTH,
    svc: ChartDataService = Depends(get_service),
    _: None = Depends(require_api_key),
) -> PointsResponse:
    try:
        points = svc.get_smoothed_points(metric_id, period)
    except UnknownMetricError as e:
        raise _unknown_metric(e)
    return PointsResponse(metricId=metric_id, period=period.value, points=[point_out(p) for p in points])


@app.get("/api/metrics/{metric_id}/grouped", response_model=GroupedPointsResponse)
def metric_grouped(
    metric_id: str,
    period: TimePeriod = TimePeriod.MONTH,
    svc: ChartDataService = Depends(get_service),
    _: None = Depends(require_api_key),
) -> GroupedPointsResponse:
    try:
        groups = svc.get_grouped_points(metric_id, period)
    except UnknownMetricError as e:
        raise _unknown_metric(e)
    return GroupedPointsResponse(metricId=metric_id, period=period.value, groups=[grouped_out(g) for g in groups])


@app.post("/api/logs", response_model=LogSavedResponse)
def save_log(log: DailyLog, _: None = Depends(require_api_key)) -> LogSavedResponse:
    saved = source.upsert_log(log)
    # New data: every cached view is stale now.
    cache.invalidate_all()
    return LogSavedResponse(ok=True, id=int(saved.id or 0), date=saved.date)


@app.post("/api/cache/invalidate", response_model=InvalidateResponse)
def invalidate_cache(
    scope: Literal["all", "session"] = "all",
    _: None = Depends(require_api_key),
) -> InvalidateResponse:
    if scope == "session":
        cache.invalidate_session()
    else:
        cache.invalidate_all()
    return InvalidateResponse(ok=True, scope=scope)
