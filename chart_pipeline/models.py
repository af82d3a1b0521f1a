from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel

from .points import (
    AggregatedDataInfo,
    BooleanRaw,
    BucketRaw,
    CategoryRaw,
    DataPoint,
    GroupedDataPoint,
    LabelListRaw,
    NumericRaw,
    RawValue,
)


class StatusResponse(BaseModel):
    ok: bool
    dbPath: str
    totalLogs: int


class PointOut(BaseModel):
    id: str
    date: datetime
    value: float
    metricId: str
    rawValue: Optional[dict[str, Any]] = None


class AggregationInfoOut(BaseModel):
    originalCount: int
    aggregatedCount: int
    aggregationLevel: Literal["daily", "weekly", "monthly"]
    method: Literal["average", "sum", "frequency", "mode", "latest"]
    wasAggregated: bool
    reductionPercentage: float


class AggregatedPointsResponse(BaseModel):
    metricId: str
    period: str
    points: list[PointOut]
    info: AggregationInfoOut
    preserveZeros: bool


class PointsResponse(BaseModel):
    metricId: str
    period: str
    points: list[PointOut]


class GroupedPointOut(BaseModel):
    date: datetime
    count: int
    value: str
    numericValue: float


class GroupedPointsResponse(BaseModel):
    metricId: str
    period: str
    groups: list[GroupedPointOut]


class MetricSummaryOut(BaseModel):
    id: str
    displayName: str
    description: str
    category: str
    dataType: str
    dataPointCount: int
    lastValue: Optional[str] = None


class LogSavedResponse(BaseModel):
    ok: bool
    id: int
    date: datetime


class InvalidateResponse(BaseModel):
    ok: bool
    scope: Literal["all", "session"]


def raw_to_json(raw: Optional[RawValue]) -> Optional[dict[str, Any]]:
    if raw is None:
        return None
    if isinstance(raw, NumericRaw):
        return {"kind": "numeric", "value": raw.value}
    if isinstance(raw, BooleanRaw):
        return {"kind": "boolean", "value": raw.value}
    if isinstance(raw, CategoryRaw):
        return {"kind": "category", "value": raw.label}
    if isinstance(raw, LabelListRaw):
        return {"kind": "labels", "value": list(raw.labels)}
    if isinstance(raw, BucketRaw):
        return {"kind": "bucket", "value": [raw_to_json(x) for x in raw.items]}
    raise TypeError(f"Unsupported raw value: {raw!r}")


def point_out(p: DataPoint) -> PointOut:
    return PointOut(id=str(p.id), date=p.date, value=p.value, metricId=p.metric_id, rawValue=raw_to_json(p.raw_value))


def info_out(info: AggregatedDataInfo) -> AggregationInfoOut:
    return AggregationInfoOut(
        originalCount=info.original_count,
        aggregatedCount=info.aggregated_count,
        aggregationLevel=info.aggregation_level.value,
        method=info.method.value,
        wasAggregated=info.was_aggregated,
        reductionPercentage=info.reduction_percentage,
    )


def grouped_out(g: GroupedDataPoint) -> GroupedPointOut:
    return GroupedPointOut(date=g.date, count=g.count, value=g.value, numericValue=g.numeric_value)
