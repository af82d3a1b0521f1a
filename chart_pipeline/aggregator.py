from __future__ import annotations

from collections import Counter, defaultdict
from datetime import date, datetime, timedelta, tzinfo
from typing import Optional, Sequence

import structlog

from .periods import TimePeriod
from .points import (
    AggregatedDataInfo,
    AggregationConfig,
    AggregationLevel,
    AggregationMethod,
    BucketRaw,
    DataPoint,
    MetricDataType,
)

logger = structlog.get_logger(__name__)

# Density tiers used once a series exceeds its point cap.
SPARSE_MAX_POINTS = 50
MEDIUM_MAX_POINTS = 150


def aggregate(
    points: Sequence[DataPoint],
    period: TimePeriod,
    config: Optional[AggregationConfig] = None,
) -> tuple[list[DataPoint], AggregatedDataInfo]:
    """Bucket a series by day/week/month so a chart shows a bounded number of points."""
    config = config or AggregationConfig.default()

    if not points:
        return [], AggregatedDataInfo(0, 0, AggregationLevel.DAILY, config.method)

    sorted_points = sorted(points, key=lambda p: p.date)
    level = determine_level(len(sorted_points), period, config.max_data_points)

    if level == AggregationLevel.DAILY:
        out = sorted_points
    else:
        out = aggregate_by_level(sorted_points, level, config.method)
        # Coarsen again if the natural buckets still overflow the cap.
        while len(out) > config.max_data_points and level != AggregationLevel.MONTHLY:
            level = level.escalate()
            out = aggregate_by_level(sorted_points, level, config.method)

    info = AggregatedDataInfo(
        original_count=len(sorted_points),
        aggregated_count=len(out),
        aggregation_level=level,
        method=config.method,
    )
    logger.debug(
        "aggregated series",
        period=period.value,
        level=level.value,
        method=config.method.value,
        original=info.original_count,
        aggregated=info.aggregated_count,
    )
    return out, info


def determine_level(data_count: int, period: TimePeriod, max_points: int) -> AggregationLevel:
    if data_count <= max_points:
        return AggregationLevel.DAILY

    natural = period.aggregation_level
    if data_count <= SPARSE_MAX_POINTS:
        return AggregationLevel.DAILY
    if data_count <= MEDIUM_MAX_POINTS:
        return AggregationLevel.WEEKLY if natural == AggregationLevel.DAILY else natural
    return natural.escalate()


def group_key(dt: datetime, level: AggregationLevel) -> str:
    if level == AggregationLevel.WEEKLY:
        iso_year, iso_week, _ = dt.isocalendar()
        return f"{iso_year:04d}-W{iso_week:02d}"
    if level == AggregationLevel.MONTHLY:
        return f"{dt.year:04d}-{dt.month:02d}"
    return dt.date().isoformat()


def parse_group_key(key: str, level: AggregationLevel, tz: Optional[tzinfo] = None) -> datetime:
    """Representative (first) day of a bucket, at midnight. Falls back to now on a bad key."""
    try:
        if level == AggregationLevel.WEEKLY:
            year_s, week_s = key.split("-W")
            day = date.fromisocalendar(int(year_s), int(week_s), 1)
        elif level == AggregationLevel.MONTHLY:
            year_s, month_s = key.split("-")
            day = date(int(year_s), int(month_s), 1)
        else:
            day = date.fromisoformat(key)
    except (ValueError, TypeError) as e:
        logger.warning("unparseable bucket key", key=key, level=level.value, error=str(e))
        return datetime.now(tz)
    return datetime(day.year, day.month, day.day, tzinfo=tz)


def aggregate_by_level(
    points: Sequence[DataPoint],
    level: AggregationLevel,
    method: AggregationMethod,
) -> list[DataPoint]:
    groups: dict[str, list[DataPoint]] = defaultdict(list)
    for p in points:
        groups[group_key(p.date, level)].append(p)

    out: list[DataPoint] = []
    for key, group in groups.items():
        bucket_date = parse_group_key(key, level, group[0].date.tzinfo)
        agg = aggregate_group(group, method, bucket_date)
        if agg is not None:
            out.append(agg)
    out.sort(key=lambda p: p.date)
    return out


def aggregate_by_interval(
    points: Sequence[DataPoint],
    interval_days: int,
    method: AggregationMethod,
) -> list[DataPoint]:
    """Fixed-width groups, each anchored at the first point that opens it."""
    if not points or interval_days <= 0:
        return list(points)

    sorted_points = sorted(points, key=lambda p: p.date)
    out: list[DataPoint] = []
    group_start = sorted_points[0].date
    group: list[DataPoint] = []

    for p in sorted_points:
        if (p.date - group_start) < timedelta(days=interval_days):
            group.append(p)
            continue
        agg = aggregate_group(group, method, group_start)
        if agg is not None:
            out.append(agg)
        group_start = p.date
        group = [p]

    agg = aggregate_group(group, method, group_start)
    if agg is not None:
        out.append(agg)
    return out


def aggregate_group(
    group: Sequence[DataPoint],
    method: AggregationMethod,
    group_date: datetime,
) -> Optional[DataPoint]:
    if not group:
        return None

    values = [p.value for p in group]
    if method == AggregationMethod.SUM:
        value = sum(values)
    elif method == AggregationMethod.FREQUENCY:
        non_zero = sum(1 for v in values if v != 0)
        value = non_zero / len(values) * 100.0
    elif method == AggregationMethod.MODE:
        value = _mode(values)
    elif method == AggregationMethod.LATEST:
        # sorted() is stable, so equal dates keep input order
        value = sorted(group, key=lambda p: p.date)[-1].value
    else:
        value = sum(values) / len(values)

    return DataPoint(
        date=group_date,
        value=value,
        metric_id=group[0].metric_id,
        raw_value=BucketRaw(items=tuple(p.raw_value for p in group)),
    )


def _mode(values: Sequence[float]) -> float:
    counts = Counter(values)
    best = max(counts.values())
    # Ties go to the smallest value.
    return min(v for v, c in counts.items() if c == best)


def optimal_config(data_type: MetricDataType, data_count: int) -> AggregationConfig:
    if data_count <= 30:
        max_points = 30
    elif data_count <= 100:
        max_points = 50
    elif data_count <= 300:
        max_points = 40
    else:
        max_points = 30

    method = {
        MetricDataType.BINARY: AggregationMethod.FREQUENCY,
        MetricDataType.CATEGORICAL: AggregationMethod.MODE,
        MetricDataType.COUNT: AggregationMethod.SUM,
    }.get(data_type, AggregationMethod.AVERAGE)

    return AggregationConfig(
        max_data_points=max_points,
        method=method,
        preserve_zeros=data_type in (MetricDataType.BINARY, MetricDataType.COUNT),
    )


def preview(
    data_count: int,
    period: TimePeriod,
    config: Optional[AggregationConfig] = None,
) -> AggregatedDataInfo:
    """Estimate what `aggregate` would do without touching any points."""
    config = config or AggregationConfig.default()
    level = determine_level(data_count, period, config.max_data_points)

    if level == AggregationLevel.WEEKLY:
        estimated = max(1, data_count // 7)
    elif level == AggregationLevel.MONTHLY:
        estimated = max(1, data_count // 30)
    else:
        estimated = data_count

    return AggregatedDataInfo(
        original_count=data_count,
        aggregated_count=min(estimated, config.max_data_points),
        aggregation_level=level,
        method=config.method,
    )
