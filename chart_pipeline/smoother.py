from __future__ import annotations

import bisect
import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Sequence

import structlog

from .periods import TimePeriod
from .points import BooleanRaw, DataPoint, MetricDataType

logger = structlog.get_logger(__name__)


class SamplingStrategy(str, Enum):
    NONE = "none"
    UNIFORM = "uniform"  # every Nth point
    TIME_BASED_GRID = "time_based_grid"  # nearest point to evenly spaced instants


@dataclass(frozen=True)
class ProcessingConfig:
    should_process: bool
    target_data_points: int
    loess_bandwidth: float
    sampling_strategy: SamplingStrategy


def processing_config(period: TimePeriod, data_point_count: int) -> ProcessingConfig:
    """Fixed smoothing policy per period; the same inputs always smooth the same way."""
    n = data_point_count
    if period == TimePeriod.THREE_MONTH:
        return ProcessingConfig(
            should_process=n > 60,
            target_data_points=45,
            loess_bandwidth=0.15,
            sampling_strategy=SamplingStrategy.UNIFORM if n > 100 else SamplingStrategy.NONE,
        )
    if period == TimePeriod.SIX_MONTH:
        return ProcessingConfig(
            should_process=n > 80,
            target_data_points=50,
            loess_bandwidth=0.2,
            sampling_strategy=SamplingStrategy.TIME_BASED_GRID if n > 150 else SamplingStrategy.UNIFORM,
        )
    if period == TimePeriod.YEAR:
        return ProcessingConfig(
            should_process=n > 100,
            target_data_points=60,
            loess_bandwidth=0.25,
            sampling_strategy=SamplingStrategy.TIME_BASED_GRID,
        )
    if period == TimePeriod.ALL_TIME:
        return ProcessingConfig(
            should_process=n > 30,
            target_data_points=80,
            loess_bandwidth=0.3,
            sampling_strategy=SamplingStrategy.TIME_BASED_GRID,
        )
    # 7D / 30D are always drawn as-is.
    return ProcessingConfig(
        should_process=False,
        target_data_points=n,
        loess_bandwidth=0.0,
        sampling_strategy=SamplingStrategy.NONE,
    )


def process(points: Sequence[DataPoint], period: TimePeriod, data_type: MetricDataType) -> list[DataPoint]:
    if not points:
        return []

    config = processing_config(period, len(points))
    sorted_points = sorted(points, key=lambda p: p.date)
    if not config.should_process:
        return sorted_points

    if data_type == MetricDataType.BINARY:
        out = bucket_binary(sorted_points, config.target_data_points)
    else:
        # Sample before smoothing so every window spans the full range.
        if config.sampling_strategy == SamplingStrategy.UNIFORM:
            sampled = sample_uniform(sorted_points, config.target_data_points)
        elif config.sampling_strategy == SamplingStrategy.TIME_BASED_GRID:
            sampled = sample_time_grid(sorted_points, config.target_data_points)
        else:
            sampled = sorted_points
        out = loess_smooth(sampled, config.loess_bandwidth)

    logger.debug(
        "smoothed series",
        period=period.value,
        data_type=data_type.value,
        sampling=config.sampling_strategy.value,
        original=len(points),
        smoothed=len(out),
    )
    return out


def bucket_binary(points: Sequence[DataPoint], target: int) -> list[DataPoint]:
    """Equal-width time buckets, each reduced to 0.0 or 1.0 by majority."""
    if not points:
        return []

    sorted_points = sorted(points, key=lambda p: p.date)
    start = sorted_points[0].date
    span = (sorted_points[-1].date - start).total_seconds()
    target = max(1, target)

    if span <= 0:
        interval = 0.0
        buckets: dict[int, list[DataPoint]] = {0: list(sorted_points)}
    else:
        interval = span / target
        buckets = defaultdict(list)
        for p in sorted_points:
            idx = int((p.date - start).total_seconds() // interval)
            # The last point sits exactly on the far edge.
            buckets[min(idx, target - 1)].append(p)

    out: list[DataPoint] = []
    for idx in sorted(buckets):
        members = buckets[idx]
        mean = sum(p.value for p in members) / len(members)
        value = 1.0 if mean >= 0.5 else 0.0
        out.append(
            DataPoint(
                date=start + timedelta(seconds=(idx + 0.5) * interval),
                value=value,
                metric_id=members[0].metric_id,
                raw_value=BooleanRaw(value == 1.0),
            )
        )
    return out


def sample_uniform(points: Sequence[DataPoint], target: int) -> list[DataPoint]:
    step = max(1, len(points) // max(1, target))
    return list(points[::step])


def sample_time_grid(points: Sequence[DataPoint], target: int) -> list[DataPoint]:
    if len(points) <= target:
        return list(points)
    if target < 2:
        return [points[0]]

    start = points[0].date
    times = [(p.date - start).total_seconds() for p in points]
    interval = times[-1] / (target - 1)

    out: list[DataPoint] = []
    seen = set()
    for i in range(target):
        idx = _nearest(times, i * interval)
        p = points[idx]
        if p.id in seen:
            continue
        seen.add(p.id)
        out.append(p)
    return out


def _nearest(times: list[float], t: float) -> int:
    # Earlier point wins a tie.
    right = bisect.bisect_left(times, t)
    if right <= 0:
        return 0
    if right >= len(times):
        return len(times) - 1
    left = right - 1
    return left if t - times[left] <= times[right] - t else right


def tricube(u: float) -> float:
    u = abs(u)
    if u >= 1:
        return 0.0
    return (1 - u**3) ** 3


def loess_smooth(points: Sequence[DataPoint], bandwidth: float) -> list[DataPoint]:
    """Tricube-weighted local average; dates are kept, only values change."""
    n = len(points)
    if n <= 2:
        return list(points)

    window_size = max(3, math.floor(n * bandwidth + 0.5))
    half = window_size // 2

    out: list[DataPoint] = []
    for i, point in enumerate(points):
        lo = max(0, i - half)
        hi = min(n - 1, i + half)
        window = points[lo : hi + 1]
        span = (points[hi].date - points[lo].date).total_seconds()

        weighted = 0.0
        total = 0.0
        for neighbor in window:
            dist = abs((point.date - neighbor.date).total_seconds())
            w = tricube(dist / span) if span > 0 else 1.0
            weighted += neighbor.value * w
            total += w

        value = weighted / total if total > 0 else point.value
        out.append(point.with_value(value))
    return out
