from __future__ import annotations

from typing import Optional

from . import aggregator, smoother, settings
from .cache import LogCache
from .grouper import group_by_day
from .metrics import MetricProvider, MetricRegistry
from .periods import TimePeriod
from .points import AggregatedDataInfo, AggregationConfig, DataPoint, GroupedDataPoint


class ChartDataService:
    """What chart renderers call: metric points for a period, raw or reduced."""

    def __init__(self, cache: LogCache, registry: Optional[MetricRegistry] = None) -> None:
        self.cache = cache
        self.registry = registry or MetricRegistry(cache)

    def provider(self, metric_id: str) -> MetricProvider:
        return self.registry.get(metric_id)

    def get_points(self, metric_id: str, period: TimePeriod) -> list[DataPoint]:
        provider = self.registry.get(metric_id)
        return provider.extract_points(self.cache.filter_by_period(period))

    def aggregation_config(
        self,
        provider: MetricProvider,
        data_count: int,
        max_points: Optional[int] = None,
    ) -> AggregationConfig:
        base = aggregator.optimal_config(provider.data_type, data_count)
        return AggregationConfig(
            max_data_points=settings.DEFAULT_MAX_DATA_POINTS if max_points is None else max_points,
            method=base.method,
            preserve_zeros=base.preserve_zeros,
        )

    def get_aggregated_points(
        self,
        metric_id: str,
        period: TimePeriod,
        max_points: Optional[int] = None,
    ) -> tuple[list[DataPoint], AggregatedDataInfo]:
        provider = self.registry.get(metric_id)
        points = provider.extract_points(self.cache.filter_by_period(period))
        config = self.aggregation_config(provider, len(points), max_points)
        return aggregator.aggregate(points, period, config)

    def get_smoothed_points(self, metric_id: str, period: TimePeriod) -> list[DataPoint]:
        provider = self.registry.get(metric_id)
        points = provider.extract_points(self.cache.filter_by_period(period))
        return smoother.process(points, period, provider.data_type)

    def get_grouped_points(self, metric_id: str, period: TimePeriod) -> list[GroupedDataPoint]:
        provider = self.registry.get(metric_id)
        points = provider.extract_points(self.cache.filter_by_period(period))
        return group_by_day(points, provider.format_value)
