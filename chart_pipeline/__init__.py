"""Cached, reduced health-metric series for chart renderers."""

from .cache import LogCache
from .periods import TimePeriod
from .points import (
    AggregatedDataInfo,
    AggregationConfig,
    AggregationLevel,
    AggregationMethod,
    DataPoint,
    GroupedDataPoint,
    MetricDataType,
)
from .service import ChartDataService
from .source import LogSource, MemoryLogSource, SqliteLogSource

__all__ = [
    "AggregatedDataInfo",
    "AggregationConfig",
    "AggregationLevel",
    "AggregationMethod",
    "ChartDataService",
    "DataPoint",
    "GroupedDataPoint",
    "LogCache",
    "LogSource",
    "MemoryLogSource",
    "MetricDataType",
    "SqliteLogSource",
    "TimePeriod",
]
