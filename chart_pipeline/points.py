from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Union


# Raw payloads carried next to each point, one shape per metric family.


@dataclass(frozen=True)
class NumericRaw:
    value: float


@dataclass(frozen=True)
class BooleanRaw:
    value: bool


@dataclass(frozen=True)
class CategoryRaw:
    label: str


@dataclass(frozen=True)
class LabelListRaw:
    labels: tuple[str, ...]


@dataclass(frozen=True)
class BucketRaw:
    """Raw values of every point folded into an aggregated bucket."""

    items: tuple[Optional["RawValue"], ...]


RawValue = Union[NumericRaw, BooleanRaw, CategoryRaw, LabelListRaw, BucketRaw]


@dataclass(frozen=True)
class DataPoint:
    date: datetime
    value: float
    metric_id: str
    raw_value: Optional[RawValue] = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    def __post_init__(self) -> None:
        value = float(self.value)
        if not math.isfinite(value):
            raise ValueError(f"DataPoint value must be finite, got {self.value!r}")
        object.__setattr__(self, "value", value)

    def with_value(self, value: float) -> "DataPoint":
        # Same date/raw/metric, fresh identity.
        return DataPoint(date=self.date, value=value, metric_id=self.metric_id, raw_value=self.raw_value)


class MetricDataType(str, Enum):
    CONTINUOUS = "continuous"
    BINARY = "binary"
    CATEGORICAL = "categorical"
    COUNT = "count"
    PERCENTAGE = "percentage"
    CUSTOM = "custom"


class AggregationMethod(str, Enum):
    AVERAGE = "average"
    SUM = "sum"
    FREQUENCY = "frequency"  # percent of non-zero values
    MODE = "mode"
    LATEST = "latest"


class AggregationLevel(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @property
    def rank(self) -> int:
        return _LEVEL_ORDER.index(self)

    def escalate(self) -> "AggregationLevel":
        return _LEVEL_ORDER[min(self.rank + 1, len(_LEVEL_ORDER) - 1)]


_LEVEL_ORDER = (AggregationLevel.DAILY, AggregationLevel.WEEKLY, AggregationLevel.MONTHLY)


@dataclass(frozen=True)
class AggregationConfig:
    max_data_points: int
    method: AggregationMethod
    # Read by renderers; the aggregator never fills empty days itself.
    preserve_zeros: bool = False

    @classmethod
    def default(cls) -> "AggregationConfig":
        return cls(max_data_points=50, method=AggregationMethod.AVERAGE, preserve_zeros=False)


@dataclass(frozen=True)
class AggregatedDataInfo:
    original_count: int
    aggregated_count: int
    aggregation_level: AggregationLevel
    method: AggregationMethod

    @property
    def was_aggregated(self) -> bool:
        return self.aggregated_count < self.original_count

    @property
    def reduction_percentage(self) -> float:
        if self.original_count <= 0:
            return 0.0
        return (self.original_count - self.aggregated_count) / self.original_count * 100.0


@dataclass(frozen=True)
class GroupedDataPoint:
    date: datetime
    count: int
    value: str
    numeric_value: float
