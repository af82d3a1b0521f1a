from __future__ import annotations


class ChartPipelineError(Exception):
    """Base class for errors raised by the chart data pipeline."""


class UnknownMetricError(ChartPipelineError, LookupError):
    def __init__(self, metric_id: str) -> None:
        super().__init__(f"Unknown metric: {metric_id}")
        self.metric_id = metric_id
