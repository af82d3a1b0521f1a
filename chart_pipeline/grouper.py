from __future__ import annotations

from datetime import datetime, tzinfo
from typing import Callable, Optional, Sequence

from .periods import start_of_day
from .points import DataPoint, GroupedDataPoint


def group_by_day(
    points: Sequence[DataPoint],
    formatter: Callable[[float], str],
    tz: Optional[tzinfo] = None,
) -> list[GroupedDataPoint]:
    """Count points per (day, formatted value) for stacked and legend charts.

    Grouping is on the formatted label, so distinct raw values that format the
    same on one day land in one bucket. The first value seen for a bucket is
    kept as its numeric value (used for colour mapping).
    """
    counts: dict[tuple[datetime, str], list] = {}
    for p in points:
        key = (start_of_day(p.date, tz), formatter(p.value))
        entry = counts.get(key)
        if entry is None:
            counts[key] = [1, p.value]
        else:
            entry[0] += 1

    out = [
        GroupedDataPoint(date=day, count=count, value=label, numeric_value=numeric)
        for (day, label), (count, numeric) in counts.items()
    ]
    out.sort(key=lambda g: (g.date, g.value))
    return out
