from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from .cache import LogCache
from .errors import UnknownMetricError
from .logs import DailyLog, MedicationAdherence
from .periods import TimePeriod
from .points import (
    BooleanRaw,
    CategoryRaw,
    DataPoint,
    LabelListRaw,
    MetricDataType,
    NumericRaw,
)


class MetricCategory(str, Enum):
    CORE_HEALTH = "core_health"
    SYMPTOMS = "symptoms"
    MEDICATIONS = "medications"
    ACTIVITIES = "activities"
    MEALS = "meals"
    ENVIRONMENTAL = "environmental"


def _round_half_up(v: float) -> int:
    return int(math.floor(v + 0.5))


def _slug(name: str) -> str:
    return name.strip().lower().replace(" ", "_")


class MetricProvider:
    """One tracked metric: how to pull its points out of a log and label its values."""

    id: str
    display_name: str
    description: str = ""
    category: MetricCategory = MetricCategory.CORE_HEALTH
    data_type: MetricDataType = MetricDataType.CONTINUOUS
    value_range: Optional[tuple[float, float]] = None

    def point_for(self, log: DailyLog) -> Optional[DataPoint]:
        raise NotImplementedError

    def has_data(self, log: DailyLog) -> bool:
        return self.point_for(log) is not None

    def extract_points(self, logs: Iterable[DailyLog]) -> list[DataPoint]:
        out: list[DataPoint] = []
        for log in logs:
            p = self.point_for(log)
            if p is not None:
                out.append(p)
        return out

    def format_value(self, value: float) -> str:
        return str(_round_half_up(value))


class ScaleMetric(MetricProvider):
    """0-10 self-rating stored directly on the log."""

    value_range = (0.0, 10.0)

    def __init__(self, metric_id: str, display_name: str, field: str, description: str) -> None:
        self.id = metric_id
        self.display_name = display_name
        self.field = field
        self.description = description

    def point_for(self, log: DailyLog) -> Optional[DataPoint]:
        v = getattr(log, self.field)
        if v is None:
            return None
        return DataPoint(date=log.date, value=float(v), metric_id=self.id, raw_value=NumericRaw(float(v)))


class FlareDayMetric(MetricProvider):
    id = "flare_day"
    display_name = "Flare Days"
    description = "Frequency of flare-up days"
    data_type = MetricDataType.BINARY
    value_range = (0.0, 1.0)

    def point_for(self, log: DailyLog) -> Optional[DataPoint]:
        # Every log counts: non-flare days are tracked as 0.
        return DataPoint(
            date=log.date,
            value=1.0 if log.is_flare_day else 0.0,
            metric_id=self.id,
            raw_value=BooleanRaw(log.is_flare_day),
        )

    def format_value(self, value: float) -> str:
        return "✅" if value == 1.0 else "❌"


class MedicationAdherenceMetric(MetricProvider):
    id = "medication_adherence"
    display_name = "Medication Adherence"
    description = "Percentage of medications taken as prescribed"
    category = MetricCategory.MEDICATIONS
    data_type = MetricDataType.PERCENTAGE
    value_range = (0.0, 100.0)

    def point_for(self, log: DailyLog) -> Optional[DataPoint]:
        rate = adherence_rate(log.medication_adherence)
        if rate is None:
            return None
        taken = tuple(m.medication_name for m in log.medication_adherence if m.was_taken)
        return DataPoint(date=log.date, value=rate, metric_id=self.id, raw_value=LabelListRaw(taken))

    def format_value(self, value: float) -> str:
        return f"{value:.0f}%"


def adherence_rate(adherence: list[MedicationAdherence]) -> Optional[float]:
    # As-needed medications never count against adherence.
    regular = [m for m in adherence if not m.is_as_needed]
    if not regular:
        return None
    taken = sum(1 for m in regular if m.was_taken)
    return taken / len(regular) * 100.0


WEATHER_SCALE = {
    "stormy": 1.0,
    "rainy": 2.0,
    "gloomy": 3.0,
    "cloudy": 4.0,
    "snow": 5.0,
    "sunny": 6.0,
}
WEATHER_UNKNOWN = 3.5


class WeatherMetric(MetricProvider):
    id = "weather"
    display_name = "Weather"
    description = "Daily weather conditions (clear to stormy scale)"
    category = MetricCategory.ENVIRONMENTAL
    data_type = MetricDataType.CATEGORICAL
    value_range = (1.0, 6.0)

    def point_for(self, log: DailyLog) -> Optional[DataPoint]:
        if log.weather is None:
            return None
        value = WEATHER_SCALE.get(log.weather.strip().lower(), WEATHER_UNKNOWN)
        return DataPoint(date=log.date, value=value, metric_id=self.id, raw_value=CategoryRaw(log.weather))

    def format_value(self, value: float) -> str:
        for label, v in WEATHER_SCALE.items():
            if v == value:
                return label.capitalize()
        return "Mixed"


class LabelCountMetric(MetricProvider):
    """Number of entries in a list field (activities, meals) per day."""

    data_type = MetricDataType.COUNT

    def __init__(self, metric_id: str, display_name: str, field: str, category: MetricCategory) -> None:
        self.id = metric_id
        self.display_name = display_name
        self.field = field
        self.category = category
        self.description = f"Number of {field} logged per day"

    def point_for(self, log: DailyLog) -> Optional[DataPoint]:
        labels = getattr(log, self.field)
        return DataPoint(date=log.date, value=float(len(labels)), metric_id=self.id, raw_value=LabelListRaw(tuple(labels)))

    def has_data(self, log: DailyLog) -> bool:
        return bool(getattr(log, self.field))

    def format_value(self, value: float) -> str:
        return str(int(value))


class SymptomMetric(MetricProvider):
    category = MetricCategory.SYMPTOMS

    def __init__(self, symptom_name: str, is_binary: bool = False) -> None:
        self.symptom_name = symptom_name
        self.is_binary = is_binary
        self.id = f"symptom_{_slug(symptom_name)}"
        self.display_name = symptom_name
        if is_binary:
            self.data_type = MetricDataType.BINARY
            self.value_range = (0.0, 1.0)
            self.description = f"Days with {symptom_name.lower()}"
        else:
            self.value_range = (1.0, 10.0)
            self.description = f"1-10 scale tracking {symptom_name.lower()} severity"

    def point_for(self, log: DailyLog) -> Optional[DataPoint]:
        for rating in log.symptom_ratings:
            if rating.symptom_name == self.symptom_name:
                v = float(rating.rating)
                return DataPoint(date=log.date, value=v, metric_id=self.id, raw_value=NumericRaw(v))
        return None

    def format_value(self, value: float) -> str:
        if self.is_binary:
            return "Yes" if value >= 0.5 else "No"
        return super().format_value(value)


class PresenceMetric(MetricProvider):
    """Yes/no per log: was the named medication/activity/meal in the given list."""

    data_type = MetricDataType.BINARY
    value_range = (0.0, 1.0)

    def __init__(
        self,
        prefix: str,
        name: str,
        field: str,
        category: MetricCategory,
        yes_label: str,
        no_label: str,
    ) -> None:
        self.name = name
        self.field = field
        self.category = category
        self.id = f"{prefix}_{_slug(name)}"
        self.display_name = name
        self.description = f"Days when {name} was {yes_label.lower()}"
        self.yes_label = yes_label
        self.no_label = no_label

    def point_for(self, log: DailyLog) -> Optional[DataPoint]:
        present = self.name in getattr(log, self.field)
        return DataPoint(
            date=log.date,
            value=1.0 if present else 0.0,
            metric_id=self.id,
            raw_value=BooleanRaw(present),
        )

    def has_data(self, log: DailyLog) -> bool:
        return self.name in getattr(log, self.field)

    def format_value(self, value: float) -> str:
        return self.yes_label if value == 1.0 else self.no_label


def static_providers() -> list[MetricProvider]:
    return [
        ScaleMetric("mood", "Mood", "mood", "1-10 scale tracking daily mood"),
        ScaleMetric("pain_level", "Pain Level", "pain_level", "1-10 scale tracking pain intensity"),
        ScaleMetric("energy_level", "Energy Level", "energy_level", "1-10 scale tracking energy levels"),
        FlareDayMetric(),
        MedicationAdherenceMetric(),
        WeatherMetric(),
        LabelCountMetric("activity_count", "Activity Count", "activities", MetricCategory.ACTIVITIES),
        LabelCountMetric("meal_count", "Meal Count", "meals", MetricCategory.MEALS),
    ]


@dataclass(frozen=True)
class MetricSummary:
    id: str
    display_name: str
    description: str
    category: MetricCategory
    data_type: MetricDataType
    data_point_count: int
    last_value: Optional[str]

    @property
    def is_available(self) -> bool:
        return self.data_point_count > 0


class MetricRegistry:
    """Fixed core metrics plus per-name metrics discovered from the logged data."""

    def __init__(self, cache: LogCache) -> None:
        self.cache = cache
        self._static = static_providers()

    def all_providers(self) -> list[MetricProvider]:
        providers: list[MetricProvider] = list(self._static)
        for name, is_binary in sorted(self.cache.available_symptoms().items()):
            providers.append(SymptomMetric(name, is_binary=is_binary))
        for name in sorted(self.cache.available_medications()):
            providers.append(
                PresenceMetric("medication", name, "medications_taken", MetricCategory.MEDICATIONS, "Taken", "Not taken")
            )
        for name in sorted(self.cache.available_activities()):
            providers.append(PresenceMetric("activity", name, "activities", MetricCategory.ACTIVITIES, "Done", "Not done"))
        for name in sorted(self.cache.available_meals()):
            providers.append(PresenceMetric("meal", name, "meals", MetricCategory.MEALS, "Eaten", "Not eaten"))
        return providers

    def get(self, metric_id: str) -> MetricProvider:
        for p in self._static:
            if p.id == metric_id:
                return p
        for p in self.all_providers():
            if p.id == metric_id:
                return p
        raise UnknownMetricError(metric_id)

    def summaries(self, period: TimePeriod = TimePeriod.MONTH) -> list[MetricSummary]:
        """Summaries of metrics that have data in the period."""
        providers = self.all_providers()
        logs = self.cache.filter_by_period(period)

        out: list[MetricSummary] = []
        for p in providers:
            count = sum(1 for log in logs if p.has_data(log))
            if count == 0:
                continue
            points = p.extract_points(logs)
            last = max(points, key=lambda x: x.date) if points else None
            out.append(
                MetricSummary(
                    id=p.id,
                    display_name=p.display_name,
                    description=p.description,
                    category=p.category,
                    data_type=p.data_type,
                    data_point_count=count,
                    last_value=p.format_value(last.value) if last else None,
                )
            )
        return out
