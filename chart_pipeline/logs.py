from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .periods import LOCAL_TZ


class SymptomRating(BaseModel):
    symptom_id: int
    symptom_name: str
    rating: int
    is_binary: bool = False


class MedicationAdherence(BaseModel):
    medication_id: int
    medication_name: str
    was_taken: bool = False
    is_as_needed: bool = False
    notes: Optional[str] = None


class DailyLog(BaseModel):
    id: Optional[int] = None
    date: datetime
    mood: Optional[int] = None
    pain_level: Optional[int] = None
    energy_level: Optional[int] = None
    meals: list[str] = Field(default_factory=list)
    activities: list[str] = Field(default_factory=list)
    medications_taken: list[str] = Field(default_factory=list)
    notes: Optional[str] = None
    is_flare_day: bool = False
    weather: Optional[str] = None
    symptom_ratings: list[SymptomRating] = Field(default_factory=list)
    medication_adherence: list[MedicationAdherence] = Field(default_factory=list)

    @field_validator("date")
    @classmethod
    def _assume_local_tz(cls, v: datetime) -> datetime:
        # Naive timestamps are local wall-clock time.
        if v.tzinfo is None:
            return v.replace(tzinfo=LOCAL_TZ)
        return v
