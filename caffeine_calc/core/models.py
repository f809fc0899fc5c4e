"""
Plain value types shared by the caffeine engine, the advisory rules and the API.

Times of day are `datetime.time`; they only become instants once combined with
an explicit reference date. Nothing here reads the wall clock.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import NamedTuple, Optional

from caffeine_calc.config import LB_TO_KG


class Sex(str, Enum):
    MALE = "male"
    FEMALE = "female"


class WeightUnit(str, Enum):
    METRIC = "metric"
    IMPERIAL = "imperial"


class AbsorptionModel(str, Enum):
    """How a gradual (sipped) intake enters the body."""

    LINEAR_LOADING = "linear_loading"
    DECAYING_LOADING = "decaying_loading"


def to_kilograms(weight: Optional[float], unit: WeightUnit = WeightUnit.METRIC) -> Optional[float]:
    """Convert a caller-supplied weight to kg (imperial input is in pounds)."""
    if weight is None:
        return None
    if WeightUnit(unit) is WeightUnit.IMPERIAL:
        return weight * LB_TO_KG
    return float(weight)


@dataclass(frozen=True)
class PersonalProfile:
    """Attributes that personalise the elimination half-life. Weight is always kg."""

    age: Optional[int] = None
    sex: Optional[Sex] = None
    weight_kg: Optional[float] = None

    @classmethod
    def from_input(cls, age: Optional[int], sex: Optional[str], weight: Optional[float],
                   unit: WeightUnit = WeightUnit.METRIC) -> "PersonalProfile":
        return cls(
            age=age,
            sex=Sex(sex) if sex else None,
            weight_kg=to_kilograms(weight, unit),
        )


@dataclass(frozen=True)
class Intake:
    """
    One caffeine intake. `end` is optional: missing or equal to `start` means
    the whole dose was taken at once; an `end` before `start` crosses midnight.
    """

    name: str = "Unnamed drink"
    dose_mg: Optional[float] = None
    start: Optional[time] = None
    end: Optional[time] = None

    @property
    def is_valid(self) -> bool:
        return self.start is not None and self.dose_mg is not None and self.dose_mg > 0

    def with_changes(self, **changes) -> "Intake":
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "dose_mg": self.dose_mg,
            "start": self.start.strftime("%H:%M") if self.start else None,
            "end": self.end.strftime("%H:%M") if self.end else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Intake":
        return cls(
            name=data.get("name") or "Unnamed drink",
            dose_mg=float(data["dose_mg"]) if data.get("dose_mg") is not None else None,
            start=parse_clock(data.get("start")),
            end=parse_clock(data.get("end")),
        )


class CurvePoint(NamedTuple):
    time: datetime
    mg: float


@dataclass
class LabeledCurve:
    """Per-intake curve for charting; never merged with other intakes."""

    label: str
    intake: Intake
    points: list[CurvePoint] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "intake": self.intake.to_dict(),
            "points": [{"time": p.time.isoformat(), "mg": round(p.mg, 3)} for p in self.points],
        }


# ── Time resolution ──────────────────────────────────────────────────

def parse_clock(value) -> Optional[time]:
    """Parse "HH:MM" (or pass through a `time`). Empty input gives None."""
    if value is None or value == "":
        return None
    if isinstance(value, time):
        return value
    hh, mm = str(value).strip().split(":")[:2]
    return time(int(hh), int(mm))


def format_clock(moment) -> str:
    """12-hour clock label, e.g. "3:05 PM"."""
    hour = moment.hour
    ampm = "PM" if hour >= 12 else "AM"
    display_hour = hour % 12 or 12
    return f"{display_hour}:{moment.minute:02d} {ampm}"


def day_start(reference_date: date) -> datetime:
    return datetime.combine(reference_date, time(0, 0))


def resolve_bedtime(bedtime: time, reference_date: date) -> datetime:
    """Bedtimes before noon belong to the night after the reference day."""
    resolved = datetime.combine(reference_date, bedtime)
    if bedtime.hour < 12:
        resolved += timedelta(days=1)
    return resolved


def intake_window(intake: Intake, reference_date: date) -> tuple[datetime, datetime]:
    """Start and end instants of an intake on the reference day."""
    start = datetime.combine(reference_date, intake.start)
    if intake.end is None:
        return start, start
    end = datetime.combine(reference_date, intake.end)
    if end < start:
        end += timedelta(days=1)
    return start, end
