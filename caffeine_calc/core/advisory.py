"""
Advisory rules on top of the caffeine engine.

  - Bedtime zone:   < 30 mg safe, 30-80 mg caution, > 80 mg high risk
  - Daily total:    < 600 mg none, 600-999 mg caution, >= 1000 mg danger
  - Typo suspicion: a single dose > 5000 mg probably has two extra digits

All advisories are informational; nothing here blocks a calculation.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from typing import Iterable, Optional

from caffeine_calc.config import (
    CAUTION_CEILING_MG,
    DAILY_CAUTION_MG,
    DAILY_DANGER_MG,
    DAILY_GUIDELINE_MG,
    SAFE_SLEEP_THRESHOLD_MG,
    STEP_MINUTES,
    TYPO_DOSE_MG,
)
from caffeine_calc.core.caffeine_engine import (
    adjusted_half_life,
    bedtime_position_hours,
    chart_horizon_hours,
    concentration_at,
    individual_cutoffs,
)
from caffeine_calc.core.models import AbsorptionModel, Intake, PersonalProfile, resolve_bedtime


# ── Bedtime zone ─────────────────────────────────────────────────────

class BedtimeZone(str, Enum):
    SAFE = "safe"
    CAUTION = "caution"
    HIGH_RISK = "high_risk"


_ZONE_MESSAGES = {
    BedtimeZone.SAFE: "Safe Zone - Great for sleep quality!",
    BedtimeZone.CAUTION: "Caution Zone - May affect sleep quality",
    BedtimeZone.HIGH_RISK: "High Risk Zone - Likely to disrupt sleep",
}


def bedtime_zone(level_mg: float) -> BedtimeZone:
    if level_mg < SAFE_SLEEP_THRESHOLD_MG:
        return BedtimeZone.SAFE
    if level_mg <= CAUTION_CEILING_MG:
        return BedtimeZone.CAUTION
    return BedtimeZone.HIGH_RISK


def zone_message(zone: BedtimeZone) -> str:
    return _ZONE_MESSAGES[zone]


# ── Daily total ──────────────────────────────────────────────────────

class DailyWarning(str, Enum):
    NONE = "none"
    CAUTION = "caution"
    DANGER = "danger"


def daily_total(intakes: Iterable[Intake]) -> float:
    """Sum of all valid doses logged for the day."""
    return sum(float(i.dose_mg) for i in intakes if i.is_valid)


def daily_warning(total_mg: float) -> DailyWarning:
    if total_mg >= DAILY_DANGER_MG:
        return DailyWarning.DANGER
    if total_mg >= DAILY_CAUTION_MG:
        return DailyWarning.CAUTION
    return DailyWarning.NONE


def above_daily_guideline(total_mg: float) -> bool:
    """History flag: at or above the common 400 mg/day guideline."""
    return total_mg >= DAILY_GUIDELINE_MG


# ── Typo suspicion ───────────────────────────────────────────────────

@dataclass(frozen=True)
class TypoSuggestion:
    name: str
    dose_mg: float
    suggested_mg: int

    @property
    def message(self) -> str:
        return f"Did you mean {self.suggested_mg} mg instead of {self.dose_mg:g} mg?"


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def typo_suspect(intakes: Iterable[Intake]) -> Optional[TypoSuggestion]:
    """First intake with an implausible dose, with the dose it probably meant."""
    for intake in intakes:
        dose = intake.dose_mg or 0.0
        if dose > TYPO_DOSE_MG:
            return TypoSuggestion(intake.name, dose, _round_half_up(dose / 100))
    return None


# ── Combined advisory ────────────────────────────────────────────────

@dataclass(frozen=True)
class Advisory:
    type: str
    message: str

    def to_dict(self) -> dict:
        return {"type": self.type, "message": self.message}


def advisory(intakes: Iterable[Intake]) -> Optional[Advisory]:
    """Single message for the day. A suspected typo wins over the daily warning."""
    intakes = list(intakes)
    typo = typo_suspect(intakes)
    if typo is not None:
        return Advisory("typo", typo.message)

    total = daily_total(intakes)
    warning = daily_warning(total)
    if warning is DailyWarning.CAUTION:
        return Advisory(
            "caution",
            f"You've logged {total:g} mg today - higher than the typical safe "
            f"daily guideline ({DAILY_GUIDELINE_MG:g} mg).",
        )
    if warning is DailyWarning.DANGER:
        return Advisory(
            "danger",
            "Extremely high caffeine intake can be dangerous. Please double-check this entry.",
        )
    return None


# ── Bedtime report (composite) ───────────────────────────────────────

def compute_bedtime_report(
    profile: PersonalProfile,
    intakes: list[Intake],
    bedtime: time,
    reference_date: date,
    threshold_mg: float = SAFE_SLEEP_THRESHOLD_MG,
    now: Optional[datetime] = None,
    step_minutes: int = STEP_MINUTES,
    model: Optional[AbsorptionModel] = None,
) -> dict:
    """
    Everything the calculator shows after a submit: half-life, mg left at
    bedtime per drink and in total, zone, per-drink cutoffs and the advisory.
    """
    half_life = adjusted_half_life(profile)
    valid = [i for i in intakes if i.is_valid]
    bed = resolve_bedtime(bedtime, reference_date)

    contributions = []
    total = 0.0
    for intake in valid:
        mg = concentration_at(intake, half_life, bed, reference_date, step_minutes, model)
        total += mg
        contributions.append({"name": intake.name, "dose_mg": intake.dose_mg, "mg_at_bedtime": round(mg, 3)})

    zone = bedtime_zone(total)
    cutoffs = individual_cutoffs(valid, half_life, bedtime, reference_date, threshold_mg,
                                 not_before=now, step_minutes=step_minutes, model=model)
    day_total = daily_total(valid)
    note = advisory(valid)
    horizon = chart_horizon_hours(valid, bedtime)

    return {
        "date": reference_date.isoformat(),
        "bedtime": bed.isoformat(),
        "half_life_h": round(half_life, 2),
        "total_at_bedtime_mg": round(total, 2),
        "zone": zone.value,
        "zone_message": zone_message(zone),
        "threshold_mg": threshold_mg,
        "contributions": contributions,
        "cutoffs": [c.to_dict() for c in cutoffs],
        "daily_total_mg": day_total,
        "daily_warning": daily_warning(day_total).value,
        "advisory": note.to_dict() if note else None,
        "horizon_hours": horizon,
        "bedtime_position_h": bedtime_position_hours(bedtime, horizon),
    }
