"""
Caffeine Engine: personalised half-life, single-drink curves, superposition
of all drinks, and the inverse "latest safe intake" solver.

Half-life (hours):
  H = 5.0 + age_adj + weight_adj + sex_adj,  floored at 1.0
    age  > 50: +1.0   30-50: +0.5
    kg   < 60: +0.5   > 90:  -0.5
    female:    +0.5

Single drink, t = hours since the first sip:
  instantaneous:     C(t) = D * 0.5^(t / H)
  linear_loading:    C(t) = D * t / d                 (0 <= t <= d)
                     C(t) = D * 0.5^((t - d) / H)     (t > d)
  decaying_loading:  C_i  = C_(i-1) * 0.5^(dt / H) + (D / d) * overlap(step_i, [0, d])

All curves live on a fixed grid (start + i * step). A query between two grid
points holds the last sample at or before it, so a point query and a sampled
series always agree exactly.

Superposition (Heaviside):
  C_total(t) = SUM_i C_i(t - tau_i) * H(t - tau_i)

Cutoff, solving allowed = D * 0.5^(h / H) for h:
  h = H * log2(D / allowed),  cutoff = bedtime - h
"""

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Iterable, Optional

from caffeine_calc.config import (
    ABSORPTION_MODEL,
    BASE_HALF_LIFE_H,
    CHART_HORIZON_EXTENDED_H,
    CHART_HORIZON_H,
    INSTANT_WINDOW_MINUTES,
    MIN_HALF_LIFE_H,
    SAFE_SLEEP_THRESHOLD_MG,
    STEP_MINUTES,
)
from caffeine_calc.core.models import (
    AbsorptionModel,
    CurvePoint,
    Intake,
    LabeledCurve,
    PersonalProfile,
    Sex,
    day_start,
    format_clock,
    intake_window,
    resolve_bedtime,
)

log = logging.getLogger("caffeine.engine")


# ── Half-life personalisation ────────────────────────────────────────

def adjusted_half_life(profile: PersonalProfile) -> float:
    """
    Individual caffeine half-life in hours.
    Missing profile fields contribute no adjustment.
    """
    half_life = BASE_HALF_LIFE_H

    age = profile.age
    if age is not None:
        if age > 50:
            half_life += 1.0
        elif 30 <= age <= 50:
            half_life += 0.5

    weight = profile.weight_kg
    if weight is not None:
        if weight < 60:
            half_life += 0.5
        elif weight > 90:
            half_life -= 0.5

    if profile.sex == Sex.FEMALE:
        half_life += 0.5

    return max(MIN_HALF_LIFE_H, half_life)


# ── Single-drink curve ───────────────────────────────────────────────

def default_model() -> AbsorptionModel:
    return AbsorptionModel(ABSORPTION_MODEL)


def _clamp_step(step_minutes: int) -> int:
    return max(1, min(60, int(step_minutes)))


def _duration_hours(intake: Intake, reference_date: date) -> float:
    """Drinking window length in hours; 0 when it counts as instantaneous."""
    start, end = intake_window(intake, reference_date)
    minutes = (end - start).total_seconds() / 60.0
    if minutes <= INSTANT_WINDOW_MINUTES:
        return 0.0
    return minutes / 60.0


def _sample(dose: float, half_life: float, duration_h: float, index: int,
            step_h: float, model: AbsorptionModel) -> float:
    """Concentration at grid index `index` (t = index * step_h hours)."""
    t = index * step_h
    if duration_h <= 0:
        return dose * math.pow(0.5, t / half_life)

    if model is AbsorptionModel.LINEAR_LOADING:
        if t <= duration_h:
            return dose * t / duration_h
        return dose * math.pow(0.5, (t - duration_h) / half_life)

    # Decaying loading has no closed form on the grid; step it forward.
    rate = dose / duration_h
    step_decay = math.pow(0.5, step_h / half_life)
    level = 0.0
    for i in range(1, index + 1):
        lo, hi = (i - 1) * step_h, i * step_h
        overlap = max(0.0, min(hi, duration_h) - lo)
        level = level * step_decay + rate * overlap
    return level


def _grid_index(elapsed: timedelta, step_minutes: int) -> int:
    return int(elapsed.total_seconds() // (step_minutes * 60))


def concentration_at(
    intake: Intake,
    half_life: float,
    target_time: datetime,
    reference_date: date,
    step_minutes: int = STEP_MINUTES,
    model: Optional[AbsorptionModel] = None,
) -> float:
    """
    mg left from one intake at `target_time`.
    Holds the last grid sample at or before the target; 0 before the first sip
    and for intakes without a start time or a positive dose.
    """
    if not intake.is_valid:
        return 0.0
    step_minutes = _clamp_step(step_minutes)
    start, _ = intake_window(intake, reference_date)
    elapsed = target_time - start
    if elapsed < timedelta(0):
        return 0.0
    return _sample(
        float(intake.dose_mg),
        max(MIN_HALF_LIFE_H, half_life),
        _duration_hours(intake, reference_date),
        _grid_index(elapsed, step_minutes),
        step_minutes / 60.0,
        model or default_model(),
    )


def _levels(
    intake: Intake,
    half_life: float,
    reference_date: date,
    n_steps: int,
    step_minutes: int,
    model: AbsorptionModel,
) -> list[float]:
    """Grid samples 0..n_steps-1 of one intake, in a single forward pass."""
    half_life = max(MIN_HALF_LIFE_H, half_life)
    dose = float(intake.dose_mg) if intake.dose_mg and intake.dose_mg > 0 else 0.0
    duration_h = _duration_hours(intake, reference_date)
    step_h = step_minutes / 60.0

    if model is AbsorptionModel.DECAYING_LOADING and duration_h > 0:
        rate = dose / duration_h
        step_decay = math.pow(0.5, step_h / half_life)
        levels = []
        level = 0.0
        for i in range(n_steps):
            if i > 0:
                lo, hi = (i - 1) * step_h, i * step_h
                overlap = max(0.0, min(hi, duration_h) - lo)
                level = level * step_decay + rate * overlap
            levels.append(level)
        return levels

    return [_sample(dose, half_life, duration_h, i, step_h, model) for i in range(n_steps)]


def dose_curve(
    intake: Intake,
    half_life: float,
    reference_date: date,
    horizon_hours: float = CHART_HORIZON_H,
    step_minutes: int = STEP_MINUTES,
    model: Optional[AbsorptionModel] = None,
) -> list[CurvePoint]:
    """
    Sampled curve of one intake from its start time across `horizon_hours`.
    Empty without a start time; all zeros for a non-positive dose.
    """
    if intake.start is None:
        return []
    step_minutes = _clamp_step(step_minutes)
    start, _ = intake_window(intake, reference_date)
    n_steps = int(horizon_hours * 60 // step_minutes)
    levels = _levels(intake, half_life, reference_date, n_steps, step_minutes,
                     model or default_model())
    return [
        CurvePoint(start + timedelta(minutes=i * step_minutes), mg)
        for i, mg in enumerate(levels)
    ]


def _levels_on_axis(
    intake: Intake,
    half_life: float,
    reference_date: date,
    axis: list[datetime],
    step_minutes: int,
    model: AbsorptionModel,
) -> list[float]:
    """One intake's held grid samples at each axis instant; 0 before the first sip."""
    start, _ = intake_window(intake, reference_date)
    indices = [_grid_index(t - start, step_minutes) if t >= start else None for t in axis]
    n_steps = max((i for i in indices if i is not None), default=-1) + 1
    levels = _levels(intake, half_life, reference_date, n_steps, step_minutes, model)
    return [levels[i] if i is not None else 0.0 for i in indices]


# ── Superposition across drinks ──────────────────────────────────────

def total_at(
    intakes: Iterable[Intake],
    half_life: float,
    target_time: datetime,
    reference_date: date,
    step_minutes: int = STEP_MINUTES,
    model: Optional[AbsorptionModel] = None,
) -> float:
    """
    Sum of every valid intake's level at `target_time`.
    Intakes missing a dose or a start time are skipped.
    """
    total = 0.0
    for intake in intakes:
        if not intake.is_valid:
            continue
        total += concentration_at(intake, half_life, target_time, reference_date,
                                  step_minutes, model)
    return total


def chart_horizon_hours(intakes: Iterable[Intake], bedtime: Optional[time]) -> int:
    """24 h, or 48 h when the bedtime or any drinking window spills into tomorrow."""
    if bedtime is not None and bedtime.hour < 12:
        return CHART_HORIZON_EXTENDED_H
    for intake in intakes:
        if intake.end is not None and intake.end.hour < 12:
            return CHART_HORIZON_EXTENDED_H
    return CHART_HORIZON_H


def bedtime_position_hours(bedtime: time, horizon_hours: int) -> float:
    """X position of the bedtime marker, in hours since the reference midnight."""
    position = bedtime.hour + bedtime.minute / 60.0
    if horizon_hours > 24 and bedtime.hour < 12:
        position += 24
    return position


def time_axis(reference_date: date, horizon_hours: float,
              step_minutes: int = STEP_MINUTES) -> list[datetime]:
    """Common chart axis starting at the reference day's midnight."""
    step_minutes = _clamp_step(step_minutes)
    start = day_start(reference_date)
    n_steps = int(horizon_hours * 60 // step_minutes)
    return [start + timedelta(minutes=i * step_minutes) for i in range(n_steps)]


def curve_label(intake: Intake) -> str:
    return f"{intake.name} ({intake.dose_mg:g}mg)"


def series(
    intakes: Iterable[Intake],
    half_life: float,
    reference_date: date,
    horizon_hours: float = CHART_HORIZON_H,
    step_minutes: int = STEP_MINUTES,
    model: Optional[AbsorptionModel] = None,
) -> list[LabeledCurve]:
    """One curve per valid intake on the shared axis; curves are not combined."""
    step_minutes = _clamp_step(step_minutes)
    model = model or default_model()
    axis = time_axis(reference_date, horizon_hours, step_minutes)
    curves = []
    for intake in intakes:
        if not intake.is_valid:
            continue
        levels = _levels_on_axis(intake, half_life, reference_date, axis, step_minutes, model)
        points = [CurvePoint(t, mg) for t, mg in zip(axis, levels)]
        curves.append(LabeledCurve(label=curve_label(intake), intake=intake, points=points))
    return curves


def total_series(
    intakes: Iterable[Intake],
    half_life: float,
    reference_date: date,
    horizon_hours: float = CHART_HORIZON_H,
    step_minutes: int = STEP_MINUTES,
    model: Optional[AbsorptionModel] = None,
) -> list[CurvePoint]:
    """
    Total level on the shared axis: every valid intake's sample at each axis
    instant, summed in intake order (same result as `total_at` per point).
    """
    step_minutes = _clamp_step(step_minutes)
    model = model or default_model()
    axis = time_axis(reference_date, horizon_hours, step_minutes)
    totals = [0.0] * len(axis)
    for intake in intakes:
        if not intake.is_valid:
            continue
        levels = _levels_on_axis(intake, half_life, reference_date, axis, step_minutes, model)
        for idx, mg in enumerate(levels):
            totals[idx] += mg
    return [CurvePoint(t, mg) for t, mg in zip(axis, totals)]


# ── Latest safe intake time ──────────────────────────────────────────

class CutoffStatus(str, Enum):
    CUTOFF = "cutoff"
    ANY_TIME = "any_time"
    OVER_LIMIT = "over_limit"
    PASSED = "passed"


_STATUS_LABELS = {
    CutoffStatus.ANY_TIME: "Any time today",
    CutoffStatus.OVER_LIMIT: "Already over limit",
}


@dataclass(frozen=True)
class CutoffResult:
    status: CutoffStatus
    cutoff: Optional[datetime] = None
    hours_before_bed: Optional[float] = None

    @property
    def label(self) -> str:
        if self.status in _STATUS_LABELS:
            return _STATUS_LABELS[self.status]
        text = format_clock(self.cutoff)
        if self.status is CutoffStatus.PASSED:
            return f"{text} (passed)"
        return text

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "label": self.label,
            "cutoff": self.cutoff.isoformat() if self.cutoff else None,
            "hours_before_bed": (
                round(self.hours_before_bed, 3) if self.hours_before_bed is not None else None
            ),
        }


def latest_safe_time(
    bedtime: time,
    half_life: float,
    dose: float,
    allowed_mg: float,
    reference_date: date,
    not_before: Optional[datetime] = None,
) -> CutoffResult:
    """
    Latest start time for `dose` that leaves at most `allowed_mg` at bedtime.

    The cutoff is always before bedtime. When it lands before `not_before`
    (default: the reference day's midnight; pass "now" for a live answer) the
    result is PASSED and still carries the computed instant.
    """
    if allowed_mg <= 0:
        return CutoffResult(CutoffStatus.OVER_LIMIT)
    if dose <= allowed_mg:
        return CutoffResult(CutoffStatus.ANY_TIME)

    half_life = max(MIN_HALF_LIFE_H, half_life)
    hours_before_bed = half_life * math.log2(dose / allowed_mg)
    cutoff = resolve_bedtime(bedtime, reference_date) - timedelta(hours=hours_before_bed)

    floor = not_before if not_before is not None else day_start(reference_date)
    status = CutoffStatus.PASSED if cutoff < floor else CutoffStatus.CUTOFF
    return CutoffResult(status, cutoff, hours_before_bed)


@dataclass(frozen=True)
class IntakeCutoff:
    name: str
    dose_mg: float
    other_mg: float
    allowed_mg: float
    result: CutoffResult

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "dose_mg": self.dose_mg,
            "other_mg": round(self.other_mg, 3),
            "allowed_mg": round(self.allowed_mg, 3),
            **self.result.to_dict(),
        }


def individual_cutoffs(
    intakes: Iterable[Intake],
    half_life: float,
    bedtime: time,
    reference_date: date,
    threshold_mg: float = SAFE_SLEEP_THRESHOLD_MG,
    not_before: Optional[datetime] = None,
    step_minutes: int = STEP_MINUTES,
    model: Optional[AbsorptionModel] = None,
) -> list[IntakeCutoff]:
    """
    Per-drink cutoff: the headroom for a drink is the threshold minus what all
    OTHER drinks leave at bedtime, floored at 0.
    """
    valid = [i for i in intakes if i.is_valid]
    bed = resolve_bedtime(bedtime, reference_date)
    contributions = [
        concentration_at(i, half_life, bed, reference_date, step_minutes, model)
        for i in valid
    ]
    total = sum(contributions)

    cutoffs = []
    for intake, own in zip(valid, contributions):
        other = total - own
        allowed = max(0.0, threshold_mg - other)
        result = latest_safe_time(bedtime, half_life, float(intake.dose_mg), allowed,
                                  reference_date, not_before)
        cutoffs.append(IntakeCutoff(intake.name, float(intake.dose_mg), other, allowed, result))
        log.debug("Cutoff for %s: %s (allowed %.1f mg)", intake.name, result.status.value, allowed)
    return cutoffs
