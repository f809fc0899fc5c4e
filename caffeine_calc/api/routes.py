"""
FastAPI API routes for the caffeine calculator.
"""

import logging
from datetime import date, datetime, time
from typing import Optional
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from pydantic import BaseModel, Field

from caffeine_calc.config import (
    ABSORPTION_MODEL,
    API_KEY,
    HISTORY_DAYS,
    SAFE_SLEEP_THRESHOLD_MG,
    STEP_MINUTES,
    TIMEZONE,
)
from caffeine_calc.core.advisory import above_daily_guideline, compute_bedtime_report
from caffeine_calc.core.caffeine_engine import (
    adjusted_half_life,
    bedtime_position_hours,
    chart_horizon_hours,
    series,
    total_series,
)
from caffeine_calc.core.database import (
    add_intake,
    delete_intake,
    history,
    load_bedtime,
    load_custom_drinks,
    load_daily_intakes,
    load_personal_info,
    load_recent_drinks,
    save_bedtime,
    save_custom_drink,
    save_personal_info,
    save_recent_drinks,
    update_intake,
)
from caffeine_calc.core.drinks import group_drinks, resolve_drink, search_drinks, update_recent
from caffeine_calc.core.models import Intake, PersonalProfile, WeightUnit

log = logging.getLogger("caffeine.api")

router = APIRouter(prefix="/api")


# --- Auth ---

def verify_api_key(x_api_key: str = Header(default="")):
    if API_KEY and x_api_key != API_KEY:
        raise HTTPException(status_code=401, detail="Invalid API key")


def _today() -> date:
    return datetime.now(ZoneInfo(TIMEZONE)).date()


def _local_naive(moment: Optional[datetime]) -> Optional[datetime]:
    """Offset-bearing instants in local wall-clock time; the engine works on naive datetimes."""
    if moment is None or moment.tzinfo is None:
        return moment
    return moment.astimezone(ZoneInfo(TIMEZONE)).replace(tzinfo=None)


# --- Models ---

class ProfileModel(BaseModel):
    age: Optional[int] = Field(None, gt=0, lt=130)
    sex: Optional[str] = Field(None, pattern="^(male|female)$")
    weight: Optional[float] = Field(None, gt=0)
    weight_unit: str = Field("metric", pattern="^(metric|imperial)$")

    def to_profile(self) -> PersonalProfile:
        return PersonalProfile.from_input(self.age, self.sex, self.weight, WeightUnit(self.weight_unit))


class IntakeModel(BaseModel):
    name: str = "Unnamed drink"
    dose_mg: Optional[float] = None
    start: Optional[time] = None
    end: Optional[time] = None

    def to_intake(self) -> Intake:
        return Intake(name=self.name or "Unnamed drink", dose_mg=self.dose_mg,
                      start=self.start, end=self.end)


class CalculateRequest(BaseModel):
    profile: ProfileModel
    bedtime: time
    intakes: list[IntakeModel] = []
    day: Optional[date] = None
    threshold_mg: float = Field(SAFE_SLEEP_THRESHOLD_MG, ge=0)
    now: Optional[datetime] = None
    step_minutes: int = Field(STEP_MINUTES, ge=1, le=60)


class LogIntakeRequest(BaseModel):
    name: str = "Unnamed drink"
    dose_mg: Optional[float] = Field(None, gt=0)
    start: time
    end: Optional[time] = None
    day: Optional[date] = None


class UpdateIntakeRequest(BaseModel):
    """Partial update. Only `end` may be cleared with null."""
    name: Optional[str] = None
    dose_mg: Optional[float] = Field(None, gt=0)
    start: Optional[time] = None
    end: Optional[time] = None


class BedtimeRequest(BaseModel):
    bedtime: time


class DrinkModel(BaseModel):
    name: str = Field(..., min_length=1)
    caffeine_mg: float = Field(..., ge=0)
    category: Optional[str] = None


# --- Calculation ---

@router.post("/calculate", dependencies=[Depends(verify_api_key)])
def calculate(req: CalculateRequest):
    """Bedtime level, zone, per-drink cutoffs and daily advisory."""
    day = req.day or _today()
    intakes = [i.to_intake() for i in req.intakes]
    report = compute_bedtime_report(
        req.profile.to_profile(), intakes, req.bedtime, day,
        threshold_mg=req.threshold_mg, now=_local_naive(req.now), step_minutes=req.step_minutes,
    )
    log.info(
        "Calculated %s: %d intake(s), %.1f mg at bedtime (%s)",
        day, len(report["contributions"]), report["total_at_bedtime_mg"], report["zone"],
    )
    return report


@router.post("/chart", dependencies=[Depends(verify_api_key)])
def chart(req: CalculateRequest):
    """Per-drink curves plus the separately computed total, on a shared axis."""
    day = req.day or _today()
    intakes = [i.to_intake() for i in req.intakes]
    half_life = adjusted_half_life(req.profile.to_profile())
    horizon = chart_horizon_hours(intakes, req.bedtime)
    curves = series(intakes, half_life, day, horizon, req.step_minutes)
    total = total_series(intakes, half_life, day, horizon, req.step_minutes)
    return {
        "date": day.isoformat(),
        "half_life_h": round(half_life, 2),
        "horizon_hours": horizon,
        "step_minutes": req.step_minutes,
        "bedtime_position_h": bedtime_position_hours(req.bedtime, horizon),
        "threshold_mg": req.threshold_mg,
        "curves": [c.to_dict() for c in curves],
        "total": [{"time": p.time.isoformat(), "mg": round(p.mg, 3)} for p in total],
    }


# --- Day log ---

@router.post("/intake", dependencies=[Depends(verify_api_key)])
def log_intake(req: LogIntakeRequest):
    """Log a drink. Without a dose, the drink name is looked up (custom > recent > catalog)."""
    dose = req.dose_mg
    drink = resolve_drink(req.name, load_custom_drinks(), load_recent_drinks())
    if dose is None:
        if drink is None:
            raise HTTPException(status_code=422, detail=f"Unknown drink '{req.name}', dose required")
        dose = drink.caffeine_mg
    if drink is not None:
        save_recent_drinks(update_recent(
            {"name": drink.name, "caffeine_mg": drink.caffeine_mg, "category": drink.category},
            load_recent_drinks(),
        ))

    day = req.day or _today()
    intakes = add_intake(day, Intake(name=req.name, dose_mg=dose, start=req.start, end=req.end))
    return {
        "date": day.isoformat(),
        "index": len(intakes) - 1,
        "name": req.name,
        "dose_mg": dose,
        "status": "ok",
    }


@router.get("/intake", dependencies=[Depends(verify_api_key)])
def get_intakes(day: Optional[date] = None):
    """Intakes logged on a day (default today)."""
    day = day or _today()
    return [i.to_dict() for i in load_daily_intakes(day)]


@router.patch("/intake/{day}/{index}", dependencies=[Depends(verify_api_key)])
def update_intake_route(day: date, index: int, req: UpdateIntakeRequest):
    changes = req.model_dump(exclude_unset=True)
    cleared = [k for k in ("name", "dose_mg", "start") if k in changes and changes[k] is None]
    if cleared:
        raise HTTPException(status_code=422, detail=f"Cannot clear required field(s): {', '.join(cleared)}")
    updated = update_intake(day, index, changes)
    if updated is None:
        raise HTTPException(status_code=404, detail="Intake not found")
    return {"date": day.isoformat(), "intakes": [i.to_dict() for i in updated], "status": "ok"}


@router.delete("/intake/{day}/{index}", dependencies=[Depends(verify_api_key)])
def delete_intake_route(day: date, index: int):
    remaining = delete_intake(day, index)
    if remaining is None:
        raise HTTPException(status_code=404, detail="Intake not found")
    return {"deleted": index, "remaining": len(remaining), "status": "ok"}


@router.get("/history", dependencies=[Depends(verify_api_key)])
def get_history(days: int = Query(default=HISTORY_DAYS, ge=1, le=90)):
    """Daily totals, today first."""
    rows = history(_today(), days)
    for row in rows:
        row["above_guideline"] = above_daily_guideline(row["total_mg"])
    return rows


# --- Preferences ---

@router.get("/profile", dependencies=[Depends(verify_api_key)])
def get_profile():
    stored = load_personal_info()
    info = stored["personal_info"]
    units = stored["units"]
    result = {**stored}
    if info.get("weight") or info.get("age") or info.get("sex"):
        profile = PersonalProfile.from_input(
            info.get("age"), info.get("sex"), info.get("weight"),
            WeightUnit(units.get("weight", "metric")),
        )
        result["half_life_h"] = round(adjusted_half_life(profile), 2)
    return result


@router.put("/profile", dependencies=[Depends(verify_api_key)])
def put_profile(req: ProfileModel):
    save_personal_info(
        {"age": req.age, "sex": req.sex, "weight": req.weight},
        {"weight": req.weight_unit},
    )
    return {"half_life_h": round(adjusted_half_life(req.to_profile()), 2), "status": "ok"}


@router.get("/bedtime", dependencies=[Depends(verify_api_key)])
def get_bedtime():
    return {"bedtime": load_bedtime() or None}


@router.put("/bedtime", dependencies=[Depends(verify_api_key)])
def put_bedtime(req: BedtimeRequest):
    value = req.bedtime.strftime("%H:%M")
    save_bedtime(value)
    return {"bedtime": value, "status": "ok"}


# --- Drinks ---

@router.get("/drinks/search", dependencies=[Depends(verify_api_key)])
def drinks_search(q: str = "", limit: int = Query(default=10, ge=1, le=50)):
    found = search_drinks(q, load_custom_drinks(), load_recent_drinks(), limit=limit)
    return [d.to_dict() for d in found]


@router.get("/drinks/grouped", dependencies=[Depends(verify_api_key)])
def drinks_grouped():
    """Picker options: custom, recent, then catalog categories."""
    groups = group_drinks(load_custom_drinks(), load_recent_drinks())
    return [{"label": label, "drinks": [d.to_dict() for d in drinks]} for label, drinks in groups]


@router.get("/drinks/resolve", dependencies=[Depends(verify_api_key)])
def drinks_resolve(name: str):
    drink = resolve_drink(name, load_custom_drinks(), load_recent_drinks())
    if drink is None:
        return {"found": False}
    return {"found": True, **drink.to_dict()}


@router.get("/drinks/recent", dependencies=[Depends(verify_api_key)])
def drinks_recent():
    return load_recent_drinks()


@router.post("/drinks/recent", dependencies=[Depends(verify_api_key)])
def drinks_mark_recent(req: DrinkModel):
    recent = update_recent(req.model_dump(), load_recent_drinks())
    save_recent_drinks(recent)
    return recent


@router.get("/drinks/custom", dependencies=[Depends(verify_api_key)])
def drinks_custom():
    return load_custom_drinks()


@router.post("/drinks/custom", dependencies=[Depends(verify_api_key)])
def drinks_add_custom(req: DrinkModel):
    drinks = save_custom_drink(req.model_dump())
    return {"count": len(drinks), "status": "ok"}


@router.get("/status")
def status():
    """Health check."""
    return {
        "status": "ok",
        "timestamp": datetime.now().isoformat(),
        "absorption_model": ABSORPTION_MODEL,
        "step_minutes": STEP_MINUTES,
        "threshold_mg": SAFE_SLEEP_THRESHOLD_MG,
    }
