"""
SQLite-backed key-value store and the day-log helpers built on it.
Schema: kv_store (key -> JSON value).

Keys:
  caffeine-data-YYYY-MM-DD           list of intakes logged that day
  caffeine-calculator-personal-info  profile + unit preference
  caffeine-calculator-bedtime        "HH:MM"
  caffeine-calculator-recent-drinks  most recent first, max 5
  caffeine-calculator-custom-drinks  user-defined drinks
"""

import json
import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import date, datetime, timedelta
from typing import Any, Optional

from caffeine_calc import config
from caffeine_calc.core.models import Intake

log = logging.getLogger("caffeine.db")

_local = threading.local()

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS kv_store (
    key         TEXT    PRIMARY KEY,
    value       TEXT    NOT NULL,
    updated_at  TEXT    NOT NULL
);
"""

PERSONAL_INFO_KEY = "caffeine-calculator-personal-info"
BEDTIME_KEY = "caffeine-calculator-bedtime"
RECENT_DRINKS_KEY = "caffeine-calculator-recent-drinks"
CUSTOM_DRINKS_KEY = "caffeine-calculator-custom-drinks"


def get_connection() -> sqlite3.Connection:
    """Thread-local SQLite connection with WAL mode. Reconnects if DB_PATH changed."""
    path = config.DB_PATH
    if getattr(_local, "conn", None) is None or getattr(_local, "path", None) != path:
        path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(path), check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        _local.conn = conn
        _local.path = path
    return _local.conn


def close_connection():
    conn = getattr(_local, "conn", None)
    if conn is not None:
        conn.close()
    _local.conn = None
    _local.path = None


@contextmanager
def db_cursor():
    """Yield a cursor, auto-commit on success, rollback on error."""
    conn = get_connection()
    cur = conn.cursor()
    try:
        yield cur
        conn.commit()
    except Exception:
        conn.rollback()
        raise


def init_db():
    """Create tables if they don't exist."""
    with db_cursor() as cur:
        cur.executescript(SCHEMA_SQL)
    log.info("Database initialized at %s", config.DB_PATH)


# --- Key-value primitives ---

def kv_get(key: str, default: Any = None) -> Any:
    with db_cursor() as cur:
        cur.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
        row = cur.fetchone()
    if row is None:
        return default
    return json.loads(row["value"])


def kv_set(key: str, value: Any) -> None:
    with db_cursor() as cur:
        cur.execute(
            """INSERT INTO kv_store (key, value, updated_at) VALUES (?,?,?)
               ON CONFLICT(key) DO UPDATE SET value = excluded.value,
                                              updated_at = excluded.updated_at""",
            (key, json.dumps(value), datetime.now().isoformat()),
        )


def kv_delete(key: str) -> bool:
    with db_cursor() as cur:
        cur.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        return cur.rowcount > 0


# --- Day log ---

def storage_key(day: date) -> str:
    return f"caffeine-data-{day.isoformat()}"


def load_daily_intakes(day: date) -> list[Intake]:
    return [Intake.from_dict(d) for d in kv_get(storage_key(day), [])]


def save_daily_intakes(day: date, intakes: list[Intake]) -> list[Intake]:
    """Persist the day's intakes. Entries without a dose or start time are dropped."""
    valid = [i for i in intakes if i.is_valid]
    kv_set(storage_key(day), [i.to_dict() for i in valid])
    if len(valid) != len(intakes):
        log.info("Dropped %d incomplete intake(s) for %s", len(intakes) - len(valid), day)
    return valid


def add_intake(day: date, intake: Intake) -> list[Intake]:
    intakes = load_daily_intakes(day)
    intakes.append(intake)
    return save_daily_intakes(day, intakes)


def update_intake(day: date, index: int, changes: dict) -> Optional[list[Intake]]:
    """Merge `changes` into the intake at `index`. None if there is no such entry."""
    intakes = load_daily_intakes(day)
    if not 0 <= index < len(intakes):
        return None
    intakes[index] = intakes[index].with_changes(**changes)
    return save_daily_intakes(day, intakes)


def delete_intake(day: date, index: int) -> Optional[list[Intake]]:
    intakes = load_daily_intakes(day)
    if not 0 <= index < len(intakes):
        return None
    del intakes[index]
    return save_daily_intakes(day, intakes)


def history(today: date, days: int = config.HISTORY_DAYS) -> list[dict]:
    """Per-day log for the last `days` days, today first."""
    out = []
    for offset in range(days):
        day = today - timedelta(days=offset)
        intakes = load_daily_intakes(day)
        out.append({
            "date": day.isoformat(),
            "date_display": day.strftime("%a, %b %d").replace(" 0", " "),
            "drinks": [i.to_dict() for i in intakes],
            "total_mg": sum(i.dose_mg for i in intakes),
            "is_today": offset == 0,
        })
    return out


# --- Preferences ---

def load_personal_info() -> dict:
    stored = kv_get(PERSONAL_INFO_KEY)
    if not stored:
        return {
            "personal_info": {"age": None, "sex": None, "weight": None},
            "units": {"weight": "metric"},
        }
    return {
        "personal_info": stored.get("personal_info") or {"age": None, "sex": None, "weight": None},
        "units": stored.get("units") or {"weight": "metric"},
    }


def save_personal_info(personal_info: dict, units: dict) -> None:
    kv_set(PERSONAL_INFO_KEY, {
        "personal_info": personal_info,
        "units": units,
        "last_updated": datetime.now().isoformat(),
    })


def load_bedtime() -> str:
    return kv_get(BEDTIME_KEY, "")


def save_bedtime(bedtime: str) -> None:
    kv_set(BEDTIME_KEY, bedtime)


def load_recent_drinks() -> list[dict]:
    return kv_get(RECENT_DRINKS_KEY, [])


def save_recent_drinks(recent: list[dict]) -> None:
    kv_set(RECENT_DRINKS_KEY, recent)


def load_custom_drinks() -> list[dict]:
    return kv_get(CUSTOM_DRINKS_KEY, [])


def save_custom_drink(drink: dict) -> list[dict]:
    """Add or replace (by name) a custom drink."""
    drinks = [d for d in load_custom_drinks() if d.get("name") != drink.get("name")]
    drinks.append(drink)
    kv_set(CUSTOM_DRINKS_KEY, drinks)
    return drinks
