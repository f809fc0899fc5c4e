"""
Caffeine Calculator Configuration.
All settings via environment variables with sensible defaults.
"""

import os
from pathlib import Path

# --- Paths ---
BASE_DIR = Path(os.getenv("CAFFEINE_DATA_DIR", "/data"))
DB_PATH = BASE_DIR / "caffeine.db"
DRINKS_CATALOG_PATH = Path(
    os.getenv("CAFFEINE_DRINKS_CATALOG", str(Path(__file__).parent / "data" / "drinks.json"))
)

# --- Auth ---
API_KEY = os.getenv("CAFFEINE_API_KEY", "")

# --- Logging ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# --- Timezone (only used by the API to resolve "today") ---
TIMEZONE = os.getenv("TZ", "Europe/Zurich")

# --- Half-life personalisation ---
BASE_HALF_LIFE_H: float = float(os.getenv("BASE_HALF_LIFE_H", "5.0"))
MIN_HALF_LIFE_H: float = 1.0
LB_TO_KG: float = 0.453592

# --- Simulation ---
STEP_MINUTES: int = int(os.getenv("STEP_MINUTES", "10"))          # sample grid, 1-60 min
INSTANT_WINDOW_MINUTES: float = 1.0                                # <= 1 min counts as instantaneous
# linear_loading: no decay while drinking; decaying_loading: decay while drinking
ABSORPTION_MODEL = os.getenv("ABSORPTION_MODEL", "linear_loading")
CHART_HORIZON_H: int = 24
CHART_HORIZON_EXTENDED_H: int = 48

# --- Bedtime thresholds (mg left in the body) ---
SAFE_SLEEP_THRESHOLD_MG: float = float(os.getenv("SAFE_SLEEP_THRESHOLD_MG", "30"))
CAUTION_CEILING_MG: float = float(os.getenv("CAUTION_CEILING_MG", "80"))

# --- Daily intake heuristics ---
DAILY_GUIDELINE_MG: float = 400.0
DAILY_CAUTION_MG: float = float(os.getenv("DAILY_CAUTION_MG", "600"))
DAILY_DANGER_MG: float = float(os.getenv("DAILY_DANGER_MG", "1000"))
TYPO_DOSE_MG: float = float(os.getenv("TYPO_DOSE_MG", "5000"))

# --- History / drink picker ---
HISTORY_DAYS: int = int(os.getenv("HISTORY_DAYS", "7"))
RECENT_DRINKS_LIMIT: int = 5
