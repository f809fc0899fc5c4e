"""
Drink lookup for the intake form.

A name typed by the user is resolved against three sources, first match wins:
  1. custom drinks the user saved
  2. recently used drinks (most recent first)
  3. the bundled catalog (data/drinks.json)

Kept apart from the caffeine engine: the engine only ever sees a dose.
"""

import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Iterable, Optional

from caffeine_calc.config import DRINKS_CATALOG_PATH, RECENT_DRINKS_LIMIT


@dataclass(frozen=True)
class DrinkRecord:
    name: str
    caffeine_mg: float
    source: str = "catalog"  # custom / recent / catalog
    category: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict, source: str) -> "DrinkRecord":
        return cls(
            name=data["name"],
            caffeine_mg=float(data["caffeine_mg"]),
            source=source,
            category=data.get("category"),
        )


# Parsed catalogs keyed by path
_CATALOG_CACHE: dict[str, list[DrinkRecord]] = {}


def load_catalog(path: Path = DRINKS_CATALOG_PATH) -> list[DrinkRecord]:
    """Bundled drink database. Cached per path."""
    key = str(path)
    if key not in _CATALOG_CACHE:
        with open(path, encoding="utf-8") as fh:
            _CATALOG_CACHE[key] = [DrinkRecord.from_dict(d, "catalog") for d in json.load(fh)]
    return _CATALOG_CACHE[key]


def _as_records(drinks: Iterable, source: str) -> list[DrinkRecord]:
    records = []
    for d in drinks or []:
        if isinstance(d, DrinkRecord):
            records.append(DrinkRecord(d.name, d.caffeine_mg, source, d.category))
        else:
            records.append(DrinkRecord.from_dict(d, source))
    return records


def _ordered_sources(custom, recent, catalog) -> list[DrinkRecord]:
    if catalog is None:
        catalog = load_catalog()
    return (
        _as_records(custom, "custom")
        + _as_records(recent, "recent")
        + _as_records(catalog, "catalog")
    )


def resolve_drink(
    name: str,
    custom: Iterable = (),
    recent: Iterable = (),
    catalog: Optional[Iterable] = None,
) -> Optional[DrinkRecord]:
    """Case-insensitive exact name match, custom > recent > catalog."""
    wanted = (name or "").strip().casefold()
    if not wanted:
        return None
    for record in _ordered_sources(custom, recent, catalog):
        if record.name.casefold() == wanted:
            return record
    return None


def search_drinks(
    query: str,
    custom: Iterable = (),
    recent: Iterable = (),
    catalog: Optional[Iterable] = None,
    limit: int = 10,
) -> list[DrinkRecord]:
    """
    Picker suggestions: prefix matches before substring matches, each name
    listed once under its highest-priority source.
    """
    needle = (query or "").strip().casefold()
    seen = set()
    prefix, substring = [], []
    for record in _ordered_sources(custom, recent, catalog):
        key = record.name.casefold()
        if key in seen:
            continue
        if key.startswith(needle):
            prefix.append(record)
        elif needle in key:
            substring.append(record)
        else:
            continue
        seen.add(key)
    return (prefix + substring)[:limit]


def update_recent(selected: dict, recent: list[dict],
                  limit: int = RECENT_DRINKS_LIMIT) -> list[dict]:
    """Move `selected` to the front of the recent list, drop duplicates by name, cap length."""
    rest = [d for d in recent if d.get("name") != selected.get("name")]
    return [selected, *rest][:limit]


def group_drinks(
    custom: Iterable = (),
    recent: Iterable = (),
    catalog: Optional[Iterable] = None,
) -> list[tuple[str, list[DrinkRecord]]]:
    """
    Picker groups: custom and recent drinks first (when present), then the
    catalog by category in catalog order.
    """
    groups = []
    custom_records = _as_records(custom, "custom")
    if custom_records:
        groups.append(("Custom Drinks", custom_records))
    recent_records = _as_records(recent, "recent")
    if recent_records:
        groups.append(("Recent Drinks", recent_records))

    by_category: dict[str, list[DrinkRecord]] = {}
    for record in _as_records(load_catalog() if catalog is None else catalog, "catalog"):
        by_category.setdefault(record.category or "other", []).append(record)
    groups.extend(by_category.items())
    return groups
