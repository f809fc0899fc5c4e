"""Pytest configuration and shared fixtures."""

from datetime import date

import pytest
from fastapi.testclient import TestClient

from caffeine_calc import config
from caffeine_calc.core import database
from caffeine_calc.main import app

REFERENCE_DATE = date(2026, 10, 17)


@pytest.fixture
def ref_date() -> date:
    return REFERENCE_DATE


@pytest.fixture
def db(tmp_path, monkeypatch):
    """Fresh SQLite file per test."""
    monkeypatch.setattr(config, "DB_PATH", tmp_path / "caffeine.db")
    database.close_connection()
    database.init_db()
    yield
    database.close_connection()


@pytest.fixture
def client(db, monkeypatch):
    """API client with "today" pinned to the reference date."""
    from caffeine_calc.api import routes

    monkeypatch.setattr(routes, "_today", lambda: REFERENCE_DATE)
    return TestClient(app)
