"""Tests for the HTTP API."""

import pytest

TWO_DRINKS = {
    "profile": {"age": 25, "sex": "male", "weight": 75, "weight_unit": "metric"},
    "bedtime": "23:00",
    "day": "2026-10-17",
    "intakes": [
        {"name": "Coffee", "dose_mg": 200, "start": "08:00"},
        {"name": "Tea", "dose_mg": 150, "start": "14:00"},
    ],
}


class TestCalculate:
    """Tests for POST /api/calculate."""

    def test_two_drink_example(self, client):
        r = client.post("/api/calculate", json=TWO_DRINKS)
        assert r.status_code == 200
        data = r.json()
        assert data["half_life_h"] == 5.0
        assert data["total_at_bedtime_mg"] == pytest.approx(68.08, abs=0.01)
        assert data["zone"] == "caution"
        assert len(data["cutoffs"]) == 2
        assert data["cutoffs"][0]["label"] == "Already over limit"

    def test_incomplete_intakes_are_ignored(self, client):
        payload = {**TWO_DRINKS, "intakes": [{"name": "Draft"}, {"name": "No time", "dose_mg": 100}]}
        data = client.post("/api/calculate", json=payload).json()
        assert data["total_at_bedtime_mg"] == 0.0
        assert data["cutoffs"] == []

    def test_typo_advisory(self, client):
        payload = {**TWO_DRINKS, "intakes": [{"name": "Coffee", "dose_mg": 6000, "start": "08:00"}]}
        data = client.post("/api/calculate", json=payload).json()
        assert data["advisory"]["type"] == "typo"
        assert "60 mg" in data["advisory"]["message"]

    def test_default_day_is_today(self, client):
        payload = {k: v for k, v in TWO_DRINKS.items() if k != "day"}
        assert client.post("/api/calculate", json=payload).json()["date"] == "2026-10-17"

    def test_invalid_sex_rejected(self, client):
        payload = {**TWO_DRINKS, "profile": {"age": 25, "sex": "other", "weight": 75}}
        assert client.post("/api/calculate", json=payload).status_code == 422

    def test_malformed_time_rejected(self, client):
        payload = {**TWO_DRINKS, "bedtime": "late"}
        assert client.post("/api/calculate", json=payload).status_code == 422

    @pytest.mark.parametrize("now,status", [
        ("2026-10-17T12:00:00+02:00", "cutoff"),
        ("2026-10-17T12:00:00Z", "passed"),
    ])
    def test_offset_now_is_read_in_local_time(self, client, monkeypatch, now, status):
        """An offset-bearing "now" is converted to the configured zone before comparing."""
        from caffeine_calc.api import routes

        monkeypatch.setattr(routes, "TIMEZONE", "Europe/Zurich")
        payload = {**TWO_DRINKS, "now": now, "intakes": [{"name": "Coffee", "dose_mg": 120, "start": "08:00"}]}
        r = client.post("/api/calculate", json=payload)
        assert r.status_code == 200
        cutoff = r.json()["cutoffs"][0]
        assert cutoff["status"] == status
        assert cutoff["cutoff"] == "2026-10-17T13:00:00"


class TestChart:
    """Tests for POST /api/chart."""

    def test_same_day_chart(self, client):
        data = client.post("/api/chart", json=TWO_DRINKS).json()
        assert data["horizon_hours"] == 24
        assert data["bedtime_position_h"] == 23.0
        assert [c["label"] for c in data["curves"]] == ["Coffee (200mg)", "Tea (150mg)"]
        assert len(data["total"]) == 144
        assert all(len(c["points"]) == 144 for c in data["curves"])

    def test_after_midnight_bedtime_extends_chart(self, client):
        data = client.post("/api/chart", json={**TWO_DRINKS, "bedtime": "01:00"}).json()
        assert data["horizon_hours"] == 48
        assert data["bedtime_position_h"] == 25.0
        assert len(data["total"]) == 288


class TestIntakeLog:
    """Tests for the day log endpoints."""

    def test_log_with_catalog_dose(self, client):
        r = client.post("/api/intake", json={"name": "Espresso (single shot)", "start": "08:00"})
        assert r.status_code == 200
        assert r.json()["dose_mg"] == 63
        recent = client.get("/api/drinks/recent").json()
        assert recent[0]["name"] == "Espresso (single shot)"

    def test_unknown_drink_needs_dose(self, client):
        r = client.post("/api/intake", json={"name": "Mystery", "start": "08:00"})
        assert r.status_code == 422

    def test_log_list_update_delete(self, client):
        client.post("/api/intake", json={"name": "Coffee", "dose_mg": 95, "start": "08:00"})
        client.post("/api/intake", json={"name": "Tea", "dose_mg": 47, "start": "15:00", "end": "15:30"})

        listed = client.get("/api/intake").json()
        assert [i["name"] for i in listed] == ["Coffee", "Tea"]
        assert listed[1]["end"] == "15:30"

        r = client.patch("/api/intake/2026-10-17/0", json={"dose_mg": 120})
        assert r.status_code == 200
        assert r.json()["intakes"][0]["dose_mg"] == 120

        assert client.delete("/api/intake/2026-10-17/0").json()["remaining"] == 1
        assert client.get("/api/intake", params={"day": "2026-10-17"}).json()[0]["name"] == "Tea"

    @pytest.mark.parametrize("field", ["dose_mg", "start", "name"])
    def test_required_field_cannot_be_cleared(self, client, field):
        client.post("/api/intake", json={"name": "Coffee", "dose_mg": 95, "start": "08:00"})
        r = client.patch("/api/intake/2026-10-17/0", json={field: None})
        assert r.status_code == 422
        assert client.get("/api/intake").json() == [
            {"name": "Coffee", "dose_mg": 95, "start": "08:00", "end": None},
        ]

    def test_end_can_be_cleared(self, client):
        client.post("/api/intake", json={"name": "Tea", "dose_mg": 47, "start": "15:00", "end": "15:30"})
        r = client.patch("/api/intake/2026-10-17/0", json={"end": None})
        assert r.status_code == 200
        assert r.json()["intakes"][0]["end"] is None

    def test_missing_entry_is_404(self, client):
        assert client.patch("/api/intake/2026-10-17/4", json={"dose_mg": 1}).status_code == 404
        assert client.delete("/api/intake/2026-10-17/0").status_code == 404

    def test_history(self, client):
        client.post("/api/intake", json={"name": "Cold brew", "dose_mg": 450, "start": "08:00"})
        rows = client.get("/api/history", params={"days": 3}).json()
        assert len(rows) == 3
        assert rows[0]["is_today"] is True
        assert rows[0]["date"] == "2026-10-17"
        assert rows[0]["total_mg"] == 450
        assert rows[0]["above_guideline"] is True
        assert rows[1]["above_guideline"] is False


class TestPreferences:
    def test_profile_round_trip(self, client):
        r = client.put("/api/profile", json={"age": 35, "sex": "female", "weight": 70})
        assert r.json()["half_life_h"] == 6.0
        stored = client.get("/api/profile").json()
        assert stored["personal_info"]["age"] == 35
        assert stored["half_life_h"] == 6.0

    def test_bedtime_round_trip(self, client):
        assert client.get("/api/bedtime").json() == {"bedtime": None}
        client.put("/api/bedtime", json={"bedtime": "23:30"})
        assert client.get("/api/bedtime").json() == {"bedtime": "23:30"}


class TestDrinks:
    def test_custom_drink_wins_lookup(self, client):
        client.post("/api/drinks/custom", json={"name": "Red Bull (250 ml)", "caffeine_mg": 160})
        data = client.get("/api/drinks/resolve", params={"name": "red bull (250 ml)"}).json()
        assert data["found"] is True
        assert data["caffeine_mg"] == 160
        assert data["source"] == "custom"

    def test_resolve_unknown(self, client):
        assert client.get("/api/drinks/resolve", params={"name": "nope"}).json() == {"found": False}

    def test_grouped_picker_options(self, client):
        client.post("/api/intake", json={"name": "Espresso (single shot)", "start": "08:00"})
        groups = client.get("/api/drinks/grouped").json()
        labels = [g["label"] for g in groups]
        assert labels[0] == "Recent Drinks"
        assert groups[0]["drinks"][0]["category"] == "coffee"
        assert labels[1:3] == ["coffee", "tea"]

    def test_search(self, client):
        names = [d["name"] for d in client.get("/api/drinks/search", params={"q": "espresso"}).json()]
        assert names[:2] == ["Espresso (single shot)", "Espresso (double shot)"]


class TestAuth:
    def test_api_key_required_when_configured(self, client, monkeypatch):
        from caffeine_calc.api import routes

        monkeypatch.setattr(routes, "API_KEY", "secret")
        assert client.get("/api/intake").status_code == 401
        assert client.get("/api/intake", headers={"x-api-key": "secret"}).status_code == 200

    def test_status_is_public(self, client, monkeypatch):
        from caffeine_calc.api import routes

        monkeypatch.setattr(routes, "API_KEY", "secret")
        assert client.get("/api/status").json()["status"] == "ok"
