"""API-level tests for the Flask app."""

from datetime import datetime

import pytest

import app as app_module

flask_app = app_module.app


@pytest.fixture(autouse=True)
def env_setup(tmp_path, monkeypatch):
    monkeypatch.setenv("APP_DB_PATH", str(tmp_path / "drinklog.db"))
    monkeypatch.delenv("LEGAL_LIMIT_MG_L", raising=False)
    monkeypatch.delenv("SESSION_GAP_HOURS", raising=False)
    app_module.stats_cache.invalidate()
    yield


@pytest.fixture
def client():
    flask_app.config["TESTING"] = True
    with flask_app.test_client() as c:
        yield c


def configure(client, weight=70, gender="male"):
    res = client.post("/api/settings", json={"userWeight": weight, "userGender": gender})
    assert res.status_code == 200


def log_drink(client, **overrides):
    payload = {
        "name": "Lager",
        "category": "Beer",
        "quantity": 25,
        "unit": "cL",
        "alcohol_content": 5,
        "date": "2024-01-15",
        "time": "22:00",
        "create_category": True,
    }
    payload.update(overrides)
    res = client.post("/api/drinks", json=payload)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


def test_healthz(client):
    res = client.get("/healthz")
    assert res.status_code == 200
    assert res.get_json() == {"ok": True}


def test_settings_roundtrip(client):
    res = client.get("/api/settings")
    assert res.get_json()["profile_configured"] is False

    configure(client)
    data = client.get("/api/settings").get_json()
    assert data["profile_configured"] is True
    assert data["settings"] == {"userGender": "male", "userWeight": 70.0}
    assert data["legal_limit"] == 500.0


def test_settings_validation(client):
    assert client.post("/api/settings", json={"userWeight": 5}).status_code == 400
    assert client.post("/api/settings", json={"userWeight": "heavy"}).status_code == 400
    res = client.post("/api/settings", json={"userGender": "robot"})
    assert res.status_code == 400
    assert res.get_json()["error"] == "Gender must be male or female"


def test_categories_crud(client):
    res = client.post("/api/categories", json={"name": "Beer"})
    assert res.status_code == 201
    beer_id = res.get_json()["id"]
    assert client.post("/api/categories", json={"name": "Beer"}).status_code == 409
    assert client.post("/api/categories", json={"name": ""}).status_code == 400

    log_drink(client, create_category=False)
    items = client.get("/api/categories").get_json()["items"]
    assert items == [{"id": beer_id, "name": "Beer", "drink_count": 1}]

    assert client.delete(f"/api/categories/{beer_id}").status_code == 409

    res = client.post(f"/api/categories/{beer_id}/rename", json={"name": "Craft beer"})
    assert res.status_code == 200
    assert res.get_json()["category"]["name"] == "Craft beer"
    assert client.get("/api/drinks").get_json()["items"][0]["category"] == "Craft beer"

    assert client.post("/api/categories/999/rename", json={"name": "x"}).status_code == 404
    assert client.delete("/api/categories/999").status_code == 404


def test_create_drink_validation(client):
    res = client.post("/api/drinks", json={"name": "Lager", "category": "Beer", "quantity": 25})
    assert res.status_code == 400
    assert "Unknown category" in res.get_json()["error"]

    client.post("/api/categories", json={"name": "Beer"})
    bad_payloads = [
        {"name": "", "category": "Beer", "quantity": 25},
        {"name": "Lager", "category": "Beer", "quantity": 0},
        {"name": "Lager", "category": "Beer", "quantity": 25, "unit": "pint"},
        {"name": "Lager", "category": "Beer", "quantity": 25, "alcohol_content": 120},
        {"name": "Lager", "category": "Beer", "quantity": 25, "date": "15/01/2024"},
        {"name": "Lager", "category": "Beer", "quantity": 25, "time": "25:00"},
        {"name": "Lager", "category": "Beer", "quantity": 25, "location": {"latitude": 200, "longitude": 0}},
    ]
    for payload in bad_payloads:
        assert client.post("/api/drinks", json=payload).status_code == 400, payload


def test_drink_get_patch_delete(client):
    created = log_drink(client, location={"latitude": 48.85, "longitude": 2.35})
    drink_id = created["id"]
    assert created["location"]["latitude"] == 48.85

    assert client.get(f"/api/drinks/{drink_id}").get_json()["name"] == "Lager"
    assert client.get("/api/drinks/999").status_code == 404

    res = client.patch(f"/api/drinks/{drink_id}", json={"quantity": 50, "unit": "cL"})
    assert res.status_code == 200
    assert res.get_json()["quantity"] == 50
    assert client.patch(f"/api/drinks/{drink_id}", json={"category": "Nope"}).status_code == 400
    assert client.patch("/api/drinks/999", json={"quantity": 1}).status_code == 404

    assert client.delete(f"/api/drinks/{drink_id}").status_code == 200
    assert client.delete(f"/api/drinks/{drink_id}").status_code == 404


def test_list_drinks_filters(client):
    log_drink(client, date="2024-01-14")
    log_drink(client, date="2024-01-15", name="Stout")
    assert len(client.get("/api/drinks").get_json()["items"]) == 2
    assert len(client.get("/api/drinks?start=2024-01-15&end=2024-01-20").get_json()["items"]) == 1
    assert len(client.get("/api/drinks?name=Stout").get_json()["items"]) == 1
    assert client.get("/api/drinks?start=2024-01-20&end=2024-01-15").status_code == 400


def test_stats_general_week(client):
    log_drink(client, date="2024-01-15", time="20:00")
    log_drink(client, date="2024-01-15", time="21:00")
    log_drink(client, date="2024-01-10", time="20:00")

    res = client.get("/api/stats?period=week&date=2024-01-17&section=general")
    assert res.status_code == 200
    data = res.get_json()
    assert data["range"] == {"start": "2024-01-15", "end": "2024-01-21"}
    general = data["general"]
    assert general["total_drinks"] == 2
    assert general["total_alcohol"] == 20.0
    assert general["sober_days"] == 6
    assert general["comparison"]["total_drinks"] == 100.0


def test_stats_cache_invalidated_by_new_drink(client):
    log_drink(client, date="2024-01-15")
    url = "/api/stats?period=week&date=2024-01-17&section=general"
    assert client.get(url).get_json()["general"]["total_drinks"] == 1
    assert len(app_module.stats_cache) == 1
    log_drink(client, date="2024-01-16")
    assert len(app_module.stats_cache) == 0
    assert client.get(url).get_json()["general"]["total_drinks"] == 2


def test_stats_all_sections(client):
    configure(client)
    log_drink(client, location={"latitude": 48.85, "longitude": 2.35})
    data = client.get("/api/stats?period=custom&start=2024-01-01&end=2024-01-31").get_json()
    for section in app_module.STATS_SECTIONS:
        assert section in data
    assert data["locations"]["has_location_data"] is True
    assert data["categories"]["dominant_category"] == "Beer"
    assert data["categories"]["comparison"]["Beer"]["status"] == "new"
    assert data["health"]["user_profile"]["configured"] is True


def test_stats_bad_input(client):
    assert client.get("/api/stats?period=fortnight").status_code == 400
    assert client.get("/api/stats?period=custom&start=2024-01-01").status_code == 400
    assert client.get("/api/stats?period=week&date=yesterday").status_code == 400
    assert client.get("/api/stats?period=week&section=mood").status_code == 400


def test_stats_compare(client):
    log_drink(client, date="2024-01-15")
    data = client.get("/api/stats/compare?period=month&date=2024-01-20").get_json()
    assert data["previous"] == {"start": "2023-12-01", "end": "2023-12-31"}
    assert data["changes"]["total_drinks"] == 100.0


def test_sessions(client):
    log_drink(client, date="2024-01-15", time="20:00")
    log_drink(client, date="2024-01-15", time="21:00")
    log_drink(client, date="2024-01-16", time="02:00")
    data = client.get("/api/sessions?period=week&date=2024-01-15").get_json()
    assert [s["drink_count"] for s in data["items"]] == [1, 2]
    assert data["stats"]["avg_duration"] == 1.0


def test_bac_unavailable_without_profile(client):
    log_drink(client)
    data = client.get("/api/bac?at=2024-01-15T22:00").get_json()
    assert data["available"] is False
    assert data["advice"]["status"] == "unavailable"


def test_bac_two_beers(client):
    configure(client)
    log_drink(client)
    log_drink(client)
    data = client.get("/api/bac?at=2024-01-15T22:00").get_json()
    assert data["available"] is True
    assert data["current_bac"] == pytest.approx(420.17, abs=0.01)
    assert data["time_to_sobriety"] == pytest.approx(1.4, abs=0.01)
    assert data["is_above_legal_limit"] is False
    assert data["advice"]["status"] == "caution"
    assert len(data["relevant_drinks"]) == 2

    assert client.get("/api/bac?at=tonight").status_code == 400


def test_legal_limit_from_env(client, monkeypatch):
    monkeypatch.setenv("LEGAL_LIMIT_MG_L", "200")
    configure(client)
    log_drink(client)
    data = client.get("/api/bac?at=2024-01-15T22:00").get_json()
    assert data["legal_limit"] == 200.0
    assert data["is_above_legal_limit"] is True
    assert data["advice"]["status"] == "do_not_drive"


def test_bac_curve(client):
    log_drink(client)
    url = "/api/bac/curve?start=2024-01-15T22:00&end=2024-01-16T00:00&step=30"
    assert client.get(url).status_code == 400  # no profile yet

    configure(client)
    data = client.get(url).get_json()
    assert len(data["curve"]) == 5
    assert data["curve"][0] == {"t": "2024-01-15T22:00", "bac": 210.08}
    assert data["curve"][-1]["bac"] == 0.0

    assert client.get("/api/bac/curve?start=2024-01-16T00:00&end=2024-01-15T22:00").status_code == 400
    assert client.get("/api/bac/curve?start=2024-01-15T22:00").status_code == 400


def test_bac_accepts_utc_offsets(client):
    configure(client)
    log_drink(client)
    log_drink(client)
    naive = client.get("/api/bac?at=2024-01-15T22:00").get_json()
    # Same instant, spelled with the local UTC offset.
    aware = datetime(2024, 1, 15, 22, 0).astimezone().isoformat()
    res = client.get("/api/bac", query_string={"at": aware})
    assert res.status_code == 200
    assert res.get_json()["current_bac"] == naive["current_bac"]

    start = datetime(2024, 1, 15, 22, 0).astimezone().isoformat()
    end = datetime(2024, 1, 16, 0, 0).astimezone().isoformat()
    res = client.get("/api/bac/curve", query_string={"start": start, "end": end, "step": 30})
    assert res.status_code == 200
    naive_curve = client.get("/api/bac/curve?start=2024-01-15T22:00&end=2024-01-16T00:00&step=30").get_json()
    assert res.get_json()["curve"] == naive_curve["curve"]


def test_enrich_address(client, monkeypatch):
    async def fake_geocode(lat, lng, **kwargs):
        return {"formatted": "Rue de Rivoli, Paris"}

    monkeypatch.setattr(app_module, "reverse_geocode", fake_geocode)
    located = log_drink(client, location={"latitude": 48.85, "longitude": 2.35})
    plain = log_drink(client)

    res = client.post(f"/api/drinks/{located['id']}/enrich-address")
    assert res.get_json() == {"ok": True, "address": "Rue de Rivoli, Paris"}
    assert client.get(f"/api/drinks/{located['id']}").get_json()["location"]["address"] == "Rue de Rivoli, Paris"

    assert client.post(f"/api/drinks/{plain['id']}/enrich-address").status_code == 400
    assert client.post("/api/drinks/999/enrich-address").status_code == 404
