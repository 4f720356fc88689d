import json

import pytest
from fastapi.testclient import TestClient

from medal_core import store
from medal_core.config import Settings
from medal_core.main import app


@pytest.fixture
def snapshot_store():
    test_store = store.SnapshotStore(Settings())
    app.dependency_overrides[store.get_store] = lambda: test_store
    yield test_store
    app.dependency_overrides.clear()


@pytest.fixture
def client(snapshot_store):
    return TestClient(app)


@pytest.fixture
def loaded_client(client, totals_csv, medals_csv, geojson):
    assert client.post("/ingest/medals_total", content=totals_csv).status_code == 200
    assert client.post("/ingest/medals", content=medals_csv).status_code == 200
    assert client.post("/ingest/geojson", content=json.dumps(geojson)).status_code == 200
    return client


def test_root(client):
    assert client.get("/").json() == {"Hello": "Medal Core"}


def test_not_ready_state(client):
    data = client.get("/all-data").json()
    assert data["meta"] == {"ready": False}
    assert data["medal_tally"] == []
    assert client.get("/countries/top").json() == []
    assert client.get("/countries/USA").status_code == 503


def test_ingest_reports_counts(client, totals_csv):
    response = client.post("/ingest/medals_total", content=totals_csv)
    assert response.status_code == 200
    body = response.json()
    assert body["records"] == 4
    assert body["snapshot_ready"] is False


def test_ingest_errors(client):
    assert client.post("/ingest/medals_total", content=b"").status_code == 400
    assert client.post("/ingest/results", content=b"a,b\n1,2\n").status_code == 404
    bad = client.post("/ingest/medals_total", content=b'country_code,country\n"USA,United States\n')
    assert bad.status_code == 400
    assert "error" in bad.json()


def test_all_data(loaded_client):
    data = loaded_client.get("/all-data").json()
    assert data["meta"]["ready"] is True
    assert [row["country_code"] for row in data["medal_tally"]] == ["CHN", "USA", "GER", "KEN"]
    assert data["medals_by_discipline"]["Swimming"] == 2
    assert len(data["map"]["entries"]) == 5
    assert data["map"]["diagnostics"]["unplaced_countries"] == [{"country_code": "KEN", "country": "Kenya"}]
    assert data["relationship"]["country_count"] == 4


def test_country_endpoints(loaded_client):
    usa = loaded_client.get("/countries/USA").json()
    assert usa["total"]["gold"] == 10
    assert len(usa["medals"]) == 3
    assert loaded_client.get("/countries/XYZ").status_code == 404

    top = loaded_client.get("/countries/top", params={"n": 2}).json()
    assert [t["country_code"] for t in top] == ["CHN", "USA"]

    disciplines = loaded_client.get("/countries/USA/disciplines", params={"n": 1}).json()
    assert [(d["discipline"], d["count"]) for d in disciplines] == [("Swimming", 2)]

    chart = loaded_client.get("/countries/USA/chart").json()
    assert chart[0]["total"] == 2

    recent = loaded_client.get("/countries/USA/recent", params={"n": 1}).json()
    assert recent[0]["athlete_name"] == "Athlete A"


def test_relationship_endpoint(loaded_client):
    full = loaded_client.get("/relationship").json()
    assert len(full["names"]) == 8
    capped = loaded_client.get("/relationship", params={"max_countries": 1, "selection": "volume"}).json()
    assert capped["names"][0] == "United States"
    assert capped["selection"] == "volume"


def test_map_and_timeline(loaded_client):
    entries = loaded_client.get("/map").json()["entries"]
    germany = next(e for e in entries if e["feature_code"] == "DEU")
    assert germany["country_code"] == "GER"
    assert germany["method"] == "alias"
    antarctica = next(e for e in entries if e["feature_code"] == "ATA")
    assert antarctica["has_data"] is False

    timeline = loaded_client.get("/timeline").json()
    assert [d["date"] for d in timeline] == ["2024-07-27", "2024-07-28", "2024-07-29"]


def test_startup_with_unreadable_data_files(tmp_path, monkeypatch, medals_csv):
    (tmp_path / "medals_total.csv").write_bytes(b"country_code,country\nCIV,C\xf4te d'Ivoire\n")
    (tmp_path / "medals.csv").write_text(medals_csv, encoding="utf-8")
    (tmp_path / "aliases.csv").write_text("medal_code,geo_code\nGERMANY,DEU\n", encoding="utf-8")
    startup_store = store.SnapshotStore(Settings(data_dir=str(tmp_path), aliases_file="aliases.csv"))
    monkeypatch.setattr(store, "_store", startup_store)

    with TestClient(app) as client:
        assert client.get("/").status_code == 200
        assert client.get("/countries/USA").status_code == 503
    assert startup_store.received("medals")
