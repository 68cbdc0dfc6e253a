from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.router import api_router
from pipelines.exploration.fill_engine import BlockFillEngine
from pipelines.exploration.pipeline import ExplorationPipeline
from services import exploration_singleton
from services.cache.block_cache import BlockCache

LON, LAT = 4.8952, 52.3702


@pytest.fixture
def client(fake_oracle_cls, monkeypatch):
    oracle = fake_oracle_cls(answer=False)
    pipeline = ExplorationPipeline(engine=BlockFillEngine(oracle=oracle, cache=BlockCache()))
    monkeypatch.setattr(exploration_singleton, "_pipeline_instance", pipeline)

    app = FastAPI()
    app.include_router(api_router)
    with TestClient(app) as test_client:
        yield test_client
    pipeline.engine.scheduler.shutdown()


@pytest.fixture
def loop_path(make_square):
    return make_square(LON, LAT, 200)


def test_api_root_lists_endpoints(client) -> None:
    response = client.get("/api")

    assert response.status_code == 200
    assert "path" in response.json()["endpoints"]


def test_add_path_returns_filled_area_and_status(client, loop_path) -> None:
    response = client.post("/api/exploration/path", json={"path": loop_path})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert len(body["geometry"]["coordinates"]) == 1
    assert body["status_messages"][-1] == {"message": "Block analysis complete. Filled: 1, Kept: 0", "percent": 100}


def test_add_path_rejects_degenerate_path(client) -> None:
    response = client.post("/api/exploration/path", json={"path": [[LON, LAT]]})

    assert response.status_code == 400
    assert response.json()["detail"].startswith("Invalid path:")


def test_import_track_without_lines(client) -> None:
    response = client.post("/api/exploration/import-track", json={"geojson": {"type": "FeatureCollection", "features": []}})

    assert response.status_code == 400
    assert response.json()["detail"] == "No valid tracks found. File may be empty or have parsing errors."


def test_area_export_import_round_trip(client, loop_path) -> None:
    assert client.get("/api/exploration/export").status_code == 404

    client.post("/api/exploration/path", json={"path": loop_path, "fill": False})
    exported = client.get("/api/exploration/export").json()
    assert exported["type"] == "Feature"
    assert set(exported["properties"]) == {"exportDate", "appVersion", "description"}

    client.post("/api/exploration/clear")
    assert client.get("/api/exploration/area").json()["geometry"] is None

    response = client.post("/api/exploration/import-progress", json={"payload": exported})
    assert response.status_code == 200
    assert response.json()["geometry"]["type"] == "Polygon"


def test_rescan_without_area_is_404(client) -> None:
    response = client.post("/api/exploration/rescan")

    assert response.status_code == 404
    assert response.json()["detail"] == "No cleared area to scan."


def test_stroke_updates(client, loop_path) -> None:
    first = client.post("/api/exploration/stroke", json={"points": loop_path[:2], "begin": True})
    assert first.json()["success"] is True

    final = client.post("/api/exploration/stroke", json={"points": loop_path, "final": True})
    body = final.json()
    assert body["fill"]["filled"] == 1
    assert len(body["geometry"]["coordinates"]) == 1


def test_cache_stats(client, loop_path) -> None:
    client.post("/api/exploration/path", json={"path": loop_path})

    stats = client.get("/api/exploration/cache/stats").json()["cache"]
    assert stats["entries"] == 1
    assert stats["writes"] == 1


@pytest.mark.parametrize(
    "points, detail",
    [
        ([[0.0, 0.0]], "Stroke needs at least 2 points"),
        ([[LON, LAT], [LON, 95.0]], "Invalid stroke:"),
    ],
)
def test_invalid_stroke_is_400(client, points, detail) -> None:
    response = client.post("/api/exploration/stroke", json={"begin": True, "points": points})

    assert response.status_code == 400
    assert response.json()["detail"].startswith(detail)


def test_stroke_failure_is_500(client, monkeypatch) -> None:
    async def explode(*args, **kwargs):
        raise RuntimeError("projection unavailable")

    pipeline = exploration_singleton.get_exploration_pipeline()
    monkeypatch.setattr(pipeline, "update_stroke", explode)

    response = client.post("/api/exploration/stroke", json={"points": [[LON, LAT], [LON, LAT + 0.001]]})

    assert response.status_code == 500
    assert response.json()["detail"] == "Stroke update failed: projection unavailable"
