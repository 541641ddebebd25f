from __future__ import annotations

import copy

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from services.composite.composite_service import CompositeService
from services.composite.engine_cache import EngineCache
from services.composite.preset_loader import load_preset

from ..router import api_router
from . import composite


@pytest.fixture
def client(monkeypatch) -> TestClient:
    monkeypatch.setattr(composite, "_service", CompositeService(cache=EngineCache(max_size=4)))
    app = FastAPI()
    app.include_router(api_router)
    return TestClient(app)


@pytest.fixture
def document() -> dict:
    return copy.deepcopy(load_preset("portugal"))


def test_validate_reports_errors_without_http_failure(client, document) -> None:
    document["version"] = "0.9"
    response = client.post("/api/composite/validate", json={"document": document})

    assert response.status_code == 200
    body = response.json()
    assert body["valid"] is False
    assert [e["code"] for e in body["errors"]] == ["VERSION_UNSUPPORTED"]


def test_validate_adds_compatibility_warning(client, document) -> None:
    response = client.post("/api/composite/validate", json={"document": document, "atlas_id": "france"})
    body = response.json()
    assert body["valid"] is True
    assert body["warnings"][0]["path"] == "metadata.atlasId"


def test_load_then_project_and_invert(client, document) -> None:
    loaded = client.post("/api/composite/load", json={"document": document})
    assert loaded.status_code == 200
    assert loaded.json()["territories"] == ["PT-CONT", "PT-20", "PT-30"]

    projected = client.post("/api/composite/project", json={"atlas_id": "portugal", "points": [[-25.67, 37.74]]})
    assert projected.status_code == 200
    [result] = projected.json()["results"]
    assert result["territory"] == "PT-20"

    inverted = client.post("/api/composite/invert", json={"atlas_id": "portugal", "points": [result["projected"]]})
    [back] = inverted.json()["results"]
    assert back["territory"] == "PT-20"
    assert back["coordinates"] == [pytest.approx(-25.67), pytest.approx(37.74)]


def test_load_rejects_invalid_document(client, document) -> None:
    document["referenceScale"] = 0
    response = client.post("/api/composite/load", json={"document": document})
    assert response.status_code == 400
    assert "referenceScale" in response.json()["detail"]


def test_project_requires_points_or_geojson(client) -> None:
    response = client.post("/api/composite/project", json={"atlas_id": "portugal"})
    assert response.status_code == 400


def test_project_rejects_malformed_points(client) -> None:
    response = client.post("/api/composite/project", json={"atlas_id": "portugal", "points": [[1, 2, 3]]})
    assert response.status_code == 400


def test_unknown_atlas_is_404(client) -> None:
    response = client.post("/api/composite/export", json={"atlas_id": "atlantis"})
    assert response.status_code == 404
    assert response.json()["detail"] == "Atlas not loaded: atlantis"


def test_export_uses_preset_when_not_loaded(client) -> None:
    response = client.post("/api/composite/export", json={"atlas_id": "portugal"})
    assert response.status_code == 200
    assert response.json()["document"]["version"] == "1.0"


def test_project_geojson(client) -> None:
    line = {"type": "LineString", "coordinates": [[-9.5, 38.0], [-8.0, 41.0]]}
    response = client.post("/api/composite/project", json={"atlas_id": "portugal", "geojson": line})

    assert response.status_code == 200
    [geometry] = response.json()["geometry"]["geometries"]
    assert geometry["type"] == "LineString"


def test_list_projections_by_family(client) -> None:
    response = client.get("/api/composite/projections", params={"family": "CONIC"})
    ids = {p["id"] for p in response.json()["projections"]}
    assert ids == {"conic-conformal", "conic-equal-area", "conic-equidistant"}


def test_constraints_endpoint(client) -> None:
    body = client.get("/api/composite/constraints/AZIMUTHAL").json()
    assert body["family"] == "AZIMUTHAL"
    assert body["constraints"]["clip_angle"]["max"] == 180
    assert "clip_angle" in body["relevant"]

    assert client.get("/api/composite/constraints/TOROIDAL").status_code == 422


def test_presets(client) -> None:
    assert "portugal" in client.get("/api/composite/presets").json()["presets"]
    assert client.get("/api/composite/presets/portugal").json()["metadata"]["atlasId"] == "portugal"
    assert client.get("/api/composite/presets/atlantis").status_code == 404


def test_recent_logs(client) -> None:
    response = client.get("/api/logs/recent", params={"limit": 10})
    assert response.status_code == 200
    assert "logs" in response.json()
