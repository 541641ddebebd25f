from __future__ import annotations

import copy

import pytest

from . import export_service
from .composite_service import CompositeService
from .engine_cache import EngineCache
from .preset_loader import load_preset


@pytest.fixture
def service() -> CompositeService:
    return CompositeService(cache=EngineCache(max_size=4))


def test_load_document(service) -> None:
    result = service.load_document(copy.deepcopy(load_preset("portugal")))

    assert result["success"] is True
    assert result["atlas_id"] == "portugal"
    assert result["territories"] == ["PT-CONT", "PT-20", "PT-30"]
    assert result["effective_scales"]["PT-20"] == pytest.approx(1620)
    assert "portugal" in service.cache


def test_rejected_document_is_not_cached(service) -> None:
    document = copy.deepcopy(load_preset("portugal"))
    document["version"] = "0.9"

    result = service.load_document(document)
    assert result["success"] is False
    assert "Unsupported version" in result["error"]
    assert len(service.cache) == 0


def test_engine_falls_back_to_preset(service) -> None:
    result = service.project_points("portugal", [[-9.14, 38.72], [150, -30]])

    assert result["success"] is True
    lisbon, nowhere = result["results"]
    assert lisbon["territory"] == "PT-CONT"
    assert lisbon["projected"] is not None
    assert nowhere == {"input": [150, -30], "projected": None, "territory": None}


def test_unknown_atlas(service) -> None:
    assert service.project_points("atlantis", [[0, 0]]) == {"success": False, "error": "Atlas not loaded: atlantis"}
    assert service.export_document("atlantis")["success"] is False


def test_invert_points_round_trip(service) -> None:
    projected = service.project_points("portugal", [[-16.92, 32.65]])["results"][0]["projected"]
    result = service.invert_points("portugal", [projected, [-5000, -5000]])

    funchal, outside = result["results"]
    assert funchal["territory"] == "PT-30"
    assert funchal["coordinates"] == [pytest.approx(-16.92), pytest.approx(32.65)]
    assert outside["coordinates"] is None


def test_project_geojson(service) -> None:
    madeira = {
        "type": "Feature",
        "properties": {},
        "geometry": {
            "type": "Polygon",
            "coordinates": [[[-17.2, 32.7], [-16.7, 32.7], [-16.7, 32.9], [-17.2, 32.9], [-17.2, 32.7]]],
        },
    }
    result = service.project_geojson("portugal", madeira)

    assert result["success"] is True
    [polygon] = result["geometry"]["geometries"]
    assert polygon["type"] == "Polygon"
    ring = polygon["coordinates"][0]
    assert ring[0] == ring[-1]
    assert [b["code"] for b in result["borders"]] == ["PT-CONT", "PT-20", "PT-30"]


def test_invalid_geometry(service) -> None:
    result = service.project_geojson("portugal", {"type": "Blob", "coordinates": []})
    assert result["success"] is False
    assert result["error"].startswith("Invalid geometry")


def test_export_document(service, tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(export_service, "exports_root", lambda: tmp_path)

    result = service.export_document("portugal", notes="check", save=True)

    assert result["success"] is True
    assert result["document"]["metadata"]["notes"] == "check"
    assert result["document"]["pattern"] == "single-focus"
    assert result["path"].startswith(str(tmp_path))
