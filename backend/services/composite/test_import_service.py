from __future__ import annotations

import copy
import json

import pytest

from pipelines.composite.types import ProjectionFamily, TerritoryRole

from .import_service import check_atlas_compatibility, import_from_file, import_from_json, to_configuration
from .preset_loader import load_preset
from .validation import INVALID_TYPE


@pytest.fixture
def document() -> dict:
    return copy.deepcopy(load_preset("portugal"))


def test_invalid_json() -> None:
    result = import_from_json("{not json")

    assert result["success"] is False
    [error] = result["errors"]
    assert error["code"] == INVALID_TYPE
    assert error["message"].startswith("Invalid JSON:")


def test_valid_json_returns_document(document) -> None:
    result = import_from_json(json.dumps(document))
    assert result["success"] is True
    assert result["config"]["metadata"]["atlasId"] == "portugal"


def test_to_configuration_maps_document_fields(document) -> None:
    configuration = to_configuration(document)

    assert configuration.atlas_id == "portugal"
    assert configuration.reference_scale == 2700
    assert configuration.get_territory_codes() == ["PT-CONT", "PT-20", "PT-30"]

    azores = configuration.get_territory("PT-20")
    assert azores.family is ProjectionFamily.CONIC
    assert azores.role is TerritoryRole.SECONDARY
    assert azores.parameters == {"rotate": [28.0, -38.5, 0.0], "parallels": [36.5, 40.5], "scale_multiplier": 0.6}
    assert azores.translate_offset == [-200.0, -90.0]
    assert azores.pixel_clip_extent == [-110.0, -60.0, 110.0, 60.0]
    assert azores.bounds == [[-31.4, 36.9], [-24.9, 39.8]]


def test_unknown_projection_takes_family_from_document(document) -> None:
    projection = document["territories"][2]["projection"]
    projection["id"] = "bonne"
    projection["family"] = "POLYCONIC"

    territory = to_configuration(document).get_territory("PT-30")
    assert territory.projection_id == "bonne"
    assert territory.family is ProjectionFamily.OTHER


def test_unknown_parameters_are_dropped(document) -> None:
    document["territories"][0]["projection"]["parameters"]["wobble"] = 3
    assert "wobble" not in to_configuration(document).get_territory("PT-CONT").parameters


def test_atlas_compatibility(document) -> None:
    assert check_atlas_compatibility(document, "portugal")["warnings"] == []

    result = check_atlas_compatibility(document, "france")
    assert result["valid"] is True
    [warning] = result["warnings"]
    assert warning["path"] == "metadata.atlasId"
    assert "'portugal'" in warning["message"]


def test_import_from_file(tmp_path, document) -> None:
    path = tmp_path / "portugal.json"
    path.write_text(json.dumps(document), encoding="utf-8")
    assert import_from_file(path)["success"] is True

    text = tmp_path / "portugal.txt"
    text.write_text("{}", encoding="utf-8")
    assert "JSON file" in import_from_file(text)["errors"][0]["message"]

    assert "not found" in import_from_file(tmp_path / "missing.json")["errors"][0]["message"]
