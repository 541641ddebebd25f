from __future__ import annotations

import copy
import json

import pytest

from pipelines.composite.parameters import LayeredParameterProvider
from pipelines.composite.types import CompositePattern, TerritoryRole

from .export_service import CREATED_WITH, export_role, export_to_json, export_to_string, round_numbers, save_export
from .loader import load_builder
from .preset_loader import load_preset
from .validation import validate_exported_config


@pytest.fixture
def builder():
    return load_builder(copy.deepcopy(load_preset("portugal")))


def _territories(document: dict) -> dict:
    return {t["code"]: t for t in document["territories"]}


@pytest.mark.parametrize(
    "value, expected",
    [
        (1.23456789, 1.234568),
        (-0.0000001, 0.0),
        ([0.1 + 0.2, [2.0000004]], [0.3, [2.0]]),
        (True, True),
        (None, None),
        (7, 7),
    ],
)
def test_round_numbers(value, expected) -> None:
    assert round_numbers(value) == expected


def test_negative_zero_is_normalised() -> None:
    assert str(round_numbers(-0.0)) == "0.0"


@pytest.mark.parametrize(
    "role, pattern, expected",
    [
        (TerritoryRole.SECONDARY, CompositePattern.EQUAL_MEMBERS, "secondary"),
        (TerritoryRole.PRIMARY, CompositePattern.EQUAL_MEMBERS, "member"),
        (TerritoryRole.MEMBER, CompositePattern.SINGLE_FOCUS, "primary"),
        (TerritoryRole.PRIMARY, CompositePattern.HIERARCHICAL, "primary"),
    ],
)
def test_export_role(role, pattern, expected) -> None:
    assert export_role(role, pattern) == expected


def test_export_reads_back_live_parameters(builder) -> None:
    document = export_to_json(builder, "portugal", "Portugal", "single-focus", notes="draft")

    assert document["version"] == "1.0"
    assert document["metadata"]["atlasId"] == "portugal"
    assert document["metadata"]["createdWith"] == CREATED_WITH
    assert document["metadata"]["notes"] == "draft"
    assert document["referenceScale"] == 2700.0
    assert document["canvasDimensions"] == {"width": 960.0, "height": 500.0}

    mainland = _territories(document)["PT-CONT"]
    assert mainland["role"] == "primary"
    assert mainland["projection"] == {
        "id": "conic-conformal",
        "family": "CONIC",
        "parameters": {"rotate": [8.0, -39.5, 0.0], "parallels": [37.0, 42.0], "scaleMultiplier": 1.0},
    }
    assert mainland["layout"] == {"translateOffset": [120.0, 0.0], "pixelClipExtent": [-100.0, -140.0, 100.0, 140.0]}
    assert mainland["bounds"] == [[-9.6, 36.9], [-6.1, 42.2]]


def test_export_writes_only_relative_scale(builder) -> None:
    builder.update_scale("PT-20", 0.75)
    document = export_to_json(builder, "portugal", "Portugal", "single-focus")

    parameters = _territories(document)["PT-20"]["projection"]["parameters"]
    assert parameters["scaleMultiplier"] == 0.75
    assert "scale" not in parameters


def test_null_pixel_clip_extent_keeps_its_key(builder) -> None:
    builder.update_pixel_clip_extent("PT-30", None)
    layout = _territories(export_to_json(builder, "portugal", "Portugal", "single-focus"))["PT-30"]["layout"]
    assert "pixelClipExtent" in layout
    assert layout["pixelClipExtent"] is None


def test_offsets_are_rounded(builder) -> None:
    builder.update_translation_offset("PT-30", [1.23456789, -0.0000001])
    layout = _territories(export_to_json(builder, "portugal", "Portugal", "single-focus"))["PT-30"]["layout"]
    assert layout["translateOffset"] == [1.234568, 0.0]


def test_equal_members_pattern_rewrites_roles(builder) -> None:
    document = export_to_json(builder, "portugal", "Portugal", CompositePattern.EQUAL_MEMBERS)
    roles = {code: t["role"] for code, t in _territories(document).items()}
    assert roles == {"PT-CONT": "member", "PT-20": "secondary", "PT-30": "secondary"}


def test_parameter_provider_supplies_exported_values(builder) -> None:
    provider = LayeredParameterProvider.from_configuration(builder.configuration)
    provider.set_territory_parameter("PT-20", "scale_multiplier", 0.8)
    provider.set_global_parameter("precision", 0.1)

    document = export_to_json(builder, "portugal", "Portugal", "single-focus", parameter_provider=provider)
    parameters = _territories(document)["PT-20"]["projection"]["parameters"]
    assert parameters["scaleMultiplier"] == 0.8
    assert "precision" not in parameters


def test_exported_document_validates_and_reloads(builder) -> None:
    builder.update_scale("PT-30", 1.5)
    document = export_to_json(builder, "portugal", "Portugal", "single-focus")

    assert validate_exported_config(document)["valid"] is True
    assert load_builder(document).get_effective_scales() == builder.get_effective_scales()


def test_export_to_string_is_json(builder) -> None:
    text = export_to_string(builder, "portugal", "Portugal", "single-focus", indent=None)
    assert json.loads(text)["metadata"]["atlasName"] == "Portugal"


def test_save_export(builder, tmp_path) -> None:
    document = export_to_json(builder, "portugal", "Portugal", "single-focus")
    path = save_export(document, tmp_path)

    assert path.parent == tmp_path
    assert path.name.startswith("portugal-")
    assert json.loads(path.read_text(encoding="utf-8")) == document
