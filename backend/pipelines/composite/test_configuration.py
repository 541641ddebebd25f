from __future__ import annotations

import pytest

from .configuration import CompositeConfiguration, TerritoryProjectionConfig
from .errors import ConfigurationError
from .types import ProjectionFamily, TerritoryRole


def _configuration() -> CompositeConfiguration:
    return CompositeConfiguration("atlas-x", "X", 1000, {"width": 800, "height": 600})


def _territory(code: str = "A", **overrides) -> dict:
    data = {
        "code": code,
        "projection_id": "conic-conformal",
        "family": "CONIC",
        "parameters": {},
        "translate_offset": [0, 0],
        "pixel_clip_extent": None,
    }
    data.update(overrides)
    return data


def test_add_territory_registers_code() -> None:
    config = _configuration()
    config.add_territory(_territory())

    assert config.territory_count == 1
    assert config.has_territory("A") is True
    territory = config.get_territory("A")
    assert territory.family is ProjectionFamily.CONIC
    assert territory.name == "A"


@pytest.mark.parametrize("multiplier", [0, -1, -0.5])
def test_add_territory_rejects_non_positive_scale_multiplier(multiplier) -> None:
    config = _configuration()
    with pytest.raises(ConfigurationError):
        config.add_territory(_territory(parameters={"scale_multiplier": multiplier}))
    assert config.territory_count == 0


def test_update_territory_rejects_negative_multiplier_and_keeps_state() -> None:
    config = _configuration()
    config.add_territory(_territory(parameters={"scale_multiplier": 1.5}))

    with pytest.raises(ConfigurationError):
        config.update_territory("A", {"parameters": {"scale_multiplier": -1}})

    assert config.get_territory("A").scale_multiplier == 1.5


def test_duplicate_territory_code_is_rejected() -> None:
    config = _configuration()
    config.add_territory(_territory())
    with pytest.raises(ConfigurationError, match="already exists"):
        config.add_territory(_territory(projection_id="mercator", family="CYLINDRICAL"))
    assert config.get_territory("A").projection_id == "conic-conformal"


def test_removing_last_territory_raises_and_leaves_state() -> None:
    config = _configuration()
    config.add_territory(_territory())

    with pytest.raises(ConfigurationError, match="last territory"):
        config.remove_territory("A")
    assert config.has_territory("A")


def test_remove_territory() -> None:
    config = _configuration()
    config.add_territory(_territory("A"))
    config.add_territory(_territory("B"))

    assert config.remove_territory("B") is True
    assert config.remove_territory("missing") is False
    assert config.get_territory_codes() == ["A"]


@pytest.mark.parametrize(
    "atlas_id, scale, dimensions",
    [
        ("", 1000, {"width": 800, "height": 600}),
        ("atlas", 0, {"width": 800, "height": 600}),
        ("atlas", -5, {"width": 800, "height": 600}),
        ("atlas", 1000, {"width": 0, "height": 600}),
        ("atlas", 1000, {"width": 800}),
        ("atlas", True, {"width": 800, "height": 600}),
    ],
)
def test_constructor_rejects_invalid_metadata(atlas_id, scale, dimensions) -> None:
    with pytest.raises(ConfigurationError):
        CompositeConfiguration(atlas_id, "Atlas", scale, dimensions)


def test_update_of_unknown_territory_raises() -> None:
    config = _configuration()
    config.add_territory(_territory())
    with pytest.raises(ConfigurationError, match="not found"):
        config.update_territory("B", {"name": "B"})


def test_unknown_territory_field_is_rejected() -> None:
    config = _configuration()
    with pytest.raises(ConfigurationError, match="Unknown territory fields"):
        config.add_territory(_territory(projectionId="mercator"))


def test_accessors_return_copies() -> None:
    config = _configuration()
    config.add_territory(_territory(parameters={"rotate": [-3, -46, 0]}))

    territory = config.get_territory("A")
    territory.parameters["rotate"][0] = 99
    dimensions = config.canvas_dimensions
    dimensions["width"] = 1

    assert config.get_territory("A").parameters["rotate"][0] == -3
    assert config.canvas_dimensions["width"] == 800


def test_role_queries() -> None:
    config = _configuration()
    config.add_territory(_territory("A", role="primary"))
    config.add_territory(_territory("B", role="secondary"))
    config.add_territory(TerritoryProjectionConfig(code="C", projection_id="mercator", role=TerritoryRole.MEMBER))

    assert [t.code for t in config.get_primary_territories()] == ["A"]
    assert [t.code for t in config.get_secondary_territories()] == ["B"]
    assert [t.code for t in config.get_member_territories()] == ["C"]


def test_dict_round_trip() -> None:
    config = _configuration()
    config.add_territory(_territory("A", role="primary", parameters={"rotate": [-3, -46.5, 0], "scale_multiplier": 1.2}))
    config.add_territory(_territory(
        "B",
        projection_id="mercator",
        family="CYLINDRICAL",
        parameters={"center": [55.5, -21.1]},
        translate_offset=[-200, 150],
        pixel_clip_extent=[-40, -30, 40, 30],
        bounds=[[55.2, -21.4], [55.9, -20.8]],
    ))

    data = config.to_dict()
    assert CompositeConfiguration.from_dict(data).to_dict() == data


def test_validate_reports_ok_configuration() -> None:
    config = _configuration()
    config.add_territory(_territory())
    assert config.validate() == {"valid": True, "errors": []}
