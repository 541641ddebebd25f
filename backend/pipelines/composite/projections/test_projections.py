from __future__ import annotations

import math

import pytest

from ..errors import ProjectionError
from ..types import ExportFamily, ProjectionFamily
from .projection import Projection
from .raw import RawProjection
from .registry import ProjectionDefinition, ProjectionRegistry, get_default_registry
from .stream import BoundsStream, GeometryCollectorStream, RecordingStream, geo_stream

SQUARE = {
    "type": "Polygon",
    "coordinates": [[[0, 0], [10, 0], [10, 10], [0, 10], [0, 0]]],
}


def _mercator() -> Projection:
    return Projection(RawProjection("merc"))


# ----------------------------------------------------------------------
# Registry
# ----------------------------------------------------------------------

@pytest.mark.parametrize(
    "key, expected",
    [
        ("conic-conformal", "conic-conformal"),
        ("conicConformal", "conic-conformal"),
        ("LAMBERT", "conic-conformal"),
        ("albers", "conic-equal-area"),
        ("naturalEarth1", "natural-earth"),
        ("Mercator", "mercator"),
    ],
)
def test_registry_resolves_ids_and_aliases(key, expected) -> None:
    assert get_default_registry().resolve_id(key) == expected


def test_registry_unknown_ids() -> None:
    registry = get_default_registry()
    assert registry.get("nope") is None
    assert registry.get(None) is None
    assert "nope" not in registry
    with pytest.raises(ProjectionError, match="Unknown projection: nope"):
        registry.create("nope")


def test_registry_families() -> None:
    registry = get_default_registry()
    assert registry.family_of("albers") is ProjectionFamily.CONIC
    assert registry.family_of("equal-earth") is ProjectionFamily.PSEUDOCYLINDRICAL
    conic_ids = {d.id for d in registry.list_definitions(ProjectionFamily.CONIC)}
    assert conic_ids == {"conic-conformal", "conic-equal-area", "conic-equidistant"}


@pytest.mark.parametrize(
    "family, expected",
    [
        (ProjectionFamily.CYLINDRICAL, "mercator"),
        (ProjectionFamily.CONIC, "conic-conformal"),
        (ProjectionFamily.AZIMUTHAL, "azimuthal-equal-area"),
        (ProjectionFamily.PSEUDOCYLINDRICAL, "equal-earth"),
        (ProjectionFamily.POLYHEDRAL, "mercator"),
        (ProjectionFamily.OTHER, "mercator"),
    ],
)
def test_default_projection_per_family(family, expected) -> None:
    assert get_default_registry().default_for_family(family).id == expected


def test_interchange_family() -> None:
    registry = get_default_registry()
    assert registry.get("polyconic").interchange_family is ExportFamily.POLYCONIC
    assert registry.get("satellite").interchange_family is ExportFamily.MISCELLANEOUS
    assert registry.get("mercator").interchange_family is ExportFamily.CYLINDRICAL


def test_register_returns_new_registry() -> None:
    registry = get_default_registry()
    custom = ProjectionDefinition(
        id="custom-mercator",
        name="Custom",
        family=ProjectionFamily.CYLINDRICAL,
        factory=_mercator,
        aliases=("customMercator",),
    )

    extended = registry.register(custom)

    assert extended.has("CUSTOMMERCATOR")
    assert not registry.has("custom-mercator")
    assert len(extended) == len(registry) + 1
    assert isinstance(extended.create("custom-mercator"), Projection)


def test_conflicting_alias_is_rejected() -> None:
    clash = ProjectionDefinition(
        id="other",
        name="Other",
        family=ProjectionFamily.CONIC,
        factory=_mercator,
        aliases=("Lambert",),
    )
    with pytest.raises(ValueError, match="already registered"):
        get_default_registry().register(clash)


def test_registry_rejects_duplicate_keys_at_construction() -> None:
    first = ProjectionDefinition("a", "A", ProjectionFamily.OTHER, _mercator, aliases=("x",))
    second = ProjectionDefinition("b", "B", ProjectionFamily.OTHER, _mercator, aliases=("X",))
    with pytest.raises(ValueError):
        ProjectionRegistry([first, second])


@pytest.mark.parametrize("projection_id", [d.id for d in get_default_registry().list_definitions()])
def test_every_builtin_projects_its_origin_to_translate(projection_id) -> None:
    projection = get_default_registry().create(projection_id)
    x, y = projection((0, 0))
    assert x == pytest.approx(480, abs=1e-6)
    assert y == pytest.approx(250, abs=1e-6)


# ----------------------------------------------------------------------
# Projection
# ----------------------------------------------------------------------

def test_mercator_point_transform_is_y_down() -> None:
    projection = _mercator().scale(100).translate([0, 0])

    x, y = projection((90, 0))
    assert x == pytest.approx(100 * math.pi / 2)
    assert y == pytest.approx(0, abs=1e-9)
    assert projection((0, 45))[1] < 0


def test_invert_round_trip() -> None:
    projection = _mercator().scale(500).translate([300, 200]).rotate([-12, 0, 0])
    lon, lat = projection.invert(projection((20.5, -33.25)))
    assert lon == pytest.approx(20.5)
    assert lat == pytest.approx(-33.25)


def test_center_lands_on_translate() -> None:
    projection = _mercator().scale(800).translate([480, 250]).center([10, 20])
    x, y = projection((10, 20))
    assert (x, y) == (pytest.approx(480), pytest.approx(250))


def test_rotate_moves_focus_to_translate() -> None:
    projection = _mercator().translate([480, 250]).rotate([-10, 0, 0])
    x, y = projection((10, 0))
    assert (x, y) == (pytest.approx(480), pytest.approx(250))
    assert projection.rotate() == [-10.0, 0.0, 0.0]


def test_rotate_without_gamma() -> None:
    assert _mercator().rotate([5, 6]).rotate() == [5.0, 6.0, 0.0]


def test_parallels_only_on_conic_projections() -> None:
    conic = get_default_registry().create("conic-conformal")
    assert conic.parallels() == [30.0, 60.0]
    assert conic.parallels([40, 50]).parallels() == [40.0, 50.0]

    mercator = _mercator()
    assert mercator.parallels() is None
    assert mercator.parallels([40, 50]) is mercator
    assert mercator.supports("parallels") is False


def test_satellite_distance_and_tilt() -> None:
    satellite = get_default_registry().create("satellite")
    assert satellite.distance() == pytest.approx(2.0)
    assert satellite.tilt() == 0.0
    assert satellite.clip_angle() == 60.0
    assert satellite.distance(3).distance() == pytest.approx(3.0)
    assert _mercator().distance() is None


def test_clip_extent_accessor() -> None:
    projection = _mercator()
    assert projection.clip_extent() is None
    projection.clip_extent([[0, 0], [100, 50]])
    assert projection.clip_extent() == [[0.0, 0.0], [100.0, 50.0]]
    assert projection.clip_extent(None).clip_extent() is None


def test_copy_is_independent() -> None:
    original = _mercator().scale(300).translate([10, 20])
    clone = original.copy()
    clone.scale(50).translate([0, 0])

    assert original.scale() == 300
    assert original.translate() == [10, 20]
    assert clone((0, 0)) == (pytest.approx(0), pytest.approx(0))


def test_fit_size_fills_the_canvas() -> None:
    projection = _mercator().fit_size([960, 500], SQUARE)

    bounds_stream = BoundsStream()
    geo_stream(SQUARE, projection.stream(bounds_stream))
    (x0, y0), (x1, y1) = bounds_stream.result()

    assert x0 >= -1 and x1 <= 961
    assert y0 == pytest.approx(0, abs=1)
    assert y1 == pytest.approx(500, abs=1)
    assert (x0 + x1) / 2 == pytest.approx(480, abs=1)


def test_fit_with_nothing_projectable_leaves_projection_alone() -> None:
    projection = _mercator().scale(123)
    projection.fit_size([960, 500], {"type": "GeometryCollection", "geometries": []})
    assert projection.scale() == 150


# ----------------------------------------------------------------------
# Streams
# ----------------------------------------------------------------------

def test_stream_projects_line_endpoints() -> None:
    projection = _mercator().scale(200).precision(0)
    collector = GeometryCollectorStream()
    geo_stream({"type": "LineString", "coordinates": [[0, 0], [30, 10]]}, projection.stream(collector))

    [line] = collector.result()["geometries"]
    assert line["type"] == "LineString"
    assert line["coordinates"][0] == pytest.approx(list(projection((0, 0))))
    assert line["coordinates"][-1] == pytest.approx(list(projection((30, 10))))


def test_polygon_outside_clip_extent_vanishes() -> None:
    projection = _mercator().scale(100).translate([0, 0]).clip_extent([[-10, -10], [10, 10]])
    collector = GeometryCollectorStream()
    geo_stream(
        {"type": "Polygon", "coordinates": [[[60, 0], [70, 0], [70, 10], [60, 10], [60, 0]]]},
        projection.stream(collector),
    )
    assert collector.result()["geometries"] == []


def test_line_crossing_clip_extent_is_cut() -> None:
    projection = _mercator().scale(100).translate([0, 0]).precision(0).clip_extent([[-10, -10], [10, 10]])
    collector = GeometryCollectorStream()
    geo_stream({"type": "LineString", "coordinates": [[-20, 0], [20, 0]]}, projection.stream(collector))

    [line] = collector.result()["geometries"]
    xs = [x for x, _ in line["coordinates"]]
    assert min(xs) == pytest.approx(-10)
    assert max(xs) == pytest.approx(10)


def test_geometry_collector_closes_rings() -> None:
    collector = GeometryCollectorStream()
    collector.polygon_start()
    collector.line_start()
    for x, y in [(0, 0), (1, 0), (1, 1)]:
        collector.point(x, y)
    collector.line_end()
    collector.polygon_end()
    collector.point(5, 5)

    polygon, point = collector.result()["geometries"]
    assert polygon == {"type": "Polygon", "coordinates": [[[0, 0], [1, 0], [1, 1], [0, 0]]]}
    assert point == {"type": "Point", "coordinates": [5, 5]}


def test_geo_stream_event_order() -> None:
    recorder = RecordingStream()
    geo_stream({"type": "Feature", "geometry": SQUARE}, recorder)
    assert recorder.names() == ["polygon_start", "line_start"] + ["point"] * 4 + ["line_end", "polygon_end"]
