from __future__ import annotations

import pytest

from .projections.stream import RecordingStream, geo_stream
from .router import RouteEntry, RoutingStream, TerritoryRouter
from .types import TerritoryRole

P, S, M = TerritoryRole.PRIMARY, TerritoryRole.SECONDARY, TerritoryRole.MEMBER


def _router(*entries) -> TerritoryRouter:
    return TerritoryRouter([RouteEntry(code, role, bounds, i) for i, (code, role, bounds) in enumerate(entries)])


def _france() -> TerritoryRouter:
    return _router(
        ("FR", P, [[-5, 41], [10, 51]]),
        ("GP", S, [[-62, 15.8], [-61, 16.6]]),
        ("MQ", S, [[-61.3, 14.3], [-60.8, 14.9]]),
    )


@pytest.mark.parametrize(
    "lon, lat, owner",
    [
        (2.3, 48.8, "FR"),
        (-61.5, 16.2, "GP"),
        (-61.0, 14.6, "MQ"),
        (150, -30, "FR"),
    ],
)
def test_owner_of_point(lon, lat, owner) -> None:
    assert _france().owner_of_point(lon, lat) == owner


def test_secondary_wins_over_overlapping_primary() -> None:
    router = _router(("BIG", P, [[0, 0], [20, 20]]), ("SMALL", S, [[5, 5], [6, 6]]))
    assert router.owner_of_point(5.5, 5.5) == "SMALL"
    assert router.overlapping_pairs() == [("SMALL", "BIG")]


def test_smaller_box_wins_within_a_role() -> None:
    router = _router(
        ("WIDE", M, [[0, 0], [10, 10]]),
        ("NARROW", M, [[2, 2], [4, 4]]),
    )
    assert router.owner_of_point(3, 3) == "NARROW"
    assert router.ordered_codes() == ["NARROW", "WIDE"]


def test_catch_all_falls_back_to_first_member_then_first_entry() -> None:
    assert _router(("A", S, [[0, 0], [1, 1]]), ("B", M, None)).default_code == "B"
    assert _router(("A", S, [[0, 0], [1, 1]]), ("B", S, None)).default_code == "A"
    assert TerritoryRouter([]).default_code is None


def test_owner_of_bbox_uses_containment_then_centre() -> None:
    router = _france()
    assert router.owner_of_bbox([[-61.9, 15.9], [-61.1, 16.5]]) == "GP"
    # straddles the GP box: the centre point decides
    assert router.owner_of_bbox([[-61.8, 16.0], [-60.5, 16.3]]) == "GP"
    assert router.owner_of_bbox([[-70, 0], [-60, 10]]) == "FR"


def test_ordered_codes_put_catch_all_last() -> None:
    assert _france().ordered_codes() == ["MQ", "GP", "FR"]


def test_routing_stream_sends_rings_whole_and_groups_by_owner() -> None:
    recorders = {}

    def stream_for(code):
        return recorders.setdefault(code, RecordingStream())

    stream = RoutingStream(_france(), stream_for)
    geo_stream(
        {
            "type": "MultiPolygon",
            "coordinates": [
                [[[2, 45], [3, 45], [3, 46], [2, 45]]],
                [[[-61.6, 16.0], [-61.4, 16.0], [-61.4, 16.2], [-61.6, 16.0]]],
            ],
        },
        stream,
    )

    assert set(recorders) == {"FR", "GP"}
    for recorder in recorders.values():
        assert recorder.names() == ["polygon_start", "line_start", "point", "point", "point", "line_end", "polygon_end"]


def test_rings_of_one_polygon_split_across_owners() -> None:
    recorders = {}
    stream = RoutingStream(_france(), lambda code: recorders.setdefault(code, RecordingStream()))
    stream.polygon_start()
    for ring in ([(2, 45), (3, 45), (3, 46)], [(-61.6, 16.0), (-61.4, 16.0), (-61.4, 16.2)]):
        stream.line_start()
        for x, y in ring:
            stream.point(x, y)
        stream.line_end()
    stream.polygon_end()

    assert recorders["FR"].names().count("polygon_start") == 1
    assert recorders["GP"].names().count("polygon_start") == 1


def test_lone_points_and_sphere() -> None:
    recorders = {}
    stream = RoutingStream(_france(), lambda code: recorders.setdefault(code, RecordingStream()))
    stream.point(-61.0, 14.6)
    stream.sphere()

    assert recorders["MQ"].calls[0] == ("point", -61.0, 14.6)
    assert all(r.names()[-1] == "sphere" for r in recorders.values())
    assert set(recorders) == {"FR", "GP", "MQ"}
