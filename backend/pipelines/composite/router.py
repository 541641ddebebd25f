"""
Territory Router
Resolves which territory owns a point or a ring, and a geometry stream that
forwards each ring whole to its owner's sub-projection stream
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from shapely.geometry import box

from .projections.stream import Stream
from .types import Bounds, TerritoryRole, bounds_contains, bounds_of_points

logger = logging.getLogger(__name__)

# Lower tests first; the primary is the catch-all and is tested last.
ROLE_PRIORITY: Dict[TerritoryRole, int] = {
    TerritoryRole.SECONDARY: 0,
    TerritoryRole.MEMBER: 1,
    TerritoryRole.PRIMARY: 2,
}


@dataclass(frozen=True)
class RouteEntry:
    code: str
    role: TerritoryRole
    bounds: Optional[Bounds]
    order: int


def _area(bounds: Bounds) -> float:
    (x0, y0), (x1, y1) = bounds
    return max(0.0, x1 - x0) * max(0.0, y1 - y0)


def _bbox_within(inner: Bounds, outer: Bounds) -> bool:
    return (
        outer[0][0] <= inner[0][0]
        and outer[0][1] <= inner[0][1]
        and inner[1][0] <= outer[1][0]
        and inner[1][1] <= outer[1][1]
    )


class TerritoryRouter:
    """
    Ownership by bounding box in a fixed priority order.

    Candidates are ordered secondary, member, primary; within a role the
    smaller bounding box comes first, then configuration order. Anything no
    candidate claims goes to the catch-all: the first primary, else the first
    member, else the first territory.
    """

    def __init__(self, entries: Sequence[RouteEntry]):
        self.entries = list(entries)
        self.candidates = sorted(
            (e for e in self.entries if e.bounds),
            key=lambda e: (ROLE_PRIORITY[e.role], _area(e.bounds), e.order),
        )
        self.default_code = self._catch_all()

    def _catch_all(self) -> Optional[str]:
        for role in (TerritoryRole.PRIMARY, TerritoryRole.MEMBER):
            for entry in self.entries:
                if entry.role == role:
                    return entry.code
        return self.entries[0].code if self.entries else None

    def ordered_codes(self) -> List[str]:
        """Candidate codes in routing order, catch-all last."""
        codes = [e.code for e in self.candidates if e.code != self.default_code]
        if self.default_code is not None:
            codes.append(self.default_code)
        codes.extend(e.code for e in self.entries if e.code not in codes)
        return codes

    def owner_of_point(self, lon: float, lat: float) -> Optional[str]:
        for entry in self.candidates:
            if bounds_contains(entry.bounds, lon, lat):
                return entry.code
        return self.default_code

    def owner_of_bbox(self, bbox: Bounds) -> Optional[str]:
        for entry in self.candidates:
            if _bbox_within(bbox, entry.bounds):
                return entry.code
        center_lon = (bbox[0][0] + bbox[1][0]) / 2
        center_lat = (bbox[0][1] + bbox[1][1]) / 2
        return self.owner_of_point(center_lon, center_lat)

    def overlapping_pairs(self) -> List[Tuple[str, str]]:
        """Pairs of territories whose bounds share area; their rings resolve by priority."""
        pairs: List[Tuple[str, str]] = []
        boxes = [(e.code, box(e.bounds[0][0], e.bounds[0][1], e.bounds[1][0], e.bounds[1][1])) for e in self.candidates]
        for i, (code_a, box_a) in enumerate(boxes):
            for code_b, box_b in boxes[i + 1:]:
                if box_a.intersection(box_b).area > 0:
                    pairs.append((code_a, code_b))
        return pairs


class RoutingStream(Stream):
    """
    Geometry visitor that routes each unit to exactly one sub-projection stream.

    Lines and rings are buffered until ``line_end`` and replayed whole on the
    owner's stream. Inside a polygon, rings are grouped by owner and each
    owner receives its own ``polygon_start`` ... ``polygon_end``. ``sphere``
    goes to every sub-projection.
    """

    def __init__(self, router: TerritoryRouter, stream_for: Callable[[str], Stream]):
        self._router = router
        self._stream_for = stream_for
        self._streams: Dict[str, Stream] = {}
        self._line: Optional[List[Tuple[float, float]]] = None
        self._in_polygon = False
        self._rings: List[Tuple[Optional[str], List[Tuple[float, float]]]] = []

    def _sub(self, code: str) -> Stream:
        stream = self._streams.get(code)
        if stream is None:
            stream = self._stream_for(code)
            self._streams[code] = stream
        return stream

    def point(self, x: float, y: float) -> None:
        if self._line is not None:
            self._line.append((x, y))
            return
        code = self._router.owner_of_point(x, y)
        if code is not None:
            self._sub(code).point(x, y)

    def line_start(self) -> None:
        self._line = []

    def line_end(self) -> None:
        points = self._line or []
        self._line = None
        code = self._router.owner_of_bbox(bounds_of_points(points)) if points else self._router.default_code

        if self._in_polygon:
            self._rings.append((code, points))
        elif code is not None:
            self._replay_line(self._sub(code), points)

    def polygon_start(self) -> None:
        self._in_polygon = True
        self._rings = []

    def polygon_end(self) -> None:
        self._in_polygon = False
        grouped: Dict[str, List[List[Tuple[float, float]]]] = {}
        for code, points in self._rings:
            if code is not None:
                grouped.setdefault(code, []).append(points)
        self._rings = []

        for code, rings in grouped.items():
            stream = self._sub(code)
            stream.polygon_start()
            for points in rings:
                self._replay_line(stream, points)
            stream.polygon_end()

    def sphere(self) -> None:
        for code in self._router.ordered_codes():
            self._sub(code).sphere()

    @staticmethod
    def _replay_line(stream: Stream, points: List[Tuple[float, float]]) -> None:
        stream.line_start()
        for x, y in points:
            stream.point(x, y)
        stream.line_end()
