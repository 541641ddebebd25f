"""
Projection Stream Stages
Rotation, small-circle clipping, adaptive resampling and rectangular clipping
"""
from __future__ import annotations

import math
from typing import Callable, List, Optional, Sequence, Tuple

from shapely.geometry import LineString, Polygon, box
from shapely.validation import make_valid

from .rotation import SphericalRotation
from .stream import ForwardingStream, Stream

Projector = Callable[[float, float], Optional[Tuple[float, float]]]

MAX_RESAMPLE_DEPTH = 16
COS_MIN_DISTANCE = math.cos(math.radians(30))


class RotateStream(ForwardingStream):
    """Rotates geographic points (degrees) before they reach ``sink``."""

    def __init__(self, sink: Stream, rotation: SphericalRotation):
        super().__init__(sink)
        self.rotation = rotation

    def point(self, x: float, y: float) -> None:
        lon, lat = self.rotation.forward_degrees(x, y)
        self.sink.point(lon, lat)


class ClipAngleStream(ForwardingStream):
    """
    Drops points farther than ``angle`` degrees from the rotated origin.

    Lines are broken at hidden points; polygon rings simply lose them.
    """

    def __init__(self, sink: Stream, angle: float):
        super().__init__(sink)
        self.cos_radius = math.cos(math.radians(angle))
        self._in_polygon = False
        self._in_line = False
        self._segment_open = False

    def visible(self, lon: float, lat: float) -> bool:
        return math.cos(math.radians(lon)) * math.cos(math.radians(lat)) > self.cos_radius

    def polygon_start(self) -> None:
        self._in_polygon = True
        self.sink.polygon_start()

    def polygon_end(self) -> None:
        self._in_polygon = False
        self.sink.polygon_end()

    def line_start(self) -> None:
        self._in_line = True
        self._segment_open = False
        if self._in_polygon:
            self.sink.line_start()

    def line_end(self) -> None:
        self._in_line = False
        if self._in_polygon:
            self.sink.line_end()
        elif self._segment_open:
            self.sink.line_end()
        self._segment_open = False

    def point(self, x: float, y: float) -> None:
        visible = self.visible(x, y)
        if not self._in_line or self._in_polygon:
            if visible:
                self.sink.point(x, y)
            return

        if visible:
            if not self._segment_open:
                self.sink.line_start()
                self._segment_open = True
            self.sink.point(x, y)
        elif self._segment_open:
            self.sink.line_end()
            self._segment_open = False


def _to_cartesian(lon: float, lat: float) -> Tuple[float, float, float]:
    lam = math.radians(lon)
    phi = math.radians(lat)
    cos_phi = math.cos(phi)
    return cos_phi * math.cos(lam), cos_phi * math.sin(lam), math.sin(phi)


class ResampleStream(ForwardingStream):
    """
    Projects rotated points and adaptively inserts great-circle midpoints.

    A segment is subdivided while its projected midpoint strays more than
    ``precision`` pixels from the straight chord. Precision 0 disables
    resampling.
    """

    def __init__(self, sink: Stream, project: Projector, precision: float):
        super().__init__(sink)
        self.project = project
        self.delta2 = precision * precision
        self._in_polygon = False
        self._in_line = False
        self._first: Optional[Tuple[Tuple[float, float], Tuple[float, float]]] = None
        self._previous: Optional[Tuple[Tuple[float, float], Tuple[float, float]]] = None

    def polygon_start(self) -> None:
        self._in_polygon = True
        self.sink.polygon_start()

    def polygon_end(self) -> None:
        self._in_polygon = False
        self.sink.polygon_end()

    def line_start(self) -> None:
        self._in_line = True
        self._first = None
        self._previous = None
        self.sink.line_start()

    def line_end(self) -> None:
        if self._in_polygon and self._first is not None and self._previous is not None:
            self._resample(self._previous, self._first, MAX_RESAMPLE_DEPTH)
        self._in_line = False
        self._first = None
        self._previous = None
        self.sink.line_end()

    def point(self, x: float, y: float) -> None:
        projected = self.project(x, y)
        if projected is None:
            return
        current = ((x, y), projected)

        if self._in_line:
            if self._previous is not None:
                self._resample(self._previous, current, MAX_RESAMPLE_DEPTH)
            else:
                self._first = current
            self._previous = current

        self.sink.point(*projected)

    def _resample(self, start, end, depth: int) -> None:
        if not self.delta2 or depth <= 0:
            return
        (lon0, lat0), (x0, y0) = start
        (lon1, lat1), (x1, y1) = end
        dx = x1 - x0
        dy = y1 - y0
        d2 = dx * dx + dy * dy
        if d2 <= 4 * self.delta2:
            return

        a0, b0, c0 = _to_cartesian(lon0, lat0)
        a1, b1, c1 = _to_cartesian(lon1, lat1)
        a, b, c = a0 + a1, b0 + b1, c0 + c1
        m = math.sqrt(a * a + b * b + c * c)
        if m == 0:
            return
        lat = math.degrees(math.asin(max(-1.0, min(1.0, c / m))))
        lon = math.degrees(math.atan2(b, a))

        projected = self.project(lon, lat)
        if projected is None:
            return
        x2, y2 = projected
        dx2 = x2 - x0
        dy2 = y2 - y0
        dz = dy * dx2 - dx * dy2
        if (
            dz * dz / d2 > self.delta2
            or abs((dx * dx2 + dy * dy2) / d2 - 0.5) > 0.3
            or a0 * a1 + b0 * b1 + c0 * c1 < COS_MIN_DISTANCE
        ):
            middle = ((lon, lat), projected)
            self._resample(start, middle, depth - 1)
            self.sink.point(x2, y2)
            self._resample(middle, end, depth - 1)


class ClipExtentStream(ForwardingStream):
    """
    Clips projected geometry to the rectangle ``[[x0, y0], [x1, y1]]``.

    Lines and rings are buffered until ``line_end`` and cut with shapely; a
    ring that leaves the rectangle is replaced by the rings of its
    intersection with it.
    """

    def __init__(self, sink: Stream, extent: Sequence[Sequence[float]]):
        super().__init__(sink)
        (self.x0, self.y0), (self.x1, self.y1) = extent
        self._box = box(self.x0, self.y0, self.x1, self.y1)
        self._in_polygon = False
        self._buffer: Optional[List[Tuple[float, float]]] = None

    def contains(self, x: float, y: float) -> bool:
        return self.x0 <= x <= self.x1 and self.y0 <= y <= self.y1

    def polygon_start(self) -> None:
        self._in_polygon = True
        self.sink.polygon_start()

    def polygon_end(self) -> None:
        self._in_polygon = False
        self.sink.polygon_end()

    def line_start(self) -> None:
        self._buffer = []

    def point(self, x: float, y: float) -> None:
        if self._buffer is not None:
            self._buffer.append((x, y))
        elif self.contains(x, y):
            self.sink.point(x, y)

    def line_end(self) -> None:
        points = self._buffer or []
        self._buffer = None
        if all(self.contains(x, y) for x, y in points):
            self._emit(points)
        elif self._in_polygon:
            self._clip_ring(points)
        else:
            self._clip_line(points)

    def _emit(self, points: List[Tuple[float, float]]) -> None:
        if not points:
            return
        self.sink.line_start()
        for x, y in points:
            self.sink.point(x, y)
        self.sink.line_end()

    def _clip_ring(self, points: List[Tuple[float, float]]) -> None:
        if len(points) < 3:
            return
        ring = Polygon(points)
        if not ring.is_valid:
            ring = make_valid(ring)
        clipped = ring.intersection(self._box)
        for part in getattr(clipped, "geoms", [clipped]):
            if part.geom_type == "Polygon" and not part.is_empty:
                self._emit(list(part.exterior.coords)[:-1])

    def _clip_line(self, points: List[Tuple[float, float]]) -> None:
        if len(points) < 2:
            return
        clipped = LineString(points).intersection(self._box)
        for part in getattr(clipped, "geoms", [clipped]):
            if part.geom_type == "LineString" and not part.is_empty:
                self._emit(list(part.coords))
