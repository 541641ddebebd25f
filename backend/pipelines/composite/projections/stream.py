"""
Geometry Streams
Visitor-style geometry traversal shared by projections and the composite router
"""
from __future__ import annotations

import math
from typing import Any, Dict, List, Optional, Tuple

from shapely.errors import ShapelyError
from shapely.geometry import shape
from shapely.geometry.base import BaseGeometry


class Stream:
    """Geometry visitor. Every method is a no-op by default."""

    def point(self, x: float, y: float) -> None:
        pass

    def line_start(self) -> None:
        pass

    def line_end(self) -> None:
        pass

    def polygon_start(self) -> None:
        pass

    def polygon_end(self) -> None:
        pass

    def sphere(self) -> None:
        pass


class ForwardingStream(Stream):
    """Passes every call through to ``sink``; subclasses override what they transform."""

    def __init__(self, sink: Stream):
        self.sink = sink

    def point(self, x: float, y: float) -> None:
        self.sink.point(x, y)

    def line_start(self) -> None:
        self.sink.line_start()

    def line_end(self) -> None:
        self.sink.line_end()

    def polygon_start(self) -> None:
        self.sink.polygon_start()

    def polygon_end(self) -> None:
        self.sink.polygon_end()

    def sphere(self) -> None:
        self.sink.sphere()


class RecordingStream(Stream):
    """Records calls as ``(name, *args)`` tuples; replayable onto another stream."""

    def __init__(self):
        self.calls: List[Tuple[Any, ...]] = []

    def point(self, x: float, y: float) -> None:
        self.calls.append(("point", x, y))

    def line_start(self) -> None:
        self.calls.append(("line_start",))

    def line_end(self) -> None:
        self.calls.append(("line_end",))

    def polygon_start(self) -> None:
        self.calls.append(("polygon_start",))

    def polygon_end(self) -> None:
        self.calls.append(("polygon_end",))

    def sphere(self) -> None:
        self.calls.append(("sphere",))

    def names(self) -> List[str]:
        return [call[0] for call in self.calls]

    def replay(self, stream: Stream) -> None:
        for name, *args in self.calls:
            getattr(stream, name)(*args)


class PointCaptureStream(Stream):
    """Keeps the last point written to it."""

    def __init__(self):
        self.captured: Optional[Tuple[float, float]] = None

    def point(self, x: float, y: float) -> None:
        self.captured = (x, y)

    def reset(self) -> None:
        self.captured = None


class BoundsStream(Stream):
    """Accumulates the planar bounding box of every point."""

    def __init__(self):
        self.x0 = math.inf
        self.y0 = math.inf
        self.x1 = -math.inf
        self.y1 = -math.inf

    def point(self, x: float, y: float) -> None:
        if x < self.x0:
            self.x0 = x
        if x > self.x1:
            self.x1 = x
        if y < self.y0:
            self.y0 = y
        if y > self.y1:
            self.y1 = y

    def result(self) -> Optional[List[List[float]]]:
        if self.x0 > self.x1:
            return None
        return [[self.x0, self.y0], [self.x1, self.y1]]


class GeometryCollectorStream(Stream):
    """
    Rebuilds planar GeoJSON from a stream: polygons from rings, lines and
    lone points. Rings come back closed.
    """

    def __init__(self):
        self.geometries: List[Dict[str, Any]] = []
        self._line: Optional[List[List[float]]] = None
        self._rings: Optional[List[List[List[float]]]] = None

    def point(self, x: float, y: float) -> None:
        if self._line is not None:
            self._line.append([x, y])
        else:
            self.geometries.append({"type": "Point", "coordinates": [x, y]})

    def line_start(self) -> None:
        self._line = []

    def line_end(self) -> None:
        line, self._line = self._line or [], None
        if self._rings is not None:
            if len(line) >= 3:
                self._rings.append(line + [list(line[0])])
        elif len(line) >= 2:
            self.geometries.append({"type": "LineString", "coordinates": line})

    def polygon_start(self) -> None:
        self._rings = []

    def polygon_end(self) -> None:
        rings, self._rings = self._rings or [], None
        if rings:
            self.geometries.append({"type": "Polygon", "coordinates": rings})

    def result(self) -> Dict[str, Any]:
        return {"type": "GeometryCollection", "geometries": list(self.geometries)}


# ----------------------------------------------------------------------
# GeoJSON traversal
# ----------------------------------------------------------------------

def geo_stream(obj: Dict[str, Any], stream: Stream) -> None:
    """
    Walk a GeoJSON object into ``stream``.

    Rings are emitted without their closing coordinate; ``{"type": "Sphere"}``
    emits ``sphere()``. Raises ValueError for geometry shapely cannot read.
    """
    kind = obj.get("type")
    if kind == "FeatureCollection":
        for feature in obj.get("features", []):
            geo_stream(feature, stream)
    elif kind == "Feature":
        if obj.get("geometry"):
            geo_stream(obj["geometry"], stream)
    elif kind == "Sphere":
        stream.sphere()
    else:
        try:
            geometry = shape(obj)
        except (ShapelyError, KeyError, TypeError, IndexError) as e:
            raise ValueError(f"Invalid GeoJSON geometry: {e}") from e
        stream_geometry(geometry, stream)


def stream_geometry(geometry: BaseGeometry, stream: Stream) -> None:
    kind = geometry.geom_type
    if geometry.is_empty:
        return
    if kind == "Point":
        stream.point(geometry.x, geometry.y)
    elif kind == "LineString":
        _stream_line(list(geometry.coords), stream, closed=False)
    elif kind == "LinearRing":
        _stream_line(list(geometry.coords), stream, closed=True)
    elif kind == "Polygon":
        stream.polygon_start()
        _stream_line(list(geometry.exterior.coords), stream, closed=True)
        for interior in geometry.interiors:
            _stream_line(list(interior.coords), stream, closed=True)
        stream.polygon_end()
    elif kind in ("MultiPoint", "MultiLineString", "MultiPolygon", "GeometryCollection"):
        for part in geometry.geoms:
            stream_geometry(part, stream)
    else:
        raise ValueError(f"Unsupported geometry type: {kind}")


def _stream_line(coords: List[Tuple[float, ...]], stream: Stream, closed: bool) -> None:
    if closed and len(coords) > 1 and coords[0] == coords[-1]:
        coords = coords[:-1]
    stream.line_start()
    for coord in coords:
        stream.point(coord[0], coord[1])
    stream.line_end()
