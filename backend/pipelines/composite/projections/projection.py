"""
Projection
Callable geographic-to-pixel projection with the standard accessor surface:
scale, translate, center, rotate, parallels, clip angle, clip extent,
precision, invert, stream and fitting
"""
from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .clip import ClipAngleStream, ClipExtentStream, ResampleStream, RotateStream
from .raw import RawProjection
from .rotation import SphericalRotation
from .stream import BoundsStream, Stream, geo_stream

logger = logging.getLogger(__name__)

_UNSET: Any = object()

CONIC_PROJS = {"lcc", "aea", "eqdc"}
SATELLITE_PROJS = {"tpers"}


class Projection:
    """
    Projection built from a raw pyproj projection.

    Point pipeline: rotate, raw projection, scale, translate (y down). The
    ``center`` point is taken in the rotated frame and lands on ``translate``.
    Accessors return the current value when called without an argument and
    return ``self`` when setting, so calls chain.
    """

    def __init__(self, raw: RawProjection):
        self._raw = raw
        self._scale = 150.0
        self._translate = (480.0, 250.0)
        self._center = (0.0, 0.0)
        self._rotate = (0.0, 0.0, 0.0)
        self._clip_angle: Optional[float] = None
        self._clip_extent: Optional[List[List[float]]] = None
        self._precision = math.sqrt(0.5)
        self._rotation = SphericalRotation(self._rotate)
        self._dx = 0.0
        self._dy = 0.0
        self._recenter()

    # ------------------------------------------------------------------
    # Point transforms
    # ------------------------------------------------------------------

    def __call__(self, point: Sequence[float]) -> Optional[Tuple[float, float]]:
        lon, lat = self._rotation.forward_degrees(point[0], point[1])
        return self._project_rotated(lon, lat)

    def invert(self, point: Sequence[float]) -> Optional[Tuple[float, float]]:
        x = (point[0] - self._dx) / self._scale
        y = (self._dy - point[1]) / self._scale
        lonlat = self._raw.inverse(x, y)
        if lonlat is None:
            return None
        lon, lat = self._rotation.invert_degrees(*lonlat)
        if not (math.isfinite(lon) and math.isfinite(lat)):
            return None
        return lon, lat

    def _project_rotated(self, lon: float, lat: float) -> Optional[Tuple[float, float]]:
        xy = self._raw.forward(lon, lat)
        if xy is None:
            return None
        return self._dx + self._scale * xy[0], self._dy - self._scale * xy[1]

    def stream(self, sink: Stream) -> Stream:
        """Geometry visitor that projects, resamples and clips into ``sink``."""
        stream: Stream = sink
        if self._clip_extent is not None:
            stream = ClipExtentStream(stream, self._clip_extent)
        stream = ResampleStream(stream, self._project_rotated, self._precision)
        if self._clip_angle is not None:
            stream = ClipAngleStream(stream, self._clip_angle)
        return RotateStream(stream, self._rotation)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def scale(self, k: Any = _UNSET):
        if k is _UNSET:
            return self._scale
        self._scale = float(k)
        return self._recenter()

    def translate(self, t: Any = _UNSET):
        if t is _UNSET:
            return [self._translate[0], self._translate[1]]
        self._translate = (float(t[0]), float(t[1]))
        return self._recenter()

    def center(self, c: Any = _UNSET):
        if c is _UNSET:
            return [self._center[0], self._center[1]]
        self._center = (float(c[0]), float(c[1]))
        return self._recenter()

    def rotate(self, r: Any = _UNSET):
        if r is _UNSET:
            return list(self._rotate)
        gamma = float(r[2]) if len(r) > 2 else 0.0
        self._rotate = (float(r[0]), float(r[1]), gamma)
        self._rotation = SphericalRotation(self._rotate)
        return self

    def precision(self, p: Any = _UNSET):
        if p is _UNSET:
            return self._precision
        self._precision = float(p)
        return self

    def clip_angle(self, angle: Any = _UNSET):
        if angle is _UNSET:
            return self._clip_angle
        self._clip_angle = float(angle) if angle else None
        return self

    def clip_extent(self, extent: Any = _UNSET):
        if extent is _UNSET:
            return [list(corner) for corner in self._clip_extent] if self._clip_extent else None
        if extent is None:
            self._clip_extent = None
        else:
            (x0, y0), (x1, y1) = extent
            self._clip_extent = [[float(x0), float(y0)], [float(x1), float(y1)]]
        return self

    def parallels(self, values: Any = _UNSET):
        if values is _UNSET:
            if not self.supports("parallels"):
                return None
            return [float(self._raw.options.get("lat_1", 30)), float(self._raw.options.get("lat_2", 60))]
        if not self.supports("parallels"):
            logger.debug(f"🔧 Ignoring parallels for non-conic projection {self._raw.proj_name}")
            return self
        self._raw = self._raw.with_options(lat_1=float(values[0]), lat_2=float(values[1]))
        return self._recenter()

    def distance(self, value: Any = _UNSET):
        if value is _UNSET:
            if not self.supports("distance"):
                return None
            return 1.0 + float(self._raw.options.get("h", 1.0))
        if not self.supports("distance"):
            return self
        self._raw = self._raw.with_options(h=float(value) - 1.0)
        return self._recenter()

    def tilt(self, value: Any = _UNSET):
        if value is _UNSET:
            if not self.supports("tilt"):
                return None
            return float(self._raw.options.get("tilt", 0.0))
        if not self.supports("tilt"):
            return self
        self._raw = self._raw.with_options(tilt=float(value))
        return self._recenter()

    def supports(self, option: str) -> bool:
        if option == "parallels":
            return self._raw.proj_name in CONIC_PROJS
        if option in ("distance", "tilt"):
            return self._raw.proj_name in SATELLITE_PROJS
        return hasattr(self, option)

    # ------------------------------------------------------------------
    # Fitting
    # ------------------------------------------------------------------

    def fit_extent(self, extent: Sequence[Sequence[float]], obj: Dict[str, Any]):
        """Scale and translate so ``obj`` fills ``extent`` ([[x0, y0], [x1, y1]])."""
        return fit_extent(self, extent, obj)

    def fit_size(self, size: Sequence[float], obj: Dict[str, Any]):
        return self.fit_extent([[0.0, 0.0], [size[0], size[1]]], obj)

    def copy(self) -> "Projection":
        other = Projection(self._raw)
        other._scale = self._scale
        other._translate = self._translate
        other._center = self._center
        other._precision = self._precision
        other._clip_angle = self._clip_angle
        other._clip_extent = [list(c) for c in self._clip_extent] if self._clip_extent else None
        other.rotate(self._rotate)
        other._recenter()
        return other

    def _recenter(self) -> "Projection":
        center = self._raw.forward(self._center[0], self._center[1]) or (0.0, 0.0)
        self._dx = self._translate[0] - self._scale * center[0]
        self._dy = self._translate[1] + self._scale * center[1]
        return self

    def __repr__(self) -> str:
        return f"Projection({self._raw.proj_name}, scale={self._scale:.2f}, translate={self._translate})"


def fit_extent(projection: Any, extent: Sequence[Sequence[float]], obj: Dict[str, Any]):
    """
    Fit any projection exposing scale/translate/clip_extent/stream to an extent.

    The object's projected bounds are measured at scale 150 with no clip
    extent, then scale and translate are solved to centre it in ``extent``.
    """
    clip = projection.clip_extent()
    projection.scale(150).translate([0, 0])
    if clip is not None:
        projection.clip_extent(None)

    bounds_stream = BoundsStream()
    geo_stream(obj, projection.stream(bounds_stream))
    bounds = bounds_stream.result()

    if clip is not None:
        projection.clip_extent(clip)
    if bounds is None:
        logger.warning("⚠️ Cannot fit projection: object has no projectable points")
        return projection

    (bx0, by0), (bx1, by1) = bounds
    width = extent[1][0] - extent[0][0]
    height = extent[1][1] - extent[0][1]
    span_x = bx1 - bx0
    span_y = by1 - by0
    candidates = [v for v in (width / span_x if span_x else None, height / span_y if span_y else None) if v]
    if not candidates:
        return projection
    k = min(candidates)
    x = extent[0][0] + (width - k * (bx1 + bx0)) / 2
    y = extent[0][1] + (height - k * (by1 + by0)) / 2
    return projection.scale(150 * k).translate([x, y])
