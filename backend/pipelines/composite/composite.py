"""
Composite Projection
One callable projection assembled from per-territory sub-projections
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .errors import ConfigurationError
from .projections.projection import fit_extent
from .projections.stream import PointCaptureStream, Stream
from .router import RouteEntry, RoutingStream, TerritoryRouter
from .types import Bounds, ProjectionFamily, TerritoryRole, bounds_contains

logger = logging.getLogger(__name__)

CLIP_EPSILON = 1e-6
DEFAULT_INVERT_TOLERANCE = 0.01

_UNSET: Any = object()


@dataclass
class SubProjectionInstance:
    """A territory's projection plus the placement data used to position it."""

    code: str
    name: str
    role: TerritoryRole
    projection_id: str
    family: ProjectionFamily
    projection: Any
    scale_multiplier: float = 1.0
    translate_offset: List[float] = field(default_factory=lambda: [0.0, 0.0])
    pixel_clip_extent: Optional[List[float]] = None
    bounds: Optional[Bounds] = None

    def copy(self) -> "SubProjectionInstance":
        return SubProjectionInstance(
            code=self.code,
            name=self.name,
            role=self.role,
            projection_id=self.projection_id,
            family=self.family,
            projection=self.projection.copy(),
            scale_multiplier=self.scale_multiplier,
            translate_offset=list(self.translate_offset),
            pixel_clip_extent=list(self.pixel_clip_extent) if self.pixel_clip_extent else None,
            bounds=[list(c) for c in self.bounds] if self.bounds else None,
        )


def clip_extent_from_pixel_offset(
    placement: Sequence[float], pixel_clip_extent: Sequence[float], epsilon: float = CLIP_EPSILON
) -> List[List[float]]:
    x1, y1, x2, y2 = pixel_clip_extent
    return [
        [placement[0] + x1 + epsilon, placement[1] + y1 + epsilon],
        [placement[0] + x2 - epsilon, placement[1] + y2 - epsilon],
    ]


def clip_extent_from_bounds(projection: Any, bounds: Bounds, epsilon: float = CLIP_EPSILON) -> Optional[List[List[float]]]:
    """Rectangle spanned by the projected north-west and south-east corners of ``bounds``."""
    (min_lon, min_lat), (max_lon, max_lat) = bounds
    top_left = projection([min_lon + epsilon, max_lat - epsilon])
    bottom_right = projection([max_lon - epsilon, min_lat + epsilon])
    if top_left is None or bottom_right is None:
        return None
    return [
        [min(top_left[0], bottom_right[0]), min(top_left[1], bottom_right[1])],
        [max(top_left[0], bottom_right[0]), max(top_left[1], bottom_right[1])],
    ]


def place_sub_projection(instance: SubProjectionInstance, reference_scale: float, canvas_center: Sequence[float]) -> None:
    """Apply absolute scale, translate and clip extent to one sub-projection."""
    placement = [canvas_center[0] + instance.translate_offset[0], canvas_center[1] + instance.translate_offset[1]]
    projection = instance.projection
    projection.scale(reference_scale * instance.scale_multiplier)
    projection.translate(placement)
    position_clip_extent(instance, placement)


def position_clip_extent(instance: SubProjectionInstance, placement: Sequence[float]) -> None:
    projection = instance.projection
    if instance.pixel_clip_extent:
        projection.clip_extent(clip_extent_from_pixel_offset(placement, instance.pixel_clip_extent))
    elif instance.bounds:
        projection.clip_extent(clip_extent_from_bounds(projection, instance.bounds))
    else:
        projection.clip_extent(None)


class CompositeProjection:
    """
    Projection interface over several territory sub-projections.

    Points and rings go to the territory that owns them (see TerritoryRouter).
    Global scale and translate propagate to every sub-projection through the
    shared reference scale and the canvas centre.
    """

    def __init__(
        self,
        instances: Sequence[SubProjectionInstance],
        reference_scale: float,
        canvas_center: Sequence[float],
        invert_tolerance: float = DEFAULT_INVERT_TOLERANCE,
    ):
        self._instances: Dict[str, SubProjectionInstance] = {i.code: i for i in instances}
        self._reference_scale = float(reference_scale)
        self._translate = [float(canvas_center[0]), float(canvas_center[1])]
        self._invert_tolerance = invert_tolerance
        self._router = TerritoryRouter([
            RouteEntry(i.code, i.role, i.bounds, order) for order, i in enumerate(instances)
        ])

    # ------------------------------------------------------------------
    # Point transforms
    # ------------------------------------------------------------------

    def __call__(self, point: Sequence[float]) -> Optional[Tuple[float, float]]:
        code = self._router.owner_of_point(point[0], point[1])
        if code is None:
            return None
        capture = PointCaptureStream()
        self._instances[code].projection.stream(capture).point(point[0], point[1])
        return capture.captured

    def owner_of(self, point: Sequence[float]) -> Optional[str]:
        return self._router.owner_of_point(point[0], point[1])

    def invert(self, point: Sequence[float]) -> Optional[Tuple[float, float]]:
        result = self.invert_with_territory(point)
        return result[0] if result else None

    def invert_with_territory(self, point: Sequence[float]) -> Optional[Tuple[Tuple[float, float], str]]:
        """Invert a pixel, accepting the first sub-projection whose answer lies in its own bounds."""
        x, y = point[0], point[1]
        for code in self._router.ordered_codes():
            instance = self._instances[code]
            extent = instance.projection.clip_extent()
            if extent is not None and not (extent[0][0] <= x <= extent[1][0] and extent[0][1] <= y <= extent[1][1]):
                continue
            result = instance.projection.invert([x, y])
            if result is None:
                continue
            if instance.bounds is None or bounds_contains(instance.bounds, result[0], result[1], self._invert_tolerance):
                return (result[0], result[1]), code
        return None

    def stream(self, sink: Stream) -> Stream:
        return RoutingStream(self._router, lambda code: self._instances[code].projection.stream(sink))

    # ------------------------------------------------------------------
    # Global accessors
    # ------------------------------------------------------------------

    def scale(self, k: Any = _UNSET):
        if k is _UNSET:
            return self._reference_scale
        if not k or k <= 0:
            raise ConfigurationError("Reference scale must be positive")
        self._reference_scale = float(k)
        for instance in self._instances.values():
            place_sub_projection(instance, self._reference_scale, self._translate)
        return self

    def translate(self, t: Any = _UNSET):
        if t is _UNSET:
            return list(self._translate)
        self._translate = [float(t[0]), float(t[1])]
        for instance in self._instances.values():
            place_sub_projection(instance, self._reference_scale, self._translate)
        return self

    def _primary(self) -> Optional[SubProjectionInstance]:
        code = self._router.default_code
        return self._instances.get(code) if code else None

    def rotate(self, r: Any = _UNSET):
        """Rotation of the catch-all territory; territories keep their own focus, so setting is ignored."""
        if r is _UNSET:
            primary = self._primary()
            return primary.projection.rotate() if primary else [0.0, 0.0, 0.0]
        logger.debug("🔧 Composite rotate ignored: territories keep their own rotation")
        return self

    def center(self, c: Any = _UNSET):
        if c is _UNSET:
            primary = self._primary()
            return primary.projection.center() if primary else [0.0, 0.0]
        logger.debug("🔧 Composite center ignored: territories keep their own center")
        return self

    def clip_angle(self, angle: Any = _UNSET):
        if angle is _UNSET:
            primary = self._primary()
            return primary.projection.clip_angle() if primary else None
        logger.debug("🔧 Composite clip angle ignored: set it per territory")
        return self

    def clip_extent(self, extent: Any = _UNSET):
        """Composite clipping is per territory; there is no global extent."""
        if extent is _UNSET:
            return None
        return self

    def precision(self, p: Any = _UNSET):
        if p is _UNSET:
            primary = self._primary()
            return primary.projection.precision() if primary else None
        for instance in self._instances.values():
            instance.projection.precision(p)
        return self

    def fit_extent(self, extent: Sequence[Sequence[float]], obj: Dict[str, Any]):
        """
        Fit the whole composition into ``extent``.

        Territory pixel offsets do not scale with the reference scale, so the
        fit is exact only for compositions without offsets.
        """
        return fit_extent(self, extent, obj)

    def fit_size(self, size: Sequence[float], obj: Dict[str, Any]):
        return self.fit_extent([[0.0, 0.0], [size[0], size[1]]], obj)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def territory_codes(self) -> List[str]:
        return list(self._instances.keys())

    def get_sub_projection(self, code: str) -> Optional[Any]:
        instance = self._instances.get(code)
        return instance.projection if instance else None

    def get_instances(self) -> List[SubProjectionInstance]:
        return list(self._instances.values())
