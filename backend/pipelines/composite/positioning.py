"""
Positioning Converter
Reconciles center-based and rotate-based focusing across projection families
"""
from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional, Sequence

from .types import (
    CanonicalPositioning,
    PositioningMode,
    ProjectionFamily,
    require_all_families,
)

logger = logging.getLogger(__name__)

DEFAULT_CANONICAL = CanonicalPositioning(0.0, 0.0, 0.0)

_POSITIONING_BY_FAMILY: Dict[ProjectionFamily, PositioningMode] = {
    ProjectionFamily.CYLINDRICAL: PositioningMode.CENTER,
    ProjectionFamily.PSEUDOCYLINDRICAL: PositioningMode.CENTER,
    ProjectionFamily.CONIC: PositioningMode.ROTATE,
    ProjectionFamily.AZIMUTHAL: PositioningMode.ROTATE,
    ProjectionFamily.POLYHEDRAL: PositioningMode.ROTATE,
    ProjectionFamily.COMPOSITE: PositioningMode.ROTATE,
    ProjectionFamily.OTHER: PositioningMode.ROTATE,
}

require_all_families(_POSITIONING_BY_FAMILY, "positioning table")


def positioning_mode_for(family: ProjectionFamily) -> PositioningMode:
    return _POSITIONING_BY_FAMILY[family]


# ----------------------------------------------------------------------
# Converters
# ----------------------------------------------------------------------

def canonical_to_center(canonical: CanonicalPositioning) -> List[float]:
    return [canonical.focus_longitude, canonical.focus_latitude]


def canonical_to_rotate(canonical: CanonicalPositioning) -> List[float]:
    return [-canonical.focus_longitude, -canonical.focus_latitude, canonical.rotate_gamma]


def center_to_canonical(center: Sequence[float]) -> CanonicalPositioning:
    return CanonicalPositioning(float(center[0]), float(center[1]), 0.0)


def rotate_to_canonical(rotate: Sequence[float]) -> CanonicalPositioning:
    gamma = rotate[2] if len(rotate) > 2 else 0.0
    return CanonicalPositioning(-float(rotate[0]), -float(rotate[1]), float(gamma or 0.0))


def normalize_longitude(lon: float) -> float:
    """Wrap a longitude into [-180, 180]; positive overflow lands on 180, not -180."""
    if not math.isfinite(lon):
        raise ValueError(f"Longitude must be finite: {lon}")
    if -180 <= lon <= 180:
        return lon
    wrapped = (lon + 180) % 360 - 180
    return 180.0 if wrapped == -180 and lon > 0 else wrapped


def clamp_latitude(lat: float) -> float:
    return max(-90.0, min(90.0, lat))


def _is_non_zero(values: Optional[Sequence[float]]) -> bool:
    return bool(values) and any(v for v in values[:2])


def infer_canonical_from_legacy(
    center: Optional[Sequence[float]] = None,
    rotate: Optional[Sequence[float]] = None,
) -> CanonicalPositioning:
    """
    Derive a focus point from configurations that predate canonical positioning.

    A non-zero center wins over a non-zero rotate; with neither, the focus is
    (0, 0) with no gamma.
    """
    if _is_non_zero(center):
        return center_to_canonical(center)
    if _is_non_zero(rotate):
        return rotate_to_canonical(rotate)
    return DEFAULT_CANONICAL


def canonical_from_parameters(parameters: Dict[str, Any], family: ProjectionFamily) -> CanonicalPositioning:
    """
    Read the focus point from stored parameters.

    The family's own native parameter is authoritative; the other one is only
    consulted through legacy inference when the native one is absent.
    """
    center = parameters.get("center")
    rotate = parameters.get("rotate")
    if positioning_mode_for(family) is PositioningMode.CENTER:
        if center is not None:
            return center_to_canonical(center)
    elif rotate is not None:
        return rotate_to_canonical(rotate)
    return infer_canonical_from_legacy(center, rotate)


def to_native_parameters(canonical: CanonicalPositioning, family: ProjectionFamily) -> Dict[str, List[float]]:
    """Express a focus point as the family's native parameters, resetting the other one."""
    if positioning_mode_for(family) is PositioningMode.CENTER:
        return {"center": canonical_to_center(canonical), "rotate": [0.0, 0.0, 0.0]}
    return {"rotate": canonical_to_rotate(canonical), "center": [0.0, 0.0]}


def derive_conic_parallels(canonical: CanonicalPositioning) -> Optional[List[float]]:
    """Standard parallels two degrees either side of the focus, or None at the equator."""
    lat = canonical.focus_latitude
    if lat == 0:
        return None
    return [clamp_latitude(lat - 2), clamp_latitude(lat + 2)]


# ----------------------------------------------------------------------
# Projection application
# ----------------------------------------------------------------------

def apply_canonical_positioning(projection: Any, canonical: CanonicalPositioning, family: ProjectionFamily) -> None:
    """Set the authoritative native parameter on a projection and reset the other."""
    native = to_native_parameters(canonical, family)
    projection.rotate(native["rotate"])
    projection.center(native["center"])
    logger.debug(
        f"🎯 Applied {positioning_mode_for(family).value} positioning "
        f"({canonical.focus_longitude:.4f}, {canonical.focus_latitude:.4f}) for {family.value}"
    )


def extract_canonical_from_projection(projection: Any, family: ProjectionFamily) -> CanonicalPositioning:
    if positioning_mode_for(family) is PositioningMode.CENTER:
        return center_to_canonical(projection.center() or [0.0, 0.0])
    return rotate_to_canonical(projection.rotate() or [0.0, 0.0, 0.0])
