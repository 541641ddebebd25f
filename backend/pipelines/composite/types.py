from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Tuple

Point = Tuple[float, float]
Bounds = List[List[float]]  # [[min_lon, min_lat], [max_lon, max_lat]]


class ProjectionFamily(str, Enum):
    """
    Closed set of projection families known to the engine.

    Every table keyed by family is checked against this enum at import time
    (see ``require_all_families``), so a new member must be handled everywhere.
    """

    CYLINDRICAL = "CYLINDRICAL"
    CONIC = "CONIC"
    AZIMUTHAL = "AZIMUTHAL"
    PSEUDOCYLINDRICAL = "PSEUDOCYLINDRICAL"
    POLYHEDRAL = "POLYHEDRAL"
    COMPOSITE = "COMPOSITE"
    OTHER = "OTHER"


class ExportFamily(str, Enum):
    """Family names used in the interchange document."""

    CYLINDRICAL = "CYLINDRICAL"
    CONIC = "CONIC"
    AZIMUTHAL = "AZIMUTHAL"
    PSEUDOCYLINDRICAL = "PSEUDOCYLINDRICAL"
    POLYCONIC = "POLYCONIC"
    MISCELLANEOUS = "MISCELLANEOUS"


class PositioningMode(str, Enum):
    CENTER = "center"
    ROTATE = "rotate"


class TerritoryRole(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    MEMBER = "member"


class CompositePattern(str, Enum):
    SINGLE_FOCUS = "single-focus"
    EQUAL_MEMBERS = "equal-members"
    HIERARCHICAL = "hierarchical"


@dataclass(frozen=True)
class CanonicalPositioning:
    """
    Family-independent focus point of a projection.

    Never persisted; always expressed through ``center`` or ``rotate`` at the
    configuration boundary.
    """

    focus_longitude: float = 0.0
    focus_latitude: float = 0.0
    rotate_gamma: float = 0.0


def require_all_families(table: Mapping[ProjectionFamily, object], name: str) -> None:
    """Raise at import time if a family-keyed table misses a family."""
    missing = [family.value for family in ProjectionFamily if family not in table]
    if missing:
        raise RuntimeError(f"{name} has no entry for families: {', '.join(missing)}")


def coerce_family(value: object) -> ProjectionFamily:
    """Accept a ProjectionFamily or its name in any case."""
    if isinstance(value, ProjectionFamily):
        return value
    try:
        return ProjectionFamily(str(value).upper())
    except ValueError:
        return ProjectionFamily.OTHER


# Interchange family -> engine family
_FROM_EXPORT_FAMILY: Dict[ExportFamily, ProjectionFamily] = {
    ExportFamily.CYLINDRICAL: ProjectionFamily.CYLINDRICAL,
    ExportFamily.CONIC: ProjectionFamily.CONIC,
    ExportFamily.AZIMUTHAL: ProjectionFamily.AZIMUTHAL,
    ExportFamily.PSEUDOCYLINDRICAL: ProjectionFamily.PSEUDOCYLINDRICAL,
    ExportFamily.POLYCONIC: ProjectionFamily.OTHER,
    ExportFamily.MISCELLANEOUS: ProjectionFamily.OTHER,
}

_TO_EXPORT_FAMILY: Dict[ProjectionFamily, ExportFamily] = {
    ProjectionFamily.CYLINDRICAL: ExportFamily.CYLINDRICAL,
    ProjectionFamily.CONIC: ExportFamily.CONIC,
    ProjectionFamily.AZIMUTHAL: ExportFamily.AZIMUTHAL,
    ProjectionFamily.PSEUDOCYLINDRICAL: ExportFamily.PSEUDOCYLINDRICAL,
    ProjectionFamily.POLYHEDRAL: ExportFamily.MISCELLANEOUS,
    ProjectionFamily.COMPOSITE: ExportFamily.MISCELLANEOUS,
    ProjectionFamily.OTHER: ExportFamily.MISCELLANEOUS,
}

require_all_families(_TO_EXPORT_FAMILY, "export family table")


def to_export_family(family: ProjectionFamily) -> ExportFamily:
    return _TO_EXPORT_FAMILY[family]


def from_export_family(value: object) -> ProjectionFamily:
    try:
        return _FROM_EXPORT_FAMILY[ExportFamily(str(value).upper())]
    except ValueError:
        return coerce_family(value)


def bounds_contains(bounds: Bounds, lon: float, lat: float, tolerance: float = 0.0) -> bool:
    (min_lon, min_lat), (max_lon, max_lat) = bounds
    return (
        min_lon - tolerance <= lon <= max_lon + tolerance
        and min_lat - tolerance <= lat <= max_lat + tolerance
    )


def bounds_of_points(points: Iterable[Point]) -> Bounds:
    xs: List[float] = []
    ys: List[float] = []
    for x, y in points:
        xs.append(x)
        ys.append(y)
    if not xs:
        return [[0.0, 0.0], [0.0, 0.0]]
    return [[min(xs), min(ys)], [max(xs), max(ys)]]
