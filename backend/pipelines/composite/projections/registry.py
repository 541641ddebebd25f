"""
Projection Registry
Immutable lookup from projection id (or alias) to family and constructor
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from ..errors import ProjectionError
from ..types import ExportFamily, ProjectionFamily, require_all_families, to_export_family
from .projection import Projection
from .raw import RawProjection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProjectionDefinition:
    """
    Registry entry.

    ``factory`` returns a fresh object honouring the projection interface
    (callable, invert, stream, scale, translate, center, rotate, ...).
    """

    id: str
    name: str
    family: ProjectionFamily
    factory: Callable[[], Any]
    aliases: Tuple[str, ...] = ()
    export_family: Optional[ExportFamily] = None
    defaults: Dict[str, Any] = field(default_factory=dict)

    @property
    def interchange_family(self) -> ExportFamily:
        return self.export_family or to_export_family(self.family)


def pyproj_factory(proj_name: str, clip_angle: Optional[float] = None, **options: Any) -> Callable[[], Projection]:
    def create() -> Projection:
        projection = Projection(RawProjection(proj_name, **options))
        if clip_angle is not None:
            projection.clip_angle(clip_angle)
        return projection

    create.__name__ = f"create_{proj_name}"
    return create


def _definition(
    projection_id: str,
    name: str,
    family: ProjectionFamily,
    proj_name: str,
    aliases: Tuple[str, ...] = (),
    export_family: Optional[ExportFamily] = None,
    defaults: Optional[Dict[str, Any]] = None,
    clip_angle: Optional[float] = None,
    **options: Any,
) -> ProjectionDefinition:
    return ProjectionDefinition(
        id=projection_id,
        name=name,
        family=family,
        factory=pyproj_factory(proj_name, clip_angle=clip_angle, **options),
        aliases=aliases,
        export_family=export_family,
        defaults=dict(defaults or {}),
    )


F = ProjectionFamily

BUILTIN_DEFINITIONS: Tuple[ProjectionDefinition, ...] = (
    # Cylindrical
    _definition("mercator", "Mercator", F.CYLINDRICAL, "merc"),
    _definition("transverse-mercator", "Transverse Mercator", F.CYLINDRICAL, "tmerc", aliases=("transverseMercator",)),
    _definition("equirectangular", "Equirectangular", F.CYLINDRICAL, "eqc", aliases=("plate-carree",)),
    _definition("miller", "Miller", F.CYLINDRICAL, "mill"),
    # Conic
    _definition(
        "conic-conformal", "Lambert Conformal Conic", F.CONIC, "lcc",
        aliases=("conicConformal", "lambert", "lcc"), lat_1=30, lat_2=60,
    ),
    _definition(
        "conic-equal-area", "Albers Equal-Area Conic", F.CONIC, "aea",
        aliases=("conicEqualArea", "albers"), lat_1=29.5, lat_2=45.5,
    ),
    _definition(
        "conic-equidistant", "Equidistant Conic", F.CONIC, "eqdc",
        aliases=("conicEquidistant",), lat_1=30, lat_2=60,
    ),
    # Azimuthal
    _definition(
        "azimuthal-equal-area", "Lambert Azimuthal Equal-Area", F.AZIMUTHAL, "laea",
        aliases=("azimuthalEqualArea", "laea"), clip_angle=179.9,
    ),
    _definition(
        "azimuthal-equidistant", "Azimuthal Equidistant", F.AZIMUTHAL, "aeqd",
        aliases=("azimuthalEquidistant",), clip_angle=179.9,
    ),
    _definition(
        "orthographic", "Orthographic", F.AZIMUTHAL, "ortho",
        defaults={"clip_angle": 90}, clip_angle=90,
    ),
    _definition(
        "stereographic", "Stereographic", F.AZIMUTHAL, "stere",
        defaults={"clip_angle": 142}, clip_angle=142,
    ),
    _definition(
        "gnomonic", "Gnomonic", F.AZIMUTHAL, "gnom",
        defaults={"clip_angle": 60}, clip_angle=60,
    ),
    # Pseudocylindrical
    _definition("equal-earth", "Equal Earth", F.PSEUDOCYLINDRICAL, "eqearth", aliases=("equalEarth",)),
    _definition("natural-earth", "Natural Earth", F.PSEUDOCYLINDRICAL, "natearth", aliases=("naturalEarth", "naturalEarth1")),
    _definition("robinson", "Robinson", F.PSEUDOCYLINDRICAL, "robin"),
    _definition("mollweide", "Mollweide", F.PSEUDOCYLINDRICAL, "moll"),
    _definition("sinusoidal", "Sinusoidal", F.PSEUDOCYLINDRICAL, "sinu"),
    # Other
    _definition("polyconic", "American Polyconic", F.OTHER, "poly", export_family=ExportFamily.POLYCONIC),
    _definition(
        "satellite", "Satellite (tilted perspective)", F.OTHER, "tpers",
        defaults={"distance": 2.0, "tilt": 0, "clip_angle": 60}, clip_angle=60, h=1.0, tilt=0,
    ),
)

_FAMILY_DEFAULTS: Dict[ProjectionFamily, str] = {
    F.CYLINDRICAL: "mercator",
    F.CONIC: "conic-conformal",
    F.AZIMUTHAL: "azimuthal-equal-area",
    F.PSEUDOCYLINDRICAL: "equal-earth",
    F.POLYHEDRAL: "mercator",
    F.COMPOSITE: "mercator",
    F.OTHER: "mercator",
}

require_all_families(_FAMILY_DEFAULTS, "default projection table")


class ProjectionRegistry:
    """
    Read-only table of projection definitions.

    Lookups are case-insensitive and resolve aliases. ``register`` is the one
    extension point and returns a new registry rather than mutating this one.
    """

    def __init__(self, definitions: Iterable[ProjectionDefinition]):
        by_id: Dict[str, ProjectionDefinition] = {}
        index: Dict[str, str] = {}
        for definition in definitions:
            for key in (definition.id, *definition.aliases):
                lowered = key.lower()
                owner = index.get(lowered)
                if owner is not None and owner != definition.id:
                    raise ValueError(f"Projection key '{key}' already registered for '{owner}'")
                index[lowered] = definition.id
            by_id[definition.id] = definition

        self._definitions = MappingProxyType(by_id)
        self._index = MappingProxyType(index)

    def get(self, projection_id: Optional[str]) -> Optional[ProjectionDefinition]:
        if not projection_id:
            return None
        canonical = self._index.get(projection_id.lower())
        return self._definitions.get(canonical) if canonical else None

    def has(self, projection_id: Optional[str]) -> bool:
        return self.get(projection_id) is not None

    def resolve_id(self, projection_id: str) -> Optional[str]:
        definition = self.get(projection_id)
        return definition.id if definition else None

    def family_of(self, projection_id: str) -> Optional[ProjectionFamily]:
        definition = self.get(projection_id)
        return definition.family if definition else None

    def create(self, projection_id: str) -> Any:
        definition = self.get(projection_id)
        if definition is None:
            raise ProjectionError(f"Unknown projection: {projection_id}")
        return definition.factory()

    def list_ids(self) -> List[str]:
        return list(self._definitions.keys())

    def list_definitions(self, family: Optional[ProjectionFamily] = None) -> List[ProjectionDefinition]:
        return [d for d in self._definitions.values() if family is None or d.family == family]

    def default_for_family(self, family: ProjectionFamily) -> ProjectionDefinition:
        return self._definitions[_FAMILY_DEFAULTS[family]]

    def register(self, definition: ProjectionDefinition) -> "ProjectionRegistry":
        definitions = [d for d in self._definitions.values() if d.id != definition.id]
        definitions.append(definition)
        logger.info(f"🧩 Registered custom projection '{definition.id}' ({definition.family.value})")
        return ProjectionRegistry(definitions)

    def __contains__(self, projection_id: str) -> bool:
        return self.has(projection_id)

    def __len__(self) -> int:
        return len(self._definitions)


_default_registry: Optional[ProjectionRegistry] = None


def get_default_registry() -> ProjectionRegistry:
    """Registry of the built-in projections, assembled on first use."""
    global _default_registry
    if _default_registry is None:
        _default_registry = ProjectionRegistry(BUILTIN_DEFINITIONS)
        logger.info(f"✅ Projection registry ready with {len(_default_registry)} projections")
    return _default_registry
