"""
Composite Configuration
Validated in-memory state of a composite projection: atlas metadata plus one
projection configuration per territory
"""
from __future__ import annotations

import copy
import logging
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional, Union

from .errors import ConfigurationError
from .types import Bounds, ProjectionFamily, TerritoryRole, coerce_family

logger = logging.getLogger(__name__)


@dataclass
class TerritoryProjectionConfig:
    """
    Projection configuration of one territory.

    ``parameters`` holds the family-dependent subset of rotate, center,
    parallels, scale_multiplier, clip_angle, distance, tilt and precision.
    ``translate_offset`` is in pixels relative to the canvas centre and
    ``pixel_clip_extent`` is ``[x1, y1, x2, y2]`` relative to the territory's
    own placement, or None.
    """

    code: str
    projection_id: str
    family: ProjectionFamily = ProjectionFamily.OTHER
    name: str = ""
    role: TerritoryRole = TerritoryRole.SECONDARY
    parameters: Dict[str, Any] = field(default_factory=dict)
    translate_offset: List[float] = field(default_factory=lambda: [0.0, 0.0])
    pixel_clip_extent: Optional[List[float]] = None
    bounds: Optional[Bounds] = None

    def __post_init__(self) -> None:
        self.family = coerce_family(self.family)
        self.role = TerritoryRole(self.role)
        if not self.name:
            self.name = self.code

    @property
    def scale_multiplier(self) -> float:
        value = self.parameters.get("scale_multiplier")
        return 1.0 if value is None else float(value)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["family"] = self.family.value
        data["role"] = self.role.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TerritoryProjectionConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown territory fields: {', '.join(sorted(unknown))}")
        try:
            return cls(**copy.deepcopy(data))
        except TypeError as e:
            raise ConfigurationError(f"Invalid territory configuration: {e}") from e
        except ValueError as e:
            raise ConfigurationError(f"Invalid territory value: {e}") from e


TerritoryInput = Union[TerritoryProjectionConfig, Dict[str, Any]]


class CompositeConfiguration:
    """
    Aggregate holding per-territory projection configuration.

    Mutators validate before applying and raise ConfigurationError without
    touching state on violation. Accessors hand out deep copies.
    """

    def __init__(
        self,
        atlas_id: str,
        atlas_name: str,
        reference_scale: float,
        canvas_dimensions: Dict[str, float],
    ):
        if not atlas_id or not str(atlas_id).strip():
            raise ConfigurationError("Atlas ID is required")
        self._check_reference_scale(reference_scale)
        self._check_canvas_dimensions(canvas_dimensions)

        self._atlas_id = atlas_id
        self._atlas_name = atlas_name
        self._reference_scale = float(reference_scale)
        self._canvas_dimensions = {
            "width": float(canvas_dimensions["width"]),
            "height": float(canvas_dimensions["height"]),
        }
        self._territories: Dict[str, TerritoryProjectionConfig] = {}

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    @property
    def atlas_id(self) -> str:
        return self._atlas_id

    @property
    def atlas_name(self) -> str:
        return self._atlas_name

    @property
    def reference_scale(self) -> float:
        return self._reference_scale

    @property
    def canvas_dimensions(self) -> Dict[str, float]:
        return dict(self._canvas_dimensions)

    def set_reference_scale(self, scale: float) -> None:
        self._check_reference_scale(scale)
        self._reference_scale = float(scale)

    def set_canvas_dimensions(self, dimensions: Dict[str, float]) -> None:
        self._check_canvas_dimensions(dimensions)
        self._canvas_dimensions = {
            "width": float(dimensions["width"]),
            "height": float(dimensions["height"]),
        }

    # ------------------------------------------------------------------
    # Territories
    # ------------------------------------------------------------------

    def add_territory(self, config: TerritoryInput) -> None:
        territory = self._coerce(config)
        self._validate_territory(territory)
        if territory.code in self._territories:
            raise ConfigurationError(f"Territory already exists: {territory.code}")
        self._territories[territory.code] = territory
        logger.debug(f"🗺️ Added territory {territory.code} ({territory.projection_id})")

    def update_territory(self, code: str, updates: Dict[str, Any]) -> None:
        existing = self._territories.get(code)
        if existing is None:
            raise ConfigurationError(f"Territory not found: {code}")

        merged = existing.to_dict()
        merged.update(copy.deepcopy(updates))
        merged["code"] = code
        updated = TerritoryProjectionConfig.from_dict(merged)

        self._validate_territory(updated)
        self._territories[code] = updated

    def remove_territory(self, code: str) -> bool:
        if len(self._territories) <= 1 and code in self._territories:
            raise ConfigurationError("Cannot remove the last territory")
        return self._territories.pop(code, None) is not None

    def get_territory(self, code: str) -> Optional[TerritoryProjectionConfig]:
        territory = self._territories.get(code)
        return copy.deepcopy(territory) if territory is not None else None

    def get_all_territories(self) -> List[TerritoryProjectionConfig]:
        return [copy.deepcopy(t) for t in self._territories.values()]

    def get_territory_codes(self) -> List[str]:
        return list(self._territories.keys())

    def get_primary_territories(self) -> List[TerritoryProjectionConfig]:
        return self._by_role(TerritoryRole.PRIMARY)

    def get_secondary_territories(self) -> List[TerritoryProjectionConfig]:
        return self._by_role(TerritoryRole.SECONDARY)

    def get_member_territories(self) -> List[TerritoryProjectionConfig]:
        return self._by_role(TerritoryRole.MEMBER)

    @property
    def territory_count(self) -> int:
        return len(self._territories)

    def has_territory(self, code: str) -> bool:
        return code in self._territories

    def validate(self) -> Dict[str, Any]:
        """Whole-aggregate check, used after bulk loads."""
        errors: List[str] = []
        if not self._territories:
            errors.append("At least one territory is required")
        for territory in self._territories.values():
            try:
                self._validate_territory(territory)
            except ConfigurationError as e:
                errors.append(str(e))
        return {"valid": not errors, "errors": errors}

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "atlas_id": self._atlas_id,
            "atlas_name": self._atlas_name,
            "reference_scale": self._reference_scale,
            "canvas_dimensions": dict(self._canvas_dimensions),
            "territories": [t.to_dict() for t in self._territories.values()],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CompositeConfiguration":
        try:
            composite = cls(
                data["atlas_id"],
                data.get("atlas_name", ""),
                data["reference_scale"],
                data["canvas_dimensions"],
            )
        except KeyError as e:
            raise ConfigurationError(f"Missing configuration field: {e.args[0]}") from e

        for territory in data.get("territories", []):
            composite.add_territory(territory)
        return composite

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _by_role(self, role: TerritoryRole) -> List[TerritoryProjectionConfig]:
        return [copy.deepcopy(t) for t in self._territories.values() if t.role == role]

    @staticmethod
    def _coerce(config: TerritoryInput) -> TerritoryProjectionConfig:
        if isinstance(config, TerritoryProjectionConfig):
            return copy.deepcopy(config)
        if isinstance(config, dict):
            return TerritoryProjectionConfig.from_dict(config)
        raise ConfigurationError(f"Unsupported territory configuration type: {type(config).__name__}")

    @staticmethod
    def _validate_territory(config: TerritoryProjectionConfig) -> None:
        if not config.code or not str(config.code).strip():
            raise ConfigurationError("Territory code is required")
        if not config.projection_id or not str(config.projection_id).strip():
            raise ConfigurationError(f"Projection ID is required for territory: {config.code}")

        multiplier = config.parameters.get("scale_multiplier")
        if multiplier is not None and not _is_positive(multiplier):
            raise ConfigurationError(f"Scale multiplier must be positive for territory: {config.code}")

        if config.translate_offset is None or len(config.translate_offset) != 2:
            raise ConfigurationError(f"Translate offset must have 2 values for territory: {config.code}")
        if config.pixel_clip_extent is not None and len(config.pixel_clip_extent) != 4:
            raise ConfigurationError(f"Pixel clip extent must have 4 values for territory: {config.code}")

    @staticmethod
    def _check_reference_scale(scale: Any) -> None:
        if not _is_positive(scale):
            raise ConfigurationError("Reference scale must be positive")

    @staticmethod
    def _check_canvas_dimensions(dimensions: Any) -> None:
        try:
            width = dimensions["width"]
            height = dimensions["height"]
        except (KeyError, TypeError) as e:
            raise ConfigurationError("Canvas dimensions must be positive") from e
        if not (_is_positive(width) and _is_positive(height)):
            raise ConfigurationError("Canvas dimensions must be positive")


def _is_positive(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    try:
        return float(value) > 0
    except (TypeError, ValueError):
        return False
