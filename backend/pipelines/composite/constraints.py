"""
Parameter Constraints Engine
Single source of truth for which projection parameters matter per family,
their bounds, defaults and validation
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional

from .types import ProjectionFamily, coerce_family, require_all_families

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParameterValidationResult:
    is_valid: bool
    error: Optional[str] = None
    warning: Optional[str] = None
    suggestion: Optional[str] = None
    parameter: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"is_valid": self.is_valid}
        for key in ("error", "warning", "suggestion", "parameter"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data


Validator = Callable[[Any], ParameterValidationResult]

_OK = ParameterValidationResult(True)


@dataclass(frozen=True)
class ParameterConstraint:
    relevant: bool = True
    required: bool = False
    min: Optional[float] = None
    max: Optional[float] = None
    step: Optional[float] = None
    default: Any = None
    validator: Optional[Validator] = None
    description: str = ""


# ----------------------------------------------------------------------
# Value validators
# ----------------------------------------------------------------------

def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _numbers(value: Any, lengths: tuple) -> bool:
    return isinstance(value, (list, tuple)) and len(value) in lengths and all(_is_number(v) for v in value)


def _validate_center(value: Any) -> ParameterValidationResult:
    if not _numbers(value, (2,)):
        return ParameterValidationResult(False, error="Center must be [longitude, latitude]")
    lon, lat = value
    if lon < -180 or lon > 180:
        return ParameterValidationResult(False, error="Longitude must be between -180 and 180")
    if lat < -90 or lat > 90:
        return ParameterValidationResult(False, error="Latitude must be between -90 and 90")
    return _OK


def _validate_rotate(value: Any) -> ParameterValidationResult:
    if not _numbers(value, (2, 3)):
        return ParameterValidationResult(
            False, error="Rotation must be [longitude, latitude] or [longitude, latitude, gamma]"
        )
    if any(angle < -180 or angle > 180 for angle in value):
        return ParameterValidationResult(False, error="Rotation angles must be between -180 and 180")
    return _OK


def _validate_parallels(value: Any) -> ParameterValidationResult:
    if not _numbers(value, (2,)):
        return ParameterValidationResult(False, error="Parallels must be [south, north]")
    south, north = value
    if south >= north:
        return ParameterValidationResult(False, error="South parallel must be less than north parallel")
    if south < -90 or north > 90:
        return ParameterValidationResult(False, error="Parallels must be between -90 and 90 degrees")
    return _OK


def _validate_translate(value: Any) -> ParameterValidationResult:
    if not _numbers(value, (2,)):
        return ParameterValidationResult(False, error="Translate must be [x, y]")
    return _OK


# ----------------------------------------------------------------------
# Constraint tables
# ----------------------------------------------------------------------

# Fallback table; families override individual entries below.
_BASE_CONSTRAINTS: Dict[str, ParameterConstraint] = {
    "center": ParameterConstraint(default=[0, 0], validator=_validate_center, description="Focus point [lon, lat]"),
    "rotate": ParameterConstraint(default=[0, 0, 0], validator=_validate_rotate, description="Rotation [λ, φ, γ]"),
    "parallels": ParameterConstraint(default=[30, 60], validator=_validate_parallels, description="Standard parallels"),
    "scale": ParameterConstraint(min=1, max=100000, step=1, default=1000, description="Absolute scale"),
    "scale_multiplier": ParameterConstraint(min=0.01, max=10, step=0.01, default=1.0, description="Relative scale"),
    "translate": ParameterConstraint(default=[0, 0], validator=_validate_translate, description="Pixel translation"),
    "precision": ParameterConstraint(min=0.01, max=10, step=0.01, default=0.1, description="Resampling threshold"),
    "clip_angle": ParameterConstraint(min=0, max=180, step=1, default=90, description="Small-circle clip radius"),
    "distance": ParameterConstraint(min=1.01, max=100, step=0.01, default=2.0, description="Satellite distance (radii)"),
    "tilt": ParameterConstraint(min=0, max=90, step=1, default=0, description="Satellite tilt"),
}

_IRRELEVANT = ParameterConstraint(relevant=False)

_FAMILY_OVERRIDES: Dict[ProjectionFamily, Dict[str, ParameterConstraint]] = {
    ProjectionFamily.CYLINDRICAL: {
        "rotate": replace(_BASE_CONSTRAINTS["rotate"], relevant=False),
        "parallels": replace(_BASE_CONSTRAINTS["parallels"], relevant=False),
        "clip_angle": replace(_BASE_CONSTRAINTS["clip_angle"], relevant=False),
        "distance": _IRRELEVANT,
        "tilt": _IRRELEVANT,
    },
    ProjectionFamily.PSEUDOCYLINDRICAL: {
        "rotate": replace(_BASE_CONSTRAINTS["rotate"], relevant=False),
        "parallels": replace(_BASE_CONSTRAINTS["parallels"], relevant=False),
        "clip_angle": replace(_BASE_CONSTRAINTS["clip_angle"], relevant=False),
        "distance": _IRRELEVANT,
        "tilt": _IRRELEVANT,
    },
    ProjectionFamily.CONIC: {
        "center": replace(_BASE_CONSTRAINTS["center"], relevant=False),
        "clip_angle": replace(_BASE_CONSTRAINTS["clip_angle"], relevant=False),
        "distance": _IRRELEVANT,
        "tilt": _IRRELEVANT,
    },
    ProjectionFamily.AZIMUTHAL: {
        "center": replace(_BASE_CONSTRAINTS["center"], relevant=False),
        "parallels": replace(_BASE_CONSTRAINTS["parallels"], relevant=False),
        "distance": _IRRELEVANT,
        "tilt": _IRRELEVANT,
    },
    ProjectionFamily.POLYHEDRAL: {
        "parallels": replace(_BASE_CONSTRAINTS["parallels"], relevant=False),
        "clip_angle": replace(_BASE_CONSTRAINTS["clip_angle"], relevant=False),
        "distance": _IRRELEVANT,
        "tilt": _IRRELEVANT,
    },
    ProjectionFamily.COMPOSITE: {
        "parallels": replace(_BASE_CONSTRAINTS["parallels"], relevant=False),
        "clip_angle": replace(_BASE_CONSTRAINTS["clip_angle"], relevant=False),
        "distance": _IRRELEVANT,
        "tilt": _IRRELEVANT,
    },
    ProjectionFamily.OTHER: {},
}

require_all_families(_FAMILY_OVERRIDES, "parameter constraint table")

_SUGGESTIONS: Dict[str, str] = {
    "rotate": "Use center instead of rotate for this projection family",
    "center": "Use rotate instead of center for this projection family",
    "parallels": "Parallels only apply to conic projections",
    "clip_angle": "Clip angle only applies to azimuthal projections",
}


class ParameterConstraintsEngine:
    """
    Per-family parameter relevance, bounds and defaults.

    Tables are immutable and merged once per family at construction.
    """

    def __init__(self):
        self._tables: Dict[ProjectionFamily, Dict[str, ParameterConstraint]] = {
            family: {**_BASE_CONSTRAINTS, **_FAMILY_OVERRIDES[family]} for family in ProjectionFamily
        }

    def get_constraints(self, family: ProjectionFamily) -> Dict[str, ParameterConstraint]:
        return dict(self._tables[coerce_family(family)])

    def get_relevant_parameters(self, family: ProjectionFamily) -> List[str]:
        return [key for key, c in self._tables[coerce_family(family)].items() if c.relevant]

    def get_parameter_bounds(self, family: ProjectionFamily, key: str) -> Optional[Dict[str, Any]]:
        constraint = self._tables[coerce_family(family)].get(key)
        if constraint is None:
            return None
        return {"min": constraint.min, "max": constraint.max, "step": constraint.step}

    def is_relevant(self, family: ProjectionFamily, key: str) -> bool:
        constraint = self._tables[coerce_family(family)].get(key)
        return constraint is not None and constraint.relevant

    def get_default(self, family: ProjectionFamily, key: str) -> Any:
        constraint = self._tables[coerce_family(family)].get(key)
        return constraint.default if constraint is not None else None

    def validate(self, family: ProjectionFamily, key: str, value: Any) -> ParameterValidationResult:
        family = coerce_family(family)
        constraint = self._tables[family].get(key)

        if constraint is None:
            return ParameterValidationResult(
                False, error=f"No constraints defined for parameter: {key}", parameter=key
            )

        if not constraint.relevant:
            return ParameterValidationResult(
                False,
                error=f"Parameter {key} is not relevant for {family.value} projections",
                suggestion=_SUGGESTIONS.get(key),
                parameter=key,
            )

        # None clears the value
        if value is None:
            return ParameterValidationResult(True, parameter=key)

        if constraint.validator is not None:
            return replace(constraint.validator(value), parameter=key)

        if not _is_number(value):
            return ParameterValidationResult(False, error=f"{key} must be a number", parameter=key)
        if constraint.min is not None and value < constraint.min:
            return ParameterValidationResult(False, error=f"{key} must be at least {constraint.min}", parameter=key)
        if constraint.max is not None and value > constraint.max:
            return ParameterValidationResult(False, error=f"{key} must be at most {constraint.max}", parameter=key)
        return ParameterValidationResult(True, parameter=key)

    def validate_set(self, family: ProjectionFamily, parameters: Dict[str, Any]) -> List[ParameterValidationResult]:
        """
        Validate the parameters relevant to ``family`` and run cross-parameter checks.

        Irrelevant parameters are skipped, since inherited atlas or global values
        are allowed to be present. Only failures and warnings are returned.
        """
        family = coerce_family(family)
        results: List[ParameterValidationResult] = []

        for key, value in parameters.items():
            if not self.is_relevant(family, key):
                continue
            result = self.validate(family, key, value)
            if not result.is_valid or result.warning:
                results.append(result)

        results.extend(self._validate_dependencies(family, parameters))
        return results

    @staticmethod
    def _validate_dependencies(family: ProjectionFamily, parameters: Dict[str, Any]) -> List[ParameterValidationResult]:
        results: List[ParameterValidationResult] = []

        if family is ProjectionFamily.CONIC:
            parallels = parameters.get("parallels")
            if _numbers(parallels, (2,)) and abs(parallels[1] - parallels[0]) < 1:
                results.append(ParameterValidationResult(
                    True,
                    warning="Conic parallels closer than 1° may cause visual distortion",
                    parameter="parallels",
                ))

        if family is ProjectionFamily.AZIMUTHAL:
            clip_angle = parameters.get("clip_angle")
            if _is_number(clip_angle) and clip_angle > 90:
                results.append(ParameterValidationResult(
                    True,
                    warning="Clip angles greater than 90° may cause unexpected results in azimuthal projections",
                    parameter="clip_angle",
                ))

        return results


_engine: Optional[ParameterConstraintsEngine] = None


def get_constraints_engine() -> ParameterConstraintsEngine:
    global _engine
    if _engine is None:
        _engine = ParameterConstraintsEngine()
    return _engine
