"""
Interchange Document Validation
Structural checks of composite projection documents before import
"""
from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional, Tuple

from pipelines.composite.projections.registry import ProjectionRegistry, get_default_registry
from pipelines.composite.types import CompositePattern, ExportFamily, TerritoryRole

from .models import CURRENT_VERSION, MIN_SUPPORTED_VERSION

logger = logging.getLogger(__name__)

INVALID_TYPE = "INVALID_TYPE"
MISSING_FIELD = "MISSING_FIELD"
INVALID_VALUE = "INVALID_VALUE"
VERSION_UNSUPPORTED = "VERSION_UNSUPPORTED"


def parse_version(version: Any) -> Optional[Tuple[int, int]]:
    """'1.2' -> (1, 2); anything unparsable -> None."""
    if not isinstance(version, str):
        return None
    parts = version.strip().split(".")
    try:
        major = int(parts[0])
        minor = int(parts[1]) if len(parts) > 1 and parts[1] else 0
    except ValueError:
        return None
    return major, minor


def is_version_supported(version: Any) -> bool:
    parsed = parse_version(version)
    minimum = parse_version(MIN_SUPPORTED_VERSION)
    current = parse_version(CURRENT_VERSION)
    return parsed is not None and minimum[0] <= parsed[0] <= current[0]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _is_number_list(value: Any, length: int) -> bool:
    return isinstance(value, (list, tuple)) and len(value) == length and all(_is_number(v) for v in value)


class _Report:
    def __init__(self):
        self.errors: List[Dict[str, str]] = []
        self.warnings: List[Dict[str, str]] = []

    def error(self, path: str, message: str, code: str) -> None:
        self.errors.append({"path": path, "message": message, "code": code})

    def warning(self, path: str, message: str) -> None:
        self.warnings.append({"path": path, "message": message})

    def result(self) -> Dict[str, Any]:
        return {"valid": not self.errors, "errors": self.errors, "warnings": self.warnings}


def validate_exported_config(doc: Any, registry: Optional[ProjectionRegistry] = None) -> Dict[str, Any]:
    """
    Validate an interchange document.

    Returns ``{"valid", "errors", "warnings"}``. Structural problems are
    errors (each with ``path``, ``message`` and ``code``); unknown projection
    ids and suspicious bounds are warnings only.
    """
    report = _Report()
    registry = registry or get_default_registry()

    if not isinstance(doc, dict):
        report.error("", "Configuration must be an object", INVALID_TYPE)
        return report.result()

    _validate_version(doc, report)
    _validate_metadata(doc, report)
    _validate_header(doc, report)

    territories = doc.get("territories")
    if territories is None:
        report.error("territories", "Territories are required", MISSING_FIELD)
    elif not isinstance(territories, list):
        report.error("territories", "Territories must be an array", INVALID_TYPE)
    elif not territories:
        report.error("territories", "At least one territory is required", INVALID_VALUE)
    else:
        seen: Dict[str, int] = {}
        for index, territory in enumerate(territories):
            _validate_territory(territory, f"territories[{index}]", seen, index, registry, report)

    result = report.result()
    if not result["valid"]:
        logger.info(f"📋 Document rejected with {len(result['errors'])} errors")
    return result


def _validate_version(doc: Dict[str, Any], report: _Report) -> None:
    version = doc.get("version")
    if version is None:
        report.error("version", "Version is required", MISSING_FIELD)
    elif not isinstance(version, str):
        report.error("version", "Version must be a string", INVALID_TYPE)
    elif not is_version_supported(version):
        report.error(
            "version",
            f"Unsupported version {version} (minimum supported {MIN_SUPPORTED_VERSION}, current {CURRENT_VERSION})",
            VERSION_UNSUPPORTED,
        )


def _validate_metadata(doc: Dict[str, Any], report: _Report) -> None:
    metadata = doc.get("metadata")
    if metadata is None:
        report.error("metadata", "Metadata is required", MISSING_FIELD)
        return
    if not isinstance(metadata, dict):
        report.error("metadata", "Metadata must be an object", INVALID_TYPE)
        return
    atlas_id = metadata.get("atlasId")
    if atlas_id is None or (isinstance(atlas_id, str) and not atlas_id.strip()):
        report.error("metadata.atlasId", "Atlas ID is required", MISSING_FIELD)
    elif not isinstance(atlas_id, str):
        report.error("metadata.atlasId", "Atlas ID must be a string", INVALID_TYPE)


def _validate_header(doc: Dict[str, Any], report: _Report) -> None:
    pattern = doc.get("pattern")
    if pattern is None:
        report.error("pattern", "Pattern is required", MISSING_FIELD)
    elif pattern not in {p.value for p in CompositePattern}:
        report.error("pattern", f"Invalid pattern: {pattern}", INVALID_VALUE)

    scale = doc.get("referenceScale")
    if scale is None:
        report.error("referenceScale", "Reference scale is required", MISSING_FIELD)
    elif not _is_number(scale):
        report.error("referenceScale", "Reference scale must be a number", INVALID_TYPE)
    elif scale <= 0:
        report.error("referenceScale", "Reference scale must be positive", INVALID_VALUE)

    canvas = doc.get("canvasDimensions")
    if canvas is None:
        report.error("canvasDimensions", "Canvas dimensions are required", MISSING_FIELD)
    elif not isinstance(canvas, dict):
        report.error("canvasDimensions", "Canvas dimensions must be an object", INVALID_TYPE)
    else:
        for key in ("width", "height"):
            value = canvas.get(key)
            if not _is_number(value) or value <= 0:
                report.error(f"canvasDimensions.{key}", f"Canvas {key} must be a positive number", INVALID_VALUE)


def _validate_territory(
    territory: Any,
    path: str,
    seen: Dict[str, int],
    index: int,
    registry: ProjectionRegistry,
    report: _Report,
) -> None:
    if not isinstance(territory, dict):
        report.error(path, "Territory must be an object", INVALID_TYPE)
        return

    code = territory.get("code")
    if not code:
        report.error(f"{path}.code", "Territory code is required", MISSING_FIELD)
    elif code in seen:
        report.error(f"{path}.code", f"Duplicate territory code {code} (first at index {seen[code]})", INVALID_VALUE)
    else:
        seen[code] = index

    role = territory.get("role")
    if role is not None and role not in {r.value for r in TerritoryRole}:
        report.error(f"{path}.role", f"Invalid role: {role}", INVALID_VALUE)

    _validate_projection(territory.get("projection"), f"{path}.projection", registry, report)
    _validate_layout(territory.get("layout"), f"{path}.layout", report)

    bounds = territory.get("bounds")
    if bounds is not None:
        _check_bounds(bounds, f"{path}.bounds", report)


def _validate_projection(projection: Any, path: str, registry: ProjectionRegistry, report: _Report) -> None:
    if projection is None:
        report.error(path, "Projection is required", MISSING_FIELD)
        return
    if not isinstance(projection, dict):
        report.error(path, "Projection must be an object", INVALID_TYPE)
        return

    projection_id = projection.get("id")
    if not projection_id:
        report.error(f"{path}.id", "Projection ID is required", MISSING_FIELD)
    elif not isinstance(projection_id, str):
        report.error(f"{path}.id", "Projection ID must be a string", INVALID_TYPE)
    elif not registry.has(projection_id):
        report.warning(f"{path}.id", f"Unknown projection: {projection_id}")

    family = projection.get("family")
    if family is not None and family not in {f.value for f in ExportFamily}:
        report.warning(f"{path}.family", f"Unknown projection family: {family}")

    parameters = projection.get("parameters")
    if parameters is None:
        return
    if not isinstance(parameters, dict):
        report.error(f"{path}.parameters", "Parameters must be an object", INVALID_TYPE)
        return
    multiplier = parameters.get("scaleMultiplier")
    if multiplier is not None and (not _is_number(multiplier) or multiplier <= 0):
        report.error(f"{path}.parameters.scaleMultiplier", "Scale multiplier must be positive", INVALID_VALUE)


def _validate_layout(layout: Any, path: str, report: _Report) -> None:
    if layout is None:
        report.error(path, "Layout is required", MISSING_FIELD)
        return
    if not isinstance(layout, dict):
        report.error(path, "Layout must be an object", INVALID_TYPE)
        return

    if "translateOffset" not in layout:
        report.error(f"{path}.translateOffset", "Translate offset is required", MISSING_FIELD)
    elif not _is_number_list(layout["translateOffset"], 2):
        report.error(f"{path}.translateOffset", "Translate offset must be [x, y]", INVALID_VALUE)

    if "pixelClipExtent" not in layout:
        report.error(f"{path}.pixelClipExtent", "Pixel clip extent is required (may be null)", MISSING_FIELD)
    elif layout["pixelClipExtent"] is not None and not _is_number_list(layout["pixelClipExtent"], 4):
        report.error(f"{path}.pixelClipExtent", "Pixel clip extent must be [x1, y1, x2, y2] or null", INVALID_VALUE)


def _check_bounds(bounds: Any, path: str, report: _Report) -> None:
    if not (isinstance(bounds, (list, tuple)) and len(bounds) == 2 and all(_is_number_list(c, 2) for c in bounds)):
        report.warning(path, "Bounds should be [[minLon, minLat], [maxLon, maxLat]]")
        return
    (min_lon, min_lat), (max_lon, max_lat) = bounds
    if min_lon >= max_lon or min_lat >= max_lat:
        report.warning(path, "Bounds minimum should be less than maximum")
    if any(lon < -180 or lon > 180 for lon in (min_lon, max_lon)):
        report.warning(path, "Bounds longitude outside [-180, 180]")
    if any(lat < -90 or lat > 90 for lat in (min_lat, max_lat)):
        report.warning(path, "Bounds latitude outside [-90, 90]")
