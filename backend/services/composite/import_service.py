"""
Composite Import Service
Parses interchange documents and turns them into engine configurations
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pipelines.composite.configuration import CompositeConfiguration
from pipelines.composite.errors import ConfigurationError
from pipelines.composite.projections.registry import ProjectionRegistry, get_default_registry
from pipelines.composite.types import TerritoryRole, from_export_family

from .models import PARAMETER_NAMES
from .validation import INVALID_TYPE, validate_exported_config

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 10 * 1024 * 1024


def import_from_json(text: str, registry: Optional[ProjectionRegistry] = None) -> Dict[str, Any]:
    """
    Parse and validate a JSON document.

    Returns ``{"success", "config", "errors", "warnings"}``; ``config`` is
    only set when there are no errors.
    """
    try:
        doc = json.loads(text)
    except (TypeError, ValueError) as e:
        return {
            "success": False,
            "config": None,
            "errors": [{"path": "", "message": f"Invalid JSON: {e}", "code": INVALID_TYPE}],
            "warnings": [],
        }

    validation = validate_exported_config(doc, registry)
    return {
        "success": validation["valid"],
        "config": doc if validation["valid"] else None,
        "errors": validation["errors"],
        "warnings": validation["warnings"],
    }


def import_from_file(path: Union[str, Path], registry: Optional[ProjectionRegistry] = None) -> Dict[str, Any]:
    path = Path(path)
    if path.suffix.lower() != ".json":
        return _file_error("File must be a JSON file (.json extension)")
    if not path.is_file():
        return _file_error(f"File not found: {path}")
    size = path.stat().st_size
    if size > MAX_FILE_SIZE:
        return _file_error(f"File too large: {size / 1024 / 1024:.2f}MB (max 10MB)")
    return import_from_json(path.read_text(encoding="utf-8"), registry)


def _file_error(message: str) -> Dict[str, Any]:
    return {
        "success": False,
        "config": None,
        "errors": [{"path": "", "message": message, "code": INVALID_TYPE}],
        "warnings": [],
    }


def check_atlas_compatibility(doc: Dict[str, Any], atlas_id: str) -> Dict[str, Any]:
    warnings = []
    exported_for = (doc.get("metadata") or {}).get("atlasId")
    if exported_for != atlas_id:
        warnings.append({
            "path": "metadata.atlasId",
            "message": (
                f"Configuration was exported for atlas '{exported_for}' but current atlas is "
                f"'{atlas_id}'. Territory codes may not match."
            ),
        })
    return {"valid": True, "errors": [], "warnings": warnings}


def _engine_parameters(parameters: Dict[str, Any]) -> Dict[str, Any]:
    converted: Dict[str, Any] = {}
    for key, value in (parameters or {}).items():
        name = PARAMETER_NAMES.get(key)
        if name is None:
            logger.debug(f"🔧 Dropping unknown projection parameter '{key}'")
            continue
        if value is not None:
            converted[name] = value
    return converted


def to_configuration(doc: Dict[str, Any], registry: Optional[ProjectionRegistry] = None) -> CompositeConfiguration:
    """
    Build a CompositeConfiguration from a validated document.

    The engine family comes from the registry when the projection id is
    known, otherwise from the document's interchange family.
    """
    registry = registry or get_default_registry()
    metadata = doc.get("metadata") or {}
    try:
        configuration = CompositeConfiguration(
            metadata.get("atlasId", ""),
            metadata.get("atlasName") or metadata.get("atlasId", ""),
            doc.get("referenceScale"),
            doc.get("canvasDimensions"),
        )
    except (TypeError, AttributeError) as e:
        raise ConfigurationError(f"Invalid document header: {e}") from e

    for territory in doc.get("territories") or []:
        projection = territory.get("projection") or {}
        layout = territory.get("layout") or {}
        projection_id = projection.get("id", "")
        family = registry.family_of(projection_id) or from_export_family(projection.get("family"))

        configuration.add_territory({
            "code": territory.get("code", ""),
            "name": territory.get("name") or territory.get("code", ""),
            "role": territory.get("role") or TerritoryRole.SECONDARY.value,
            "projection_id": projection_id,
            "family": family,
            "parameters": _engine_parameters(projection.get("parameters")),
            "translate_offset": list(layout.get("translateOffset") or [0.0, 0.0]),
            "pixel_clip_extent": list(layout["pixelClipExtent"]) if layout.get("pixelClipExtent") else None,
            "bounds": territory.get("bounds"),
        })

    logger.info(f"📥 Imported {configuration.atlas_id} with {configuration.territory_count} territories")
    return configuration
