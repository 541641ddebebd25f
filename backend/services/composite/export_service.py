"""
Composite Export Service
Serializes a builder's current state into the versioned interchange document
"""
from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from config.paths import exports_root
from pipelines.composite.builder import CompositeProjectionBuilder
from pipelines.composite.configuration import TerritoryProjectionConfig
from pipelines.composite.parameters import ParameterProvider
from pipelines.composite.positioning import extract_canonical_from_projection, positioning_mode_for, to_native_parameters
from pipelines.composite.types import CompositePattern, PositioningMode, TerritoryRole, to_export_family

from .models import CURRENT_VERSION, PARAMETER_ALIASES, ExportedCompositeConfig

logger = logging.getLogger(__name__)

APP_VERSION = "1.0"
CREATED_WITH = f"Atlas Composer v{APP_VERSION}"
DECIMALS = 6


def round_numbers(value: Any, decimals: int = DECIMALS) -> Any:
    """Round floats (also inside nested lists) to strip floating point noise."""
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, float):
        rounded = round(value, decimals)
        return 0.0 if rounded == 0 else rounded
    if isinstance(value, (list, tuple)):
        return [round_numbers(v, decimals) for v in value]
    return value


def export_role(role: TerritoryRole, pattern: CompositePattern) -> str:
    if role == TerritoryRole.SECONDARY:
        return TerritoryRole.SECONDARY.value
    if pattern == CompositePattern.EQUAL_MEMBERS:
        return TerritoryRole.MEMBER.value
    return TerritoryRole.PRIMARY.value


def _to_document_parameters(parameters: Dict[str, Any]) -> Dict[str, Any]:
    exported: Dict[str, Any] = {}
    for name, value in parameters.items():
        alias = PARAMETER_ALIASES.get(name)
        if alias is None or value is None:
            continue
        exported[alias] = round_numbers(float(value) if isinstance(value, int) and not isinstance(value, bool) else value)
    return exported


def _live_parameters(builder: CompositeProjectionBuilder, territory: TerritoryProjectionConfig) -> Dict[str, Any]:
    """Parameters read back from the territory's live projection."""
    projection = builder.get_projection(territory.code)
    family = territory.family
    if projection is None:
        return {"scale_multiplier": territory.scale_multiplier}

    native = to_native_parameters(extract_canonical_from_projection(projection, family), family)
    key = "center" if positioning_mode_for(family) == PositioningMode.CENTER else "rotate"
    parameters: Dict[str, Any] = {key: native[key]}

    for name in ("parallels", "clip_angle", "distance", "tilt"):
        accessor = getattr(projection, name, None)
        if accessor is None or not builder.constraints.is_relevant(family, name):
            continue
        value = accessor()
        if value is not None:
            parameters[name] = value

    parameters["scale_multiplier"] = territory.scale_multiplier
    return parameters


def _export_territory(
    builder: CompositeProjectionBuilder,
    territory: TerritoryProjectionConfig,
    pattern: CompositePattern,
    parameter_provider: Optional[ParameterProvider],
) -> Dict[str, Any]:
    definition = builder.registry.get(territory.projection_id)
    projection_id = definition.id if definition else territory.projection_id
    family = definition.interchange_family if definition else to_export_family(territory.family)

    if parameter_provider is not None:
        parameters = parameter_provider.get_exportable_parameters(territory.code)
        parameters.setdefault("scale_multiplier", territory.scale_multiplier)
    else:
        parameters = _live_parameters(builder, territory)

    exported: Dict[str, Any] = {
        "code": territory.code,
        "name": territory.name,
        "role": export_role(territory.role, pattern),
        "projection": {
            "id": projection_id,
            "family": family.value,
            "parameters": _to_document_parameters(parameters),
        },
        "layout": {
            "translateOffset": round_numbers([float(v) for v in territory.translate_offset]),
            "pixelClipExtent": round_numbers([float(v) for v in territory.pixel_clip_extent])
            if territory.pixel_clip_extent else None,
        },
    }
    if territory.bounds:
        exported["bounds"] = round_numbers([[float(v) for v in corner] for corner in territory.bounds])
    return exported


def export_to_json(
    builder: CompositeProjectionBuilder,
    atlas_id: str,
    atlas_name: str,
    pattern: Any,
    parameter_provider: Optional[ParameterProvider] = None,
    reference_scale: Optional[float] = None,
    canvas_dimensions: Optional[Dict[str, float]] = None,
    notes: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build the interchange document for the builder's current state.

    Numbers are rounded to 6 decimals. Per territory only the relative
    ``scaleMultiplier`` is written; absolute scale is recomputed from
    ``referenceScale`` on load.
    """
    pattern = CompositePattern(pattern)
    configuration = builder.configuration
    territories: List[Dict[str, Any]] = [
        _export_territory(builder, territory, pattern, parameter_provider)
        for territory in configuration.get_all_territories()
    ]

    canvas = canvas_dimensions or configuration.canvas_dimensions
    metadata: Dict[str, Any] = {
        "atlasId": atlas_id,
        "atlasName": atlas_name,
        "exportDate": datetime.now(timezone.utc).isoformat(),
        "createdWith": CREATED_WITH,
    }
    if notes:
        metadata["notes"] = notes

    document = ExportedCompositeConfig.model_validate({
        "version": CURRENT_VERSION,
        "metadata": metadata,
        "pattern": pattern.value,
        "referenceScale": round_numbers(float(reference_scale or configuration.reference_scale)),
        "canvasDimensions": {"width": float(canvas["width"]), "height": float(canvas["height"])},
        "territories": territories,
    }).to_document()

    logger.info(f"📤 Exported {atlas_id} ({pattern.value}) with {len(territories)} territories")
    return document


def export_to_string(builder: CompositeProjectionBuilder, *args: Any, indent: int = 2, **kwargs: Any) -> str:
    return json.dumps(export_to_json(builder, *args, **kwargs), indent=indent)


def save_export(document: Dict[str, Any], directory: Optional[Path] = None) -> Path:
    """Write a document as ``<atlasId>-<timestamp>.json`` under the exports root."""
    directory = Path(directory) if directory else exports_root()
    directory.mkdir(parents=True, exist_ok=True)
    atlas_id = re.sub(r"[^A-Za-z0-9_-]+", "-", document["metadata"]["atlasId"])
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    path = directory / f"{atlas_id}-{stamp}.json"
    path.write_text(json.dumps(document, indent=2), encoding="utf-8")
    logger.info(f"💾 Saved export to {path}")
    return path
