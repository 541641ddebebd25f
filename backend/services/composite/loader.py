"""
Standalone Composite Loader
Turns an interchange document straight into a ready-to-use composite projection
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from pipelines.composite.builder import CompositeProjectionBuilder
from pipelines.composite.composite import CompositeProjection
from pipelines.composite.errors import ConfigurationError
from pipelines.composite.projections.registry import ProjectionRegistry

from .import_service import to_configuration
from .migrator import migrate_to_current_version, needs_migration
from .validation import validate_exported_config

logger = logging.getLogger(__name__)


def prepare_document(doc: Any, registry: Optional[ProjectionRegistry] = None) -> Dict[str, Any]:
    """
    Migrate (when needed) and validate a document.

    Raises ConfigurationError listing every validation error.
    """
    if not isinstance(doc, dict):
        raise ConfigurationError("Configuration must be an object")

    if needs_migration(doc):
        migration = migrate_to_current_version(doc)
        if not migration["success"]:
            raise ConfigurationError("; ".join(migration["errors"]))
        doc = migration["config"]

    validation = validate_exported_config(doc, registry)
    if not validation["valid"]:
        details = "; ".join(f"{e['path']}: {e['message']}" for e in validation["errors"])
        raise ConfigurationError(f"Invalid composite configuration: {details}")
    for warning in validation["warnings"]:
        logger.warning(f"⚠️ {warning['path']}: {warning['message']}")
    return doc


def load_builder(doc: Any, registry: Optional[ProjectionRegistry] = None) -> CompositeProjectionBuilder:
    doc = prepare_document(doc, registry)
    return CompositeProjectionBuilder(to_configuration(doc, registry), registry=registry)


def load_composite_projection(
    doc: Any,
    width: Optional[float] = None,
    height: Optional[float] = None,
    registry: Optional[ProjectionRegistry] = None,
    auto_fit: bool = False,
) -> CompositeProjection:
    """Validate, migrate and build; width/height default to the document canvas."""
    builder = load_builder(doc, registry)
    projection = builder.build(width, height, auto_fit=auto_fit)
    logger.info(f"✅ Loaded composite projection for {builder.configuration.atlas_id}")
    return projection


def load_from_json(text: str, width: Optional[float] = None, height: Optional[float] = None,
                   registry: Optional[ProjectionRegistry] = None) -> CompositeProjection:
    try:
        doc = json.loads(text)
    except ValueError as e:
        raise ConfigurationError(f"Invalid JSON: {e}") from e
    return load_composite_projection(doc, width, height, registry)
