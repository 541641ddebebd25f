"""
Interchange document version migration.

Documents are upgraded one version step at a time until they reach
CURRENT_VERSION. Downgrades are refused. Unversioned documents written
before the version field existed are treated as the first format and
stamped, with missing layout keys and header defaults filled in.
"""
from __future__ import annotations

import copy
import logging
from typing import Any, Callable, Dict, List, Tuple

from config.settings import (
    COMPOSITE_DEFAULT_CANVAS_HEIGHT,
    COMPOSITE_DEFAULT_CANVAS_WIDTH,
    COMPOSITE_DEFAULT_REFERENCE_SCALE,
)

from .models import CURRENT_VERSION

logger = logging.getLogger(__name__)

SUPPORTED_VERSIONS: Tuple[str, ...] = ("1.0",)
UNVERSIONED = "unversioned"

MigrationStep = Callable[[Dict[str, Any], List[str], List[str]], Dict[str, Any]]


def _migrate_unversioned(doc: Dict[str, Any], messages: List[str], warnings: List[str]) -> Dict[str, Any]:
    doc["version"] = "1.0"
    if "referenceScale" not in doc:
        doc["referenceScale"] = COMPOSITE_DEFAULT_REFERENCE_SCALE
        warnings.append(f"No referenceScale, using {COMPOSITE_DEFAULT_REFERENCE_SCALE:g}")
    if "canvasDimensions" not in doc:
        doc["canvasDimensions"] = {"width": COMPOSITE_DEFAULT_CANVAS_WIDTH, "height": COMPOSITE_DEFAULT_CANVAS_HEIGHT}
        warnings.append("No canvasDimensions, using the default canvas")
    for index, territory in enumerate(doc.get("territories") or []):
        if not isinstance(territory, dict):
            continue
        layout = territory.setdefault("layout", {})
        if not isinstance(layout, dict):
            continue
        if "translateOffset" not in layout:
            layout["translateOffset"] = [0, 0]
            warnings.append(f"territories[{index}]: no translateOffset, using [0, 0]")
        layout.setdefault("pixelClipExtent", None)
    messages.append("Stamped unversioned document as version 1.0")
    return doc


# source version -> step producing the next version
_MIGRATIONS: Dict[str, MigrationStep] = {
    UNVERSIONED: _migrate_unversioned,
}


def document_version(doc: Dict[str, Any]) -> str:
    version = doc.get("version")
    return version if isinstance(version, str) and version else UNVERSIONED


def is_supported_version(version: str) -> bool:
    return version in SUPPORTED_VERSIONS


def needs_migration(doc: Dict[str, Any]) -> bool:
    return document_version(doc) != CURRENT_VERSION


def can_migrate(doc: Dict[str, Any]) -> bool:
    version = document_version(doc)
    if version == UNVERSIONED:
        return True
    if not is_supported_version(version):
        return False
    return SUPPORTED_VERSIONS.index(version) <= SUPPORTED_VERSIONS.index(CURRENT_VERSION)


def get_migration_path(version: str) -> List[str]:
    """Versions visited from ``version`` up to the current one."""
    if version == UNVERSIONED:
        return [UNVERSIONED] + list(SUPPORTED_VERSIONS[: SUPPORTED_VERSIONS.index(CURRENT_VERSION) + 1])
    if not is_supported_version(version):
        raise ValueError(f"Unsupported version: {version}")
    start = SUPPORTED_VERSIONS.index(version)
    end = SUPPORTED_VERSIONS.index(CURRENT_VERSION)
    if start > end:
        raise ValueError(f"Cannot downgrade from {version} to {CURRENT_VERSION}")
    return list(SUPPORTED_VERSIONS[start:end + 1])


def migrate_to_current_version(doc: Dict[str, Any]) -> Dict[str, Any]:
    """
    Bring a document to CURRENT_VERSION.

    Returns ``{"success", "config", "from_version", "to_version", "messages",
    "warnings", "errors"}``. The input document is never modified.
    """
    from_version = document_version(doc)
    result: Dict[str, Any] = {
        "success": False,
        "config": None,
        "from_version": from_version,
        "to_version": CURRENT_VERSION,
        "messages": [],
        "warnings": [],
        "errors": [],
    }

    if from_version == CURRENT_VERSION:
        result.update(success=True, config=doc, messages=["Configuration is already at current version"])
        return result

    if not can_migrate(doc):
        if is_supported_version(from_version):
            result["errors"].append(f"Cannot downgrade from {from_version} to {CURRENT_VERSION}")
        else:
            result["errors"].append(f"Unsupported version: {from_version}")
        logger.warning(f"⚠️ Cannot migrate document from version {from_version}")
        return result

    migrated = copy.deepcopy(doc)
    version = from_version
    while version != CURRENT_VERSION:
        step = _MIGRATIONS.get(version)
        if step is None:
            result["errors"].append(f"No migration defined from version {version}")
            return result
        migrated = step(migrated, result["messages"], result["warnings"])
        version = document_version(migrated)

    logger.info(f"🔄 Migrated document from {from_version} to {CURRENT_VERSION}")
    result.update(success=True, config=migrated, to_version=version)
    return result
