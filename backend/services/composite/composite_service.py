"""
Composite Service
Orchestrates document loading, projection and export for the API layer
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from pipelines.composite.builder import CompositeProjectionBuilder
from pipelines.composite.errors import ConfigurationError, ProjectionError
from pipelines.composite.projections.registry import ProjectionRegistry, get_default_registry
from pipelines.composite.projections.stream import GeometryCollectorStream, geo_stream
from pipelines.composite.types import CompositePattern

from .engine_cache import EngineCache, get_engine_cache
from .export_service import export_to_json, save_export
from .loader import load_builder
from .preset_loader import load_preset

logger = logging.getLogger(__name__)


@dataclass
class AtlasEngine:
    """A loaded atlas: its builder plus the document header needed to export it again."""

    builder: CompositeProjectionBuilder
    pattern: CompositePattern
    atlas_name: str


class CompositeService:
    """
    Entry point used by the endpoints. Engines are kept in an EngineCache
    keyed by atlas id; every operation returns a ``{"success": ...}`` dict.
    """

    def __init__(self, cache: Optional[EngineCache] = None, registry: Optional[ProjectionRegistry] = None):
        self.cache = cache if cache is not None else get_engine_cache()
        self.registry = registry or get_default_registry()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_document(self, doc: Dict[str, Any]) -> dict:
        """
        Validate, migrate and compile a document, replacing any cached engine for its atlas

        Args:
            doc: Interchange document

        Returns:
            dict: Result with atlas id and territory codes
        """
        try:
            builder = load_builder(doc, self.registry)
        except (ConfigurationError, ProjectionError) as e:
            logger.warning(f"⚠️ Document rejected: {e}")
            return {"success": False, "error": str(e)}

        configuration = builder.configuration
        engine = AtlasEngine(
            builder=builder,
            pattern=CompositePattern(doc.get("pattern", CompositePattern.SINGLE_FOCUS.value)),
            atlas_name=configuration.atlas_name,
        )
        self.cache.create(configuration.atlas_id, lambda: engine)
        return {
            "success": True,
            "atlas_id": configuration.atlas_id,
            "territories": builder.get_territory_codes(),
            "effective_scales": builder.get_effective_scales(),
        }

    def load_preset(self, atlas_id: str) -> dict:
        doc = load_preset(atlas_id)
        if doc is None:
            return {"success": False, "error": f"No preset found for atlas: {atlas_id}"}
        return self.load_document(doc)

    def get_engine(self, atlas_id: str) -> Optional[AtlasEngine]:
        engine = self.cache.get(atlas_id)
        if engine is None:
            result = self.load_preset(atlas_id)
            if result["success"]:
                engine = self.cache.get(atlas_id)
        return engine

    def _missing(self, atlas_id: str) -> dict:
        return {"success": False, "error": f"Atlas not loaded: {atlas_id}"}

    # ------------------------------------------------------------------
    # Projection
    # ------------------------------------------------------------------

    def project_points(
        self,
        atlas_id: str,
        points: Sequence[Sequence[float]],
        width: Optional[float] = None,
        height: Optional[float] = None,
    ) -> dict:
        engine = self.get_engine(atlas_id)
        if engine is None:
            return self._missing(atlas_id)

        composite = engine.builder.build(width, height)
        results: List[Dict[str, Any]] = []
        for lon, lat in points:
            projected = composite((lon, lat))
            results.append({
                "input": [lon, lat],
                "projected": list(projected) if projected else None,
                "territory": composite.owner_of((lon, lat)) if projected else None,
            })

        missed = sum(1 for r in results if r["projected"] is None)
        if missed:
            logger.info(f"📍 {missed}/{len(results)} points outside every territory of {atlas_id}")
        return {"success": True, "atlas_id": atlas_id, "results": results}

    def invert_points(
        self,
        atlas_id: str,
        points: Sequence[Sequence[float]],
        width: Optional[float] = None,
        height: Optional[float] = None,
    ) -> dict:
        engine = self.get_engine(atlas_id)
        if engine is None:
            return self._missing(atlas_id)

        composite = engine.builder.build(width, height)
        results: List[Dict[str, Any]] = []
        for x, y in points:
            hit = composite.invert_with_territory((x, y))
            results.append({
                "input": [x, y],
                "coordinates": list(hit[0]) if hit else None,
                "territory": hit[1] if hit else None,
            })
        return {"success": True, "atlas_id": atlas_id, "results": results}

    def project_geojson(
        self,
        atlas_id: str,
        geojson: Dict[str, Any],
        width: Optional[float] = None,
        height: Optional[float] = None,
    ) -> dict:
        """Stream GeoJSON through the composite and return the pixel-space geometry."""
        engine = self.get_engine(atlas_id)
        if engine is None:
            return self._missing(atlas_id)

        composite = engine.builder.build(width, height)
        collector = GeometryCollectorStream()
        try:
            geo_stream(geojson, composite.stream(collector))
        except ValueError as e:
            return {"success": False, "error": f"Invalid geometry: {e}"}

        return {
            "success": True,
            "atlas_id": atlas_id,
            "geometry": collector.result(),
            "borders": engine.builder.get_composition_borders(),
        }

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def export_document(self, atlas_id: str, notes: Optional[str] = None, save: bool = False) -> dict:
        engine = self.get_engine(atlas_id)
        if engine is None:
            return self._missing(atlas_id)

        document = export_to_json(
            engine.builder,
            atlas_id,
            engine.atlas_name,
            engine.pattern,
            notes=notes,
        )
        result = {"success": True, "atlas_id": atlas_id, "document": document}
        if save:
            result["path"] = str(save_export(document))
        return result
