"""
Composite Projection Builder
Compiles a CompositeConfiguration into per-territory sub-projections and
assembles them into one CompositeProjection
"""
from __future__ import annotations

import copy
import logging
from typing import Any, Dict, List, Optional, Sequence

from shapely.geometry import box, mapping

from config.settings import COMPOSITE_INVERT_TOLERANCE

from .composite import CompositeProjection, SubProjectionInstance, place_sub_projection, position_clip_extent
from .configuration import CompositeConfiguration, TerritoryProjectionConfig
from .constraints import ParameterConstraintsEngine, get_constraints_engine
from .errors import ConfigurationError
from .parameters import ParameterProvider
from .positioning import (
    apply_canonical_positioning,
    canonical_from_parameters,
    derive_conic_parallels,
    to_native_parameters,
)
from .projections.registry import ProjectionDefinition, ProjectionRegistry, get_default_registry
from .router import RouteEntry, TerritoryRouter

logger = logging.getLogger(__name__)


class CompositeProjectionBuilder:
    """
    Owns one sub-projection instance per territory of a configuration.

    Update methods keep the configuration and the instances in step and touch
    only the named territory (except ``update_reference_scale`` and
    ``update_canvas_dimensions``). Unknown territory codes are logged and
    ignored. ``build`` returns an independent CompositeProjection each call.
    """

    def __init__(
        self,
        configuration: CompositeConfiguration,
        registry: Optional[ProjectionRegistry] = None,
        parameter_provider: Optional[ParameterProvider] = None,
        constraints: Optional[ParameterConstraintsEngine] = None,
    ):
        self.configuration = configuration
        self.registry = registry or get_default_registry()
        self.parameter_provider = parameter_provider
        self.constraints = constraints or get_constraints_engine()
        self._instances: Dict[str, SubProjectionInstance] = {}

        for territory in configuration.get_all_territories():
            self._instances[territory.code] = self._instantiate(territory)

        logger.info(
            f"🗺️ Composite builder ready for {configuration.atlas_id} "
            f"with {len(self._instances)} territories"
        )

    # ------------------------------------------------------------------
    # Instantiation
    # ------------------------------------------------------------------

    def _resolve_definition(self, territory: TerritoryProjectionConfig) -> ProjectionDefinition:
        definition = self.registry.get(territory.projection_id)
        if definition is None:
            definition = self.registry.default_for_family(territory.family)
            logger.warning(
                f"⚠️ Unknown projection '{territory.projection_id}' for {territory.code}, "
                f"falling back to '{definition.id}' ({territory.family.value})"
            )
        return definition

    def _instantiate(self, territory: TerritoryProjectionConfig) -> SubProjectionInstance:
        definition = self._resolve_definition(territory)
        if definition.family != territory.family:
            logger.debug(
                f"🔧 {territory.code}: family {territory.family.value} follows projection "
                f"'{definition.id}' as {definition.family.value}"
            )
        instance = SubProjectionInstance(
            code=territory.code,
            name=territory.name,
            role=territory.role,
            projection_id=definition.id,
            family=definition.family,
            projection=definition.factory(),
        )
        self._apply_parameters(instance, territory)
        return instance

    def _effective_parameters(self, territory: TerritoryProjectionConfig, definition: Optional[ProjectionDefinition]) -> Dict[str, Any]:
        parameters: Dict[str, Any] = dict(definition.defaults) if definition else {}
        parameters.update(copy.deepcopy(territory.parameters))
        if self.parameter_provider is not None:
            parameters.update(self.parameter_provider.get_effective_parameters(territory.code))
        return parameters

    def _apply_parameters(self, instance: SubProjectionInstance, territory: TerritoryProjectionConfig) -> None:
        """Reapply positioning, family parameters and placement to an existing instance."""
        definition = self.registry.get(instance.projection_id)
        parameters = self._effective_parameters(territory, definition)
        projection = instance.projection
        family = instance.family

        canonical = canonical_from_parameters(parameters, family)
        apply_canonical_positioning(projection, canonical, family)

        if self.constraints.is_relevant(family, "parallels") and hasattr(projection, "parallels"):
            parallels = parameters.get("parallels") or derive_conic_parallels(canonical)
            if parallels:
                projection.parallels(parallels)

        for key, method in (("clip_angle", "clip_angle"), ("distance", "distance"), ("tilt", "tilt")):
            value = parameters.get(key)
            if value is not None and self.constraints.is_relevant(family, key) and hasattr(projection, method):
                getattr(projection, method)(value)

        if parameters.get("precision") is not None:
            projection.precision(parameters["precision"])

        instance.name = territory.name
        instance.role = territory.role
        # Provider values win over the stored layout
        multiplier = parameters.get("scale_multiplier")
        instance.scale_multiplier = float(multiplier) if multiplier and multiplier > 0 else territory.scale_multiplier
        offset = parameters.get("translate_offset") or territory.translate_offset
        instance.translate_offset = [float(offset[0]), float(offset[1])]
        clip = parameters.get("pixel_clip_extent", territory.pixel_clip_extent)
        instance.pixel_clip_extent = [float(v) for v in clip] if clip else None
        instance.bounds = copy.deepcopy(territory.bounds)
        self._place(instance)

    def _canvas_center(self, width: Optional[float] = None, height: Optional[float] = None) -> List[float]:
        dimensions = self.configuration.canvas_dimensions
        return [(width or dimensions["width"]) / 2, (height or dimensions["height"]) / 2]

    def _place(self, instance: SubProjectionInstance) -> None:
        place_sub_projection(instance, self.configuration.reference_scale, self._canvas_center())

    def _lookup(self, code: str, operation: str):
        territory = self.configuration.get_territory(code)
        instance = self._instances.get(code)
        if territory is None or instance is None:
            logger.warning(f"⚠️ {operation}: unknown territory '{code}', ignoring")
            return None, None
        return territory, instance

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def update_territory_projection(self, code: str, projection_id: str) -> None:
        """Swap one territory's projection, keeping its focus point across families."""
        territory, instance = self._lookup(code, "update_territory_projection")
        if territory is None:
            return

        old_definition = self.registry.get(instance.projection_id)
        canonical = canonical_from_parameters(self._effective_parameters(territory, old_definition), instance.family)

        definition = self.registry.get(projection_id)
        if definition is None:
            definition = self.registry.default_for_family(territory.family)
            logger.warning(
                f"⚠️ Unknown projection '{projection_id}' for {code}, "
                f"falling back to '{definition.id}' ({territory.family.value})"
            )

        parameters = dict(territory.parameters)
        parameters.update(to_native_parameters(canonical, definition.family))
        self.configuration.update_territory(code, {
            "projection_id": definition.id,
            "family": definition.family,
            "parameters": parameters,
        })
        self._instances[code] = self._instantiate(self.configuration.get_territory(code))
        logger.info(f"🔄 {code}: projection {instance.projection_id} → {definition.id}")

    def update_territory_parameters(self, code: str) -> None:
        """Cheap path for live edits: re-parameterise the existing instance."""
        territory, instance = self._lookup(code, "update_territory_parameters")
        if territory is None:
            return
        self._apply_parameters(instance, territory)

    def update_translation_offset(self, code: str, offset: Sequence[float]) -> None:
        territory, instance = self._lookup(code, "update_translation_offset")
        if territory is None:
            return
        self.configuration.update_territory(code, {"translate_offset": [float(offset[0]), float(offset[1])]})
        instance.translate_offset = [float(offset[0]), float(offset[1])]
        self._place(instance)

    def update_pixel_clip_extent(self, code: str, extent: Optional[Sequence[float]]) -> None:
        territory, instance = self._lookup(code, "update_pixel_clip_extent")
        if territory is None:
            return
        value = [float(v) for v in extent] if extent is not None else None
        self.configuration.update_territory(code, {"pixel_clip_extent": value})
        instance.pixel_clip_extent = value
        self._place(instance)

    def update_scale(self, code: str, multiplier: float) -> None:
        if multiplier is None or multiplier <= 0:
            raise ConfigurationError(f"Scale multiplier must be positive for territory: {code}")
        territory, instance = self._lookup(code, "update_scale")
        if territory is None:
            return
        parameters = dict(territory.parameters)
        parameters["scale_multiplier"] = float(multiplier)
        self.configuration.update_territory(code, {"parameters": parameters})
        instance.scale_multiplier = float(multiplier)
        self._place(instance)

    def update_reference_scale(self, scale: float) -> None:
        self.configuration.set_reference_scale(scale)
        for instance in self._instances.values():
            self._place(instance)

    def update_canvas_dimensions(self, width: float, height: float) -> None:
        self.configuration.set_canvas_dimensions({"width": width, "height": height})
        for instance in self._instances.values():
            self._place(instance)

    def sync_territories(self) -> None:
        """Instantiate territories added to the configuration and drop removed ones."""
        codes = self.configuration.get_territory_codes()
        for code in list(self._instances):
            if code not in codes:
                del self._instances[code]
        for code in codes:
            if code not in self._instances:
                self._instances[code] = self._instantiate(self.configuration.get_territory(code))
        # Keep configuration order
        self._instances = {code: self._instances[code] for code in codes}

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------

    def build(self, width: Optional[float] = None, height: Optional[float] = None, auto_fit: bool = False) -> CompositeProjection:
        """
        Produce a fresh composite projection sized to the canvas.

        With ``auto_fit`` each territory is fitted to its own bounds inside its
        pixel clip extent before composition.
        """
        center = self._canvas_center(width, height)
        reference_scale = self.configuration.reference_scale
        instances = [instance.copy() for instance in self._instances.values()]

        for instance in instances:
            place_sub_projection(instance, reference_scale, center)
            if auto_fit:
                self._fit_instance(instance, reference_scale, center)

        router = TerritoryRouter([RouteEntry(i.code, i.role, i.bounds, n) for n, i in enumerate(instances)])
        for code_a, code_b in router.overlapping_pairs():
            logger.warning(f"⚠️ Bounds of {code_a} and {code_b} overlap; shared rings go to {code_a}")

        return CompositeProjection(instances, reference_scale, center, invert_tolerance=COMPOSITE_INVERT_TOLERANCE)

    @staticmethod
    def _fit_instance(instance: SubProjectionInstance, reference_scale: float, center: Sequence[float]) -> None:
        if not instance.bounds or not instance.pixel_clip_extent:
            return
        placement = [center[0] + instance.translate_offset[0], center[1] + instance.translate_offset[1]]
        x1, y1, x2, y2 = instance.pixel_clip_extent
        extent = [[placement[0] + x1, placement[1] + y1], [placement[0] + x2, placement[1] + y2]]
        (min_lon, min_lat), (max_lon, max_lat) = instance.bounds

        projection = instance.projection
        projection.fit_extent(extent, mapping(box(min_lon, min_lat, max_lon, max_lat)))

        fitted = projection.translate()
        instance.scale_multiplier = projection.scale() / reference_scale
        instance.translate_offset = [fitted[0] - center[0], fitted[1] - center[1]]
        instance.pixel_clip_extent = [
            extent[0][0] - fitted[0], extent[0][1] - fitted[1],
            extent[1][0] - fitted[0], extent[1][1] - fitted[1],
        ]
        position_clip_extent(instance, fitted)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_territory_codes(self) -> List[str]:
        return list(self._instances.keys())

    def get_projection(self, code: str) -> Optional[Any]:
        instance = self._instances.get(code)
        return instance.projection if instance else None

    def get_effective_scales(self) -> Dict[str, float]:
        reference_scale = self.configuration.reference_scale
        return {code: reference_scale * i.scale_multiplier for code, i in self._instances.items()}

    def get_composition_borders(self) -> List[Dict[str, Any]]:
        """Pixel rectangles of each territory's clip extent, for drawing frames."""
        borders: List[Dict[str, Any]] = []
        for code, instance in self._instances.items():
            extent = instance.projection.clip_extent()
            if extent is None:
                continue
            (x0, y0), (x1, y1) = extent
            borders.append({
                "code": code,
                "name": instance.name,
                "extent": extent,
                "ring": [[x0, y0], [x1, y0], [x1, y1], [x0, y1], [x0, y0]],
            })
        return borders

    def get_sub_projection_data(self) -> List[Dict[str, Any]]:
        data: List[Dict[str, Any]] = []
        for code, instance in self._instances.items():
            projection = instance.projection
            data.append({
                "code": code,
                "name": instance.name,
                "role": instance.role.value,
                "projection_id": instance.projection_id,
                "family": instance.family.value,
                "scale": projection.scale(),
                "translate": projection.translate(),
                "center": projection.center(),
                "rotate": projection.rotate(),
                "parallels": projection.parallels() if hasattr(projection, "parallels") else None,
                "clip_extent": projection.clip_extent(),
                "bounds": copy.deepcopy(instance.bounds),
            })
        return data
