"""
Parameter Provider
Layered parameter overrides (global, atlas preset, territory) resolved through
one precedence chain per query
"""
from __future__ import annotations

import copy
import logging
from typing import Any, Dict, List, Optional, Protocol, Tuple

from .constraints import ParameterConstraintsEngine, get_constraints_engine
from .types import ProjectionFamily, coerce_family

logger = logging.getLogger(__name__)

GLOBAL_LAYER = "global"
ATLAS_LAYER = "atlas"
TERRITORY_LAYER = "territory"

# Lowest precedence first
PRECEDENCE: Tuple[str, ...] = (GLOBAL_LAYER, ATLAS_LAYER, TERRITORY_LAYER)


class ParameterProvider(Protocol):
    """Read-only view consumed by the builder and the export serializer."""

    def get_effective_parameters(self, code: str) -> Dict[str, Any]:
        ...

    def get_exportable_parameters(self, code: str) -> Dict[str, Any]:
        ...


class LayeredParameterProvider:
    """
    Parameter overrides in three layers.

    - global: applies to every territory (e.g. a global precision setting)
    - atlas: the atlas preset, either atlas-wide or per territory
    - territory: live per-territory edits

    A ``None`` value in any layer means "not set here" and falls through to
    the layer below.
    """

    def __init__(self, constraints: Optional[ParameterConstraintsEngine] = None):
        self._constraints = constraints or get_constraints_engine()
        self._global: Dict[str, Any] = {}
        self._atlas_wide: Dict[str, Any] = {}
        self._atlas: Dict[str, Dict[str, Any]] = {}
        self._territory: Dict[str, Dict[str, Any]] = {}
        self._families: Dict[str, ProjectionFamily] = {}

    @classmethod
    def from_configuration(cls, configuration: Any, constraints: Optional[ParameterConstraintsEngine] = None) -> "LayeredParameterProvider":
        """Seed the atlas layer from a CompositeConfiguration's territory parameters."""
        provider = cls(constraints)
        for territory in configuration.get_all_territories():
            provider.set_territory_family(territory.code, territory.family)
            provider.set_atlas_parameters(territory.parameters, code=territory.code)
        return provider

    # ------------------------------------------------------------------
    # Layer edits
    # ------------------------------------------------------------------

    def set_territory_family(self, code: str, family: Any) -> None:
        self._families[code] = coerce_family(family)

    def set_global_parameter(self, key: str, value: Any) -> None:
        self._set(self._global, key, value)

    def set_atlas_parameters(self, parameters: Dict[str, Any], code: Optional[str] = None) -> None:
        if code is None:
            self._atlas_wide = copy.deepcopy(parameters)
        else:
            self._atlas[code] = copy.deepcopy(parameters)

    def set_territory_parameter(self, code: str, key: str, value: Any) -> None:
        family = self._families.get(code)
        if family is not None and value is not None:
            result = self._constraints.validate(family, key, value)
            if not result.is_valid:
                logger.warning(f"⚠️ Territory {code}: {result.error}")
        self._set(self._territory.setdefault(code, {}), key, value)

    def clear_territory_parameter(self, code: str, key: str) -> None:
        self._territory.get(code, {}).pop(key, None)

    def clear_territory(self, code: str) -> None:
        self._territory.pop(code, None)

    @staticmethod
    def _set(layer: Dict[str, Any], key: str, value: Any) -> None:
        if value is None:
            layer.pop(key, None)
        else:
            layer[key] = copy.deepcopy(value)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _chain(self, code: str) -> List[Tuple[str, Dict[str, Any]]]:
        atlas = dict(self._atlas_wide)
        atlas.update(self._atlas.get(code, {}))
        layers = {
            GLOBAL_LAYER: self._global,
            ATLAS_LAYER: atlas,
            TERRITORY_LAYER: self._territory.get(code, {}),
        }
        return [(name, layers[name]) for name in PRECEDENCE]

    def get_effective_parameters(self, code: str) -> Dict[str, Any]:
        merged: Dict[str, Any] = {}
        for _, layer in self._chain(code):
            merged.update({k: v for k, v in layer.items() if v is not None})
        return copy.deepcopy(merged)

    def get_parameter_source(self, code: str, key: str) -> Optional[str]:
        """Name of the highest layer that sets ``key`` for ``code``."""
        source = None
        for name, layer in self._chain(code):
            if layer.get(key) is not None:
                source = name
        return source

    def get_exportable_parameters(self, code: str) -> Dict[str, Any]:
        """
        Atlas and territory values, restricted to what the territory's family uses.

        Global values are environment settings rather than part of the
        composition, so they are left out.
        """
        merged: Dict[str, Any] = {}
        for name, layer in self._chain(code):
            if name == GLOBAL_LAYER:
                continue
            merged.update({k: v for k, v in layer.items() if v is not None})

        family = self._families.get(code)
        if family is None:
            return copy.deepcopy(merged)
        return {
            key: copy.deepcopy(value)
            for key, value in merged.items()
            if key == "scale_multiplier" or self._constraints.is_relevant(family, key)
        }
