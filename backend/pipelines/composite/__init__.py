"""
Composite Projection Engine
Per-territory projection configuration compiled into one routed composite projection
"""
from .builder import CompositeProjectionBuilder
from .composite import CompositeProjection, SubProjectionInstance
from .configuration import CompositeConfiguration, TerritoryProjectionConfig
from .constraints import ParameterConstraintsEngine, ParameterValidationResult, get_constraints_engine
from .errors import ConfigurationError, ProjectionError
from .parameters import LayeredParameterProvider, ParameterProvider
from .types import CanonicalPositioning, CompositePattern, ExportFamily, PositioningMode, ProjectionFamily, TerritoryRole

__all__ = [
    "CompositeProjectionBuilder",
    "CompositeProjection",
    "SubProjectionInstance",
    "CompositeConfiguration",
    "TerritoryProjectionConfig",
    "ParameterConstraintsEngine",
    "ParameterValidationResult",
    "get_constraints_engine",
    "ConfigurationError",
    "ProjectionError",
    "LayeredParameterProvider",
    "ParameterProvider",
    "CanonicalPositioning",
    "CompositePattern",
    "ExportFamily",
    "PositioningMode",
    "ProjectionFamily",
    "TerritoryRole",
]
