"""
Projection Interface Module
pyproj-backed projections, geometry streams and the projection registry
"""
from .projection import Projection, fit_extent
from .raw import RawProjection
from .registry import ProjectionDefinition, ProjectionRegistry, get_default_registry
from .stream import BoundsStream, GeometryCollectorStream, PointCaptureStream, RecordingStream, Stream, geo_stream

__all__ = [
    "Projection",
    "fit_extent",
    "RawProjection",
    "ProjectionDefinition",
    "ProjectionRegistry",
    "get_default_registry",
    "Stream",
    "RecordingStream",
    "PointCaptureStream",
    "BoundsStream",
    "GeometryCollectorStream",
    "geo_stream",
]
