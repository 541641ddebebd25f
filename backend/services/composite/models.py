"""
Interchange Models
Pydantic models of the versioned composite projection document
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_serializer

from pipelines.composite.types import CompositePattern, ExportFamily, TerritoryRole

CURRENT_VERSION = "1.0"
MIN_SUPPORTED_VERSION = "1.0"

# Engine parameter name -> document parameter name
PARAMETER_ALIASES: Dict[str, str] = {
    "rotate": "rotate",
    "center": "center",
    "parallels": "parallels",
    "scale_multiplier": "scaleMultiplier",
    "clip_angle": "clipAngle",
    "distance": "distance",
    "tilt": "tilt",
    "precision": "precision",
}
PARAMETER_NAMES: Dict[str, str] = {alias: name for name, alias in PARAMETER_ALIASES.items()}


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)


class ExportMetadata(_CamelModel):
    atlas_id: str = Field(..., alias="atlasId", min_length=1)
    atlas_name: Optional[str] = Field(None, alias="atlasName")
    export_date: Optional[str] = Field(None, alias="exportDate")
    created_with: Optional[str] = Field(None, alias="createdWith")
    notes: Optional[str] = None


class CanvasDimensions(_CamelModel):
    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)


class ExportedProjectionParameters(_CamelModel):
    rotate: Optional[List[float]] = None
    center: Optional[List[float]] = None
    parallels: Optional[List[float]] = None
    scale_multiplier: Optional[float] = Field(None, alias="scaleMultiplier", gt=0)
    clip_angle: Optional[float] = Field(None, alias="clipAngle")
    distance: Optional[float] = None
    tilt: Optional[float] = None
    precision: Optional[float] = None

    def to_engine_parameters(self) -> Dict[str, Any]:
        """Parameters keyed by engine names, unset values dropped."""
        return {name: value for name, value in self.model_dump(by_alias=False).items() if value is not None}


class ExportedProjection(_CamelModel):
    id: str = Field(..., min_length=1)
    family: ExportFamily
    parameters: ExportedProjectionParameters = Field(default_factory=ExportedProjectionParameters)


class ExportedLayout(_CamelModel):
    translate_offset: List[float] = Field(..., alias="translateOffset", min_length=2, max_length=2)
    pixel_clip_extent: Optional[List[float]] = Field(..., alias="pixelClipExtent")

    @model_serializer(mode="wrap")
    def _keep_clip_extent(self, handler, info):
        # The key is required even when null
        data = handler(self)
        data["pixelClipExtent" if info.by_alias else "pixel_clip_extent"] = self.pixel_clip_extent
        return data


class ExportedTerritory(_CamelModel):
    code: str = Field(..., min_length=1)
    name: str = ""
    role: TerritoryRole = TerritoryRole.SECONDARY
    projection: ExportedProjection
    layout: ExportedLayout
    bounds: Optional[List[List[float]]] = None


class ExportedCompositeConfig(_CamelModel):
    version: str
    metadata: ExportMetadata
    pattern: CompositePattern
    reference_scale: float = Field(..., alias="referenceScale", gt=0)
    canvas_dimensions: CanvasDimensions = Field(..., alias="canvasDimensions")
    territories: List[ExportedTerritory] = Field(..., min_length=1)

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)
