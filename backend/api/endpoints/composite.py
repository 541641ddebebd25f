"""
Composite Projection API Endpoints
Validation, projection, inversion and export of composite projection documents
"""
from fastapi import APIRouter, HTTPException, status
from typing import Optional, Dict, Any, List
import logging
from pydantic import BaseModel, Field

from pipelines.composite.constraints import get_constraints_engine
from pipelines.composite.projections.registry import get_default_registry
from pipelines.composite.types import ProjectionFamily
from services.composite.composite_service import CompositeService
from services.composite.import_service import check_atlas_compatibility
from services.composite.preset_loader import list_presets, load_preset
from services.composite.validation import validate_exported_config

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/composite")

_service: Optional[CompositeService] = None


def get_composite_service() -> CompositeService:
    global _service
    if _service is None:
        _service = CompositeService()
    return _service


class ValidateRequest(BaseModel):
    document: Dict[str, Any]
    atlas_id: Optional[str] = None


class LoadRequest(BaseModel):
    document: Dict[str, Any]


class ProjectRequest(BaseModel):
    atlas_id: str
    points: Optional[List[List[float]]] = None
    geojson: Optional[Dict[str, Any]] = None
    width: Optional[float] = Field(None, gt=0)
    height: Optional[float] = Field(None, gt=0)


class InvertRequest(BaseModel):
    atlas_id: str
    points: List[List[float]]
    width: Optional[float] = Field(None, gt=0)
    height: Optional[float] = Field(None, gt=0)


class ExportRequest(BaseModel):
    atlas_id: str
    notes: Optional[str] = None
    save: bool = False


def _check_points(points: List[List[float]]) -> None:
    if any(len(p) != 2 for p in points):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Each point must be [x, y]"
        )


def _raise_for_result(result: Dict[str, Any]) -> Dict[str, Any]:
    if not result.get("success"):
        error_msg = result.get("error", "Unknown error")
        code = status.HTTP_404_NOT_FOUND if error_msg.startswith("Atlas not loaded") else status.HTTP_400_BAD_REQUEST
        raise HTTPException(status_code=code, detail=error_msg)
    return result


def _internal_error(action: str, e: Exception) -> HTTPException:
    logger.exception(f"❌ Error in composite {action}: {e}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Internal server error: {str(e) or 'see server logs'}"
    )


@router.post("/validate")
async def validate_document(request: ValidateRequest) -> Dict[str, Any]:
    """
    Structural check of an interchange document

    Returns:
        dict: {valid, errors, warnings}; invalid documents are not an HTTP error
    """
    result = validate_exported_config(request.document)
    if request.atlas_id and result["valid"]:
        compatibility = check_atlas_compatibility(request.document, request.atlas_id)
        result["warnings"].extend(compatibility["warnings"])
    logger.info(f"📋 Validated document: valid={result['valid']}, {len(result['warnings'])} warnings")
    return result


@router.post("/load")
async def load_document(request: LoadRequest) -> Dict[str, Any]:
    try:
        result = get_composite_service().load_document(request.document)
    except Exception as e:
        raise _internal_error("load", e)
    return _raise_for_result(result)


@router.post("/project")
async def project(request: ProjectRequest) -> Dict[str, Any]:
    """
    Project geographic points, or a GeoJSON object, into canvas pixels
    """
    if request.points is None and request.geojson is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="points or geojson is required"
        )

    service = get_composite_service()
    try:
        if request.geojson is not None:
            result = service.project_geojson(request.atlas_id, request.geojson, request.width, request.height)
        else:
            _check_points(request.points)
            result = service.project_points(request.atlas_id, request.points, request.width, request.height)
    except HTTPException:
        raise
    except Exception as e:
        raise _internal_error("projection", e)
    return _raise_for_result(result)


@router.post("/invert")
async def invert(request: InvertRequest) -> Dict[str, Any]:
    _check_points(request.points)
    try:
        result = get_composite_service().invert_points(request.atlas_id, request.points, request.width, request.height)
    except Exception as e:
        raise _internal_error("inversion", e)
    return _raise_for_result(result)


@router.post("/export")
async def export(request: ExportRequest) -> Dict[str, Any]:
    try:
        result = get_composite_service().export_document(request.atlas_id, notes=request.notes, save=request.save)
    except Exception as e:
        raise _internal_error("export", e)
    return _raise_for_result(result)


@router.get("/projections")
async def list_projections(family: Optional[ProjectionFamily] = None) -> Dict[str, Any]:
    definitions = get_default_registry().list_definitions(family)
    return {
        "projections": [
            {
                "id": d.id,
                "name": d.name,
                "family": d.family.value,
                "export_family": d.interchange_family.value,
                "aliases": list(d.aliases),
            }
            for d in definitions
        ]
    }


@router.get("/constraints/{family}")
async def get_constraints(family: ProjectionFamily) -> Dict[str, Any]:
    engine = get_constraints_engine()
    constraints = engine.get_constraints(family)
    return {
        "family": family.value,
        "relevant": engine.get_relevant_parameters(family),
        "constraints": {
            key: {
                "relevant": c.relevant,
                "required": c.required,
                "min": c.min,
                "max": c.max,
                "step": c.step,
                "default": c.default,
                "description": c.description,
            }
            for key, c in constraints.items()
        },
    }


@router.get("/presets")
async def get_presets() -> Dict[str, Any]:
    return {"presets": list_presets()}


@router.get("/presets/{atlas_id}")
async def get_preset(atlas_id: str) -> Dict[str, Any]:
    doc = load_preset(atlas_id)
    if doc is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No preset found for atlas: {atlas_id}"
        )
    return doc
