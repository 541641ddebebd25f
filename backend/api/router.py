"""
API router: mounts the composite and log endpoints under /api.
"""
from fastapi import APIRouter

from api import logs
from api.endpoints import composite

api_router = APIRouter()
api_router.include_router(composite.router, prefix="/api", tags=["composite"])
api_router.include_router(logs.router, prefix="/api")

ENDPOINT_SUMMARY = {
    "validate": "/api/composite/validate - Validate an interchange document",
    "load": "/api/composite/load - Load a document into the engine cache",
    "project": "/api/composite/project - Project points or GeoJSON to canvas pixels",
    "invert": "/api/composite/invert - Invert canvas pixels to longitude/latitude",
    "export": "/api/composite/export - Export a loaded atlas as an interchange document",
    "projections": "/api/composite/projections - Registered projections",
    "constraints": "/api/composite/constraints/{family} - Parameter constraints per family",
    "presets": "/api/composite/presets/{atlas_id} - Bundled preset documents",
    "logs": "/api/logs/recent - Recent log records",
}


@api_router.get("/api")
async def api_root():
    """Endpoint listing for discovery."""
    return {"message": "Atlas Composer API v1.0", "documentation": "/docs", "endpoints": ENDPOINT_SUMMARY}
