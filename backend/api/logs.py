"""
Log inspection endpoints.
"""
import io
import json
import zipfile
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Query, Response

from services.logging_service import get_log_file, get_ring_handler

router = APIRouter(prefix="/logs", tags=["logs"])


@router.get("/recent")
def get_recent_logs(
    limit: int = Query(500, ge=1, le=5000),
    level: Optional[str] = Query(None, description="Minimum level, e.g. WARNING"),
):
    return {"logs": get_ring_handler().get_recent(limit, level)}


@router.delete("/recent")
def clear_recent_logs():
    get_ring_handler().clear()
    return {"success": True}


@router.get("/download")
def download_logs():
    """Zip of the log file with its rotations and a dump of the ring buffer."""
    log_file = Path(get_log_file())
    archive = io.BytesIO()
    with zipfile.ZipFile(archive, "w", zipfile.ZIP_DEFLATED) as zf:
        if log_file.parent.is_dir():
            for path in sorted(log_file.parent.glob(f"{log_file.name}*")):
                if path.is_file():
                    zf.write(path, arcname=path.name)
        snapshot = {"logs": get_ring_handler().get_recent(2000)}
        zf.writestr("recent_ring_buffer.json", json.dumps(snapshot, indent=2))

    return Response(
        content=archive.getvalue(),
        media_type="application/zip",
        headers={"Content-Disposition": 'attachment; filename="atlas-composer-logs.zip"'},
    )
