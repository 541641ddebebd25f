"""
Central configuration for backend settings.
"""
import os
from typing import List

from config.paths import backend_root, presets_root


# Composite projection defaults
COMPOSITE_DEFAULT_REFERENCE_SCALE: float = float(os.getenv("COMPOSITE_DEFAULT_REFERENCE_SCALE", "2700"))
COMPOSITE_DEFAULT_CANVAS_WIDTH: float = float(os.getenv("COMPOSITE_DEFAULT_CANVAS_WIDTH", "960"))
COMPOSITE_DEFAULT_CANVAS_HEIGHT: float = float(os.getenv("COMPOSITE_DEFAULT_CANVAS_HEIGHT", "500"))

# Degrees of slack when checking an inverted point against territory bounds
COMPOSITE_INVERT_TOLERANCE: float = float(os.getenv("COMPOSITE_INVERT_TOLERANCE", "0.01"))

# Max engines kept in the per-atlas engine cache (0 = unbounded)
COMPOSITE_ENGINE_CACHE_SIZE: int = int(os.getenv("COMPOSITE_ENGINE_CACHE_SIZE", "16"))

# Directory of preset interchange documents (<atlas_id>.json)
COMPOSITE_PRESETS_DIR: str = os.getenv("COMPOSITE_PRESETS_DIR", str(presets_root()))

# Comma-separated atlas ids whose presets are loaded into the engine cache at startup
COMPOSITE_PRELOAD_PRESETS: List[str] = [
    atlas_id.strip() for atlas_id in os.getenv("COMPOSITE_PRELOAD_PRESETS", "").split(",") if atlas_id.strip()
]

# Logging: rotating file under LOG_DIR plus an in-memory ring served at /api/logs
LOG_DIR: str = os.getenv("LOG_DIR", str(backend_root() / "logs"))
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_RING_SIZE: int = int(os.getenv("RING_BUFFER_SIZE", "2000"))
LOG_RING_MIN_LEVEL: str = os.getenv("RING_BUFFER_MIN_LEVEL", "INFO").upper()
