"""
Preset documents bundled with the backend, one ``<atlas_id>.json`` per atlas.
"""
import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from config.settings import COMPOSITE_PRESETS_DIR

logger = logging.getLogger(__name__)

_ATLAS_ID = re.compile(r"^[A-Za-z0-9_-]+$")


def presets_directory(directory: Optional[str] = None) -> Path:
    return Path(directory or COMPOSITE_PRESETS_DIR)


def list_presets(directory: Optional[str] = None) -> List[str]:
    root = presets_directory(directory)
    if not root.is_dir():
        return []
    return sorted(p.stem for p in root.glob("*.json"))


def load_preset(atlas_id: str, directory: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """
    Read the raw preset document for an atlas.

    Returns None when no preset exists. The document is not validated here;
    pass it through the loader for that.
    """
    if not _ATLAS_ID.match(atlas_id or ""):
        logger.warning(f"⚠️ Rejected preset id '{atlas_id}'")
        return None

    path = presets_directory(directory) / f"{atlas_id}.json"
    if not path.is_file():
        logger.info(f"📂 No preset for {atlas_id} in {path.parent}")
        return None

    with open(path, "r", encoding="utf-8") as f:
        doc = json.load(f)
    logger.info(f"📂 Loaded preset {atlas_id}")
    return doc
