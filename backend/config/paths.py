"""
Filesystem locations used by the composite backend.

Bundled presets live next to the code; exports go to a writable location,
which differs when running from a PyInstaller bundle.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

APP_DIR_NAME = "AtlasComposer"


def is_frozen() -> bool:
    return getattr(sys, "frozen", False) is True


def backend_root() -> Path:
    """The ``backend`` directory; under a bundle, the extracted copy of it."""
    if is_frozen():
        bundle = getattr(sys, "_MEIPASS", None)
        if bundle:
            return Path(bundle) / "backend"
    return Path(__file__).resolve().parent.parent


def user_data_root() -> Path:
    """Per-user writable data directory for bundled builds."""
    base = os.environ.get("LOCALAPPDATA") or os.path.join(os.path.expanduser("~"), ".local", "share")
    root = Path(base) / APP_DIR_NAME
    root.mkdir(parents=True, exist_ok=True)
    return root


def presets_root() -> Path:
    return backend_root() / "presets"


def exports_root() -> Path:
    """Where saved interchange documents are written (created on first use)."""
    root = (user_data_root() if is_frozen() else backend_root()) / "exports"
    root.mkdir(parents=True, exist_ok=True)
    return root
