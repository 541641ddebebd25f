"""
Raw Projections
pyproj-backed projection math on the unit sphere
"""
import logging
import math
from typing import Any, Dict, Optional, Tuple

from pyproj import Proj
from pyproj.exceptions import CRSError, ProjError

from ..errors import ProjectionError

logger = logging.getLogger(__name__)


class RawProjection:
    """
    One PROJ operation on a sphere of radius 1, centred on (0, 0).

    Inputs are degrees, outputs are sphere radii; non-finite results (points
    outside the projection's domain) come back as None.
    """

    def __init__(self, proj_name: str, **options: Any):
        self.proj_name = proj_name
        self.options: Dict[str, Any] = dict(options)
        self.definition = self._definition()
        try:
            self._proj = Proj(self.definition)
        except (CRSError, ProjError) as e:
            raise ProjectionError(f"Cannot create projection '{self.definition}': {e}") from e
        logger.debug(f"🧭 Raw projection ready: {self.definition}")

    def _definition(self) -> str:
        params = {"proj": self.proj_name, "R": 1, "lon_0": 0, "lat_0": 0, "x_0": 0, "y_0": 0}
        params.update(self.options)
        return " ".join(f"+{key}={value}" for key, value in params.items()) + " +no_defs"

    def with_options(self, **options: Any) -> "RawProjection":
        merged = dict(self.options)
        merged.update(options)
        return RawProjection(self.proj_name, **merged)

    def forward(self, lon: float, lat: float) -> Optional[Tuple[float, float]]:
        x, y = self._proj(lon, lat, errcheck=False)
        if not (math.isfinite(x) and math.isfinite(y)):
            return None
        return x, y

    def inverse(self, x: float, y: float) -> Optional[Tuple[float, float]]:
        lon, lat = self._proj(x, y, inverse=True, errcheck=False)
        if not (math.isfinite(lon) and math.isfinite(lat)):
            return None
        return lon, lat

    def __repr__(self) -> str:
        return f"RawProjection({self.definition!r})"
