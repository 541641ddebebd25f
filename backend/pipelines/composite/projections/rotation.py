"""
Spherical Rotation
Three-axis rotation of the sphere applied before a raw projection
"""
import math
from typing import Sequence, Tuple

TAU = 2 * math.pi


def _wrap(lam: float) -> float:
    if lam > math.pi:
        return lam - TAU
    if lam < -math.pi:
        return lam + TAU
    return lam


def _asin(x: float) -> float:
    return math.asin(max(-1.0, min(1.0, x)))


class SphericalRotation:
    """
    Rotation by (λ, φ, γ) in degrees.

    λ spins about the polar axis, φ tilts about the y axis and γ rolls about
    the x axis. ``forward`` and ``invert`` take and return radians.
    """

    def __init__(self, angles: Sequence[float]):
        delta_lambda = math.radians(angles[0]) % TAU
        delta_phi = math.radians(angles[1]) if len(angles) > 1 else 0.0
        delta_gamma = math.radians(angles[2]) if len(angles) > 2 else 0.0

        self._delta_lambda = delta_lambda
        self._has_phi_gamma = bool(delta_phi or delta_gamma)
        self._cos_dp = math.cos(delta_phi)
        self._sin_dp = math.sin(delta_phi)
        self._cos_dg = math.cos(delta_gamma)
        self._sin_dg = math.sin(delta_gamma)

    @property
    def is_identity(self) -> bool:
        return not self._delta_lambda and not self._has_phi_gamma

    def forward(self, lam: float, phi: float) -> Tuple[float, float]:
        lam = _wrap(lam + self._delta_lambda)
        if not self._has_phi_gamma:
            return lam, phi

        cos_phi = math.cos(phi)
        x = math.cos(lam) * cos_phi
        y = math.sin(lam) * cos_phi
        z = math.sin(phi)
        k = z * self._cos_dp + x * self._sin_dp
        return (
            math.atan2(y * self._cos_dg - k * self._sin_dg, x * self._cos_dp - z * self._sin_dp),
            _asin(k * self._cos_dg + y * self._sin_dg),
        )

    def invert(self, lam: float, phi: float) -> Tuple[float, float]:
        if self._has_phi_gamma:
            cos_phi = math.cos(phi)
            x = math.cos(lam) * cos_phi
            y = math.sin(lam) * cos_phi
            z = math.sin(phi)
            k = z * self._cos_dg - y * self._sin_dg
            lam = math.atan2(y * self._cos_dg + z * self._sin_dg, x * self._cos_dp + k * self._sin_dp)
            phi = _asin(k * self._cos_dp - x * self._sin_dp)
        return _wrap(lam - self._delta_lambda), phi

    def forward_degrees(self, lon: float, lat: float) -> Tuple[float, float]:
        lam, phi = self.forward(math.radians(lon), math.radians(lat))
        return math.degrees(lam), math.degrees(phi)

    def invert_degrees(self, lon: float, lat: float) -> Tuple[float, float]:
        lam, phi = self.invert(math.radians(lon), math.radians(lat))
        return math.degrees(lam), math.degrees(phi)
