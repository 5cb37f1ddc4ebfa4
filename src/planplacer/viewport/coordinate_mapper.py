"""
Coordinate Mapper
Maps pointer positions (widget pixels, y down) onto the z=0 world plane.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

PARALLEL_EPS = 1e-12


@dataclass(frozen=True)
class OrthographicView:
    """
    Snapshot of an orthographic camera.

    `half_width` / `half_height` are half the visible extents in world units.
    `direction` and `up` must be unit vectors and orthogonal.
    """
    position: tuple[float, float, float]
    direction: tuple[float, float, float] = (0.0, 0.0, -1.0)
    up: tuple[float, float, float] = (0.0, 1.0, 0.0)
    half_width: float = 1.0
    half_height: float = 1.0
    near: float = 0.1
    far: float = 2000.0


class CoordinateMapper:
    """
    Casts a ray from the camera through a pointer pixel and intersects it
    with a fixed plane (default: z = 0, normal +z).

    The mapper keeps scratch buffers, so one instance should be reused for
    every event rather than created per call.
    """
    def __init__(
        self,
        normal: tuple[float, float, float] = (0.0, 0.0, 1.0),
        constant: float = 0.0
    ) -> None:
        self._normal = np.asarray(normal, dtype=np.float64)
        self._constant = float(constant)

        # scratch
        self._origin = np.zeros(3, dtype=np.float64)
        self._direction = np.zeros(3, dtype=np.float64)
        self._up = np.zeros(3, dtype=np.float64)
        self._right = np.zeros(3, dtype=np.float64)
        self._point = np.zeros(3, dtype=np.float64)

    @staticmethod
    def to_ndc(client_x: float, client_y: float, width: float, height: float) -> tuple[float, float]:
        """Pixel coordinates (origin top-left) to normalized device coordinates, y up."""
        return (client_x / width) * 2.0 - 1.0, -(client_y / height) * 2.0 + 1.0

    def pointer_to_world(
        self,
        client_x: float,
        client_y: float,
        viewport_size: tuple[int, int],
        view: OrthographicView
    ) -> Optional[tuple[float, float]]:
        """
        Intersection of the pointer ray with the plane, as (x, y).

        Returns None when the viewport has no area, the ray is parallel to the
        plane, or the plane lies behind the camera.
        """
        width, height = viewport_size
        if width <= 0 or height <= 0:
            return None

        ndc_x, ndc_y = self.to_ndc(client_x, client_y, width, height)

        self._direction[:] = view.direction
        self._up[:] = view.up
        self._right[:] = np.cross(self._direction, self._up)

        # Orthographic ray: origin on the near plane, shifted across the view rectangle
        self._origin[:] = view.position
        self._origin += self._right * (ndc_x * view.half_width)
        self._origin += self._up * (ndc_y * view.half_height)
        self._origin += self._direction * view.near

        hit = self._intersect_plane(self._origin, self._direction)
        if hit is None:
            return None
        return float(hit[0]), float(hit[1])

    def _intersect_plane(self, origin: np.ndarray, direction: np.ndarray) -> Optional[np.ndarray]:
        denom = float(self._normal @ direction)
        if abs(denom) < PARALLEL_EPS:
            return None

        t = -(float(self._normal @ origin) + self._constant) / denom
        if t < 0.0 or not math.isfinite(t):
            return None

        np.multiply(direction, t, out=self._point)
        self._point += origin
        if not np.all(np.isfinite(self._point)):
            return None
        return self._point
