"""Coordinate maps between simulation space and drawing-surface pixels.

Pixel space has its origin at the top-left corner with y growing downward.
Every forward map used for drawing has an inverse used by the interaction
controller, so a tap lands exactly where the renderer drew.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np


@dataclass(frozen=True)
class LinearMap:
    """Affine map from a domain interval onto a pixel interval.

    ``pixels`` may be decreasing (e.g. a y axis that grows upward on screen).
    """

    domain: Tuple[float, float]
    pixels: Tuple[float, float]

    def __post_init__(self) -> None:
        if self.domain[0] == self.domain[1]:
            raise ValueError(f"LinearMap domain must have non-zero width, got {self.domain}.")

    @classmethod
    def padded(
        cls,
        domain: Tuple[float, float],
        start: float,
        length: float,
        padding: float = 0.0,
    ) -> "LinearMap":
        """Map ``domain`` onto ``[start + padding, start + length - padding]``."""
        return cls(domain, (start + padding, start + length - padding))

    @property
    def scale(self) -> float:
        return (self.pixels[1] - self.pixels[0]) / (self.domain[1] - self.domain[0])

    @property
    def extent(self) -> float:
        return abs(self.pixels[1] - self.pixels[0])

    def __call__(self, value):
        return self.pixels[0] + (value - self.domain[0]) * self.scale

    def inverse(self, pixel):
        return self.domain[0] + (pixel - self.pixels[0]) / self.scale

    def contains_pixel(self, pixel: float) -> bool:
        lo, hi = sorted(self.pixels)
        return lo <= pixel <= hi


@dataclass(frozen=True)
class Viewport:
    """A 2D rectangle combining independent x and y linear maps."""

    x: LinearMap
    y: LinearMap

    @classmethod
    def from_rect(
        cls,
        left: float,
        top: float,
        width: float,
        height: float,
        x_domain: Tuple[float, float] = (0.0, 1.0),
        y_domain: Tuple[float, float] = (0.0, 1.0),
    ) -> "Viewport":
        """Rectangle with ``y_domain[0]`` on its bottom edge and ``y_domain[1]`` on top."""
        return cls(
            LinearMap(x_domain, (left, left + width)),
            LinearMap(y_domain, (top + height, top)),
        )

    def to_pixels(self, x, y):
        return self.x(x), self.y(y)

    def to_domain(self, px, py):
        return self.x.inverse(px), self.y.inverse(py)

    def contains(self, px: float, py: float) -> bool:
        return self.x.contains_pixel(px) and self.y.contains_pixel(py)


@dataclass(frozen=True)
class OrbitProjection:
    """Orthographic projection rotating slowly about the vertical axis.

    A point ``(x, y, z)`` is rotated by ``angle`` in the x-z plane; the rotated
    x and z become screen x and y, and y is dropped. ``offset`` is subtracted
    before rotating so the attractor sits around the surface centre.
    """

    angle: float
    scale: float
    center: Tuple[float, float]
    offset: Tuple[float, float, float] = (0.0, 0.0, 0.0)

    def project(self, x: float, y: float, z: float) -> Tuple[float, float]:
        cos_a = math.cos(self.angle)
        sin_a = math.sin(self.angle)
        dx = x - self.offset[0]
        dz = z - self.offset[2]
        xr = dx * cos_a - dz * sin_a
        zr = dx * sin_a + dz * cos_a
        return xr * self.scale + self.center[0], zr * self.scale + self.center[1]

    def project_many(self, points) -> np.ndarray:
        """Vectorised :meth:`project` for an ``(n, 3)`` array; returns ``(n, 2)``."""
        points = np.asarray(points, dtype=float).reshape(-1, 3)
        if points.size == 0:
            return np.empty((0, 2))
        cos_a = math.cos(self.angle)
        sin_a = math.sin(self.angle)
        dx = points[:, 0] - self.offset[0]
        dz = points[:, 2] - self.offset[2]
        xr = dx * cos_a - dz * sin_a
        zr = dx * sin_a + dz * cos_a
        return np.column_stack((xr * self.scale + self.center[0], zr * self.scale + self.center[1]))


@dataclass(frozen=True)
class LatticeLayout:
    """Uniform grid of ``rows x cols`` cells filling a ``width x height`` surface."""

    rows: int
    cols: int
    width: float
    height: float

    @property
    def cell_width(self) -> float:
        return self.width / self.cols

    @property
    def cell_height(self) -> float:
        return self.height / self.rows

    def cell_at(self, px: float, py: float) -> Optional[Tuple[int, int]]:
        """Cell ``(row, col)`` under a pixel, or None outside the grid."""
        if not (math.isfinite(px) and math.isfinite(py)):
            return None
        col = math.floor(px / self.cell_width)
        row = math.floor(py / self.cell_height)
        if 0 <= row < self.rows and 0 <= col < self.cols:
            return row, col
        return None

    def cell_center(self, row: int, col: int) -> Tuple[float, float]:
        return (col + 0.5) * self.cell_width, (row + 0.5) * self.cell_height


def trail_alpha(age: int, length: int, cap: int = 2000) -> float:
    """Opacity of a trail sample ``age`` steps old; the newest sample is 1."""
    horizon = min(length, cap)
    if horizon <= 0:
        return 0.0
    return max(0.0, 1.0 - age / horizon)


def trail_alphas(length: int, cap: int = 2000) -> np.ndarray:
    """Opacities for a whole trail, oldest sample first."""
    if length <= 0:
        return np.empty(0)
    ages = np.arange(length - 1, -1, -1, dtype=float)
    horizon = min(length, cap)
    return np.maximum(0.0, 1.0 - ages / horizon)
