"""Lattice gauge-field relaxation.

A ``rows x cols`` grid holds one angle per cell. Every step each cell turns a
fraction of the way toward the circular mean of its Moore neighbours, so local
disorder diffuses away and the lattice drifts toward alignment. The fraction
grows with the field strength and shrinks with the gauge freedom.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Optional

import numpy as np

from .config import GaugeFieldConfig
from .history import HistoryView
from .integrators import TWO_PI, circular_mean, normalize_angle, relax_lattice, sanitize_array
from .interaction import Gesture, PointerEvent, PointerKind
from .projection import LatticeLayout
from .render import Frame, FrameBuilder, FrameContext, Surface, hue_color
from .simulation import Simulation
from .sliders import safe_parameter, slider_fraction

# Each unordered neighbour pair is visited once: right, down and both diagonals
_PAIR_OFFSETS = ((0, 1), (1, 0), (1, 1), (1, -1))


@dataclass(frozen=True)
class GaugeFieldParams:
    """Coupling controls, both fractions in [0, 1]."""

    field_strength: float = 0.65
    gauge_freedom: float = 0.45

    def __post_init__(self) -> None:
        object.__setattr__(self, "field_strength", safe_parameter(self.field_strength, 0.65, 0.0, 1.0))
        object.__setattr__(self, "gauge_freedom", safe_parameter(self.gauge_freedom, 0.45, 0.0, 1.0))

    @classmethod
    def from_sliders(cls, field_strength: float = 65.0, gauge_freedom: float = 45.0) -> "GaugeFieldParams":
        return cls(slider_fraction(field_strength), slider_fraction(gauge_freedom))


def effective_alpha(params: GaugeFieldParams, config: GaugeFieldConfig) -> float:
    """Relaxation fraction per step: ``base * strength * (1 - weight * freedom)``."""
    return config.base_alpha * params.field_strength * (1.0 - params.gauge_freedom * config.freedom_weight)


@dataclass(frozen=True, eq=False)
class GaugeFieldState:
    """Read-only grid of angles in ``[0, 2*pi)``, indexed ``[row, col]``."""

    angles: np.ndarray

    def __post_init__(self) -> None:
        if not isinstance(self.angles, np.ndarray):
            raise TypeError(
                f"angles must be a numpy array, got {type(self.angles)}.\n"
                f"Use np.array() to convert your data."
            )
        if self.angles.ndim != 2 or self.angles.size == 0:
            raise ValueError(
                f"angles must be a non-empty 2D array, got shape {self.angles.shape}.\n"
                f"The lattice is indexed as [row, col]."
            )
        angles = np.array(self.angles, dtype=float)
        angles.setflags(write=False)
        object.__setattr__(self, "angles", angles)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GaugeFieldState):
            return NotImplemented
        return np.array_equal(self.angles, other.angles)

    __hash__ = None

    @property
    def shape(self) -> tuple[int, int]:
        return self.angles.shape

    def with_cell(self, row: int, col: int, angle: float) -> "GaugeFieldState":
        angles = self.angles.copy()
        angles[row, col] = normalize_angle(angle)
        return GaugeFieldState(angles)


def order_parameter(angles: np.ndarray) -> float:
    """Length of the mean unit vector: 1 when aligned, near 0 when disordered."""
    return float(math.hypot(np.mean(np.cos(angles)), np.mean(np.sin(angles))))


def misalignment(angles: np.ndarray) -> float:
    """Mean of ``1 - cos(difference)`` over all neighbouring cell pairs."""
    rows, cols = angles.shape
    total = 0.0
    pairs = 0
    for dr, dc in _PAIR_OFFSETS:
        r0, r1 = 0, rows - dr
        c0, c1 = max(0, -dc), cols - max(0, dc)
        if r1 <= r0 or c1 <= c0:
            continue
        here = angles[r0:r1, c0:c1]
        there = angles[r0 + dr:r1 + dr, c0 + dc:c1 + dc]
        total += float(np.sum(1.0 - np.cos(here - there)))
        pairs += here.size
    return total / pairs if pairs else 0.0


class GaugeField(Simulation[GaugeFieldState, GaugeFieldParams]):
    name = "gauge-field"

    def __init__(self, config: Optional[GaugeFieldConfig] = None) -> None:
        super().__init__(config or GaugeFieldConfig())

    def default_params(self) -> GaugeFieldParams:
        return GaugeFieldParams()

    @property
    def shape(self) -> tuple[int, int]:
        return max(1, int(self.config.rows)), max(1, int(self.config.cols))

    def initial_state(self, params: GaugeFieldParams) -> GaugeFieldState:
        return GaugeFieldState(np.zeros(self.shape))

    def randomize(
        self, state: GaugeFieldState, params: GaugeFieldParams, rng: np.random.Generator
    ) -> GaugeFieldState:
        return GaugeFieldState(rng.uniform(0.0, TWO_PI, size=self.shape))

    def step(self, state: GaugeFieldState, params: GaugeFieldParams, dt: float) -> GaugeFieldState:
        relaxed = relax_lattice(state.angles, effective_alpha(params, self.config))
        return GaugeFieldState(sanitize_array(relaxed, 0.0, "gauge lattice"))

    def diagnostics(self, state: GaugeFieldState, params: GaugeFieldParams) -> Dict[str, float]:
        return {
            "order_parameter": order_parameter(state.angles),
            "mean_angle": circular_mean(state.angles),
            "misalignment": misalignment(state.angles),
            "effective_alpha": effective_alpha(params, self.config),
        }

    def layout(self, surface: Surface) -> LatticeLayout:
        rows, cols = self.shape
        return LatticeLayout(rows, cols, surface.width, surface.height)

    def apply_interaction(
        self,
        state: GaugeFieldState,
        params: GaugeFieldParams,
        event: PointerEvent,
        surface: Surface,
        gesture: Gesture,
    ) -> GaugeFieldState:
        if event.kind is PointerKind.UP:
            return state
        if event.kind is PointerKind.MOVE and not gesture.active:
            return state
        layout = self.layout(surface)
        cell = layout.cell_at(event.x, event.y)
        if cell is None:
            return state
        if event.kind is PointerKind.MOVE and gesture.cell == cell:
            return state
        cx, cy = layout.cell_center(*cell)
        gesture.cell = cell
        return state.with_cell(cell[0], cell[1], math.atan2(event.y - cy, event.x - cx))

    def render(
        self,
        state: GaugeFieldState,
        params: GaugeFieldParams,
        history: HistoryView,
        context: FrameContext,
        surface: Surface,
    ) -> Frame:
        cfg = self.config
        builder = FrameBuilder(surface, background=True)
        layout = self.layout(surface)
        length = min(layout.cell_width, layout.cell_height) * cfg.arrow_fraction
        head = length * cfg.arrowhead_fraction
        lightness = builder.theme.hue_lightness
        rows, cols = state.shape
        for row in range(rows):
            for col in range(cols):
                angle = float(state.angles[row, col])
                cx, cy = layout.cell_center(row, col)
                ex = cx + math.cos(angle) * length
                ey = cy + math.sin(angle) * length
                color = hue_color(angle / TWO_PI, lightness)
                builder.line((cx, cy), (ex, ey), color, width=1.5, alpha=0.7)
                builder.polyline(
                    (
                        (ex - head * math.cos(angle - cfg.arrowhead_angle),
                         ey - head * math.sin(angle - cfg.arrowhead_angle)),
                        (ex, ey),
                        (ex - head * math.cos(angle + cfg.arrowhead_angle),
                         ey - head * math.sin(angle + cfg.arrowhead_angle)),
                    ),
                    color,
                    width=1.5,
                    alpha=0.7,
                )
        return builder.build(self.diagnostics(state, params))
