"""Energy-conservation track: a particle sliding on a shaped 1D track.

The particle's horizontal position ``x`` in ``[0, 1]`` is driven by the
tangential component of gravity, ``a = -g * h'(x)``, and optionally damped by
viscous friction ``-gamma * v``. The energy ledger splits the total energy into
kinetic, potential (relative to the lowest point of the track) and dissipated
parts. The three sum to the initial total up to a bounded integrator error,
with friction and wall contact moving energy into the dissipated part.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from functools import lru_cache
from typing import Dict, Optional

import numpy as np

from .config import EnergyTrackConfig
from .history import History, HistoryView
from .integrators import drift, finite_or, kick, reflect_into
from .interaction import Gesture, PointerEvent, PointerKind
from .projection import LinearMap, Viewport
from .render import Frame, FrameBuilder, FrameContext, Surface
from .simulation import Simulation
from .sliders import clip, safe_parameter, slider_fraction

TRACK_SHAPES = ("flat", "single-hill", "double-well", "steep-drop")
VIEWS = ("bars", "time-graph", "energy-phase")

MIN_MASS = 1.0e-3


def _check_shape(shape: str) -> None:
    if shape not in TRACK_SHAPES:
        raise ValueError(
            f"Unknown track shape '{shape}'.\n"
            f"Available shapes: {', '.join(TRACK_SHAPES)}."
        )


def track_height(x, shape: str):
    """Height ``h(x)`` of the named track profile.

    ``x`` is clamped into ``[0, 1]`` first. Accepts a scalar (returns a float)
    or an array (returns an array of the same shape).
    """
    _check_shape(shape)
    xs = np.clip(np.asarray(x, dtype=float), 0.0, 1.0)
    if shape == "flat":
        heights = np.zeros_like(xs)
    elif shape == "single-hill":
        heights = 0.3 * np.exp(-(((xs - 0.5) / 0.15) ** 2))
    elif shape == "double-well":
        offset = xs - 0.5
        heights = 8.0 * offset**4 - 2.0 * offset**2
    else:
        trough = 0.2 - 0.25 * (1.0 - np.cos(math.pi * (xs - 0.3) / 0.4))
        heights = np.where(xs < 0.3, 0.2 * (xs / 0.3), np.where(xs < 0.7, trough, -0.3))
    if np.ndim(x) == 0:
        return float(heights)
    return heights


def track_slope(x, shape: str, step: float = 1.0e-3):
    """Central-difference slope ``(h(x+s) - h(x-s)) / 2s``."""
    return (track_height(np.asarray(x, dtype=float) + step, shape)
            - track_height(np.asarray(x, dtype=float) - step, shape)) / (2.0 * step)


@lru_cache(maxsize=None)
def min_track_height(shape: str, samples: int = 101) -> float:
    """Lowest sampled height, the zero of potential energy."""
    return float(np.min(track_height(np.linspace(0.0, 1.0, samples), shape)))


@dataclass(frozen=True)
class EnergyTrackParams:
    """Physical parameters of the track.

    Attributes:
        track: Track profile, one of ``TRACK_SHAPES``.
        friction: Viscous coefficient gamma [kg/s]; the force is ``-gamma * v``.
        gravity: Gravitational acceleration g [m/s^2].
        initial_energy: Fraction in [0, 1] of the track's height range (or, on
            the flat track, of the kinetic energy scale) given at reset.
        mass: Particle mass [kg].
        view: Diagnostic panel, one of ``VIEWS``.
    """

    track: str = "single-hill"
    friction: float = 0.0
    gravity: float = 4.9
    initial_energy: float = 0.5
    mass: float = 1.0
    view: str = "bars"

    def __post_init__(self) -> None:
        _check_shape(self.track)
        if self.view not in VIEWS:
            raise ValueError(
                f"Unknown energy-track view '{self.view}'.\n"
                f"Available views: {', '.join(VIEWS)}."
            )
        object.__setattr__(self, "friction", safe_parameter(self.friction, 0.0, lower=0.0))
        object.__setattr__(self, "gravity", safe_parameter(self.gravity, 4.9, lower=0.0))
        object.__setattr__(self, "initial_energy", safe_parameter(self.initial_energy, 0.5, 0.0, 1.0))
        object.__setattr__(self, "mass", safe_parameter(self.mass, 1.0, lower=MIN_MASS))

    @classmethod
    def from_sliders(
        cls,
        track: str = "single-hill",
        friction: float = 0.0,
        gravity: float = 50.0,
        initial_energy: float = 50.0,
        view: str = "bars",
        config: Optional[EnergyTrackConfig] = None,
    ) -> "EnergyTrackParams":
        """Build parameters from 0-100 slider positions."""
        config = config or EnergyTrackConfig()
        return cls(
            track=track,
            friction=slider_fraction(friction) * config.friction_scale,
            gravity=slider_fraction(gravity) * config.gravity,
            initial_energy=slider_fraction(initial_energy),
            mass=config.mass,
            view=view,
        )


@dataclass(frozen=True, slots=True)
class EnergyTrackState:
    position: float
    velocity: float
    dissipated_energy: float = 0.0
    initial_total_energy: float = 0.0


class EnergyTrack(Simulation[EnergyTrackState, EnergyTrackParams]):
    """Particle on a track, integrated with semi-implicit Euler."""

    name = "energy-track"
    reset_fields = ("track", "gravity", "initial_energy", "mass")

    def __init__(self, config: Optional[EnergyTrackConfig] = None) -> None:
        super().__init__(config or EnergyTrackConfig())

    def default_params(self) -> EnergyTrackParams:
        return EnergyTrackParams(mass=self.config.mass)

    # ------------------------------------------------------------------
    # Physical laws
    # ------------------------------------------------------------------
    def relative_height(self, x, track: str):
        return track_height(x, track) - min_track_height(track, self.config.height_samples)

    def kinetic_energy(self, state: EnergyTrackState, params: EnergyTrackParams) -> float:
        return 0.5 * params.mass * state.velocity**2

    def potential_energy(self, state: EnergyTrackState, params: EnergyTrackParams) -> float:
        return params.mass * params.gravity * self.relative_height(state.position, params.track)

    def with_energy_reference(self, state: EnergyTrackState, params: EnergyTrackParams) -> EnergyTrackState:
        """Rebase the energy reference on the current state after a direct edit."""
        total = self.kinetic_energy(state, params) + self.potential_energy(state, params) + state.dissipated_energy
        return replace(state, initial_total_energy=total)

    def step_energy(self, x: float, v: float, params: EnergyTrackParams, dt: float) -> float:
        """Energy conserved by semi-implicit Euler, ``K + U - (dt/2) v dU/dx``.

        The correction term changes sign when the velocity is reflected on a
        sloped wall, so bounces are measured on this quantity rather than on
        ``K + U``.
        """
        force = params.mass * params.gravity * track_slope(x, params.track, self.config.slope_step)
        potential = params.mass * params.gravity * self.relative_height(x, params.track)
        return 0.5 * params.mass * v * v + potential - 0.5 * dt * v * force

    def rebound_velocity(self, x: float, energy: float, params: EnergyTrackParams, dt: float) -> float:
        """Inward velocity at wall ``x`` whose step energy exceeds the wall's by ``energy``."""
        if energy <= 0.0:
            return 0.0
        inward = 1.0 if x <= self.config.lower_bound else -1.0
        force = params.mass * params.gravity * track_slope(x, params.track, self.config.slope_step)
        # Positive root of m u^2 / 2 + b u = energy
        b = -0.5 * dt * inward * force
        speed = 2.0 * energy / (b + math.sqrt(b * b + 2.0 * params.mass * energy))
        return inward * speed

    def initial_state(self, params: EnergyTrackParams) -> EnergyTrackState:
        cfg = self.config
        xs = np.linspace(cfg.x_min, cfg.x_max, cfg.height_samples)
        heights = self.relative_height(xs, params.track)
        max_height = float(np.max(heights))
        if max_height > 0.0:
            # First sample whose height is closest to the requested fraction
            target = max_height * params.initial_energy
            position = float(xs[int(np.argmin(np.abs(heights - target)))])
            velocity = 0.0
        else:
            position = 0.5 * (cfg.x_min + cfg.x_max)
            energy = params.initial_energy * cfg.flat_energy_scale
            velocity = math.sqrt(2.0 * energy / params.mass)
        position = clip(position, cfg.lower_bound, cfg.upper_bound)
        return self.with_energy_reference(EnergyTrackState(position, velocity), params)

    def step(self, state: EnergyTrackState, params: EnergyTrackParams, dt: float) -> EnergyTrackState:
        cfg = self.config
        mass = params.mass
        x = clip(state.position, cfg.lower_bound, cfg.upper_bound)

        acceleration = -params.gravity * track_slope(x, params.track, cfg.slope_step)
        v = kick(state.velocity, acceleration, dt)

        # Viscous friction as exact exponential decay, loss measured around it
        kinetic_before = 0.5 * mass * v * v
        if params.friction > 0.0:
            v *= math.exp(-params.friction * dt / mass)
        loss = max(0.0, kinetic_before - 0.5 * mass * v * v)

        free_x = drift(x, v, dt)
        x, bounced_v, hit = reflect_into(free_x, v, cfg.lower_bound, cfg.upper_bound, cfg.restitution)
        if hit and bounced_v != v:
            # Restitution acts on the energy the kick-drift map conserves
            available = max(0.0, self.step_energy(free_x, v, params, dt) - self.step_energy(x, 0.0, params, dt))
            kept = cfg.restitution**2 * available
            v = self.rebound_velocity(x, kept, params, dt)
            loss += available - kept

        center = 0.5 * (cfg.lower_bound + cfg.upper_bound)
        x = finite_or(x, center, "energy-track position")
        v = finite_or(v, 0.0, "energy-track velocity")
        dissipated = finite_or(state.dissipated_energy + loss, state.dissipated_energy, "dissipated energy")
        return replace(state, position=x, velocity=v, dissipated_energy=dissipated)

    def diagnostics(self, state: EnergyTrackState, params: EnergyTrackParams) -> Dict[str, float]:
        kinetic = self.kinetic_energy(state, params)
        potential = self.potential_energy(state, params)
        total = kinetic + potential + state.dissipated_energy
        return {
            "kinetic": kinetic,
            "potential": potential,
            "dissipated": state.dissipated_energy,
            "total": total,
            "initial_total": state.initial_total_energy,
            "drift": total - state.initial_total_energy,
            "position": state.position,
            "velocity": state.velocity,
        }

    # ------------------------------------------------------------------
    # Interaction
    # ------------------------------------------------------------------
    def track_map(self, surface: Surface) -> LinearMap:
        cfg = self.config
        left = cfg.track_left * surface.width
        return LinearMap((cfg.x_min, cfg.x_max), (left, left + cfg.track_width * surface.width))

    def apply_interaction(
        self,
        state: EnergyTrackState,
        params: EnergyTrackParams,
        event: PointerEvent,
        surface: Surface,
        gesture: Gesture,
    ) -> EnergyTrackState:
        cfg = self.config
        x_map = self.track_map(surface)
        if event.kind is PointerKind.DOWN:
            if not x_map.contains_pixel(event.x):
                return state
            position = clip(x_map.inverse(event.x), cfg.lower_bound, cfg.upper_bound)
            placed = replace(state, position=position, velocity=0.0)
            return self.with_energy_reference(placed, params)
        if event.kind is PointerKind.MOVE and gesture.active:
            dx, _ = gesture.drag_distance(event.x, event.y)
            velocity = dx * cfg.drag_velocity_scale / x_map.extent
            return self.with_energy_reference(replace(state, velocity=velocity), params)
        return state

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------
    def new_history(self) -> History:
        return History({"energy": self.config.history_length})

    def record(self, history: History, state: EnergyTrackState, params: EnergyTrackParams, sim_time: float) -> None:
        history.append(
            "energy",
            (sim_time, self.kinetic_energy(state, params), self.potential_energy(state, params),
             state.dissipated_energy),
        )

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def render(
        self,
        state: EnergyTrackState,
        params: EnergyTrackParams,
        history: HistoryView,
        context: FrameContext,
        surface: Surface,
    ) -> Frame:
        builder = FrameBuilder(surface, background=True)
        diagnostics = self.diagnostics(state, params)
        if params.view == "energy-phase":
            self._draw_phase(builder, state, params, diagnostics)
        else:
            self._draw_track(builder, state, params)
            if params.view == "bars":
                self._draw_bars(builder, diagnostics)
            else:
                self._draw_time_graph(builder, history, diagnostics)
        return builder.build(diagnostics)

    def _draw_track(self, builder: FrameBuilder, state: EnergyTrackState, params: EnergyTrackParams) -> None:
        cfg = self.config
        surface = builder.surface
        theme = builder.theme
        viewport = Viewport(
            self.track_map(surface),
            LinearMap((0.0, 1.0), (cfg.track_base * surface.height, cfg.track_top * surface.height)),
        )
        xs = np.linspace(cfg.x_min, cfg.x_max, cfg.profile_samples + 1)
        px, py = viewport.to_pixels(xs, self.relative_height(xs, params.track))
        builder.polyline(zip(px, py), theme.track, width=3.0, alpha=0.8, glow=1.0)

        cx, cy = viewport.to_pixels(state.position, self.relative_height(state.position, params.track))
        radius = 8.0 + abs(state.velocity) * 5.0
        builder.circle((cx, cy), radius, theme.particle, alpha=0.95, glow=1.0)

    def _draw_bars(self, builder: FrameBuilder, diagnostics: Dict[str, float]) -> None:
        surface = builder.surface
        theme = builder.theme
        base = surface.height * 0.75
        height = surface.height * 0.2
        left = surface.width * 0.1
        width = surface.width * 0.8
        bar_width = width / 3.0
        max_energy = max(diagnostics["initial_total"], diagnostics["total"])
        if max_energy <= 0.0:
            max_energy = 1.0

        ref_y = base - diagnostics["initial_total"] / max_energy * height
        builder.line((left, ref_y), (left + width, ref_y), theme.foreground, width=2.0, alpha=0.3, dash=(5.0, 5.0))

        bars = (
            ("K", diagnostics["kinetic"], theme.kinetic),
            ("U", diagnostics["potential"], theme.potential),
            ("E_loss", diagnostics["dissipated"], theme.dissipated),
        )
        for index, (label, value, color) in enumerate(bars):
            x = left + bar_width * index
            bar_height = max(0.0, value) / max_energy * height
            builder.rect((x, base - bar_height), (bar_width - 2.0, bar_height), color, alpha=0.9, edge_color=color)
            builder.text((x + bar_width / 2.0, base + 15.0), label, theme.foreground, alpha=0.7)

    def _draw_time_graph(self, builder: FrameBuilder, history: HistoryView, diagnostics: Dict[str, float]) -> None:
        samples = history.get("energy", ())
        if len(samples) < 2:
            return
        surface = builder.surface
        theme = builder.theme
        base = surface.height * 0.7
        height = surface.height * 0.25
        left = surface.width * 0.1
        width = surface.width * 0.8

        series = np.asarray(samples, dtype=float)
        times = series[:, 0]
        max_energy = max(diagnostics["initial_total"], float(np.max(series[:, 1:])))
        if max_energy <= 0.0:
            max_energy = 1.0
        t_range = max(times[-1] - times[0], 1.0)
        xs = left + (times - times[0]) / t_range * width

        ref_y = base - diagnostics["initial_total"] / max_energy * height
        builder.line((left, ref_y), (left + width, ref_y), theme.foreground, width=2.0, alpha=0.3, dash=(5.0, 5.0))
        for column, color in ((1, theme.kinetic), (2, theme.potential), (3, theme.dissipated)):
            ys = base - series[:, column] / max_energy * height
            builder.polyline(zip(xs, ys), color, width=2.0)

    def _draw_phase(
        self,
        builder: FrameBuilder,
        state: EnergyTrackState,
        params: EnergyTrackParams,
        diagnostics: Dict[str, float],
    ) -> None:
        cfg = self.config
        surface = builder.surface
        theme = builder.theme
        top = surface.height * 0.1
        height = surface.height * 0.7
        x_map = self.track_map(surface)

        xs = np.linspace(cfg.x_min, cfg.x_max, cfg.profile_samples + 1)
        potentials = params.mass * params.gravity * self.relative_height(xs, params.track)
        scale = max(float(np.max(potentials)), diagnostics["initial_total"])
        if scale <= 0.0:
            scale = 1.0
        y_map = LinearMap((0.0, scale), (top + height, top))

        builder.polyline(zip(x_map(xs), y_map(potentials)), theme.potential, width=2.0, alpha=0.4)
        budget_y = y_map(diagnostics["initial_total"])
        builder.line((x_map.pixels[0], budget_y), (x_map.pixels[1], budget_y), theme.foreground,
                     width=2.0, alpha=0.5, dash=(5.0, 5.0))

        marker_x = x_map(state.position)
        marker_y = y_map(diagnostics["potential"])
        builder.rect((marker_x - 3.0, marker_y), (6.0, top + height - marker_y), theme.potential, alpha=0.6)
        builder.rect((marker_x - 3.0, budget_y), (6.0, max(0.0, marker_y - budget_y)), theme.kinetic, alpha=0.6)
        builder.circle((marker_x, marker_y), 5.0, theme.foreground)
