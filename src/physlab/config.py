"""Configuration primitives for the physlab simulation engine."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, fields, replace
from typing import Mapping


def get_verbosity() -> int:
    """Get verbosity level from environment: 0=quiet, 1=normal, 2=verbose."""
    try:
        return int(os.environ.get("PHYSLAB_VERBOSITY", "1"))
    except ValueError:
        return 1


_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def coerce_value(text: str, current):
    """Parse ``text`` into the type of ``current`` (the field's present value)."""
    text = text.strip()
    if isinstance(current, bool):
        lowered = text.lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        raise ValueError(f"expected a boolean (true/false), got '{text}'")
    if isinstance(current, int):
        return int(text)
    if isinstance(current, float):
        return float(text)
    if isinstance(current, tuple):
        return tuple(float(part) for part in text.split(","))
    if current is None:
        if text.lower() == "none":
            return None
        try:
            return int(text)
        except ValueError:
            return float(text)
    return text


def apply_overrides(instance, overrides: Mapping[str, str]):
    """Return a copy of a dataclass ``instance`` with string ``overrides`` applied.

    Raises:
        ValueError: If a key is not a field of ``instance`` or its value
            cannot be parsed.
    """
    names = {f.name for f in fields(instance)}
    changes = {}
    for key, text in overrides.items():
        if key not in names:
            raise ValueError(
                f"Unknown setting '{key}' for {type(instance).__name__}.\n"
                f"Available settings: {', '.join(sorted(names))}."
            )
        try:
            changes[key] = coerce_value(text, getattr(instance, key))
        except ValueError as exc:
            raise ValueError(f"Invalid value for '{key}': {exc}") from None
    return replace(instance, **changes)


@dataclass(frozen=True)
class SchedulerConfig:
    """Frame scheduler settings.

    ``max_frame_delta`` caps how much wall time a single frame may bank, so a
    host that stalls (a backgrounded tab, a debugger pause) resumes with at
    most ``max_frame_delta / fixed_dt`` physics steps instead of thousands.
    """

    max_frame_delta: float = 0.1
    accumulator_epsilon: float = 1.0e-9
    seed: int | None = None


@dataclass(frozen=True)
class EnergyTrackConfig:
    """Tunable constants for the energy-conservation track.

    **Integration:**
    - fixed_dt: physics step [s]
    - slope_step: half-width of the central difference used for the slope

    **Track domain:**
    - x_min, x_max, padding: the particle lives on [x_min + padding, x_max - padding]
    - restitution: velocity fraction kept after touching a track end
    - height_samples: samples used to locate the track minimum/maximum

    **Slider ranges:**
    - gravity: value reached by the gravity slider at 100
    - friction_scale: viscous coefficient reached by the friction slider at 100

    **Layout (fractions of the drawing surface):**
    - track_top/track_base: vertical extent of one height unit
    - track_left/track_width: horizontal extent of the track
    """

    fixed_dt: float = 1.0 / 60.0
    mass: float = 1.0
    gravity: float = 9.8
    friction_scale: float = 0.5

    x_min: float = 0.0
    x_max: float = 1.0
    padding: float = 0.05
    restitution: float = 0.8
    slope_step: float = 1.0e-3
    height_samples: int = 101
    flat_energy_scale: float = 0.5

    history_length: int = 200
    drag_velocity_scale: float = 2.0

    track_base: float = 0.4
    track_top: float = 0.1
    track_left: float = 0.1
    track_width: float = 0.8
    profile_samples: int = 200

    @property
    def lower_bound(self) -> float:
        return self.x_min + self.padding

    @property
    def upper_bound(self) -> float:
        return self.x_max - self.padding


@dataclass(frozen=True)
class LorenzConfig:
    """Constants for the twin-trajectory Lorenz comparator.

    The integrator advances ``base_dt`` Lorenz time units per reference frame
    (``reference_dt`` seconds of wall time) at speed 1.
    """

    sigma: float = 10.0
    rho: float = 28.0
    beta: float = 8.0 / 3.0
    base_dt: float = 0.005
    reference_dt: float = 1.0 / 60.0
    initial_point: tuple[float, float, float] = (1.0, 1.0, 1.0)

    epsilon_min: float = 1.0e-6
    epsilon_max: float = 1.0e-1
    speed_min: float = 0.5
    speed_max: float = 3.0
    rho_max: float = 30.0

    trail_length: int = 3000
    separation_length: int = 800
    separation_floor: float = 1.0e-10

    rotation_rate: float = 0.002
    projection_scale: float = 0.018
    z_center: float | None = None
    fade_cap: int = 2000
    plot_padding: float = 40.0

    @property
    def time_scale(self) -> float:
        """Lorenz time units advanced per second of simulated wall time."""
        return self.base_dt / self.reference_dt


@dataclass(frozen=True)
class GaugeFieldConfig:
    rows: int = 24
    cols: int = 24
    base_alpha: float = 0.15
    freedom_weight: float = 0.5
    fixed_dt: float = 1.0 / 60.0

    arrow_fraction: float = 0.35
    arrowhead_fraction: float = 0.3
    arrowhead_angle: float = math.pi / 6.0


@dataclass(frozen=True)
class SledConfig:
    """Constants for the force/friction sled.

    Lengths are metres, forces newtons. ``static_epsilon`` is the speed below
    which the sled is treated as at rest and static friction applies.
    """

    fixed_dt: float = 0.01
    gravity: float = 9.8
    static_epsilon: float = 0.01
    restitution: float = 0.5
    track_length: float = 10.0
    sled_width: float = 0.8

    mass_min: float = 1.0
    mass_max: float = 10.0
    push_max: float = 20.0
    friction_max: float = 1.0

    drag_velocity_scale: float = 2.0
    history_length: int = 600

    track_y: float = 0.5
    track_width: float = 0.9
    track_height: float = 0.25
    sled_height: float = 0.1
    tick_count: int = 10

    force_scale: float = 6.0
    accel_scale: float = 10.0
    velocity_scale: float = 20.0
    max_vector_length: float = 150.0
    min_force_drawn: float = 0.1

    @property
    def half_width(self) -> float:
        return self.sled_width / 2.0
