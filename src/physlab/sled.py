"""Force/friction sled: a block on a horizontal track pushed by two forces.

Lengths are metres along the track, forces newtons. The vertical forces
(weight and normal) always balance, so only the horizontal axis evolves.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .config import SledConfig
from .history import History, HistoryView
from .integrators import finite_or, reflect_into, resolve_friction, semi_implicit_euler
from .interaction import Gesture, PointerEvent, PointerKind
from .projection import LinearMap
from .render import Frame, FrameBuilder, FrameContext, Surface
from .simulation import Simulation
from .sliders import clip, safe_parameter, slider_to_linear

Vector2 = Tuple[float, float]

MIN_MASS = 1.0e-3


@dataclass(frozen=True)
class SledParams:
    """Applied forces and material properties.

    Attributes:
        mass: Sled mass [kg].
        push_right: Force pushing toward +x [N].
        push_left: Force pushing toward -x [N].
        friction_coeff: Coefficient mu, shared by static and kinetic friction.
    """

    mass: float = 2.0
    push_right: float = 0.0
    push_left: float = 0.0
    friction_coeff: float = 0.2

    def __post_init__(self) -> None:
        object.__setattr__(self, "mass", safe_parameter(self.mass, 2.0, lower=MIN_MASS))
        object.__setattr__(self, "push_right", safe_parameter(self.push_right, 0.0, lower=0.0))
        object.__setattr__(self, "push_left", safe_parameter(self.push_left, 0.0, lower=0.0))
        object.__setattr__(self, "friction_coeff", safe_parameter(self.friction_coeff, 0.2, lower=0.0))

    @property
    def applied_force(self) -> float:
        return self.push_right - self.push_left

    @classmethod
    def from_sliders(
        cls,
        mass: float = 100.0 / 9.0,
        push_right: float = 0.0,
        push_left: float = 0.0,
        friction_coeff: float = 20.0,
        config: Optional[SledConfig] = None,
    ) -> "SledParams":
        """Build parameters from 0-100 slider positions (the defaults give 2 kg and mu = 0.2)."""
        config = config or SledConfig()
        return cls(
            mass=slider_to_linear(mass, config.mass_min, config.mass_max),
            push_right=slider_to_linear(push_right, 0.0, config.push_max),
            push_left=slider_to_linear(push_left, 0.0, config.push_max),
            friction_coeff=slider_to_linear(friction_coeff, 0.0, config.friction_max),
        )

    @classmethod
    def preset(cls, name: str) -> "SledParams":
        try:
            return PRESETS[name]
        except KeyError:
            raise ValueError(
                f"Unknown sled preset '{name}'.\n"
                f"Available presets: {', '.join(PRESETS)}."
            ) from None


PRESETS: Dict[str, SledParams] = {
    "gentle": SledParams(mass=1.0, push_right=5.0, push_left=0.0, friction_coeff=0.1),
    "heavy": SledParams(mass=8.0, push_right=10.0, push_left=0.0, friction_coeff=0.2),
    "high-friction": SledParams(mass=2.0, push_right=0.0, push_left=0.0, friction_coeff=0.8),
}


@dataclass(frozen=True, slots=True)
class SledState:
    position: Vector2
    velocity: Vector2 = (0.0, 0.0)
    acceleration: Vector2 = (0.0, 0.0)


@dataclass(frozen=True)
class SledForces:
    applied: float
    friction: float
    net: float
    normal: float
    weight: float
    static: bool


class Sled(Simulation[SledState, SledParams]):
    name = "sled"

    def __init__(self, config: Optional[SledConfig] = None) -> None:
        super().__init__(config or SledConfig())

    def default_params(self) -> SledParams:
        return SledParams()

    @property
    def bounds(self) -> Tuple[float, float]:
        half = self.config.half_width
        return half, self.config.track_length - half

    def initial_state(self, params: SledParams) -> SledState:
        return SledState(position=(self.config.track_length / 2.0, 0.0))

    def forces(self, state: SledState, params: SledParams) -> SledForces:
        cfg = self.config
        velocity = state.velocity[0]
        normal = params.mass * cfg.gravity
        applied = params.applied_force
        friction = resolve_friction(applied, velocity, params.friction_coeff, normal, cfg.static_epsilon)
        return SledForces(
            applied=applied,
            friction=friction,
            net=applied + friction,
            normal=normal,
            weight=-normal,
            static=abs(velocity) <= cfg.static_epsilon,
        )

    def step(self, state: SledState, params: SledParams, dt: float) -> SledState:
        cfg = self.config
        forces = self.forces(state, params)
        acceleration = forces.net / params.mass
        velocity = state.velocity[0]
        limit = params.friction_coeff * forces.normal

        def hold(kicked: float) -> float:
            nonlocal acceleration
            # Static friction holds a resting sled exactly still
            held = forces.static and forces.net == 0.0
            # Kinetic friction stops the sled instead of reversing it
            stopped = not forces.static and kicked * velocity < 0.0 and abs(forces.applied) <= limit
            if held or stopped:
                acceleration = 0.0
                return 0.0
            return kicked

        x, v = semi_implicit_euler(state.position[0], velocity, acceleration, dt, constrain=hold)
        lower, upper = self.bounds
        x, v, _ = reflect_into(x, v, lower, upper, cfg.restitution)

        x = finite_or(x, cfg.track_length / 2.0, "sled position")
        v = finite_or(v, 0.0, "sled velocity")
        acceleration = finite_or(acceleration, 0.0, "sled acceleration")
        return SledState(position=(x, 0.0), velocity=(v, 0.0), acceleration=(acceleration, 0.0))

    def diagnostics(self, state: SledState, params: SledParams) -> Dict[str, float]:
        forces = self.forces(state, params)
        return {
            "applied_force": forces.applied,
            "friction_force": forces.friction,
            "net_force": forces.net,
            "normal_force": forces.normal,
            "acceleration": state.acceleration[0],
            "velocity": state.velocity[0],
            "position": state.position[0],
            "static": float(forces.static),
        }

    def new_history(self) -> History:
        return History({"velocity": self.config.history_length})

    def record(self, history: History, state: SledState, params: SledParams, sim_time: float) -> None:
        history.append("velocity", (sim_time, state.velocity[0]))

    # ------------------------------------------------------------------
    # Interaction
    # ------------------------------------------------------------------
    def track_map(self, surface: Surface) -> LinearMap:
        cfg = self.config
        width = surface.width * cfg.track_width
        left = (surface.width - width) / 2.0
        return LinearMap((0.0, cfg.track_length), (left, left + width))

    def apply_interaction(
        self,
        state: SledState,
        params: SledParams,
        event: PointerEvent,
        surface: Surface,
        gesture: Gesture,
    ) -> SledState:
        x_map = self.track_map(surface)
        if event.kind is PointerKind.DOWN:
            if not x_map.contains_pixel(event.x):
                return state
            position = clip(x_map.inverse(event.x), *self.bounds)
            return SledState(position=(position, 0.0))
        if event.kind is PointerKind.MOVE and gesture.active:
            dx, _ = gesture.drag_distance(event.x, event.y)
            velocity = dx * self.config.track_length / x_map.extent * self.config.drag_velocity_scale
            return SledState(position=state.position, velocity=(velocity, 0.0), acceleration=state.acceleration)
        return state

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def render(
        self,
        state: SledState,
        params: SledParams,
        history: HistoryView,
        context: FrameContext,
        surface: Surface,
    ) -> Frame:
        cfg = self.config
        builder = FrameBuilder(surface, background=True)
        theme = builder.theme
        x_map = self.track_map(surface)
        track_y = surface.height * cfg.track_y
        track_height = surface.height * cfg.track_height
        track_top = track_y - track_height / 2.0
        track_left, track_right = x_map.pixels

        builder.rect((track_left, track_top), (x_map.extent, track_height), theme.foreground, alpha=0.1)
        builder.rect((track_left, track_top), (x_map.extent, track_height), theme.foreground, alpha=0.2,
                     fill=False, edge_color=theme.foreground, edge_width=2.0)
        for i in range(cfg.tick_count + 1):
            x = track_left + x_map.extent / cfg.tick_count * i
            builder.line((x, track_top), (x, track_top - 10.0), theme.foreground, alpha=0.15)

        forces = self.forces(state, params)
        sx = x_map(state.position[0])
        sy = track_y
        limit = cfg.max_vector_length

        def horizontal(y: float, value: float, scale: float, cap: float, color, **kwargs) -> None:
            length = min(abs(value) * scale, cap)
            builder.arrow((sx, y), (sx + math.copysign(length, value), y), color, **kwargs)

        builder.arrow((sx, sy), (sx, sy + 30.0), theme.muted, width=1.0, alpha=0.3)
        builder.arrow((sx, sy), (sx, sy - 30.0), theme.muted, width=1.0, alpha=0.3)
        if params.push_right > 0.0:
            horizontal(sy, params.push_right, cfg.force_scale, limit, theme.push_right)
        if params.push_left > 0.0:
            horizontal(sy, -params.push_left, cfg.force_scale, limit, theme.push_left)
        if abs(forces.friction) > cfg.min_force_drawn:
            horizontal(sy, forces.friction, cfg.force_scale, limit, theme.friction)
        if abs(forces.net) > cfg.min_force_drawn:
            horizontal(sy - 20.0, forces.net, cfg.force_scale, limit, theme.net_force, width=4.0, label="F_net")
        if abs(state.acceleration[0]) > 0.01:
            horizontal(sy + 20.0, state.acceleration[0], cfg.accel_scale, limit * 0.6, theme.net_force, label="a")
        if abs(state.velocity[0]) > 0.1:
            horizontal(track_top + track_height + 20.0, state.velocity[0], cfg.velocity_scale, limit * 0.8,
                       theme.velocity, label="v")

        sled_width = cfg.sled_width * abs(x_map.scale)
        sled_height = surface.height * cfg.sled_height
        builder.rect((sx - sled_width / 2.0, sy - sled_height / 2.0), (sled_width, sled_height), theme.sled_fill,
                     alpha=0.9, edge_color=theme.sled_edge, edge_width=2.0, corner_radius=8.0)
        return builder.build(self.diagnostics(state, params))
