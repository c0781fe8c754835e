"""Twin-trajectory Lorenz comparator.

Two copies of the Lorenz system start a distance ``epsilon`` apart and are
advanced with identical RK4 steps. On the chaotic attractor (rho = 28) their
separation grows roughly exponentially until it saturates at the attractor's
size; below the onset of chaos both settle onto the same fixed point.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import numpy as np

from .config import LorenzConfig
from .history import History, HistoryView
from .integrators import logger, rk4_step
from .projection import OrbitProjection, trail_alphas
from .render import Frame, FrameBuilder, FrameContext, Surface, Trail
from .simulation import Simulation
from .sliders import safe_parameter, slider_to_log

Vector3 = Tuple[float, float, float]

VIEWS = ("attractor", "separation")

_DEFAULTS = LorenzConfig()


def lorenz_derivative(points: np.ndarray, sigma: float, rho: float, beta: float) -> np.ndarray:
    """Lorenz vector field for an array of points with shape ``(..., 3)``.

    dx/dt = sigma (y - x),  dy/dt = x (rho - z) - y,  dz/dt = x y - beta z
    """
    x = points[..., 0]
    y = points[..., 1]
    z = points[..., 2]
    return np.stack((sigma * (y - x), x * (rho - z) - y, x * y - beta * z), axis=-1)


def separation(a, b) -> float:
    return float(np.linalg.norm(np.asarray(a, dtype=float) - np.asarray(b, dtype=float)))


@dataclass(frozen=True)
class LorenzParams:
    """Lorenz parameters and display options.

    Attributes:
        rho: Rayleigh number; chaotic above about 24.74.
        epsilon: Initial offset of the second twin along x.
        speed: Multiplier on the Lorenz time advanced per fixed step.
        sigma: Prandtl number.
        beta: Geometric factor.
        view: ``"attractor"`` or ``"separation"``.
    """

    rho: float = _DEFAULTS.rho
    epsilon: float = math.sqrt(_DEFAULTS.epsilon_min * _DEFAULTS.epsilon_max)
    speed: float = 1.0
    sigma: float = _DEFAULTS.sigma
    beta: float = _DEFAULTS.beta
    view: str = "attractor"

    def __post_init__(self) -> None:
        if self.view not in VIEWS:
            raise ValueError(
                f"Unknown Lorenz view '{self.view}'.\n"
                f"Available views: {', '.join(VIEWS)}."
            )
        object.__setattr__(self, "rho", safe_parameter(self.rho, _DEFAULTS.rho, 0.0, _DEFAULTS.rho_max))
        object.__setattr__(
            self,
            "epsilon",
            safe_parameter(self.epsilon, math.sqrt(_DEFAULTS.epsilon_min * _DEFAULTS.epsilon_max),
                           _DEFAULTS.epsilon_min, _DEFAULTS.epsilon_max),
        )
        object.__setattr__(self, "speed", safe_parameter(self.speed, 1.0, _DEFAULTS.speed_min, _DEFAULTS.speed_max))
        object.__setattr__(self, "sigma", safe_parameter(self.sigma, _DEFAULTS.sigma, lower=0.0))
        object.__setattr__(self, "beta", safe_parameter(self.beta, _DEFAULTS.beta, lower=0.0))

    @classmethod
    def from_sliders(
        cls,
        rho: float = 28.0,
        epsilon: float = 50.0,
        speed: float = 1.0,
        view: str = "attractor",
        config: Optional[LorenzConfig] = None,
    ) -> "LorenzParams":
        """Build parameters from the UI controls.

        ``rho`` and ``speed`` are read directly (their sliders span 0-30 and
        0.5-3); ``epsilon`` is a 0-100 position mapped logarithmically onto
        ``[epsilon_min, epsilon_max]``.
        """
        config = config or LorenzConfig()
        return cls(
            rho=rho,
            epsilon=slider_to_log(epsilon, config.epsilon_min, config.epsilon_max),
            speed=speed,
            sigma=config.sigma,
            beta=config.beta,
            view=view,
        )


@dataclass(frozen=True, slots=True)
class LorenzState:
    a: Vector3
    b: Vector3

    @property
    def points(self) -> np.ndarray:
        """Both twins as one ``(2, 3)`` array."""
        return np.array((self.a, self.b), dtype=float)

    @classmethod
    def from_points(cls, points: np.ndarray) -> "LorenzState":
        return cls(_vector(points[0]), _vector(points[1]))


def _vector(values) -> Vector3:
    return float(values[0]), float(values[1]), float(values[2])


def lorenz_step(state: LorenzState, params: LorenzParams, h: float) -> LorenzState:
    """Advance both twins by ``h`` Lorenz time units with one RK4 step each."""
    def derivative(points: np.ndarray) -> np.ndarray:
        return lorenz_derivative(points, params.sigma, params.rho, params.beta)

    return LorenzState.from_points(rk4_step(derivative, state.points, h))


class LorenzComparator(Simulation[LorenzState, LorenzParams]):
    name = "lorenz"
    reset_fields = ("rho", "sigma", "beta", "epsilon")

    def __init__(self, config: Optional[LorenzConfig] = None) -> None:
        super().__init__(config or LorenzConfig())

    @property
    def fixed_dt(self) -> float:
        return float(self.config.reference_dt)

    def default_params(self) -> LorenzParams:
        return LorenzParams(rho=self.config.rho, sigma=self.config.sigma, beta=self.config.beta)

    def initial_points(self, params: LorenzParams) -> np.ndarray:
        origin = np.asarray(self.config.initial_point, dtype=float)
        return np.stack((origin, origin + np.array([params.epsilon, 0.0, 0.0])))

    def initial_state(self, params: LorenzParams) -> LorenzState:
        return LorenzState.from_points(self.initial_points(params))

    def step(self, state: LorenzState, params: LorenzParams, dt: float) -> LorenzState:
        h = dt * self.config.time_scale * params.speed
        points = lorenz_step(state, params, h).points
        broken = ~np.all(np.isfinite(points), axis=1)
        if np.any(broken):
            logger.warning("Non-finite Lorenz twin(s) %s restarted from their initial points",
                           [("a", "b")[i] for i in np.flatnonzero(broken)])
            points = np.where(broken[:, None], self.initial_points(params), points)
        return LorenzState.from_points(points)

    def diagnostics(self, state: LorenzState, params: LorenzParams) -> Dict[str, float]:
        distance = separation(state.a, state.b)
        result = {
            "separation": distance,
            "log_separation": math.log10(max(self.config.separation_floor, distance)),
        }
        for label, point in (("a", state.a), ("b", state.b)):
            for axis, value in zip("xyz", point):
                result[f"{label}_{axis}"] = value
        return result

    def new_history(self) -> History:
        cfg = self.config
        return History({
            "trail_a": cfg.trail_length,
            "trail_b": cfg.trail_length,
            "separation": cfg.separation_length,
        })

    def record(self, history: History, state: LorenzState, params: LorenzParams, sim_time: float) -> None:
        history.append("trail_a", state.a)
        history.append("trail_b", state.b)
        history.append("separation", separation(state.a, state.b))

    def projection(self, params: LorenzParams, context: FrameContext, surface: Surface) -> OrbitProjection:
        cfg = self.config
        z_center = cfg.z_center if cfg.z_center is not None else params.rho - 1.0
        return OrbitProjection(
            angle=context.frame_index * cfg.rotation_rate,
            scale=cfg.projection_scale * min(surface.width, surface.height),
            center=surface.center,
            offset=(0.0, 0.0, z_center),
        )

    def render(
        self,
        state: LorenzState,
        params: LorenzParams,
        history: HistoryView,
        context: FrameContext,
        surface: Surface,
    ) -> Frame:
        builder = FrameBuilder(surface, background=True)
        if params.view == "attractor":
            self._draw_attractor(builder, state, params, history, context)
        else:
            self._draw_separation(builder, history)
        return builder.build(self.diagnostics(state, params))

    def _draw_attractor(
        self,
        builder: FrameBuilder,
        state: LorenzState,
        params: LorenzParams,
        history: HistoryView,
        context: FrameContext,
    ) -> None:
        projection = self.projection(params, context, builder.surface)
        theme = builder.theme
        for trail_name, head, color in (("trail_a", state.a, theme.trail_a), ("trail_b", state.b, theme.trail_b)):
            trail = history.get(trail_name, ())
            if len(trail) >= 2:
                pixels = projection.project_many(trail)
                builder.add(Trail(
                    points=tuple((float(x), float(y)) for x, y in pixels),
                    alphas=tuple(float(a) for a in trail_alphas(len(trail), self.config.fade_cap)),
                    color=color,
                    width=1.5,
                    glow=1.0,
                ))
            hx, hy = projection.project(*head)
            builder.circle((hx, hy), 8.0, color, alpha=0.25)
            builder.circle((hx, hy), 3.0, color)

    def _draw_separation(self, builder: FrameBuilder, history: HistoryView) -> None:
        series = history.get("separation", ())
        if len(series) < 2:
            return
        cfg = self.config
        surface = builder.surface
        theme = builder.theme
        padding = cfg.plot_padding
        left, top = padding, padding
        width = surface.width - 2.0 * padding
        height = surface.height - 2.0 * padding

        builder.rect((left, top), (width, height), theme.foreground, alpha=0.05)
        for i in range(6):
            y = top + height / 5.0 * i
            builder.line((left, y), (left + width, y), theme.grid, alpha=0.1)

        logs = np.log10(np.maximum(cfg.separation_floor, np.asarray(series, dtype=float)))
        low = float(np.min(logs))
        span = float(np.max(logs)) - low or 1.0
        xs = left + width / (len(logs) - 1) * np.arange(len(logs))
        ys = top + height - (logs - low) / span * height
        builder.polyline(zip(xs, ys), theme.separation, width=2.0)

        builder.text((left + width / 2.0, surface.height - 10.0), "Time", theme.foreground, alpha=0.8)
        builder.text((10.0, top + height / 2.0), "Separation (log scale)", theme.foreground,
                     alpha=0.8, rotation=90.0)
        for i in range(6):
            value = 10.0 ** (low + span / 5.0 * i)
            y = top + height - i / 5.0 * height
            builder.text((left - 5.0, y + 4.0), f"{value:.1e}", theme.foreground, alpha=0.8, align="right")
