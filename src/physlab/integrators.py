"""Numeric integrators and circular statistics shared by the simulations.

All functions here are pure: they never modify their inputs and return new
values. The four models combine them as follows:

- energy track: :func:`kick` / :func:`drift` (semi-implicit Euler split around
  a friction sub-step) and :func:`reflect_into`
- Lorenz comparator: :func:`rk4_step`
- gauge field: :func:`relax_lattice`, built on :func:`circular_mean` semantics
- sled: :func:`semi_implicit_euler` fed by :func:`resolve_friction`
"""

from __future__ import annotations

import logging
import math
from typing import Callable

import numpy as np

logger = logging.getLogger("physlab")

TWO_PI = 2.0 * math.pi

# Moore neighbourhood: orthogonal neighbours first, then diagonals.
NEIGHBOR_OFFSETS: tuple[tuple[int, int], ...] = (
    (-1, 0), (1, 0),
    (0, -1), (0, 1),
    (-1, -1), (-1, 1),
    (1, -1), (1, 1),
)


def kick(velocity, acceleration, dt: float):
    """Velocity half of semi-implicit Euler: ``v + a*dt``."""
    return velocity + acceleration * dt


def drift(position, velocity, dt: float):
    """Position half of semi-implicit Euler, using the already-updated velocity."""
    return position + velocity * dt


def semi_implicit_euler(
    position,
    velocity,
    acceleration,
    dt: float,
    constrain: Callable | None = None,
):
    """Advance ``(x, v)`` by one symplectic Euler step.

    ``v' = v + a*dt`` then ``x' = x + v'*dt``. When ``constrain`` is given it
    receives the kicked velocity and returns the velocity actually used for the
    drift (e.g. static friction holding a body at rest).

    Works on floats and numpy arrays alike. Callers must use a constant ``dt``
    for the method's stability properties to hold.
    """
    new_velocity = kick(velocity, acceleration, dt)
    if constrain is not None:
        new_velocity = constrain(new_velocity)
    return drift(position, new_velocity, dt), new_velocity


def reflect_into(
    position: float,
    velocity: float,
    lower: float,
    upper: float,
    restitution: float,
) -> tuple[float, float, bool]:
    """Clamp a 1D position into ``[lower, upper]`` and bounce off the ends.

    Velocity is reversed and scaled by ``restitution`` only when it points out
    of the domain, so a particle already heading back inside is left alone.

    Returns:
        ``(position, velocity, hit)`` where ``hit`` reports boundary contact.
    """
    if position <= lower:
        if velocity < 0.0:
            velocity = -velocity * restitution
        return lower, velocity, True
    if position >= upper:
        if velocity > 0.0:
            velocity = -velocity * restitution
        return upper, velocity, True
    return position, velocity, False


def rk4_step(derivative: Callable[[np.ndarray], np.ndarray], state: np.ndarray, dt: float) -> np.ndarray:
    """Classical fourth-order Runge-Kutta step for an autonomous ODE.

    k1..k4 are evaluated at ``y``, ``y + dt/2 k1``, ``y + dt/2 k2`` and
    ``y + dt k3`` and combined with weights 1, 2, 2, 1 over 6. The function is
    deterministic and side-effect free, so identical inputs give bit-identical
    outputs; stacking several independent states along leading axes integrates
    them in one call with the same arithmetic as separate calls.
    """
    state = np.asarray(state, dtype=float)
    half = dt / 2.0
    k1 = derivative(state)
    k2 = derivative(state + half * k1)
    k3 = derivative(state + half * k2)
    k4 = derivative(state + dt * k3)
    return state + (dt / 6.0) * (k1 + 2.0 * k2 + 2.0 * k3 + k4)


def normalize_angle(angle):
    """Wrap an angle (or array of angles) into ``[0, 2*pi)``."""
    if np.ndim(angle) == 0:
        wrapped = math.fmod(float(angle), TWO_PI)
        if wrapped < 0.0:
            wrapped += TWO_PI
        # fmod of a tiny negative value can round up to exactly 2*pi
        return 0.0 if wrapped >= TWO_PI else wrapped
    wrapped = np.mod(np.asarray(angle, dtype=float), TWO_PI)
    return np.where(wrapped >= TWO_PI, 0.0, wrapped)


def shortest_angle_delta(source, target):
    """Signed shortest-arc difference ``target - source`` in ``[-pi, pi]``."""
    if np.ndim(source) == 0 and np.ndim(target) == 0:
        diff = float(target) - float(source)
        diff = math.fmod(diff, TWO_PI)
        if diff > math.pi:
            diff -= TWO_PI
        elif diff < -math.pi:
            diff += TWO_PI
        return diff
    diff = np.fmod(np.asarray(target, dtype=float) - np.asarray(source, dtype=float), TWO_PI)
    diff = np.where(diff > math.pi, diff - TWO_PI, diff)
    return np.where(diff < -math.pi, diff + TWO_PI, diff)


def circular_mean(angles) -> float:
    """Mean direction of a set of angles, in ``[0, 2*pi)``.

    Computed from the summed unit vectors, so ``[0, 2*pi - 0.01]`` averages to
    ``2*pi - 0.005`` rather than the arithmetic ``pi``. An empty input
    returns 0.
    """
    angles = np.asarray(angles, dtype=float).ravel()
    if angles.size == 0:
        return 0.0
    mean = math.atan2(float(np.sum(np.sin(angles))), float(np.sum(np.cos(angles))))
    return normalize_angle(mean)


def neighbor_vector_sums(grid: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Sum the unit vectors of each cell's in-bounds Moore neighbours.

    There is no wrap-around in space: edge cells see five neighbours, corners
    three.

    Returns:
        ``(sum_cos, sum_sin, count)`` arrays with the grid's shape.
    """
    rows, cols = grid.shape
    padded_cos = np.pad(np.cos(grid), 1)
    padded_sin = np.pad(np.sin(grid), 1)
    padded_ones = np.pad(np.ones_like(grid), 1)
    sum_cos = np.zeros_like(grid)
    sum_sin = np.zeros_like(grid)
    count = np.zeros_like(grid)
    for dr, dc in NEIGHBOR_OFFSETS:
        window = (slice(1 + dr, 1 + dr + rows), slice(1 + dc, 1 + dc + cols))
        sum_cos += padded_cos[window]
        sum_sin += padded_sin[window]
        count += padded_ones[window]
    return sum_cos, sum_sin, count


def neighbor_circular_mean(grid: np.ndarray) -> np.ndarray:
    """Circular mean of each cell's neighbours; isolated cells keep their own angle."""
    sum_cos, sum_sin, count = neighbor_vector_sums(grid)
    means = normalize_angle(np.arctan2(sum_sin, sum_cos))
    return np.where(count > 0, means, grid)


def relax_lattice(grid: np.ndarray, alpha: float) -> np.ndarray:
    """One synchronous relaxation sweep of an angle lattice.

    Every cell moves ``alpha`` of the shortest-arc way toward the circular mean
    of its neighbours. All targets are computed from the input grid and the
    result is written into a new array, so the update does not depend on the
    order in which cells are visited.
    """
    grid = np.asarray(grid, dtype=float)
    target = neighbor_circular_mean(grid)
    delta = shortest_angle_delta(grid, target)
    return normalize_angle(grid + alpha * delta)


def resolve_friction(
    applied: float,
    velocity: float,
    mu: float,
    normal: float,
    epsilon: float,
) -> float:
    """Friction force along the direction of motion.

    At rest (``|v| <= epsilon``) static friction cancels the applied force up
    to ``mu * N``; above that limit only the excess accelerates the body.
    In motion, kinetic friction has magnitude ``mu * N`` and opposes the
    velocity.
    """
    limit = mu * normal
    if abs(velocity) > epsilon:
        return -math.copysign(limit, velocity)
    return -max(-limit, min(limit, applied))


def finite_or(value: float, fallback: float, label: str = "value") -> float:
    """Return ``value`` when finite, otherwise log and return ``fallback``."""
    if math.isfinite(value):
        return value
    logger.warning("Non-finite %s (%r) replaced by %r", label, value, fallback)
    return fallback


def sanitize_array(values: np.ndarray, fallback, label: str = "array") -> np.ndarray:
    """Replace non-finite entries of ``values`` by the matching ``fallback`` entries."""
    values = np.asarray(values, dtype=float)
    bad = ~np.isfinite(values)
    if not np.any(bad):
        return values
    logger.warning("Replaced %d non-finite entries in %s", int(np.sum(bad)), label)
    return np.where(bad, np.broadcast_to(np.asarray(fallback, dtype=float), values.shape), values)
