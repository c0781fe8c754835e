"""Mapping of 0-100 UI slider positions onto physical parameter values.

Sliders are the engine's inbound contract with the host UI. Every mapping
clamps out-of-range or non-finite input instead of propagating it, so a
malformed slider can never produce a NaN parameter.
"""

from __future__ import annotations

import math

SLIDER_MIN = 0.0
SLIDER_MAX = 100.0


def clip(value: float, lower: float, upper: float) -> float:
    """Clamp ``value`` into ``[lower, upper]``."""
    return max(lower, min(upper, value))


def finite_or_default(value: float | None, default: float) -> float:
    """Return ``value`` as a float, or ``default`` when missing or non-finite."""
    if value is None:
        return float(default)
    try:
        value = float(value)
    except (TypeError, ValueError):
        return float(default)
    if not math.isfinite(value):
        return float(default)
    return value


def safe_parameter(
    value: float | None,
    default: float,
    lower: float | None = None,
    upper: float | None = None,
) -> float:
    """Sanitize a physical parameter: fall back to ``default`` then clamp."""
    value = finite_or_default(value, default)
    if lower is not None:
        value = max(lower, value)
    if upper is not None:
        value = min(upper, value)
    return value


def slider_fraction(position: float) -> float:
    """Map a slider position onto ``[0, 1]``; invalid positions read as 0."""
    position = finite_or_default(position, SLIDER_MIN)
    return clip(position, SLIDER_MIN, SLIDER_MAX) / SLIDER_MAX


def slider_to_linear(position: float, lower: float, upper: float) -> float:
    """Linearly map a slider position onto ``[lower, upper]``."""
    return lower + slider_fraction(position) * (upper - lower)


def slider_to_log(position: float, lower: float, upper: float) -> float:
    """Logarithmically map a slider position onto ``[lower, upper]``.

    Both bounds must be positive. Position 0 gives ``lower``, 100 gives
    ``upper`` and 50 gives their geometric mean, e.g. ``1e-6 .. 1e-1`` maps
    the midpoint to ``10**-3.5``.
    """
    if lower <= 0 or upper <= 0:
        raise ValueError(
            f"Logarithmic slider bounds must be positive, got [{lower}, {upper}].\n"
            f"Use slider_to_linear for ranges that include zero."
        )
    log_lower = math.log10(lower)
    log_upper = math.log10(upper)
    return 10.0 ** (log_lower + slider_fraction(position) * (log_upper - log_lower))
