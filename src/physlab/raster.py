"""Rasterise a :class:`~physlab.render.Frame` with matplotlib's Agg backend."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import numpy as np
from matplotlib import patches
from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.collections import LineCollection
from matplotlib.figure import Figure

from .render import Arrow, Circle, Color, Frame, Line, Polyline, Rect, Text, Trail

GLOW_WIDTH = 3.0
GLOW_ALPHA = 0.3


def _rgb(color: Color) -> tuple[float, float, float]:
    return color[0] / 255.0, color[1] / 255.0, color[2] / 255.0


def _dashes(dash) -> str | tuple:
    if dash is None:
        return "-"
    return (0, tuple(dash))


def _draw_line(ax, xs, ys, color, width, alpha, glow, dash) -> None:
    if glow > 0:
        ax.plot(xs, ys, color=_rgb(color), linewidth=width * GLOW_WIDTH, alpha=alpha * GLOW_ALPHA * glow,
                solid_capstyle="round")
    ax.plot(xs, ys, color=_rgb(color), linewidth=width, alpha=alpha, linestyle=_dashes(dash),
            solid_capstyle="round")


def _draw_trail(ax, trail: Trail) -> None:
    points = np.asarray(trail.points, dtype=float)
    if len(points) < 2:
        return
    segments = np.stack((points[:-1], points[1:]), axis=1)
    alphas = np.asarray(trail.alphas, dtype=float)
    segment_alpha = np.maximum(alphas[:-1], alphas[1:])
    base = np.array(_rgb(trail.color))
    if trail.glow > 0:
        glow_colors = np.column_stack((np.tile(base, (len(segments), 1)), alphas[:-1] * GLOW_ALPHA * trail.glow))
        ax.add_collection(LineCollection(segments, colors=glow_colors, linewidths=trail.width * 2.0))
    colors = np.column_stack((np.tile(base, (len(segments), 1)), segment_alpha * 0.8))
    ax.add_collection(LineCollection(segments, colors=colors, linewidths=trail.width))


def _draw_arrow(ax, arrow: Arrow) -> None:
    ax.annotate(
        "",
        xy=arrow.end,
        xytext=arrow.start,
        arrowprops=dict(
            arrowstyle="-|>",
            color=_rgb(arrow.color),
            alpha=arrow.alpha,
            lw=arrow.width,
            mutation_scale=arrow.head_length * 1.5,
            shrinkA=0,
            shrinkB=0,
        ),
    )
    if arrow.label:
        ax.text(arrow.end[0], arrow.end[1] - 15, arrow.label, color=_rgb(arrow.color), fontsize=9,
                ha="center", va="bottom")


def draw_frame(frame: Frame, dpi: int = 100) -> Figure:
    """Draw ``frame`` onto a new matplotlib figure sized in surface pixels."""
    fig = Figure(figsize=(frame.width / dpi, frame.height / dpi), dpi=dpi)
    FigureCanvasAgg(fig)
    ax = fig.add_axes((0.0, 0.0, 1.0, 1.0))
    ax.set_xlim(0, frame.width)
    ax.set_ylim(frame.height, 0)
    ax.set_axis_off()
    if frame.background is not None:
        fig.patch.set_facecolor(_rgb(frame.background))
    else:
        fig.patch.set_alpha(0.0)

    for primitive in frame.primitives:
        if isinstance(primitive, Line):
            xs = (primitive.start[0], primitive.end[0])
            ys = (primitive.start[1], primitive.end[1])
            _draw_line(ax, xs, ys, primitive.color, primitive.width, primitive.alpha, primitive.glow, primitive.dash)
        elif isinstance(primitive, Polyline):
            if len(primitive.points) < 2:
                continue
            xs, ys = zip(*primitive.points)
            _draw_line(ax, xs, ys, primitive.color, primitive.width, primitive.alpha, primitive.glow, primitive.dash)
        elif isinstance(primitive, Trail):
            _draw_trail(ax, primitive)
        elif isinstance(primitive, Circle):
            if primitive.glow > 0:
                ax.add_patch(patches.Circle(primitive.center, primitive.radius * 1.5, color=_rgb(primitive.color),
                                            alpha=primitive.alpha * GLOW_ALPHA * primitive.glow, linewidth=0))
            ax.add_patch(patches.Circle(primitive.center, primitive.radius, color=_rgb(primitive.color),
                                        alpha=primitive.alpha, fill=primitive.fill, linewidth=1.0))
        elif isinstance(primitive, Rect):
            edge = _rgb(primitive.edge_color) if primitive.edge_color is not None else "none"
            style = (
                f"round,pad=0,rounding_size={primitive.corner_radius}"
                if primitive.corner_radius > 0
                else "square,pad=0"
            )
            ax.add_patch(patches.FancyBboxPatch(
                primitive.origin,
                primitive.size[0],
                primitive.size[1],
                boxstyle=style,
                facecolor=_rgb(primitive.color) if primitive.fill else "none",
                edgecolor=edge,
                linewidth=primitive.edge_width if primitive.edge_color is not None else 0.0,
                alpha=primitive.alpha,
            ))
        elif isinstance(primitive, Arrow):
            _draw_arrow(ax, primitive)
        elif isinstance(primitive, Text):
            ax.text(primitive.position[0], primitive.position[1], primitive.text, color=_rgb(primitive.color),
                    fontsize=primitive.size * 0.75, ha=primitive.align, va="center",
                    rotation=primitive.rotation, alpha=primitive.alpha)
    return fig


def rasterize(frame: Frame, dpi: int = 100) -> np.ndarray:
    """Render ``frame`` into an ``(height, width, 4)`` uint8 RGBA pixel buffer."""
    fig = draw_frame(frame, dpi=dpi)
    fig.canvas.draw()
    return np.asarray(fig.canvas.buffer_rgba()).copy()


def save_frame(frame: Frame, path: str | Path, dpi: int = 100) -> Path:
    """Write ``frame`` as a PNG image and return the path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig = draw_frame(frame, dpi=dpi)
    background: Optional[tuple] = _rgb(frame.background) if frame.background is not None else None
    fig.savefig(path, dpi=dpi, facecolor=background if background is not None else "none")
    return path
