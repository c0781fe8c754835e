"""Drawing primitives, themes and the renderable :class:`Frame`.

Renderers never touch a canvas. They return a ``Frame``: an immutable list of
primitives in surface pixel coordinates plus the diagnostic scalars shown in
on-screen readouts. Hosts draw the primitives themselves, or use
:mod:`physlab.raster` to turn a frame into an image.
"""

from __future__ import annotations

import colorsys
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple, Union

Color = Tuple[int, int, int]
Point = Tuple[float, float]


@dataclass(frozen=True)
class Theme:
    name: str
    background: Color
    foreground: Color
    muted: Color
    grid: Color
    track: Color
    particle: Color
    kinetic: Color
    potential: Color
    dissipated: Color
    trail_a: Color
    trail_b: Color
    separation: Color
    push_right: Color
    push_left: Color
    friction: Color
    net_force: Color
    velocity: Color
    sled_fill: Color
    sled_edge: Color
    hue_lightness: float


LIGHT = Theme(
    name="light",
    background=(244, 245, 247),
    foreground=(0, 0, 0),
    muted=(100, 100, 100),
    grid=(0, 0, 0),
    track=(50, 150, 255),
    particle=(100, 200, 255),
    kinetic=(50, 150, 255),
    potential=(50, 200, 100),
    dissipated=(255, 100, 50),
    trail_a=(0, 255, 255),
    trail_b=(255, 0, 255),
    separation=(0, 255, 136),
    push_right=(37, 99, 235),
    push_left=(234, 88, 12),
    friction=(220, 38, 38),
    net_force=(20, 184, 166),
    velocity=(22, 163, 74),
    sled_fill=(15, 15, 15),
    sled_edge=(37, 99, 235),
    hue_lightness=0.4,
)

DARK = Theme(
    name="dark",
    background=(5, 7, 16),
    foreground=(255, 255, 255),
    muted=(150, 150, 150),
    grid=(255, 255, 255),
    track=(100, 200, 255),
    particle=(255, 255, 255),
    kinetic=(100, 200, 255),
    potential=(100, 255, 150),
    dissipated=(255, 150, 100),
    trail_a=(0, 255, 255),
    trail_b=(255, 0, 255),
    separation=(0, 255, 136),
    push_right=(59, 130, 246),
    push_left=(251, 146, 60),
    friction=(239, 68, 68),
    net_force=(139, 92, 246),
    velocity=(74, 222, 128),
    sled_fill=(255, 255, 255),
    sled_edge=(96, 165, 250),
    hue_lightness=0.6,
)

THEMES: Dict[str, Theme] = {LIGHT.name: LIGHT, DARK.name: DARK}


def get_theme(name: Union[str, Theme]) -> Theme:
    if isinstance(name, Theme):
        return name
    try:
        return THEMES[name]
    except KeyError:
        raise ValueError(f"Unknown theme '{name}'. Available: {sorted(THEMES)}") from None


def hue_color(angle_fraction: float, lightness: float, saturation: float = 0.7) -> Color:
    """RGB colour for a hue given as a fraction of the full circle."""
    r, g, b = colorsys.hls_to_rgb(angle_fraction % 1.0, lightness, saturation)
    return int(round(r * 255)), int(round(g * 255)), int(round(b * 255))


@dataclass(frozen=True)
class Surface:
    """Drawing surface the host renders into."""

    width: int = 600
    height: int = 480
    theme: str = "light"

    def __post_init__(self) -> None:
        object.__setattr__(self, "width", max(1, int(self.width)))
        object.__setattr__(self, "height", max(1, int(self.height)))
        get_theme(self.theme)

    @property
    def palette(self) -> Theme:
        return get_theme(self.theme)

    @property
    def center(self) -> Point:
        return self.width / 2.0, self.height / 2.0


@dataclass(frozen=True)
class FrameContext:
    """Per-frame inputs that are not simulation state.

    ``frame_index`` counts rendered frames since the last reset and drives
    purely cosmetic motion such as the attractor's slow rotation.
    """

    frame_index: int = 0
    sim_time: float = 0.0
    paused: bool = False


@dataclass(frozen=True)
class Line:
    start: Point
    end: Point
    color: Color
    width: float = 1.0
    alpha: float = 1.0
    glow: float = 0.0
    dash: Optional[Tuple[float, float]] = None


@dataclass(frozen=True)
class Polyline:
    points: Tuple[Point, ...]
    color: Color
    width: float = 1.0
    alpha: float = 1.0
    glow: float = 0.0
    dash: Optional[Tuple[float, float]] = None


@dataclass(frozen=True)
class Trail:
    """Polyline whose segments fade individually; ``alphas`` has one entry per point."""

    points: Tuple[Point, ...]
    alphas: Tuple[float, ...]
    color: Color
    width: float = 1.5
    glow: float = 0.0


@dataclass(frozen=True)
class Circle:
    center: Point
    radius: float
    color: Color
    alpha: float = 1.0
    fill: bool = True
    glow: float = 0.0


@dataclass(frozen=True)
class Rect:
    origin: Point
    size: Tuple[float, float]
    color: Color
    alpha: float = 1.0
    fill: bool = True
    edge_color: Optional[Color] = None
    edge_width: float = 1.0
    corner_radius: float = 0.0


@dataclass(frozen=True)
class Arrow:
    start: Point
    end: Point
    color: Color
    width: float = 2.0
    alpha: float = 1.0
    head_length: float = 10.0
    head_angle: float = 0.5
    label: Optional[str] = None


@dataclass(frozen=True)
class Text:
    position: Point
    text: str
    color: Color
    size: float = 12.0
    align: str = "center"
    rotation: float = 0.0
    alpha: float = 1.0


Primitive = Union[Line, Polyline, Trail, Circle, Rect, Arrow, Text]


@dataclass(frozen=True)
class Frame:
    width: int
    height: int
    background: Optional[Color]
    primitives: Tuple[Primitive, ...]
    diagnostics: Mapping[str, float] = field(default_factory=dict)

    def count(self, kind: type) -> int:
        return sum(1 for primitive in self.primitives if isinstance(primitive, kind))

    def of_type(self, kind: type) -> List[Primitive]:
        return [primitive for primitive in self.primitives if isinstance(primitive, kind)]


class FrameBuilder:
    """Collects primitives for one frame."""

    def __init__(self, surface: Surface, background: bool = False) -> None:
        self.surface = surface
        self.theme = surface.palette
        self.background = self.theme.background if background else None
        self._primitives: List[Primitive] = []

    def add(self, primitive: Primitive) -> "FrameBuilder":
        self._primitives.append(primitive)
        return self

    def line(self, start: Point, end: Point, color: Color, **kwargs) -> "FrameBuilder":
        return self.add(Line(_point(start), _point(end), color, **kwargs))

    def polyline(self, points, color: Color, **kwargs) -> "FrameBuilder":
        return self.add(Polyline(tuple(_point(p) for p in points), color, **kwargs))

    def circle(self, center: Point, radius: float, color: Color, **kwargs) -> "FrameBuilder":
        return self.add(Circle(_point(center), float(radius), color, **kwargs))

    def rect(self, origin: Point, size: Tuple[float, float], color: Color, **kwargs) -> "FrameBuilder":
        return self.add(Rect(_point(origin), _point(size), color, **kwargs))

    def arrow(self, start: Point, end: Point, color: Color, **kwargs) -> "FrameBuilder":
        return self.add(Arrow(_point(start), _point(end), color, **kwargs))

    def text(self, position: Point, text: str, color: Color, **kwargs) -> "FrameBuilder":
        return self.add(Text(_point(position), text, color, **kwargs))

    def build(self, diagnostics: Optional[Mapping[str, float]] = None) -> Frame:
        return Frame(
            width=self.surface.width,
            height=self.surface.height,
            background=self.background,
            primitives=tuple(self._primitives),
            diagnostics=dict(diagnostics or {}),
        )


def _point(value) -> Point:
    return float(value[0]), float(value[1])
