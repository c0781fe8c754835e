"""Inbound interaction messages: pointer events and discrete commands.

Hosts post messages to the scheduler, which applies them in arrival order at
the start of the next tick, before any physics step reads the state.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Deque, Iterator, Optional, Tuple, Union


class PointerKind(str, Enum):
    DOWN = "down"
    MOVE = "move"
    UP = "up"


class Command(str, Enum):
    PLAY = "play"
    PAUSE = "pause"
    TOGGLE = "toggle"
    STEP = "step"
    RESET = "reset"
    RANDOMIZE = "randomize"


@dataclass(frozen=True)
class PointerEvent:
    """Pointer position in drawing-surface pixels (origin top-left, y down)."""

    kind: PointerKind
    x: float
    y: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", PointerKind(self.kind))


@dataclass(frozen=True)
class ParamsChange:
    params: Any


Message = Union[PointerEvent, Command, ParamsChange]


@dataclass
class Gesture:
    """Transient state of the pointer gesture in progress.

    ``anchor`` is the pixel position where the current press started and
    ``cell`` the last lattice cell edited during it. Both are UI bookkeeping
    and never part of a simulation state.
    """

    anchor: Optional[Tuple[float, float]] = None
    cell: Optional[Tuple[int, int]] = None

    @property
    def active(self) -> bool:
        return self.anchor is not None

    def begin(self, x: float, y: float) -> None:
        self.anchor = (float(x), float(y))
        self.cell = None

    def end(self) -> None:
        self.anchor = None
        self.cell = None

    def drag_distance(self, x: float, y: float) -> Tuple[float, float]:
        if self.anchor is None:
            return 0.0, 0.0
        return x - self.anchor[0], y - self.anchor[1]


@dataclass
class MessageQueue:
    _messages: Deque[Message] = field(default_factory=deque)

    def post(self, message: Message) -> None:
        if isinstance(message, str) and not isinstance(message, Command):
            message = Command(message)
        if not isinstance(message, (PointerEvent, Command, ParamsChange)):
            raise TypeError(
                f"Cannot queue {type(message).__name__}; expected PointerEvent, Command or ParamsChange."
            )
        self._messages.append(message)

    def drain(self) -> Iterator[Message]:
        while self._messages:
            yield self._messages.popleft()

    def clear(self) -> None:
        self._messages.clear()

    def __len__(self) -> int:
        return len(self._messages)
