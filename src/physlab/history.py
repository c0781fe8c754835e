"""Bounded observation buffers and their read-only view.

Trails and diagnostic series are display material. They are written by a
simulation's ``record`` hook after each fixed step and read by its renderer
through :class:`HistoryView`; they are never handed to ``step``.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Mapping
from typing import Any, Deque, Dict, Iterator


class History:
    """A set of named FIFO buffers, each with its own capacity.

    Appending to a full buffer evicts its oldest entry.
    """

    def __init__(self, capacities: Mapping[str, int] | None = None) -> None:
        self._buffers: Dict[str, Deque[Any]] = {}
        for name, capacity in (capacities or {}).items():
            if capacity < 1:
                raise ValueError(
                    f"History buffer '{name}' needs a capacity of at least 1, got {capacity}."
                )
            self._buffers[name] = deque(maxlen=int(capacity))

    def append(self, name: str, sample: Any) -> None:
        try:
            self._buffers[name].append(sample)
        except KeyError:
            raise KeyError(
                f"Unknown history buffer '{name}'. Available: {sorted(self._buffers)}"
            ) from None

    def clear(self) -> None:
        for buffer in self._buffers.values():
            buffer.clear()

    def capacity(self, name: str) -> int:
        return self._buffers[name].maxlen or 0

    def view(self) -> "HistoryView":
        return HistoryView(self._buffers)


class HistoryView(Mapping):
    """Read-only access to a :class:`History`.

    Indexing returns an immutable tuple snapshot of a buffer, oldest sample
    first. The view has no mutating methods.
    """

    __slots__ = ("_buffers",)

    def __init__(self, buffers: Mapping[str, Deque[Any]]) -> None:
        self._buffers = buffers

    def __getitem__(self, name: str) -> tuple:
        return tuple(self._buffers[name])

    def __iter__(self) -> Iterator[str]:
        return iter(self._buffers)

    def __len__(self) -> int:
        return len(self._buffers)

    def size(self, name: str) -> int:
        return len(self._buffers[name])

    def latest(self, name: str, default: Any = None) -> Any:
        buffer = self._buffers.get(name)
        if not buffer:
            return default
        return buffer[-1]


EMPTY_HISTORY = HistoryView({})
