"""Shared contract of the interactive simulations.

A :class:`Simulation` is stateless apart from its frozen configuration: the
physical state and parameters are values passed in and returned. The frame
scheduler owns the authoritative state and decides when each hook runs:

1. ``apply_interaction`` / ``randomize`` for queued messages (start of tick)
2. ``step`` once per fixed timestep, followed by ``record``
3. ``render`` every frame, from the state, the params and a read-only history
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import fields
from typing import ClassVar, Dict, Generic, Tuple, TypeVar

import numpy as np

from .history import History, HistoryView
from .interaction import Gesture, PointerEvent
from .render import Frame, FrameContext, Surface

StateT = TypeVar("StateT")
ParamsT = TypeVar("ParamsT")


class Simulation(ABC, Generic[StateT, ParamsT]):
    """Base class of the four learning-module models.

    Subclasses set ``name``, ``reset_fields`` (parameter fields whose change
    requires a fresh state) and implement the abstract hooks. ``step`` must be
    a pure function of its arguments.
    """

    name: ClassVar[str] = ""
    reset_fields: ClassVar[Tuple[str, ...]] = ()

    def __init__(self, config) -> None:
        self.config = config

    @property
    def fixed_dt(self) -> float:
        return float(self.config.fixed_dt)

    @abstractmethod
    def default_params(self) -> ParamsT:
        """Parameters matching the UI's initial slider positions."""

    @abstractmethod
    def initial_state(self, params: ParamsT) -> StateT:
        """Fresh state for ``params``; equal inputs give equal states."""

    @abstractmethod
    def step(self, state: StateT, params: ParamsT, dt: float) -> StateT:
        """Advance ``state`` by one fixed timestep ``dt``."""

    @abstractmethod
    def diagnostics(self, state: StateT, params: ParamsT) -> Dict[str, float]:
        """Observable scalars derived from the state (never stored in it)."""

    @abstractmethod
    def render(
        self,
        state: StateT,
        params: ParamsT,
        history: HistoryView,
        context: FrameContext,
        surface: Surface,
    ) -> Frame:
        """Drawing primitives for the current state; must not mutate anything."""

    def apply_interaction(
        self,
        state: StateT,
        params: ParamsT,
        event: PointerEvent,
        surface: Surface,
        gesture: Gesture,
    ) -> StateT:
        """Translate a pointer event into a direct state edit (default: ignore)."""
        return state

    def randomize(self, state: StateT, params: ParamsT, rng: np.random.Generator) -> StateT:
        """Randomised state; models without a random mode just reset."""
        return self.initial_state(params)

    def new_history(self) -> History:
        return History()

    def record(self, history: History, state: StateT, params: ParamsT, sim_time: float) -> None:
        """Append observations of ``state`` to ``history`` after a step."""

    def needs_reset(self, old: ParamsT, new: ParamsT) -> bool:
        return any(getattr(old, name) != getattr(new, name) for name in self.reset_fields)

    def describe(self) -> Dict[str, object]:
        params = self.default_params()
        return {
            "name": self.name,
            "fixed_dt": self.fixed_dt,
            "params": {f.name: getattr(params, f.name) for f in fields(params)},
        }
