"""Fixed-timestep frame scheduler.

The scheduler owns the authoritative simulation state. A host calls
:meth:`FrameScheduler.tick` once per displayed frame with the wall time that
elapsed since the previous call; the scheduler

1. applies queued interaction messages in arrival order,
2. banks the (capped) wall time and runs as many fixed steps as it covers,
3. renders and returns the current :class:`~physlab.render.Frame`.
"""

from __future__ import annotations

import math
from typing import Dict, Optional, Union

import numpy as np

from .config import SchedulerConfig
from .interaction import Command, Gesture, Message, MessageQueue, ParamsChange, PointerEvent, PointerKind
from .render import Frame, FrameContext, Surface
from .simulation import Simulation


class FrameScheduler:
    """Drive one :class:`Simulation` with a fixed-timestep accumulator.

    Attributes:
        state: Current simulation state.
        params: Current parameters; replace them with :meth:`set_params`.
        history: Observation buffers, cleared on reset.
        paused: While True, ticks render without stepping.
        frame_index: Frames rendered by :meth:`tick` since the last reset.
        sim_time: Simulated seconds since the last reset.
        steps: Fixed steps taken since the last reset.
    """

    def __init__(
        self,
        simulation: Simulation,
        params=None,
        surface: Optional[Surface] = None,
        config: Optional[SchedulerConfig] = None,
    ) -> None:
        self.simulation = simulation
        self.config = config or SchedulerConfig()
        self.surface = surface or Surface()
        self.params = params if params is not None else simulation.default_params()
        self.rng = np.random.default_rng(self.config.seed)
        self.queue = MessageQueue()
        self.gesture = Gesture()
        self.history = simulation.new_history()
        self.paused = False
        self.reset()

    @property
    def fixed_dt(self) -> float:
        return self.simulation.fixed_dt

    # ------------------------------------------------------------------
    # Inbound messages
    # ------------------------------------------------------------------
    def post(self, message: Union[Message, str]) -> None:
        """Queue a message for the start of the next tick."""
        self.queue.post(message)

    def pointer(self, kind: Union[PointerKind, str], x: float, y: float) -> None:
        self.post(PointerEvent(kind, x, y))

    def command(self, command: Union[Command, str]) -> None:
        self.post(Command(command))

    def set_params(self, params) -> None:
        self.post(ParamsChange(params))

    def apply(self, message: Union[Message, str]) -> None:
        """Apply a message immediately instead of queueing it."""
        if isinstance(message, str) and not isinstance(message, Command):
            message = Command(message)
        if isinstance(message, PointerEvent):
            self._apply_pointer(message)
        elif isinstance(message, Command):
            self._apply_command(message)
        elif isinstance(message, ParamsChange):
            self._apply_params(message.params)
        else:
            raise TypeError(
                f"Cannot apply {type(message).__name__}; expected PointerEvent, Command or ParamsChange."
            )

    def _apply_pointer(self, event: PointerEvent) -> None:
        if event.kind is PointerKind.DOWN:
            self.gesture.begin(event.x, event.y)
        self.state = self.simulation.apply_interaction(self.state, self.params, event, self.surface, self.gesture)
        if event.kind is PointerKind.UP:
            self.gesture.end()

    def _apply_command(self, command: Command) -> None:
        if command is Command.PLAY:
            self.paused = False
        elif command is Command.PAUSE:
            self.paused = True
        elif command is Command.TOGGLE:
            self.paused = not self.paused
        elif command is Command.STEP:
            self.step_once()
        elif command is Command.RESET:
            self.reset()
        elif command is Command.RANDOMIZE:
            self.randomize()

    def _apply_params(self, params) -> None:
        expected = type(self.params)
        if not isinstance(params, expected):
            raise TypeError(
                f"{self.simulation.name} expects {expected.__name__} parameters, got {type(params).__name__}."
            )
        old, self.params = self.params, params
        if self.simulation.needs_reset(old, params):
            self.reset()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def _restart(self, state) -> None:
        self.state = state
        self.history.clear()
        self.gesture.end()
        self.accumulator = 0.0
        self.frame_index = 0
        self.sim_time = 0.0
        self.steps = 0

    def reset(self) -> None:
        """Reinitialise state and clear history; parameters are kept."""
        self._restart(self.simulation.initial_state(self.params))

    def randomize(self) -> None:
        self._restart(self.simulation.randomize(self.state, self.params, self.rng))

    def step_once(self) -> None:
        """Run exactly one fixed step, paused or not."""
        dt = self.fixed_dt
        self.state = self.simulation.step(self.state, self.params, dt)
        self.sim_time += dt
        self.steps += 1
        self.simulation.record(self.history, self.state, self.params, self.sim_time)

    def advance(self, wall_delta: float) -> int:
        """Bank ``wall_delta`` seconds (capped) and run the fixed steps it covers."""
        if self.paused:
            return 0
        if not math.isfinite(wall_delta) or wall_delta < 0.0:
            wall_delta = 0.0
        dt = self.fixed_dt
        self.accumulator += min(wall_delta, self.config.max_frame_delta)
        taken = 0
        while self.accumulator + self.config.accumulator_epsilon >= dt:
            self.step_once()
            self.accumulator -= dt
            taken += 1
        self.accumulator = max(0.0, self.accumulator)
        return taken

    def tick(self, wall_delta: float) -> Frame:
        """Process one displayed frame and return what to draw."""
        for message in self.queue.drain():
            self.apply(message)
        self.advance(wall_delta)
        frame = self.render()
        self.frame_index += 1
        return frame

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------
    def context(self) -> FrameContext:
        return FrameContext(frame_index=self.frame_index, sim_time=self.sim_time, paused=self.paused)

    def render(self) -> Frame:
        """Render the current state without advancing anything."""
        return self.simulation.render(self.state, self.params, self.history.view(), self.context(), self.surface)

    def diagnostics(self) -> Dict[str, float]:
        return self.simulation.diagnostics(self.state, self.params)

    def resize(self, width: int, height: int, theme: Optional[str] = None) -> None:
        self.surface = Surface(width, height, theme or self.surface.theme)
