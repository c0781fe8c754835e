"""physlab: real-time interactive physics simulations for learning modules.

Four models share one engine: each advances its state with a fixed-timestep
integrator, derives diagnostics (energy budget, trajectory separation,
alignment, forces), maps simulation coordinates onto a drawing surface and
accepts pointer edits between steps.

Main Components:
    - EnergyTrack: particle on a shaped track with a measured energy ledger
    - LorenzComparator: two Lorenz trajectories started epsilon apart
    - GaugeField: lattice of angles relaxing toward local alignment
    - Sled: block pushed by two forces against static/kinetic friction
    - FrameScheduler: fixed-timestep accumulator, queued interaction, rendering
    - Frame: immutable drawing primitives returned every frame

Quick Start:
    >>> from physlab import FrameScheduler, create_simulation
    >>>
    >>> scheduler = FrameScheduler(create_simulation("lorenz"))
    >>> frame = scheduler.tick(1 / 60)
    >>> print(scheduler.diagnostics()["separation"])

For a headless run with plots, see ``python -m physlab --help``.
"""

from .energy_track import EnergyTrack, EnergyTrackParams, EnergyTrackState
from .gauge_field import GaugeField, GaugeFieldParams, GaugeFieldState
from .interaction import Command, PointerEvent, PointerKind
from .lorenz import LorenzComparator, LorenzParams, LorenzState
from .registry import SIMULATIONS, create_simulation
from .render import Frame, Surface
from .scheduler import FrameScheduler
from .simulation import Simulation
from .sled import Sled, SledParams, SledState

__all__ = [
    "EnergyTrack",
    "EnergyTrackParams",
    "EnergyTrackState",
    "GaugeField",
    "GaugeFieldParams",
    "GaugeFieldState",
    "LorenzComparator",
    "LorenzParams",
    "LorenzState",
    "Sled",
    "SledParams",
    "SledState",
    "Simulation",
    "FrameScheduler",
    "Frame",
    "Surface",
    "Command",
    "PointerEvent",
    "PointerKind",
    "SIMULATIONS",
    "create_simulation",
]
