"""Lookup of the available simulations by name."""

from __future__ import annotations

from typing import Dict, Type

from .energy_track import EnergyTrack
from .gauge_field import GaugeField
from .lorenz import LorenzComparator
from .simulation import Simulation
from .sled import Sled

SIMULATIONS: Dict[str, Type[Simulation]] = {
    EnergyTrack.name: EnergyTrack,
    LorenzComparator.name: LorenzComparator,
    GaugeField.name: GaugeField,
    Sled.name: Sled,
}


def create_simulation(name: str, config=None) -> Simulation:
    """Instantiate the simulation registered as ``name``."""
    try:
        cls = SIMULATIONS[name]
    except KeyError:
        raise ValueError(
            f"Unknown simulation '{name}'.\n"
            f"Available simulations: {', '.join(SIMULATIONS)}."
        ) from None
    return cls(config)
