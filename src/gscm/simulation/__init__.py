"""Simulation loop: position sources and the frame runner."""

from gscm.simulation.mobility import LinearMobility, PositionSource
from gscm.simulation.runner import RunSummary, SimulationRunner

__all__ = [
    "LinearMobility",
    "PositionSource",
    "RunSummary",
    "SimulationRunner",
]
