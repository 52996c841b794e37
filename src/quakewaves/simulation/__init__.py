"""Playback scheduling and wave simulation."""

from quakewaves.simulation.engine import EngineState, SimulationEngine, WaveSnapshot
from quakewaves.simulation.scheduler import PlaybackClock, PlaybackScheduler
from quakewaves.simulation.wave import Wave, WaveEvent, WaveSimulation

__all__ = [
    "EngineState",
    "PlaybackClock",
    "PlaybackScheduler",
    "SimulationEngine",
    "Wave",
    "WaveEvent",
    "WaveSimulation",
    "WaveSnapshot",
]
