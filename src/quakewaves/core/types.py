"""Type definitions shared across the replay engine."""

from enum import Enum
from typing import TypeAlias

# Screen-space point (pixels, y grows downward)
Point2D: TypeAlias = tuple[float, float]

# Milliseconds since the Unix epoch (UTC)
EpochMillis: TypeAlias = int


class Terrain(str, Enum):
    """Classification of a screen coordinate against the background map."""

    LAND = "land"
    WATER = "water"
    OUT_OF_BOUNDS = "out_of_bounds"


class EngineMode(str, Enum):
    """Top-level playback modes."""

    REALTIME = "realtime"  # last hour, refreshed every 5 minutes
    PAST_MONTH = "past_month"
    FREE_RANGE = "free_range"  # user-chosen start/end dates
    INTERACTIVE = "interactive"  # events synthesized from pointer input
    BACKUP = "backup"  # packaged static dataset
