"""Core configuration, constants and shared types."""

from quakewaves.core.config import Settings, get_settings
from quakewaves.core.errors import (
    EmptyFeedError,
    FeedUnavailable,
    InvalidDateRange,
    QuakeWavesError,
)
from quakewaves.core.types import EngineMode, Point2D, Terrain

__all__ = [
    "EmptyFeedError",
    "EngineMode",
    "FeedUnavailable",
    "InvalidDateRange",
    "Point2D",
    "QuakeWavesError",
    "Settings",
    "Terrain",
    "get_settings",
]
