"""Shared fixtures for replay engine tests."""

import numpy as np
import pytest

from quakewaves.core.config import PlaybackSettings, Settings, WaveSettings
from quakewaves.data.feed import RawEvent
from quakewaves.data.terrain import TerrainGrid

# Screen size where one pixel is one degree of longitude
GRID_WIDTH = 360
GRID_HEIGHT = 138


@pytest.fixture
def water_grid():
    """Grid that is water everywhere."""
    return TerrainGrid.from_array(np.zeros((GRID_HEIGHT, GRID_WIDTH), dtype=bool))


@pytest.fixture
def land_grid():
    """Grid that is land everywhere."""
    return TerrainGrid.from_array(np.ones((GRID_HEIGHT, GRID_WIDTH), dtype=bool))


@pytest.fixture
def make_event():
    """Factory for feed records."""

    def _make(timestamp_millis: int, magnitude: float | None = 4.0, longitude: float = 10.0, latitude: float = 14.0):
        return RawEvent(
            timestamp_millis=timestamp_millis,
            magnitude=magnitude,
            longitude=longitude,
            latitude=latitude,
        )

    return _make


@pytest.fixture
def inline_settings():
    """Settings with feed fetches run inside the mode switch."""
    return Settings(
        playback=PlaybackSettings(background_fetch=False),
        wave=WaveSettings(),
    )
