"""Per-event two-wave motion model.

Every admitted earthquake spawns two point waves at its epicenter. Each tick
one wave moves a pixel left and the other a pixel right; their vertical motion
depends on the terrain under them:

- LAND: an unbounded random walk, fresh uniform step every tick.
- WATER: a step sampled from a smooth noise field minus a constant offset,
  which keeps water waves flatter than land waves.
- OUT_OF_BOUNDS: no vertical motion, and the wave is not drawn.

The shared wave width decays linearly to exactly zero. Decayed events stay in
the live set; they simply stop being visible.
"""

from dataclasses import dataclass, field
from typing import Self

import numpy as np

from quakewaves.core.config import WaveSettings, get_settings
from quakewaves.core.constants import WAVE_SPEED_X
from quakewaves.core.types import Point2D, Terrain
from quakewaves.data.feed import RawEvent
from quakewaves.data.terrain import TerrainGrid
from quakewaves.models.noise import ValueNoise
from quakewaves.models.projection import ScreenProjection

# Horizontal direction of each wave
LEFTWARD = -1.0
RIGHTWARD = 1.0


@dataclass
class Wave:
    """One moving point of an event.

    `terrain` is the classification the last tick used for this wave; it is
    None until the first tick.
    """

    x: float
    y: float
    direction: float
    terrain: Terrain | None = None

    @property
    def position(self) -> Point2D:
        return self.x, self.y


@dataclass
class WaveEvent:
    """Live, mutable simulation state for one admitted earthquake."""

    epicenter: Point2D
    epicenter_diameter: float
    wave_width: float
    waves: tuple[Wave, Wave]
    magnitude: float = 0.0
    timestamp_millis: int = 0
    is_most_recent: bool = False

    @classmethod
    def from_raw(
        cls,
        event: RawEvent,
        projection: ScreenProjection,
        settings: WaveSettings | None = None,
        mood_factor: float | None = None,
    ) -> Self:
        """Project a feed record and start both waves at its epicenter.

        The initial width scales with magnitude and the mood factor
        (settings.mood_factor unless given).
        """
        settings = settings or get_settings().wave
        if mood_factor is None:
            mood_factor = settings.mood_factor
        x, y = projection.to_screen(event.longitude, event.latitude)
        magnitude = max(event.magnitude, 0.0)

        return cls(
            epicenter=(x, y),
            epicenter_diameter=magnitude * settings.diameter_per_magnitude,
            wave_width=magnitude * settings.width_per_magnitude * mood_factor,
            waves=(Wave(x, y, LEFTWARD), Wave(x, y, RIGHTWARD)),
            magnitude=magnitude,
            timestamp_millis=event.timestamp_millis,
        )

    @property
    def wave1(self) -> Wave:
        """Leftward wave."""
        return self.waves[0]

    @property
    def wave2(self) -> Wave:
        """Rightward wave."""
        return self.waves[1]

    @property
    def decayed(self) -> bool:
        return self.wave_width == 0.0

    def wave_visible(self, index: int) -> bool:
        """Whether wave `index` (0 or 1) should be drawn this frame."""
        wave = self.waves[index]
        return wave.terrain is not Terrain.OUT_OF_BOUNDS and self.wave_width > 0.0


@dataclass
class WaveSimulation:
    """Advances WaveEvents one frame at a time against a TerrainGrid.

    The mood parameters (land_randomness, water_noise_modifier, mood_factor)
    are plain attributes and may be changed between ticks.
    """

    terrain: TerrainGrid
    settings: WaveSettings = field(default_factory=lambda: get_settings().wave)
    noise: ValueNoise | None = None
    rng: np.random.Generator = field(default_factory=np.random.default_rng)

    land_randomness: float = field(init=False)
    water_noise_modifier: float = field(init=False)
    mood_factor: float = field(init=False)

    def __post_init__(self):
        if self.noise is None:
            self.noise = ValueNoise(seed=self.settings.noise_seed)
        self.land_randomness = self.settings.land_randomness
        self.water_noise_modifier = self.settings.water_noise_modifier
        self.mood_factor = self.settings.mood_factor

    def tick(self, event: WaveEvent) -> None:
        """Advance one event by exactly one frame."""
        for wave in event.waves:
            self._step_wave(wave)
        self._decay(event)

    def _step_wave(self, wave: Wave) -> None:
        terrain = self.terrain.classify(wave.x, wave.y)
        wave.terrain = terrain

        # Horizontal speed never depends on terrain
        wave.x += wave.direction * WAVE_SPEED_X

        if terrain is Terrain.LAND:
            amplitude = self.land_randomness * self.mood_factor
            wave.y += float(self.rng.uniform(-amplitude, amplitude))
        elif terrain is Terrain.WATER:
            scale = self.settings.noise_scale * self.water_noise_modifier * self.mood_factor
            wave.y += self.noise(wave.x * scale, wave.y * scale) - self.settings.noise_offset

    def _decay(self, event: WaveEvent) -> None:
        decay = self.settings.decay_rate
        event.wave_width -= decay
        if event.wave_width <= decay:
            event.wave_width = 0.0
