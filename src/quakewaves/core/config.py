"""Configuration and settings for the replay engine."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from quakewaves.core.constants import (
    DEFAULT_DECAY_RATE,
    DEFAULT_NOISE_OFFSET,
    DEFAULT_NOISE_SCALE,
    USGS_BASE_URL,
)


class FeedSettings(BaseSettings):
    """Earthquake feed configuration."""

    model_config = SettingsConfigDict(env_prefix="FEED_")

    # USGS earthquake hazards program
    usgs_base_url: str = USGS_BASE_URL

    # Summary feed used for real-time mode
    live_feed: str = "all_hour"

    # Window for the "past month" mode (days)
    past_feed_days: int = Field(default=30, gt=0)

    # HTTP timeout (seconds)
    timeout_seconds: float = Field(default=30.0, gt=0)

    # Real-time re-fetch period (seconds)
    refresh_interval_seconds: float = Field(default=300.0, gt=0)

    # Static backup payload; None = packaged dataset
    backup_path: Path | None = None


class PlaybackSettings(BaseSettings):
    """Replay timeline configuration.

    A speed divisor compresses the gap between two event timestamps:
    wait_millis = (t_next - t_prev) / divisor.
    """

    model_config = SettingsConfigDict(env_prefix="PLAYBACK_")

    realtime_speed_divisor: float = Field(default=1.0, gt=0)

    # ~30 days replayed in ~2 minutes
    past_month_speed_divisor: float = Field(default=21600.0, gt=0)
    backup_speed_divisor: float = Field(default=21600.0, gt=0)

    # Wall-clock length of a free date range replay (ms)
    free_range_replay_millis: float = Field(default=5000.0, gt=0)

    # Run feed fetches on a worker thread instead of inside the mode switch
    background_fetch: bool = True


class WaveSettings(BaseSettings):
    """Per-event wave motion configuration."""

    model_config = SettingsConfigDict(env_prefix="WAVE_")

    # Mood parameters (interactive mode)
    land_randomness: float = 1.0
    water_noise_modifier: float = 1.0
    mood_factor: float = 1.0

    # Water motion
    noise_scale: float = DEFAULT_NOISE_SCALE
    noise_offset: float = DEFAULT_NOISE_OFFSET
    noise_seed: int = 0

    # Width decay per tick
    decay_rate: float = Field(default=DEFAULT_DECAY_RATE, gt=0)

    # Magnitude to initial wave width / epicenter diameter (px)
    width_per_magnitude: float = Field(default=0.1, ge=0)
    diameter_per_magnitude: float = Field(default=4.0, ge=0)

    # Drop fully decayed events from the live set (never the most recent)
    cull_decayed: bool = False


class DisplaySettings(BaseSettings):
    """Screen and background map configuration."""

    model_config = SettingsConfigDict(env_prefix="DISPLAY_")

    width: int = Field(default=1200, gt=1)
    height: int = Field(default=600, gt=1)
    fps: int = Field(default=60, gt=0)

    # Black-on-white land raster; None = built-in coarse world map
    map_path: Path | None = None


class InteractiveSettings(BaseSettings):
    """Pointer-to-event mapping for interactive mode."""

    model_config = SettingsConfigDict(env_prefix="INTERACTIVE_")

    # Press duration worth one magnitude unit (ms)
    millis_per_magnitude: float = Field(default=250.0, gt=0)
    max_magnitude: float = Field(default=10.0, gt=0)


class Settings(BaseSettings):
    """Master configuration aggregating all subsystems."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    feed: FeedSettings = Field(default_factory=FeedSettings)
    playback: PlaybackSettings = Field(default_factory=PlaybackSettings)
    wave: WaveSettings = Field(default_factory=WaveSettings)
    display: DisplaySettings = Field(default_factory=DisplaySettings)
    interactive: InteractiveSettings = Field(default_factory=InteractiveSettings)

    # Debug mode
    debug: bool = False


def get_settings() -> Settings:
    """Load settings from environment and .env file."""
    return Settings()
