"""Frame-driven replay engine.

Owns the current mode, its playback scheduler and the live set of
WaveEvents. Each tick admits at most one feed event and advances every live
event by one frame.

Feed fetches can run on a worker thread. Every mode switch bumps a
generation counter; fetch results carry the generation they were started
under and are dropped when it no longer matches, so a slow fetch can never
write into the state of a later mode.
"""

import logging
import sys
import threading
import time
from dataclasses import dataclass, field
from datetime import date
from queue import Empty, Queue
from typing import Callable, Sequence

import numpy as np

from quakewaves.core.config import Settings, get_settings
from quakewaves.core.constants import MILLIS_PER_SECOND
from quakewaves.core.errors import EmptyFeedError, FeedUnavailable, QuakeWavesError
from quakewaves.core.types import EngineMode, Point2D
from quakewaves.data.feed import FeedQuery, RawEvent, fetch_events_sync
from quakewaves.data.terrain import TerrainGrid
from quakewaves.models.projection import ScreenProjection
from quakewaves.simulation.scheduler import PlaybackScheduler, speed_divisor_for_range
from quakewaves.simulation.wave import WaveEvent, WaveSimulation

# Configure module logger with immediate flushing
logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)

FetchFn = Callable[[FeedQuery], Sequence[RawEvent]]

LOAD = "load"
REFRESH = "refresh"


def _wall_clock_millis() -> int:
    return int(time.monotonic() * MILLIS_PER_SECOND)


@dataclass(frozen=True)
class FetchResult:
    """Outcome of one feed fetch, tagged with the generation that requested it."""

    generation: int
    purpose: str  # LOAD or REFRESH
    events: list[RawEvent] | None = None
    error: QuakeWavesError | None = None


class FeedFetcher:
    """Runs feed fetches inline or on daemon worker threads.

    Worker threads only ever touch the result queue; the engine drains it
    from its own tick.
    """

    def __init__(self, fetch_fn: FetchFn, background: bool = True):
        self.fetch_fn = fetch_fn
        self.background = background
        self._results: Queue = Queue()

    def _run(self, generation: int, purpose: str, query: FeedQuery) -> FetchResult:
        try:
            events = list(self.fetch_fn(query))
        except QuakeWavesError as e:
            return FetchResult(generation, purpose, error=e)
        except Exception as e:
            # A result must always be queued or the engine never leaves loading
            logger.exception(f"Unexpected {purpose} fetch failure")
            return FetchResult(generation, purpose, error=FeedUnavailable(str(e) or type(e).__name__))
        return FetchResult(generation, purpose, events=events)

    def _worker(self, generation: int, purpose: str, query: FeedQuery) -> None:
        self._results.put(self._run(generation, purpose, query))

    def submit(self, generation: int, purpose: str, query: FeedQuery) -> None:
        """Start a fetch; its result shows up in drain()."""
        if not self.background:
            self._results.put(self._run(generation, purpose, query))
            return

        thread = threading.Thread(
            target=self._worker,
            args=(generation, purpose, query),
            name=f"feed-{purpose}-{generation}",
            daemon=True,
        )
        thread.start()

    def drain(self) -> list[FetchResult]:
        """Collect every finished fetch without blocking."""
        results = []
        while True:
            try:
                results.append(self._results.get_nowait())
            except Empty:
                return results


@dataclass
class EngineState:
    """Everything that belongs to one mode. Replaced wholesale on a mode switch."""

    mode: EngineMode | None = None
    generation: int = 0
    query: FeedQuery | None = None
    speed_divisor: float | None = None
    refresh_interval_millis: int | None = None
    scheduler: PlaybackScheduler | None = None
    live_events: list[WaveEvent] = field(default_factory=list)
    loading: bool = False
    refreshing: bool = False
    error: str | None = None

    @property
    def status(self) -> str:
        if self.mode is None:
            return "idle"
        if self.error is not None:
            return "error"
        if self.loading:
            return "loading"
        return "running"


@dataclass(frozen=True)
class WaveSnapshot:
    """Read-only view of one WaveEvent for presentation."""

    epicenter: Point2D
    epicenter_diameter: float
    wave_width: float
    wave_positions: tuple[Point2D, Point2D]
    wave_visible: tuple[bool, bool]
    is_most_recent: bool
    magnitude: float
    timestamp_millis: int


class SimulationEngine:
    """Orchestrates playback scheduling and wave simulation per frame.

    Mode triggers (switch_to_*) reset the engine atomically; tick() advances
    one frame; live_events() and snapshot() expose state for rendering.
    """

    def __init__(
        self,
        terrain: TerrainGrid,
        settings: Settings | None = None,
        fetch_fn: FetchFn | None = None,
        clock: Callable[[], int] = _wall_clock_millis,
        rng: np.random.Generator | None = None,
        log_fn=None,
    ):
        self.settings = settings or get_settings()
        self.terrain = terrain
        self.projection = ScreenProjection(terrain.width, terrain.height)
        self.clock = clock
        self.log = log_fn or logger.info

        if fetch_fn is None:
            feed_settings = self.settings.feed

            def fetch_fn(query: FeedQuery) -> list[RawEvent]:
                return fetch_events_sync(query, feed_settings)

        self._fetcher = FeedFetcher(fetch_fn, background=self.settings.playback.background_fetch)
        self.simulation = WaveSimulation(
            terrain=terrain,
            settings=self.settings.wave,
            rng=rng if rng is not None else np.random.default_rng(),
        )
        self._state = EngineState()
        self.tick_count = 0

    # State access -------------------------------------------------------

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def mode(self) -> EngineMode | None:
        return self._state.mode

    @property
    def status(self) -> str:
        return self._state.status

    @property
    def error(self) -> str | None:
        return self._state.error

    def live_events(self) -> tuple[WaveEvent, ...]:
        """Live events, oldest first. Callers must not mutate them."""
        return tuple(self._state.live_events)

    def snapshot(self) -> tuple[WaveSnapshot, ...]:
        """Immutable copy of everything presentation may read."""
        return tuple(
            WaveSnapshot(
                epicenter=event.epicenter,
                epicenter_diameter=event.epicenter_diameter,
                wave_width=event.wave_width,
                wave_positions=(event.wave1.position, event.wave2.position),
                wave_visible=(event.wave_visible(0), event.wave_visible(1)),
                is_most_recent=event.is_most_recent,
                magnitude=event.magnitude,
                timestamp_millis=event.timestamp_millis,
            )
            for event in self._state.live_events
        )

    # Mode triggers ------------------------------------------------------

    def switch_to_realtime(self, now_millis: int | None = None) -> None:
        """Replay the last hour and re-query the feed periodically."""
        self._enter_feed_mode(
            EngineMode.REALTIME,
            FeedQuery.live(),
            self.settings.playback.realtime_speed_divisor,
            now_millis,
            refresh_interval_millis=int(self.settings.feed.refresh_interval_seconds * MILLIS_PER_SECOND),
        )

    def switch_to_past_month(self, now_millis: int | None = None) -> None:
        self._enter_feed_mode(
            EngineMode.PAST_MONTH,
            FeedQuery.past_days(self.settings.feed.past_feed_days),
            self.settings.playback.past_month_speed_divisor,
            now_millis,
        )

    def switch_to_free_range(self, start: date, end: date, now_millis: int | None = None) -> None:
        """Replay a date range (inclusive) compressed into a few seconds.

        Raises:
            InvalidDateRange: Before any state change, if the range is invalid.
        """
        query = FeedQuery.date_range(start, end)
        divisor = speed_divisor_for_range(
            query.range_millis, self.settings.playback.free_range_replay_millis
        )
        self._enter_feed_mode(EngineMode.FREE_RANGE, query, divisor, now_millis)

    def switch_to_backup(self, now_millis: int | None = None) -> None:
        self._enter_feed_mode(
            EngineMode.BACKUP,
            FeedQuery.backup(self.settings.feed.backup_path),
            self.settings.playback.backup_speed_divisor,
            now_millis,
        )

    def switch_to_interactive(self) -> None:
        """Admit events from pointer input only; no feed, no scheduler."""
        self._state = EngineState(
            mode=EngineMode.INTERACTIVE,
            generation=self._state.generation + 1,
        )
        self.log("Mode: interactive")

    def synthesize_event(
        self,
        pointer_down_millis: int,
        pointer_up_millis: int,
        x: float,
        y: float,
    ) -> WaveEvent:
        """Admit an event from a pointer press (interactive mode only).

        Press duration sets the magnitude; the pointer position is mapped
        back to longitude/latitude.
        """
        if self._state.mode is not EngineMode.INTERACTIVE:
            raise ValueError("Events can only be synthesized in interactive mode")

        interactive = self.settings.interactive
        duration = max(pointer_up_millis - pointer_down_millis, 0)
        magnitude = min(duration / interactive.millis_per_magnitude, interactive.max_magnitude)
        longitude, latitude = self.projection.to_geographic(x, y)

        raw = RawEvent(
            timestamp_millis=pointer_up_millis,
            magnitude=magnitude,
            longitude=longitude,
            latitude=latitude,
        )
        return self._admit(raw)

    def set_mood(
        self,
        land_randomness: float | None = None,
        water_noise_modifier: float | None = None,
        mood_factor: float | None = None,
    ) -> None:
        """Adjust the wave mood parameters; None leaves a value unchanged."""
        if land_randomness is not None:
            self.simulation.land_randomness = land_randomness
        if water_noise_modifier is not None:
            self.simulation.water_noise_modifier = water_noise_modifier
        if mood_factor is not None:
            self.simulation.mood_factor = mood_factor

    # Frame loop ---------------------------------------------------------

    def tick(self, now_millis: int | None = None) -> None:
        """Advance one frame: admit at most one event, then move every wave."""
        now = self.clock() if now_millis is None else now_millis

        for result in self._fetcher.drain():
            self._apply_fetch(result, now)

        state = self._state
        if state.mode is None or state.loading or state.error is not None:
            return

        scheduler = state.scheduler
        if scheduler is not None:
            if scheduler.refresh_due(now) and not state.refreshing:
                self._start_refresh(now)
            raw = scheduler.poll(now)
            if raw is not None:
                self._admit(raw)

        for event in state.live_events:
            self.simulation.tick(event)

        if self.settings.wave.cull_decayed:
            state.live_events[:] = [
                e for e in state.live_events if not (e.decayed and not e.is_most_recent)
            ]

        self.tick_count += 1

    # Internals ----------------------------------------------------------

    def _enter_feed_mode(
        self,
        mode: EngineMode,
        query: FeedQuery,
        speed_divisor: float,
        now_millis: int | None,
        refresh_interval_millis: int | None = None,
    ) -> None:
        self._state = EngineState(
            mode=mode,
            generation=self._state.generation + 1,
            query=query,
            speed_divisor=speed_divisor,
            refresh_interval_millis=refresh_interval_millis,
            loading=True,
        )
        self.log(f"Mode: {mode.value} (speed divisor {speed_divisor:g})")

        self._fetcher.submit(self._state.generation, LOAD, query)
        if not self._fetcher.background:
            now = self.clock() if now_millis is None else now_millis
            for result in self._fetcher.drain():
                self._apply_fetch(result, now)

    def _start_refresh(self, now: int) -> None:
        state = self._state
        state.scheduler.mark_refreshed(now)
        state.refreshing = True
        self.log("Refreshing real-time feed")
        self._fetcher.submit(state.generation, REFRESH, state.query)
        if not self._fetcher.background:
            for result in self._fetcher.drain():
                self._apply_fetch(result, now)

    def _apply_fetch(self, result: FetchResult, now: int) -> None:
        state = self._state
        if result.generation != state.generation:
            self.log(f"Discarding stale {result.purpose} fetch (generation {result.generation})")
            return

        if result.purpose == REFRESH:
            state.refreshing = False
            if result.error is not None:
                logger.warning(f"Real-time refresh failed: {result.error}")
                return
            state.scheduler.extend(result.events)
            return

        state.loading = False
        if result.error is not None:
            self._fail(str(result.error))
            return

        try:
            state.scheduler = PlaybackScheduler(
                result.events,
                speed_divisor=state.speed_divisor,
                start_millis=now,
                refresh_interval_millis=state.refresh_interval_millis,
            )
        except EmptyFeedError as e:
            self._fail(str(e))
            return

        self.log(f"Loaded {len(result.events)} events for {state.mode.value}")

    def _fail(self, message: str) -> None:
        state = self._state
        state.error = message
        state.scheduler = None
        state.live_events.clear()
        logger.error(f"{state.mode.value} playback suspended: {message}")

    def _admit(self, raw: RawEvent) -> WaveEvent:
        event = WaveEvent.from_raw(
            raw,
            self.projection,
            settings=self.settings.wave,
            mood_factor=self.simulation.mood_factor,
        )
        live = self._state.live_events
        if live:
            live[-1].is_most_recent = False
        event.is_most_recent = True
        live.append(event)
        return event
