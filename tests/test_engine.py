"""Tests for the replay engine: modes, admission and the fetch lifecycle."""

import dataclasses
import threading
import time
from datetime import date

import numpy as np
import pytest

from quakewaves.core.config import FeedSettings, PlaybackSettings, Settings, WaveSettings
from quakewaves.core.errors import FeedUnavailable, InvalidDateRange
from quakewaves.core.types import EngineMode
from quakewaves.data.feed import QueryKind
from quakewaves.simulation.engine import SimulationEngine


class FakeFeed:
    """Feed stand-in returning queued responses per query kind."""

    def __init__(self, responses=None):
        self.responses = responses or {}
        self.queries = []

    def __call__(self, query):
        self.queries.append(query)
        queue = self.responses.get(query.kind, [])
        response = queue.pop(0) if len(queue) > 1 else (queue[0] if queue else [])
        if isinstance(response, Exception):
            raise response
        return response


def _engine(terrain, feed, settings, messages=None):
    return SimulationEngine(
        terrain,
        settings=settings,
        fetch_fn=feed,
        clock=lambda: 0,
        rng=np.random.default_rng(0),
        log_fn=messages.append if messages is not None else None,
    )


def _most_recent_count(engine):
    return sum(1 for e in engine.live_events() if e.is_most_recent)


class TestModes:
    """Tests for mode switching and loading."""

    def test_initial_state(self, water_grid, inline_settings):
        """A new engine should be idle with no events."""
        engine = _engine(water_grid, FakeFeed(), inline_settings)

        assert engine.mode is None
        assert engine.status == "idle"
        assert engine.live_events() == ()
        engine.tick(0)
        assert engine.live_events() == ()

    def test_single_event_admitted(self, water_grid, inline_settings, make_event):
        """A one-event feed should be admitted on the first tick."""
        feed = FakeFeed({QueryKind.BACKUP: [[make_event(1000)]]})
        engine = _engine(water_grid, feed, inline_settings)

        engine.switch_to_backup(now_millis=0)
        assert engine.status == "running"
        engine.tick(0)

        (event,) = engine.live_events()
        assert event.is_most_recent
        assert event.timestamp_millis == 1000

    def test_empty_feed_suspends(self, water_grid, inline_settings):
        """An empty feed should enter the error state and stop ticking."""
        engine = _engine(water_grid, FakeFeed({QueryKind.BACKUP: [[]]}), inline_settings)

        engine.switch_to_backup(now_millis=0)
        assert engine.status == "error"
        assert engine.error

        for now in range(0, 100, 10):
            engine.tick(now)
        assert engine.live_events() == ()
        assert engine.tick_count == 0

    def test_fetch_failure_suspends(self, water_grid, inline_settings):
        """A failed fetch should enter the error state."""
        feed = FakeFeed({QueryKind.PAST_DAYS: [FeedUnavailable("offline")]})
        engine = _engine(water_grid, feed, inline_settings)

        engine.switch_to_past_month(now_millis=0)
        assert engine.mode is EngineMode.PAST_MONTH
        assert engine.status == "error"
        assert "offline" in engine.error

    def test_undecodable_backup_suspends(self, water_grid, tmp_path):
        """A backup that is not UTF-8 should enter the error state."""
        path = tmp_path / "backup.geojson"
        path.write_bytes(b'{"features": "\xff\xfe\xfd"}')
        settings = Settings(
            feed=FeedSettings(backup_path=path),
            playback=PlaybackSettings(background_fetch=False),
        )
        engine = SimulationEngine(water_grid, settings=settings, clock=lambda: 0)

        engine.switch_to_backup(now_millis=0)

        assert engine.status == "error"
        assert engine.error
        engine.tick(0)
        assert engine.tick_count == 0

    def test_error_cleared_by_switch(self, water_grid, inline_settings, make_event):
        """Switching mode should recover from the error state."""
        feed = FakeFeed({
            QueryKind.PAST_DAYS: [FeedUnavailable("offline")],
            QueryKind.BACKUP: [[make_event(0)]],
        })
        engine = _engine(water_grid, feed, inline_settings)

        engine.switch_to_past_month(now_millis=0)
        engine.switch_to_backup(now_millis=0)
        assert engine.status == "running"
        assert engine.error is None

    def test_switch_discards_live_events(self, water_grid, inline_settings, make_event):
        """A mode switch should start from an empty live set."""
        feed = FakeFeed({QueryKind.BACKUP: [[make_event(0), make_event(1)]]})
        engine = _engine(water_grid, feed, inline_settings)

        engine.switch_to_backup(now_millis=0)
        engine.tick(0)
        engine.tick(1)
        assert len(engine.live_events()) == 2

        engine.switch_to_interactive()
        assert engine.mode is EngineMode.INTERACTIVE
        assert engine.live_events() == ()

    def test_speed_divisors(self, water_grid, inline_settings, make_event):
        """Each feed mode should use its own divisor."""
        feed = FakeFeed({kind: [[make_event(0)]] for kind in QueryKind})
        engine = _engine(water_grid, feed, inline_settings)

        engine.switch_to_realtime(now_millis=0)
        assert engine.state.speed_divisor == 1.0
        engine.switch_to_past_month(now_millis=0)
        assert engine.state.speed_divisor == 21600.0
        engine.switch_to_backup(now_millis=0)
        assert engine.state.speed_divisor == 21600.0
        engine.switch_to_free_range(date(2024, 1, 1), date(2024, 1, 1), now_millis=0)
        assert engine.state.speed_divisor == pytest.approx(17280.0)
        assert feed.queries[-1].kind is QueryKind.DATE_RANGE

    def test_invalid_range_keeps_state(self, water_grid, inline_settings, make_event):
        """A rejected date range should leave the current mode running."""
        feed = FakeFeed({QueryKind.BACKUP: [[make_event(0)]]})
        engine = _engine(water_grid, feed, inline_settings)
        engine.switch_to_backup(now_millis=0)
        generation = engine.state.generation

        with pytest.raises(InvalidDateRange):
            engine.switch_to_free_range(date(2024, 3, 1), date(2024, 2, 1))

        assert engine.mode is EngineMode.BACKUP
        assert engine.state.generation == generation

    def test_generation_increments(self, water_grid, inline_settings):
        """Every switch should start a new generation."""
        engine = _engine(water_grid, FakeFeed(), inline_settings)

        engine.switch_to_interactive()
        first = engine.state.generation
        engine.switch_to_interactive()
        assert engine.state.generation == first + 1


class TestAdmission:
    """Tests for the live set as events are admitted."""

    def test_single_most_recent(self, water_grid, inline_settings, make_event):
        """Exactly one event, the newest, should be marked most recent."""
        feed = FakeFeed({QueryKind.BACKUP: [[make_event(t) for t in range(0, 50, 10)]]})
        engine = _engine(water_grid, feed, inline_settings)
        engine.switch_to_backup(now_millis=0)

        for now in range(5):
            engine.tick(now)
            live = engine.live_events()
            assert _most_recent_count(engine) == 1
            assert live[-1].is_most_recent

        assert len(engine.live_events()) == 5

    def test_waves_advance_each_tick(self, water_grid, inline_settings, make_event):
        """Every live event should advance once per tick."""
        feed = FakeFeed({QueryKind.BACKUP: [[make_event(0)]]})
        engine = _engine(water_grid, feed, inline_settings)
        engine.switch_to_backup(now_millis=0)

        for now in range(3):
            engine.tick(now)

        (event,) = engine.live_events()
        assert event.wave1.x == pytest.approx(event.epicenter[0] - 3)
        assert event.wave2.x == pytest.approx(event.epicenter[0] + 3)
        assert engine.tick_count == 3

    def test_decayed_events_kept(self, water_grid, make_event):
        """Without culling, decayed events should stay in the live set."""
        settings = Settings(
            playback=PlaybackSettings(background_fetch=False),
            wave=WaveSettings(decay_rate=0.05),
        )
        feed = FakeFeed({QueryKind.BACKUP: [[make_event(0, magnitude=1.0), make_event(0, magnitude=1.0)]]})
        engine = _engine(water_grid, feed, settings)
        engine.switch_to_backup(now_millis=0)

        for now in range(5):
            engine.tick(now)

        live = engine.live_events()
        assert len(live) == 2
        assert all(e.decayed for e in live)

    def test_cull_decayed(self, water_grid, make_event):
        """With culling on, only the most recent decayed event should survive."""
        settings = Settings(
            playback=PlaybackSettings(background_fetch=False),
            wave=WaveSettings(decay_rate=0.05, cull_decayed=True),
        )
        feed = FakeFeed({QueryKind.BACKUP: [[make_event(0, magnitude=1.0), make_event(0, magnitude=1.0)]]})
        engine = _engine(water_grid, feed, settings)
        engine.switch_to_backup(now_millis=0)

        for now in range(5):
            engine.tick(now)

        (survivor,) = engine.live_events()
        assert survivor.is_most_recent
        assert survivor.decayed

    def test_snapshot(self, water_grid, inline_settings, make_event):
        """Snapshots should mirror live events and be immutable."""
        feed = FakeFeed({QueryKind.BACKUP: [[make_event(0, magnitude=3.0)]]})
        engine = _engine(water_grid, feed, inline_settings)
        engine.switch_to_backup(now_millis=0)
        engine.tick(0)

        (snap,) = engine.snapshot()
        (event,) = engine.live_events()
        assert snap.wave_positions == (event.wave1.position, event.wave2.position)
        assert snap.wave_visible == (True, True)
        assert snap.is_most_recent
        assert snap.magnitude == 3.0
        with pytest.raises(dataclasses.FrozenInstanceError):
            snap.wave_width = 1.0


class TestRealtimeRefresh:
    """Tests for periodic real-time re-queries."""

    def test_refresh_appends_new_events(self, water_grid, inline_settings, make_event):
        """A due refresh should append only events newer than the last known one."""
        feed = FakeFeed({
            QueryKind.LIVE: [
                [make_event(1000)],
                [make_event(1000), make_event(2000)],
            ]
        })
        engine = _engine(water_grid, feed, inline_settings)
        engine.switch_to_realtime(now_millis=0)
        engine.tick(0)
        assert len(engine.live_events()) == 1

        engine.tick(299_999)
        assert len(feed.queries) == 1

        engine.tick(300_000)
        assert len(feed.queries) == 2
        assert len(engine.live_events()) == 2
        assert engine.live_events()[-1].timestamp_millis == 2000
        assert _most_recent_count(engine) == 1

    def test_refresh_failure_keeps_running(self, water_grid, inline_settings, make_event):
        """A failed refresh should not interrupt playback."""
        feed = FakeFeed({QueryKind.LIVE: [[make_event(1000)], FeedUnavailable("timeout")]})
        engine = _engine(water_grid, feed, inline_settings)
        engine.switch_to_realtime(now_millis=0)
        engine.tick(0)

        engine.tick(300_000)

        assert engine.status == "running"
        assert engine.error is None
        assert len(engine.live_events()) == 1
        assert not engine.state.refreshing

    def test_other_modes_never_refresh(self, water_grid, inline_settings, make_event):
        """Past month playback should query the feed only once."""
        feed = FakeFeed({QueryKind.PAST_DAYS: [[make_event(0)]]})
        engine = _engine(water_grid, feed, inline_settings)
        engine.switch_to_past_month(now_millis=0)

        for now in (0, 300_000, 600_000, 900_000):
            engine.tick(now)
        assert len(feed.queries) == 1


class TestBackgroundFetch:
    """Tests for worker-thread fetches."""

    @staticmethod
    def _settle(engine, timeout=5.0):
        deadline = time.monotonic() + timeout
        while engine.status == "loading" and time.monotonic() < deadline:
            time.sleep(0.01)
            engine.tick(0)

    def test_loads_in_background(self, water_grid, make_event):
        """A background load should land on a later tick."""
        feed = FakeFeed({QueryKind.BACKUP: [[make_event(0)]]})
        engine = _engine(water_grid, feed, Settings())

        engine.switch_to_backup(now_millis=0)
        self._settle(engine)

        assert engine.status == "running"
        engine.tick(0)
        assert len(engine.live_events()) == 1

    def test_stale_fetch_discarded(self, water_grid, make_event):
        """A slow fetch from an abandoned mode should not touch the new mode."""
        gate = threading.Event()

        def fetch(query):
            if query.kind is QueryKind.PAST_DAYS:
                gate.wait(5.0)
                return [make_event(t) for t in range(10)]
            return [make_event(0)]

        messages = []
        engine = _engine(water_grid, fetch, Settings(), messages)

        engine.switch_to_past_month(now_millis=0)
        stale_generation = engine.state.generation
        engine.switch_to_backup(now_millis=0)
        self._settle(engine)
        assert engine.mode is EngineMode.BACKUP

        gate.set()
        for thread in threading.enumerate():
            if thread.name == f"feed-load-{stale_generation}":
                thread.join(5.0)
        engine.tick(0)

        assert engine.mode is EngineMode.BACKUP
        assert len(engine.state.scheduler.events) == 1
        assert any("stale" in m for m in messages)

    def test_unexpected_exception_suspends(self, water_grid):
        """A fetch dying with a foreign exception should still end in the error state."""

        def fetch(query):
            raise RuntimeError("disk on fire")

        engine = _engine(water_grid, fetch, Settings())

        engine.switch_to_past_month(now_millis=0)
        self._settle(engine)

        assert engine.status == "error"
        assert "disk on fire" in engine.error
        assert engine.live_events() == ()

    def test_undecodable_backup_suspends(self, water_grid, tmp_path):
        """A backup that is not UTF-8 should end in the error state, not hang in loading."""
        path = tmp_path / "backup.geojson"
        path.write_bytes(b'{"features": "\xff\xfe\xfd"}')
        settings = Settings(feed=FeedSettings(backup_path=path))
        engine = SimulationEngine(water_grid, settings=settings, clock=lambda: 0)

        engine.switch_to_backup(now_millis=0)
        self._settle(engine)

        assert engine.status == "error"


class TestInteractive:
    """Tests for pointer-synthesized events."""

    def test_synthesize(self, water_grid, inline_settings):
        """Press duration should set magnitude and position should map back."""
        engine = _engine(water_grid, FakeFeed(), inline_settings)
        engine.switch_to_interactive()

        event = engine.synthesize_event(0, 1000, 180.0, 69.0)

        assert event.magnitude == pytest.approx(4.0)
        assert event.epicenter == pytest.approx((180.0, 69.0))
        assert event.is_most_recent
        assert engine.live_events() == (event,)

    def test_magnitude_clamped(self, water_grid, inline_settings):
        """Long presses should cap the magnitude and reversed ones floor it."""
        engine = _engine(water_grid, FakeFeed(), inline_settings)
        engine.switch_to_interactive()

        assert engine.synthesize_event(0, 60_000, 100.0, 50.0).magnitude == 10.0
        assert engine.synthesize_event(500, 0, 100.0, 50.0).magnitude == 0.0

    def test_demotes_previous(self, water_grid, inline_settings):
        """A new synthesized event should take over the most recent flag."""
        engine = _engine(water_grid, FakeFeed(), inline_settings)
        engine.switch_to_interactive()

        first = engine.synthesize_event(0, 500, 100.0, 50.0)
        second = engine.synthesize_event(600, 900, 200.0, 50.0)

        assert not first.is_most_recent
        assert second.is_most_recent
        assert _most_recent_count(engine) == 1

    def test_ticks_without_feed(self, water_grid, inline_settings):
        """Interactive events should advance without any scheduler."""
        engine = _engine(water_grid, FakeFeed(), inline_settings)
        engine.switch_to_interactive()
        engine.synthesize_event(0, 1000, 180.0, 69.0)

        engine.tick(0)

        (event,) = engine.live_events()
        assert event.wave1.x == pytest.approx(179.0)

    def test_requires_interactive_mode(self, water_grid, inline_settings, make_event):
        """Synthesizing outside interactive mode should fail."""
        feed = FakeFeed({QueryKind.BACKUP: [[make_event(0)]]})
        engine = _engine(water_grid, feed, inline_settings)
        engine.switch_to_backup(now_millis=0)

        with pytest.raises(ValueError):
            engine.synthesize_event(0, 1000, 10.0, 10.0)

    def test_set_mood(self, water_grid, inline_settings):
        """Mood changes should reach the simulation and new events."""
        engine = _engine(water_grid, FakeFeed(), inline_settings)
        engine.switch_to_interactive()

        engine.set_mood(land_randomness=0.0, mood_factor=2.0)

        assert engine.simulation.land_randomness == 0.0
        assert engine.simulation.water_noise_modifier == 1.0
        event = engine.synthesize_event(0, 1000, 180.0, 69.0)
        assert event.wave_width == pytest.approx(0.8)
