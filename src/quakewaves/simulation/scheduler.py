"""Replay timeline: decides when the next feed event is admitted.

Real event gaps are compressed by a speed divisor:

    wait_millis = (event.timestamp - previous_event_timestamp) / speed_divisor

and the next event is admitted once that much wall-clock time has passed
since the previous admission. At most one event is admitted per poll.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Sequence

from quakewaves.core.errors import EmptyFeedError
from quakewaves.core.types import EpochMillis
from quakewaves.data.feed import RawEvent, merge_new_events

logger = logging.getLogger(__name__)


def speed_divisor_for_range(range_millis: float, replay_millis: float) -> float:
    """Divisor that replays `range_millis` of event time in `replay_millis` of wall time.

    Degenerate ranges fall back to real time (divisor 1).
    """
    if replay_millis <= 0:
        raise ValueError("replay_millis must be positive")
    if range_millis <= 0:
        return 1.0
    return range_millis / replay_millis


@dataclass
class PlaybackClock:
    """Mutable replay position. Owned by one scheduler, rebuilt on every mode change."""

    speed_divisor: float
    previous_event_timestamp: EpochMillis
    wall_clock_anchor: EpochMillis  # wall time of the last admission (ms)
    next_feed_index: int = 0


class PlaybackScheduler:
    """Admits events from an ordered feed at a scaled real-time cadence.

    Events are expected oldest first. An event older than its predecessor
    gets a negative wait and is admitted on the next poll; the feed order is
    passed through, not corrected.
    """

    def __init__(
        self,
        events: Sequence[RawEvent],
        speed_divisor: float,
        start_millis: int,
        refresh_interval_millis: int | None = None,
    ):
        """Start a replay.

        Args:
            events: Feed events, oldest first.
            speed_divisor: Strictly positive time compression factor.
            start_millis: Wall-clock time the replay starts (ms).
            refresh_interval_millis: Period of feed re-queries (real-time
                mode only); None disables refreshes.

        Raises:
            EmptyFeedError: If `events` is empty.
            ValueError: If `speed_divisor` is not positive.
        """
        if not events:
            raise EmptyFeedError("No events to replay")
        if speed_divisor <= 0:
            raise ValueError(f"speed_divisor must be positive, got {speed_divisor}")

        self._events: list[RawEvent] = list(events)
        self.refresh_interval_millis = refresh_interval_millis
        self.last_refresh_millis = start_millis
        self.clock = PlaybackClock(
            speed_divisor=speed_divisor,
            previous_event_timestamp=self._events[0].timestamp_millis,
            wall_clock_anchor=start_millis,
        )

    @property
    def events(self) -> tuple[RawEvent, ...]:
        return tuple(self._events)

    @property
    def admitted_count(self) -> int:
        return self.clock.next_feed_index

    @property
    def pending_count(self) -> int:
        return len(self._events) - self.clock.next_feed_index

    @property
    def idle(self) -> bool:
        """True once every known event has been admitted."""
        return self.pending_count == 0

    def wait_millis(self) -> float | None:
        """Scaled wait before the next event, or None when idle."""
        if self.idle:
            return None
        event = self._events[self.clock.next_feed_index]
        return (event.timestamp_millis - self.clock.previous_event_timestamp) / self.clock.speed_divisor

    def poll(self, now_millis: int) -> RawEvent | None:
        """Admit the next event if its wait has elapsed.

        Returns:
            The admitted event, or None if nothing is due.
        """
        wait = self.wait_millis()
        if wait is None:
            return None
        if now_millis - self.clock.wall_clock_anchor < wait:
            return None

        event = self._events[self.clock.next_feed_index]
        self.clock.previous_event_timestamp = event.timestamp_millis
        self.clock.wall_clock_anchor = now_millis
        self.clock.next_feed_index += 1
        return event

    def refresh_due(self, now_millis: int) -> bool:
        """Whether a periodic feed re-query should start."""
        if self.refresh_interval_millis is None:
            return False
        return now_millis - self.last_refresh_millis >= self.refresh_interval_millis

    def mark_refreshed(self, now_millis: int) -> None:
        self.last_refresh_millis = now_millis

    def extend(self, fresh: Iterable[RawEvent]) -> int:
        """Append fetched events newer than anything already known.

        Admitted events and the clock are left untouched, so an idle
        scheduler resumes with the new tail.

        Returns:
            Number of events appended.
        """
        added = merge_new_events(self._events, fresh)
        self._events.extend(added)
        if added:
            logger.info(f"Appended {len(added)} new events ({self.pending_count} pending)")
        return len(added)
