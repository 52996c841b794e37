"""Earthquake event feed from the USGS GeoJSON service or a local backup."""

import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from importlib import resources
from pathlib import Path
from typing import Iterable, Self

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from quakewaves.core.config import FeedSettings, get_settings
from quakewaves.core.constants import (
    MILLIS_PER_SECOND,
    MIN_QUERY_YEAR,
    USGS_MONTH_FEED,
    USGS_QUERY_PATH,
    USGS_SUMMARY_PATH,
)
from quakewaves.core.errors import FeedUnavailable, InvalidDateRange

logger = logging.getLogger(__name__)

BACKUP_RESOURCE = "backup.geojson"


class RawEvent(BaseModel):
    """One earthquake record as delivered by the feed."""

    model_config = ConfigDict(frozen=True)

    timestamp_millis: int  # UTC epoch milliseconds
    magnitude: float = 0.0
    longitude: float
    latitude: float

    @field_validator("magnitude", mode="before")
    @classmethod
    def missing_magnitude_is_zero(cls, value):
        """Unmeasured magnitudes arrive as null."""
        return 0.0 if value is None else value

    @property
    def timestamp(self) -> datetime:
        """Event time as an aware UTC datetime."""
        return datetime.fromtimestamp(self.timestamp_millis / MILLIS_PER_SECOND, tz=timezone.utc)


class QueryKind(str, Enum):
    """What a feed request asks for."""

    LIVE = "live"
    PAST_DAYS = "past_days"
    DATE_RANGE = "date_range"
    BACKUP = "backup"


@dataclass(frozen=True)
class FeedQuery:
    """A feed request. Build with the classmethods rather than directly."""

    kind: QueryKind
    days: int | None = None
    start: date | None = None
    end: date | None = None
    path: Path | None = None

    @classmethod
    def live(cls) -> Self:
        """Most recent hour of events."""
        return cls(kind=QueryKind.LIVE)

    @classmethod
    def past_days(cls, days: int) -> Self:
        """Events from the last `days` days."""
        if days <= 0:
            raise ValueError("days must be positive")
        return cls(kind=QueryKind.PAST_DAYS, days=days)

    @classmethod
    def date_range(cls, start: date, end: date) -> Self:
        """Events between two dates, both inclusive.

        Raises:
            InvalidDateRange: If end precedes start or a year is out of bounds.
        """
        if end < start:
            raise InvalidDateRange(f"end date {end} is before start date {start}")
        this_year = datetime.now(timezone.utc).year
        for d in (start, end):
            if not MIN_QUERY_YEAR <= d.year <= this_year:
                raise InvalidDateRange(
                    f"year {d.year} outside {MIN_QUERY_YEAR}-{this_year}"
                )
        return cls(kind=QueryKind.DATE_RANGE, start=start, end=end)

    @classmethod
    def backup(cls, path: Path | None = None) -> Self:
        """Static dataset on disk (packaged copy when path is None)."""
        return cls(kind=QueryKind.BACKUP, path=path)

    @property
    def range_millis(self) -> int | None:
        """Length of a date-range query in milliseconds (end day inclusive)."""
        if self.kind != QueryKind.DATE_RANGE:
            return None
        return int((self.end - self.start + timedelta(days=1)).total_seconds() * MILLIS_PER_SECOND)


def parse_geojson(payload: dict) -> list[RawEvent]:
    """Parse a USGS GeoJSON FeatureCollection into events, oldest first.

    USGS lists features newest first; storage order is never trusted and the
    result is always sorted ascending by timestamp.

    Raises:
        FeedUnavailable: If the payload does not follow the feed schema.
    """
    try:
        features = payload["features"]
        events = [
            RawEvent(
                timestamp_millis=feature["properties"]["time"],
                magnitude=feature["properties"].get("mag"),
                longitude=feature["geometry"]["coordinates"][0],
                latitude=feature["geometry"]["coordinates"][1],
            )
            for feature in features
        ]
    except (KeyError, IndexError, TypeError, ValidationError) as e:
        raise FeedUnavailable(f"Malformed feed payload: {e}") from e

    events.sort(key=lambda event: event.timestamp_millis)
    return events


def merge_new_events(known: Iterable[RawEvent], fresh: Iterable[RawEvent]) -> list[RawEvent]:
    """Return the events in `fresh` strictly newer than everything in `known`."""
    newest = max((event.timestamp_millis for event in known), default=None)
    ordered = sorted(fresh, key=lambda event: event.timestamp_millis)
    if newest is None:
        return ordered
    return [event for event in ordered if event.timestamp_millis > newest]


def build_request(query: FeedQuery, settings: FeedSettings) -> tuple[str, dict]:
    """Resolve a remote query into (url, params)."""
    base = settings.usgs_base_url.rstrip("/")

    if query.kind == QueryKind.LIVE:
        return base + USGS_SUMMARY_PATH.format(feed=settings.live_feed), {}

    if query.kind == QueryKind.PAST_DAYS:
        if query.days == 30:
            return base + USGS_SUMMARY_PATH.format(feed=USGS_MONTH_FEED), {}
        start = datetime.now(timezone.utc) - timedelta(days=query.days)
        return base + USGS_QUERY_PATH, {
            "format": "geojson",
            "starttime": start.strftime("%Y-%m-%dT%H:%M:%S"),
            "orderby": "time-asc",
        }

    if query.kind == QueryKind.DATE_RANGE:
        # End day is inclusive, the service end bound is exclusive
        return base + USGS_QUERY_PATH, {
            "format": "geojson",
            "starttime": query.start.isoformat(),
            "endtime": (query.end + timedelta(days=1)).isoformat(),
            "orderby": "time-asc",
        }

    raise ValueError(f"{query.kind.value} queries are not remote")


def load_backup(path: Path | None = None) -> list[RawEvent]:
    """Load the static backup dataset.

    Raises:
        FeedUnavailable: If the file is missing or not valid feed JSON.
    """
    try:
        if path is None:
            text = resources.files("quakewaves.data").joinpath(BACKUP_RESOURCE).read_text(
                encoding="utf-8"
            )
        else:
            text = Path(path).read_text(encoding="utf-8")
        payload = json.loads(text)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise FeedUnavailable(f"Backup dataset unreadable: {e}") from e

    return parse_geojson(payload)


async def fetch_events(
    query: FeedQuery,
    settings: FeedSettings | None = None,
    client: httpx.AsyncClient | None = None,
) -> list[RawEvent]:
    """Fetch events for a query, oldest first.

    Args:
        query: What to fetch.
        settings: Feed settings. Defaults to global settings.
        client: Optional HTTP client (a fresh one is opened otherwise).

    Returns:
        Events sorted ascending by timestamp. May be empty.

    Raises:
        FeedUnavailable: On network, HTTP status or parse failure.
    """
    if settings is None:
        settings = get_settings().feed

    if query.kind == QueryKind.BACKUP:
        return load_backup(query.path or settings.backup_path)

    url, params = build_request(query, settings)
    logger.info(f"Fetching {query.kind.value} feed: {url}")

    try:
        if client is None:
            async with httpx.AsyncClient(timeout=settings.timeout_seconds) as own_client:
                response = await own_client.get(url, params=params)
        else:
            response = await client.get(url, params=params)
        response.raise_for_status()
        payload = response.json()
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise FeedUnavailable(f"Feed request failed: {e}") from e
    except ValueError as e:
        # JSONDecodeError, or UnicodeDecodeError on a body that is not UTF-8
        raise FeedUnavailable(f"Feed response is not JSON: {e}") from e

    events = parse_geojson(payload)
    logger.info(f"Fetched {len(events)} events")
    return events


def fetch_events_sync(query: FeedQuery, settings: FeedSettings | None = None) -> list[RawEvent]:
    """Blocking wrapper around fetch_events for worker threads and the CLI."""
    return asyncio.run(fetch_events(query, settings))
