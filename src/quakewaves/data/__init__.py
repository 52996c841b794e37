"""Event feed and background map ingestion."""

from quakewaves.data.basemap import load_background, render_world_mask
from quakewaves.data.feed import (
    FeedQuery,
    QueryKind,
    RawEvent,
    fetch_events,
    fetch_events_sync,
    load_backup,
    merge_new_events,
    parse_geojson,
)
from quakewaves.data.terrain import TerrainGrid

__all__ = [
    "FeedQuery",
    "QueryKind",
    "RawEvent",
    "TerrainGrid",
    "fetch_events",
    "fetch_events_sync",
    "load_background",
    "load_backup",
    "merge_new_events",
    "parse_geojson",
    "render_world_mask",
]
