"""Command-line interface for the earthquake wave replay."""

from datetime import datetime
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from quakewaves.core.config import Settings, get_settings
from quakewaves.core.errors import InvalidDateRange, QuakeWavesError
from quakewaves.core.types import EngineMode

app = typer.Typer(
    name="quakewaves",
    help="Replay earthquakes as waves rolling over land and sea",
    add_completion=False,
)
console = Console()

DATE_FORMATS = ["%Y-%m-%d"]


def _build_engine(settings: Settings, map_path: Path | None):
    from quakewaves.data.basemap import load_background
    from quakewaves.data.terrain import TerrainGrid
    from quakewaves.simulation.engine import SimulationEngine

    display = settings.display
    background = load_background(map_path or display.map_path, display.width, display.height)
    terrain = TerrainGrid.from_image(background)
    return SimulationEngine(terrain, settings=settings)


def _enter_mode(engine, mode: EngineMode, start: datetime | None, end: datetime | None) -> None:
    if mode is EngineMode.FREE_RANGE:
        if start is None or end is None:
            console.print("[red]free_range needs --start and --end[/red]")
            raise typer.Exit(1)
        try:
            engine.switch_to_free_range(start.date(), end.date())
        except InvalidDateRange as e:
            console.print(f"[red]Invalid date range:[/red] {e}")
            raise typer.Exit(1)
    elif mode is EngineMode.REALTIME:
        engine.switch_to_realtime()
    elif mode is EngineMode.PAST_MONTH:
        engine.switch_to_past_month()
    elif mode is EngineMode.BACKUP:
        engine.switch_to_backup()
    else:
        engine.switch_to_interactive()


@app.command()
def play(
    mode: Annotated[EngineMode, typer.Option(help="Playback mode")] = EngineMode.REALTIME,
    start: Annotated[Optional[datetime], typer.Option(formats=DATE_FORMATS, help="Free range start")] = None,
    end: Annotated[Optional[datetime], typer.Option(formats=DATE_FORMATS, help="Free range end")] = None,
    map_path: Annotated[Optional[Path], typer.Option("--map", help="Black-on-white land raster")] = None,
):
    """Open the live replay window."""
    from quakewaves.viz.animate import run_live

    settings = get_settings()
    engine = _build_engine(settings, map_path)
    _enter_mode(engine, mode, start, end)
    run_live(engine, fps=settings.display.fps)


@app.command()
def render(
    output: Annotated[Path, typer.Argument(help="Output video file (e.g. quakes.mp4)")] = Path("quakes.mp4"),
    mode: Annotated[EngineMode, typer.Option(help="Playback mode")] = EngineMode.BACKUP,
    start: Annotated[Optional[datetime], typer.Option(formats=DATE_FORMATS, help="Free range start")] = None,
    end: Annotated[Optional[datetime], typer.Option(formats=DATE_FORMATS, help="Free range end")] = None,
    seconds: Annotated[float, typer.Option(help="Video length in seconds")] = 30.0,
    fps: Annotated[int, typer.Option(help="Video frame rate")] = 30,
    map_path: Annotated[Optional[Path], typer.Option("--map", help="Black-on-white land raster")] = None,
):
    """Render a replay to video with ffmpeg."""
    from quakewaves.viz.animate import export_video

    if mode is EngineMode.INTERACTIVE:
        console.print("[red]Interactive mode has no feed to render[/red]")
        raise typer.Exit(1)

    settings = get_settings()
    settings.playback.background_fetch = False
    engine = _build_engine(settings, map_path)
    _enter_mode(engine, mode, start, end)

    if engine.error:
        console.print(f"[red]{mode.value} unavailable:[/red] {engine.error}")
        raise typer.Exit(1)

    export_video(engine, output, seconds=seconds, fps=fps)
    console.print(f"[green]Video created: {output}[/green]")


@app.command()
def events(
    mode: Annotated[EngineMode, typer.Option(help="Feed to list")] = EngineMode.REALTIME,
    start: Annotated[Optional[datetime], typer.Option(formats=DATE_FORMATS, help="Free range start")] = None,
    end: Annotated[Optional[datetime], typer.Option(formats=DATE_FORMATS, help="Free range end")] = None,
    limit: Annotated[int, typer.Option(help="Rows to show")] = 20,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
):
    """Fetch a feed and list its events, oldest first."""
    from quakewaves.data.feed import FeedQuery, fetch_events_sync

    settings = get_settings()
    try:
        if mode is EngineMode.REALTIME:
            query = FeedQuery.live()
        elif mode is EngineMode.PAST_MONTH:
            query = FeedQuery.past_days(settings.feed.past_feed_days)
        elif mode is EngineMode.FREE_RANGE:
            if start is None or end is None:
                console.print("[red]free_range needs --start and --end[/red]")
                raise typer.Exit(1)
            query = FeedQuery.date_range(start.date(), end.date())
        elif mode is EngineMode.BACKUP:
            query = FeedQuery.backup(settings.feed.backup_path)
        else:
            console.print("[red]Interactive mode has no feed[/red]")
            raise typer.Exit(1)

        feed = fetch_events_sync(query, settings.feed)
    except QuakeWavesError as e:
        console.print(f"[red]Feed error:[/red] {e}")
        raise typer.Exit(1)

    if json_output:
        import json
        console.print(json.dumps([e.model_dump() for e in feed[-limit:]], indent=2))
        return

    table = Table(title=f"{mode.value} feed ({len(feed)} events)")
    table.add_column("Time (UTC)")
    table.add_column("Mag", justify="right")
    table.add_column("Lon", justify="right")
    table.add_column("Lat", justify="right")
    for event in feed[-limit:]:
        table.add_row(
            event.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            f"{event.magnitude:.1f}",
            f"{event.longitude:.2f}",
            f"{event.latitude:.2f}",
        )
    console.print(table)


@app.command()
def terrain(
    map_path: Annotated[Optional[Path], typer.Option("--map", help="Black-on-white land raster")] = None,
):
    """Summarise the land/water classification of the background map."""
    from quakewaves.data.basemap import load_background
    from quakewaves.data.terrain import TerrainGrid

    display = get_settings().display
    background = load_background(map_path or display.map_path, display.width, display.height)
    grid = TerrainGrid.from_image(background)

    console.print(Panel.fit(
        f"[bold]Terrain grid[/bold]\n"
        f"Source: {map_path or display.map_path or 'built-in world outline'}\n"
        f"Size: {grid.width} x {grid.height}\n"
        f"Land: {grid.land_fraction * 100:.1f}%"
    ))


@app.command()
def version():
    """Show version information."""
    from quakewaves import __version__
    console.print(f"quakewaves v{__version__}")


if __name__ == "__main__":
    app()
