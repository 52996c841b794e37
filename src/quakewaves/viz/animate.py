"""Matplotlib presentation of the replay: live window and video export."""

import subprocess
import time
from io import BytesIO
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.animation import FuncAnimation
from matplotlib.patches import Circle

from quakewaves.core.types import EngineMode
from quakewaves.data.terrain import TerrainGrid
from quakewaves.simulation.engine import SimulationEngine, WaveSnapshot

LAND_COLOR = np.array([0.16, 0.17, 0.20])
WATER_COLOR = np.array([0.05, 0.10, 0.22])
EPICENTER_COLOR = "#f4d35e"
RECENT_COLOR = "#ee4266"
WAVE_COLOR = "#7fdbff"

# Drawn wave radius (px) per unit of wave width
WAVE_RADIUS_SCALE = 40.0

KEY_HELP = "r: real-time   m: past month   b: backup   i: interactive (click and hold)"


def terrain_image(terrain: TerrainGrid) -> np.ndarray:
    """RGB image of the land mask for display."""
    mask = terrain.land_mask[..., None]
    return np.where(mask, LAND_COLOR, WATER_COLOR)


def render_frame_to_pipe(fig, pipe, dpi: int = 100):
    """Render matplotlib figure directly to ffmpeg pipe."""
    buf = BytesIO()
    fig.savefig(buf, format="raw", dpi=dpi)
    buf.seek(0)
    pipe.write(buf.getvalue())
    buf.close()


def draw_frame(ax, background: np.ndarray, snapshot: tuple[WaveSnapshot, ...], caption: str):
    """Draw the map, epicenters and visible waves onto a cleared axis."""
    height, width = background.shape[:2]
    ax.clear()
    ax.imshow(background, extent=(0, width, height, 0), interpolation="nearest", zorder=0)

    for event in snapshot:
        color = RECENT_COLOR if event.is_most_recent else EPICENTER_COLOR
        if event.epicenter_diameter > 0:
            ax.add_patch(
                Circle(event.epicenter, event.epicenter_diameter / 2, color=color, alpha=0.8, zorder=2)
            )

        for position, visible in zip(event.wave_positions, event.wave_visible):
            if not visible:
                continue
            ax.add_patch(
                Circle(
                    position,
                    event.wave_width * WAVE_RADIUS_SCALE,
                    fill=False,
                    edgecolor=WAVE_COLOR,
                    alpha=min(1.0, event.wave_width),
                    linewidth=1.0,
                    zorder=1,
                )
            )

    ax.text(8, 16, caption, color="white", fontsize=9, fontfamily="monospace", zorder=3)
    ax.set_xlim(0, width)
    ax.set_ylim(height, 0)
    ax.axis("off")


def _caption(engine: SimulationEngine) -> str:
    mode = engine.mode.value if engine.mode else "idle"
    if engine.error:
        return f"{mode}: {engine.error}"
    return f"{mode} [{engine.status}] {len(engine.state.live_events)} events   {KEY_HELP}"


def _make_figure(terrain: TerrainGrid, dpi: int):
    fig = plt.figure(figsize=(terrain.width / dpi, terrain.height / dpi), dpi=dpi)
    ax = fig.add_axes((0, 0, 1, 1))
    fig.patch.set_facecolor("black")
    return fig, ax


def run_live(engine: SimulationEngine, fps: int = 60, dpi: int = 100):
    """Open an interactive window and drive the engine one tick per frame.

    Keys switch modes; in interactive mode a mouse press/release synthesizes
    an event whose magnitude grows with the hold duration.
    """
    background = terrain_image(engine.terrain)
    fig, ax = _make_figure(engine.terrain, dpi)
    press: dict[str, int] = {}

    def on_key(event):
        if event.key == "r":
            engine.switch_to_realtime()
        elif event.key == "m":
            engine.switch_to_past_month()
        elif event.key == "b":
            engine.switch_to_backup()
        elif event.key == "i":
            engine.switch_to_interactive()

    def on_press(event):
        if event.inaxes is ax:
            press["down"] = engine.clock()

    def on_release(event):
        down = press.pop("down", None)
        if down is None or event.xdata is None or engine.mode is not EngineMode.INTERACTIVE:
            return
        engine.synthesize_event(down, engine.clock(), event.xdata, event.ydata)

    fig.canvas.mpl_connect("key_press_event", on_key)
    fig.canvas.mpl_connect("button_press_event", on_press)
    fig.canvas.mpl_connect("button_release_event", on_release)

    def update(_frame):
        engine.tick()
        draw_frame(ax, background, engine.snapshot(), _caption(engine))
        return []

    animation = FuncAnimation(fig, update, interval=1000 / fps, cache_frame_data=False)
    plt.show()
    return animation


def _await_load(engine: SimulationEngine, timeout_seconds: float) -> None:
    """Block until a background feed load has landed (or the timeout passes)."""
    deadline = time.monotonic() + timeout_seconds
    while engine.status == "loading" and time.monotonic() < deadline:
        time.sleep(0.1)
        engine.tick()


def export_video(
    engine: SimulationEngine,
    output_path: Path,
    seconds: float = 30.0,
    fps: int = 30,
    dpi: int = 100,
    load_timeout_seconds: float = 60.0,
) -> Path:
    """Render the current mode's replay to a video file through ffmpeg.

    The engine is ticked on a synthetic clock (one frame = 1/fps seconds),
    so the video plays at the configured replay speed regardless of how
    long each frame takes to draw.
    """
    _await_load(engine, load_timeout_seconds)

    terrain = engine.terrain
    background = terrain_image(terrain)
    fig, ax = _make_figure(terrain, dpi)
    width, height = fig.canvas.get_width_height()
    n_frames = int(seconds * fps)

    ffmpeg_cmd = [
        "ffmpeg",
        "-y",
        "-f", "rawvideo",
        "-vcodec", "rawvideo",
        "-s", f"{width}x{height}",
        "-pix_fmt", "rgba",
        "-r", str(fps),
        "-i", "-",
        "-c:v", "libx264",
        "-preset", "fast",
        "-crf", "23",
        "-pix_fmt", "yuv420p",
        "-vf", "pad=ceil(iw/2)*2:ceil(ih/2)*2",
        str(output_path),
    ]

    print(f"Rendering {n_frames} frames to {output_path}...")
    pipe = subprocess.Popen(
        ffmpeg_cmd,
        stdin=subprocess.PIPE,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
    )

    start = engine.clock()
    try:
        for frame_idx in range(n_frames):
            engine.tick(now_millis=start + int(frame_idx * 1000 / fps))
            draw_frame(ax, background, engine.snapshot(), _caption(engine))
            render_frame_to_pipe(fig, pipe.stdin, dpi=dpi)

            if (frame_idx + 1) % fps == 0 or frame_idx == n_frames - 1:
                pct = 100 * (frame_idx + 1) / n_frames
                print(f"  Frame {frame_idx + 1}/{n_frames} ({pct:.0f}%)")
    finally:
        pipe.stdin.close()
        pipe.wait()
        plt.close(fig)

    print(f"Video saved to: {output_path}")
    return output_path
