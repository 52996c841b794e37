"""Presentation: live matplotlib window and video export."""

from quakewaves.viz.animate import draw_frame, export_video, run_live, terrain_image

__all__ = [
    "draw_frame",
    "export_video",
    "run_live",
    "terrain_image",
]
