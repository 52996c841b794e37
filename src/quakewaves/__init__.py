"""Earthquake wave replay.

Replays a time-ordered stream of earthquakes over a world map, animating each
event as a pair of waves whose motion follows the land or water beneath them.
"""

__version__ = "0.1.0"
