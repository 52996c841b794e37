"""Coordinate projection and procedural noise."""

from quakewaves.models.noise import ValueNoise
from quakewaves.models.projection import ScreenProjection

__all__ = [
    "ScreenProjection",
    "ValueNoise",
]
