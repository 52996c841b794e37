"""Affine longitude/latitude to screen projection.

Longitude [-170, 190] maps onto x in [0, width) and latitude [-55, 83] onto
y in [height, 0). Values outside the domain extrapolate linearly; nothing is
clamped here.
"""

from dataclasses import dataclass

from quakewaves.core.constants import LAT_MAX, LAT_MIN, LON_MAX, LON_MIN
from quakewaves.core.types import Point2D


def linear_map(value: float, start1: float, stop1: float, start2: float, stop2: float) -> float:
    """Re-map a value from one range onto another without clamping."""
    return start2 + (stop2 - start2) * ((value - start1) / (stop1 - start1))


@dataclass(frozen=True)
class ScreenProjection:
    """Projection between geographic and screen coordinates for a fixed screen size."""

    width: int
    height: int

    def to_screen(self, longitude: float, latitude: float) -> Point2D:
        """Project (lon, lat) in degrees to (x, y) in pixels."""
        x = linear_map(longitude, LON_MIN, LON_MAX, 0.0, float(self.width))
        y = linear_map(latitude, LAT_MIN, LAT_MAX, float(self.height), 0.0)
        return x, y

    def to_geographic(self, x: float, y: float) -> tuple[float, float]:
        """Invert to_screen: (x, y) in pixels to (lon, lat) in degrees."""
        longitude = linear_map(x, 0.0, float(self.width), LON_MIN, LON_MAX)
        latitude = linear_map(y, float(self.height), 0.0, LAT_MIN, LAT_MAX)
        return longitude, latitude
