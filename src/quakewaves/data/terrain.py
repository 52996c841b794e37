"""Land/water classification grid built from a background map raster.

The raster is expected to be pre-classified into two colours: land pixels are
pure black, every other colour counts as water. The grid is built once and is
read-only afterwards.
"""

from pathlib import Path
from typing import TYPE_CHECKING, Self

import numpy as np
from PIL import Image

from quakewaves.core.constants import LAND_SENTINEL_RGB
from quakewaves.core.types import Terrain

if TYPE_CHECKING:
    from numpy.typing import NDArray


class TerrainGrid:
    """Immutable LAND/WATER lookup indexed by integer screen coordinates."""

    def __init__(self, land_mask: "NDArray[np.bool_]"):
        """Wrap a boolean land mask of shape (height, width)."""
        mask = np.array(land_mask, dtype=bool)
        if mask.ndim != 2 or mask.shape[0] < 1 or mask.shape[1] < 2:
            raise ValueError(f"land mask must be 2D (height, width), got shape {mask.shape}")
        mask.setflags(write=False)
        self._land = mask

    @classmethod
    def from_array(cls, land_mask: "NDArray[np.bool_]") -> Self:
        """Build from a boolean array, True = land."""
        return cls(land_mask)

    @classmethod
    def from_image(
        cls,
        source: str | Path | Image.Image,
        size: tuple[int, int] | None = None,
    ) -> Self:
        """Build from a black-on-colour raster.

        Args:
            source: Image path or an open PIL image.
            size: Optional (width, height) to resample to, nearest-neighbour so
                no intermediate colours appear.

        Returns:
            TerrainGrid with land where pixels equal the black sentinel.
        """
        image = source if isinstance(source, Image.Image) else Image.open(source)
        image = image.convert("RGB")
        if size is not None and image.size != tuple(size):
            image = image.resize(size, Image.Resampling.NEAREST)

        pixels = np.asarray(image)
        land = np.all(pixels == np.array(LAND_SENTINEL_RGB, dtype=pixels.dtype), axis=-1)
        return cls(land)

    @property
    def width(self) -> int:
        return int(self._land.shape[1])

    @property
    def height(self) -> int:
        return int(self._land.shape[0])

    @property
    def land_mask(self) -> "NDArray[np.bool_]":
        """Read-only view of the land mask, shape (height, width)."""
        return self._land

    @property
    def land_fraction(self) -> float:
        """Fraction of cells classified as land."""
        return float(self._land.mean())

    def classify(self, x: float, y: float) -> Terrain:
        """Classify a screen coordinate.

        The horizontal edges are tested on the raw coordinate: anything at or
        beyond the first/last column is OUT_OF_BOUNDS. Otherwise the point is
        clamped into the grid, so waves drifting off the top or bottom take
        the terrain of the nearest edge row.
        """
        if x <= 0 or x >= self.width - 1:
            return Terrain.OUT_OF_BOUNDS

        col = int(min(max(x, 0.0), self.width - 1))
        row = int(min(max(y, 0.0), self.height - 1))
        return Terrain.LAND if self._land[row, col] else Terrain.WATER
