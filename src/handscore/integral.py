"""Integral image (summed-area table) over a luminance plane.

``table[y, x]`` holds the sum of every luminance sample in the rectangle
``(0, 0)..(x, y)`` inclusive, so the sum over any axis-aligned window costs
four lookups regardless of its size.
"""

from dataclasses import dataclass
from typing import Union

import numpy as np

from handscore.errors import ComputeError
from handscore.raster import RasterImage


@dataclass(frozen=True)
class IntegralTable:
    width: int
    height: int
    values: np.ndarray

    def at(self, x: int, y: int) -> int:
        """Table entry at (x, y); any negative coordinate reads as 0."""
        if x < 0 or y < 0:
            return 0
        return int(self.values[y, x])

    def window_sum(self, x1: int, y1: int, x2: int, y2: int) -> int:
        """Sum of the inclusive rectangle ``[x1, x2] × [y1, y2]``."""
        return (
            self.at(x2, y2)
            - self.at(x2, y1 - 1)
            - self.at(x1 - 1, y2)
            + self.at(x1 - 1, y1 - 1)
        )

    def window_sums(
        self, x1: np.ndarray, y1: np.ndarray, x2: np.ndarray, y2: np.ndarray
    ) -> np.ndarray:
        """Vectorised :meth:`window_sum` for 1-D column bounds and 1-D row bounds.

        ``x1``/``x2`` have length W and ``y1``/``y2`` length H; the result is an
        ``(H, W)`` array with one window sum per (row, column) pair.
        """
        # One row and one column of zeros in front turn "index - 1" into "index",
        # which absorbs the negative-coordinate case.
        padded = np.zeros((self.height + 1, self.width + 1), dtype=np.int64)
        padded[1:, 1:] = self.values
        return (
            padded[np.ix_(y2 + 1, x2 + 1)]
            - padded[np.ix_(y1, x2 + 1)]
            - padded[np.ix_(y2 + 1, x1)]
            + padded[np.ix_(y1, x1)]
        )


def build_integral_table(source: Union[RasterImage, np.ndarray]) -> IntegralTable:
    """Build the table from a raster (first channel) or a 2-D luminance plane.

    Sums are accumulated in 64-bit integers, which holds ``W·H·255`` exactly
    for any image that fits in memory.
    """
    if isinstance(source, RasterImage):
        source.require_consistent()
        lum = source.luminance()
    else:
        lum = np.asarray(source)

    if lum.ndim != 2 or lum.size == 0:
        raise ComputeError(f"Integral table needs a non-empty 2-D plane, got shape {lum.shape}")

    values = lum.astype(np.int64).cumsum(axis=1).cumsum(axis=0)
    values.flags.writeable = False
    height, width = lum.shape
    return IntegralTable(width=width, height=height, values=values)
