"""Adaptive (locally thresholded) binarization.

Each pixel is compared with the mean luminance of a square window centred on
it, read from an integral table.  A pixel counts as ink only when it is darker
than its own neighbourhood by a relative margin, which tolerates the uneven
lighting of a photographed page where a single global threshold fails.

Windows are clamped at the image border, so edge pixels are compared with a
smaller neighbourhood; the smallest possible window is the pixel itself.
"""

import logging
from typing import Optional

import numpy as np

from handscore.errors import ComputeError
from handscore.integral import IntegralTable, build_integral_table
from handscore.raster import INK, OPAQUE, PAPER, BinaryImage, RasterImage

log = logging.getLogger(__name__)

SENSITIVITY = 0.15
WINDOW_DIVISOR = 16


def window_size_for(width: int, divisor: int = WINDOW_DIVISOR) -> int:
    """Side of the local window; never below 1 so narrow images still work."""
    return max(1, width // divisor)


def _clamped_bounds(length: int, half: int) -> tuple[np.ndarray, np.ndarray]:
    idx = np.arange(length)
    return np.maximum(idx - half, 0), np.minimum(idx + half, length - 1)


def adaptive_threshold(
    image: RasterImage,
    table: Optional[IntegralTable] = None,
    sensitivity: float = SENSITIVITY,
    window_divisor: int = WINDOW_DIVISOR,
) -> BinaryImage:
    """Classify every pixel of a grayscale *image* as ink or paper.

    Args:
        image:          Grayscale raster; the first channel is read as luminance.
        table:          Integral table of that luminance.  Built when omitted.
        sensitivity:    Relative darkness margin ``T``: ink iff
                        ``lum < mean * (1 - T)``.
        window_divisor: Window side is ``width // window_divisor``.

    Returns an RGBA :class:`BinaryImage` with R=G=B in {INK, PAPER} and opaque alpha.
    """
    image.require_consistent()
    if table is None:
        table = build_integral_table(image)
    elif (table.width, table.height) != (image.width, image.height):
        raise ComputeError(
            f"Integral table is {table.width}x{table.height} "
            f"but image is {image.width}x{image.height}"
        )

    width, height = image.width, image.height
    half = window_size_for(width, window_divisor) // 2

    x1, x2 = _clamped_bounds(width, half)
    y1, y2 = _clamped_bounds(height, half)

    counts = np.outer(y2 - y1 + 1, x2 - x1 + 1)
    sums = table.window_sums(x1, y1, x2, y2)
    means = sums / counts

    lum = image.luminance().astype(np.float64)
    ink = lum < means * (1 - sensitivity)

    out = np.full((height, width, 4), PAPER, dtype=np.uint8)
    out[ink, :3] = INK
    out[:, :, 3] = OPAQUE

    log.debug(
        "Thresholded %dx%d with window %d: %.2f%% ink",
        width, height, 2 * half + 1, 100.0 * ink.mean(),
    )
    return BinaryImage(width=width, height=height, channels=4, samples=out)
