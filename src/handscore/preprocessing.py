"""Image preprocessing that turns a handwriting photograph into a clean ink/paper image.

The scorer judges letter shapes, spacing and baseline alignment, none of which
need colour or paper texture.  Sending it a binarized image removes lighting,
shadows and paper tone so only the strokes remain.

Pipeline
--------
1. Decode          — Pillow reads any supported format into RGBA, applying the
                     EXIF orientation tag.

2. Resize          — the longer side is capped at ``max_size`` (1024 px) with
                     the aspect ratio kept.  Smaller images keep their size.

3. Grayscale       — ITU-R 601-2 luma, followed by a small Gaussian blur
   + denoise         (radius 0.5) that removes sensor speckle and JPEG block
                     noise without eroding stroke edges.

4. Integral image  — summed-area table over the luminance plane.

5. Adaptive        — every pixel is compared with its local window mean
   threshold         (see :mod:`handscore.threshold`).

6. Encode          — JPEG at quality 90, returned as base64 text.

Every stage returns a new buffer; a failure in any stage aborts the whole run.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from PIL import Image, ImageFilter

from handscore.config import MAX_SIZE, PreprocessSettings
from handscore.errors import DecodeError
from handscore.integral import build_integral_table
from handscore.raster import BinaryImage, RasterImage, decode_image, encode_image, to_base64
from handscore.threshold import adaptive_threshold

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoringPayload:
    """Encoded image ready for the scoring provider."""

    image: str
    mime_type: str
    width: int
    height: int

    def to_dict(self) -> dict:
        return {"image": self.image, "mimeType": self.mime_type}

    @property
    def size_bytes(self) -> int:
        return len(self.image) * 3 // 4 - self.image.count("=")


def fit_dimensions(width: int, height: int, max_size: int = MAX_SIZE) -> tuple[int, int]:
    """Target size with the longer side capped at *max_size*.

    Only an oversize side triggers scaling; an image already within the cap
    comes back at its own size.
    """
    if width <= 0 or height <= 0:
        raise DecodeError(f"Image has degenerate size {width}x{height}")

    w, h = float(width), float(height)
    if w > h:
        if w > max_size:
            h *= max_size / w
            w = max_size
    else:
        if h > max_size:
            w *= max_size / h
            h = max_size
    return max(1, round(w)), max(1, round(h))


def resize_to_fit(image: RasterImage, max_size: int = MAX_SIZE) -> RasterImage:
    if image.width <= 0 or image.height <= 0:
        raise DecodeError(f"Image has degenerate size {image.width}x{image.height}")
    image.require_consistent()

    size = fit_dimensions(image.width, image.height, max_size)
    img = image.to_pil()
    if size != img.size:
        img = img.resize(size, resample=Image.Resampling.LANCZOS)
    log.debug("Resized %dx%d -> %dx%d", image.width, image.height, *size)
    return RasterImage.from_pil(img)


def grayscale_denoise(image: RasterImage, blur_radius: float = 0.5) -> RasterImage:
    """Convert to luminance, blur lightly, and return RGBA with R=G=B and opaque alpha."""
    image.require_consistent()

    gray = image.to_pil().convert("L")
    if blur_radius > 0:
        gray = gray.filter(ImageFilter.GaussianBlur(radius=blur_radius))

    # Expanding L to RGBA copies luminance into R, G and B with alpha 255.
    return RasterImage.from_pil(gray.convert("RGBA"))


def binarize(image_bytes: bytes, settings: Optional[PreprocessSettings] = None) -> BinaryImage:
    """Run the pipeline from raw bytes up to (and including) thresholding."""
    settings = settings or PreprocessSettings()

    raster = decode_image(image_bytes)
    log.debug("Decoded %dx%d image (%d bytes)", raster.width, raster.height, len(image_bytes))

    raster = resize_to_fit(raster, settings.max_size)
    gray = grayscale_denoise(raster, settings.blur_radius)
    table = build_integral_table(gray)
    return adaptive_threshold(
        gray,
        table,
        sensitivity=settings.sensitivity,
        window_divisor=settings.window_divisor,
    )


def preprocess_for_scoring(
    image_bytes: bytes, settings: Optional[PreprocessSettings] = None
) -> ScoringPayload:
    """Run the full pipeline and return the base64 payload for the scorer."""
    settings = settings or PreprocessSettings()
    binary = binarize(image_bytes, settings)
    return encode_payload(binary, settings)


def encode_payload(binary: RasterImage, settings: Optional[PreprocessSettings] = None) -> ScoringPayload:
    settings = settings or PreprocessSettings()
    data = encode_image(binary, settings.image_format, settings.quality)
    log.debug("Encoded %s payload: %d bytes", settings.image_format, len(data))
    return ScoringPayload(
        image=to_base64(data),
        mime_type=settings.mime_type,
        width=binary.width,
        height=binary.height,
    )


def save_image(image: RasterImage, path: Path, image_format: str = "PNG") -> None:
    """Write *image* to *path*; PNG keeps the binary sentinels exact."""
    path.write_bytes(encode_image(image, image_format))
