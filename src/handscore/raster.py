"""Pixel buffers and the Pillow-backed decoder / encoder at either end of the pipeline.

A :class:`RasterImage` is a flat, row-major ``uint8`` buffer plus its shape.
Buffers are frozen after construction: every pipeline stage reads its input
and allocates a new output, so no two stages ever share a mutable array.
"""

import base64
import io
from dataclasses import dataclass

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from handscore.errors import ComputeError, DecodeError, EncodeError

INK = 0
PAPER = 255
OPAQUE = 255

_MODES = {1: "L", 3: "RGB", 4: "RGBA"}

# Integer grayscale modes Pillow uses for 16-bit PNG and TIFF.
_HIGH_DEPTH_MODES = ("I", "I;16", "I;16L", "I;16B", "I;16N")

ENCODE_FORMATS = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
}


@dataclass(frozen=True)
class RasterImage:
    width: int
    height: int
    channels: int
    samples: np.ndarray

    def __post_init__(self) -> None:
        samples = np.array(self.samples, dtype=np.uint8).reshape(-1)
        samples.flags.writeable = False
        object.__setattr__(self, "samples", samples)

    @property
    def is_consistent(self) -> bool:
        return (
            self.width > 0
            and self.height > 0
            and self.channels in _MODES
            and self.samples.size == self.width * self.height * self.channels
        )

    def require_consistent(self, error: type = ComputeError) -> None:
        """Raise *error* unless the sample count matches ``width·height·channels``."""
        if not self.is_consistent:
            raise error(
                f"Buffer holds {self.samples.size} samples, expected "
                f"{self.width}x{self.height}x{self.channels}"
            )

    def plane(self) -> np.ndarray:
        """Read-only ``(height, width, channels)`` view of the samples."""
        self.require_consistent()
        return self.samples.reshape(self.height, self.width, self.channels)

    def luminance(self) -> np.ndarray:
        """The first channel as a ``(height, width)`` plane.

        After grayscale conversion R=G=B, so the red channel is the luminance.
        """
        return self.plane()[:, :, 0]

    def to_pil(self) -> Image.Image:
        plane = self.plane()
        if self.channels == 1:
            plane = plane[:, :, 0]
        return Image.fromarray(np.array(plane))

    @classmethod
    def from_pil(cls, img: Image.Image) -> "RasterImage":
        if img.mode not in ("L", "RGB", "RGBA"):
            img = img.convert("RGBA")
        arr = np.array(img, dtype=np.uint8)
        if arr.ndim == 2:
            arr = arr[:, :, np.newaxis]
        height, width, channels = arr.shape
        return cls(width=width, height=height, channels=channels, samples=arr)


@dataclass(frozen=True)
class BinaryImage(RasterImage):
    """An RGBA raster whose colour samples are only ``INK`` or ``PAPER``."""

    def ink_mask(self) -> np.ndarray:
        return self.luminance() == INK

    @property
    def ink_ratio(self) -> float:
        return float(self.ink_mask().mean())


def decode_image(image_bytes: bytes) -> RasterImage:
    """Decode arbitrary image bytes into an RGBA :class:`RasterImage`.

    EXIF orientation is applied so phone photographs come out upright.
    """
    try:
        img = Image.open(io.BytesIO(image_bytes))
        img.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError) as e:
        raise DecodeError(f"Could not decode image: {e}") from e

    if img.width == 0 or img.height == 0:
        raise DecodeError(f"Image has degenerate size {img.width}x{img.height}")

    img = ImageOps.exif_transpose(img)
    if img.mode in _HIGH_DEPTH_MODES:
        img = _to_8bit(img)
    return RasterImage.from_pil(img.convert("RGBA"))


def _to_8bit(img: Image.Image) -> Image.Image:
    """Scale 16-bit samples down to 8 bits; Pillow's own conversion clips them at 255."""
    samples = np.clip(np.asarray(img).astype(np.int64), 0, 65535) >> 8
    return Image.fromarray(samples.astype(np.uint8))


def encode_image(image: RasterImage, image_format: str = "JPEG", quality: int = 90) -> bytes:
    """Serialise *image* to compressed bytes.

    JPEG has no alpha channel, so RGBA input is flattened to RGB first; the
    pipeline keeps alpha fully opaque, so nothing is lost.
    """
    image.require_consistent(EncodeError)
    image_format = image_format.upper()
    if image_format not in ENCODE_FORMATS:
        raise EncodeError(f"Unsupported output format: {image_format}")

    img = image.to_pil()
    if image_format == "JPEG" and img.mode == "RGBA":
        img = img.convert("RGB")

    buf = io.BytesIO()
    try:
        if image_format == "JPEG":
            img.save(buf, format="JPEG", quality=quality)
        else:
            img.save(buf, format="PNG")
    except (OSError, ValueError) as e:
        raise EncodeError(f"Could not encode image as {image_format}: {e}") from e
    return buf.getvalue()


def to_base64(data: bytes) -> str:
    """Plain base64 text, without any ``data:`` URI prefix."""
    return base64.standard_b64encode(data).decode("ascii")
