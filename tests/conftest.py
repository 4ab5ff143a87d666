"""Shared fixtures for the test suite.

All fixtures here produce real images / real bytes so tests exercise actual
code paths rather than hand-crafted stubs.
"""

import io
from pathlib import Path

import numpy as np
import pytest
from click.testing import CliRunner
from PIL import Image, ImageDraw


def _encode_png(img: Image.Image) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


# ── CLI runner ─────────────────────────────────────────────────────────────


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


# ── Image fixtures ─────────────────────────────────────────────────────────


@pytest.fixture
def png_bytes() -> bytes:
    """A real, valid 10×10 red PNG image as raw bytes."""
    return _encode_png(Image.new("RGB", (10, 10), color=(255, 0, 0)))


@pytest.fixture
def handwriting_image() -> Image.Image:
    """A 320×200 'photo' of dark strokes on paper with a left-to-right lighting falloff.

    The paper runs from 250 on the left to 140 on the right, like a page lit
    from one side.  Each stroke is 30 % of the paper brightness beneath it.
    """
    width, height = 320, 200
    gradient = np.linspace(250, 140, width).astype(np.uint8)
    arr = np.tile(gradient, (height, 1))
    img = Image.fromarray(arr).convert("RGB")

    draw = ImageDraw.Draw(img)
    for x0 in range(20, width - 20, 40):
        # Paper brightness under the stroke scaled down to "ink".
        ink = int(gradient[x0] * 0.3)
        draw.rectangle([x0, 60, x0 + 5, 140], fill=(ink, ink, ink))
    return img


@pytest.fixture
def handwriting_png(handwriting_image: Image.Image) -> bytes:
    return _encode_png(handwriting_image)


@pytest.fixture
def handwriting_file(tmp_path: Path, handwriting_png: bytes) -> Path:
    """The handwriting PNG written to a temporary file on disk."""
    path = tmp_path / "sample.png"
    path.write_bytes(handwriting_png)
    return path


@pytest.fixture
def png_file(tmp_path: Path, png_bytes: bytes) -> Path:
    """The red PNG written to a temporary file on disk."""
    path = tmp_path / "test.png"
    path.write_bytes(png_bytes)
    return path
