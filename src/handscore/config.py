"""Configuration loading from environment variables and CLI flags."""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from handscore.raster import ENCODE_FORMATS


class Provider(str, Enum):
    ANTHROPIC = "anthropic"
    OPENAI = "openai"


DEFAULTS = {
    Provider.ANTHROPIC: "claude-sonnet-4-6",
    Provider.OPENAI: "gpt-4o",
}

ENV_KEYS = {
    Provider.ANTHROPIC: "ANTHROPIC_API_KEY",
    Provider.OPENAI: "OPENAI_API_KEY",
}

MAX_SIZE = 1024


@dataclass
class Config:
    provider: Provider
    model: str
    api_key: str

    @classmethod
    def from_env(
        cls,
        provider: Provider,
        model_override: Optional[str] = None,
        api_key_override: Optional[str] = None,
    ) -> "Config":
        model = model_override or DEFAULTS[provider]
        api_key = api_key_override or os.environ.get(ENV_KEYS[provider], "")
        if not api_key:
            raise RuntimeError(
                f"No API key for {provider.value}. "
                f"Set {ENV_KEYS[provider]} in your environment or .env file."
            )
        return cls(provider=provider, model=model, api_key=api_key)


@dataclass(frozen=True)
class PreprocessSettings:
    """Tunables for the preprocessing pipeline.

    max_size:       cap on the longer image side; smaller images are not upscaled.
    blur_radius:    Gaussian radius of the denoise pass.  0 disables it.
    sensitivity:    how much darker than its local mean a pixel must be to
                    count as ink (0.15 = 15 %).
    window_divisor: local window side is ``width // window_divisor``.
    image_format:   ``JPEG`` or ``PNG`` for the encoded payload.
    quality:        JPEG quality; ignored for PNG.
    """

    max_size: int = MAX_SIZE
    blur_radius: float = 0.5
    sensitivity: float = 0.15
    window_divisor: int = 16
    image_format: str = "JPEG"
    quality: int = 90

    def __post_init__(self) -> None:
        if self.max_size < 1:
            raise ValueError(f"max_size must be positive, got {self.max_size}")
        if self.blur_radius < 0:
            raise ValueError(f"blur_radius must be >= 0, got {self.blur_radius}")
        if not 0 <= self.sensitivity < 1:
            raise ValueError(f"sensitivity must be in [0, 1), got {self.sensitivity}")
        if self.window_divisor < 1:
            raise ValueError(f"window_divisor must be positive, got {self.window_divisor}")
        if self.image_format.upper() not in ENCODE_FORMATS:
            raise ValueError(
                f"image_format must be one of {', '.join(ENCODE_FORMATS)}, "
                f"got {self.image_format}"
            )
        if not 1 <= self.quality <= 100:
            raise ValueError(f"quality must be in [1, 100], got {self.quality}")

    @property
    def mime_type(self) -> str:
        return ENCODE_FORMATS[self.image_format.upper()]
