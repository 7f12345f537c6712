"""
Data models for decoded rasters and pixel selection.

A Raster holds the decoded luminance (and optional alpha) samples of an image.
ThresholdPolicy is the immutable selection configuration parsed from the
command line, and Coordinate is a single emitted point in plot space.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from .validation import validate_raster


DEFAULT_THRESHOLD = 128
DEFAULT_ALPHA_THRESHOLD = 128


class Coordinate(NamedTuple):
    """
    A plotted point.

    The y value is already negated: raster rows grow downward while the
    renderer's vertical axis grows upward.
    """

    x: int
    y: int


@dataclass
class Raster:
    """
    Decoded pixel grid.

    Attributes:
        width: Columns per row
        height: Number of rows
        channels: 1 (luminance) or 2 (luminance + alpha)
        pixels: Row-major, channel-interleaved 8-bit samples

    The buffer length must equal width * height * channels.
    """

    width: int
    height: int
    channels: int
    pixels: bytes = field(repr=False)
    _released: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        issues = validate_raster(self)
        if issues:
            raise ValueError("; ".join(f"{i.path}: {i.message}" for i in issues))

    @property
    def has_alpha(self) -> bool:
        return self.channels == 2

    @property
    def released(self) -> bool:
        return self._released

    def array(self) -> np.ndarray:
        """
        Read-only view of the samples shaped (height, width, channels).

        Raises:
            RuntimeError: If the raster has been released
        """
        if self._released:
            raise RuntimeError("Raster buffer has been released")
        view = np.frombuffer(self.pixels, dtype=np.uint8)
        return view.reshape(self.height, self.width, self.channels)

    def release(self) -> None:
        """Drop the pixel buffer. Safe to call more than once."""
        self.pixels = b""
        self._released = True


class ThresholdPolicy(BaseModel):
    """
    Pixel selection policy.

    A pixel is selected when its luminance is below `threshold` (above it when
    `invert` is set) and its alpha is strictly greater than `alpha_threshold`.
    Pixels without an alpha sample always pass the alpha test.
    """

    model_config = ConfigDict(frozen=True)

    threshold: int = Field(default=DEFAULT_THRESHOLD, ge=0, le=255)
    alpha_threshold: int = Field(default=DEFAULT_ALPHA_THRESHOLD, ge=0, le=255)
    invert: bool = False

    def selects(self, luminance: int, alpha: int | None = None) -> bool:
        """
        Evaluate the selection predicate for one pixel.

        Example:
            >>> ThresholdPolicy(threshold=128).selects(10)
            True
            >>> ThresholdPolicy(threshold=128, invert=True).selects(10)
            False
        """
        if self.invert:
            lum_ok = luminance > self.threshold
        else:
            lum_ok = luminance < self.threshold
        if alpha is None:
            return lum_ok
        return lum_ok and alpha > self.alpha_threshold
