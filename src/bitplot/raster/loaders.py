"""
Loading and decoding raster images.

Provides functions to load image bytes from files or URLs and decode them
into Raster models holding luminance and, when the image carries
transparency, alpha samples.
"""

from __future__ import annotations

from contextlib import contextmanager
from io import BytesIO
from pathlib import Path
from typing import Iterator
import logging

import httpx
import numpy as np
from PIL import Image, UnidentifiedImageError

from bitplot.errors import DecodeError

from .models import Raster

LOGGER = logging.getLogger(__name__)

# Integer modes Pillow uses for 16-bit luminance; convert("L") clamps these.
WIDE_LUMINANCE_MODES = ("I;16", "I;16B", "I;16L", "I;16N", "I")


def fetch_bytes(url: str, *, timeout: float = 30.0) -> bytes:
    """
    Fetch image bytes from URL.

    Parameters:
        url: HTTP(S) URL to fetch
        timeout: Request timeout in seconds

    Returns:
        Response body

    Raises:
        httpx.HTTPError: If request fails
    """
    with httpx.Client(timeout=timeout, follow_redirects=True) as client:
        resp = client.get(url)
        resp.raise_for_status()
        return resp.content


def load_image_bytes(path_or_url: str) -> bytes:
    """
    Load raw image bytes from file path or URL.

    Automatically detects whether input is a URL (starts with http:// or https://)
    or a filesystem path.

    Raises:
        DecodeError: If the file cannot be read or the fetch fails
    """
    if path_or_url.startswith("http://") or path_or_url.startswith("https://"):
        try:
            return fetch_bytes(path_or_url)
        except httpx.HTTPError as e:
            raise DecodeError(path_or_url, str(e)) from e

    p = Path(path_or_url).expanduser()
    try:
        return p.read_bytes()
    except OSError as e:
        raise DecodeError(path_or_url, e.strerror or str(e)) from e


def _narrow_luminance(img: Image.Image) -> Image.Image:
    """Scale 16-bit luminance down to 8 bits, keeping tRNS transparency as alpha."""
    samples = np.asarray(img)
    if img.mode == "I":
        samples = np.clip(samples, 0, 0xFFFF)
    lum = (samples >> 8).astype(np.uint8)

    transparent = img.info.get("transparency")
    if isinstance(transparent, int):
        alpha = np.where(samples == transparent, 0, 255).astype(np.uint8)
        return Image.fromarray(np.dstack([lum, alpha]))
    return Image.fromarray(lum)


def decode_raster(data: bytes, *, source: str = "<bytes>") -> Raster:
    """
    Decode image bytes into a Raster.

    Images with transparency decode to two channels (luminance, alpha); all
    others decode to a single luminance channel. 16-bit luminance is scaled
    to 8 bits by dropping the low byte.

    Parameters:
        data: Encoded image bytes
        source: Label used in error messages

    Returns:
        Raster model

    Raises:
        DecodeError: If the bytes are empty, corrupt, or an unsupported format

    Example:
        >>> raster = decode_raster(Path("logo.png").read_bytes(), source="logo.png")
        >>> raster.width, raster.height, raster.channels
        (64, 32, 2)
    """
    if not data:
        raise DecodeError(source, "file is empty")

    try:
        with Image.open(BytesIO(data)) as img:
            img.load()
            if img.mode in WIDE_LUMINANCE_MODES:
                converted = _narrow_luminance(img)
            elif img.has_transparency_data:
                converted = img.convert("RGBA").convert("LA")
            else:
                converted = img.convert("L")
    except UnidentifiedImageError as e:
        raise DecodeError(source, "unknown or unsupported image format") from e
    except (OSError, ValueError, SyntaxError, EOFError, Image.DecompressionBombError) as e:
        raise DecodeError(source, str(e)) from e

    width, height = converted.size
    channels = len(converted.getbands())
    pixels = converted.tobytes()
    converted.close()

    try:
        return Raster(width=width, height=height, channels=channels, pixels=pixels)
    except ValueError as e:
        raise DecodeError(source, str(e)) from e


def load_raster(path_or_url: str) -> Raster:
    """
    Load and decode an image from path or URL.

    Combines load_image_bytes() and decode_raster() in one call.

    Raises:
        DecodeError: If the input cannot be read or decoded
    """
    raster = decode_raster(load_image_bytes(path_or_url), source=path_or_url)
    LOGGER.info(
        "raster_decoded",
        extra={
            "source": path_or_url,
            "width": raster.width,
            "height": raster.height,
            "channels": raster.channels,
        },
    )
    return raster


@contextmanager
def open_raster(path_or_url: str) -> Iterator[Raster]:
    """
    Load a raster and release its buffer when the block exits.

    Example:
        >>> with open_raster("logo.png") as raster:
        ...     points = list(iter_coordinates(raster, ThresholdPolicy()))
    """
    raster = load_raster(path_or_url)
    try:
        yield raster
    finally:
        raster.release()
