"""
Validation for decoded rasters.

Checks decoder output against the shape the pixel filter relies on before it
is handed to the rest of the pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Raster


@dataclass(frozen=True)
class ValidationIssue:
    """
    Represents a validation problem.

    Attributes:
        path: Name of the offending field (e.g., "channels", "pixels")
        message: Human-readable description of the issue
    """

    path: str
    message: str


def validate_dimensions(width: int, height: int, channels: int, buffer_len: int) -> list[ValidationIssue]:
    """
    Validate raw raster parameters before a Raster is constructed.

    Parameters:
        width: Columns per row
        height: Number of rows
        channels: Samples per pixel
        buffer_len: Length of the sample buffer in bytes

    Returns:
        List of validation issues (empty if valid)

    Example:
        >>> issues = validate_dimensions(2, 2, 1, 3)
        >>> issues[0].path
        'pixels'
    """
    issues: list[ValidationIssue] = []

    if width < 0:
        issues.append(ValidationIssue("width", f"Negative width {width}."))
    if height < 0:
        issues.append(ValidationIssue("height", f"Negative height {height}."))
    if channels not in (1, 2):
        issues.append(
            ValidationIssue("channels", f"Expected 1 or 2 channels, got {channels}.")
        )
    if issues:
        return issues

    expected = width * height * channels
    if buffer_len != expected:
        issues.append(
            ValidationIssue(
                "pixels",
                f"Buffer holds {buffer_len} bytes, expected {expected} ({width}x{height}x{channels}).",
            )
        )

    return issues


def validate_raster(raster: Raster) -> list[ValidationIssue]:
    """
    Validate a constructed raster.

    Parameters:
        raster: Raster to validate

    Returns:
        List of validation issues (empty if valid)
    """
    if raster.released:
        return [ValidationIssue("pixels", "Raster buffer has been released.")]
    return validate_dimensions(raster.width, raster.height, raster.channels, len(raster.pixels))
