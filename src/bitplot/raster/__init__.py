"""
Raster decoding and pixel selection.

Basic usage:
    >>> from bitplot.raster import open_raster, iter_coordinates, ThresholdPolicy
    >>>
    >>> with open_raster("drawing.png") as raster:
    ...     for x, y in iter_coordinates(raster, ThresholdPolicy(threshold=100)):
    ...         print(x, y)
"""

from .models import (
    Coordinate,
    Raster,
    ThresholdPolicy,
    DEFAULT_THRESHOLD,
    DEFAULT_ALPHA_THRESHOLD,
)
from .loaders import (
    fetch_bytes,
    load_image_bytes,
    decode_raster,
    load_raster,
    open_raster,
)
from .validation import (
    ValidationIssue,
    validate_dimensions,
    validate_raster,
)
from .filter import (
    iter_coordinates,
    count_coordinates,
)

__all__ = [
    # Models
    "Coordinate",
    "Raster",
    "ThresholdPolicy",
    "DEFAULT_THRESHOLD",
    "DEFAULT_ALPHA_THRESHOLD",
    # Loaders
    "fetch_bytes",
    "load_image_bytes",
    "decode_raster",
    "load_raster",
    "open_raster",
    # Validation
    "ValidationIssue",
    "validate_dimensions",
    "validate_raster",
    # Filter
    "iter_coordinates",
    "count_coordinates",
]
