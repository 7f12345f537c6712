"""
Pixel selection.

Scans a Raster in row-major order and yields the coordinates of the pixels
selected by a ThresholdPolicy.
"""

from __future__ import annotations

from typing import Iterator

import numpy as np

from .models import Coordinate, Raster, ThresholdPolicy


def _selection_mask(samples: np.ndarray, policy: ThresholdPolicy) -> np.ndarray:
    """Boolean mask over the leading axes of `samples` (last axis = channels)."""
    luminance = samples[..., 0]
    if policy.invert:
        mask = luminance > policy.threshold
    else:
        mask = luminance < policy.threshold
    if samples.shape[-1] == 2:
        mask &= samples[..., 1] > policy.alpha_threshold
    return mask


def iter_coordinates(raster: Raster, policy: ThresholdPolicy) -> Iterator[Coordinate]:
    """
    Yield the coordinates of selected pixels.

    Rows are scanned top to bottom and columns left to right. Each coordinate
    is emitted as (x, -y) so that the plot keeps the image's orientation.
    The raster is never modified.

    Parameters:
        raster: Decoded raster
        policy: Selection policy

    Yields:
        Coordinate for each selected pixel

    Example:
        >>> raster = Raster(width=2, height=2, channels=1, pixels=bytes([10, 200, 10, 200]))
        >>> list(iter_coordinates(raster, ThresholdPolicy()))
        [Coordinate(x=0, y=0), Coordinate(x=0, y=-1)]
    """
    if raster.width == 0 or raster.height == 0:
        return

    samples = raster.array()
    for y in range(raster.height):
        for x in np.flatnonzero(_selection_mask(samples[y], policy)):
            yield Coordinate(int(x), -y)


def count_coordinates(raster: Raster, policy: ThresholdPolicy) -> int:
    """Number of pixels iter_coordinates() would yield."""
    if raster.width == 0 or raster.height == 0:
        return 0
    return int(np.count_nonzero(_selection_mask(raster.array(), policy)))
