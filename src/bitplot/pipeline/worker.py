"""
Pipeline driver.

Sequences one invocation: decode the input, build the plot script, hand the
script and the selected coordinates to the renderer, and release the raster
on every exit path. A data-only variant writes the coordinates to a file or
stdout instead of starting a renderer.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import logging
import time

from bitplot.gnuplot import (
    DEFAULT_POINT_TYPE,
    DEFAULT_TERMINAL,
    GnuplotBackend,
    PlotScript,
    RendererBackend,
)
from bitplot.raster import ThresholdPolicy, count_coordinates, iter_coordinates, open_raster

from .output import write_data_file
from .supervisor import RendererOutcome, deliver

LOGGER = logging.getLogger(__name__)

# gnuplot reads inline data from its own input when the file name is "-"
INLINE_DATA_REF = "-"


@dataclass
class PipelineResult:
    """
    Result of one pipeline invocation.

    Attributes:
        source: Input path or URL
        output: Renderer output file, or data file (None for stdout)
        width: Raster width
        height: Raster height
        points: Number of coordinates emitted
        elapsed_seconds: Total wall time
        outcome: Renderer outcome (None in data-only mode)
        success: Whether the invocation completed successfully
    """

    source: str
    output: Path | None
    width: int
    height: int
    points: int
    elapsed_seconds: float
    outcome: RendererOutcome | None
    success: bool


def render_image(
    source: str,
    output: Path,
    policy: ThresholdPolicy,
    *,
    backend: RendererBackend | None = None,
    terminal: str = DEFAULT_TERMINAL,
    point_type: int = DEFAULT_POINT_TYPE,
) -> PipelineResult:
    """
    Plot the selected pixels of an image with the renderer.

    Parameters:
        source: Image path or URL
        output: File the renderer should write
        policy: Pixel selection policy
        backend: Renderer to run (default: gnuplot on PATH)
        terminal: gnuplot terminal name
        point_type: gnuplot point type

    Returns:
        PipelineResult; success is False when the renderer failed

    Raises:
        DecodeError: If the input cannot be decoded
        ConfigurationError: If the output path cannot be embedded in the script
        ResourceError: If the renderer cannot be started

    Example:
        >>> result = render_image("cat.png", Path("cat.pdf"), ThresholdPolicy())
        >>> print(f"Plotted {result.points} points")
    """
    start_time = time.perf_counter()
    backend = backend or GnuplotBackend(logger=LOGGER)

    with open_raster(source) as raster:
        script = PlotScript(
            output_path=str(output),
            width=raster.width,
            height=raster.height,
            terminal=terminal,
            point_type=point_type,
        )
        outcome = deliver(backend, script, iter_coordinates(raster, policy))
        width, height = raster.width, raster.height

    elapsed = time.perf_counter() - start_time
    LOGGER.info(
        "render_finished",
        extra={
            "source": source,
            "output": str(output),
            "points": outcome.points_written,
            "ok": outcome.ok,
            "elapsed_seconds": round(elapsed, 3),
        },
    )
    return PipelineResult(
        source=source,
        output=output,
        width=width,
        height=height,
        points=outcome.points_written,
        elapsed_seconds=elapsed,
        outcome=outcome,
        success=outcome.ok,
    )


def export_data(source: str, output: Path | None, policy: ThresholdPolicy) -> PipelineResult:
    """
    Write the selected coordinates as "x y" lines without running a renderer.

    Parameters:
        source: Image path or URL
        output: Data file, or None / "-" for stdout
        policy: Pixel selection policy

    Raises:
        DecodeError: If the input cannot be decoded
        OSError: If the data file cannot be written
    """
    start_time = time.perf_counter()

    with open_raster(source) as raster:
        points = write_data_file(iter_coordinates(raster, policy), output)
        width, height = raster.width, raster.height

    elapsed = time.perf_counter() - start_time
    LOGGER.info(
        "data_exported",
        extra={"source": source, "output": str(output) if output else None, "points": points},
    )
    return PipelineResult(
        source=source,
        output=output,
        width=width,
        height=height,
        points=points,
        elapsed_seconds=elapsed,
        outcome=None,
        success=True,
    )


def preview_script(
    source: str,
    output: Path,
    *,
    terminal: str = DEFAULT_TERMINAL,
    point_type: int = DEFAULT_POINT_TYPE,
    data_ref: str = INLINE_DATA_REF,
) -> str:
    """
    Return the script that would be sent to the renderer for this input.

    With the default data reference the script reads inline data, so the
    output of export_data() followed by a line holding "e" can be appended to
    make a self-contained gnuplot file.
    """
    with open_raster(source) as raster:
        script = PlotScript(
            output_path=str(output),
            width=raster.width,
            height=raster.height,
            terminal=terminal,
            point_type=point_type,
        )
    return script.render(data_ref)


def count_points(source: str, policy: ThresholdPolicy) -> int:
    """Number of points the policy selects in the image."""
    with open_raster(source) as raster:
        return count_coordinates(raster, policy)
