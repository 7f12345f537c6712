"""
bitplot CLI

Commands:
- plot: Render an image as a gnuplot scatter plot (or dump its points with -d)
- script: Print the gnuplot script generated for an image
- count: Print how many points an image would produce
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import click
import typer
from pydantic import ValidationError
from typer.core import TyperGroup

from bitplot.errors import BitplotError, ConfigurationError, RendererExitError
from bitplot.gnuplot import (
    DEFAULT_EXECUTABLE,
    DEFAULT_POINT_TYPE,
    DEFAULT_TERMINAL,
    GnuplotBackend,
)
from bitplot.raster import DEFAULT_ALPHA_THRESHOLD, DEFAULT_THRESHOLD, ThresholdPolicy
from bitplot.pipeline.worker import count_points, export_data, preview_script, render_image


@contextmanager
def _usage_errors_as_configuration():
    """Report bad flags and flag values with the configuration error status."""
    try:
        yield
    except click.UsageError as e:
        e.exit_code = ConfigurationError.exit_code
        raise


class BitplotGroup(TyperGroup):
    def make_context(self, *args: Any, **kwargs: Any) -> click.Context:
        with _usage_errors_as_configuration():
            return super().make_context(*args, **kwargs)

    def invoke(self, ctx: click.Context) -> Any:
        with _usage_errors_as_configuration():
            return super().invoke(ctx)


app = typer.Typer(
    cls=BitplotGroup,
    add_completion=False,
    help="Plot the dark (or light) pixels of an image with gnuplot",
    context_settings={"help_option_names": ["-h", "--help"]},
)

GNUPLOT_ENVVAR = "BITPLOT_GNUPLOT"


class JsonFormatter(logging.Formatter):
    """Simple JSON formatter for structured logs."""
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "msg": record.getMessage(),
            "logger": record.name,
        }
        # Include any custom attributes passed via `extra=`.
        reserved = {
            "name","msg","args","levelname","levelno","pathname","filename","module",
            "exc_info","exc_text","stack_info","lineno","funcName","created","msecs",
            "relativeCreated","thread","threadName","processName","process","taskName",
        }
        for k, v in record.__dict__.items():
            if k in reserved or k.startswith("_"):
                continue
            try:
                json.dumps(v)
                payload[k] = v
            except TypeError:
                payload[k] = repr(v)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def setup_logging(level: str) -> logging.Logger:
    logger = logging.getLogger("bitplot")
    logger.setLevel(getattr(logging, level.upper(), logging.WARNING))
    # StreamHandler writes to stderr, stdout stays free for -d output
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    logger.handlers[:] = [handler]
    logger.propagate = False
    return logger


LOGGER = logging.getLogger("bitplot")


def build_policy(threshold: int, alpha_threshold: int, invert: bool) -> ThresholdPolicy:
    """Validate threshold options into a ThresholdPolicy.

    Raises:
        ConfigurationError: If a threshold is outside 0-255
    """
    try:
        return ThresholdPolicy(threshold=threshold, alpha_threshold=alpha_threshold, invert=invert)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigurationError(f"invalid threshold: {problems}") from e


def _require_input(input_path: str | None) -> str:
    if not input_path:
        raise ConfigurationError("an input image is required (-i/--input)")
    return input_path


def _fail(e: BitplotError) -> typer.Exit:
    typer.echo(f"Error: {e}", err=True)
    return typer.Exit(code=e.exit_code)


InputOption = typer.Option(None, "--input", "-i", help="Image to use as input (path or URL)")
ThresholdOption = typer.Option(
    DEFAULT_THRESHOLD, "--threshold", "-t",
    help="Pixels with luminance below (or above, with -I) this value are plotted. 0-255.",
)
AlphaOption = typer.Option(
    DEFAULT_ALPHA_THRESHOLD, "--alpha-threshold", "-a",
    help="Pixels with alpha at or below this value are never plotted. 0-255.",
)
InvertOption = typer.Option(False, "--invert", "-I", help="Plot pixels above the threshold instead of below")
TerminalOption = typer.Option(DEFAULT_TERMINAL, "--terminal", help="gnuplot terminal (output format)")
PointTypeOption = typer.Option(DEFAULT_POINT_TYPE, "--point-type", help="gnuplot point type")
LogLevelOption = typer.Option(
    "WARNING", "--log-level", help="Logging verbosity (DEBUG, INFO, WARNING, ERROR)"
)


@app.command("plot")
def plot_cmd(
    input_path: str | None = InputOption,
    output: Path | None = typer.Option(
        None, "--output", "-o",
        help="Plot output file. With -d, optional data file ('-' or omitted for stdout).",
    ),
    threshold: int = ThresholdOption,
    alpha_threshold: int = AlphaOption,
    invert: bool = InvertOption,
    data_only: bool = typer.Option(
        False, "--data", "-d",
        help="Write 'x y' lines (y negative) instead of plotting anything",
    ),
    terminal: str = TerminalOption,
    point_type: int = PointTypeOption,
    gnuplot: str = typer.Option(
        DEFAULT_EXECUTABLE, "--gnuplot", envvar=GNUPLOT_ENVVAR, help="gnuplot executable to run"
    ),
    timeout: float | None = typer.Option(
        None, "--timeout", help="Kill gnuplot if it has not exited this many seconds after the data is sent"
    ),
    log_level: str = LogLevelOption,
) -> None:
    """
    Render the selected pixels of an image as a gnuplot scatter plot.

    Example:
        bitplot plot -i drawing.png -o drawing.pdf -t 100
        bitplot plot -i drawing.png -d > points.dat
    """
    global LOGGER
    LOGGER = setup_logging(log_level)

    try:
        source = _require_input(input_path)
        policy = build_policy(threshold, alpha_threshold, invert)

        if data_only:
            result = export_data(source, output.expanduser() if output else None, policy)
            typer.echo(f"Wrote {result.points} points ({result.width}x{result.height})", err=True)
            return

        if output is None:
            raise ConfigurationError("an output file is required (-o/--output) unless -d is given")

        backend = GnuplotBackend(executable=gnuplot, timeout=timeout, logger=LOGGER)
        result = render_image(
            source,
            output.expanduser(),
            policy,
            backend=backend,
            terminal=terminal,
            point_type=point_type,
        )
    except BitplotError as e:
        raise _fail(e)
    except OSError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    if result.outcome is not None and not result.success:
        typer.echo(f"⚠️  {result.outcome.describe()}; {output} may be incomplete", err=True)
        raise typer.Exit(code=RendererExitError.exit_code)

    typer.echo(
        f"✅ Plotted {result.points} points ({result.width}x{result.height}) to {output} "
        f"({result.elapsed_seconds:.1f}s)"
    )


@app.command("script")
def script_cmd(
    input_path: str | None = InputOption,
    output: Path = typer.Option(..., "--output", "-o", help="Plot output file named in the script"),
    terminal: str = TerminalOption,
    point_type: int = PointTypeOption,
    log_level: str = LogLevelOption,
) -> None:
    """
    Print the gnuplot script generated for an image.

    The printed script reads inline data, so it can be completed by hand:

        bitplot script -i a.png -o a.pdf > a.gp && bitplot plot -i a.png -d >> a.gp && echo e >> a.gp
    """
    global LOGGER
    LOGGER = setup_logging(log_level)

    try:
        text = preview_script(
            _require_input(input_path),
            output.expanduser(),
            terminal=terminal,
            point_type=point_type,
        )
    except BitplotError as e:
        raise _fail(e)

    typer.echo(text, nl=False)


@app.command("count")
def count_cmd(
    input_path: str | None = InputOption,
    threshold: int = ThresholdOption,
    alpha_threshold: int = AlphaOption,
    invert: bool = InvertOption,
    log_level: str = LogLevelOption,
) -> None:
    """Print the number of points an image would produce."""
    global LOGGER
    LOGGER = setup_logging(log_level)

    try:
        total = count_points(
            _require_input(input_path), build_policy(threshold, alpha_threshold, invert)
        )
    except BitplotError as e:
        raise _fail(e)

    typer.echo(str(total))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
