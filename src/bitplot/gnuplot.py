from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from typing import Protocol

from bitplot.errors import ConfigurationError, ResourceError

DEFAULT_EXECUTABLE = "gnuplot"
DEFAULT_TERMINAL = "pdf"
# filled circle
DEFAULT_POINT_TYPE = 7

SCRIPT_ENCODING = "utf-8"

SCRIPT_TEMPLATE = (
    "set terminal {terminal}\n"
    "set output '{output}'\n"
    "set nokey\n"
    "set xrange [0:{width}]\n"
    "set yrange [-{height}:0]\n"
    "plot '{data_ref}' with points pointtype {point_type}\n"
)


def data_channel_ref(fd: int) -> str:
    """Path through which a child process reopens an inherited descriptor."""
    return f"/proc/self/fd/{fd}"


def _quote(value: str) -> str:
    # gnuplot single-quoted strings escape a quote by doubling it
    return value.replace("'", "''")


@dataclass(frozen=True)
class PlotScript:
    """
    Fixed-shape gnuplot script for a scatter plot of one raster.

    The script sets the output file, disables the key, fixes the axis ranges to
    [0, width] and [-height, 0] and plots points read from a data reference
    supplied at render time.

    Raises:
        ConfigurationError: If output_path cannot be embedded in the script
    """

    output_path: str
    width: int
    height: int
    terminal: str = DEFAULT_TERMINAL
    point_type: int = DEFAULT_POINT_TYPE

    def __post_init__(self) -> None:
        for label, value in (("output path", self.output_path), ("terminal", self.terminal)):
            if not value:
                raise ConfigurationError(f"{label} must not be empty")
            if "\n" in value or "\r" in value:
                raise ConfigurationError(f"{label} must not contain line breaks: {value!r}")
            try:
                value.encode(SCRIPT_ENCODING)
            except UnicodeEncodeError as e:
                raise ConfigurationError(
                    f"{label} {value!r} cannot be encoded as {SCRIPT_ENCODING}"
                ) from e
        if self.width < 0 or self.height < 0:
            raise ConfigurationError(f"invalid plot size {self.width}x{self.height}")

    def render(self, data_ref: str) -> str:
        """
        Render the script text.

        Example:
            >>> print(PlotScript("out.pdf", 4, 3).render("/proc/self/fd/5"))
            set terminal pdf
            set output 'out.pdf'
            set nokey
            set xrange [0:4]
            set yrange [-3:0]
            plot '/proc/self/fd/5' with points pointtype 7
        """
        return SCRIPT_TEMPLATE.format(
            terminal=self.terminal,
            output=_quote(self.output_path),
            width=self.width,
            height=self.height,
            data_ref=_quote(data_ref),
            point_type=self.point_type,
        )

    def encode(self, data_ref: str) -> bytes:
        return self.render(data_ref).encode(SCRIPT_ENCODING)


class RendererBackend(Protocol):
    """Minimal interface for a plotting program driven over stdin."""

    name: str
    timeout: float | None

    def resolve_executable(self) -> str:
        ...


@dataclass
class GnuplotBackend:
    """gnuplot, invoked with no arguments and fed its script on stdin.

    The data stream is not sent on stdin: the script names an inherited
    descriptor through /proc/self/fd, which gnuplot opens like a file.
    """

    name: str = "gnuplot"
    executable: str = DEFAULT_EXECUTABLE
    timeout: float | None = None
    logger: logging.Logger | None = None

    def resolve_executable(self) -> str:
        """Return the absolute path of the renderer.

        Raises:
            ResourceError: If the executable is not found on PATH
        """
        resolved = shutil.which(self.executable)
        if resolved is None:
            raise ResourceError(
                f"{self.name} not found. Install `{self.executable}` and ensure it is on your PATH."
            )
        if self.logger:
            self.logger.debug(
                "renderer_resolved",
                extra={"executable": self.executable, "resolved": resolved},
            )
        return resolved
