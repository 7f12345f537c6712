"""
Renderer process supervision.

Delivers a plot script and a coordinate stream to a freshly spawned renderer
over two pipes and reports how the renderer exited.

The script channel becomes the renderer's stdin. The data channel's read end
is inherited under its own descriptor number, which the script names via
/proc/self/fd/N. The whole script is written and its channel closed before
any coordinate is written, so the renderer always sees its commands first and
can drain the data channel while the parent is still producing it. Both
channels stay in blocking mode.
"""

from __future__ import annotations

import enum
import logging
import os
import signal
import subprocess
from dataclasses import dataclass
from typing import Iterable

from bitplot.errors import RendererExitError, ResourceError
from bitplot.gnuplot import PlotScript, RendererBackend, data_channel_ref
from bitplot.raster.models import Coordinate

from .output import format_coordinate

LOGGER = logging.getLogger(__name__)

DATA_ENCODING = "ascii"
# Lines buffered between flushes of the data channel
FLUSH_LINES = 1024


class RendererState(enum.Enum):
    RUNNING = "running"
    EXITED_OK = "exited_ok"
    EXITED_ERROR = "exited_error"
    SIGNALED = "signaled"


def classify_returncode(returncode: int | None) -> RendererState:
    """Map a Popen returncode to a RendererState (negative means killed by a signal)."""
    if returncode is None:
        return RendererState.RUNNING
    if returncode == 0:
        return RendererState.EXITED_OK
    if returncode < 0:
        return RendererState.SIGNALED
    return RendererState.EXITED_ERROR


def _signal_name(signum: int) -> str:
    try:
        return signal.Signals(signum).name
    except ValueError:
        return str(signum)


@dataclass(frozen=True)
class RendererOutcome:
    """
    How a renderer run ended.

    Attributes:
        state: Final process state
        returncode: Popen returncode (negative signal number when signaled)
        points_written: Coordinates whose lines were flushed into the data
            channel in full. After an early hang-up this counts whole flushes
            only, and flushed lines may still have been unread in the pipe.
        truncated: Renderer closed the data channel before all points were written
    """

    state: RendererState
    returncode: int | None
    points_written: int = 0
    truncated: bool = False

    @property
    def ok(self) -> bool:
        return self.state is RendererState.EXITED_OK and not self.truncated

    def describe(self) -> str:
        if self.state is RendererState.SIGNALED and self.returncode is not None:
            msg = f"renderer killed by signal {_signal_name(-self.returncode)}"
        elif self.state is RendererState.EXITED_ERROR:
            msg = f"renderer exited with status {self.returncode}"
        elif self.state is RendererState.RUNNING:
            msg = "renderer still running"
        else:
            msg = "renderer exited normally"
        if self.truncated:
            msg += " after closing the data channel early"
        return msg


def require_success(outcome: RendererOutcome) -> RendererOutcome:
    """Return the outcome unchanged, or raise RendererExitError if it is a failure."""
    if not outcome.ok:
        raise RendererExitError(outcome.describe(), outcome)
    return outcome


@dataclass
class Channel:
    """
    One pipe. Ends are set to None once closed or handed off.
    """

    read_fd: int | None
    write_fd: int | None

    @classmethod
    def open(cls) -> Channel:
        read_fd, write_fd = os.pipe()
        return cls(read_fd=read_fd, write_fd=write_fd)

    def close_read(self) -> None:
        if self.read_fd is not None:
            fd, self.read_fd = self.read_fd, None
            os.close(fd)

    def close_write(self) -> None:
        if self.write_fd is not None:
            fd, self.write_fd = self.write_fd, None
            os.close(fd)

    def reader(self) -> int:
        """Descriptor of the read end, which must still be open."""
        if self.read_fd is None:
            raise ValueError("read end already closed")
        return self.read_fd

    def take_write(self) -> int:
        """Hand ownership of the write end to the caller."""
        if self.write_fd is None:
            raise ValueError("write end already closed")
        fd, self.write_fd = self.write_fd, None
        return fd

    def close(self) -> None:
        self.close_read()
        self.close_write()


def _spawn(backend: RendererBackend, executable: str, script_ch: Channel, data_ch: Channel) -> subprocess.Popen:
    """Start the renderer with the script pipe as stdin and the data pipe inherited."""
    try:
        # close_fds keeps both write ends out of the child
        return subprocess.Popen(
            [backend.name],
            executable=executable,
            stdin=script_ch.reader(),
            pass_fds=(data_ch.reader(),),
            close_fds=True,
        )
    except OSError as e:
        raise ResourceError(f"failed to start {backend.name} ({executable}): {e}") from e


def _write_script(script_ch: Channel, payload: bytes) -> bool:
    """Write the script and close the channel. False if the renderer hung up."""
    try:
        with os.fdopen(script_ch.take_write(), "wb") as f:
            f.write(payload)
    except BrokenPipeError:
        return False
    return True


def _stream_data(data_ch: Channel, coordinates: Iterable[Coordinate]) -> tuple[int, bool]:
    """Write one "x y" line per coordinate and close the channel.

    Returns (points flushed to the pipe, whether the renderer hung up early).
    """
    queued = flushed = 0
    try:
        with os.fdopen(data_ch.take_write(), "w", encoding=DATA_ENCODING, newline="\n") as stream:
            for coord in coordinates:
                stream.write(format_coordinate(coord))
                queued += 1
                if queued - flushed >= FLUSH_LINES:
                    stream.flush()
                    flushed = queued
            stream.flush()
            flushed = queued
    except BrokenPipeError:
        return flushed, True
    return flushed, False


def _wait(proc: subprocess.Popen, timeout: float | None, name: str) -> int:
    try:
        return proc.wait(timeout=timeout)
    except subprocess.TimeoutExpired as e:
        proc.kill()
        proc.wait()
        LOGGER.error("renderer_timeout", extra={"pid": proc.pid, "timeout": timeout})
        raise RendererExitError(
            f"{name} did not exit within {timeout:g}s and was killed",
            RendererOutcome(RendererState.SIGNALED, proc.returncode),
        ) from e


def _abandon(proc: subprocess.Popen) -> None:
    if proc.poll() is None:
        proc.kill()
    proc.wait()


def deliver(
    backend: RendererBackend,
    script: PlotScript,
    coordinates: Iterable[Coordinate],
) -> RendererOutcome:
    """
    Run the renderer on a script and a coordinate stream.

    Steps:
    - Create the script and data channels
    - Spawn the renderer with stdin bound to the script channel
    - Write the full script, close it
    - Stream coordinates into the data channel, close it
    - Wait for the renderer and classify its exit

    Parameters:
        backend: Renderer to run
        script: Plot script; rendered here with the data channel's descriptor
        coordinates: Points to stream, consumed once

    Returns:
        RendererOutcome; a failing renderer is reported, not raised

    Raises:
        ResourceError: If the renderer cannot be found, or a pipe or the
            process cannot be created
        RendererExitError: If the renderer outlives backend.timeout

    Example:
        >>> outcome = deliver(GnuplotBackend(), PlotScript("out.pdf", 64, 32), points)
        >>> outcome.ok
        True
    """
    executable = backend.resolve_executable()
    channels: list[Channel] = []
    try:
        try:
            script_ch = Channel.open()
            channels.append(script_ch)
            data_ch = Channel.open()
            channels.append(data_ch)
        except OSError as e:
            raise ResourceError(f"failed to create pipe: {e}") from e

        payload = script.encode(data_channel_ref(data_ch.reader()))

        proc = _spawn(backend, executable, script_ch, data_ch)
        LOGGER.info(
            "renderer_spawned",
            extra={"pid": proc.pid, "executable": executable, "data_fd": data_ch.read_fd},
        )

        # the child holds its own copies of the read ends now
        script_ch.close_read()
        data_ch.close_read()

        try:
            written, truncated = 0, False
            if _write_script(script_ch, payload):
                LOGGER.debug("script_delivered", extra={"bytes": len(payload)})
                written, truncated = _stream_data(data_ch, coordinates)
            else:
                truncated = True
            data_ch.close_write()
            returncode = _wait(proc, backend.timeout, backend.name)
        except BaseException:
            _abandon(proc)
            raise
    finally:
        for ch in channels:
            ch.close()

    outcome = RendererOutcome(
        state=classify_returncode(returncode),
        returncode=returncode,
        points_written=written,
        truncated=truncated,
    )
    if truncated:
        LOGGER.warning("renderer_hung_up", extra={"pid": proc.pid, "points": written})
    LOGGER.info(
        "renderer_exited",
        extra={"pid": proc.pid, "state": outcome.state.value, "returncode": returncode, "points": written},
    )
    return outcome
