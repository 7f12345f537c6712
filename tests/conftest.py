"""Shared fixtures: generated images and a stand-in renderer."""

from pathlib import Path
import os
import stat
import sys

import pytest
from PIL import Image

from bitplot.gnuplot import GnuplotBackend


requires_proc_fd = pytest.mark.skipif(
    not sys.platform.startswith("linux") or not Path("/proc/self/fd").is_dir(),
    reason="renderer data channel is referenced through /proc/self/fd",
)


# Records the script it receives and its argument count, then copies the
# data channel named in the script's plot command into the output file.
COPYING_RENDERER = """\
#!/bin/sh
cat > "{dir}/received.gp"
echo "$#" > "{dir}/argc"
out=$(sed -n "s/^set output '\\(.*\\)'$/\\1/p" "{dir}/received.gp")
data=$(sed -n "s/^plot '\\([^']*\\)' .*/\\1/p" "{dir}/received.gp")
cat "$data" > "$out"
"""


@pytest.fixture
def make_image(tmp_path):
    """Factory writing a PNG with the given mode, size and pixel data."""

    def _make(mode: str, size: tuple[int, int], data: list, name: str = "input.png") -> Path:
        img = Image.new(mode, size)
        img.putdata(data)
        path = tmp_path / name
        img.save(path)
        return path

    return _make


@pytest.fixture
def make_renderer(tmp_path):
    """Factory writing an executable shell script that stands in for gnuplot."""

    def _make(body: str, name: str = "fake-gnuplot") -> Path:
        path = tmp_path / name
        path.write_text(body.format(dir=tmp_path), encoding="utf-8")
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    return _make


@pytest.fixture
def copying_backend(make_renderer):
    """Backend whose renderer copies the coordinate stream to the output file."""
    return GnuplotBackend(executable=str(make_renderer(COPYING_RENDERER)), timeout=30)


@pytest.fixture
def open_fds():
    """Callable returning the set of this process's open descriptors."""

    def _fds() -> set[str]:
        return set(os.listdir("/proc/self/fd"))

    return _fds
