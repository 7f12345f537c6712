"""
Coordinate text format.

Each coordinate is written as one "x y" line. The same format feeds the
renderer's data channel and the data-only output file.
"""

from __future__ import annotations

from pathlib import Path
import sys
from typing import Iterable, TextIO

from bitplot.raster.models import Coordinate


STDOUT_MARKER = "-"


def format_coordinate(coord: Coordinate) -> str:
    """
    Format one coordinate as a data line.

    Example:
        >>> format_coordinate(Coordinate(3, -2))
        '3 -2\\n'
    """
    return f"{coord.x} {coord.y}\n"


def parse_coordinate(line: str) -> Coordinate:
    """
    Parse one data line.

    Raises:
        ValueError: If the line does not hold exactly two integers
    """
    parts = line.split()
    if len(parts) != 2:
        raise ValueError(f"Expected 'x y', got {line!r}")
    return Coordinate(int(parts[0]), int(parts[1]))


def write_coordinates(coordinates: Iterable[Coordinate], stream: TextIO) -> int:
    """
    Write coordinates to an open text stream.

    Returns:
        Number of lines written
    """
    count = 0
    for coord in coordinates:
        stream.write(format_coordinate(coord))
        count += 1
    return count


def write_data_file(coordinates: Iterable[Coordinate], output_path: Path | None) -> int:
    """
    Write coordinates to a file, or to stdout.

    Creates parent directories if they don't exist.

    Parameters:
        coordinates: Points to write
        output_path: Destination file; None or "-" writes to stdout

    Returns:
        Number of lines written

    Example:
        >>> write_data_file(iter_coordinates(raster, policy), Path("points.dat"))
        1532
    """
    if output_path is None or str(output_path) == STDOUT_MARKER:
        count = write_coordinates(coordinates, sys.stdout)
        sys.stdout.flush()
        return count

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", encoding="ascii", newline="\n") as f:
        return write_coordinates(coordinates, f)


def read_data_file(path: Path) -> list[Coordinate]:
    """
    Load coordinates from a data file written by write_data_file().

    Blank lines are skipped.

    Raises:
        ValueError: If a line is malformed
    """
    coords: list[Coordinate] = []
    with path.open("r", encoding="ascii") as f:
        for line in f:
            if not line.strip():
                continue
            coords.append(parse_coordinate(line))
    return coords
