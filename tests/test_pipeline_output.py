"""Tests for the coordinate text format."""

from pathlib import Path
import io
import tempfile

import pytest

from bitplot.raster import Coordinate
from bitplot.pipeline.output import (
    format_coordinate,
    parse_coordinate,
    read_data_file,
    write_coordinates,
    write_data_file,
)


class TestFormatCoordinate:
    """Tests for format_coordinate() and parse_coordinate()."""

    def test_line_format(self):
        """Test that a coordinate is one 'x y' line."""
        assert format_coordinate(Coordinate(12, -7)) == "12 -7\n"

    def test_origin_has_no_negative_zero(self):
        assert format_coordinate(Coordinate(0, -0)) == "0 0\n"

    def test_parse(self):
        assert parse_coordinate("3 -4\n") == Coordinate(3, -4)

    @pytest.mark.parametrize("line", ["3", "3 4 5", "a b", ""])
    def test_parse_malformed(self, line):
        with pytest.raises(ValueError):
            parse_coordinate(line)


class TestWriteCoordinates:
    """Tests for write_coordinates()."""

    def test_writes_lines_and_counts(self):
        stream = io.StringIO()
        count = write_coordinates(iter([Coordinate(0, 0), Coordinate(1, -1)]), stream)
        assert count == 2
        assert stream.getvalue() == "0 0\n1 -1\n"

    def test_empty_sequence(self):
        stream = io.StringIO()
        assert write_coordinates([], stream) == 0
        assert stream.getvalue() == ""


class TestDataFile:
    """Tests for write_data_file() and read_data_file()."""

    def test_file_round_trip(self):
        coords = [Coordinate(0, 0), Coordinate(5, -2), Coordinate(9, -9)]
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "nested" / "points.dat"
            assert write_data_file(coords, path) == 3
            assert read_data_file(path) == coords

    def test_stdout(self, capsys):
        count = write_data_file([Coordinate(2, -3)], None)
        assert count == 1
        assert capsys.readouterr().out == "2 -3\n"

    def test_dash_means_stdout(self, capsys):
        write_data_file([Coordinate(1, 0)], Path("-"))
        assert capsys.readouterr().out == "1 0\n"

    def test_read_skips_blank_lines(self, tmp_path):
        path = tmp_path / "points.dat"
        path.write_text("1 -1\n\n2 -2\n", encoding="ascii")
        assert read_data_file(path) == [Coordinate(1, -1), Coordinate(2, -2)]
