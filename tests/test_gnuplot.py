"""Tests for the gnuplot script builder and backend."""

import pytest

from bitplot.errors import ConfigurationError, ResourceError
from bitplot.gnuplot import GnuplotBackend, PlotScript, data_channel_ref


class TestPlotScript:
    """Tests for PlotScript rendering."""

    def test_render_template(self):
        script = PlotScript("out.pdf", 640, 480)
        assert script.render("/proc/self/fd/9") == (
            "set terminal pdf\n"
            "set output 'out.pdf'\n"
            "set nokey\n"
            "set xrange [0:640]\n"
            "set yrange [-480:0]\n"
            "plot '/proc/self/fd/9' with points pointtype 7\n"
        )

    def test_custom_terminal_and_point_type(self):
        text = PlotScript("out.png", 2, 2, terminal="pngcairo", point_type=5).render("-")
        assert text.startswith("set terminal pngcairo\n")
        assert "plot '-' with points pointtype 5\n" in text

    def test_single_quote_escaped(self):
        text = PlotScript("it's.pdf", 1, 1).render("-")
        assert "set output 'it''s.pdf'\n" in text

    def test_non_ascii_path_allowed(self):
        script = PlotScript("café.pdf", 1, 1)
        assert "café.pdf".encode("utf-8") in script.encode("-")

    def test_unencodable_path_rejected(self):
        """Test that undecodable filename bytes cannot reach the script."""
        with pytest.raises(ConfigurationError, match="cannot be encoded"):
            PlotScript("bad\udcff.pdf", 1, 1)

    @pytest.mark.parametrize("path", ["a\nb.pdf", "a\rb.pdf"])
    def test_line_break_rejected(self, path):
        with pytest.raises(ConfigurationError, match="line breaks"):
            PlotScript(path, 1, 1)

    def test_empty_path_rejected(self):
        with pytest.raises(ConfigurationError):
            PlotScript("", 1, 1)


def test_data_channel_ref():
    assert data_channel_ref(5) == "/proc/self/fd/5"


class TestGnuplotBackend:
    """Tests for renderer executable resolution."""

    def test_missing_executable(self):
        backend = GnuplotBackend(executable="bitplot-no-such-renderer")
        with pytest.raises(ResourceError, match="not found"):
            backend.resolve_executable()

    def test_absolute_path_resolves(self, make_renderer):
        path = make_renderer("#!/bin/sh\nexit 0\n")
        assert GnuplotBackend(executable=str(path)).resolve_executable() == str(path)
