"""bitplot: render raster images as gnuplot scatter plots."""

__version__ = "0.1.0"
