"""Flylinks: a URL shortener with sequential short codes."""

__version__ = "1.0.0"
