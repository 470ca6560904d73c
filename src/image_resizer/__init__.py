"""Batch image resizing: fetch, normalize, re-encode and store images."""

__version__ = "0.1.0"
