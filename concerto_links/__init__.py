"""Streaming and lyrics link resolution for setlist songs."""

__version__ = "0.1.0"
