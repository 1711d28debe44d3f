"""Survegio: student evaluation survey assignment and reporting service."""

__version__ = "1.0.0"
