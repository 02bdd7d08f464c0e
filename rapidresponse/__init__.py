"""Rapid Response Central emergency session and timer engine."""

__version__ = "1.0.0"
