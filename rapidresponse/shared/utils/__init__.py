"""Shared utilities for Rapid Response Central."""
from .clock import Clock, utc_now, new_id
from .time_format import format_elapsed, tick_interval_ms

__all__ = ["Clock", "utc_now", "new_id", "format_elapsed", "tick_interval_ms"]
