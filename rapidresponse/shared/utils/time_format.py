"""Clock-style formatting of elapsed milliseconds.

All division truncates, so a display never runs ahead of the timer:
59_999 ms renders as ``00:59``, not ``01:00``.
"""

MS_PER_SECOND = 1000
SECONDS_PER_MINUTE = 60


def format_elapsed(elapsed_ms: int, show_centiseconds: bool = False) -> str:
    """Format elapsed time as ``MM:SS`` or ``MM:SS.cc``.

    Minutes are not wrapped at the hour, so a long code reads ``75:12``.

    Args:
        elapsed_ms: Whole milliseconds, must be non-negative
        show_centiseconds: Append hundredths of a second

    Returns:
        Zero-padded display string

    Raises:
        ValueError: If elapsed_ms is negative
    """
    if elapsed_ms < 0:
        raise ValueError(f"Elapsed time must be non-negative, got {elapsed_ms}")

    total_seconds = elapsed_ms // MS_PER_SECOND
    minutes = total_seconds // SECONDS_PER_MINUTE
    seconds = total_seconds % SECONDS_PER_MINUTE

    if show_centiseconds:
        centiseconds = (elapsed_ms % MS_PER_SECOND) // 10
        return f"{minutes:02d}:{seconds:02d}.{centiseconds:02d}"
    return f"{minutes:02d}:{seconds:02d}"


def tick_interval_ms(show_centiseconds: bool) -> int:
    """Tick interval that matches the display granularity."""
    return 10 if show_centiseconds else MS_PER_SECOND
